"""Unit tests for squad coverage analysis."""

import unittest

from defcon.fixtures import build_team_index, index_players
from defcon.state import FixtureDifficultyEntry, TeamDifficulty
from planner.coverage import analyze_team_coverage, find_weak_coverage, owned_team_codes

TEAMS = [{'id': i, 'name': f'Team {i}', 'short_name': f'T{i}'} for i in range(1, 5)]
PLAYERS = [
    {'id': 1, 'web_name': 'One', 'team': 1},
    {'id': 2, 'web_name': 'Two', 'team': 1},
    {'id': 3, 'web_name': 'Three', 'team': 2},
    {'id': 4, 'web_name': 'Orphan', 'team': 77},
]


def _team(team, difficulties):
    fixtures = {gw: FixtureDifficultyEntry(opponent=0, venue='H', difficulty=d)
                for gw, d in difficulties.items()}
    avg = sum(difficulties.values()) / len(difficulties) if difficulties else 3.0
    return TeamDifficulty(team=team, fixtures=fixtures, avg_difficulty=avg, fixture_count=len(fixtures))


class TestOwnedTeams(unittest.TestCase):

    def setUp(self):
        self.teams = build_team_index(TEAMS)
        self.players = index_players(PLAYERS)

    def test_owned_team_codes(self):
        self.assertEqual(owned_team_codes(['1', 3.0, 4, 99], self.players, self.teams), {1, 2})
        self.assertEqual(owned_team_codes(None, self.players, self.teams), set())

    def test_team_coverage(self):
        table = {1: _team(1, {5: 2.0, 6: 3.0}), 2: _team(2, {5: 4.0})}
        coverage = analyze_team_coverage([1, 2, 3], self.players, self.teams, table)
        self.assertEqual(coverage[1]['playerCount'], 2)
        self.assertEqual([p['name'] for p in coverage[1]['players']], ['One', 'Two'])
        self.assertEqual(coverage[1]['avgDifficulty'], 2.5)
        self.assertEqual(coverage[2]['avgDifficulty'], 4.0)


class TestWeakCoverage(unittest.TestCase):
    """Tests for unowned teams with good runs."""

    def setUp(self):
        self.table = {
            1: _team(1, {5: 2.0, 6: 2.0, 7: 2.0}),
            2: _team(2, {5: 1.5, 6: 2.5, 7: 4.5}),
            3: _team(3, {5: 2.0, 6: 3.5, 7: 3.0}),
            4: _team(4, {5: 1.0, 6: 1.0}),
        }

    def test_easiest_first_excluding_owned(self):
        weak = find_weak_coverage(self.table, owned_teams=[1])
        self.assertEqual([w['team'] for w in weak], [4, 2])
        self.assertEqual(weak[1]['gameweeks'], [5, 6])
        self.assertEqual(weak[0]['reason'], "2 easy fixtures in your analysis window")

    def test_needs_two_good_fixtures(self):
        # Team 3 averages under 3 but has only one fixture under 3
        weak = find_weak_coverage(self.table, owned_teams=[])
        self.assertNotIn(3, [w['team'] for w in weak])

    def test_limit(self):
        self.assertEqual(len(find_weak_coverage(self.table, [], limit=1)), 1)


if __name__ == '__main__':
    unittest.main()
