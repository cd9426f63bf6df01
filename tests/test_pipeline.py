"""Integration tests for a full engine pass and the projection views."""

import random
import unittest

from defcon.archetypes import build_override_table
from defcon.pipeline import EngineInputs, resolve_window, run_engine
from defcon.projections import SORT_MAX, build_fixture_matrix, player_outlook
from defcon.state import Archetype, ChipType, PositionGroup, Venue


def _league():
    """Four teams, two played gameweeks, three to come. Teams are referenced by source id."""
    teams = [
        {'id': 1, 'code': 10, 'name': 'Arsenal', 'short_name': 'ARS'},
        {'id': 2, 'code': 20, 'name': 'Brighton', 'short_name': 'BHA'},
        {'id': 3, 'code': 30, 'name': 'Chelsea', 'short_name': 'CHE'},
        {'id': 4, 'code': 40, 'name': 'Everton', 'short_name': 'EVE'},
    ]
    fixtures = [
        {'event': 1, 'team_h': 1, 'team_a': 2, 'finished': True, 'team_h_score': 2, 'team_a_score': 0},
        {'event': 1, 'team_h': 3, 'team_a': 4, 'finished': True, 'team_h_score': 1, 'team_a_score': 1},
        {'event': 2, 'team_h': 2, 'team_a': 3, 'finished': True, 'team_h_score': 0, 'team_a_score': 3},
        {'event': 2, 'team_h': 4, 'team_a': 1, 'finished': True, 'team_h_score': 2, 'team_a_score': 2},
        {'event': 3, 'team_h': 1, 'team_a': 3, 'finished': False},
        {'event': 3, 'team_h': 2, 'team_a': 4, 'finished': False},
        {'event': 4, 'team_h': 3, 'team_a': 2, 'finished': False},
        {'event': 5, 'team_h': 4, 'team_a': 3, 'finished': False},
        {'event': 5, 'team_h': 2, 'team_a': 1, 'finished': False},
    ]
    players = [
        {'id': 11, 'web_name': 'Saliba', 'team': 1, 'position': 'Defender'},
        {'id': 12, 'web_name': 'Rice', 'team': 1, 'position': 'Midfielder'},
        {'id': 21, 'web_name': 'Estupinan', 'team': 2, 'position': 'Defender'},
        {'id': 31, 'web_name': 'Caicedo', 'team': 3, 'position': 'Midfielder'},
        {'id': 32, 'web_name': 'Sanchez', 'team': 3, 'position': 'Goalkeeper'},
        {'id': 41, 'web_name': 'Tarkowski', 'team': 4, 'position': 'Defender'},
    ]
    stats = [
        {'element': 11, 'gw': 1, 'minutes': 90, 'clearances': 6, 'tackles': 4},
        {'element': 12, 'gw': 1, 'minutes': 90, 'recoveries': 9, 'tackles': 3},
        {'element': 21, 'gw': 1, 'minutes': 90, 'clearances': 3},
        {'element': 31, 'gw': 1, 'minutes': 85, 'recoveries': 8, 'interceptions': 2},
        {'element': 32, 'gw': 1, 'minutes': 90, 'clearances': 12},
        {'element': 41, 'gw': 1, 'minutes': 90, 'clearances': 11},
        {'element': 11, 'gw': 2, 'minutes': 90, 'clearances': 2},
        {'element': 12, 'gw': 2, 'minutes': 0, 'recoveries': 20},
        {'element': 21, 'gw': 2, 'minutes': 90, 'blocks': 4, 'tackles': 6},
        {'element': 31, 'gw': 2, 'minutes': 90, 'recoveries': 13},
        {'element': 41, 'gw': 2, 'minutes': 45, 'tackles': 2},
    ]
    overrides = [{'player_id': 21, 'actual_position': 'LB'}]
    return EngineInputs(players=players, teams=teams, stats=stats, fixtures=fixtures,
                        overrides=overrides)


class TestRunEngine(unittest.TestCase):
    """Tests for one full pass."""

    def setUp(self):
        self.inputs = _league()
        self.result = run_engine(self.inputs, owned_player_ids=['11', 31], weeks=3,
                                 prior_strength=6, default_probability=0.28)

    def test_window_defaults_to_next_gameweek(self):
        self.assertEqual((self.result.start_period, self.result.end_period), (3, 5))
        self.assertEqual(self.result.periods, [3, 4, 5])

    def test_owned_teams_resolved_to_codes(self):
        self.assertEqual(self.result.owned_teams, [10, 30])

    def test_extra_owned_teams(self):
        result = run_engine(self.inputs, owned_teams=[2, 'nope'], weeks=3)
        self.assertEqual(result.owned_teams, [20])

    def test_aggregation_counts(self):
        agg = self.result.aggregation
        # 11 records: one goalkeeper, one zero-minute
        self.assertEqual(agg.total_trials, 9)
        # Saliba's GW1 hit at home lands in Brighton's away bucket
        bucket = agg.bucket(20, Venue.AWAY, Archetype.CENTER_BACK)
        self.assertEqual((bucket.hits, bucket.trials), (1, 1))
        # Estupinan is overridden to left back
        bucket = agg.bucket(30, Venue.AWAY, Archetype.LEFT_BACK)
        self.assertEqual((bucket.hits, bucket.trials), (1, 1))

    def test_probabilities_cover_every_team(self):
        self.assertEqual(self.result.probabilities.opponents(), [10, 20, 30, 40])
        for opponent in self.result.probabilities.opponents():
            for venue in (Venue.HOME, Venue.AWAY, Venue.OVERALL):
                value = self.result.probabilities.value(opponent, venue, PositionGroup.DEFENCE)
                self.assertTrue(0.0 <= value <= 1.0)

    def test_difficulty_only_for_window(self):
        for data in self.result.fixture_difficulty.values():
            for gw in data.fixtures:
                self.assertIn(gw, (3, 4, 5))
        # Arsenal have no GW4 fixture
        self.assertNotIn(4, self.result.fixture_difficulty[10].fixtures)

    def test_recommendations(self):
        recs = self.result.recommendations
        self.assertEqual(set(recs), set(ChipType))
        for rec in recs.values():
            self.assertTrue(3 <= rec.best_period <= 5)
            self.assertTrue(0.0 <= rec.confidence <= 1.0)

    def test_idempotent_under_row_shuffles(self):
        shuffled = _league()
        rng = random.Random(42)
        for rows in (shuffled.players, shuffled.teams, shuffled.stats,
                     shuffled.fixtures, shuffled.overrides):
            rng.shuffle(rows)
        again = run_engine(shuffled, owned_player_ids=[31, '11'], weeks=3,
                           prior_strength=6, default_probability=0.28)
        self.assertEqual(again, self.result)

    def test_rerun_gives_same_result(self):
        again = run_engine(self.inputs, owned_player_ids=['11', 31], weeks=3,
                           prior_strength=6, default_probability=0.28)
        self.assertEqual(again, self.result)

    def test_duplicate_player_rows_independent_of_order(self):
        rows = [
            {'id': 7, 'web_name': 'Dup', 'team': 1, 'position': 'Defender'},
            {'id': 7, 'web_name': 'Dup', 'team': 3, 'position': 'Midfielder'},
        ]
        results = []
        for ordered in (rows, list(reversed(rows))):
            inputs = _league()
            inputs.players.extend(ordered)
            inputs.stats.append({'element': 7, 'gw': 1, 'minutes': 90, 'clearances': 10})
            results.append(run_engine(inputs, weeks=3))

        self.assertEqual(results[0], results[1])
        # The row with the lower team reference wins: an Arsenal defender
        bucket = results[0].aggregation.bucket(20, Venue.AWAY, Archetype.CENTER_BACK)
        self.assertEqual((bucket.hits, bucket.trials), (2, 2))

    def test_empty_inputs(self):
        result = run_engine(EngineInputs())
        self.assertEqual(result.start_period, 1)
        self.assertEqual(result.aggregation.total_trials, 0)
        self.assertEqual(result.recommendations[ChipType.BENCH_BOOST].confidence, 0.0)


class TestResolveWindow(unittest.TestCase):

    def test_capped_at_season_end(self):
        result = run_engine(_league(), start_period=36, weeks=10)
        self.assertEqual((result.start_period, result.end_period), (36, 38))

    def test_explicit_start(self):
        index = run_engine(_league()).fixture_index
        self.assertEqual(resolve_window(index, 4, 2), (4, 5))


class TestProjections(unittest.TestCase):
    """Tests for the fixture matrix and player outlook."""

    def setUp(self):
        self.inputs = _league()
        self.result = run_engine(self.inputs, weeks=3)

    def test_matrix_rows_and_columns(self):
        matrix = build_fixture_matrix(self.result.fixture_index, self.result.team_index,
                                      self.result.probabilities, [3, 5])
        self.assertEqual(matrix['gameweeks'], [3, 5])
        self.assertEqual([row['shortName'] for row in matrix['rows']], ['ARS', 'BHA', 'CHE', 'EVE'])
        arsenal = matrix['rows'][0]
        self.assertEqual(sorted(arsenal['fixtures']), [3, 5])
        cell = arsenal['fixtures'][3]
        self.assertEqual(cell['opponentShortName'], 'CHE')
        self.assertEqual(cell['location'], 'H')
        expected = self.result.probabilities.value(30, Venue.AWAY, Archetype.CENTER_BACK)
        self.assertEqual(cell['probabilities']['CB'], expected)

    def test_matrix_skips_finished(self):
        matrix = build_fixture_matrix(self.result.fixture_index, self.result.team_index,
                                      self.result.probabilities, [1, 2])
        self.assertEqual(matrix['gameweeks'], [])

    def test_outlook(self):
        outlooks = player_outlook(
            self.inputs.players, self.inputs.stats, self.result.fixture_index,
            self.result.team_index, self.result.probabilities, [1, 2, 3, 4],
            override_table=build_override_table(self.inputs.overrides),
        )
        by_id = {o.player_id: o for o in outlooks}
        # Goalkeepers are left out
        self.assertNotIn(32, by_id)

        saliba = by_id[11]
        self.assertEqual(saliba.total_minutes, 180)
        self.assertEqual(saliba.total_hits, 1)
        self.assertAlmostEqual(saliba.hits_per_90, 0.5)
        # Arsenal blank in GW4
        self.assertEqual(saliba.probability_by_period[4], 0.0)
        self.assertIsNone(saliba.periods[3].opponent)

        self.assertEqual(by_id[21].archetype, Archetype.LEFT_BACK)
        rates = [o.hits_per_90 for o in outlooks]
        self.assertEqual(rates, sorted(rates, reverse=True))

    def test_outlook_filters(self):
        outlooks = player_outlook(
            self.inputs.players, self.inputs.stats, self.result.fixture_index,
            self.result.team_index, self.result.probabilities, [1, 2],
            min_minutes=100, group_filter=PositionGroup.ATTACK, sort_by=SORT_MAX,
        )
        self.assertEqual([o.player_id for o in outlooks], [31])

    def test_outlook_duplicate_stat_rows_independent_of_order(self):
        rows = [
            {'element': 11, 'gw': 1, 'minutes': 90, 'tackles': 2},
            {'element': 11, 'gw': 1, 'minutes': 90, 'tackles': 12},
        ]
        totals = []
        for ordered in (rows, list(reversed(rows))):
            stats = [s for s in self.inputs.stats if s['element'] != 11] + ordered
            outlooks = player_outlook(
                self.inputs.players, stats, self.result.fixture_index,
                self.result.team_index, self.result.probabilities, [1],
            )
            saliba = next(o for o in outlooks if o.player_id == 11)
            totals.append((saliba.total_minutes, saliba.total_hits))
        self.assertEqual(totals, [(90, 1), (90, 1)])


if __name__ == '__main__':
    unittest.main()
