"""Squad coverage against the fixture difficulty table.

Answers "which teams do I own players from" and "which teams with good
fixtures am I missing".
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Set

from defcon.fixtures import TeamIndex, code_sort_key
from defcon.state import TeamCode
from planner.difficulty import DifficultyTable
from utils.config import DEFAULT_DIFFICULTY
from utils.fields import get_field, normalize_id

logger = logging.getLogger(__name__)

WEAK_COVERAGE_FDR = 3.0
WEAK_COVERAGE_MIN_GOOD_FIXTURES = 2
WEAK_COVERAGE_LIMIT = 8


def owned_team_codes(player_ids: Iterable[Any],
                     players_by_id: Mapping,
                     team_index: TeamIndex) -> Set[TeamCode]:
    """Teams of the given players; unknown players are ignored."""
    teams = set()
    for player_id in player_ids or ():
        player = players_by_id.get(normalize_id(player_id))
        if player is None:
            continue
        team = team_index.resolve(get_field(player, 'player_team'))
        if team is not None:
            teams.add(team)
    return teams


def analyze_team_coverage(player_ids: Iterable[Any],
                          players_by_id: Mapping,
                          team_index: TeamIndex,
                          fixture_difficulty: DifficultyTable) -> Dict[TeamCode, Dict[str, Any]]:
    """Players owned per team, with that team's average difficulty.

    Returns:
        Team code -> {'playerCount', 'players': [{'id', 'name'}], 'avgDifficulty'}
    """
    coverage: Dict[TeamCode, Dict[str, Any]] = {}

    for player_id in player_ids or ():
        pid = normalize_id(player_id)
        player = players_by_id.get(pid)
        if player is None:
            continue
        team = team_index.resolve(get_field(player, 'player_team'))
        if team is None:
            continue

        if team not in coverage:
            team_difficulty = fixture_difficulty.get(team)
            coverage[team] = {
                'playerCount': 0,
                'players': [],
                'avgDifficulty': team_difficulty.avg_difficulty if team_difficulty else DEFAULT_DIFFICULTY,
            }
        coverage[team]['playerCount'] += 1
        coverage[team]['players'].append({
            'id': pid,
            'name': get_field(player, 'player_name') or 'Unknown',
        })

    return coverage


def find_weak_coverage(fixture_difficulty: DifficultyTable,
                       owned_teams: Iterable[TeamCode],
                       limit: int = WEAK_COVERAGE_LIMIT) -> List[Dict[str, Any]]:
    """Teams with a good run of fixtures that the squad has no players from.

    A team qualifies with average difficulty below 3 and at least two
    individual fixtures below 3. Easiest first.
    """
    owned = set(owned_teams or ())
    weaknesses = []

    for team in sorted(fixture_difficulty, key=code_sort_key):
        if team in owned:
            continue
        data = fixture_difficulty[team]
        if data.avg_difficulty >= WEAK_COVERAGE_FDR:
            continue

        good_periods = sorted(gw for gw, entry in data.fixtures.items()
                              if entry.difficulty < WEAK_COVERAGE_FDR)
        if len(good_periods) >= WEAK_COVERAGE_MIN_GOOD_FIXTURES:
            weaknesses.append({
                'team': team,
                'avgDifficulty': data.avg_difficulty,
                'gameweeks': good_periods,
                'reason': f"{len(good_periods)} easy fixtures in your analysis window",
            })

    weaknesses.sort(key=lambda w: w['avgDifficulty'])
    return weaknesses[:limit]
