"""Goals-based fixture difficulty rating (FDR).

Replaces the static 1-5 FDR with a rating derived from the opponent's
scoring record at the venue it will play at::

    raw = (5 - opponent_goals_against) * 0.7 + opponent_goals_for * 0.3

clamped to [1, 5]. An opponent that concedes little is hard to score against;
one that scores a lot is a threat to defenders. Only unfinished fixtures
inside the requested window are rated.
"""

import logging
import math
from typing import Dict, Iterable, Optional

import numpy as np

from defcon.fixtures import FixtureIndex, GoalHistory, code_sort_key
from defcon.state import FixtureDifficultyEntry, TeamCode, TeamDifficulty
from utils.config import DEFAULT_DIFFICULTY, FORM_WINDOW

logger = logging.getLogger(__name__)

# Weight of the opponent's defensive record vs its attacking threat
DEFENCE_WEIGHT = 0.7
ATTACK_WEIGHT = 0.3

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 5.0

DifficultyTable = Dict[TeamCode, TeamDifficulty]


def difficulty(opponent_attack_rate: float, opponent_concede_rate: float) -> float:
    """Rate a fixture from the opponent's goals for/against per match.

    Args:
        opponent_attack_rate: Opponent goals scored per match.
        opponent_concede_rate: Opponent goals conceded per match.

    Returns:
        Difficulty in [1, 5]; neutral 3 when the inputs are not numbers.
    """
    raw = (5 - opponent_concede_rate) * DEFENCE_WEIGHT + opponent_attack_rate * ATTACK_WEIGHT
    if math.isnan(raw):
        return DEFAULT_DIFFICULTY
    return float(np.clip(raw, MIN_DIFFICULTY, MAX_DIFFICULTY))


def calculate_fixture_difficulty(fixture_index: FixtureIndex,
                                 goal_history: GoalHistory,
                                 start_period: int,
                                 end_period: int,
                                 form_window: int = FORM_WINDOW,
                                 teams: Optional[Iterable[TeamCode]] = None) -> DifficultyTable:
    """Difficulty of every unfinished fixture in [start_period, end_period].

    Args:
        fixture_index: Per-team fixture lookup.
        goal_history: Finished-match goals per team and venue.
        start_period: First gameweek of the window.
        end_period: Last gameweek of the window.
        form_window: Only use the opponent's last N completed gameweeks (0 = all).
        teams: Restrict to these teams (default: every indexed team).

    Returns:
        Team code -> TeamDifficulty. Teams without a rated fixture get an
        average of 3 and a fixture count of 0.
    """
    team_codes = list(teams) if teams is not None else fixture_index.teams()
    result: DifficultyTable = {}

    for team in sorted(team_codes, key=code_sort_key):
        team_fixtures = fixture_index.for_team(team)
        fixtures: Dict[int, FixtureDifficultyEntry] = {}

        for period in range(start_period, end_period + 1):
            fixture = team_fixtures.get(period)
            if fixture is None or fixture.finished:
                continue

            rates = goal_history.rates(fixture.opponent, fixture.opponent_venue, form_window)
            if rates is None:
                rating, goals_for, goals_against = DEFAULT_DIFFICULTY, 0.0, 0.0
            else:
                goals_for, goals_against = rates
                rating = difficulty(goals_for, goals_against)

            fixtures[period] = FixtureDifficultyEntry(
                opponent=fixture.opponent,
                venue=fixture.venue_label,
                difficulty=rating,
                opp_goals_for=goals_for,
                opp_goals_against=goals_against,
            )

        count = len(fixtures)
        avg = sum(e.difficulty for e in fixtures.values()) / count if count else DEFAULT_DIFFICULTY
        result[team] = TeamDifficulty(team=team, fixtures=fixtures, avg_difficulty=avg, fixture_count=count)

    logger.debug(f"Rated fixtures for {len(result)} teams, GW{start_period}-GW{end_period}")
    return result


def difficulty_table_to_dict(table: DifficultyTable) -> Dict:
    """``{team: {fixtures: {period: {...}}, avgDifficulty}}`` for callers."""
    return {team: table[team].to_dict() for team in sorted(table, key=code_sort_key)}
