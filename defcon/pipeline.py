"""DEFCON Engine Orchestrator

Runs one full pass from the raw input tables to chip recommendations:

1. Index teams, fixtures and players, build the override table
2. Aggregate DEFCON hits/trials per opponent, venue and archetype
3. Smooth every cell into a probability table
4. Rate upcoming fixtures from goals history
5. Score chip timing for the owned squad

Every stage is a pure function of its inputs; a pass never mutates the
inputs and rerunning it on the same tables gives the same result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from defcon.aggregator import Aggregation, aggregate
from defcon.archetypes import build_override_table
from defcon.estimator import ProbabilityTable, estimate_probabilities
from defcon.fixtures import (
    FixtureIndex,
    GoalHistory,
    TeamIndex,
    build_fixture_index,
    build_goal_history,
    build_period_list,
    build_team_index,
    code_sort_key,
    index_players,
)
from defcon.projections import build_fixture_matrix
from defcon.state import ChipRecommendation, ChipType, DefconThresholds, TeamCode
from planner.chip_optimizer import ChipOptimizer
from planner.coverage import find_weak_coverage, owned_team_codes
from planner.difficulty import DifficultyTable, calculate_fixture_difficulty
from utils import config
from utils.config import ANALYSIS_WEEKS, FORM_WINDOW, MAX_GAMEWEEK
from utils.fields import Record

logger = logging.getLogger(__name__)


@dataclass
class EngineInputs:
    """Raw tables for one pass, as lists of mapping records."""

    players: List[Record] = field(default_factory=list)
    teams: List[Record] = field(default_factory=list)
    stats: List[Record] = field(default_factory=list)
    fixtures: List[Record] = field(default_factory=list)
    overrides: List[Record] = field(default_factory=list)


@dataclass(frozen=True)
class EngineResult:
    """Everything one pass produces.

    Attributes:
        team_index: Canonical team lookup
        fixture_index: Team -> gameweek -> fixture
        goal_history: Goals for/against from finished fixtures
        aggregation: Hit/trial buckets and skip counts
        probabilities: Smoothed probability table
        start_period: First gameweek of the analysis window
        end_period: Last gameweek of the analysis window
        periods: Gameweeks in the window after exclusions
        fixture_difficulty: Team -> TeamDifficulty over the window
        owned_teams: Teams the squad owns players from
        recommendations: Chip -> ChipRecommendation
        weak_coverage: Non-owned teams with a good run
        fixture_matrix: Team x gameweek DEFCON probabilities
    """

    team_index: TeamIndex
    fixture_index: FixtureIndex
    goal_history: GoalHistory
    aggregation: Aggregation
    probabilities: ProbabilityTable
    start_period: int
    end_period: int
    periods: List[int]
    fixture_difficulty: DifficultyTable
    owned_teams: List[TeamCode]
    recommendations: Dict[ChipType, ChipRecommendation]
    weak_coverage: List[Dict[str, Any]]
    fixture_matrix: Dict[str, Any]


def resolve_window(fixture_index: FixtureIndex,
                   start_period: Optional[int] = None,
                   weeks: int = ANALYSIS_WEEKS,
                   max_period: int = MAX_GAMEWEEK):
    """Return (start, end) of the analysis window.

    The start defaults to the gameweek after the latest completed one. The
    end is capped at the last gameweek of the season.
    """
    if start_period is None:
        start_period = fixture_index.latest_completed_period + 1
    start_period = max(1, min(int(start_period), max_period))
    end_period = min(start_period + max(1, int(weeks)) - 1, max_period)
    return start_period, end_period


def run_engine(inputs: EngineInputs,
               owned_player_ids: Optional[Iterable[Any]] = None,
               owned_teams: Optional[Iterable[Any]] = None,
               start_period: Optional[int] = None,
               weeks: int = ANALYSIS_WEEKS,
               excluded: Sequence[int] = (),
               form_window: int = FORM_WINDOW,
               thresholds: Optional[DefconThresholds] = None,
               prior_strength: Optional[float] = None,
               default_probability: Optional[float] = None) -> EngineResult:
    """Run a full recomputation over the input tables.

    Args:
        inputs: Raw tables.
        owned_player_ids: Squad player ids; their teams count as owned.
        owned_teams: Extra owned team references (code or source id).
        start_period: First gameweek to plan for (default: next unplayed).
        weeks: Length of the analysis window.
        excluded: Gameweeks left out of the fixture matrix.
        form_window: Goals-history form window (0 = whole season).
        thresholds: DEFCON hit thresholds (default: current config).
        prior_strength: Beta prior weight in virtual games (default: current config).
        default_probability: Baseline when the league has no data (default: current config).

    Returns:
        EngineResult for the pass.
    """
    if thresholds is None:
        thresholds = DefconThresholds.from_config()
    if prior_strength is None:
        prior_strength = config.PRIOR_STRENGTH
    if default_probability is None:
        default_probability = config.DEFAULT_DEFCON_PROB

    team_index = build_team_index(inputs.teams)
    fixture_index = build_fixture_index(inputs.fixtures, team_index)
    players_by_id = index_players(inputs.players)
    override_table = build_override_table(inputs.overrides)
    logger.info(f"Indexed {len(team_index)} teams, {len(fixture_index.fixtures)} fixtures, "
                f"{len(players_by_id)} players")

    aggregation = aggregate(inputs.stats, players_by_id, fixture_index, team_index,
                            override_table, thresholds)
    logger.info(f"Aggregated {aggregation.total_trials} player-matches "
                f"({sum(aggregation.skipped.values())} records skipped)")

    probabilities = estimate_probabilities(
        aggregation,
        team_index,
        prior_strength=prior_strength,
        default_probability=default_probability,
    )

    start, end = resolve_window(fixture_index, start_period, weeks)
    periods = build_period_list(start, end, excluded)
    goal_history = build_goal_history(fixture_index)
    fixture_difficulty = calculate_fixture_difficulty(fixture_index, goal_history, start, end,
                                                      form_window)
    logger.info(f"Rated fixtures for GW{start}-GW{end}")

    owned = owned_team_codes(owned_player_ids, players_by_id, team_index)
    for ref in owned_teams or ():
        code = team_index.resolve(ref)
        if code is not None:
            owned.add(code)
        else:
            logger.debug(f"Ignoring unknown owned team {ref}")
    owned_sorted = sorted(owned, key=code_sort_key)

    optimizer = ChipOptimizer(fixture_difficulty, owned_sorted)
    recommendations = optimizer.recommend_chips(start, end)
    for chip, rec in recommendations.items():
        logger.info(f"{chip.value}: GW{rec.best_period} (confidence {rec.confidence:.0%})")

    return EngineResult(
        team_index=team_index,
        fixture_index=fixture_index,
        goal_history=goal_history,
        aggregation=aggregation,
        probabilities=probabilities,
        start_period=start,
        end_period=end,
        periods=periods,
        fixture_difficulty=fixture_difficulty,
        owned_teams=owned_sorted,
        recommendations=recommendations,
        weak_coverage=find_weak_coverage(fixture_difficulty, owned_sorted),
        fixture_matrix=build_fixture_matrix(fixture_index, team_index, probabilities, periods),
    )
