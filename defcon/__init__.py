"""DEFCON Probability Engine.

Estimates how likely a player of a given archetype is to hit the FPL
defensive-contribution (DEFCON) bonus against each opponent.

Main components:
- classify / position_group: Player archetype resolution
- build_fixture_index: Team -> gameweek fixture lookup
- is_hit / action_score: DEFCON event detection
- aggregate: Hit/trial counting per opponent, venue and archetype
- estimate_probabilities: Beta-Binomial smoothing with a fallback chain

The full pass lives in defcon.pipeline (run_engine), which also pulls in the
planner package.
"""

from defcon.state import (
    Archetype,
    PositionGroup,
    Venue,
    ChipType,
    Bucket,
    SmoothedProbability,
    DefconThresholds,
    OUTFIELD_ARCHETYPES,
)
from defcon.archetypes import classify, position_group, build_override_table
from defcon.fixtures import (
    build_team_index,
    build_fixture_index,
    build_goal_history,
    build_period_list,
    parse_excluded_periods,
)
from defcon.event_detector import action_score, is_hit
from defcon.aggregator import Aggregation, aggregate
from defcon.estimator import ProbabilityTable, estimate, estimate_probabilities, league_baselines
from defcon.projections import build_fixture_matrix, player_outlook

__all__ = [
    # State classes
    'Archetype',
    'PositionGroup',
    'Venue',
    'ChipType',
    'Bucket',
    'SmoothedProbability',
    'DefconThresholds',
    'OUTFIELD_ARCHETYPES',
    # Classification and indexing
    'classify',
    'position_group',
    'build_override_table',
    'build_team_index',
    'build_fixture_index',
    'build_goal_history',
    'build_period_list',
    'parse_excluded_periods',
    # Event model
    'action_score',
    'is_hit',
    'Aggregation',
    'aggregate',
    'ProbabilityTable',
    'estimate',
    'estimate_probabilities',
    'league_baselines',
    # Projections
    'build_fixture_matrix',
    'player_outlook',
]
