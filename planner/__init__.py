"""Fixture Planner Package.

Turns goals history into fixture difficulty and uses it to time chips.

Main components:
- calculate_fixture_difficulty: Goals-based FDR per team and gameweek
- ChipOptimizer: Free Hit, Wildcard and Bench Boost timing
- find_weak_coverage: Teams with good fixtures the squad does not own
"""

from planner.difficulty import calculate_fixture_difficulty, difficulty, difficulty_table_to_dict
from planner.chip_optimizer import ChipOptimizer
from planner.coverage import analyze_team_coverage, find_weak_coverage, owned_team_codes

__all__ = [
    'calculate_fixture_difficulty',
    'difficulty',
    'difficulty_table_to_dict',
    'ChipOptimizer',
    'analyze_team_coverage',
    'find_weak_coverage',
    'owned_team_codes',
]
