"""Central Configuration Module

Provides a single source of truth for all DEFCON engine configuration values.
Loads settings from config.yml and exposes typed constants for use throughout
the codebase.

Usage:
    from utils.config import DEFCON_THRESHOLD_DEF, PRIOR_STRENGTH
    from utils.config import FREE_HIT, WILDCARD, BENCH_BOOST

Constants are bound when a module imports them, so default arguments and
dataclass field defaults keep the values from import time. run_engine(),
DefconThresholds.from_config() and ChipOptimizer read the module at call
time and pick up reload_config().
"""

from pathlib import Path
from typing import Dict, Any
import logging

import yaml

logger = logging.getLogger(__name__)


def _get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


def load_config() -> Dict[str, Any]:
    """Load configuration from config.yml.

    Returns:
        Dict with config values or empty dict if not found or unreadable.
    """
    config_path = _get_project_root() / 'config.yml'

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read {config_path}: {e}")
            return {}
    return {}


# Load config at module level (singleton pattern)
_CONFIG = load_config()


# =============================================================================
# DEFCON EVENT MODEL
# =============================================================================

_DEFCON_CONFIG = _CONFIG.get('defcon', {})

DEFCON: Dict[str, Any] = {
    'threshold_def': _DEFCON_CONFIG.get('threshold_def', 10),
    'threshold_mid_fwd': _DEFCON_CONFIG.get('threshold_mid_fwd', 12),
    'attack_includes_clearances': _DEFCON_CONFIG.get('attack_includes_clearances', False),
    'prior_strength': _DEFCON_CONFIG.get('prior_strength', 6),
    'default_probability': _DEFCON_CONFIG.get('default_probability', 0.28),
}

# Convenience accessors
DEFCON_THRESHOLD_DEF: float = DEFCON['threshold_def']
DEFCON_THRESHOLD_MID_FWD: float = DEFCON['threshold_mid_fwd']
ATTACK_INCLUDES_CLEARANCES: bool = DEFCON['attack_includes_clearances']
PRIOR_STRENGTH: float = DEFCON['prior_strength']  # virtual games
DEFAULT_DEFCON_PROB: float = DEFCON['default_probability']


# =============================================================================
# FIXTURE PLANNER
# =============================================================================

_PLANNER_CONFIG = _CONFIG.get('planner', {})

PLANNER: Dict[str, Any] = {
    'analysis_weeks': _PLANNER_CONFIG.get('analysis_weeks', 10),
    'max_gameweek': _PLANNER_CONFIG.get('max_gameweek', 38),
    'form_window': _PLANNER_CONFIG.get('form_window', 0),
}

# Convenience accessors
ANALYSIS_WEEKS: int = PLANNER['analysis_weeks']
MAX_GAMEWEEK: int = PLANNER['max_gameweek']
FORM_WINDOW: int = PLANNER['form_window']

# Neutral rating when an opponent has no goals history
DEFAULT_DIFFICULTY: float = 3.0


# =============================================================================
# CHIP STRATEGY
# =============================================================================

_FREE_HIT_CONFIG = _PLANNER_CONFIG.get('free_hit', {})

FREE_HIT: Dict[str, Any] = {
    'easy_fdr': _FREE_HIT_CONFIG.get('easy_fdr', 2.5),
    'full_confidence_count': _FREE_HIT_CONFIG.get('full_confidence_count', 8),
}

_WILDCARD_CONFIG = _PLANNER_CONFIG.get('wildcard', {})

WILDCARD: Dict[str, Any] = {
    'good_run_fdr': _WILDCARD_CONFIG.get('good_run_fdr', 2.8),
    'lookahead': _WILDCARD_CONFIG.get('lookahead', 4),
    'full_confidence_count': _WILDCARD_CONFIG.get('full_confidence_count', 12),
}

_BENCH_BOOST_CONFIG = _PLANNER_CONFIG.get('bench_boost', {})

BENCH_BOOST: Dict[str, Any] = {
    'good_fdr': _BENCH_BOOST_CONFIG.get('good_fdr', 3.0),
}


# =============================================================================
# DATA SETTINGS
# =============================================================================

_DATA_CONFIG = _CONFIG.get('data', {})

DATA: Dict[str, Any] = {
    'data_dir': _DATA_CONFIG.get('data_dir', 'data/2025-26'),
    'min_minutes': _DATA_CONFIG.get('min_minutes', 0),
}

# Convenience accessors
DATA_DIR: str = DATA['data_dir']
DATA_MIN_MINUTES: int = DATA['min_minutes']


# =============================================================================
# OUTPUT OPTIONS
# =============================================================================

_OUTPUT_CONFIG = _CONFIG.get('output', {})

OUTPUT: Dict[str, Any] = {
    'verbose': _OUTPUT_CONFIG.get('verbose', False),
}

VERBOSE: bool = OUTPUT['verbose']


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_data_path(subpath: str = '') -> Path:
    """Get path to the configured data directory.

    Args:
        subpath: Optional file within the data directory.

    Returns:
        Path to {project_root}/{DATA_DIR}/{subpath}, or DATA_DIR itself
        when it is absolute.
    """
    base = Path(DATA_DIR)
    if not base.is_absolute():
        base = _get_project_root() / base
    if subpath:
        return base / subpath
    return base


def reload_config() -> None:
    """Reload configuration from disk.

    Updates all module-level constants. Callers that bound a constant as a
    default argument keep the value they imported.
    """
    global _CONFIG, DEFCON, DEFCON_THRESHOLD_DEF, DEFCON_THRESHOLD_MID_FWD
    global ATTACK_INCLUDES_CLEARANCES, PRIOR_STRENGTH, DEFAULT_DEFCON_PROB
    global PLANNER, ANALYSIS_WEEKS, MAX_GAMEWEEK, FORM_WINDOW
    global FREE_HIT, WILDCARD, BENCH_BOOST
    global DATA, DATA_DIR, DATA_MIN_MINUTES
    global OUTPUT, VERBOSE

    _CONFIG = load_config()

    _dc = _CONFIG.get('defcon', {})
    DEFCON = {
        'threshold_def': _dc.get('threshold_def', 10),
        'threshold_mid_fwd': _dc.get('threshold_mid_fwd', 12),
        'attack_includes_clearances': _dc.get('attack_includes_clearances', False),
        'prior_strength': _dc.get('prior_strength', 6),
        'default_probability': _dc.get('default_probability', 0.28),
    }
    DEFCON_THRESHOLD_DEF = DEFCON['threshold_def']
    DEFCON_THRESHOLD_MID_FWD = DEFCON['threshold_mid_fwd']
    ATTACK_INCLUDES_CLEARANCES = DEFCON['attack_includes_clearances']
    PRIOR_STRENGTH = DEFCON['prior_strength']
    DEFAULT_DEFCON_PROB = DEFCON['default_probability']

    _pl = _CONFIG.get('planner', {})
    PLANNER = {
        'analysis_weeks': _pl.get('analysis_weeks', 10),
        'max_gameweek': _pl.get('max_gameweek', 38),
        'form_window': _pl.get('form_window', 0),
    }
    ANALYSIS_WEEKS = PLANNER['analysis_weeks']
    MAX_GAMEWEEK = PLANNER['max_gameweek']
    FORM_WINDOW = PLANNER['form_window']

    _fh = _pl.get('free_hit', {})
    FREE_HIT = {'easy_fdr': _fh.get('easy_fdr', 2.5), 'full_confidence_count': _fh.get('full_confidence_count', 8)}

    _wc = _pl.get('wildcard', {})
    WILDCARD = {
        'good_run_fdr': _wc.get('good_run_fdr', 2.8),
        'lookahead': _wc.get('lookahead', 4),
        'full_confidence_count': _wc.get('full_confidence_count', 12),
    }

    _bb = _pl.get('bench_boost', {})
    BENCH_BOOST = {'good_fdr': _bb.get('good_fdr', 3.0)}

    _data = _CONFIG.get('data', {})
    DATA = {'data_dir': _data.get('data_dir', 'data/2025-26'), 'min_minutes': _data.get('min_minutes', 0)}
    DATA_DIR = DATA['data_dir']
    DATA_MIN_MINUTES = DATA['min_minutes']

    _out = _CONFIG.get('output', {})
    OUTPUT = {'verbose': _out.get('verbose', False)}
    VERBOSE = OUTPUT['verbose']
