"""Tolerant field access for tabular records.

Upstream snapshots name the same concept differently (``team_h`` vs
``home_team`` vs ``home_team_id``). Every logical field is declared once here
as an ordered tuple of accepted column names; reads go through
:func:`get_field`, which returns the first present, non-missing value.
"""

import math
from typing import Any, Dict, Mapping, Optional, Tuple, Union

Record = Mapping[str, Any]

TRUTHY_STRINGS = frozenset({'true', 'yes', '1', 'y', 't'})


# Logical field -> accepted column names, first match wins
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    # Participants
    'player_id': ('player_id', 'id'),
    'player_name': ('web_name', 'name', 'player_name', 'full_name'),
    'player_team': ('team', 'team_id', 'teamid', 'team_code'),
    'position': ('position', 'pos', 'singular_name_short'),
    'detailed_position': ('detailed_position', 'role'),
    'element_type': ('element_type',),

    # Teams
    'team_code': ('code', 'team_code'),
    'team_id': ('id', 'team_id'),
    'team_name': ('name', 'team_name'),
    'team_short_name': ('short_name', 'short'),

    # Fixtures
    'home_team': ('home_team', 'team_h', 'home_team_id'),
    'away_team': ('away_team', 'team_a', 'away_team_id'),
    'finished': ('finished', 'is_finished', 'completed'),
    'home_score': ('team_h_score', 'home_score', 'home_goals'),
    'away_score': ('team_a_score', 'away_score', 'away_goals'),

    # Per-match stat records
    'stat_player_id': ('player_id', 'element', 'id'),
    'period': ('gw', 'gameweek', 'event', 'round'),
    'minutes': ('minutes', 'minutes_played', 'minutes_x'),
    'interceptions': ('interceptions',),
    'clearances': ('clearances', 'clearances_blocks_interceptions'),
    'blocks': ('blocks',),
    'tackles': ('tackles', 'tackles_won'),
    'recoveries': ('recoveries', 'ball_recoveries'),
    'goals': ('goals_scored', 'goals'),
    'total_points': ('total_points', 'points'),

    # Position overrides
    'override_player_id': ('player_id', 'id'),
    'override_position': ('actual_position', 'position'),
}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def get_value(record: Record, *keys: str) -> Any:
    """Return the first present, non-missing value among ``keys``.

    ``None`` and float NaN (an empty cell in a pandas-loaded table) count as
    missing so the next alias is tried.
    """
    if record is None:
        return None
    for key in keys:
        value = record.get(key)
        if not _is_missing(value):
            return value
    return None


def get_field(record: Record, field: str) -> Any:
    """Read a logical field from a record using its declared aliases.

    Args:
        record: A row-like mapping.
        field: Logical field name, a key of FIELD_ALIASES.

    Returns:
        The first matching value, or None.
    """
    return get_value(record, *FIELD_ALIASES[field])


def to_number(value: Any) -> float:
    """Coerce a raw cell to a float; malformed or missing values become 0."""
    if _is_missing(value):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def to_period(value: Any) -> Optional[int]:
    """Coerce a gameweek cell to a positive int, or None."""
    number = to_number(value)
    if number <= 0 or math.isinf(number):
        return None
    return int(number)


def to_bool(value: Any) -> bool:
    """Accept true/"true"/1/"yes" style truthy values."""
    if _is_missing(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in TRUTHY_STRINGS


def normalize_id(value: Any) -> Optional[Union[int, str]]:
    """Normalise ids so 7, "7" and "7.0" compare equal.

    Numeric ids become ints; anything else is returned as a stripped string.
    """
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isinf(value):
            return None
        return int(value) if value.is_integer() else str(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return text
    if number.is_integer():
        return int(number)
    return text
