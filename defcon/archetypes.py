"""Archetype classification for players.

Resolution order, first match wins:
1. Manual override table keyed by player id
2. Detailed position / role token (LWB, CDM, ST, ...)
3. Coarse position string or FPL element type

Generic defenders with no detailed role are treated as centre-backs.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional

from defcon.state import (
    Archetype,
    PositionGroup,
    DEFENDER_ARCHETYPES,
    PlayerId,
)
from utils.fields import Record, get_field, normalize_id, to_number

logger = logging.getLogger(__name__)

OverrideTable = Mapping[PlayerId, str]

# Stored override value -> archetype
OVERRIDE_MAP: Dict[str, Archetype] = {
    'CB': Archetype.CENTER_BACK,
    'LB': Archetype.LEFT_BACK,
    'RB': Archetype.RIGHT_BACK,
    'CDM': Archetype.MIDFIELDER,
    'MID': Archetype.MIDFIELDER,
    'FWD': Archetype.FORWARD,
}

# Detailed position / role token -> archetype
DETAILED_MAP: Dict[str, Archetype] = {
    'CB': Archetype.CENTER_BACK,
    'LB': Archetype.LEFT_BACK,
    'LWB': Archetype.LEFT_BACK,
    'RB': Archetype.RIGHT_BACK,
    'RWB': Archetype.RIGHT_BACK,
    'CDM': Archetype.MIDFIELDER,
    'CM': Archetype.MIDFIELDER,
    'CAM': Archetype.MIDFIELDER,
    'LM': Archetype.MIDFIELDER,
    'RM': Archetype.MIDFIELDER,
    'LW': Archetype.MIDFIELDER,
    'RW': Archetype.MIDFIELDER,
    'ST': Archetype.FORWARD,
    'CF': Archetype.FORWARD,
    'GK': Archetype.GOALKEEPER,
}

# Coarse position prefix -> archetype
POSITION_PREFIXES = (
    ('goal', Archetype.GOALKEEPER),
    ('def', Archetype.CENTER_BACK),
    ('mid', Archetype.MIDFIELDER),
    ('for', Archetype.FORWARD),
)

# Short position codes that the prefixes miss
POSITION_CODES: Dict[str, Archetype] = {
    'GK': Archetype.GOALKEEPER,
    'GKP': Archetype.GOALKEEPER,
    'D': Archetype.CENTER_BACK,
    'M': Archetype.MIDFIELDER,
    'F': Archetype.FORWARD,
    'FW': Archetype.FORWARD,
    'FWD': Archetype.FORWARD,
    'ATT': Archetype.FORWARD,
}

# FPL element_type -> archetype
ELEMENT_TYPE_MAP: Dict[int, Archetype] = {
    1: Archetype.GOALKEEPER,
    2: Archetype.CENTER_BACK,
    3: Archetype.MIDFIELDER,
    4: Archetype.FORWARD,
}


def _normalize_token(value) -> str:
    if value is None:
        return ''
    return str(value).strip().upper()


def _from_override(player_id: Optional[PlayerId],
                   override_table: Optional[OverrideTable]) -> Optional[Archetype]:
    if player_id is None or not override_table:
        return None
    stored = override_table.get(player_id)
    if stored is None:
        return None
    return OVERRIDE_MAP.get(_normalize_token(stored))


def _from_detailed(participant: Record) -> Optional[Archetype]:
    token = _normalize_token(get_field(participant, 'detailed_position'))
    return DETAILED_MAP.get(token) if token else None


def _from_position(participant: Record) -> Optional[Archetype]:
    raw = get_field(participant, 'position')
    if raw is not None and not isinstance(raw, (int, float)):
        text = str(raw).strip().lower()
        for prefix, archetype in POSITION_PREFIXES:
            if text.startswith(prefix):
                return archetype
        code = POSITION_CODES.get(text.upper())
        if code is not None:
            return code

    element_type = get_field(participant, 'element_type')
    if element_type is None and isinstance(raw, (int, float)):
        element_type = raw
    if element_type is not None:
        return ELEMENT_TYPE_MAP.get(int(to_number(element_type)))
    return None


def classify(participant: Optional[Record],
             override_table: Optional[OverrideTable] = None) -> Optional[Archetype]:
    """Map a player record to an archetype.

    Args:
        participant: Player row (any supported schema).
        override_table: Player id -> stored position override.

    Returns:
        The archetype, or None when nothing matches. Callers skip None.
    """
    if not participant:
        return None

    player_id = normalize_id(get_field(participant, 'player_id'))
    return (
        _from_override(player_id, override_table)
        or _from_detailed(participant)
        or _from_position(participant)
    )


def position_group(archetype: Optional[Archetype]) -> Optional[PositionGroup]:
    """Goalkeepers and defenders -> DEFENCE; midfielders and forwards -> ATTACK."""
    if archetype is None:
        return None
    if archetype == Archetype.GOALKEEPER or archetype in DEFENDER_ARCHETYPES:
        return PositionGroup.DEFENCE
    return PositionGroup.ATTACK


def build_override_table(rows: Iterable[Record]) -> Dict[PlayerId, str]:
    """Build the player id -> override position table from override rows.

    Rows without an id or a position are ignored. Conflicting rows for one
    player resolve to the alphabetically first position, independent of row
    order.
    """
    table: Dict[PlayerId, str] = {}
    for row in rows or ():
        player_id = normalize_id(get_field(row, 'override_player_id'))
        position = get_field(row, 'override_position')
        if player_id is None or position is None or not str(position).strip():
            continue
        position = str(position).strip()
        existing = table.get(player_id)
        if existing is not None and existing != position:
            logger.warning(f"Conflicting overrides for player {player_id}: {existing}, {position}")
            position = min(existing, position)
        table[player_id] = position

    logger.debug(f"Loaded {len(table)} position overrides")
    return table
