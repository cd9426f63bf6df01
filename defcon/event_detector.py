"""DEFCON hit detection.

A player "hits" DEFCON in a match when their defensive contribution reaches
the threshold for their position group:

- Defenders (CBIT): clearances + blocks + interceptions + tackles >= 10
- Midfielders/forwards (CBIRT): interceptions + recoveries + tackles >= 12

Blocks only count for defenders. Some snapshots also credited clearances to
midfielders and forwards; that variant is available through
``DefconThresholds.attack_includes_clearances``.
"""

import math
from typing import Mapping, Optional, Union

from defcon.archetypes import position_group
from defcon.state import Archetype, DefconThresholds, EventStatRecord, PositionGroup

DEFAULT_THRESHOLDS = DefconThresholds()

StatInput = Union[EventStatRecord, Mapping]


def _as_stat_record(stat_record: StatInput) -> EventStatRecord:
    if isinstance(stat_record, EventStatRecord):
        return stat_record
    return EventStatRecord.from_record(stat_record)


def action_score(stat_record: StatInput, archetype: Optional[Archetype],
                 thresholds: DefconThresholds = DEFAULT_THRESHOLDS) -> float:
    """Weighted defensive action count for the player's group.

    Goalkeepers (and unclassified players) score 0: they are never rated
    for this event and must be filtered out before aggregation.
    """
    stats = _as_stat_record(stat_record)
    if archetype is None or archetype == Archetype.GOALKEEPER:
        return 0.0

    group = position_group(archetype)
    if group == PositionGroup.DEFENCE:
        return stats.interceptions + stats.clearances + stats.blocks + stats.tackles

    score = stats.interceptions + stats.recoveries + stats.tackles
    if thresholds.attack_includes_clearances:
        score += stats.clearances
    return score


def threshold_for(archetype: Optional[Archetype],
                  thresholds: DefconThresholds = DEFAULT_THRESHOLDS) -> float:
    if position_group(archetype) == PositionGroup.DEFENCE:
        return thresholds.defence
    return thresholds.attack


def is_hit(stat_record: StatInput, archetype: Optional[Archetype],
           thresholds: DefconThresholds = DEFAULT_THRESHOLDS) -> bool:
    """Whether the record reaches the DEFCON threshold.

    Did-not-play records, goalkeepers and NaN scores are never hits.
    """
    stats = _as_stat_record(stat_record)
    if not stats.played or archetype is None or archetype == Archetype.GOALKEEPER:
        return False

    score = action_score(stats, archetype, thresholds)
    if math.isnan(score):
        return False
    return score >= threshold_for(archetype, thresholds)
