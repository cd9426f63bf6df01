"""Forward-looking views built on the probability table.

- Fixture matrix: for each team and upcoming gameweek, the chance that its
  players hit DEFCON against that opponent.
- Player outlook: the same per player, alongside realised minutes and hits.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from defcon.archetypes import OverrideTable, classify, position_group
from defcon.estimator import PROBABILITY_KEYS, ProbabilityTable
from defcon.event_detector import DEFAULT_THRESHOLDS, is_hit
from defcon.fixtures import FixtureIndex, TeamIndex, code_sort_key, index_players
from defcon.state import (
    Archetype,
    BucketKey,
    DefconThresholds,
    EventStatRecord,
    PositionGroup,
    TeamCode,
)
from utils.fields import Record, get_field

logger = logging.getLogger(__name__)

SORT_HITS_PER_90 = 'hits_per_90'
SORT_MAX = 'max'
SORT_AVG = 'avg'


# =============================================================================
# FIXTURE MATRIX
# =============================================================================

def build_fixture_matrix(fixture_index: FixtureIndex,
                         team_index: TeamIndex,
                         table: ProbabilityTable,
                         periods: Sequence[int],
                         keys: Sequence[BucketKey] = PROBABILITY_KEYS) -> Dict[str, Any]:
    """Rows of teams, columns of gameweeks, cells of DEFCON probabilities.

    Only unfinished fixtures are included. Each cell prices the opponent at
    the opponent's venue.

    Returns:
        {'gameweeks': [...], 'rows': [{'team', 'name', 'shortName', 'fixtures': {gw: cell}}]}
    """
    period_set = set(periods)
    rows = []
    used_periods = set()

    for team in team_index.codes():
        record = team_index.by_code[team]
        cells = {}
        for period, fixture in sorted(fixture_index.for_team(team).items()):
            if period not in period_set or fixture.finished:
                continue
            cells[period] = {
                'gameweek': period,
                'opponent': fixture.opponent,
                'opponentShortName': team_index.short_name(fixture.opponent),
                'location': fixture.venue_label,
                'probabilities': {
                    key.value: table.value(fixture.opponent, fixture.opponent_venue, key)
                    for key in keys
                },
            }
            used_periods.add(period)
        rows.append({'team': team, 'name': record.name, 'shortName': record.short_name, 'fixtures': cells})

    rows.sort(key=lambda row: row['name'])
    return {'gameweeks': sorted(used_periods), 'rows': rows}


# =============================================================================
# PLAYER OUTLOOK
# =============================================================================

@dataclass(frozen=True)
class PeriodOutlook:
    """One gameweek of a player's outlook. ``opponent`` is None for a blank."""

    period: int
    opponent: Optional[TeamCode] = None
    venue: Optional[str] = None
    probability: float = 0.0
    minutes: float = 0.0
    hit: bool = False
    finished: bool = False


@dataclass(frozen=True)
class PlayerOutlook:
    player_id: Any
    name: str
    team: Optional[TeamCode]
    archetype: Archetype
    periods: Tuple[PeriodOutlook, ...] = ()
    total_minutes: float = 0.0
    total_hits: int = 0
    hits_per_90: float = 0.0
    max_probability: float = 0.0
    avg_probability: float = 0.0

    @property
    def probability_by_period(self) -> Dict[int, float]:
        return {p.period: p.probability for p in self.periods}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'playerId': self.player_id,
            'playerName': self.name,
            'team': self.team,
            'archetype': self.archetype.value,
            'totalMinutes': self.total_minutes,
            'totalDefconHits': self.total_hits,
            'defconPer90': self.hits_per_90,
            'maxVal': self.max_probability,
            'avgVal': self.avg_probability,
            'gwProbMap': self.probability_by_period,
        }


def _stats_rank(stats: EventStatRecord) -> Tuple[float, ...]:
    return (stats.minutes, stats.interceptions, stats.clearances, stats.blocks,
            stats.tackles, stats.recoveries, stats.goals)


def _index_stats(stat_records: Iterable[Record]) -> Dict[Tuple[Any, int], EventStatRecord]:
    """(player, gameweek) -> stat record.

    Duplicates keep the most minutes, then the larger action counts, so the
    winner does not depend on row order.
    """
    index: Dict[Tuple[Any, int], EventStatRecord] = {}
    for row in stat_records or ():
        stats = EventStatRecord.from_record(row)
        if stats.player_id is None or stats.period is None:
            continue
        key = (stats.player_id, stats.period)
        existing = index.get(key)
        if existing is None or _stats_rank(stats) > _stats_rank(existing):
            index[key] = stats
    return index


def player_outlook(players: Iterable[Record],
                   stat_records: Iterable[Record],
                   fixture_index: FixtureIndex,
                   team_index: TeamIndex,
                   table: ProbabilityTable,
                   periods: Sequence[int],
                   override_table: Optional[OverrideTable] = None,
                   min_minutes: float = 0,
                   group_filter: Optional[PositionGroup] = None,
                   team_filter: Optional[TeamCode] = None,
                   sort_by: str = SORT_HITS_PER_90,
                   thresholds: DefconThresholds = DEFAULT_THRESHOLDS) -> List[PlayerOutlook]:
    """Per-player DEFCON outlook over a list of gameweeks.

    Goalkeepers and unclassified players are left out. Players below
    ``min_minutes`` over the listed gameweeks are dropped.
    """
    stats_index = _index_stats(stat_records)
    outlooks = []

    for pid, player in index_players(players).items():
        archetype = classify(player, override_table)
        if archetype is None or archetype == Archetype.GOALKEEPER:
            continue
        if group_filter is not None and position_group(archetype) != group_filter:
            continue

        team = team_index.resolve(get_field(player, 'player_team'))
        if team_filter is not None and team != team_filter:
            continue

        period_rows = []
        total_minutes = 0.0
        total_hits = 0
        for period in periods:
            fixture = fixture_index.get(team, period) if team is not None else None
            if fixture is None:
                period_rows.append(PeriodOutlook(period=period))
                continue

            stats = stats_index.get((pid, period))
            minutes = stats.minutes if stats is not None else 0.0
            hit = stats is not None and is_hit(stats, archetype, thresholds)
            total_minutes += minutes
            total_hits += int(hit)
            period_rows.append(PeriodOutlook(
                period=period,
                opponent=fixture.opponent,
                venue=fixture.venue_label,
                probability=table.value(fixture.opponent, fixture.opponent_venue, archetype),
                minutes=minutes,
                hit=hit,
                finished=fixture.finished,
            ))

        if total_minutes < min_minutes:
            continue

        positive = [row.probability for row in period_rows if row.probability > 0]
        outlooks.append(PlayerOutlook(
            player_id=pid,
            name=str(get_field(player, 'player_name') or 'Unknown'),
            team=team,
            archetype=archetype,
            periods=tuple(period_rows),
            total_minutes=total_minutes,
            total_hits=total_hits,
            hits_per_90=(total_hits / total_minutes) * 90 if total_minutes > 0 else 0.0,
            max_probability=max(positive) if positive else 0.0,
            avg_probability=sum(positive) / len(positive) if positive else 0.0,
        ))

    sort_fields = {
        SORT_HITS_PER_90: lambda o: o.hits_per_90,
        SORT_MAX: lambda o: o.max_probability,
        SORT_AVG: lambda o: o.avg_probability,
    }
    metric = sort_fields.get(sort_by, sort_fields[SORT_HITS_PER_90])
    outlooks.sort(key=lambda o: (-metric(o), code_sort_key(o.player_id)))

    logger.debug(f"Built outlook for {len(outlooks)} players over {len(periods)} gameweeks")
    return outlooks
