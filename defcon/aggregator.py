"""Hit/trial aggregation per opponent, venue and archetype.

Each played stat record is joined player -> archetype -> team -> fixture to
find the opponent it was recorded against. The record then counts as one
trial (and possibly one hit) in four buckets of that opponent:

    (venue, archetype), (overall, archetype),
    (venue, position group), (overall, position group)

Venue is the opponent's venue: a home player's record lands in the
opponent's AWAY bucket. League totals sum every opponent's buckets.
Records that cannot be joined are skipped and counted, never raised.
"""

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from defcon.archetypes import OverrideTable, classify, position_group
from defcon.event_detector import DEFAULT_THRESHOLDS, action_score, threshold_for
from defcon.fixtures import FixtureIndex, TeamIndex, code_sort_key
from defcon.state import (
    Archetype,
    Bucket,
    BucketKey,
    DefconThresholds,
    EMPTY_BUCKET,
    EventStatRecord,
    TeamCode,
    Venue,
)
from utils.fields import Record, get_field

logger = logging.getLogger(__name__)

BucketTable = Dict[Venue, Dict[BucketKey, Bucket]]

# Reasons a record was left out of aggregation
SKIP_DID_NOT_PLAY = 'did_not_play'
SKIP_UNKNOWN_PLAYER = 'unknown_player'
SKIP_UNCLASSIFIED = 'unclassified'
SKIP_GOALKEEPER = 'goalkeeper'
SKIP_MISSING_PERIOD = 'missing_period'
SKIP_UNMAPPED_TEAM = 'unmapped_team'
SKIP_NO_FIXTURE = 'no_fixture'
SKIP_INVALID_SCORE = 'invalid_score'


@dataclass(frozen=True)
class Aggregation:
    """Frozen result of an aggregation pass.

    Attributes:
        buckets: opponent code -> venue -> archetype/group -> Bucket
        league: venue -> archetype/group -> Bucket summed over all opponents
        skipped: Number of records skipped, by reason
    """

    buckets: Dict[TeamCode, BucketTable] = field(default_factory=dict)
    league: BucketTable = field(default_factory=dict)
    skipped: Dict[str, int] = field(default_factory=dict)

    def bucket(self, opponent: TeamCode, venue: Venue, key: BucketKey) -> Bucket:
        return self.buckets.get(opponent, {}).get(venue, {}).get(key, EMPTY_BUCKET)

    def league_bucket(self, venue: Venue, key: BucketKey) -> Bucket:
        return self.league.get(venue, {}).get(key, EMPTY_BUCKET)

    def opponents(self) -> List[TeamCode]:
        return sorted(self.buckets, key=code_sort_key)

    @property
    def total_trials(self) -> int:
        """Number of aggregated player-matches."""
        overall = self.league.get(Venue.OVERALL, {})
        return sum(bucket.trials for key, bucket in overall.items() if isinstance(key, Archetype))


def _player_team(player: Record, team_index: TeamIndex) -> Optional[TeamCode]:
    return team_index.resolve(get_field(player, 'player_team'))


def aggregate(stat_records: Iterable[Record],
              players_by_id: Mapping,
              fixture_index: FixtureIndex,
              team_index: TeamIndex,
              override_table: Optional[OverrideTable] = None,
              thresholds: DefconThresholds = DEFAULT_THRESHOLDS) -> Aggregation:
    """Count DEFCON hits and trials per opponent, venue and archetype.

    Args:
        stat_records: Raw per-player per-gameweek stat rows.
        players_by_id: Normalised player id -> player row.
        fixture_index: Per-team fixture lookup.
        team_index: Team lookup used to resolve the player's team.
        override_table: Player id -> manual position override.
        thresholds: Hit thresholds.

    Returns:
        Aggregation with per-opponent buckets, league totals and skip counts.
    """
    counts = defaultdict(lambda: [0, 0])  # (opponent, venue, key) -> [hits, trials]
    skipped: Counter = Counter()
    archetype_cache: Dict[object, Optional[Archetype]] = {}

    for row in stat_records or ():
        stats = EventStatRecord.from_record(row)
        if not stats.played:
            skipped[SKIP_DID_NOT_PLAY] += 1
            continue

        player = players_by_id.get(stats.player_id) if stats.player_id is not None else None
        if player is None:
            skipped[SKIP_UNKNOWN_PLAYER] += 1
            continue

        if stats.player_id not in archetype_cache:
            archetype_cache[stats.player_id] = classify(player, override_table)
        archetype = archetype_cache[stats.player_id]
        if archetype is None:
            skipped[SKIP_UNCLASSIFIED] += 1
            continue
        if archetype == Archetype.GOALKEEPER:
            skipped[SKIP_GOALKEEPER] += 1
            continue

        if stats.period is None:
            skipped[SKIP_MISSING_PERIOD] += 1
            continue

        team = _player_team(player, team_index)
        if team is None:
            skipped[SKIP_UNMAPPED_TEAM] += 1
            continue

        fixture = fixture_index.get(team, stats.period)
        if fixture is None:
            skipped[SKIP_NO_FIXTURE] += 1
            continue

        score = action_score(stats, archetype, thresholds)
        if math.isnan(score):
            skipped[SKIP_INVALID_SCORE] += 1
            continue
        hit = score >= threshold_for(archetype, thresholds)

        opponent = fixture.opponent
        group = position_group(archetype)
        for venue in (fixture.opponent_venue, Venue.OVERALL):
            for key in (archetype, group):
                counter = counts[(opponent, venue, key)]
                counter[1] += 1
                if hit:
                    counter[0] += 1

    buckets: Dict[TeamCode, BucketTable] = {}
    league_counts = defaultdict(lambda: [0, 0])
    for (opponent, venue, key), (hits, trials) in counts.items():
        buckets.setdefault(opponent, {}).setdefault(venue, {})[key] = Bucket(hits, trials)
        league_counter = league_counts[(venue, key)]
        league_counter[0] += hits
        league_counter[1] += trials

    league: BucketTable = {}
    for (venue, key), (hits, trials) in league_counts.items():
        league.setdefault(venue, {})[key] = Bucket(hits, trials)

    if skipped:
        logger.debug(f"Aggregation skipped records: {dict(skipped)}")
    logger.debug(f"Aggregated DEFCON trials against {len(buckets)} opponents")

    return Aggregation(buckets=buckets, league=league, skipped=dict(skipped))
