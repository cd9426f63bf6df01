"""Core data structures for the DEFCON probability engine.

Every object here is a value: built once per pass from the raw input tables,
never mutated afterwards. Recomputing from scratch is the only update path.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple, Union
from enum import Enum

from utils.fields import Record, get_field, normalize_id, to_number, to_period
from utils import config
from utils.config import (
    DEFCON_THRESHOLD_DEF,
    DEFCON_THRESHOLD_MID_FWD,
    ATTACK_INCLUDES_CLEARANCES,
)

TeamCode = Union[int, str]
PlayerId = Union[int, str]


class Archetype(str, Enum):
    """Tactical role of a player."""

    CENTER_BACK = "CB"
    LEFT_BACK = "LB"
    RIGHT_BACK = "RB"
    MIDFIELDER = "MID"
    FORWARD = "FWD"
    GOALKEEPER = "GKP"


class PositionGroup(str, Enum):
    """Coarse grouping used when archetype granularity is not wanted."""

    DEFENCE = "DEF_GKP"
    ATTACK = "MID_FWD"


class Venue(str, Enum):
    """Where the opponent played (or the venue-agnostic total)."""

    HOME = "home"
    AWAY = "away"
    OVERALL = "overall"


class ChipType(str, Enum):
    """Limited-use strategic actions scored by the planner."""

    FREE_HIT = "free_hit"
    WILDCARD = "wildcard"
    BENCH_BOOST = "bench_boost"


# Archetypes that are ever aggregated, in reporting order
OUTFIELD_ARCHETYPES: Tuple[Archetype, ...] = (
    Archetype.CENTER_BACK,
    Archetype.LEFT_BACK,
    Archetype.RIGHT_BACK,
    Archetype.MIDFIELDER,
    Archetype.FORWARD,
)

DEFENDER_ARCHETYPES = frozenset({
    Archetype.CENTER_BACK,
    Archetype.LEFT_BACK,
    Archetype.RIGHT_BACK,
})

BucketKey = Union[Archetype, PositionGroup]


@dataclass(frozen=True)
class DefconThresholds:
    """Hit thresholds for the defensive-contribution event.

    Attributes:
        defence: Minimum CBIT score for defenders
        attack: Minimum CBIRT score for midfielders and forwards
        attack_includes_clearances: Count clearances in the attacking score
    """

    defence: float = DEFCON_THRESHOLD_DEF
    attack: float = DEFCON_THRESHOLD_MID_FWD
    attack_includes_clearances: bool = ATTACK_INCLUDES_CLEARANCES

    @classmethod
    def from_config(cls) -> "DefconThresholds":
        """Thresholds from the current config, including after reload_config()."""
        return cls(
            defence=config.DEFCON_THRESHOLD_DEF,
            attack=config.DEFCON_THRESHOLD_MID_FWD,
            attack_includes_clearances=config.ATTACK_INCLUDES_CLEARANCES,
        )


@dataclass(frozen=True)
class TeamRecord:
    """A team, keyed everywhere by its canonical ``code``.

    Attributes:
        code: Canonical join key (source ``code`` column, or ``id`` when absent)
        team_id: Source id, which other tables may use instead of the code
        name: Display name
        short_name: Three-letter abbreviation
    """

    code: TeamCode
    team_id: Optional[TeamCode]
    name: str
    short_name: str

    @classmethod
    def from_record(cls, record: Record) -> Optional["TeamRecord"]:
        team_id = normalize_id(get_field(record, 'team_id'))
        code = normalize_id(get_field(record, 'team_code'))
        if code is None:
            code = team_id
        if code is None:
            return None
        name = get_field(record, 'team_name') or str(code)
        short_name = get_field(record, 'team_short_name') or str(name)[:3].upper()
        return cls(code=code, team_id=team_id, name=str(name), short_name=str(short_name))


@dataclass(frozen=True)
class PerTeamFixture:
    """One side's view of a fixture.

    Attributes:
        team: Team this view belongs to
        opponent: Opponent team code
        period: Gameweek number
        was_home: Whether ``team`` played at home
        finished: Whether the match is complete
        goals_for: Goals scored by ``team``
        goals_against: Goals conceded by ``team``
    """

    team: TeamCode
    opponent: TeamCode
    period: int
    was_home: bool
    finished: bool
    goals_for: int = 0
    goals_against: int = 0

    @property
    def opponent_venue(self) -> Venue:
        """Venue from the opponent's side of the fixture."""
        return Venue.AWAY if self.was_home else Venue.HOME

    @property
    def venue_label(self) -> str:
        return 'H' if self.was_home else 'A'


@dataclass(frozen=True)
class FixtureRecord:
    """A resolved fixture between two known teams."""

    home: TeamCode
    away: TeamCode
    period: int
    finished: bool
    home_score: int = 0
    away_score: int = 0

    def sides(self) -> Tuple[PerTeamFixture, PerTeamFixture]:
        """Return the (home, away) projections of this fixture."""
        return (
            PerTeamFixture(self.home, self.away, self.period, True, self.finished,
                           self.home_score, self.away_score),
            PerTeamFixture(self.away, self.home, self.period, False, self.finished,
                           self.away_score, self.home_score),
        )


@dataclass(frozen=True)
class EventStatRecord:
    """Counted actions for one player in one gameweek."""

    player_id: Optional[PlayerId]
    period: Optional[int]
    minutes: float = 0.0
    interceptions: float = 0.0
    clearances: float = 0.0
    blocks: float = 0.0
    tackles: float = 0.0
    recoveries: float = 0.0
    goals: float = 0.0

    @classmethod
    def from_record(cls, record: Record) -> "EventStatRecord":
        return cls(
            player_id=normalize_id(get_field(record, 'stat_player_id')),
            period=to_period(get_field(record, 'period')),
            minutes=to_number(get_field(record, 'minutes')),
            interceptions=to_number(get_field(record, 'interceptions')),
            clearances=to_number(get_field(record, 'clearances')),
            blocks=to_number(get_field(record, 'blocks')),
            tackles=to_number(get_field(record, 'tackles')),
            recoveries=to_number(get_field(record, 'recoveries')),
            goals=to_number(get_field(record, 'goals')),
        )

    @property
    def played(self) -> bool:
        return self.minutes > 0


@dataclass(frozen=True)
class Bucket:
    """Hit/trial counter for one (opponent, venue, archetype) key."""

    hits: int = 0
    trials: int = 0

    def __post_init__(self):
        if self.hits < 0 or self.trials < 0 or self.hits > self.trials:
            raise ValueError(f"Invalid bucket: hits={self.hits}, trials={self.trials}")

    @property
    def rate(self) -> Optional[float]:
        """Raw hit rate, or None when there are no trials."""
        if self.trials == 0:
            return None
        return self.hits / self.trials

    def merged(self, other: "Bucket") -> "Bucket":
        return Bucket(self.hits + other.hits, self.trials + other.trials)


EMPTY_BUCKET = Bucket()


@dataclass(frozen=True)
class SmoothedProbability:
    """Shrunk hit probability and the number of trials behind it."""

    value: float
    sample_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {'prob': self.value, 'sampleSize': self.sample_size}


@dataclass(frozen=True)
class FixtureDifficultyEntry:
    """Difficulty of one upcoming fixture for one team.

    Attributes:
        opponent: Opponent team code
        venue: 'H' or 'A' from the rated team's side
        difficulty: Rating in [1, 5], lower is easier
        opp_goals_for: Opponent's goals scored per match at that venue
        opp_goals_against: Opponent's goals conceded per match at that venue
    """

    opponent: TeamCode
    venue: str
    difficulty: float
    opp_goals_for: float = 0.0
    opp_goals_against: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'opponent': self.opponent,
            'venue': self.venue,
            'difficulty': self.difficulty,
            'oppGoalsFor': self.opp_goals_for,
            'oppGoalsAgainst': self.opp_goals_against,
        }


@dataclass(frozen=True)
class TeamDifficulty:
    """A team's fixture difficulty over a period window."""

    team: TeamCode
    fixtures: Dict[int, FixtureDifficultyEntry] = field(default_factory=dict)
    avg_difficulty: float = 3.0
    fixture_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fixtures': {gw: entry.to_dict() for gw, entry in sorted(self.fixtures.items())},
            'avgDifficulty': self.avg_difficulty,
            'fixtureCount': self.fixture_count,
        }


@dataclass(frozen=True)
class OpportunityScore:
    """Score of one candidate period for a chip."""

    period: int
    score: float
    confidence: float
    supporting_counts: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChipRecommendation:
    """Best period for a chip plus every scored candidate.

    Attributes:
        chip: Chip the recommendation is for
        best_period: Recommended gameweek
        confidence: Confidence in [0, 1]
        supporting_counts: Counts behind the winning score
        scores: Per-period scores in ascending period order
        reasoning: Human-readable explanation
    """

    chip: ChipType
    best_period: int
    confidence: float
    supporting_counts: Dict[str, float] = field(default_factory=dict)
    scores: Tuple[OpportunityScore, ...] = ()
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chip': self.chip.value,
            'bestPeriod': self.best_period,
            'confidence': self.confidence,
            'supportingCounts': dict(self.supporting_counts),
            'reasoning': self.reasoning,
        }
