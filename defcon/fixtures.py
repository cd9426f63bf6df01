"""Team and fixture lookups.

Turns the flat teams and fixtures tables into:
- TeamIndex: canonical team records, resolvable by code or source id
- FixtureIndex: team -> period -> PerTeamFixture
- GoalHistory: per-team goals for/against from finished fixtures

Plus small helpers for building gameweek windows.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from defcon.state import FixtureRecord, PerTeamFixture, TeamCode, TeamRecord, Venue
from utils.config import MAX_GAMEWEEK
from utils.fields import Record, get_field, normalize_id, to_bool, to_number, to_period

logger = logging.getLogger(__name__)


def code_sort_key(code: Any) -> Tuple[int, Any]:
    """Sort key that orders mixed int/str codes deterministically."""
    if isinstance(code, int):
        return (0, code, '')
    return (1, 0, str(code))


@dataclass(frozen=True)
class TeamIndex:
    """Teams keyed by canonical code, with a source-id side table."""

    by_code: Dict[TeamCode, TeamRecord] = field(default_factory=dict)
    by_id: Dict[TeamCode, TeamRecord] = field(default_factory=dict)

    def resolve(self, ref: Any) -> Optional[TeamCode]:
        """Resolve a team reference (code or source id) to its code."""
        key = normalize_id(ref)
        if key is None:
            return None
        if key in self.by_code:
            return key
        record = self.by_id.get(key)
        return record.code if record else None

    def codes(self) -> List[TeamCode]:
        return sorted(self.by_code, key=code_sort_key)

    def short_name(self, code: TeamCode) -> str:
        record = self.by_code.get(code)
        return record.short_name if record else str(code)

    def __len__(self) -> int:
        return len(self.by_code)


def build_team_index(teams: Iterable[Record]) -> TeamIndex:
    """Build the team index, one record per distinct code.

    Duplicate codes keep the record with the lowest source id so the result
    does not depend on row order.
    """
    by_code: Dict[TeamCode, TeamRecord] = {}
    for row in teams or ():
        record = TeamRecord.from_record(row)
        if record is None:
            continue
        existing = by_code.get(record.code)
        if existing is None:
            by_code[record.code] = record
            continue
        logger.warning(f"Duplicate team code {record.code}")
        by_code[record.code] = min(
            existing, record,
            key=lambda r: (code_sort_key(r.team_id), r.name, r.short_name),
        )

    by_id: Dict[TeamCode, TeamRecord] = {}
    for code in sorted(by_code, key=code_sort_key):
        record = by_code[code]
        if record.team_id is not None and record.team_id not in by_id:
            by_id[record.team_id] = record

    return TeamIndex(by_code=by_code, by_id=by_id)


@dataclass(frozen=True)
class FixtureIndex:
    """Per-team, per-period fixture lookup.

    Attributes:
        by_team: team code -> period -> PerTeamFixture
        fixtures: All resolved fixtures in canonical order
    """

    by_team: Dict[TeamCode, Dict[int, PerTeamFixture]] = field(default_factory=dict)
    fixtures: Tuple[FixtureRecord, ...] = ()

    def get(self, team: TeamCode, period: int) -> Optional[PerTeamFixture]:
        return self.by_team.get(team, {}).get(period)

    def for_team(self, team: TeamCode) -> Dict[int, PerTeamFixture]:
        return self.by_team.get(team, {})

    def teams(self) -> List[TeamCode]:
        return sorted(self.by_team, key=code_sort_key)

    @property
    def latest_completed_period(self) -> int:
        """Highest gameweek with a finished fixture, 0 if none."""
        finished = [f.period for f in self.fixtures if f.finished]
        return max(finished) if finished else 0


def _fixture_sort_key(fixture: FixtureRecord):
    return (
        fixture.period,
        code_sort_key(fixture.home),
        code_sort_key(fixture.away),
        fixture.finished,
        fixture.home_score,
        fixture.away_score,
    )


def resolve_fixture(row: Record, team_index: TeamIndex) -> Optional[FixtureRecord]:
    """Resolve a raw fixture row against the team index, or None."""
    home = team_index.resolve(get_field(row, 'home_team'))
    away = team_index.resolve(get_field(row, 'away_team'))
    period = to_period(get_field(row, 'period'))
    if home is None or away is None or period is None:
        return None
    return FixtureRecord(
        home=home,
        away=away,
        period=period,
        finished=to_bool(get_field(row, 'finished')),
        home_score=int(to_number(get_field(row, 'home_score'))),
        away_score=int(to_number(get_field(row, 'away_score'))),
    )


def build_fixture_index(fixtures: Iterable[Record], team_index: TeamIndex) -> FixtureIndex:
    """Project every fixture onto both teams, keyed by gameweek.

    A team keeps at most one fixture per gameweek. When a gameweek holds two
    fixtures for the same team, the first in canonical (period, home, away)
    order is kept.

    Args:
        fixtures: Raw fixture rows.
        team_index: Index used to resolve team references.

    Returns:
        FixtureIndex covering every team in ``team_index``.
    """
    resolved = []
    skipped = 0
    for row in fixtures or ():
        fixture = resolve_fixture(row, team_index)
        if fixture is None:
            skipped += 1
            continue
        resolved.append(fixture)
    resolved.sort(key=_fixture_sort_key)

    by_team: Dict[TeamCode, Dict[int, PerTeamFixture]] = {code: {} for code in team_index.by_code}
    duplicates = 0
    for fixture in resolved:
        for side in fixture.sides():
            team_fixtures = by_team[side.team]
            if side.period in team_fixtures:
                duplicates += 1
                continue
            team_fixtures[side.period] = side

    if skipped:
        logger.debug(f"Skipped {skipped} fixtures with unresolvable teams or gameweek")
    if duplicates:
        logger.debug(f"Ignored {duplicates} extra fixtures in already-filled gameweeks")

    return FixtureIndex(by_team=by_team, fixtures=tuple(resolved))


@dataclass(frozen=True)
class GoalHistory:
    """Goals for/against per team, venue and finished gameweek.

    ``Venue.OVERALL`` holds every finished match; ``HOME``/``AWAY`` hold the
    team's own home and away matches.
    """

    by_team: Dict[TeamCode, Dict[Venue, Dict[int, Tuple[int, int]]]] = field(default_factory=dict)
    latest_period: int = 0

    def matches(self, team: TeamCode, venue: Venue = Venue.OVERALL,
                form_window: int = 0) -> List[Tuple[int, int]]:
        """Return (goals_for, goals_against) pairs in gameweek order.

        Args:
            team: Team code.
            venue: Which of the team's matches to include.
            form_window: Only the last N completed gameweeks (0 = all).
        """
        history = self.by_team.get(team, {}).get(venue, {})
        start = 1
        if form_window and form_window > 0:
            start = max(1, self.latest_period - form_window + 1)
        return [history[gw] for gw in sorted(history) if start <= gw <= self.latest_period]

    def rates(self, team: TeamCode, venue: Venue = Venue.OVERALL,
              form_window: int = 0) -> Optional[Tuple[float, float]]:
        """Average (goals_for, goals_against) per match, or None without data."""
        matches = self.matches(team, venue, form_window)
        if not matches:
            return None
        count = len(matches)
        return (
            sum(m[0] for m in matches) / count,
            sum(m[1] for m in matches) / count,
        )

    def goals_per_match(self, team: TeamCode, form_window: int = 0) -> Dict[Venue, Dict[str, float]]:
        """Per-match goals for/against, rounded to two decimals.

        Home and away fall back to the combined average when the team has no
        matches at that venue. Everything is 0 before any match is completed.
        """
        combined = self.rates(team, Venue.OVERALL, form_window) or (0.0, 0.0)
        result = {Venue.OVERALL: {'for': round(combined[0], 2), 'against': round(combined[1], 2)}}
        for venue in (Venue.HOME, Venue.AWAY):
            rates = self.rates(team, venue, form_window)
            if rates is None:
                result[venue] = dict(result[Venue.OVERALL])
            else:
                result[venue] = {'for': round(rates[0], 2), 'against': round(rates[1], 2)}
        return result


def build_goal_history(fixture_index: FixtureIndex) -> GoalHistory:
    """Collect goals for/against from every finished fixture in the index."""
    by_team: Dict[TeamCode, Dict[Venue, Dict[int, Tuple[int, int]]]] = {}
    for team, team_fixtures in fixture_index.by_team.items():
        venues = {Venue.OVERALL: {}, Venue.HOME: {}, Venue.AWAY: {}}
        for period, fixture in team_fixtures.items():
            if not fixture.finished:
                continue
            score = (fixture.goals_for, fixture.goals_against)
            venues[Venue.OVERALL][period] = score
            venues[Venue.HOME if fixture.was_home else Venue.AWAY][period] = score
        by_team[team] = venues

    return GoalHistory(by_team=by_team, latest_period=fixture_index.latest_completed_period)


def build_period_list(start: int, end: int, excluded: Sequence[int] = ()) -> List[int]:
    """Gameweeks from start to end inclusive, minus any excluded ones."""
    excluded_set = set(excluded or ())
    return [gw for gw in range(start, end + 1) if gw not in excluded_set]


def parse_excluded_periods(text: Optional[str], max_period: int = MAX_GAMEWEEK) -> List[int]:
    """Parse "12, 13,x" into [12, 13], dropping invalid or out-of-range entries."""
    if not text:
        return []
    periods = []
    for token in str(text).split(','):
        token = token.strip()
        try:
            gw = int(token)
        except ValueError:
            continue
        if 1 <= gw <= max_period:
            periods.append(gw)
    return periods


def _player_rank(player: Record) -> Tuple:
    return (
        code_sort_key(normalize_id(get_field(player, 'player_team'))),
        str(get_field(player, 'position') or ''),
        str(get_field(player, 'detailed_position') or ''),
        str(get_field(player, 'player_name') or ''),
        tuple(sorted((str(k), str(v)) for k, v in player.items())),
    )


def index_players(players: Iterable[Record]) -> Dict[Any, Record]:
    """Players keyed by normalised id. Rows without an id are dropped.

    Duplicate ids keep the row with the lowest (team, position, name) so the
    result does not depend on row order.
    """
    players_by_id = {}
    for player in players or ():
        pid = normalize_id(get_field(player, 'player_id'))
        if pid is None:
            continue
        existing = players_by_id.get(pid)
        if existing is None:
            players_by_id[pid] = player
            continue
        logger.warning(f"Duplicate player id {pid}")
        players_by_id[pid] = min(existing, player, key=_player_rank)
    return players_by_id
