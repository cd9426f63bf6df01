"""Empirical-Bayes DEFCON probabilities.

Per-opponent hit rates are sparse (a handful of matches per venue), so each
rate is shrunk toward a league baseline with a Beta-Binomial update::

    alpha0 = p0 * k,  beta0 = (1 - p0) * k
    p = (alpha0 + hits) / (alpha0 + beta0 + trials)

``k`` is the prior strength in virtual games. With no trials the estimate is
exactly ``p0``; with many trials it converges to ``hits / trials``.

Which bucket is smoothed, and against which prior, is decided by an ordered
fallback chain (venue-specific -> opponent overall -> league baseline); the
first strategy that returns a value wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from defcon.aggregator import Aggregation
from defcon.fixtures import TeamIndex, code_sort_key
from defcon.state import (
    OUTFIELD_ARCHETYPES,
    Bucket,
    BucketKey,
    PositionGroup,
    SmoothedProbability,
    TeamCode,
    Venue,
)
from utils.config import DEFAULT_DEFCON_PROB, PRIOR_STRENGTH

logger = logging.getLogger(__name__)

# Every key a probability table is computed for
PROBABILITY_KEYS: Tuple[BucketKey, ...] = OUTFIELD_ARCHETYPES + (
    PositionGroup.DEFENCE,
    PositionGroup.ATTACK,
)

VENUES: Tuple[Venue, ...] = (Venue.HOME, Venue.AWAY, Venue.OVERALL)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def estimate(bucket: Bucket, prior_mean: float,
             prior_strength: float = PRIOR_STRENGTH) -> SmoothedProbability:
    """Posterior mean of a Beta(prior) x Binomial(bucket) update.

    Args:
        bucket: Observed hits and trials.
        prior_mean: Prior hit probability p0.
        prior_strength: Prior weight k in virtual trials.

    Returns:
        SmoothedProbability clamped to [0, 1], sample size = bucket trials.
    """
    prior_mean = _clamp(prior_mean)
    if bucket.trials <= 0:
        return SmoothedProbability(prior_mean, 0)

    strength = max(0.0, prior_strength)
    alpha = prior_mean * strength + bucket.hits
    beta = (1.0 - prior_mean) * strength + (bucket.trials - bucket.hits)
    if alpha + beta <= 0:
        return SmoothedProbability(prior_mean, bucket.trials)
    return SmoothedProbability(_clamp(alpha / (alpha + beta)), bucket.trials)


@dataclass(frozen=True)
class LeagueBaselines:
    """Raw league-wide hit rates per venue and key.

    Attributes:
        totals: venue -> key -> league Bucket
        default_probability: Used wherever the league has no trials
    """

    totals: Dict[Venue, Dict[BucketKey, Bucket]] = field(default_factory=dict)
    default_probability: float = DEFAULT_DEFCON_PROB

    def _rate(self, venue: Venue, key: BucketKey) -> Optional[float]:
        bucket = self.totals.get(venue, {}).get(key)
        return bucket.rate if bucket is not None else None

    def raw(self, venue: Venue, key: BucketKey) -> float:
        """League hit rate for one venue, or the default without data."""
        rate = self._rate(venue, key)
        return self.default_probability if rate is None else rate

    def prior_for(self, venue: Venue, key: BucketKey) -> float:
        """Venue baseline, falling back to the overall baseline, then the default."""
        rate = self._rate(venue, key)
        if rate is None:
            rate = self._rate(Venue.OVERALL, key)
        return self.default_probability if rate is None else rate

    def to_dict(self, keys: Sequence[BucketKey] = PROBABILITY_KEYS) -> Dict[str, Dict[str, float]]:
        return {venue.value: {key.value: self.raw(venue, key) for key in keys} for venue in VENUES}


def league_baselines(aggregation: Aggregation,
                     default_probability: float = DEFAULT_DEFCON_PROB) -> LeagueBaselines:
    return LeagueBaselines(totals=aggregation.league, default_probability=default_probability)


# =============================================================================
# FALLBACK CHAIN
# =============================================================================

@dataclass(frozen=True)
class FallbackContext:
    """Everything a fallback strategy needs to price one cell."""

    opponent: TeamCode
    venue: Venue
    key: BucketKey
    aggregation: Aggregation
    baselines: LeagueBaselines
    prior_strength: float = PRIOR_STRENGTH


FallbackStrategy = Callable[[FallbackContext], Optional[SmoothedProbability]]


def smooth_venue_bucket(ctx: FallbackContext) -> Optional[SmoothedProbability]:
    """Opponent's own bucket at this venue, shrunk toward the venue baseline."""
    bucket = ctx.aggregation.bucket(ctx.opponent, ctx.venue, ctx.key)
    if bucket.trials <= 0:
        return None
    return estimate(bucket, ctx.baselines.prior_for(ctx.venue, ctx.key), ctx.prior_strength)


def smooth_overall_bucket(ctx: FallbackContext) -> Optional[SmoothedProbability]:
    """Opponent's venue-agnostic bucket, shrunk toward the overall baseline."""
    bucket = ctx.aggregation.bucket(ctx.opponent, Venue.OVERALL, ctx.key)
    if bucket.trials <= 0:
        return None
    return estimate(bucket, ctx.baselines.prior_for(Venue.OVERALL, ctx.key), ctx.prior_strength)


def league_baseline(ctx: FallbackContext) -> Optional[SmoothedProbability]:
    """Nothing to shrink: the league baseline itself."""
    return SmoothedProbability(_clamp(ctx.baselines.prior_for(ctx.venue, ctx.key)), 0)


FALLBACK_CHAIN: Tuple[FallbackStrategy, ...] = (
    smooth_venue_bucket,
    smooth_overall_bucket,
    league_baseline,
)


def smoothed_probability(ctx: FallbackContext,
                         chain: Sequence[FallbackStrategy] = FALLBACK_CHAIN) -> SmoothedProbability:
    """Run the fallback chain for one cell; the first non-None result wins."""
    for strategy in chain:
        result = strategy(ctx)
        if result is not None:
            return result
    return SmoothedProbability(_clamp(ctx.baselines.default_probability), 0)


# =============================================================================
# PROBABILITY TABLE
# =============================================================================

@dataclass(frozen=True)
class ProbabilityTable:
    """Smoothed DEFCON probabilities per opponent, opponent venue and key.

    Lookups for opponents or keys that were never computed fall back to the
    league baseline.
    """

    probabilities: Dict[TeamCode, Dict[Venue, Dict[BucketKey, SmoothedProbability]]] = field(default_factory=dict)
    baselines: LeagueBaselines = field(default_factory=LeagueBaselines)

    def get(self, opponent: TeamCode, venue: Venue, key: BucketKey) -> SmoothedProbability:
        cell = self.probabilities.get(opponent, {}).get(venue, {}).get(key)
        if cell is not None:
            return cell
        return SmoothedProbability(_clamp(self.baselines.prior_for(venue, key)), 0)

    def value(self, opponent: TeamCode, venue: Venue, key: BucketKey) -> float:
        return self.get(opponent, venue, key).value

    def opponents(self):
        return sorted(self.probabilities, key=code_sort_key)

    def to_venue_key_dict(self, keys: Sequence[BucketKey] = OUTFIELD_ARCHETYPES) -> Dict:
        """``{opponent: {"true"|"false": {key: value}}}``; "true" = opponent at home."""
        result = {}
        for opponent in self.opponents():
            result[opponent] = {
                'true': {key.value: self.value(opponent, Venue.HOME, key) for key in keys},
                'false': {key.value: self.value(opponent, Venue.AWAY, key) for key in keys},
            }
        return result


def estimate_probabilities(aggregation: Aggregation,
                           team_index: Optional[TeamIndex] = None,
                           keys: Iterable[BucketKey] = PROBABILITY_KEYS,
                           prior_strength: float = PRIOR_STRENGTH,
                           default_probability: float = DEFAULT_DEFCON_PROB,
                           chain: Sequence[FallbackStrategy] = FALLBACK_CHAIN) -> ProbabilityTable:
    """Smooth every (opponent, venue, key) cell.

    Args:
        aggregation: Output of the aggregator.
        team_index: Teams to cover even when they have no history.
        keys: Archetypes and/or position groups to price.
        prior_strength: Prior weight in virtual games.
        default_probability: Baseline when the league has no data at all.
        chain: Fallback strategies in priority order.

    Returns:
        ProbabilityTable over every known opponent.
    """
    keys = tuple(keys)
    baselines = league_baselines(aggregation, default_probability)

    opponents = set(aggregation.buckets)
    if team_index is not None:
        opponents.update(team_index.by_code)

    probabilities = {}
    for opponent in sorted(opponents, key=code_sort_key):
        probabilities[opponent] = {
            venue: {
                key: smoothed_probability(
                    FallbackContext(opponent, venue, key, aggregation, baselines, prior_strength),
                    chain,
                )
                for key in keys
            }
            for venue in VENUES
        }

    logger.debug(f"Estimated probabilities for {len(probabilities)} opponents "
                 f"(prior strength {prior_strength})")
    return ProbabilityTable(probabilities=probabilities, baselines=baselines)
