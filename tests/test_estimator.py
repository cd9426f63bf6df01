"""Unit tests for Beta-Binomial smoothing and the fallback chain."""

import unittest

from defcon.aggregator import Aggregation
from defcon.estimator import (
    FALLBACK_CHAIN,
    FallbackContext,
    LeagueBaselines,
    estimate,
    estimate_probabilities,
    league_baseline,
    league_baselines,
    smooth_overall_bucket,
    smooth_venue_bucket,
    smoothed_probability,
)
from defcon.fixtures import build_team_index
from defcon.state import Archetype, Bucket, PositionGroup, Venue

CB = Archetype.CENTER_BACK


def _aggregation():
    """Opponent 1: no home trials, 20 overall (8 hits). Opponent 2: rich home data."""
    return Aggregation(
        buckets={
            1: {
                Venue.AWAY: {CB: Bucket(8, 20)},
                Venue.OVERALL: {CB: Bucket(8, 20)},
            },
            2: {
                Venue.HOME: {CB: Bucket(50, 100)},
                Venue.OVERALL: {CB: Bucket(50, 100)},
            },
        },
        league={
            Venue.OVERALL: {CB: Bucket(30, 100)},
            Venue.HOME: {CB: Bucket(20, 40)},
        },
    )


class TestEstimate(unittest.TestCase):
    """Tests for the posterior mean."""

    def test_zero_trials_returns_prior_exactly(self):
        for p0 in (0.0, 0.28, 0.5, 1.0):
            result = estimate(Bucket(0, 0), p0, 6)
            self.assertEqual(result.value, p0)
            self.assertEqual(result.sample_size, 0)

    def test_posterior_formula(self):
        result = estimate(Bucket(3, 10), 0.3, 6)
        self.assertAlmostEqual(result.value, (0.3 * 6 + 3) / 16)
        self.assertEqual(result.sample_size, 10)

    def test_converges_to_raw_rate(self):
        result = estimate(Bucket(40000, 100000), 0.9, 6)
        self.assertAlmostEqual(result.value, 0.4, places=3)

    def test_zero_strength_is_raw_rate(self):
        self.assertAlmostEqual(estimate(Bucket(1, 4), 0.9, 0).value, 0.25)

    def test_negative_strength_treated_as_zero(self):
        self.assertAlmostEqual(estimate(Bucket(1, 4), 0.9, -5).value, 0.25)

    def test_bounds(self):
        for hits, trials in ((0, 1), (1, 1), (0, 50), (50, 50)):
            for p0 in (-0.5, 0.0, 0.3, 1.0, 1.5):
                value = estimate(Bucket(hits, trials), p0, 6).value
                self.assertGreaterEqual(value, 0.0)
                self.assertLessEqual(value, 1.0)

    def test_invalid_bucket_rejected(self):
        with self.assertRaises(ValueError):
            Bucket(5, 3)


class TestLeagueBaselines(unittest.TestCase):

    def test_venue_falls_back_to_overall_then_default(self):
        baselines = league_baselines(_aggregation(), default_probability=0.28)
        self.assertEqual(baselines.prior_for(Venue.HOME, CB), 0.5)
        self.assertEqual(baselines.prior_for(Venue.AWAY, CB), 0.3)
        self.assertEqual(baselines.prior_for(Venue.AWAY, Archetype.FORWARD), 0.28)
        self.assertEqual(baselines.raw(Venue.AWAY, CB), 0.28)

    def test_empty_league(self):
        baselines = LeagueBaselines(default_probability=0.28)
        self.assertEqual(baselines.prior_for(Venue.OVERALL, CB), 0.28)


class TestFallbackChain(unittest.TestCase):
    """Tests for venue -> overall -> league resolution."""

    def setUp(self):
        self.agg = _aggregation()
        self.baselines = league_baselines(self.agg, 0.28)

    def _ctx(self, opponent, venue, key=CB):
        return FallbackContext(opponent, venue, key, self.agg, self.baselines, 6)

    def test_missing_venue_uses_overall_bucket(self):
        ctx = self._ctx(1, Venue.HOME)
        self.assertIsNone(smooth_venue_bucket(ctx))
        result = smoothed_probability(ctx)
        self.assertEqual(result, smooth_overall_bucket(ctx))
        # Shrunk toward the 0.30 overall baseline, away from the raw 0.40
        self.assertGreater(result.value, 0.30)
        self.assertLess(result.value, 0.40)
        self.assertAlmostEqual(result.value, (0.3 * 6 + 8) / 26)

    def test_venue_bucket_preferred(self):
        result = smoothed_probability(self._ctx(2, Venue.HOME))
        self.assertAlmostEqual(result.value, (0.5 * 6 + 50) / 106)
        self.assertEqual(result.sample_size, 100)

    def test_unknown_opponent_gets_league_baseline(self):
        result = smoothed_probability(self._ctx(3, Venue.AWAY))
        self.assertEqual(result.value, 0.3)
        self.assertEqual(result.sample_size, 0)
        self.assertEqual(result, league_baseline(self._ctx(3, Venue.AWAY)))

    def test_custom_chain(self):
        result = smoothed_probability(self._ctx(2, Venue.HOME), (league_baseline,))
        self.assertEqual(result.value, 0.5)

    def test_default_chain_order(self):
        self.assertEqual(FALLBACK_CHAIN, (smooth_venue_bucket, smooth_overall_bucket, league_baseline))


class TestEstimateProbabilities(unittest.TestCase):

    def test_covers_teams_without_history(self):
        teams = build_team_index([{'id': 1}, {'id': 2}, {'id': 3}])
        table = estimate_probabilities(_aggregation(), teams, prior_strength=6, default_probability=0.28)
        self.assertEqual(table.opponents(), [1, 2, 3])
        self.assertEqual(table.value(3, Venue.HOME, CB), 0.5)
        self.assertEqual(table.value(3, Venue.AWAY, PositionGroup.ATTACK), 0.28)

    def test_every_value_in_bounds(self):
        table = estimate_probabilities(_aggregation(), prior_strength=6)
        for venues in table.probabilities.values():
            for keys in venues.values():
                for cell in keys.values():
                    self.assertTrue(0.0 <= cell.value <= 1.0)

    def test_venue_key_dict(self):
        table = estimate_probabilities(_aggregation(), prior_strength=6, default_probability=0.28)
        lookup = table.to_venue_key_dict()
        self.assertEqual(set(lookup[1]), {'true', 'false'})
        self.assertEqual(set(lookup[1]['true']), {'CB', 'LB', 'RB', 'MID', 'FWD'})
        self.assertAlmostEqual(lookup[2]['true']['CB'], (0.5 * 6 + 50) / 106)

    def test_unknown_lookup_uses_baseline(self):
        table = estimate_probabilities(_aggregation(), prior_strength=6, default_probability=0.28)
        self.assertEqual(table.value(404, Venue.OVERALL, CB), 0.3)


if __name__ == '__main__':
    unittest.main()
