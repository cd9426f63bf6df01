"""Unit tests for configuration loading."""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from utils import config


class TestConfig(unittest.TestCase):
    """Tests for config.yml loading and reload."""

    def tearDown(self):
        config.reload_config()

    def test_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch.object(config, '_get_project_root', return_value=Path(tmpdir)):
                config.reload_config()
                self.assertEqual(config.DEFCON_THRESHOLD_DEF, 10)
                self.assertEqual(config.DEFCON_THRESHOLD_MID_FWD, 12)
                self.assertFalse(config.ATTACK_INCLUDES_CLEARANCES)
                self.assertEqual(config.PRIOR_STRENGTH, 6)
                self.assertEqual(config.DEFAULT_DEFCON_PROB, 0.28)
                self.assertEqual(config.MAX_GAMEWEEK, 38)
                self.assertEqual(config.FREE_HIT['easy_fdr'], 2.5)

    def test_overrides_from_yaml(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / 'config.yml').write_text(
                "defcon:\n"
                "  prior_strength: 10\n"
                "  attack_includes_clearances: true\n"
                "planner:\n"
                "  analysis_weeks: 6\n"
                "  wildcard:\n"
                "    lookahead: 3\n"
                "data:\n"
                "  data_dir: /tmp/season\n"
            )
            with patch.object(config, '_get_project_root', return_value=Path(tmpdir)):
                config.reload_config()
                self.assertEqual(config.PRIOR_STRENGTH, 10)
                self.assertTrue(config.ATTACK_INCLUDES_CLEARANCES)
                self.assertEqual(config.ANALYSIS_WEEKS, 6)
                self.assertEqual(config.WILDCARD['lookahead'], 3)
                self.assertEqual(config.WILDCARD['good_run_fdr'], 2.8)
                self.assertEqual(config.get_data_path('players.csv'), Path('/tmp/season/players.csv'))

    def test_reload_reaches_engine_consumers(self):
        from defcon.pipeline import EngineInputs, run_engine
        from defcon.state import Archetype, DefconThresholds, Venue
        from planner.chip_optimizer import ChipOptimizer

        inputs = EngineInputs(
            teams=[{'id': 1, 'code': 10, 'name': 'A', 'short_name': 'AAA'},
                   {'id': 2, 'code': 20, 'name': 'B', 'short_name': 'BBB'}],
            fixtures=[{'event': 1, 'team_h': 1, 'team_a': 2, 'finished': True}],
            players=[{'id': 5, 'team': 1, 'position': 'Midfielder'}],
            stats=[{'element': 5, 'gw': 1, 'minutes': 90, 'clearances': 8}],
        )

        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / 'config.yml').write_text(
                "defcon:\n"
                "  threshold_mid_fwd: 8\n"
                "  attack_includes_clearances: true\n"
                "planner:\n"
                "  wildcard:\n"
                "    lookahead: 3\n"
                "  bench_boost:\n"
                "    good_fdr: 2.0\n"
            )
            with patch.object(config, '_get_project_root', return_value=Path(tmpdir)):
                config.reload_config()
                thresholds = DefconThresholds.from_config()
                self.assertEqual(thresholds.attack, 8)
                self.assertTrue(thresholds.attack_includes_clearances)

                optimizer = ChipOptimizer({})
                self.assertEqual(optimizer.wc_lookahead, 3)
                self.assertEqual(optimizer.bb_good_fdr, 2.0)

                result = run_engine(inputs, weeks=2)
                bucket = result.aggregation.bucket(20, Venue.AWAY, Archetype.MIDFIELDER)
                self.assertEqual((bucket.hits, bucket.trials), (1, 1))

    def test_invalid_yaml_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / 'config.yml').write_text("defcon: [unclosed\n")
            with patch.object(config, '_get_project_root', return_value=Path(tmpdir)):
                self.assertEqual(config.load_config(), {})


if __name__ == '__main__':
    unittest.main()
