#!/usr/bin/env python3
"""DEFCON Engine - Main Orchestrator

Single entry point to run the complete DEFCON pipeline:
1. Load - Read players, teams, fixtures and match stats from a season snapshot
2. Estimate - Smoothed DEFCON probabilities per opponent, venue and archetype
3. Plan - Goals-based fixture difficulty and chip timing for your squad
4. Export - CSV/JSON outputs for further analysis

Usage:
    # Default data directory from config.yml
    python main.py

    # Plan chips for a squad over the next 8 gameweeks
    python main.py --data-dir data/2025-26 --owned-players 5,17,233 --weeks 8

    # Write outputs, skipping blank gameweeks
    python main.py --exclude "31,34" --output-dir output/
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from utils.config import ANALYSIS_WEEKS, DATA_MIN_MINUTES, FORM_WINDOW, VERBOSE, get_data_path


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s | %(message)s'
)
logger = logging.getLogger(__name__)


def parse_id_list(text: Optional[str]) -> List[Any]:
    """Split "5, 17,abc" into ["5", "17", "abc"]; ids are normalised downstream."""
    if not text:
        return []
    return [token.strip() for token in str(text).split(',') if token.strip()]


def run_pipeline(data_dir: Path,
                 owned_players: List[Any],
                 owned_teams: List[Any],
                 start_gw: Optional[int],
                 weeks: int,
                 excluded: List[int],
                 form_window: int):
    """Load the season snapshot and run one engine pass.

    Returns:
        (EngineInputs, EngineResult)
    """
    logger.info("📂 Loading season data...")

    from etl.loaders import load_season_inputs
    from defcon.pipeline import run_engine

    inputs = load_season_inputs(data_dir)

    logger.info("📊 Estimating DEFCON probabilities...")
    result = run_engine(
        inputs,
        owned_player_ids=owned_players,
        owned_teams=owned_teams,
        start_period=start_gw,
        weeks=weeks,
        excluded=excluded,
        form_window=form_window,
    )
    logger.info("✅ Engine pass complete")
    return inputs, result


def print_summary(result) -> None:
    """Print chip recommendations and coverage gaps."""
    team_index = result.team_index

    print()
    print(f"  Analysis window: GW{result.start_period} - GW{result.end_period}")
    owned = ', '.join(team_index.short_name(t) for t in result.owned_teams) or 'none'
    print(f"  Owned teams: {owned}")
    print()

    print("  CHIP RECOMMENDATIONS")
    print("  " + "-" * 56)
    for chip, rec in result.recommendations.items():
        label = chip.value.replace('_', ' ').title()
        print(f"  {label:<12} GW{rec.best_period:<3} confidence {rec.confidence:>4.0%}")
        print(f"               {rec.reasoning}")
    print()

    if result.weak_coverage:
        print("  TEAMS WITH GOOD FIXTURES YOU DON'T OWN")
        print("  " + "-" * 56)
        for weakness in result.weak_coverage:
            gws = ', '.join(f"GW{gw}" for gw in weakness['gameweeks'])
            print(f"  {team_index.short_name(weakness['team']):<5} "
                  f"avg FDR {weakness['avgDifficulty']:.2f}  ({gws})")
        print()


def export_outputs(output_dir: Path, inputs, result, min_minutes: float) -> None:
    """Write probabilities, difficulty, recommendations and player outlook."""
    from defcon.archetypes import build_override_table
    from defcon.projections import player_outlook
    from etl.transformers import (
        difficulty_to_frame,
        outlook_to_frame,
        probabilities_to_frame,
        recommendations_to_frame,
        recommendations_to_json,
        save_outputs,
    )

    outlooks = player_outlook(
        inputs.players,
        inputs.stats,
        result.fixture_index,
        result.team_index,
        result.probabilities,
        result.periods,
        override_table=build_override_table(inputs.overrides),
        min_minutes=min_minutes,
    )

    save_outputs(
        output_dir,
        frames={
            'probabilities.csv': probabilities_to_frame(result.probabilities, result.team_index),
            'fixture_difficulty.csv': difficulty_to_frame(result.fixture_difficulty, result.team_index),
            'chip_scores.csv': recommendations_to_frame(result.recommendations),
            'player_outlook.csv': outlook_to_frame(outlooks, result.periods),
        },
        documents={
            'recommendations.json': recommendations_to_json(result.recommendations),
            'defcon_lookup.json': result.probabilities.to_venue_key_dict(),
        },
    )


def main():
    """Main entry point for the DEFCON engine."""
    from defcon.fixtures import parse_excluded_periods

    parser = argparse.ArgumentParser(
        description='DEFCON Engine - Defensive contribution probabilities and chip planner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run against the configured season snapshot
  python main.py

  # Squad-aware chip planning
  python main.py --owned-players 5,17,233 --weeks 8

  # Export everything
  python main.py --output-dir output/
"""
    )

    # Data options
    parser.add_argument('--data-dir', '-d', type=Path, default=None,
                        help=f'Season snapshot directory (default: {get_data_path()})')

    # Squad options
    parser.add_argument('--owned-players', type=str, default='',
                        help='Comma-separated player ids in your squad')
    parser.add_argument('--owned-teams', type=str, default='',
                        help='Comma-separated team codes/ids to treat as owned')

    # Window options
    parser.add_argument('--start-gw', '-g', type=int, default=None,
                        help='First gameweek to plan for (default: next unplayed)')
    parser.add_argument('--weeks', type=int, default=ANALYSIS_WEEKS,
                        help=f'Analysis window in gameweeks (default: {ANALYSIS_WEEKS})')
    parser.add_argument('--exclude', type=str, default='',
                        help='Comma-separated gameweeks to leave out of the fixture matrix')
    parser.add_argument('--form-window', type=int, default=FORM_WINDOW,
                        help='Use only the last N completed gameweeks for goals (0 = season)')
    parser.add_argument('--min-minutes', type=float, default=DATA_MIN_MINUTES,
                        help='Minimum minutes for the player outlook export')

    # Output options
    parser.add_argument('--output-dir', '-o', type=Path, default=None,
                        help='Write CSV/JSON outputs to this directory')

    # General options
    parser.add_argument('-v', '--verbose', action='store_true', default=VERBOSE,
                        help='Verbose output')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Minimal output')

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    data_dir = args.data_dir if args.data_dir is not None else get_data_path()

    # Print banner
    if not args.quiet:
        print()
        print("╔═══════════════════════════════════════════════════════════╗")
        print("║        DEFCON ENGINE - Defensive Contribution Planner     ║")
        print("╚═══════════════════════════════════════════════════════════╝")
        print()
        print(f"  Data: {data_dir}")
        print(f"  Window: {args.weeks} gameweeks")
        print(f"  Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print()

    try:
        inputs, result = run_pipeline(
            data_dir=data_dir,
            owned_players=parse_id_list(args.owned_players),
            owned_teams=parse_id_list(args.owned_teams),
            start_gw=args.start_gw,
            weeks=args.weeks,
            excluded=parse_excluded_periods(args.exclude),
            form_window=args.form_window,
        )

        if not args.quiet:
            print_summary(result)

        if args.output_dir is not None:
            export_outputs(args.output_dir, inputs, result, args.min_minutes)
            logger.info(f"🎯 Outputs saved to {args.output_dir}")

        return 0

    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
        return 130
    except FileNotFoundError as e:
        logger.error(f"❌ Missing data: {e}")
        return 2
    except Exception as e:
        logger.error(f"❌ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
