"""ETL Transformers Module

Flattens engine outputs into the tabular export schema.

Target Schemas:
- probabilities.csv: One row per opponent, opponent venue and archetype/group
- fixture_difficulty.csv: One row per team and upcoming gameweek
- recommendations.json: Best gameweek per chip with its reasoning
- player_outlook.csv: Per-player DEFCON outlook over the window
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from defcon.estimator import PROBABILITY_KEYS, VENUES, ProbabilityTable
from defcon.fixtures import TeamIndex, code_sort_key
from defcon.projections import PlayerOutlook
from defcon.state import BucketKey, ChipRecommendation, ChipType
from planner.difficulty import DifficultyTable

logger = logging.getLogger(__name__)


@dataclass
class ProbabilitySchema:
    """Schema definition for probabilities.csv."""
    opponent: object        # Opponent team code
    opponent_short: str     # Opponent abbreviation
    venue: str              # home / away / overall, from the opponent's side
    key: str                # Archetype (CB, LB, ...) or group (DEF_GKP, MID_FWD)
    probability: float      # Smoothed hit probability in [0, 1]
    sample_size: int        # Trials behind the estimate
    baseline: float         # League rate the estimate was shrunk toward


@dataclass
class DifficultySchema:
    """Schema definition for fixture_difficulty.csv."""
    team: object            # Team code
    team_short: str
    gameweek: int
    opponent: object
    opponent_short: str
    venue: str              # 'H' or 'A' from the team's side
    difficulty: float       # Goals-based FDR in [1, 5]
    opp_goals_for: float
    opp_goals_against: float
    avg_difficulty: float   # Team average over the window


def probabilities_to_frame(table: ProbabilityTable,
                           team_index: TeamIndex,
                           keys: Sequence[BucketKey] = PROBABILITY_KEYS) -> pd.DataFrame:
    """Long-format DataFrame of every smoothed cell."""
    records = []
    for opponent in table.opponents():
        for venue in VENUES:
            for key in keys:
                cell = table.get(opponent, venue, key)
                records.append({
                    'opponent': opponent,
                    'opponent_short': team_index.short_name(opponent),
                    'venue': venue.value,
                    'key': key.value,
                    'probability': round(cell.value, 4),
                    'sample_size': cell.sample_size,
                    'baseline': round(table.baselines.prior_for(venue, key), 4),
                })
    return pd.DataFrame(records, columns=list(ProbabilitySchema.__dataclass_fields__))


def difficulty_to_frame(table: DifficultyTable, team_index: TeamIndex) -> pd.DataFrame:
    """One row per rated fixture, teams in code order, gameweeks ascending."""
    records = []
    for team in sorted(table, key=code_sort_key):
        data = table[team]
        for gw, entry in sorted(data.fixtures.items()):
            records.append({
                'team': team,
                'team_short': team_index.short_name(team),
                'gameweek': gw,
                'opponent': entry.opponent,
                'opponent_short': team_index.short_name(entry.opponent),
                'venue': entry.venue,
                'difficulty': round(entry.difficulty, 2),
                'opp_goals_for': round(entry.opp_goals_for, 2),
                'opp_goals_against': round(entry.opp_goals_against, 2),
                'avg_difficulty': round(data.avg_difficulty, 2),
            })
    return pd.DataFrame(records, columns=list(DifficultySchema.__dataclass_fields__))


def difficulty_grid(table: DifficultyTable, team_index: TeamIndex) -> pd.DataFrame:
    """Team x gameweek pivot of difficulty, blanks as NaN."""
    frame = difficulty_to_frame(table, team_index)
    if frame.empty:
        return frame
    grid = frame.pivot(index='team', columns='gameweek', values='difficulty')
    return grid.sort_index()


def recommendations_to_frame(recommendations: Dict[ChipType, ChipRecommendation]) -> pd.DataFrame:
    """Every scored candidate gameweek for every chip."""
    records = []
    for chip, rec in recommendations.items():
        for score in rec.scores:
            row = {
                'chip': chip.value,
                'gameweek': score.period,
                'score': score.score,
                'confidence': round(score.confidence, 4),
                'is_best': score.period == rec.best_period,
            }
            row.update(score.supporting_counts)
            records.append(row)
    return pd.DataFrame(records)


def recommendations_to_json(recommendations: Dict[ChipType, ChipRecommendation]) -> Dict:
    return {chip.value: rec.to_dict() for chip, rec in recommendations.items()}


def outlook_to_frame(outlooks: Iterable[PlayerOutlook], periods: Sequence[int]) -> pd.DataFrame:
    """Wide DataFrame: player summary columns then one ``gw{n}`` column per gameweek."""
    records = []
    for outlook in outlooks:
        row = {
            'player_id': outlook.player_id,
            'name': outlook.name,
            'team': outlook.team,
            'archetype': outlook.archetype.value,
            'total_minutes': outlook.total_minutes,
            'total_hits': outlook.total_hits,
            'hits_per_90': round(outlook.hits_per_90, 3),
            'max_probability': round(outlook.max_probability, 4),
            'avg_probability': round(outlook.avg_probability, 4),
        }
        by_period = outlook.probability_by_period
        for gw in periods:
            row[f'gw{gw}'] = round(by_period.get(gw, 0.0), 4)
        records.append(row)
    return pd.DataFrame(records)


def save_outputs(output_dir: Path,
                 frames: Dict[str, pd.DataFrame],
                 documents: Optional[Dict[str, Dict]] = None) -> List[Path]:
    """Write DataFrames as CSV and dicts as JSON into ``output_dir``.

    Returns:
        Paths written, in the order given.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    for filename, df in frames.items():
        filepath = output_dir / filename
        df.to_csv(filepath, index=False)
        logger.info(f"Saved {len(df)} rows to {filepath}")
        written.append(filepath)

    for filename, data in (documents or {}).items():
        filepath = output_dir / filename
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, default=str)
        logger.info(f"Saved {filepath}")
        written.append(filepath)

    return written
