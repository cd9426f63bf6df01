"""ETL Module for the DEFCON engine.

This module moves data in and out of the engine:

- loaders.py: Read a season snapshot directory into engine input records
- transformers.py: Flatten engine outputs into DataFrames and write them

Usage:
    from etl.loaders import load_season_inputs
    from defcon.pipeline import run_engine

    inputs = load_season_inputs(Path('data/2025-26'))
    result = run_engine(inputs, owned_player_ids=[1, 2, 3])
"""

from etl.loaders import load_season_inputs, dataframe_to_records
from etl.transformers import (
    probabilities_to_frame,
    difficulty_to_frame,
    difficulty_grid,
    recommendations_to_frame,
    recommendations_to_json,
    outlook_to_frame,
    save_outputs,
)

__all__ = [
    'load_season_inputs',
    'dataframe_to_records',
    'probabilities_to_frame',
    'difficulty_to_frame',
    'difficulty_grid',
    'recommendations_to_frame',
    'recommendations_to_json',
    'outlook_to_frame',
    'save_outputs',
]
