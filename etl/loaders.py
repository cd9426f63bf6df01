"""Season Data Loaders

Reads a season snapshot directory into the plain records the engine works on.

Expected layout (first match wins for each table):
    {data_dir}/players.csv                      (required)
    {data_dir}/teams.csv                        (required)
    {data_dir}/fixtures.csv | matches.csv       (required, or per-GW files)
    {data_dir}/playermatchstats.csv
        | player_gameweek_stats.csv
        | gws/merged_gw.csv                     (or per-GW files)
    {data_dir}/player_position_overrides.csv    (optional)

Per-gameweek snapshots are also accepted:
    {data_dir}/GW{n}/player_gameweek_stats.csv
    {data_dir}/GW{n}/fixtures.csv
Rows from these files get their gameweek filled in from the folder name
when the row has none.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from defcon.pipeline import EngineInputs
from utils.config import MAX_GAMEWEEK, get_data_path
from utils.fields import FIELD_ALIASES

logger = logging.getLogger(__name__)

PLAYERS_FILES = ('players.csv',)
TEAMS_FILES = ('teams.csv',)
FIXTURES_FILES = ('fixtures.csv', 'matches.csv')
STATS_FILES = ('playermatchstats.csv', 'player_gameweek_stats.csv', 'gws/merged_gw.csv')
OVERRIDES_FILES = ('player_position_overrides.csv',)

GW_DIR_STATS = 'player_gameweek_stats.csv'
GW_DIR_FIXTURES = 'fixtures.csv'


def dataframe_to_records(df: pd.DataFrame) -> List[Dict]:
    """Convert a DataFrame to a list of dicts with NaN cells as None."""
    if df is None or df.empty:
        return []
    cleaned = df.astype(object).where(df.notna(), None)
    return cleaned.to_dict(orient='records')


def read_table(path: Path) -> List[Dict]:
    """Read one CSV file into records. Rows that fail to parse are skipped."""
    df = pd.read_csv(path, on_bad_lines='skip', low_memory=False)
    df.columns = [str(c).strip() for c in df.columns]
    records = dataframe_to_records(df)
    logger.debug(f"Read {len(records)} rows from {path}")
    return records


def _first_existing(data_dir: Path, candidates: Sequence[str]) -> Optional[Path]:
    for name in candidates:
        path = data_dir / name
        if path.exists():
            return path
    return None


def _fill_period(records: List[Dict], period: int) -> List[Dict]:
    """Set the gameweek on rows that do not carry one."""
    aliases = FIELD_ALIASES['period']
    for row in records:
        if all(row.get(key) is None for key in aliases):
            row['gw'] = period
    return records


def load_gameweek_tables(data_dir: Path, filename: str,
                         max_period: int = MAX_GAMEWEEK) -> List[Dict]:
    """Concatenate ``GW{n}/{filename}`` across every gameweek folder present."""
    records: List[Dict] = []
    for period in range(1, max_period + 1):
        path = data_dir / f'GW{period}' / filename
        if path.exists():
            records.extend(_fill_period(read_table(path), period))
    return records


def load_table(data_dir: Path, candidates: Sequence[str],
               required: bool = False,
               gameweek_file: Optional[str] = None) -> List[Dict]:
    """Load the first candidate file that exists.

    Falls back to per-gameweek folders when ``gameweek_file`` is given.

    Raises:
        FileNotFoundError: If ``required`` and nothing was found.
    """
    path = _first_existing(data_dir, candidates)
    if path is not None:
        return read_table(path)

    if gameweek_file is not None:
        records = load_gameweek_tables(data_dir, gameweek_file)
        if records:
            return records

    if required:
        raise FileNotFoundError(f"None of {list(candidates)} found in {data_dir}")
    return []


def load_season_inputs(data_dir: Optional[Path] = None) -> EngineInputs:
    """Load every table of a season snapshot.

    Args:
        data_dir: Snapshot directory (default: configured data directory).

    Returns:
        EngineInputs with plain-dict records.

    Raises:
        FileNotFoundError: If the directory or a required table is missing.
    """
    data_dir = Path(data_dir) if data_dir is not None else get_data_path()
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")

    inputs = EngineInputs(
        players=load_table(data_dir, PLAYERS_FILES, required=True),
        teams=load_table(data_dir, TEAMS_FILES, required=True),
        fixtures=load_table(data_dir, FIXTURES_FILES, required=True, gameweek_file=GW_DIR_FIXTURES),
        stats=load_table(data_dir, STATS_FILES, gameweek_file=GW_DIR_STATS),
        overrides=load_table(data_dir, OVERRIDES_FILES),
    )

    if not inputs.stats:
        logger.warning(f"No player match stats found in {data_dir}; probabilities will use defaults")

    logger.info(f"Loaded {len(inputs.players)} players, {len(inputs.teams)} teams, "
                f"{len(inputs.fixtures)} fixtures, {len(inputs.stats)} stat rows "
                f"from {data_dir}")
    return inputs
