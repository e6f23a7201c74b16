"""
Data processing module for the whiff probability analysis.

Contains the dataset loader plus the labeling and selection steps that turn raw
pitch records into the analysis table used by the logistic models.
"""

import pandas as pd
import os
import logging
from typing import Tuple, Optional

from config import (
    WHIFF_DESCRIPTIONS, SWING_DESCRIPTIONS, DESCRIPTION_COL, RESULT_COL,
    RESPONSE_COL, ANALYSIS_COLUMNS, QUALIFY_CONFIG, DATA_DIR, PITCHES_FILE, SWINGS_FILE
)

logger = logging.getLogger(__name__)


class WhiffDataLoader:
    """
    Loads the pitch and swung-at datasets from delimited files.

    Both files are row-oriented Statcast exports: one row per pitch with a
    description, release speed and release spin rate among roughly a hundred
    other columns, which are carried along untouched.

    Attributes:
        data_dir (str): Directory containing the input files
        pitches_file (str): File name of the full pitch table
        swings_file (str): File name of the swung-at table
        sep (str): Field delimiter
    """

    def __init__(self, data_dir: str = DATA_DIR, pitches_file: str = PITCHES_FILE,
                 swings_file: str = SWINGS_FILE, sep: str = ","):
        self.data_dir = data_dir
        self.pitches_file = pitches_file
        self.swings_file = swings_file
        self.sep = sep

    @property
    def pitches_path(self) -> str:
        return os.path.join(self.data_dir, self.pitches_file)

    @property
    def swings_path(self) -> str:
        return os.path.join(self.data_dir, self.swings_file)

    def _read(self, path: str) -> pd.DataFrame:
        try:
            df = pd.read_csv(path, sep=self.sep)
        except Exception as e:
            logger.error(f"Error loading {path}: {str(e)}")
            raise

        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns from {path}")
        return df

    def load_pitches(self) -> pd.DataFrame:
        """Read the full pitch table.

        Raises:
            FileNotFoundError: If the pitch file does not exist
        """
        return self._read(self.pitches_path)

    def load_swings(self) -> pd.DataFrame:
        """Read the swung-at pitch table.

        Raises:
            FileNotFoundError: If the swings file does not exist
        """
        return self._read(self.swings_path)

    def load_datasets(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Load both datasets, deriving the swung-at table when its file is absent.

        Returns:
            Tuple[pd.DataFrame, pd.DataFrame]: (pitches, swings)
        """
        pitches = self.load_pitches()

        if os.path.exists(self.swings_path):
            swings = self.load_swings()
        else:
            logger.warning(f"{self.swings_path} not found, deriving swings from pitch descriptions")
            swings = select_swings(pitches)

        return pitches, swings


def select_swings(pitches: pd.DataFrame) -> pd.DataFrame:
    """Keep only pitches the batter swung at, judged by their description.

    Args:
        pitches (pd.DataFrame): Pitch table with a description column

    Returns:
        pd.DataFrame: Copy of the swung-at rows
    """
    if DESCRIPTION_COL not in pitches.columns:
        logger.warning(f"No '{DESCRIPTION_COL}' column, no swings can be selected")
        return pitches.iloc[0:0].copy()

    swings = pitches[pitches[DESCRIPTION_COL].isin(SWING_DESCRIPTIONS)].copy()
    logger.info(f"Selected {len(swings)} swings out of {len(pitches)} pitches")
    return swings


def filter_qualified_pitches(pitches: pd.DataFrame,
                             pitch_type: Optional[str] = QUALIFY_CONFIG['pitch_type'],
                             min_pitches: int = QUALIFY_CONFIG['min_pitches'],
                             pitcher_col: str = QUALIFY_CONFIG['pitcher_col'],
                             pitch_type_col: str = QUALIFY_CONFIG['pitch_type_col']) -> pd.DataFrame:
    """
    Restrict a raw pitch table to one pitch type from pitchers with enough volume.

    The shipped datasets already went through this selection (four-seam
    fastballs from pitchers with at least 200 of them); this is for rebuilding
    them from a raw Statcast pull.

    Args:
        pitches (pd.DataFrame): Raw pitch table
        pitch_type (str): Pitch type code to keep, or None to keep every type
        min_pitches (int): Minimum qualifying pitches per pitcher
        pitcher_col (str): Pitcher identifier column
        pitch_type_col (str): Pitch type column

    Returns:
        pd.DataFrame: Filtered copy

    Raises:
        KeyError: If a required column is missing
    """
    missing = [c for c in [pitcher_col, pitch_type_col] if c not in pitches.columns]
    if pitch_type is None and pitch_type_col in missing:
        missing.remove(pitch_type_col)
    if missing:
        raise KeyError(f"Cannot qualify pitches, missing columns: {missing}")

    df = pitches
    if pitch_type is not None:
        df = df[df[pitch_type_col] == pitch_type]

    counts = df.groupby(pitcher_col)[pitcher_col].transform('size')
    qualified = df[counts >= min_pitches].copy()

    logger.info(f"Qualified {len(qualified)} of {len(pitches)} pitches "
                f"({qualified[pitcher_col].nunique()} pitchers with >= {min_pitches})")
    return qualified


def label_whiffs(pitches: pd.DataFrame, description_col: str = DESCRIPTION_COL) -> pd.DataFrame:
    """
    Add the boolean whiff outcome to every pitch record.

    A pitch is a whiff when its description is exactly 'foul_tip' or
    'swinging_strike' (case-sensitive, no trimming). Any other value,
    including missing ones, is not a whiff.

    Args:
        pitches (pd.DataFrame): Pitch records
        description_col (str): Column holding the outcome description

    Returns:
        pd.DataFrame: Copy of the input with a boolean 'result' column
    """
    df = pitches.copy()

    if description_col not in df.columns:
        logger.warning(f"No '{description_col}' column, labeling every pitch as non-whiff")
        df[RESULT_COL] = False
        return df

    df[RESULT_COL] = df[description_col].isin(WHIFF_DESCRIPTIONS).astype(bool)
    logger.info(f"Labeled {int(df[RESULT_COL].sum())} whiffs out of {len(df)} pitches")
    return df


def build_analysis_frame(swings: pd.DataFrame) -> pd.DataFrame:
    """
    Project the swung-at table to the modeling columns and add the 0/1 response.

    Rows with missing velocity or spin rate are kept; each model decides which
    rows it can use. A predictor column absent from the input stays absent so
    the models that need it fail loudly instead of fitting on nothing.

    Args:
        swings (pd.DataFrame): Swung-at pitch records, labeled or not

    Returns:
        pd.DataFrame: Columns result, release_speed, release_spin_rate, response
    """
    if RESULT_COL not in swings.columns:
        swings = label_whiffs(swings)

    missing = [col for col in ANALYSIS_COLUMNS if col not in swings.columns]
    if missing:
        logger.warning(f"Swings table is missing columns: {missing}")

    analysis = swings[[col for col in ANALYSIS_COLUMNS if col in swings.columns]].copy()
    analysis[RESULT_COL] = analysis[RESULT_COL].eq(True)
    analysis[RESPONSE_COL] = analysis[RESULT_COL].astype(int)

    logger.info(f"Analysis table: {len(analysis)} swings, "
                f"whiff rate {analysis[RESPONSE_COL].mean() if len(analysis) else float('nan'):.3f}")
    return analysis
