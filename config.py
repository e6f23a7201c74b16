"""
Configuration file for the whiff probability analysis.

Contains all constants, mappings, and configuration parameters used throughout the project.
"""

# Whiff definition: a swung-at pitch counts as a whiff only for these exact descriptions.
# 'swinging_pitchout' and 'swinging_pitchout_blocked' are left out on purpose; they never
# appear in the four-seam datasets this analysis was built on.
WHIFF_DESCRIPTIONS = ('foul_tip', 'swinging_strike')

# Descriptions that count as a swing (used to derive the swung-at table from all pitches)
SWING_DESCRIPTIONS = (
    'swinging_strike',
    'swinging_strike_blocked',
    'foul_tip',
    'foul',
    'foul_bunt',
    'bunt_foul_tip',
    'missed_bunt',
    'hit_into_play',
    'swinging_pitchout',
    'foul_pitchout',
)

# Column names
DESCRIPTION_COL = 'description'
RESULT_COL = 'result'
RESPONSE_COL = 'response'
SPEED_COL = 'release_speed'
SPIN_COL = 'release_spin_rate'

# Columns kept by the selector (response is appended afterwards)
ANALYSIS_COLUMNS = [RESULT_COL, SPEED_COL, SPIN_COL]

# Logistic models: name -> predictors
MODEL_SPECS = {
    'velocity': [SPEED_COL],
    'spin': [SPIN_COL],
    'combined': [SPEED_COL, SPIN_COL],
}

# Human-readable labels for plots and reports
MODEL_LABELS = {
    'velocity': 'Velocity',
    'spin': 'Spin Rate',
    'combined': 'Velocity + Spin Rate',
}

COLUMN_LABELS = {
    SPEED_COL: 'Release Speed (mph)',
    SPIN_COL: 'Release Spin Rate (rpm)',
}

# IRLS fitting parameters
FIT_CONFIG = {
    'max_iter': 25,             # Iteration cap for IRLS
    'tol': 1e-8,                # Deviance change tolerance
    'separation_tol': 1e-6,     # Fitted values this close to the response = separation
    'max_abs_eta': 30.0,        # Linear predictor beyond this = diverging coefficients
    'allow_separation': False   # Report separated fits as errors by default
}

# Upstream selection the pitch datasets were built with
QUALIFY_CONFIG = {
    'pitch_type': 'FF',         # Four-seam fastballs only
    'min_pitches': 200,         # Minimum pitches thrown per pitcher
    'pitcher_col': 'pitcher',
    'pitch_type_col': 'pitch_type'
}

# Report parameters
REPORT_CONFIG = {
    'speed_bins': [0, 90, 92, 94, 96, 98, 120],
    'spin_bins': [0, 2000, 2200, 2400, 2600, 4000],
    'dpi': 150,
    'significance_levels': [(0.001, '***'), (0.01, '**'), (0.05, '*'), (0.10, '.')]
}

# File paths
DATA_DIR = "data"
RESULTS_DIR = "results"
PITCHES_FILE = "pitches.csv"
SWINGS_FILE = "swings.csv"
