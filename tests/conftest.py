"""Shared pytest fixtures for test modules."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit


DESCRIPTIONS = ['swinging_strike', 'foul_tip', 'foul', 'hit_into_play', 'ball', 'called_strike']


@pytest.fixture
def swing_frame() -> pd.DataFrame:
    """Two hundred synthetic swings whose whiff odds rise with speed and spin."""
    rng = np.random.default_rng(7)
    n = 200
    speed = rng.normal(94.0, 2.0, n)
    spin = rng.normal(2300.0, 150.0, n)
    eta = -0.8 + 0.35 * (speed - 94.0) + 0.004 * (spin - 2300.0)
    whiff = rng.random(n) < expit(eta)
    description = np.where(
        whiff,
        rng.choice(['swinging_strike', 'foul_tip'], n),
        rng.choice(['foul', 'hit_into_play'], n)
    )
    return pd.DataFrame({
        'pitcher': rng.choice([1, 2, 3], n),
        'pitch_type': 'FF',
        'description': description,
        'release_speed': speed.round(1),
        'release_spin_rate': spin.round(0),
        'zone': rng.integers(1, 15, n),
    })


@pytest.fixture
def pitch_frame(swing_frame: pd.DataFrame) -> pd.DataFrame:
    """Swings plus taken pitches."""
    rng = np.random.default_rng(11)
    n = 100
    taken = pd.DataFrame({
        'pitcher': rng.choice([1, 2, 3], n),
        'pitch_type': 'FF',
        'description': rng.choice(['ball', 'called_strike', 'blocked_ball'], n),
        'release_speed': rng.normal(94.0, 2.0, n).round(1),
        'release_spin_rate': rng.normal(2300.0, 150.0, n).round(0),
        'zone': rng.integers(1, 15, n),
    })
    return pd.concat([swing_frame, taken], ignore_index=True)


@pytest.fixture
def overlapping_speeds() -> pd.DataFrame:
    """Small velocity-only table where whiffs and contact overlap."""
    return pd.DataFrame({
        'release_speed': [90.0, 91.0, 92.0, 93.0, 94.0, 95.0, 96.0, 97.0, 98.0, 99.0],
        'response': [0, 0, 1, 0, 0, 1, 0, 1, 1, 1],
    })


@pytest.fixture
def data_dir(tmp_path, pitch_frame: pd.DataFrame, swing_frame: pd.DataFrame):
    """Directory with pitches.csv and swings.csv written from the fixtures."""
    pitch_frame.to_csv(tmp_path / "pitches.csv", index=False)
    swing_frame.to_csv(tmp_path / "swings.csv", index=False)
    return tmp_path
