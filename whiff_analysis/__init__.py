"""
Whiff Probability Analysis

Logistic regression study of how four-seam fastball release speed and spin
rate relate to the chance that a swing ends in a whiff, built on Statcast
pitch data.

Author: Whiff Analysis contributors
Version: 1.0
"""

from .data_processing import (
    WhiffDataLoader, select_swings, filter_qualified_pitches, label_whiffs, build_analysis_frame
)
from .models import (
    LogisticFit, fit_logistic_model, fit_whiff_models, predict_probability, add_predictions,
    inverse_logit, decision_boundary, solve_decision_boundary, evaluate_model
)
from .exceptions import (
    WhiffAnalysisError, MalformedRecordError, ModelFitError, DegenerateResponseError,
    SeparationError, ConvergenceError, DegenerateBoundaryError
)

__version__ = "1.0"
__author__ = "Whiff Analysis contributors"

__all__ = [
    'WhiffDataLoader',
    'select_swings',
    'filter_qualified_pitches',
    'label_whiffs',
    'build_analysis_frame',
    'LogisticFit',
    'fit_logistic_model',
    'fit_whiff_models',
    'predict_probability',
    'add_predictions',
    'inverse_logit',
    'decision_boundary',
    'solve_decision_boundary',
    'evaluate_model',
    'WhiffAnalysisError',
    'MalformedRecordError',
    'ModelFitError',
    'DegenerateResponseError',
    'SeparationError',
    'ConvergenceError',
    'DegenerateBoundaryError'
]
