"""
Error types raised by the whiff analysis pipeline.
"""

from typing import Optional


class WhiffAnalysisError(Exception):
    """Base class for all analysis errors."""


class MalformedRecordError(WhiffAnalysisError):
    """A column needed by a model is missing from the table."""

    def __init__(self, message: str, columns=None, model_name: Optional[str] = None):
        super().__init__(message)
        self.columns = list(columns or [])
        self.model_name = model_name


class ModelFitError(WhiffAnalysisError):
    """A logistic regression could not be fit."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        super().__init__(message)
        self.model_name = model_name


class DegenerateResponseError(ModelFitError):
    """Fewer than two response classes, or too few rows for the parameters."""


class SeparationError(ModelFitError):
    """The predictors perfectly separate whiffs from contact."""


class ConvergenceError(ModelFitError):
    """IRLS did not converge within the iteration cap."""

    def __init__(self, message: str, model_name: Optional[str] = None, iterations: int = 0):
        super().__init__(message, model_name=model_name)
        self.iterations = iterations


class DegenerateBoundaryError(WhiffAnalysisError):
    """No decision boundary exists for a flat (zero-slope) model."""
