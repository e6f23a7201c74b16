"""
Logistic regression models for whiff probability.

Contains the IRLS fitting wrapper around statsmodels, the inverse-logit
predictor, the decision-boundary solver, and model evaluation metrics.
"""

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import PerfectSeparationError, PerfectSeparationWarning
from scipy.special import expit
from sklearn.metrics import accuracy_score, roc_auc_score, log_loss, brier_score_loss
from dataclasses import dataclass
import warnings
import logging
from typing import Dict, List, Sequence, Tuple, Optional

from config import FIT_CONFIG, MODEL_SPECS, RESPONSE_COL
from .exceptions import (
    MalformedRecordError, ModelFitError, DegenerateResponseError,
    SeparationError, ConvergenceError, DegenerateBoundaryError
)

logger = logging.getLogger(__name__)

INTERCEPT = 'const'


@dataclass(frozen=True)
class LogisticFit:
    """
    Fitted binomial logistic regression of the whiff response on one or two predictors.

    Coefficients are keyed by term: 'const' for the intercept, then one entry
    per predictor in the order the model was specified.

    Attributes:
        name (str): Model name ('velocity', 'spin', 'combined')
        predictors (Tuple[str, ...]): Predictor columns
        coefficients (Dict[str, float]): Intercept and slopes
        std_errors (Dict[str, float]): Standard errors per term
        p_values (Dict[str, float]): Wald p-values per term
        converged (bool): Whether IRLS met the tolerance
        separated (bool): Whether perfect separation was detected
        iterations (int): IRLS iterations used
        n_obs (int): Rows used in the fit
        n_excluded (int): Rows dropped for missing/non-numeric predictors
        deviance (float): Residual deviance
        null_deviance (float): Intercept-only deviance
        aic (float): Akaike information criterion
    """
    name: str
    predictors: Tuple[str, ...]
    coefficients: Dict[str, float]
    std_errors: Dict[str, float]
    p_values: Dict[str, float]
    converged: bool
    separated: bool
    iterations: int
    n_obs: int
    n_excluded: int
    deviance: float
    null_deviance: float
    aic: float

    @property
    def intercept(self) -> float:
        return self.coefficients[INTERCEPT]

    @property
    def slopes(self) -> List[float]:
        return [self.coefficients[p] for p in self.predictors]

    @property
    def pseudo_r2(self) -> float:
        """McFadden-style deviance ratio."""
        if self.null_deviance == 0:
            return float('nan')
        return 1.0 - self.deviance / self.null_deviance

    def params(self) -> pd.Series:
        return pd.Series(self.coefficients, index=[INTERCEPT] + list(self.predictors), dtype=float)


def _numeric_predictors(data: pd.DataFrame, predictors: Sequence[str],
                        model_name: Optional[str] = None) -> pd.DataFrame:
    """Coerce predictor columns to floats, non-numeric values become NaN."""
    missing = [p for p in predictors if p not in data.columns]
    if missing:
        raise MalformedRecordError(
            f"Model '{model_name}' needs columns {missing} which are not in the table",
            columns=missing, model_name=model_name
        )
    return data[list(predictors)].apply(pd.to_numeric, errors='coerce').astype(float)


def fit_logistic_model(data: pd.DataFrame, predictors: Sequence[str],
                       name: Optional[str] = None,
                       response: str = RESPONSE_COL,
                       max_iter: int = FIT_CONFIG['max_iter'],
                       tol: float = FIT_CONFIG['tol'],
                       allow_separation: bool = FIT_CONFIG['allow_separation'],
                       separation_tol: float = FIT_CONFIG['separation_tol'],
                       max_abs_eta: float = FIT_CONFIG['max_abs_eta']) -> LogisticFit:
    """
    Fit a binomial logistic regression of the response on the given predictors.

    The fit uses statsmodels' GLM with a Binomial family, i.e. iteratively
    reweighted least squares, stopping when the deviance changes by less than
    `tol` or after `max_iter` iterations. Rows with a missing or non-numeric
    value in any of this model's predictors are excluded from this fit only.

    Args:
        data (pd.DataFrame): Analysis table with the response and predictors
        predictors (Sequence[str]): One or more predictor columns
        name (str): Model name used in logs and errors
        response (str): 0/1 response column
        max_iter (int): IRLS iteration cap
        tol (float): Deviance change tolerance
        allow_separation (bool): Return separated fits (flagged) instead of raising
        separation_tol (float): Max |fitted - response| that counts as separation
        max_abs_eta (float): Largest |linear predictor| before the fit counts as diverging

    Returns:
        LogisticFit: Coefficients and fit diagnostics

    Raises:
        MalformedRecordError: A predictor or the response column is absent
        DegenerateResponseError: Single response class or too few usable rows
        SeparationError: Perfect separation and allow_separation is False
        ConvergenceError: IRLS hit the iteration cap without converging
        ModelFitError: Non-finite coefficients or a numerical failure
    """
    predictors = list(predictors)
    name = name or '+'.join(predictors)
    if not predictors:
        raise MalformedRecordError(f"Model '{name}' has no predictors", model_name=name)
    if response not in data.columns:
        raise MalformedRecordError(
            f"Model '{name}' needs response column '{response}'",
            columns=[response], model_name=name
        )

    X = _numeric_predictors(data, predictors, name)
    y = pd.to_numeric(data[response], errors='coerce')

    usable = X.notna().all(axis=1) & y.notna()
    n_excluded = int((~usable).sum())
    if n_excluded:
        logger.info(f"Model '{name}': excluding {n_excluded} rows with missing or non-numeric values")

    X = X[usable]
    y = y[usable].astype(float)

    if y.nunique() < 2:
        raise DegenerateResponseError(
            f"Model '{name}' needs both whiffs and non-whiffs, got {y.nunique()} class(es) "
            f"over {len(y)} rows", model_name=name
        )
    if len(y) <= len(predictors) + 1:
        raise DegenerateResponseError(
            f"Model '{name}' has {len(y)} usable rows for {len(predictors) + 1} parameters",
            model_name=name
        )

    design = sm.add_constant(X, has_constant='add')

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        try:
            result = sm.GLM(y, design, family=sm.families.Binomial()).fit(maxiter=max_iter, tol=tol)
        except PerfectSeparationError as e:
            raise SeparationError(f"Model '{name}': {str(e)}", model_name=name) from e
        except (np.linalg.LinAlgError, ValueError) as e:
            raise ModelFitError(f"Model '{name}' failed to fit: {str(e)}", model_name=name) from e

    params = result.params
    if not np.all(np.isfinite(params.values)):
        raise ModelFitError(f"Model '{name}' produced non-finite coefficients", model_name=name)

    for w in caught:
        if not issubclass(w.category, PerfectSeparationWarning):
            logger.debug(f"Model '{name}': {w.category.__name__}: {w.message}")

    # A fit that classifies every row correctly at p = 0.5 means the data are
    # linearly separable and the maximum likelihood estimate does not exist.
    # Quasi-complete separation (ties at the cut point) still converges, but
    # pushes the linear predictor of the separated rows past max_abs_eta.
    fitted = np.asarray(result.fittedvalues, dtype=float)
    observed = y.values == 1
    eta = design.values @ params.values
    separated = (any(issubclass(w.category, PerfectSeparationWarning) for w in caught)
                 or np.allclose(fitted, y.values, rtol=0.0, atol=separation_tol)
                 or bool(np.all(np.where(observed, fitted > 0.5, fitted < 0.5)))
                 or float(np.max(np.abs(eta))) > max_abs_eta)
    converged = bool(getattr(result, 'converged', True))
    iterations = int(getattr(result, 'fit_history', {}).get('iteration', max_iter))

    if separated:
        if not allow_separation:
            raise SeparationError(
                f"Model '{name}': predictors perfectly separate the response, "
                f"coefficients are not identified", model_name=name
            )
        logger.warning(f"Model '{name}': perfect separation detected, coefficients are unbounded estimates")
    elif not converged:
        raise ConvergenceError(
            f"Model '{name}' did not converge in {max_iter} IRLS iterations",
            model_name=name, iterations=iterations
        )

    fit = LogisticFit(
        name=name,
        predictors=tuple(predictors),
        coefficients={term: float(v) for term, v in params.items()},
        std_errors={term: float(v) for term, v in result.bse.items()},
        p_values={term: float(v) for term, v in result.pvalues.items()},
        converged=converged,
        separated=separated,
        iterations=iterations,
        n_obs=int(result.nobs),
        n_excluded=n_excluded,
        deviance=float(result.deviance),
        null_deviance=float(result.null_deviance),
        aic=float(result.aic)
    )

    terms = ', '.join(f"{term}={value:.5g}" for term, value in fit.coefficients.items())
    logger.info(f"Model '{name}': {terms} (n={fit.n_obs}, iterations={fit.iterations}, AIC={fit.aic:.1f})")
    return fit


def fit_whiff_models(analysis: pd.DataFrame,
                     model_specs: Optional[Dict[str, List[str]]] = None,
                     **fit_kwargs) -> Tuple[Dict[str, LogisticFit], Dict[str, Exception]]:
    """
    Fit every configured model independently over the same analysis table.

    A failure in one model is logged and recorded; the others still run.

    Args:
        analysis (pd.DataFrame): Output of build_analysis_frame
        model_specs (Dict[str, List[str]]): Model name -> predictors (default: MODEL_SPECS)
        **fit_kwargs: Passed through to fit_logistic_model

    Returns:
        Tuple containing:
        - Fitted models by name
        - Errors by name for the models that failed
    """
    model_specs = model_specs or MODEL_SPECS
    fits = {}
    failures = {}

    for name, predictors in model_specs.items():
        try:
            fits[name] = fit_logistic_model(analysis, predictors, name=name, **fit_kwargs)
        except (MalformedRecordError, ModelFitError) as e:
            logger.error(f"Model '{name}' failed: {str(e)}")
            failures[name] = e

    return fits, failures


def inverse_logit(eta):
    """Logistic transform 1 / (1 + exp(-eta)), stable for large |eta|."""
    return expit(eta)


def linear_predictor(fit: LogisticFit, data: pd.DataFrame) -> pd.Series:
    """Compute eta = b0 + sum(b_i * x_i) for every row (NaN where a predictor is missing)."""
    X = _numeric_predictors(data, fit.predictors, fit.name)
    eta = pd.Series(fit.intercept, index=data.index, dtype=float)
    for predictor in fit.predictors:
        eta = eta + fit.coefficients[predictor] * X[predictor]
    return eta


def predict_probability(fit: LogisticFit, data: pd.DataFrame) -> pd.Series:
    """
    Predicted whiff probability for each row.

    Args:
        fit (LogisticFit): Fitted model
        data (pd.DataFrame): Rows carrying the model's predictor columns

    Returns:
        pd.Series: Probabilities aligned with data's index

    Raises:
        MalformedRecordError: A predictor column is absent
    """
    eta = linear_predictor(fit, data)
    return pd.Series(inverse_logit(eta.values), index=data.index, name=f"prob_{fit.name}")


def add_predictions(analysis: pd.DataFrame, fits: Dict[str, LogisticFit]) -> pd.DataFrame:
    """Return a copy of the analysis table with a 'prob_<model>' column per fit."""
    df = analysis.copy()
    for name, fit in fits.items():
        df[f"prob_{name}"] = predict_probability(fit, df)
    return df


def decision_boundary(intercept: float, slope: float) -> float:
    """
    Solve 0 = b0 + b1 * x for x, the predictor value where p = 0.5.

    Raises:
        DegenerateBoundaryError: Slope is zero or a coefficient is not finite
    """
    if not (np.isfinite(intercept) and np.isfinite(slope)):
        raise DegenerateBoundaryError(
            f"Coefficients must be finite, got intercept={intercept}, slope={slope}"
        )
    if slope == 0:
        raise DegenerateBoundaryError("Slope is zero, the model is flat and has no decision boundary")
    return -intercept / slope


def solve_decision_boundary(fit: LogisticFit) -> float:
    """Decision boundary of a single-predictor model, in that predictor's units."""
    if len(fit.predictors) != 1:
        raise ModelFitError(
            f"Model '{fit.name}' has {len(fit.predictors)} predictors, "
            f"a boundary value needs exactly one", model_name=fit.name
        )
    boundary = decision_boundary(fit.intercept, fit.coefficients[fit.predictors[0]])
    logger.info(f"Model '{fit.name}': p = 0.5 at {fit.predictors[0]} = {boundary:.3f}")
    return boundary


def evaluate_model(fit: LogisticFit, data: pd.DataFrame,
                   response: str = RESPONSE_COL, threshold: float = 0.5) -> Dict:
    """Score a fitted model against the observed response on its usable rows.

    Args:
        fit (LogisticFit): Fitted model
        data (pd.DataFrame): Analysis table
        response (str): 0/1 response column
        threshold (float): Probability cut for the accuracy metric

    Returns:
        Dict: n, accuracy, roc_auc, log_loss, brier, observed_rate, mean_predicted
    """
    probs = predict_probability(fit, data)
    y = pd.to_numeric(data[response], errors='coerce')
    usable = probs.notna() & y.notna()
    probs = probs[usable].values
    y = y[usable].astype(int).values

    if len(y) == 0:
        logger.warning(f"Model '{fit.name}': no rows to evaluate")
        return {'n': 0}

    metrics = {
        'n': int(len(y)),
        'accuracy': float(accuracy_score(y, (probs >= threshold).astype(int))),
        'log_loss': float(log_loss(y, probs, labels=[0, 1])),
        'brier': float(brier_score_loss(y, probs)),
        'observed_rate': float(y.mean()),
        'mean_predicted': float(probs.mean())
    }
    metrics['roc_auc'] = float(roc_auc_score(y, probs)) if len(np.unique(y)) == 2 else float('nan')

    logger.info(f"Model '{fit.name}': accuracy {metrics['accuracy']:.4f}, AUC {metrics['roc_auc']:.4f}")
    return metrics
