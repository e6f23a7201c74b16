"""
Analysis module for descriptive whiff statistics and model summaries.

Contains the tables that sit alongside the logistic models: outcome counts,
predictor summaries by outcome, binned whiff rates, coefficient tables and
readable findings.
"""

import pandas as pd
import numpy as np
import logging
from typing import Dict, List, Optional, Sequence

from config import (
    WHIFF_DESCRIPTIONS, DESCRIPTION_COL, RESULT_COL, RESPONSE_COL,
    SPEED_COL, SPIN_COL, MODEL_LABELS, REPORT_CONFIG
)
from .models import LogisticFit, INTERCEPT

logger = logging.getLogger(__name__)


def description_summary(pitches: pd.DataFrame) -> pd.DataFrame:
    """Count pitches per outcome description and flag the ones labeled as whiffs.

    Args:
        pitches (pd.DataFrame): Pitch table with a description column

    Returns:
        pd.DataFrame: description, count, share, is_whiff sorted by count
    """
    if DESCRIPTION_COL not in pitches.columns or pitches.empty:
        logger.warning("No descriptions to summarize")
        return pd.DataFrame(columns=['description', 'count', 'share', 'is_whiff'])

    counts = pitches[DESCRIPTION_COL].value_counts()
    summary = pd.DataFrame({
        'description': counts.index,
        'count': counts.values,
    })
    summary['share'] = summary['count'] / summary['count'].sum()
    summary['is_whiff'] = summary['description'].isin(WHIFF_DESCRIPTIONS)
    return summary.reset_index(drop=True)


def predictor_summary(analysis: pd.DataFrame,
                      columns: Sequence[str] = (SPEED_COL, SPIN_COL)) -> pd.DataFrame:
    """Describe each predictor separately for whiffs and contact.

    Returns:
        pd.DataFrame: One row per (predictor, result) with count, mean, std, min, max
    """
    rows = []
    for col in columns:
        if col not in analysis.columns:
            continue
        values = pd.to_numeric(analysis[col], errors='coerce')
        for result, group in values.groupby(analysis[RESULT_COL]):
            rows.append({
                'predictor': col,
                'result': bool(result),
                'count': int(group.count()),
                'mean': group.mean(),
                'std': group.std(),
                'min': group.min(),
                'max': group.max()
            })
    return pd.DataFrame(rows)


def whiff_rate_by_bin(analysis: pd.DataFrame, column: str,
                      bins: Optional[Sequence[float]] = None,
                      prob_col: Optional[str] = None) -> pd.DataFrame:
    """
    Observed whiff rate within predictor bins, optionally next to a model's mean probability.

    Args:
        analysis (pd.DataFrame): Analysis table, optionally with prob_<model> columns
        column (str): Predictor to bin
        bins (Sequence[float]): Bin edges (default from REPORT_CONFIG)
        prob_col (str): Predicted probability column to average per bin

    Returns:
        pd.DataFrame: bin, swings, whiffs, whiff_rate[, mean_probability]
    """
    if bins is None:
        bins = REPORT_CONFIG['speed_bins'] if column == SPEED_COL else REPORT_CONFIG['spin_bins']

    if column not in analysis.columns:
        logger.warning(f"No '{column}' column to bin")
        return pd.DataFrame(columns=['bin', 'swings', 'whiffs', 'whiff_rate'])

    values = pd.to_numeric(analysis[column], errors='coerce')
    binned = pd.cut(values, bins=list(bins))
    grouped = analysis.groupby(binned, observed=False)

    table = pd.DataFrame({
        'swings': grouped[RESPONSE_COL].count(),
        'whiffs': grouped[RESPONSE_COL].sum(),
    })
    table['whiff_rate'] = table['whiffs'] / table['swings'].replace(0, np.nan)
    if prob_col is not None and prob_col in analysis.columns:
        table['mean_probability'] = grouped[prob_col].mean()

    table.index = table.index.astype(str)
    table.index.name = 'bin'
    return table.reset_index()


def _significance(p_value: float) -> str:
    for level, marker in REPORT_CONFIG['significance_levels']:
        if p_value < level:
            return marker
    return ""


def coefficient_table(fits: Dict[str, LogisticFit]) -> pd.DataFrame:
    """Term-level estimates for every fitted model, with odds ratios and significance markers."""
    rows = []
    for name, fit in fits.items():
        for term in [INTERCEPT] + list(fit.predictors):
            estimate = fit.coefficients[term]
            p_value = fit.p_values.get(term, np.nan)
            rows.append({
                'model': name,
                'term': 'Intercept' if term == INTERCEPT else term,
                'estimate': estimate,
                'std_err': fit.std_errors.get(term, np.nan),
                'p_value': p_value,
                'odds_ratio': np.exp(estimate) if term != INTERCEPT else np.nan,
                'sig': _significance(p_value) if np.isfinite(p_value) else ""
            })
    return pd.DataFrame(rows, columns=['model', 'term', 'estimate', 'std_err',
                                       'p_value', 'odds_ratio', 'sig'])


def model_comparison(fits: Dict[str, LogisticFit],
                     evaluations: Optional[Dict[str, Dict]] = None) -> pd.DataFrame:
    """One row per model with fit diagnostics and, when given, evaluation metrics."""
    evaluations = evaluations or {}
    rows = []
    for name, fit in fits.items():
        row = {
            'model': name,
            'predictors': ' + '.join(fit.predictors),
            'n_obs': fit.n_obs,
            'n_excluded': fit.n_excluded,
            'deviance': fit.deviance,
            'null_deviance': fit.null_deviance,
            'aic': fit.aic,
            'pseudo_r2': fit.pseudo_r2,
            'converged': fit.converged,
            'separated': fit.separated
        }
        metrics = evaluations.get(name, {})
        for key in ['accuracy', 'roc_auc', 'log_loss', 'brier']:
            row[key] = metrics.get(key, np.nan)
        rows.append(row)
    return pd.DataFrame(rows)


def generate_insights(fits: Dict[str, LogisticFit], boundary: Optional[float] = None,
                      evaluations: Optional[Dict[str, Dict]] = None,
                      failures: Optional[Dict[str, Exception]] = None) -> Dict[str, List[str]]:
    """Turn fitted models into short readable findings.

    Args:
        fits (Dict[str, LogisticFit]): Fitted models by name
        boundary (float): Velocity decision boundary, if one was solved
        evaluations (Dict[str, Dict]): evaluate_model output by name
        failures (Dict[str, Exception]): Models that could not be fit

    Returns:
        Dict[str, List[str]]: Findings grouped by topic
    """
    evaluations = evaluations or {}
    insights = {
        "Model Effects": [],
        "Decision Boundary": [],
        "Model Quality": []
    }

    for name, fit in fits.items():
        label = MODEL_LABELS.get(name, name)
        for predictor in fit.predictors:
            slope = fit.coefficients[predictor]
            direction = "raises" if slope > 0 else "lowers"
            # Spin rate effects read better per 100 rpm
            unit, scale = ("100 rpm", 100.0) if predictor == SPIN_COL else ("1 mph", 1.0)
            insights["Model Effects"].append(
                f"{label}: each {unit} of {predictor} {direction} the whiff odds by a factor of "
                f"{np.exp(slope * scale):.3f} (p = {fit.p_values.get(predictor, np.nan):.3g})"
            )

    if boundary is not None:
        insights["Decision Boundary"].append(
            f"The velocity model predicts a 50% whiff probability at {boundary:.1f} mph"
        )
    else:
        insights["Decision Boundary"].append("No velocity decision boundary was produced")

    if evaluations:
        best = max(evaluations.items(), key=lambda kv: np.nan_to_num(kv[1].get('roc_auc', np.nan)))
        insights["Model Quality"].append(
            f"Best discrimination: {MODEL_LABELS.get(best[0], best[0])} (AUC {best[1].get('roc_auc', np.nan):.3f})"
        )
    for name, fit in fits.items():
        insights["Model Quality"].append(
            f"{MODEL_LABELS.get(name, name)}: AIC {fit.aic:.1f}, pseudo R² {fit.pseudo_r2:.4f}, "
            f"{fit.n_obs} swings used"
        )
    for name, error in (failures or {}).items():
        insights["Model Quality"].append(f"{MODEL_LABELS.get(name, name)} could not be fit: {error}")

    return insights
