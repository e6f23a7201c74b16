"""
Visualization and export functionality for the whiff analysis results.

Contains functions for plotting predictor distributions and fitted probability
curves, and for exporting results as JSON, a text summary and an HTML table report.
"""

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd
import numpy as np
import json
import html
import os
import logging
from typing import Dict, List, Optional

from config import (
    RESULT_COL, RESPONSE_COL, SPEED_COL, SPIN_COL, MODEL_LABELS,
    COLUMN_LABELS, REPORT_CONFIG, RESULTS_DIR
)
from .models import LogisticFit, predict_probability

logger = logging.getLogger(__name__)


def _save(fig, output_dir: str, filename: str, show: bool) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    fig.tight_layout()
    fig.savefig(path, dpi=REPORT_CONFIG['dpi'], bbox_inches='tight')
    logger.info(f"Figure saved as '{path}'")
    if show:
        plt.show()
    plt.close(fig)
    return path


def plot_predictor_distributions(analysis: pd.DataFrame, output_dir: str = RESULTS_DIR,
                                 show: bool = False) -> str:
    """Histogram of release speed and spin rate, split by whiff outcome.

    Args:
        analysis (pd.DataFrame): Analysis table
        output_dir (str): Directory for the image
        show (bool): Display the figure interactively

    Returns:
        str: Path of the saved image
    """
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    hue = analysis[RESULT_COL].map({True: 'Whiff', False: 'Contact'})

    for ax, col in zip(axes, [SPEED_COL, SPIN_COL]):
        if col in analysis.columns and analysis[col].notna().any():
            sns.histplot(x=pd.to_numeric(analysis[col], errors='coerce'), hue=hue,
                         stat='density', common_norm=False, element='step', ax=ax)
        ax.set_xlabel(COLUMN_LABELS[col])
        ax.set_title(f"{COLUMN_LABELS[col]} by Outcome")
        ax.grid(True, alpha=0.3)

    return _save(fig, output_dir, 'predictor_distributions.png', show)


def plot_probability_curves(analysis: pd.DataFrame, fits: Dict[str, LogisticFit],
                            boundary: Optional[float] = None,
                            output_dir: str = RESULTS_DIR, show: bool = False) -> Optional[str]:
    """
    Fitted whiff probability against each single-predictor model's predictor.

    Observed outcomes are drawn as jittered points at 0 and 1; the velocity
    panel marks the decision boundary when one was solved.

    Returns:
        str: Path of the saved image, or None when no single-predictor model was fit
    """
    univariate = [(name, fit) for name, fit in fits.items() if len(fit.predictors) == 1]
    if not univariate:
        logger.warning("No single-predictor models to plot")
        return None

    fig, axes = plt.subplots(1, len(univariate), figsize=(7 * len(univariate), 5), squeeze=False)
    rng = np.random.default_rng(0)

    for ax, (name, fit) in zip(axes[0], univariate):
        predictor = fit.predictors[0]
        x = pd.to_numeric(analysis[predictor], errors='coerce')
        keep = x.notna()
        jitter = rng.uniform(-0.03, 0.03, size=int(keep.sum()))
        ax.scatter(x[keep], analysis.loc[keep, RESPONSE_COL] + jitter, s=6, alpha=0.2,
                   color='gray', label='Observed')

        grid = pd.DataFrame({predictor: np.linspace(x.min(), x.max(), 200)})
        ax.plot(grid[predictor], predict_probability(fit, grid), color='crimson', linewidth=2,
                label='Fitted probability')

        if boundary is not None and name == 'velocity':
            ax.axvline(boundary, color='navy', linestyle='--', label=f"p = 0.5 at {boundary:.1f}")

        ax.set_xlabel(COLUMN_LABELS.get(predictor, predictor))
        ax.set_ylabel('Whiff Probability')
        ax.set_title(f"{MODEL_LABELS.get(name, name)} Model")
        ax.legend()
        ax.grid(True, alpha=0.3)

    return _save(fig, output_dir, 'probability_curves.png', show)


def plot_combined_model(analysis: pd.DataFrame, fit: LogisticFit,
                        output_dir: str = RESULTS_DIR, show: bool = False) -> str:
    """Velocity vs spin scatter coloured by the combined model's probability, with the p = 0.5 line."""
    fig, ax = plt.subplots(figsize=(9, 7))

    speed = pd.to_numeric(analysis[SPEED_COL], errors='coerce')
    spin = pd.to_numeric(analysis[SPIN_COL], errors='coerce')
    probs = predict_probability(fit, analysis)
    keep = speed.notna() & spin.notna()

    scatter = ax.scatter(speed[keep], spin[keep], c=probs[keep], cmap='RdYlBu_r',
                         s=8, alpha=0.6, vmin=0, vmax=1)
    plt.colorbar(scatter, ax=ax, label='Predicted Whiff Probability')

    b0 = fit.intercept
    b1 = fit.coefficients[SPEED_COL]
    b2 = fit.coefficients[SPIN_COL]
    if b2 != 0 and keep.any():
        xs = np.linspace(speed[keep].min(), speed[keep].max(), 100)
        ax.plot(xs, -(b0 + b1 * xs) / b2, color='black', linestyle='--', label='p = 0.5')
        ax.set_ylim(spin[keep].min(), spin[keep].max())
        ax.legend()

    ax.set_xlabel(COLUMN_LABELS[SPEED_COL])
    ax.set_ylabel(COLUMN_LABELS[SPIN_COL])
    ax.set_title('Velocity + Spin Rate Model')
    ax.grid(True, alpha=0.3)

    return _save(fig, output_dir, 'combined_model.png', show)


def plot_whiff_rate_bins(bin_table: pd.DataFrame, predictor: str,
                         output_dir: str = RESULTS_DIR, show: bool = False) -> str:
    """Bar chart of observed whiff rate per bin, with the model's mean probability overlaid."""
    fig, ax = plt.subplots(figsize=(10, 5))
    x_pos = range(len(bin_table))

    ax.bar(x_pos, bin_table['whiff_rate'].fillna(0), color='lightcoral', alpha=0.7, label='Observed')
    if 'mean_probability' in bin_table.columns:
        ax.plot(x_pos, bin_table['mean_probability'], color='navy', marker='o', label='Model')

    ax.set_xticks(list(x_pos))
    ax.set_xticklabels(bin_table['bin'], rotation=30)
    ax.set_xlabel(COLUMN_LABELS.get(predictor, predictor))
    ax.set_ylabel('Whiff Rate')
    ax.set_title(f"Whiff Rate by {COLUMN_LABELS.get(predictor, predictor)}")
    ax.legend()
    ax.grid(True, alpha=0.3)

    return _save(fig, output_dir, f"whiff_rate_by_{predictor}.png", show)


def _to_builtin(value):
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        return None if not np.isfinite(value) else float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    return value


def export_results(fits: Dict[str, LogisticFit], evaluations: Dict[str, Dict],
                   boundary: Optional[float], failures: Dict[str, Exception],
                   output_dir: str = RESULTS_DIR, filename: str = "whiff_model_results.json") -> str:
    """Export coefficients, diagnostics, metrics, the boundary and failures to JSON.

    Returns:
        str: Path of the JSON file
    """
    export_data = {
        "models": {
            name: {
                "predictors": list(fit.predictors),
                "coefficients": {k: _to_builtin(v) for k, v in fit.coefficients.items()},
                "std_errors": {k: _to_builtin(v) for k, v in fit.std_errors.items()},
                "p_values": {k: _to_builtin(v) for k, v in fit.p_values.items()},
                "converged": fit.converged,
                "separated": fit.separated,
                "iterations": fit.iterations,
                "n_obs": fit.n_obs,
                "n_excluded": fit.n_excluded,
                "aic": _to_builtin(fit.aic),
                "pseudo_r2": _to_builtin(fit.pseudo_r2),
                "evaluation": {k: _to_builtin(v) for k, v in evaluations.get(name, {}).items()}
            }
            for name, fit in fits.items()
        },
        "velocity_boundary": _to_builtin(boundary) if boundary is not None else None,
        "failures": {name: f"{type(e).__name__}: {e}" for name, e in failures.items()}
    }

    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, 'w') as f:
        json.dump(export_data, f, indent=2)

    logger.info(f"Results exported to {path}")
    return path


def _color_pval(val):
    if isinstance(val, float) and np.isfinite(val):
        if val < 0.05:
            return "color: #2ecc71"
        if val < 0.10:
            return "color: #f39c12"
        return "color: #e74c3c"
    return ""


def render_html_report(tables: Dict[str, pd.DataFrame], output_dir: str = RESULTS_DIR,
                       filename: str = "whiff_report.html", title: str = "Whiff Probability Analysis") -> str:
    """
    Render a set of tables into one styled HTML page.

    Any table with a 'p_value' column gets its p-values coloured by significance.

    Args:
        tables (Dict[str, pd.DataFrame]): Section heading -> table
        output_dir (str): Output directory
        filename (str): HTML file name
        title (str): Page title

    Returns:
        str: Path of the HTML file
    """
    safe_title = html.escape(title)
    sections = [f"<h1>{safe_title}</h1>"]
    for heading, table in tables.items():
        sections.append(f"<h2>{html.escape(heading)}</h2>")
        if table is None or table.empty:
            sections.append("<p>No data.</p>")
            continue
        styler = table.style.format(precision=4).hide(axis='index')
        if 'p_value' in table.columns:
            styler = styler.map(_color_pval, subset=['p_value'])
        sections.append(styler.to_html())

    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    with open(path, 'w', encoding='utf-8') as f:
        f.write("<html><head><meta charset='utf-8'><title>" + safe_title + "</title></head><body>\n")
        f.write("\n".join(sections))
        f.write("\n</body></html>\n")

    logger.info(f"HTML report saved as '{path}'")
    return path


def save_summary_report(fits: Dict[str, LogisticFit], evaluations: Dict[str, Dict],
                        boundary: Optional[float], insights: Dict[str, List[str]],
                        output_dir: str = RESULTS_DIR, filename: str = "analysis_summary.txt") -> str:
    """Generate and save a plain-text summary report.

    Returns:
        str: Path of the text file
    """
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)

    with open(path, 'w', encoding='utf-8') as f:
        f.write("WHIFF PROBABILITY ANALYSIS - SUMMARY\n")
        f.write("=" * 50 + "\n\n")

        f.write("FITTED MODELS\n")
        f.write("-" * 20 + "\n")
        for name, fit in fits.items():
            f.write(f"{MODEL_LABELS.get(name, name)} (n = {fit.n_obs}, excluded = {fit.n_excluded})\n")
            for term, value in fit.coefficients.items():
                f.write(f"  {term:<20} {value: .6f}  (p = {fit.p_values.get(term, float('nan')):.4g})\n")
            metrics = evaluations.get(name, {})
            if 'accuracy' in metrics:
                f.write(f"  Accuracy: {metrics['accuracy']:.3f}, AUC: {metrics['roc_auc']:.3f}\n")
            f.write("\n")

        f.write("DECISION BOUNDARY\n")
        f.write("-" * 20 + "\n")
        if boundary is not None:
            f.write(f"Velocity at 50% whiff probability: {boundary:.2f} mph\n")
        else:
            f.write("Not available\n")

        f.write("\nFINDINGS\n")
        f.write("-" * 15 + "\n")
        for category, items in insights.items():
            f.write(f"\n{category}:\n")
            for item in items:
                f.write(f"  • {item}\n")

    logger.info(f"Summary report saved as '{path}'")
    return path
