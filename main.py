"""
Main execution file for the Whiff Probability Analysis.

This file orchestrates the pipeline from data loading through labeling,
logistic model fitting, prediction, boundary solving and report generation.

Author: Whiff Analysis contributors
Version: 1.0
Last Updated: 10/18/2026
"""

import argparse
import logging
import warnings
from typing import Dict, Optional

from whiff_analysis.data_processing import (
    WhiffDataLoader, filter_qualified_pitches, label_whiffs, build_analysis_frame
)
from whiff_analysis.models import (
    fit_whiff_models, add_predictions, solve_decision_boundary, evaluate_model
)
from whiff_analysis.analysis import (
    description_summary, predictor_summary, whiff_rate_by_bin,
    coefficient_table, model_comparison, generate_insights
)
from whiff_analysis.visualization import (
    plot_predictor_distributions, plot_probability_curves, plot_combined_model,
    plot_whiff_rate_bins, export_results, render_html_report, save_summary_report
)
from whiff_analysis.exceptions import ModelFitError, DegenerateBoundaryError
from config import (
    DATA_DIR, RESULTS_DIR, PITCHES_FILE, SWINGS_FILE, FIT_CONFIG,
    QUALIFY_CONFIG, SPEED_COL, SPIN_COL
)

logger = logging.getLogger(__name__)


def run_pipeline(data_dir: str = DATA_DIR, output_dir: str = RESULTS_DIR,
                 pitches_file: str = PITCHES_FILE, swings_file: str = SWINGS_FILE,
                 qualify: bool = False, allow_separation: bool = FIT_CONFIG['allow_separation'],
                 make_plots: bool = True, show: bool = False) -> Dict:
    """Run the end-to-end analysis: load, label, select, fit, predict, solve, report.

    Steps:
        1) Load the pitch and swung-at tables (optionally re-applying the
           four-seam / 200-pitch qualification).
        2) Label whiffs on both tables.
        3) Build the analysis table from the swung-at pitches.
        4) Fit the velocity, spin and combined logistic models.
        5) Add predicted probabilities and solve the velocity decision boundary.
        6) Evaluate each model and build descriptive tables.
        7) Write figures, JSON, the HTML table report and the text summary.

    A model that fails to fit, or a flat velocity model, is logged and
    recorded; the rest of the pipeline still runs.

    Returns:
        Dict: pitches, analysis, fits, failures, boundary, evaluations, tables, insights
    """
    logger.info("Starting whiff probability analysis...")

    loader = WhiffDataLoader(data_dir=data_dir, pitches_file=pitches_file, swings_file=swings_file)

    logger.info("Step 1: Loading data...")
    pitches, swings = loader.load_datasets()
    if qualify:
        pitches = filter_qualified_pitches(pitches)
        swings = filter_qualified_pitches(swings, min_pitches=0)
        swings = swings[swings[QUALIFY_CONFIG['pitcher_col']].isin(pitches[QUALIFY_CONFIG['pitcher_col']])]

    logger.info("Step 2: Labeling whiffs...")
    pitches = label_whiffs(pitches)
    swings = label_whiffs(swings)

    logger.info("Step 3: Building analysis table...")
    analysis = build_analysis_frame(swings)

    logger.info("Step 4: Fitting logistic models...")
    fits, failures = fit_whiff_models(analysis, allow_separation=allow_separation)

    logger.info("Step 5: Predicting probabilities and solving the velocity boundary...")
    analysis = add_predictions(analysis, fits)

    boundary: Optional[float] = None
    if 'velocity' in fits:
        try:
            boundary = solve_decision_boundary(fits['velocity'])
        except (DegenerateBoundaryError, ModelFitError) as e:
            logger.error(f"No velocity boundary: {str(e)}")
            failures['boundary'] = e

    logger.info("Step 6: Evaluating models and building tables...")
    evaluations = {name: evaluate_model(fit, analysis) for name, fit in fits.items()}

    tables = {
        'Outcome Descriptions': description_summary(pitches),
        'Predictors by Outcome': predictor_summary(analysis),
        'Whiff Rate by Velocity': whiff_rate_by_bin(
            analysis, SPEED_COL, prob_col='prob_velocity' if 'velocity' in fits else None),
        'Whiff Rate by Spin Rate': whiff_rate_by_bin(
            analysis, SPIN_COL, prob_col='prob_spin' if 'spin' in fits else None),
        'Coefficients': coefficient_table(fits),
        'Model Comparison': model_comparison(fits, evaluations)
    }
    insights = generate_insights(fits, boundary, evaluations, failures)

    logger.info("Step 7: Writing reports...")
    if make_plots:
        plot_predictor_distributions(analysis, output_dir, show=show)
        plot_probability_curves(analysis, fits, boundary, output_dir, show=show)
        if 'combined' in fits:
            plot_combined_model(analysis, fits['combined'], output_dir, show=show)
        plot_whiff_rate_bins(tables['Whiff Rate by Velocity'], SPEED_COL, output_dir, show=show)
        plot_whiff_rate_bins(tables['Whiff Rate by Spin Rate'], SPIN_COL, output_dir, show=show)

    export_results(fits, evaluations, boundary, failures, output_dir)
    render_html_report(tables, output_dir)
    save_summary_report(fits, evaluations, boundary, insights, output_dir)

    for category, items in insights.items():
        logger.info(f"{category}:")
        for item in items:
            logger.info(f"  • {item}")

    logger.info("Whiff analysis completed successfully!")

    return {
        'pitches': pitches,
        'analysis': analysis,
        'fits': fits,
        'failures': failures,
        'boundary': boundary,
        'evaluations': evaluations,
        'tables': tables,
        'insights': insights
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fit whiff probability models on Statcast pitch data.")
    parser.add_argument("--data-dir", default=DATA_DIR, help="Directory holding the input CSV files")
    parser.add_argument("--pitches", default=PITCHES_FILE, help="File name of the full pitch table")
    parser.add_argument("--swings", default=SWINGS_FILE, help="File name of the swung-at table")
    parser.add_argument("--out", default=RESULTS_DIR, help="Directory for figures and reports")
    parser.add_argument("--qualify", action="store_true",
                        help="Re-apply the four-seam / minimum pitch count selection")
    parser.add_argument("--allow-separation", action="store_true",
                        help="Keep perfectly separated fits instead of reporting them as failures")
    parser.add_argument("--no-plots", action="store_true", help="Skip figure generation")
    parser.add_argument("--show", action="store_true", help="Display figures interactively")
    args = parser.parse_args(argv)

    # Configure logging and suppress library warnings for cleaner output
    warnings.filterwarnings('ignore')
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    try:
        return run_pipeline(
            data_dir=args.data_dir,
            output_dir=args.out,
            pitches_file=args.pitches,
            swings_file=args.swings,
            qualify=args.qualify,
            allow_separation=args.allow_separation,
            make_plots=not args.no_plots,
            show=args.show
        )
    except Exception as e:
        logger.error(f"Error in main execution: {str(e)}")
        raise


if __name__ == "__main__":
    main()
    print("\nAnalysis complete! Check the results directory for:")
    print("- predictor_distributions.png, probability_curves.png, combined_model.png")
    print("- whiff_model_results.json (coefficients and metrics)")
    print("- whiff_report.html (tables)")
    print("- analysis_summary.txt (summary report)")
