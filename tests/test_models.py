import numpy as np
import pandas as pd
import pytest

from whiff_analysis.data_processing import build_analysis_frame, label_whiffs
from whiff_analysis.exceptions import (
    ConvergenceError,
    DegenerateBoundaryError,
    DegenerateResponseError,
    MalformedRecordError,
    ModelFitError,
    SeparationError,
)
from whiff_analysis.models import (
    LogisticFit,
    add_predictions,
    decision_boundary,
    evaluate_model,
    fit_logistic_model,
    fit_whiff_models,
    inverse_logit,
    linear_predictor,
    predict_probability,
    solve_decision_boundary,
)


@pytest.fixture
def analysis(swing_frame: pd.DataFrame) -> pd.DataFrame:
    return build_analysis_frame(label_whiffs(swing_frame))


def _fit(coefficients, predictors=('release_speed',)) -> LogisticFit:
    return LogisticFit(
        name='manual',
        predictors=tuple(predictors),
        coefficients=coefficients,
        std_errors={},
        p_values={},
        converged=True,
        separated=False,
        iterations=0,
        n_obs=0,
        n_excluded=0,
        deviance=0.0,
        null_deviance=0.0,
        aic=0.0,
    )


class TestInverseLogit:
    def test_zero_is_half(self) -> None:
        assert inverse_logit(0.0) == pytest.approx(0.5)

    def test_open_interval_for_moderate_eta(self) -> None:
        probs = inverse_logit(np.linspace(-30, 30, 61))
        assert np.all(probs > 0)
        assert np.all(probs < 1)

    def test_monotonic(self) -> None:
        probs = inverse_logit(np.linspace(-50, 50, 1001))
        assert np.all(np.diff(probs) >= 0)

    def test_limits_without_overflow(self) -> None:
        with np.errstate(over='raise'):
            low, high = inverse_logit(np.array([-1000.0, 1000.0]))
        assert low == pytest.approx(0.0)
        assert high == pytest.approx(1.0)


class TestDecisionBoundary:
    def test_positive_slope(self) -> None:
        assert decision_boundary(-10.0, 0.1) == pytest.approx(100.0)

    def test_negative_slope(self) -> None:
        assert decision_boundary(5.0, -0.5) == pytest.approx(10.0)

    def test_zero_slope_raises(self) -> None:
        with pytest.raises(DegenerateBoundaryError):
            decision_boundary(1.0, 0.0)

    def test_non_finite_raises(self) -> None:
        with pytest.raises(DegenerateBoundaryError):
            decision_boundary(np.nan, 0.5)

    def test_solve_from_fit(self) -> None:
        fit = _fit({'const': -10.0, 'release_speed': 0.1})
        assert solve_decision_boundary(fit) == pytest.approx(100.0)

    def test_solve_rejects_two_predictor_fit(self) -> None:
        fit = _fit({'const': 1.0, 'release_speed': 0.1, 'release_spin_rate': 0.01},
                   predictors=('release_speed', 'release_spin_rate'))
        with pytest.raises(ModelFitError):
            solve_decision_boundary(fit)


class TestPredictProbability:
    def test_linear_predictor(self) -> None:
        fit = _fit({'const': -10.0, 'release_speed': 0.1})
        eta = linear_predictor(fit, pd.DataFrame({'release_speed': [90.0, 100.0, 110.0]}))
        assert eta.tolist() == pytest.approx([-1.0, 0.0, 1.0])

    def test_probability_column(self) -> None:
        fit = _fit({'const': -10.0, 'release_speed': 0.1})
        probs = predict_probability(fit, pd.DataFrame({'release_speed': [100.0, np.nan]}))
        assert probs.iloc[0] == pytest.approx(0.5)
        assert np.isnan(probs.iloc[1])

    def test_missing_column_raises(self) -> None:
        fit = _fit({'const': -10.0, 'release_speed': 0.1})
        with pytest.raises(MalformedRecordError):
            predict_probability(fit, pd.DataFrame({'release_spin_rate': [2300.0]}))

    def test_does_not_mutate_fit(self) -> None:
        fit = _fit({'const': -10.0, 'release_speed': 0.1})
        predict_probability(fit, pd.DataFrame({'release_speed': [95.0]}))
        assert fit.coefficients == {'const': -10.0, 'release_speed': 0.1}

    def test_add_predictions_adds_one_column_per_model(self, analysis: pd.DataFrame) -> None:
        fits, _ = fit_whiff_models(analysis)
        predicted = add_predictions(analysis, fits)
        for name in ['velocity', 'spin', 'combined']:
            assert predicted[f"prob_{name}"].between(0, 1).all()
        assert 'prob_velocity' not in analysis.columns


class TestFitLogisticModel:
    def test_velocity_model_has_positive_slope(self, analysis: pd.DataFrame) -> None:
        fit = fit_logistic_model(analysis, ['release_speed'], name='velocity')
        assert fit.converged
        assert not fit.separated
        assert fit.coefficients['release_speed'] > 0
        assert fit.n_obs == len(analysis)

    def test_combined_model_returns_three_coefficients(self, analysis: pd.DataFrame) -> None:
        fit = fit_logistic_model(analysis, ['release_speed', 'release_spin_rate'], name='combined')
        assert list(fit.coefficients) == ['const', 'release_speed', 'release_spin_rate']
        assert len(fit.slopes) == 2

    @pytest.mark.parametrize('dropped', ['release_speed', 'release_spin_rate'])
    def test_combined_model_without_a_column_raises(self, analysis: pd.DataFrame, dropped: str) -> None:
        with pytest.raises(MalformedRecordError):
            fit_logistic_model(analysis.drop(columns=[dropped]),
                               ['release_speed', 'release_spin_rate'], name='combined')

    def test_missing_rows_excluded_per_model(self, analysis: pd.DataFrame) -> None:
        data = analysis.copy()
        data['release_speed'] = data['release_speed'].astype(object)
        data.loc[data.index[:10], 'release_spin_rate'] = np.nan
        data.loc[data.index[10:15], 'release_speed'] = 'n/a'

        fits, failures = fit_whiff_models(data)
        assert not failures
        assert fits['velocity'].n_excluded == 5
        assert fits['spin'].n_excluded == 10
        assert fits['combined'].n_excluded == 15
        assert fits['velocity'].n_obs == len(data) - 5

    def test_single_class_raises(self) -> None:
        data = pd.DataFrame({'release_speed': [90.0, 92.0, 94.0, 96.0], 'response': [0, 0, 0, 0]})
        with pytest.raises(DegenerateResponseError):
            fit_logistic_model(data, ['release_speed'])

    def test_separated_data_raises_by_default(self) -> None:
        data = pd.DataFrame({'release_speed': [90.0, 92.0, 94.0, 96.0, 98.0],
                             'response': [0, 0, 1, 1, 1]})
        with pytest.raises(SeparationError):
            fit_logistic_model(data, ['release_speed'], name='velocity')

    def test_separated_data_with_separation_allowed(self) -> None:
        data = pd.DataFrame({'release_speed': [90.0, 92.0, 94.0, 96.0, 98.0],
                             'response': [0, 0, 1, 1, 1]})
        fit = fit_logistic_model(data, ['release_speed'], name='velocity', allow_separation=True)
        assert fit.separated
        assert fit.coefficients['release_speed'] > 0

        probs = predict_probability(fit, data)
        assert np.all(np.diff(probs.values) >= 0)

    def test_quasi_separated_data_raises_by_default(self) -> None:
        # Classes split cleanly except for the tie at 94 mph
        data = pd.DataFrame({'release_speed': [90.0, 92.0, 94.0, 94.0, 96.0, 98.0],
                             'response': [0, 0, 0, 1, 1, 1]})
        with pytest.raises(SeparationError):
            fit_logistic_model(data, ['release_speed'], name='velocity')

    def test_quasi_separated_data_with_separation_allowed(self) -> None:
        data = pd.DataFrame({'release_speed': [90.0, 92.0, 94.0, 94.0, 96.0, 98.0],
                             'response': [0, 0, 0, 1, 1, 1]})
        fit = fit_logistic_model(data, ['release_speed'], name='velocity', allow_separation=True)
        assert fit.separated
        assert fit.coefficients['release_speed'] > 0

    def test_non_convergence_raises(self, overlapping_speeds: pd.DataFrame) -> None:
        with pytest.raises(ConvergenceError):
            fit_logistic_model(overlapping_speeds, ['release_speed'], name='velocity', max_iter=1)

    def test_non_convergence_recorded_as_failure(self, overlapping_speeds: pd.DataFrame) -> None:
        fits, failures = fit_whiff_models(overlapping_speeds, {'velocity': ['release_speed']}, max_iter=1)
        assert fits == {}
        assert isinstance(failures['velocity'], ConvergenceError)

    def test_boundary_round_trip(self, overlapping_speeds: pd.DataFrame) -> None:
        fit = fit_logistic_model(overlapping_speeds, ['release_speed'], name='velocity')
        boundary = solve_decision_boundary(fit)
        prob = predict_probability(fit, pd.DataFrame({'release_speed': [boundary]}))
        assert prob.iloc[0] == pytest.approx(0.5, abs=1e-6)

    def test_statsmodels_agrees_with_fitted_probabilities(self, overlapping_speeds: pd.DataFrame) -> None:
        fit = fit_logistic_model(overlapping_speeds, ['release_speed'])
        probs = predict_probability(fit, overlapping_speeds)
        # Score equations: at the MLE the fitted probabilities sum to the whiff count
        assert probs.sum() == pytest.approx(overlapping_speeds['response'].sum(), abs=1e-4)


class TestFitWhiffModels:
    def test_fits_all_three(self, analysis: pd.DataFrame) -> None:
        fits, failures = fit_whiff_models(analysis)
        assert set(fits) == {'velocity', 'spin', 'combined'}
        assert failures == {}

    def test_failure_does_not_stop_other_models(self, analysis: pd.DataFrame) -> None:
        fits, failures = fit_whiff_models(analysis.drop(columns=['release_spin_rate']))
        assert set(fits) == {'velocity'}
        assert set(failures) == {'spin', 'combined'}
        assert all(isinstance(e, MalformedRecordError) for e in failures.values())


class TestEvaluateModel:
    def test_metrics(self, analysis: pd.DataFrame) -> None:
        fit = fit_logistic_model(analysis, ['release_speed'], name='velocity')
        metrics = evaluate_model(fit, analysis)
        assert metrics['n'] == len(analysis)
        assert 0.5 < metrics['roc_auc'] <= 1.0
        assert 0 <= metrics['accuracy'] <= 1
        assert metrics['mean_predicted'] == pytest.approx(metrics['observed_rate'], abs=1e-4)
