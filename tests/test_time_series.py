# tests/test_time_series.py

"""
Tests for the univariate linear time series models.

Covers ARMA and ARFIMA models (autocovariance, hypercube mapping, exact
Gaussian and Student-t likelihoods, Yule-Walker and maximum likelihood
estimation, simulation, forecasting and real-time prediction), ARMAX models
with lagged exogenous inputs, and the Gaussian model specified by its
autocorrelations.
"""

import warnings

import numpy as np
import pandas as pd
import pytest
from scipy import linalg, signal, special, stats
from statsmodels.tsa.arima_process import arma_acovf

from cronoseries.core.exceptions import (
    DataError, DimensionError, EstimationError, ModelSpecificationError, NotFittedError,
    NumericWarning, ParameterError
)
from cronoseries.core.parameters import ParameterState
from cronoseries.models.time_series.acf_model import ACFModel
from cronoseries.models.time_series.arma import ARMAModel
from cronoseries.models.time_series.armax import ARMAXModel
from tests import SKIP_SLOW_TESTS


def arma_params(mu=0.0, sigma=1.0, d=0.0, phi=(), theta=()):
    return np.concatenate([[mu, sigma, d], phi, theta]).astype(np.float64)


def exact_gaussian_log_likelihood(x, mu, acvf):
    covariance = linalg.toeplitz(acvf[:len(x)])
    return stats.multivariate_normal(mean=np.full(len(x), mu), cov=covariance).logpdf(x)


class TestARMAModel:
    """Tests for ARMA model layout, autocovariance and likelihood."""

    def test_layout(self):
        model = ARMAModel(2, 1)
        assert model.parameter_names == ["mu", "sigma", "d", "phi[1]", "phi[2]", "theta[1]"]
        assert model.parameter_states == [ParameterState.CONSEQUENTIAL, ParameterState.CONSEQUENTIAL,
                                          ParameterState.LOCKED, ParameterState.FREE,
                                          ParameterState.FREE, ParameterState.FREE]
        np.testing.assert_array_equal(model.parameters, arma_params(phi=[0, 0], theta=[0]))
        assert model.name == "ARMA(2,1)"
        assert not model.has_data

    @pytest.mark.parametrize("kwargs", [{"ar_order": -1}, {"ma_order": 1.5}, {"tail_dof": -2.0}])
    def test_invalid_construction(self, kwargs):
        with pytest.raises(ParameterError):
            ARMAModel(**kwargs)

    def test_invalid_order_names_the_argument(self):
        with pytest.raises(ParameterError) as excinfo:
            ARMAModel(ar_order=-1)
        assert excinfo.value.param_name == "ar_order"
        assert excinfo.value.param_value == -1

    def test_parameter_access_by_name(self):
        model = ARMAModel(1, 1)
        model.parameters = arma_params(phi=[0.5], theta=[0.3])
        assert model.get_parameter("phi[1]") == 0.5
        assert model.get_parameter(5) == 0.3
        model.set_parameter_state("d", ParameterState.FREE)
        assert model.parameter_states[2] is ParameterState.FREE
        with pytest.raises(ParameterError):
            model.get_parameter("phi[2]")
        with pytest.raises(ParameterError):
            model.get_parameter(6)

    def test_parameters_returns_copy(self):
        model = ARMAModel(1, 0)
        values = model.parameters
        values[3] = 0.9
        assert model.get_parameter("phi[1]") == 0.0

    @pytest.mark.parametrize("parameters,valid", [
        (arma_params(phi=[0.5], theta=[0.3]), True),
        (arma_params(sigma=0.0, phi=[0.5], theta=[0.3]), False),
        (arma_params(d=0.5, phi=[0.5], theta=[0.3]), False),
        (arma_params(d=-0.3, phi=[0.5], theta=[0.3]), True),
        (arma_params(phi=[1.0], theta=[0.3]), False),
        (arma_params(phi=[0.9995], theta=[0.3]), False),
        (arma_params(phi=[0.5], theta=[-1.2]), False),
        (arma_params(mu=np.nan, phi=[0.5], theta=[0.3]), False),
    ])
    def test_validity(self, parameters, valid):
        assert ARMAModel(1, 1).check_parameter_validity(parameters) is valid

    def test_invalid_assignment(self):
        model = ARMAModel(1, 0)
        assert not model.set_parameters(arma_params(phi=[1.5]))
        assert model.get_parameter("phi[1]") == 0.0
        with pytest.raises(ParameterError):
            model.parameters = arma_params(phi=[1.5])
        with pytest.raises(DimensionError):
            model.set_parameters(np.zeros(3))

    def test_wrong_length_reports_shapes(self):
        model = ARMAModel(1, 0)
        with pytest.raises(DimensionError) as excinfo:
            model.set_parameters(np.zeros(3))
        assert excinfo.value.array_name == "parameters"
        assert excinfo.value.expected_shape == (4,)
        assert excinfo.value.actual_shape == (3,)

    @pytest.mark.parametrize("phi,theta", [
        ([0.6], []),
        ([], [0.4]),
        ([0.5], [0.3]),
        ([0.5, -0.2], [0.3]),
        ([1.2, -0.5], [0.4, 0.2]),
        ([0.3, 0.0], []),
    ])
    def test_acf_matches_statsmodels(self, phi, theta):
        model = ARMAModel(len(phi), len(theta))
        model.parameters = arma_params(sigma=1.5, phi=phi, theta=theta)
        expected = arma_acovf(np.r_[1.0, -np.array(phi)], np.r_[1.0, np.array(theta)],
                              nobs=11, sigma2=2.25)
        np.testing.assert_allclose(model.compute_acf(10), expected, rtol=1e-8, atol=1e-10)

    def test_acf_normalized(self):
        model = ARMAModel(1, 0)
        model.parameters = arma_params(phi=[0.6])
        np.testing.assert_allclose(model.compute_acf(3, normalize=True), 0.6 ** np.arange(4))

    def test_acf_of_candidate_does_not_touch_model(self):
        model = ARMAModel(1, 0)
        acvf = model.compute_acf(2, parameters=arma_params(phi=[0.5]))
        assert acvf[1] == pytest.approx(0.5 / 0.75)
        assert model.get_parameter("phi[1]") == 0.0

    def test_acf_negative_lag(self):
        with pytest.raises(ParameterError):
            ARMAModel(1, 0).compute_acf(-1)

    @pytest.mark.parametrize("parameters", [
        arma_params(mu=1.5, sigma=0.7, phi=[0.5, -0.2], theta=[0.3]),
        arma_params(mu=-20.0, sigma=3.0, d=0.25, phi=[-0.8, 0.1], theta=[-0.6]),
        arma_params(sigma=0.01, phi=[0.2 + 0.5, -0.2 * 0.5], theta=[0.0]),
    ])
    def test_cube_round_trip(self, parameters):
        model = ARMAModel(2, 1)
        cube = model.parameter_to_cube(parameters)
        assert np.all((cube >= 0.0) & (cube <= 1.0))
        np.testing.assert_allclose(model.cube_to_parameter(cube), parameters, rtol=1e-8, atol=1e-8)

    def test_every_cube_point_is_valid(self, rng):
        model = ARMAModel(3, 2)
        for cube in rng.uniform(size=(200, model.n_parameters)):
            cube[2] = np.clip(cube[2], 0.01, 0.99)
            cube[1] = np.clip(cube[1], 0.01, 0.99)
            assert model.check_parameter_validity(model.cube_to_parameter(cube))


class TestARMALikelihood:
    """Tests for the exact likelihood of ARMA and ARFIMA models."""

    @pytest.mark.parametrize("phi,theta", [
        ([0.6], []),
        ([], [0.4]),
        ([0.5, -0.2], [0.3]),
        ([0.3], [0.4, 0.2]),
    ])
    def test_matches_exact_gaussian_likelihood(self, rng, phi, theta):
        x = 0.3 + rng.standard_normal(60)
        model = ARMAModel(len(phi), len(theta), data=x)
        parameters = arma_params(mu=0.3, sigma=1.2, phi=phi, theta=theta)
        acvf = model.compute_acf(len(x), parameters=parameters)
        expected = exact_gaussian_log_likelihood(x, 0.3, acvf)
        assert model.log_likelihood(parameters) == pytest.approx(expected, rel=1e-9)

    def test_arfima_matches_exact_gaussian_likelihood(self, rng):
        x = rng.standard_normal(80)
        model = ARMAModel(1, 0, data=x)
        parameters = arma_params(sigma=0.9, d=0.2, phi=[0.4])
        acvf = model.compute_acf(len(x), parameters=parameters)
        expected = exact_gaussian_log_likelihood(x, 0.0, acvf)
        assert model.log_likelihood(parameters) == pytest.approx(expected, rel=1e-8)

    def test_white_noise_likelihood(self, white_noise):
        model = ARMAModel(0, 0, data=white_noise)
        parameters = arma_params(mu=0.1, sigma=1.1)
        expected = np.sum(stats.norm.logpdf(white_noise.to_numpy(), loc=0.1, scale=1.1))
        assert model.log_likelihood(parameters) == pytest.approx(expected)

    def test_student_t_white_noise_likelihood(self, white_noise):
        model = ARMAModel(0, 0, tail_dof=5.0, data=white_noise)
        parameters = arma_params(sigma=1.5)
        expected = np.sum(stats.t.logpdf(white_noise.to_numpy(), 5.0, scale=1.5))
        assert model.log_likelihood(parameters) == pytest.approx(expected)

    def test_degenerate_recursion_warns_when_filling_outputs(self, ar1_process, monkeypatch):
        model = ARMAModel(1, 0, data=ar1_process)
        parameters = arma_params(phi=[0.6])

        def degenerate(*args):
            raise ZeroDivisionError("float division by zero")

        monkeypatch.setattr(model, "_one_step", degenerate)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert np.isnan(model.log_likelihood(parameters))
        with pytest.warns(NumericWarning, match="Degenerate prediction variance"):
            assert np.isnan(model.log_likelihood(parameters, fill_outputs=True))

    def test_evaluation_does_not_mutate_model(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        before = model.parameters
        model.log_likelihood(arma_params(sigma=2.0, phi=[0.5]), fill_outputs=False)
        np.testing.assert_array_equal(model.parameters, before)
        assert model.outputs is None

    def test_no_data_gives_nan(self):
        assert np.isnan(ARMAModel(1, 0).log_likelihood())

    def test_non_positive_sigma_gives_nan(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        assert np.isnan(model.log_likelihood(arma_params(sigma=0.0, phi=[0.5])))

    def test_penalty_lowers_objective(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        parameters = arma_params(phi=[0.6])
        plain = model.log_likelihood(parameters)
        assert model.log_likelihood(parameters, penalty_factor=1.0) <= plain

    def test_outputs(self, white_noise):
        model = ARMAModel(1, 1, data=white_noise)
        model.parameters = arma_params(phi=[0.5], theta=[0.3])
        value = model.log_likelihood(fill_outputs=True)
        outputs = model.outputs
        assert outputs.goodness_of_fit == pytest.approx(value)
        pd.testing.assert_index_equal(outputs.residuals.index, white_noise.index)
        np.testing.assert_allclose(outputs.predictors_at_availability.to_numpy()[:-1],
                                   outputs.one_step_predictors.to_numpy()[1:])
        np.testing.assert_allclose(outputs.residuals * outputs.one_step_predictor_std,
                                   outputs.unstandardized_residuals)
        np.testing.assert_allclose(white_noise - outputs.one_step_predictors,
                                   outputs.unstandardized_residuals)
        # the first predictor is the mean with the marginal variance
        assert outputs.one_step_predictors.iloc[0] == 0.0
        assert outputs.one_step_predictor_std.iloc[0] ** 2 == pytest.approx(model.compute_acf(0)[0])

    def test_consequential_parameters(self, white_noise):
        model = ARMAModel(0, 0, data=white_noise)
        x = white_noise.to_numpy()
        parameters = model.compute_consequential_parameters(model.parameters)
        assert parameters[0] == pytest.approx(np.mean(x))
        assert parameters[1] == pytest.approx(np.std(x))

    def test_locked_mean_is_kept(self, white_noise):
        model = ARMAModel(0, 0, data=white_noise)
        model.set_parameter_state("mu", ParameterState.LOCKED)
        parameters = model.compute_consequential_parameters(arma_params(mu=2.0))
        assert parameters[0] == 2.0
        x = white_noise.to_numpy()
        assert parameters[1] == pytest.approx(np.sqrt(np.mean((x - 2.0) ** 2)))

    def test_data_validation(self):
        model = ARMAModel(1, 0)
        with pytest.raises(DataError):
            model.set_data(np.zeros((5, 2)))
        with pytest.raises(DataError):
            model.set_data([1.0, np.nan, 2.0])
        model.set_data(pd.DataFrame({"x": [1.0, 2.0, 3.0]}))
        assert model.n_observations == 3


class TestARMAEstimation:
    """Tests for moment and maximum likelihood estimation of ARMA models."""

    def test_yule_walker_ar1(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        result = model.fit_by_moments()
        assert result.method == "Yule-Walker"
        assert model.fitted
        assert model.results is result
        assert model.get_parameter("phi[1]") == pytest.approx(0.6, abs=0.1)
        assert model.sigma == pytest.approx(1.0, abs=0.1)
        assert model.outputs is not None

    def test_yule_walker_ma1(self, ma1_process):
        model = ARMAModel(0, 1, data=ma1_process)
        model.fit_by_moments()
        assert model.get_parameter("theta[1]") == pytest.approx(0.4, abs=0.15)

    def test_yule_walker_exact_arma11(self):
        acvf = arma_acovf(np.array([1.0, -0.5]), np.array([1.0, 0.3]), nobs=3, sigma2=2.0)
        model = ARMAModel(1, 1)
        model.estimate_by_yule_walker(0.7, acvf)
        np.testing.assert_allclose(model.parameters, arma_params(mu=0.7, sigma=np.sqrt(2.0),
                                                                 phi=[0.5], theta=[0.3]))

    def test_yule_walker_white_noise(self):
        model = ARMAModel(0, 0)
        model.estimate_by_yule_walker(1.0, np.array([4.0, 0.0, 0.0]))
        np.testing.assert_allclose(model.parameters, [1.0, 2.0, 0.0])

    def test_yule_walker_uncorrelated_ma1(self):
        model = ARMAModel(0, 1)
        model.estimate_by_yule_walker(0.0, np.array([2.0, 0.0, 0.0]))
        assert model.get_parameter("theta[1]") == 0.0
        assert model.sigma == pytest.approx(np.sqrt(2.0))

    def test_yule_walker_clamps_coefficients(self):
        model = ARMAModel(1, 0)
        model.estimate_by_yule_walker(0.0, np.array([1.0, 1.0, 1.0]))
        assert model.get_parameter("phi[1]") == pytest.approx(1.0 - 1e-4)

    def test_yule_walker_unsupported_order(self):
        with pytest.raises(ModelSpecificationError):
            ARMAModel(2, 0).estimate_by_yule_walker(0.0, np.array([1.0, 0.5, 0.25]))

    def test_fit_by_moments_without_data(self):
        with pytest.raises(DataError):
            ARMAModel(1, 0).fit_by_moments()

    def test_results_before_fit(self):
        with pytest.raises(NotFittedError):
            ARMAModel(1, 0).results

    def test_mle_ar1(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        result = model.fit_by_mle(n_global_samples=50, n_local_iterations=60)
        assert result.method == "MLE"
        assert result.n_free_parameters == 1
        assert model.get_parameter("phi[1]") == pytest.approx(0.6, abs=0.1)
        assert model.mu == pytest.approx(np.mean(ar1_process))
        assert model.get_parameter("d") == 0.0
        assert result.log_likelihood == pytest.approx(model.log_likelihood())
        assert len(result.history) > 0

    def test_mle_beats_yule_walker(self, ar1_process):
        moments = ARMAModel(1, 0, data=ar1_process)
        moments.fit_by_moments()
        mle = ARMAModel(1, 0, data=ar1_process)
        mle.fit_by_mle(n_global_samples=50, n_local_iterations=100)
        assert mle.results.log_likelihood >= moments.results.log_likelihood - 1e-3

    @pytest.mark.asyncio
    async def test_async_fit(self, ar1_process):
        model = ARMAModel(1, 0, data=ar1_process)
        result = await model.fit_by_mle_async(n_global_samples=20, n_local_iterations=20)
        assert result is model.results

    @pytest.mark.slow
    @pytest.mark.skipif(SKIP_SLOW_TESTS, reason="slow estimation test")
    @pytest.mark.parametrize("phi,theta", [([0.7], [-0.3]), ([0.5, -0.3], [])])
    def test_mle_recovers_simulated_parameters(self, phi, theta):
        truth = arma_params(sigma=1.0, phi=phi, theta=theta)
        errors = []
        for seed in (11, 12, 13):
            generator = ARMAModel(len(phi), len(theta))
            generator.parameters = truth
            path = generator.simulate(2000, seed=seed)
            model = ARMAModel(len(phi), len(theta), data=path)
            model.fit_by_mle(n_global_samples=200, n_local_iterations=200)
            errors.append(np.max(np.abs(model.parameters[3:] - truth[3:])))
        assert np.median(errors) < 0.1

    @pytest.mark.slow
    @pytest.mark.skipif(SKIP_SLOW_TESTS, reason="slow estimation test")
    def test_mle_short_arma11_sample(self):
        truth = arma_params(sigma=1.0, phi=[0.5], theta=[0.3])
        coefficient_errors, sigma_errors = [], []
        for seed in (21, 22, 23):
            generator = ARMAModel(1, 1)
            generator.parameters = truth
            model = ARMAModel(1, 1, data=generator.simulate(500, seed=seed))
            model.fit_by_mle(n_global_samples=200, n_local_iterations=100, penalty_factor=0.0)
            coefficient_errors.append(np.max(np.abs(model.parameters[3:] - truth[3:])))
            sigma_errors.append(abs(model.sigma - 1.0))
        assert np.median(coefficient_errors) < 0.1
        assert np.median(sigma_errors) < 0.1

    @pytest.mark.slow
    @pytest.mark.skipif(SKIP_SLOW_TESTS, reason="slow estimation test")
    def test_mle_arfima(self):
        generator = ARMAModel(0, 0)
        generator.parameters = arma_params(d=0.3)
        path = generator.simulate(1500, seed=5)
        model = ARMAModel(0, 0, data=path)
        model.set_parameter_state("d", ParameterState.FREE)
        model.fit_by_mle(n_global_samples=30, n_local_iterations=40)
        assert model.get_parameter("d") == pytest.approx(0.3, abs=0.1)


class TestARMASimulationAndForecast:
    """Tests for simulation, forecasting and real-time prediction."""

    @pytest.fixture
    def arma11(self, white_noise) -> ARMAModel:
        model = ARMAModel(1, 1, data=white_noise)
        model.parameters = arma_params(mu=0.2, sigma=1.3, phi=[0.5], theta=[0.3])
        return model

    def test_simulate_is_reproducible(self, arma11):
        first = arma11.simulate(100, seed=3)
        second = arma11.simulate(100, seed=3)
        pd.testing.assert_series_equal(first, second)
        assert first.name == "simulated"
        assert isinstance(first.index, pd.RangeIndex)
        assert not np.allclose(first, arma11.simulate(100, seed=4))

    def test_simulate_uses_timestamps(self, arma11):
        dates = pd.date_range("2021-01-01", periods=10, freq="D")
        path = arma11.simulate(dates, seed=1)
        pd.testing.assert_index_equal(path.index, pd.Index(dates))

    def test_simulate_empty_and_negative(self, arma11):
        assert len(arma11.simulate(0, seed=1)) == 0
        with pytest.raises(ParameterError):
            arma11.simulate(-1)

    def test_simulated_moments(self):
        model = ARMAModel(1, 0)
        model.parameters = arma_params(mu=3.0, sigma=0.5, phi=[0.6])
        path = model.simulate(10000, seed=7).to_numpy()
        assert np.mean(path) == pytest.approx(3.0, abs=0.05)
        assert np.var(path) == pytest.approx(0.25 / 0.64, rel=0.05)
        centred = path - path.mean()
        assert np.dot(centred[1:], centred[:-1]) / np.dot(centred, centred) == pytest.approx(0.6, abs=0.03)

    def test_student_t_simulation_has_heavy_tails(self):
        model = ARMAModel(0, 0, tail_dof=4.0)
        path = model.simulate(10000, seed=2).to_numpy()
        assert stats.kurtosis(path) > 1.0

    def test_forecast_ar1(self):
        model = ARMAModel(1, 0, data=np.array([0.0, 1.0, 2.0]))
        model.parameters = arma_params(phi=[0.6])
        forecast = model.forecast(3)
        pd.testing.assert_index_equal(forecast.index, pd.RangeIndex(3, 6))
        np.testing.assert_allclose(forecast["forecast"], 2.0 * 0.6 ** np.arange(1, 4))
        np.testing.assert_allclose(forecast["std"] ** 2, np.cumsum(0.36 ** np.arange(3)))

    def test_forecast_from_other_data(self, arma11):
        dates = pd.date_range("2022-01-01", periods=2, freq="D")
        forecast = arma11.forecast(dates, data=[0.2, 0.2, 0.2])
        pd.testing.assert_index_equal(forecast.index, pd.Index(dates))
        assert list(forecast.columns) == ["forecast", "std"]

    def test_forecast_converges_to_mean(self, arma11):
        forecast = arma11.forecast(200)
        assert forecast["forecast"].iloc[-1] == pytest.approx(0.2, abs=1e-8)
        assert forecast["std"].iloc[-1] ** 2 == pytest.approx(arma11.compute_acf(0)[0], rel=1e-6)

    def test_forecast_negative_horizon(self, arma11):
        with pytest.raises(ParameterError):
            arma11.forecast(-2)

    def test_psi_weights(self):
        model = ARMAModel(0, 0)
        model.parameters = arma_params(d=0.2)
        psi = model.psi_weights(4)
        np.testing.assert_allclose(psi, [1.0, 0.2, 0.12, 0.12 * 2.2 / 3.0])

    def test_real_time_matches_likelihood_outputs(self, arma11, white_noise):
        arma11.log_likelihood(fill_outputs=True)
        streamed = arma11.register_series(white_noise)
        np.testing.assert_allclose(streamed, arma11.outputs.predictors_at_availability, rtol=1e-10)
        current = arma11.get_current_predictor()
        assert current.mean == pytest.approx(streamed.iloc[-1])
        assert current.std == pytest.approx(arma11.outputs.predictive_std_at_availability.iloc[-1])

    def test_real_time_arfima(self, white_noise):
        model = ARMAModel(1, 0, data=white_noise[:150])
        model.parameters = arma_params(sigma=1.1, d=0.2, phi=[0.3])
        model.log_likelihood(fill_outputs=True)
        streamed = model.register_series(white_noise[:150])
        np.testing.assert_allclose(streamed, model.outputs.predictors_at_availability, rtol=1e-8)

    def test_real_time_restarts_after_parameter_change(self, arma11):
        arma11.register(0, 5.0)
        assert arma11.get_current_predictor().mean != pytest.approx(0.2)
        arma11.parameters = arma_params(mu=0.2, sigma=1.3, phi=[0.4], theta=[0.3])
        assert arma11.get_current_predictor().mean == pytest.approx(0.2)


class TestARFIMA:
    """Tests for the fractionally integrated autocovariance."""

    def test_fractional_noise_acf(self):
        d = 0.3
        model = ARMAModel(0, 0)
        model.parameters = arma_params(sigma=2.0, d=d)
        acvf = model.compute_acf(3)
        gamma0 = 4.0 * special.gamma(1 - 2 * d) / special.gamma(1 - d) ** 2
        assert acvf[0] == pytest.approx(gamma0)
        assert acvf[1] == pytest.approx(gamma0 * d / (1 - d))
        assert acvf[2] == pytest.approx(gamma0 * d * (1 + d) / ((1 - d) * (2 - d)))

    @pytest.mark.parametrize("phi,theta,d", [([0.5], [], 0.2), ([], [0.4], -0.25), ([0.3], [0.2], 0.1)])
    def test_filtered_fractional_noise_acf(self, phi, theta, d):
        model = ARMAModel(len(phi), len(theta))
        model.parameters = arma_params(d=d, phi=phi, theta=theta)
        # truncated causal representation: psi = ARMA filter applied to (1 - B)^-d weights
        n_terms = 400000
        weights = np.ones(n_terms)
        weights[1:] = np.cumprod((np.arange(n_terms - 1) + d) / np.arange(1, n_terms))
        psi = signal.lfilter(np.r_[1.0, theta], np.r_[1.0, -np.array(phi)], weights)
        expected = [np.dot(psi[:n_terms - h], psi[h:]) for h in range(4)]
        np.testing.assert_allclose(model.compute_acf(3), expected, rtol=1e-2)

    def test_long_memory_decay(self):
        model = ARMAModel(0, 0)
        model.parameters = arma_params(d=0.4)
        rho = model.compute_acf(1000, normalize=True)
        # hyperbolic decay rho_h ~ h^(2d - 1)
        assert rho[1000] / rho[100] == pytest.approx(10.0 ** (2 * 0.4 - 1), rel=0.01)


class TestARMAXModel:
    """Tests for ARMA models with lagged exogenous regressors."""

    @pytest.fixture
    def regression_data(self, rng):
        n = 600
        u = rng.standard_normal((n, 2))
        y = np.zeros(n)
        e = rng.standard_normal(n)
        for t in range(1, n):
            y[t] = 0.5 * y[t - 1] + 0.8 * u[t - 1, 0] - 0.4 * u[t - 1, 1] + e[t]
        return y, u

    def test_layout(self):
        model = ARMAXModel(1, 0, n_exogenous=2)
        assert model.parameter_names == ["mu", "sigma", "d", "phi[1]", "gamma[1]", "gamma[2]"]
        assert model.parameter_states[-2:] == [ParameterState.FREE, ParameterState.FREE]
        assert model.name == "ARMAX(1,0,2)"

    def test_requires_exogenous_inputs(self, regression_data):
        y, _ = regression_data
        model = ARMAXModel(1, 0, n_exogenous=2, data=y)
        assert not model.has_data
        assert np.isnan(model.log_likelihood())
        with pytest.raises(DataError):
            model.adjustments()
        with pytest.raises(DataError):
            model.fit_by_mle(n_global_samples=10, n_local_iterations=5)

    def test_exogenous_validation(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(1, 0, n_exogenous=2, data=y)
        with pytest.raises(DimensionError):
            model.set_exogenous(u[:, 0])
        with pytest.raises(DimensionError):
            model.set_exogenous(u[:-1])
        bad = u.copy()
        bad[3, 1] = np.inf
        with pytest.raises(DataError):
            model.set_exogenous(bad)

    def test_single_regressor_accepts_vector(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(0, 0, data=y, exogenous=u[:, 0])
        assert model.has_data
        assert model.exogenous.shape == (len(y), 1)

    def test_adjustments(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(1, 0, n_exogenous=2, data=y, exogenous=u)
        model.parameters = np.array([0.0, 1.0, 0.0, 0.5, 0.8, -0.4])
        adj = model.adjustments()
        expected = np.zeros(len(y) + 1)
        for t in range(1, len(y) + 1):
            expected[t] = 0.8 * u[t - 1, 0] - 0.4 * u[t - 1, 1] + 0.5 * expected[t - 1]
        np.testing.assert_allclose(adj, expected)

    def test_zero_regression_matches_arma(self, regression_data):
        y, u = regression_data
        armax = ARMAXModel(1, 1, n_exogenous=2, data=y, exogenous=u)
        arma = ARMAModel(1, 1, data=y)
        parameters = arma_params(sigma=1.2, phi=[0.5], theta=[0.2])
        assert armax.log_likelihood(np.r_[parameters, 0.0, 0.0]) == pytest.approx(
            arma.log_likelihood(parameters))

    def test_validity(self):
        model = ARMAXModel(1, 0)
        assert model.check_parameter_validity(np.array([0.0, 1.0, 0.0, 0.5, 3.0]))
        assert not model.check_parameter_validity(np.array([0.0, 1.0, 0.0, 0.5, np.inf]))
        assert not model.check_parameter_validity(np.array([0.0, 1.0, 0.0, 1.5, 0.0]))

    def test_cube_round_trip(self):
        model = ARMAXModel(1, 1, n_exogenous=2)
        parameters = np.array([0.5, 1.5, 0.0, 0.5, 0.3, 2.0, -1.0])
        np.testing.assert_allclose(model.cube_to_parameter(model.parameter_to_cube(parameters)),
                                   parameters, atol=1e-8)

    def test_register_requires_aux_values(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(1, 0, n_exogenous=2, data=y, exogenous=u)
        with pytest.raises(ParameterError):
            model.register(0, 1.0)
        with pytest.raises(DimensionError):
            model.register(0, 1.0, np.array([1.0]))

    def test_register_without_regressors(self, regression_data):
        y, _ = regression_data
        model = ARMAXModel(1, 1, n_exogenous=0, data=y)
        arma = ARMAModel(1, 1, data=y)
        parameters = arma_params(sigma=1.0, phi=[0.5], theta=[0.2])
        model.parameters = parameters
        arma.parameters = parameters
        for t, value in enumerate(y[:20]):
            assert model.register(t, value) == pytest.approx(arma.register(t, value))
        with pytest.raises(DimensionError):
            model.register(20, y[20], np.array([1.0]))

    def test_real_time_matches_likelihood_outputs(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(1, 1, n_exogenous=2, data=y, exogenous=u)
        model.parameters = np.array([0.1, 1.0, 0.0, 0.5, 0.2, 0.8, -0.4])
        model.log_likelihood(fill_outputs=True)
        streamed = model.register_series(pd.Series(y), pd.DataFrame(u))
        np.testing.assert_allclose(streamed, model.outputs.predictors_at_availability, rtol=1e-9)
        assert model.get_current_predictor().std == pytest.approx(
            model.outputs.predictive_std_at_availability.iloc[-1])

    def test_mle_recovers_regression(self, regression_data):
        y, u = regression_data
        model = ARMAXModel(1, 0, n_exogenous=2, data=y, exogenous=u)
        model.fit_by_mle(n_global_samples=200, n_local_iterations=200)
        np.testing.assert_allclose(model.parameters[3:], [0.5, 0.8, -0.4], atol=0.12)

    def test_simulate_ignores_regressors(self):
        model = ARMAXModel(1, 0)
        model.parameters = np.array([1.0, 1.0, 0.0, 0.5, 10.0])
        path = model.simulate(5000, seed=1)
        assert path.mean() == pytest.approx(1.0, abs=0.15)


class TestACFModel:
    """Tests for the Gaussian model given by its autocorrelations."""

    def test_layout(self):
        model = ACFModel(3)
        assert model.parameter_names == ["mu", "sigma", "rho[1]", "rho[2]", "rho[3]"]
        assert model.parameter_states[2:] == [ParameterState.LOCKED] * 3

    def test_validity(self):
        model = ACFModel(2)
        assert model.check_parameter_validity(np.array([0.0, 1.0, 0.5, 0.2]))
        assert not model.check_parameter_validity(np.array([0.0, 1.0, 1.0, 0.2]))
        assert not model.check_parameter_validity(np.array([0.0, -1.0, 0.5, 0.2]))

    def test_acf(self):
        model = ACFModel(2)
        model.parameters = np.array([0.0, 2.0, 0.5, -0.25])
        np.testing.assert_allclose(model.compute_acf(4), [4.0, 2.0, -1.0, 0.0, 0.0])
        np.testing.assert_allclose(model.compute_acf(2, normalize=True), [1.0, 0.5, -0.25])

    def test_likelihood_matches_exact_gaussian(self, white_noise):
        x = white_noise.to_numpy()[:80]
        model = ACFModel(2, data=x)
        parameters = np.array([0.1, 1.2, 0.4, 0.1])
        acvf = np.zeros(len(x))
        acvf[:3] = 1.44 * np.array([1.0, 0.4, 0.1])
        assert model.log_likelihood(parameters) == pytest.approx(
            exact_gaussian_log_likelihood(x, 0.1, acvf), rel=1e-9)

    def test_equivalent_ma1(self, ma1_process):
        theta = 0.4
        arma = ARMAModel(0, 1, data=ma1_process)
        acf = ACFModel(1, data=ma1_process)
        arma_value = arma.log_likelihood(arma_params(theta=[theta]))
        acf_value = acf.log_likelihood(np.array([0.0, np.sqrt(1 + theta ** 2), theta / (1 + theta ** 2)]))
        assert acf_value == pytest.approx(arma_value, rel=1e-8)

    def test_consequential_parameters(self, white_noise):
        model = ACFModel(1, data=white_noise)
        parameters = model.compute_consequential_parameters(model.parameters)
        assert parameters[0] == pytest.approx(white_noise.mean())
        assert parameters[1] == pytest.approx(white_noise.std(ddof=0))

    def test_fit_with_locked_correlations(self, white_noise):
        model = ACFModel(2, data=white_noise)
        result = model.fit_by_mle()
        assert result.n_free_parameters == 0
        assert model.parameters[2:].tolist() == [0.0, 0.0]
        assert model.get_parameter("sigma") == pytest.approx(white_noise.std(ddof=0))

    def test_fit_free_correlation(self, ma1_process):
        model = ACFModel(1, data=ma1_process)
        model.set_parameter_state("rho[1]", ParameterState.FREE)
        model.fit_by_mle(n_global_samples=30, n_local_iterations=40)
        assert model.get_parameter("rho[1]") == pytest.approx(0.4 / 1.16, abs=0.08)

    def test_real_time_matches_likelihood_outputs(self, white_noise):
        model = ACFModel(2, data=white_noise)
        model.parameters = np.array([0.0, 1.0, 0.3, 0.1])
        model.log_likelihood(fill_outputs=True)
        streamed = model.register_series(white_noise)
        np.testing.assert_allclose(streamed, model.outputs.predictors_at_availability)

    def test_simulate(self):
        model = ACFModel(1)
        model.parameters = np.array([5.0, 2.0, 0.3])
        path = model.simulate(5000, seed=9).to_numpy()
        assert path.mean() == pytest.approx(5.0, abs=0.15)
        assert path.std() == pytest.approx(2.0, rel=0.05)

    def test_no_mle_without_data(self):
        model = ACFModel(1)
        model.set_parameter_state("rho[1]", ParameterState.FREE)
        with pytest.raises(DataError):
            model.fit_by_mle(n_global_samples=10, n_local_iterations=5)

    def test_correlations_without_positive_definite_extension(self, white_noise):
        # rho_1 = 0.9 with nothing beyond lag 1 is not an autocorrelation function
        model = ACFModel(1, data=white_noise)
        model.parameters = np.array([0.0, 1.0, 0.9])
        assert np.isnan(model.log_likelihood())
        model.set_parameter_state("sigma", ParameterState.FREE)
        with pytest.raises(EstimationError):
            model.fit_by_mle(n_global_samples=10, n_local_iterations=5)
