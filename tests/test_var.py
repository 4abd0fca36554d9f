# tests/test_var.py

"""
Tests for the vector autoregression model.
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from cronoseries.core.exceptions import DataError, ModelSpecificationError, ParameterError
from cronoseries.core.parameters import ParameterState
from cronoseries.models.time_series.var import VARModel
from cronoseries.utils.data import sample_autocovariance_matrices

PHI = np.array([[0.5, 0.1],
                [0.2, 0.3]])
SIGMA = np.array([[1.0, 0.3],
                  [0.3, 0.5]])
MU = np.array([1.0, -1.0])


@pytest.fixture
def var1_model():
    model = VARModel(1, 2)
    model.parameters = VARModel.pack(MU, [PHI], SIGMA)
    return model


class TestVARLayout:
    """Tests for construction and parameter layout."""

    def test_layout(self):
        model = VARModel(1, 2)
        assert model.n_parameters == 2 + 4 + 4
        assert model.parameter_names[:4] == ["mu[1]", "mu[2]", "Phi1[1,1]", "Phi1[2,1]"]
        assert model.parameter_names[-1] == "Sigma[2,2]"
        assert model.parameter_states[:2] == [ParameterState.CONSEQUENTIAL] * 2
        assert all(s is ParameterState.FREE for s in model.parameter_states[2:])
        mu, phis, sigma = model.unpack()
        np.testing.assert_array_equal(sigma, np.eye(2))
        np.testing.assert_array_equal(phis[0], np.zeros((2, 2)))

    def test_pack_is_column_major(self):
        parameters = VARModel.pack(MU, [PHI], SIGMA)
        np.testing.assert_array_equal(parameters[2:6], [0.5, 0.2, 0.1, 0.3])

    def test_unpack_inverts_pack(self):
        model = VARModel(2, 2)
        phis = [PHI, -0.5 * PHI]
        mu, unpacked, sigma = model.unpack(VARModel.pack(MU, phis, SIGMA))
        np.testing.assert_array_equal(mu, MU)
        np.testing.assert_array_equal(unpacked[1], phis[1])
        np.testing.assert_array_equal(sigma, SIGMA)

    @pytest.mark.parametrize("order,dimension", [(1, 0), (-1, 2)])
    def test_invalid_construction(self, order, dimension):
        with pytest.raises(ParameterError):
            VARModel(order, dimension)

    def test_wrong_column_count(self, var1_process):
        with pytest.raises(DataError):
            VARModel(1, 3, data=var1_process)

    def test_non_finite_data(self):
        with pytest.raises(DataError):
            VARModel(1, 2, data=np.array([[0.0, np.nan], [1.0, 2.0]]))


class TestVARValidity:
    """Tests for the stationarity and covariance checks."""

    def test_valid(self, var1_model):
        assert var1_model.check_parameter_validity(var1_model.parameters)

    def test_explosive(self, var1_model):
        assert not var1_model.check_parameter_validity(VARModel.pack(MU, [2.0 * np.eye(2)], SIGMA))

    def test_asymmetric_covariance(self, var1_model):
        sigma = SIGMA + np.array([[0.0, 0.1], [0.0, 0.0]])
        assert not var1_model.check_parameter_validity(VARModel.pack(MU, [PHI], sigma))

    def test_indefinite_covariance(self, var1_model):
        sigma = np.array([[1.0, 2.0], [2.0, 1.0]])
        assert not var1_model.check_parameter_validity(VARModel.pack(MU, [PHI], sigma))

    def test_companion_matrix(self):
        model = VARModel(2, 2)
        parameters = VARModel.pack(MU, [PHI, -0.2 * np.eye(2)], SIGMA)
        companion = model.companion_matrix(parameters)
        assert companion.shape == (4, 4)
        np.testing.assert_array_equal(companion[:2, :2], PHI)
        np.testing.assert_array_equal(companion[2:, :2], np.eye(2))
        assert model.check_parameter_validity(parameters)

    def test_not_estimated_by_mle(self, var1_process):
        model = VARModel(1, 2, data=var1_process)
        with pytest.raises(ModelSpecificationError):
            model.parameter_to_cube(model.parameters)
        with pytest.raises(ModelSpecificationError):
            model.fit_by_mle(n_global_samples=20, n_local_iterations=5)


class TestVARMoments:
    """Tests for the autocovariance function and Yule-Walker estimation."""

    def test_acf_solves_lyapunov_equation(self, var1_model):
        acf = var1_model.compute_acf(3)
        np.testing.assert_allclose(acf[0], PHI @ acf[0] @ PHI.T + SIGMA, atol=1e-12)
        for h in range(1, 4):
            np.testing.assert_allclose(acf[h], PHI @ acf[h - 1], atol=1e-12)

    def test_normalized_acf(self, var1_model):
        acf = var1_model.compute_acf(2, normalize=True)
        np.testing.assert_allclose(np.diag(acf[0]), 1.0)
        assert np.all(np.abs(acf) <= 1.0 + 1e-12)

    def test_white_noise_acf(self):
        model = VARModel(0, 2)
        model.parameters = VARModel.pack(MU, [], SIGMA)
        acf = model.compute_acf(2)
        np.testing.assert_array_equal(acf[0], SIGMA)
        np.testing.assert_array_equal(acf[1:], 0.0)

    def test_negative_lag(self, var1_model):
        with pytest.raises(ParameterError):
            var1_model.compute_acf(-1)

    def test_yule_walker_recovers_parameters(self, var1_process):
        model = VARModel(1, 2, data=var1_process)
        result = model.fit_by_moments()
        mu, phis, sigma = model.unpack()
        np.testing.assert_allclose(mu, MU, atol=0.15)
        np.testing.assert_allclose(phis[0], PHI, atol=0.08)
        np.testing.assert_allclose(sigma, SIGMA, atol=0.08)
        assert result.method == "Yule-Walker"
        assert model.fitted
        assert result.log_likelihood == pytest.approx(model.log_likelihood())

    def test_fitted_acf_reproduces_sample_moments(self, var1_process):
        model = VARModel(1, 2, data=var1_process)
        model.fit_by_moments()
        sample = sample_autocovariance_matrices(var1_process.to_numpy(), 1)
        np.testing.assert_allclose(model.compute_acf(1), sample, atol=1e-8)

    def test_yule_walker_order_two(self, var1_process):
        model = VARModel(2, 2, data=var1_process)
        model.fit_by_moments()
        mu, phis, sigma = model.unpack()
        np.testing.assert_allclose(phis[0], PHI, atol=0.08)
        np.testing.assert_allclose(phis[1], 0.0, atol=0.08)
        assert model.check_parameter_validity(model.parameters)

    def test_locked_mean_is_kept(self, var1_process):
        model = VARModel(1, 2, data=var1_process)
        model.set_parameter_state("mu[1]", ParameterState.LOCKED)
        model.fit_by_moments()
        assert model.get_parameter("mu[1]") == 0.0
        assert model.get_parameter("mu[2]") == pytest.approx(var1_process["inflation"].mean())

    def test_too_few_observations(self):
        model = VARModel(3, 2, data=np.ones((3, 2)))
        with pytest.raises(DataError):
            model.fit_by_moments()


class TestVARLikelihood:
    """Tests for the conditional Gaussian likelihood."""

    def test_matches_manual_sum(self, var1_model, var1_process):
        var1_model.set_data(var1_process)
        x = var1_process.to_numpy()
        residuals = x - MU
        residuals[1:] -= (x[:-1] - MU) @ PHI.T
        expected = np.sum(stats.multivariate_normal.logpdf(residuals, mean=np.zeros(2), cov=SIGMA))
        assert var1_model.log_likelihood() == pytest.approx(expected)

    def test_outputs_are_frames(self, var1_model, var1_process):
        var1_model.set_data(var1_process)
        var1_model.log_likelihood(fill_outputs=True)
        outputs = var1_model.outputs
        assert isinstance(outputs.residuals, pd.DataFrame)
        assert list(outputs.residuals.columns) == ["growth", "inflation"]
        np.testing.assert_allclose(outputs.one_step_predictors.iloc[0], MU)
        x = var1_process.to_numpy()
        np.testing.assert_allclose(outputs.predictors_at_availability.iloc[0], MU + PHI @ (x[0] - MU))
        # standardized residuals are uncorrelated with unit variance
        np.testing.assert_allclose(np.cov(outputs.residuals.to_numpy().T), np.eye(2), atol=0.1)

    def test_indefinite_covariance_gives_nan(self, var1_model, var1_process):
        var1_model.set_data(var1_process)
        parameters = VARModel.pack(MU, [PHI], np.array([[1.0, 2.0], [2.0, 1.0]]))
        assert np.isnan(var1_model.log_likelihood(parameters))

    def test_no_data(self, var1_model):
        assert np.isnan(var1_model.log_likelihood())

    def test_consequential_mean(self, var1_process):
        model = VARModel(1, 2, data=var1_process)
        parameters = model.compute_consequential_parameters(model.parameters)
        np.testing.assert_allclose(parameters[:2], var1_process.mean().to_numpy())


class TestVARSimulation:
    """Tests for simulation."""

    def test_reproducible(self, var1_model):
        first = var1_model.simulate(50, seed=9)
        pd.testing.assert_frame_equal(first, var1_model.simulate(50, seed=9))
        assert first.shape == (50, 2)
        assert list(first.columns) == ["x1", "x2"]

    def test_columns_follow_data(self, var1_model, var1_process):
        var1_model.set_data(var1_process)
        assert list(var1_model.simulate(5, seed=0).columns) == ["growth", "inflation"]

    def test_moments(self, var1_model):
        path = var1_model.simulate(20000, seed=2).to_numpy()
        np.testing.assert_allclose(path.mean(axis=0), MU, atol=0.08)
        gammas = sample_autocovariance_matrices(path, 1)
        np.testing.assert_allclose(gammas, var1_model.compute_acf(1), atol=0.08)

    def test_invalid_parameters(self, var1_model):
        var1_model._parameters = VARModel.pack(MU, [2.0 * np.eye(2)], SIGMA)
        with pytest.raises(ParameterError):
            var1_model.simulate(10)
