# tests/test_core.py

"""
Tests for the CronoSeries core layer.

Covers parameter states and the hypercube helpers, the drawdown-penalized
log-likelihood, the exception hierarchy, the configuration manager and the
result containers shared by all models.
"""

import json
import warnings

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from scipy import stats

from cronoseries.core.base import DistributionSummary, EstimationResult
from cronoseries.core.config import (
    ConfigManager, get_config, get_config_manager, get_estimation_config,
    get_logging_config, reset_config, save_config, set_config
)
from cronoseries.core.exceptions import (
    ConfigurationError, ConvergenceWarning, CronoError, DimensionError, ModelWarning,
    NumericWarning, ParameterError, PredictorCapacityError, PredictorStateError,
    raise_dimension_error, raise_parameter_error, warn_convergence, warn_model, warn_numeric
)
from cronoseries.core.likelihood import (
    LogLikelihoodPenalizer, gaussian_components, max_drawdown,
    student_t_components, student_t_scale
)
from cronoseries.core.parameters import (
    ParameterState, count_states, cube_fix, cube_insert, free_indices, logistic,
    logit, margin_logistic, margin_logit, validate_states
)

FREE = ParameterState.FREE
LOCKED = ParameterState.LOCKED
CONSEQUENTIAL = ParameterState.CONSEQUENTIAL


class TestParameterStates:
    """Tests for state bookkeeping."""

    def test_free_indices(self):
        states = [CONSEQUENTIAL, FREE, LOCKED, FREE]
        np.testing.assert_array_equal(free_indices(states), [1, 3])
        assert count_states(states, FREE) == 2
        assert count_states(states, LOCKED) == 1

    def test_validate_states_length(self):
        with pytest.raises(DimensionError):
            validate_states([FREE], 2)

    def test_validate_states_type(self):
        with pytest.raises(ParameterError):
            validate_states([FREE, "free"], 2)

    def test_validate_states_returns_list(self):
        assert validate_states((FREE, LOCKED), 2) == [FREE, LOCKED]


class TestCubeHelpers:
    """Tests for folding and embedding hypercube points."""

    def test_cube_fix_identity_inside(self):
        x = np.array([0.0, 0.3, 1.0])
        np.testing.assert_array_equal(cube_fix(x), x)

    def test_cube_fix_reflects(self):
        np.testing.assert_allclose(cube_fix(np.array([-0.2, 1.3, 2.4, -1.7])), [0.2, 0.7, 0.4, 0.3])

    def test_cube_fix_non_finite(self):
        result = cube_fix(np.array([np.nan, np.inf, 0.5]))
        assert np.isnan(result[0]) and np.isnan(result[1])
        assert result[2] == 0.5

    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.floats(min_value=-1e6, max_value=1e6, allow_nan=False), min_size=1, max_size=8))
    def test_cube_fix_is_idempotent(self, values):
        once = cube_fix(np.array(values))
        assert np.all((once >= 0.0) & (once <= 1.0))
        np.testing.assert_allclose(cube_fix(once), once)

    def test_cube_insert(self):
        full = cube_insert(np.array([0.1, 0.2, 0.3]), np.array([0, 2]), np.array([0.9, 0.8]))
        np.testing.assert_array_equal(full, [0.9, 0.2, 0.8])

    def test_cube_insert_does_not_mutate(self):
        base = np.array([0.1, 0.2])
        cube_insert(base, np.array([1]), np.array([0.5]))
        np.testing.assert_array_equal(base, [0.1, 0.2])

    def test_cube_insert_shape_mismatch(self):
        with pytest.raises(DimensionError):
            cube_insert(np.zeros(3), np.array([0, 1]), np.array([0.5]))


class TestTransforms:
    """Tests for the logistic maps used by the cube mappings."""

    @pytest.mark.parametrize("x", [-3.0, 0.0, 0.7, 12.0])
    def test_logit_inverts_logistic(self, x):
        assert logit(logistic(x, 10.0), 10.0) == pytest.approx(x)

    def test_logit_bound(self):
        assert logit(1.0, 1.0, bound=50.0) == 50.0
        assert logit(0.0, 1.0, bound=50.0) == -50.0

    def test_margin_logit_is_finite_on_closed_interval(self):
        margin = 1e-6
        for c in (0.0, 0.5, 1.0):
            x = margin_logit(c, margin)
            assert np.isfinite(x)
            assert margin_logistic(x, margin) == pytest.approx(c, abs=1e-9)


class TestLikelihood:
    """Tests for the log-likelihood components and the drawdown penalty."""

    def test_max_drawdown(self):
        assert max_drawdown(np.array([0.0, 2.0, 1.0, 3.0, -1.0, 0.0])) == 4.0
        assert max_drawdown(np.array([1.0, 2.0, 3.0])) == 0.0
        assert max_drawdown(np.zeros(0)) == 0.0

    @settings(max_examples=200, deadline=None)
    @given(st.lists(st.floats(min_value=-100.0, max_value=100.0, allow_nan=False), min_size=1, max_size=50))
    def test_drawdown_is_non_negative_and_bounded(self, values):
        c = np.array(values)
        dd = max_drawdown(c)
        assert dd >= 0.0
        assert dd <= np.max(c) - np.min(c) + 1e-9

    def test_penalizer_constant_components_have_no_penalty(self):
        penalizer = LogLikelihoodPenalizer(np.full(10, -1.5))
        assert penalizer.log_likelihood == pytest.approx(-15.0)
        assert penalizer.penalty == pytest.approx(0.0, abs=1e-12)
        assert penalizer.penalized(3.0) == pytest.approx(-15.0)

    def test_penalizer_uneven_fit(self):
        # good first half, bad second half
        components = np.concatenate([np.full(5, 0.0), np.full(5, -2.0)])
        penalizer = LogLikelihoodPenalizer(components)
        assert penalizer.penalty == pytest.approx(5.0)
        assert penalizer.penalized(0.0) == penalizer.log_likelihood
        assert penalizer.penalized(2.0) == pytest.approx(-10.0 - 10.0)

    def test_penalizer_empty(self):
        penalizer = LogLikelihoodPenalizer(np.zeros(0))
        assert penalizer.log_likelihood == 0.0
        assert penalizer.penalty == 0.0

    def test_gaussian_components_match_scipy(self, rng):
        errors = rng.standard_normal(20)
        variances = rng.uniform(0.5, 2.0, 20)
        np.testing.assert_allclose(gaussian_components(errors, variances),
                                   stats.norm.logpdf(errors, scale=np.sqrt(variances)))

    def test_gaussian_components_zero_variance_is_not_finite(self):
        assert not np.isfinite(gaussian_components(np.array([1.0]), np.array([0.0]))[0])

    def test_student_t_components_match_scipy(self, rng):
        errors = rng.standard_normal(20)
        np.testing.assert_allclose(student_t_components(errors, 1.3, 5.0),
                                   stats.t.logpdf(errors, 5.0, scale=1.3))

    def test_student_t_scale_recovers_scale(self, rng):
        sample = 2.0 * rng.standard_t(6.0, 20000)
        assert student_t_scale(sample, 6.0, iterations=100) == pytest.approx(2.0, rel=0.05)

    def test_student_t_scale_edge_cases(self):
        assert np.isnan(student_t_scale(np.zeros(0), 5.0))
        assert student_t_scale(np.zeros(4), 5.0) == 0.0


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_parameter_error_context(self):
        error = ParameterError("bad value", param_name="sigma", param_value=-1.0, constraint="sigma > 0")
        assert isinstance(error, CronoError)
        assert error.param_name == "sigma"
        assert error.context["Constraint"] == "sigma > 0"
        assert "bad value" in str(error)
        assert "Location:" in str(error)

    def test_capacity_error_is_state_error(self):
        error = PredictorCapacityError("full", predictor="DurbinLevinson", capacity=10)
        assert isinstance(error, PredictorStateError)
        assert error.capacity == 10
        assert error.state == "EXHAUSTED"

    def test_warn_convergence(self):
        with pytest.warns(ConvergenceWarning) as record:
            warn_convergence("no improvement", iterations=5, final_value=1.0)
        assert record[0].message.iterations == 5

    def test_raise_helpers(self):
        with pytest.raises(ParameterError) as info:
            raise_parameter_error("bad order", param_name="ar_order", param_value=-1)
        assert info.value.param_value == -1
        with pytest.raises(DimensionError) as info:
            raise_dimension_error("wrong length", array_name="parameters",
                                  expected_shape=(3,), actual_shape=(2,))
        assert info.value.actual_shape == (2,)

    def test_warning_helpers(self):
        with pytest.warns(NumericWarning) as record:
            warn_numeric("overflow", operation="exp", value=1e308)
        assert record[0].message.operation == "exp"
        with pytest.warns(ModelWarning) as record:
            warn_model("short sample", model_type="ARMA(1,1)")
        assert record[0].message.model_type == "ARMA(1,1)"


class TestConfiguration:
    """Tests for the configuration manager."""

    def test_defaults(self):
        est = get_estimation_config()
        assert est.n_global_samples == 200
        assert est.n_local_iterations == 100
        assert est.penalty_factor == 0.0
        assert get_config("numerical", "nan_step_shrink") == 0.8
        assert get_config("logging", "log_level") == "WARNING"
        assert get_logging_config().console_logging is True

    def test_unknown_option_returns_default(self):
        assert get_config("estimation", "missing", default=7) == 7
        assert get_config("missing", "option") is None

    def test_set_and_reset(self):
        set_config("estimation", "n_global_samples", 50)
        assert get_estimation_config().n_global_samples == 50
        assert "estimation.n_global_samples" in get_config_manager().get_modified_options()
        reset_config("estimation", "n_global_samples")
        assert get_estimation_config().n_global_samples == 200

    def test_string_values_are_coerced(self):
        set_config("estimation", "parallel_global_search", "true")
        assert get_config("estimation", "parallel_global_search") is True
        set_config("numerical", "nan_step_shrink", "0.5")
        assert get_config("numerical", "nan_step_shrink") == 0.5

    def test_invalid_value_is_rolled_back(self):
        with pytest.raises(ConfigurationError):
            set_config("numerical", "nan_step_shrink", 1.5)
        assert get_config("numerical", "nan_step_shrink") == 0.8

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError):
            set_config("plotting", "style", "dark")
        with pytest.raises(ConfigurationError):
            set_config("estimation", "style", "dark")

    def test_log_level_is_normalized(self):
        set_config("logging", "log_level", "debug")
        assert get_config("logging", "log_level") == "DEBUG"
        with pytest.raises(ConfigurationError):
            set_config("logging", "log_level", "LOUD")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CRONO_ESTIMATION_N_GLOBAL_SAMPLES", "321")
        monkeypatch.setenv("CRONO_ESTIMATION_PARALLEL_GLOBAL_SEARCH", "yes")
        manager = ConfigManager()
        manager.initialize()
        assert manager.get("estimation", "n_global_samples") == 321
        assert manager.get("estimation", "parallel_global_search") is True

    def test_malformed_environment_override_is_ignored(self, monkeypatch):
        monkeypatch.setenv("CRONO_ESTIMATION_N_LOCAL_ITERATIONS", "many")
        manager = ConfigManager()
        manager.initialize()
        assert manager.get("estimation", "n_local_iterations") == 100

    def test_save_and_reload(self, tmp_path):
        set_config("estimation", "penalty_factor", 0.25)
        save_config()
        path = tmp_path / "cronoseries_config.json"
        assert path.exists()
        assert json.loads(path.read_text())["estimation"]["penalty_factor"] == 0.25

        manager = ConfigManager()
        manager.initialize()
        assert manager.get("estimation", "penalty_factor") == 0.25
        assert manager.get_config_file() == path


class TestResultContainers:
    """Tests for the prediction and estimation result types."""

    def test_distribution_summary(self):
        summary = DistributionSummary(mean=1.0, variance=4.0)
        assert summary.std == 2.0
        low, high = summary.interval(0.95)
        assert low == pytest.approx(1.0 - 1.959964 * 2.0, rel=1e-6)
        assert high == pytest.approx(1.0 + 1.959964 * 2.0, rel=1e-6)

    @pytest.mark.parametrize("level", [0.0, 1.0, 1.5])
    def test_distribution_summary_bad_level(self, level):
        with pytest.raises(ParameterError):
            DistributionSummary(0.0, 1.0).interval(level)

    def test_information_criteria_count_free_parameters(self):
        result = EstimationResult(
            model_name="ARMA(1,0)", method="MLE",
            parameters=np.array([0.0, 1.0, 0.5]),
            parameter_names=["mu", "sigma", "phi[1]"],
            parameter_states=[CONSEQUENTIAL, CONSEQUENTIAL, FREE],
            log_likelihood=-100.0, n_observations=100
        )
        assert result.n_free_parameters == 1
        assert result.aic == pytest.approx(202.0)
        assert result.bic == pytest.approx(np.log(100.0) + 200.0)

    def test_non_finite_likelihood_has_no_criteria(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = EstimationResult("m", "MLE", np.zeros(1), ["a"], [FREE], float("nan"))
        assert result.aic is None and result.bic is None

    def test_summary_and_dict(self):
        result = EstimationResult("ACF(2)", "Yule-Walker", np.array([0.1, 1.2]),
                                  ["mu", "sigma"], [CONSEQUENTIAL, FREE], -50.0, n_observations=40)
        text = result.summary()
        assert "Yule-Walker" in text
        assert "Global samples" not in text
        as_dict = result.to_dict()
        assert as_dict["parameters"] == {"mu": 0.1, "sigma": 1.2}
        assert as_dict["parameter_states"] == ["consequential", "free"]


class TestPackage:
    """Tests for the package-level helpers."""

    def test_version_info(self):
        import cronoseries

        info = cronoseries.get_version_info()
        assert info["version"] == cronoseries.get_version() == cronoseries.__version__
        assert set(info["dependencies"]) >= {"numpy", "scipy", "pandas", "numba"}

    def test_available_models(self):
        import cronoseries

        models = cronoseries.list_available_models()
        assert "GARCHModel" in models["univariate"]
        assert "VARModel" in models["time_series"]

    def test_set_log_level(self):
        import logging

        import cronoseries

        cronoseries.set_log_level("debug")
        assert logging.getLogger("cronoseries").level == logging.DEBUG
        cronoseries.set_log_level(logging.WARNING)
        assert logging.getLogger("cronoseries").level == logging.WARNING
