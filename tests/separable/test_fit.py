"""
Tests for fit(): the full design -> solve -> evaluate pipeline.
"""

import numpy as np
import pytest

from pyndlinear.core.exceptions import (
    DimensionMismatchError,
    SingularMatrixError,
    UseAfterFreeError,
    ValidationError,
)
from pyndlinear.core.compute.tolerances import CPU_FP64
from pyndlinear.core.protocols import Backend, BasisFunction
from pyndlinear.separable import alloc, calc, design, est, fit
from pyndlinear.separable.backends import CPUQRBackend
from pyndlinear.separable._design import SeparableDesign
from pyndlinear.separable.solution import SeparableSolution


@pytest.fixture
def bilinear_data(rng):
    """Noiseless data from 1 + 2y - x + 0.5xy."""
    V = rng.uniform(-2, 2, size=(40, 2))
    c_true = np.array([1.0, 2.0, -1.0, 0.5])
    x, y = V[:, 0], V[:, 1]
    z = c_true[0] + c_true[1] * y + c_true[2] * x + c_true[3] * x * y
    return V, z, c_true


class TestFitBasic:

    def test_returns_solution(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        sol = fit(bilinear_ws, V, z)
        assert isinstance(sol, SeparableSolution)
        assert sol.coefficients.shape == (4,)
        assert sol.covariance.shape == (4, 4)

    def test_recovers_noiseless_coefficients(self, bilinear_ws, bilinear_data):
        V, z, c_true = bilinear_data
        sol = fit(bilinear_ws, V, z)
        np.testing.assert_allclose(sol.coefficients, c_true, rtol=1e-10, atol=1e-12)
        assert sol.rss == pytest.approx(0.0, abs=1e-18)
        assert sol.r_squared == pytest.approx(1.0)

    def test_matches_numpy_lstsq_on_design(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(200, 3))
        z = rng.standard_normal(200)
        expected, *_ = np.linalg.lstsq(design(mixed_ws, V), z, rcond=None)
        sol = fit(mixed_ws, V, z)
        np.testing.assert_allclose(sol.coefficients, expected, rtol=1e-8, atol=1e-10)

    def test_fitted_plus_residuals_equals_y(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(100, 3))
        z = rng.standard_normal(100)
        sol = fit(mixed_ws, V, z)
        np.testing.assert_allclose(sol.fitted_values + sol.residuals, z, atol=1e-12)

    def test_rss_matches_residuals(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(100, 3))
        z = rng.standard_normal(100)
        sol = fit(mixed_ws, V, z)
        assert sol.rss == pytest.approx(float(sol.residuals @ sol.residuals), rel=1e-10)
        assert sol.chisq == sol.rss

    def test_df_residual(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(50, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(50))
        assert sol.rank == 24
        assert sol.df_residual == 26

    def test_y_column_vector_accepted(self, bilinear_ws, bilinear_data):
        V, z, c_true = bilinear_data
        sol = fit(bilinear_ws, V, z.reshape(-1, 1))
        np.testing.assert_allclose(sol.coefficients, c_true, rtol=1e-10)


class TestCovariance:

    def test_unweighted_scaled_by_residual_variance(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(120, 3))
        z = rng.standard_normal(120)
        sol = fit(mixed_ws, V, z)
        X = design(mixed_ws, V)
        s2 = sol.rss / (120 - 24)
        np.testing.assert_allclose(sol.covariance, s2 * np.linalg.inv(X.T @ X), rtol=1e-8, atol=1e-14)

    def test_weighted_is_inverse_weighted_gram(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(120, 3))
        z = rng.standard_normal(120)
        w = rng.uniform(0.5, 2.0, size=120)
        sol = fit(mixed_ws, V, z, weights=w)
        X = design(mixed_ws, V)
        expected = np.linalg.inv(X.T @ (w[:, None] * X))
        np.testing.assert_allclose(sol.covariance, expected, rtol=1e-8, atol=1e-14)

    def test_covariance_symmetric(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(80, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(80))
        np.testing.assert_array_equal(sol.covariance, sol.covariance.T)

    def test_standard_errors(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(80, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(80))
        np.testing.assert_allclose(sol.standard_errors, np.sqrt(np.diag(sol.covariance)))
        assert np.all(sol.standard_errors > 0)


class TestWeighted:

    def test_matches_scaled_lstsq(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(150, 3))
        z = rng.standard_normal(150)
        w = rng.uniform(0.1, 3.0, size=150)
        Xw = design(mixed_ws, V, weights=w)
        expected, *_ = np.linalg.lstsq(Xw, np.sqrt(w) * z, rcond=None)
        sol = fit(mixed_ws, V, z, weights=w)
        np.testing.assert_allclose(sol.coefficients, expected, rtol=1e-8, atol=1e-10)
        assert sol.weighted
        assert sol.info['weighted'] is True

    def test_chisq_is_weighted_rss(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(150, 3))
        z = rng.standard_normal(150)
        w = rng.uniform(0.1, 3.0, size=150)
        sol = fit(mixed_ws, V, z, weights=w)
        assert sol.chisq == pytest.approx(float(np.sum(w * sol.residuals ** 2)), rel=1e-10)

    def test_unit_weights_match_unweighted_coefficients(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(60, 3))
        z = rng.standard_normal(60)
        unweighted = fit(mixed_ws, V, z)
        weighted = fit(mixed_ws, V, z, weights=np.ones(60))
        np.testing.assert_allclose(weighted.coefficients, unweighted.coefficients, rtol=1e-12)
        assert not unweighted.weighted


class TestEvaluation:

    def test_calc_matches_module_calc(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(60, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(60))
        x = [0.2, -0.5, 0.9]
        assert sol.calc(x) == calc(mixed_ws, x, sol.coefficients)

    def test_est_matches_module_est(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(60, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(60))
        x = [0.2, -0.5, 0.9]
        assert sol.est(x) == est(mixed_ws, x, sol.coefficients, sol.covariance)

    def test_est_value_equals_calc(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(60, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(60))
        value, se = sol.est([0.1, 0.1, 0.1])
        assert value == sol.calc([0.1, 0.1, 0.1])
        assert se >= 0.0

    def test_predict_at_training_points_equals_fitted(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(60, 3))
        sol = fit(mixed_ws, V, rng.standard_normal(60))
        np.testing.assert_allclose(sol.predict(V), sol.fitted_values, rtol=1e-12, atol=1e-12)

    def test_evaluation_after_free_fails(self, monomial, bilinear_data):
        V, z, _ = bilinear_data
        ws = alloc(2, [2, 2], [monomial, monomial])
        sol = fit(ws, V, z)
        ws.free()
        with pytest.raises(UseAfterFreeError):
            sol.calc([0.0, 0.0])
        # fitted numbers stay readable
        assert sol.coefficients.shape == (4,)


class TestFitErrors:

    def test_y_length_mismatch(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        with pytest.raises(DimensionMismatchError, match="vars=40, y=39"):
            fit(bilinear_ws, V, z[:-1])

    def test_vars_column_mismatch(self, bilinear_ws, rng):
        with pytest.raises(DimensionMismatchError):
            fit(bilinear_ws, rng.standard_normal((10, 3)), rng.standard_normal(10))

    def test_weights_length_mismatch(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        with pytest.raises(DimensionMismatchError):
            fit(bilinear_ws, V, z, weights=np.ones(10))

    def test_too_few_observations(self, mixed_ws, rng):
        with pytest.raises(ValidationError, match="at least 24 samples"):
            fit(mixed_ws, rng.uniform(-1, 1, size=(23, 3)), rng.standard_normal(23))

    def test_non_finite_y(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        z = z.copy()
        z[3] = np.nan
        with pytest.raises(ValidationError, match="y"):
            fit(bilinear_ws, V, z)

    def test_rank_deficient_design(self, bilinear_ws, rng):
        # x is constant, so columns [1, y] and [x, xy] are proportional
        V = np.column_stack([np.full(20, 3.0), rng.standard_normal(20)])
        with pytest.raises(SingularMatrixError) as exc_info:
            fit(bilinear_ws, V, rng.standard_normal(20))
        assert exc_info.value.rank == 2
        assert exc_info.value.expected_rank == 4

    def test_unknown_backend(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        with pytest.raises(ValueError, match="Unknown backend"):
            fit(bilinear_ws, V, z, backend='nonsense')


class TestZeroResidualDof:

    def test_warns_and_records(self, bilinear_ws, rng):
        V = rng.uniform(-1, 1, size=(4, 2))
        z = rng.standard_normal(4)
        with pytest.warns(RuntimeWarning, match="No residual degrees of freedom"):
            sol = fit(bilinear_ws, V, z)
        assert sol.df_residual == 0
        assert any("degrees of freedom" in w for w in sol.warnings)
        np.testing.assert_array_equal(sol.covariance, np.zeros((4, 4)))
        np.testing.assert_allclose(sol.residuals, 0.0, atol=1e-10)

    def test_warning_points_at_caller(self, bilinear_ws, rng):
        V = rng.uniform(-1, 1, size=(4, 2))
        with pytest.warns(RuntimeWarning) as record:
            fit(bilinear_ws, V, rng.standard_normal(4))
        assert record[0].filename == __file__


class TestBackendSelection:

    def test_default_is_cpu(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        assert fit(bilinear_ws, V, z).backend_name == 'cpu_qr'

    @pytest.mark.parametrize("choice", ['cpu', 'cpu_qr'])
    def test_cpu_choices(self, bilinear_ws, bilinear_data, choice):
        V, z, _ = bilinear_data
        assert fit(bilinear_ws, V, z, backend=choice).backend_name == 'cpu_qr'

    def test_cpu_backend_satisfies_protocol(self):
        assert isinstance(CPUQRBackend(), Backend)

    def test_basis_callbacks_satisfy_protocol(self, monomial, legendre, cosine):
        for callback in (monomial, legendre, cosine):
            assert isinstance(callback, BasisFunction)

    def test_backend_solves_design_directly(self, bilinear_ws, bilinear_data):
        V, z, c_true = bilinear_data
        result = CPUQRBackend().solve(SeparableDesign.build(bilinear_ws, V, z))
        np.testing.assert_allclose(result.params.coefficients, c_true, rtol=1e-10)
        assert not result.has_warning("degrees of freedom")

    def test_auto_works(self, bilinear_ws, bilinear_data):
        V, z, c_true = bilinear_data
        sol = fit(bilinear_ws, V, z, backend='auto')
        assert sol.backend_name in ('cpu_qr', 'gpu_cholesky_fp32')
        np.testing.assert_allclose(sol.coefficients, c_true, rtol=1e-3, atol=1e-3)


class TestReporting:

    def test_timing_sections(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        timing = fit(bilinear_ws, V, z).timing
        for key in ('total_seconds', 'qr_decomposition', 'solve', 'covariance'):
            assert key in timing

    def test_info(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        info = fit(bilinear_ws, V, z).info
        assert info['method'] == 'qr'
        assert info['rank'] == 4
        assert info['weighted'] is False

    def test_summary(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        text = fit(bilinear_ws, V, z).summary()
        assert "Separable Linear Fit Results" in text
        assert "Chi-squared" in text
        assert "(1, 1)" in text
        assert "Backend: cpu_qr" in text

    def test_repr(self, bilinear_ws, bilinear_data):
        V, z, _ = bilinear_data
        assert repr(fit(bilinear_ws, V, z)).startswith("SeparableSolution(n=40, p=4")


class TestAnalyticRecovery:
    """
    3000 random points of exp(x) * sin(2y) * (1 + z²) with noise, fitted
    with Legendre bases; held-out points must match the true function.
    """

    @staticmethod
    def truth(V):
        return np.exp(V[:, 0]) * np.sin(2.0 * V[:, 1]) * (1.0 + V[:, 2] ** 2)

    def test_recovers_separable_function(self, legendre, rng):
        sigma = 0.01
        V = rng.uniform(-1, 1, size=(3000, 3))
        z = self.truth(V) + sigma * rng.standard_normal(3000)

        with alloc(3, [10, 10, 3], [legendre, legendre, legendre]) as ws:
            sol = fit(ws, V, z)

            V_test = rng.uniform(-1, 1, size=(500, 3))
            predicted = sol.predict(V_test)
            rms = float(np.sqrt(np.mean((predicted - self.truth(V_test)) ** 2)))
            assert rms < 5 * sigma * np.sqrt(300 / 3000) + 1e-3

            # residual variance estimates the noise level
            assert sol.rss / sol.df_residual == pytest.approx(sigma ** 2, rel=0.1)

            # prediction standard errors are small and honest
            _, se = sol.est([0.2, -0.3, 0.5])
            assert 0.0 < se < 5 * sigma

    def test_weighted_recovery(self, legendre, rng):
        V = rng.uniform(-1, 1, size=(3000, 3))
        sigma = rng.uniform(0.005, 0.05, size=3000)
        z = self.truth(V) + sigma * rng.standard_normal(3000)

        with alloc(3, [10, 10, 3], [legendre, legendre, legendre]) as ws:
            sol = fit(ws, V, z, weights=1.0 / sigma ** 2)
            V_test = rng.uniform(-1, 1, size=(500, 3))
            rms = float(np.sqrt(np.mean((sol.predict(V_test) - self.truth(V_test)) ** 2)))
            assert rms < 0.015
            # chi-squared per degree of freedom near 1 for correct weights
            assert sol.chisq / sol.df_residual == pytest.approx(1.0, rel=0.1)


class TestCPUReferenceTolerance:

    def test_qr_matches_normal_equations(self, mixed_ws, rng):
        V = rng.uniform(-1, 1, size=(300, 3))
        z = rng.standard_normal(300)
        X = design(mixed_ws, V)
        expected = np.linalg.solve(X.T @ X, X.T @ z)
        np.testing.assert_allclose(
            fit(mixed_ws, V, z).coefficients, expected,
            rtol=CPU_FP64.rtol * 1e3, atol=CPU_FP64.atol * 1e3,
        )
