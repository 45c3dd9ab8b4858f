"""
Unit tests for optimizers, fitting methods and fitted bond curves.
"""

from datetime import date
import numpy as np
import pytest

from basislib.conventions import Frequency
from basislib.curves import (
    BFGS,
    CubicBSplinesFitting,
    EndCriteria,
    ExponentialSplinesFitting,
    FittedBondDiscountCurve,
    FixedRateBondHelper,
    FlatForward,
    LevenbergMarquardt,
    NelsonSiegelFitting,
    SimplePolynomialFitting,
    Simplex,
    SvenssonFitting,
    create_fitting_method,
    create_optimizer,
)
from basislib.exceptions import ConfigurationError
from basislib.market import SimpleQuote
from basislib.pricers import FixedRateBond

REFERENCE = date(2024, 1, 15)
KNOTS = [-10.0, -5.0, 0.0, 5.0, 10.0, 15.0, 20.0, 25.0, 30.0, 40.0]


def linear_residuals(x):
    """Consistent system with exact solution (1, -2)."""
    return np.array([x[0] - 1.0, x[1] + 2.0, x[0] + x[1] + 1.0])


class TestOptimizers:

    @pytest.mark.parametrize("method,tol", [
        (Simplex(0.5), 1e-4),
        (LevenbergMarquardt(), 1e-8),
        (BFGS(), 1e-5),
    ])
    def test_linear_least_squares(self, method, tol):
        result = method.minimize(linear_residuals, np.zeros(2), EndCriteria())

        np.testing.assert_allclose(result.x, [1.0, -2.0], atol=tol)
        assert result.cost < tol
        assert result.evaluations > 0

    def test_lm_needs_enough_residuals(self):
        with pytest.raises(ConfigurationError):
            LevenbergMarquardt().minimize(lambda x: np.array([x[0]]), np.zeros(2), EndCriteria())

    def test_create_optimizer(self):
        assert isinstance(create_optimizer(None), Simplex)
        assert isinstance(create_optimizer("Nelder-Mead"), Simplex)
        assert isinstance(create_optimizer("lm"), LevenbergMarquardt)
        assert isinstance(create_optimizer("BFGS"), BFGS)
        assert create_optimizer("Simplex", simplex_lambda=0.1).lambda_ == 0.1

        method = BFGS()
        assert create_optimizer(method) is method

    def test_unknown_optimizer(self):
        with pytest.raises(ConfigurationError):
            create_optimizer("Powell")

    def test_simplex_lambda(self):
        with pytest.raises(ConfigurationError):
            Simplex(0.0)


class TestFittingMethods:

    @pytest.mark.parametrize("method", [
        ExponentialSplinesFitting(),
        SimplePolynomialFitting(3),
        NelsonSiegelFitting(),
        SvenssonFitting(),
        CubicBSplinesFitting(KNOTS),
    ])
    def test_unit_discount_at_zero(self, method):
        rng = np.random.default_rng(7)
        x = method.guess() + 0.01 * rng.standard_normal(method.size)

        assert method.discount(x, 0.0) == pytest.approx(1.0, abs=1e-12)
        assert len(method.guess()) == method.size

    def test_nelson_siegel_long_end(self):
        """Zero rate tends to b0 for long maturities and b0 + b1 at the short end."""
        ns = NelsonSiegelFitting()
        x = np.array([0.04, -0.02, 0.01, 0.6])

        assert ns.zero_rate(x, 1e-12) == pytest.approx(0.02)
        assert ns.zero_rate(x, 500.0) == pytest.approx(0.04, abs=1e-3)

    def test_bspline_sizes(self):
        method = CubicBSplinesFitting(KNOTS)
        assert method.n_basis == 6
        assert method.size == 5

    def test_bspline_validation(self):
        with pytest.raises(ConfigurationError):
            CubicBSplinesFitting([0.0, 1.0, 2.0])
        with pytest.raises(ConfigurationError):
            CubicBSplinesFitting([0.0, 1.0, 2.0, 3.0, 2.5, 4.0, 5.0, 6.0])

    def test_create_fitting_method(self):
        assert isinstance(create_fitting_method("NelsonSiegel"), NelsonSiegelFitting)
        assert isinstance(create_fitting_method("exponential_splines"), ExponentialSplinesFitting)
        assert isinstance(create_fitting_method("CubicBSplines", KNOTS), CubicBSplinesFitting)

        with pytest.raises(ConfigurationError):
            create_fitting_method("CubicBSplines")
        with pytest.raises(ConfigurationError):
            create_fitting_method("Vasicek")

    def test_polynomial_degree(self):
        with pytest.raises(ConfigurationError):
            SimplePolynomialFitting(0)


class TestFittedBondDiscountCurve:
    """Fits to bonds priced off a flat 4% curve."""

    @pytest.fixture
    def flat(self):
        return FlatForward(REFERENCE, 0.04)

    @pytest.fixture
    def bond_helpers(self, flat):
        helpers = []
        for year, coupon in [(2025, 0.03), (2026, 0.035), (2027, 0.04),
                             (2029, 0.045), (2031, 0.04), (2034, 0.05)]:
            bond = FixedRateBond(2, 100.0, date(2023, 1, 15), date(year, 1, 15), coupon, Frequency.SEMI_ANNUAL)
            price = bond.clean_price(flat, bond.settlement_date(REFERENCE))
            helpers.append(FixedRateBondHelper(SimpleQuote(price), bond))
        return helpers

    def test_nelson_siegel_lm(self, flat, bond_helpers):
        curve = FittedBondDiscountCurve(
            REFERENCE, bond_helpers, fitting_method="NelsonSiegel", optimization_method="LevenbergMarquardt"
        )

        report = curve.fit_report()
        assert report["error"].abs().max() < 1e-6
        assert curve.discount(5.0) == pytest.approx(flat.discount(5.0), rel=1e-5)
        assert curve.minimum_cost < 1e-10
        assert curve.number_of_iterations > 0
        assert curve.converged

    def test_simplex_gets_close(self, bond_helpers):
        curve = FittedBondDiscountCurve(REFERENCE, bond_helpers, fitting_method=NelsonSiegelFitting())

        assert curve.fit_report()["error"].abs().max() < 0.05
        assert curve.zero_rate(7.0) == pytest.approx(0.04, abs=1e-3)

    def test_evaluation_budget_exhausted(self, bond_helpers):
        curve = FittedBondDiscountCurve(
            REFERENCE, bond_helpers, optimization_method="Simplex", max_evaluations=5
        )

        assert not curve.converged
        assert curve.minimum_cost > 1e-6

    def test_fit_report_columns(self, bond_helpers):
        curve = FittedBondDiscountCurve(REFERENCE, bond_helpers, optimization_method="lm")
        report = curve.fit_report()

        assert list(report.columns) == [
            "maturity_date", "coupon", "market_price", "model_price", "error", "weight"
        ]
        assert len(report) == len(bond_helpers)
        # default weights: inverse time to maturity
        assert report["weight"].is_monotonic_decreasing

    def test_fit_relative_to_base_curve(self, flat, bond_helpers):
        curve = FittedBondDiscountCurve(
            REFERENCE, bond_helpers, optimization_method="lm", base_curve=flat
        )

        b0 = curve.solution[0]
        assert abs(b0) < 1e-6
        assert curve.discount(3.0) == pytest.approx(flat.discount(3.0), rel=1e-6)

    def test_refit_on_quote_change(self, bond_helpers):
        curve = FittedBondDiscountCurve(REFERENCE, bond_helpers, optimization_method="lm")
        before = curve.solution
        assert curve.is_calculated()

        quote = bond_helpers[-1].quote_handle
        quote.set_value(quote.value - 1.0)
        assert not curve.is_calculated()
        assert not np.allclose(curve.solution, before)

    def test_solution_is_a_copy(self, bond_helpers):
        curve = FittedBondDiscountCurve(REFERENCE, bond_helpers, optimization_method="lm")
        solution = curve.solution
        solution[0] = 99.0

        assert curve.solution[0] != 99.0

    def test_validation(self, bond_helpers):
        with pytest.raises(ConfigurationError):
            FittedBondDiscountCurve(REFERENCE, [])
        with pytest.raises(ConfigurationError):
            FittedBondDiscountCurve(REFERENCE, bond_helpers, weights=[1.0, 2.0])
        with pytest.raises(ConfigurationError):
            FittedBondDiscountCurve(REFERENCE, bond_helpers, guess=[0.04, 0.0])
        with pytest.raises(ConfigurationError):
            FittedBondDiscountCurve(REFERENCE, [SimpleQuote(1.0)])
