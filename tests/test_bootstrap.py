"""
Unit tests for rate helpers and curve bootstrapping.
"""

from datetime import date
import numpy as np
import pytest

from basislib.conventions import BusinessDayConvention, DayCount, Frequency
from basislib.curves import (
    BootstrapConfig,
    DepositRateHelper,
    DiscountCurve,
    FixedRateBondHelper,
    FlatForward,
    FraRateHelper,
    FxBootstrapType,
    FxFwdRateHelper,
    PiecewiseYieldCurve,
    SwapRateHelper,
    TenorSwapRateHelper,
    XCCYSwapRateHelper,
    find_bracket,
    solve_pillar,
)
from basislib.exceptions import ConfigurationError, ConvergenceError, DomainError
from basislib.indexes import IborIndex
from basislib.market import RelinkableHandle, SimpleQuote
from basislib.pricers import FixedRateBond

REFERENCE = date(2024, 1, 15)

SWAP_QUOTES = [
    ("1Y", 0.0340),
    ("2Y", 0.0320),
    ("3Y", 0.0310),
    ("5Y", 0.0300),
    ("7Y", 0.0305),
    ("10Y", 0.0310),
]


def euribor(tenor, curve=None):
    return IborIndex("EURIBOR", tenor, forwarding_curve=curve)


def single_curve_helpers():
    helpers = [DepositRateHelper(0.0350, euribor("6M"))]
    helpers += [SwapRateHelper(rate, tenor, euribor("6M")) for tenor, rate in SWAP_QUOTES]
    return helpers


def max_repricing_error(curve):
    return float(curve.repricing_report()["error"].abs().max())


class TestSolver:

    def test_solve_pillar(self):
        root = solve_pillar(lambda r: r - 0.05, 0.02, BootstrapConfig())
        assert root == pytest.approx(0.05, abs=1e-13)

    def test_bracket_expands(self):
        a, b = find_bracket(lambda r: r - 0.9, 0.0, -0.02, 0.30)
        assert a < 0.9 < b

    def test_bracket_failure_reports_pillar(self):
        pillar = date(2030, 1, 15)
        with pytest.raises(ConvergenceError) as info:
            find_bracket(lambda r: 1.0, 0.0, -0.01, 0.01, pillar_date=pillar)

        assert info.value.pillar_date == pillar
        assert info.value.residual == 1.0



class TestBootstrapFailures:

    def test_global_interpolation_out_of_passes(self):
        curve = PiecewiseYieldCurve(
            REFERENCE, single_curve_helpers(),
            traits="ZeroYield", interpolator="CubicNaturalSpline",
            config=BootstrapConfig(max_passes=1),
        )
        with pytest.raises(ConvergenceError) as info:
            curve.discount(1.0)

        assert info.value.pillar_date in [h.pillar_date for h in curve.helpers]
        assert info.value.residual > 0.0

    def test_unattainable_quote_reports_pillar(self):
        helper = DepositRateHelper(-5.0, euribor("6M"))
        curve = PiecewiseYieldCurve(REFERENCE, [helper])
        with pytest.raises(ConvergenceError) as info:
            curve.discount(0.25)

        assert info.value.pillar_date == helper.pillar_date
        assert info.value.residual > 2.5
        assert not curve.is_calculated()

class TestSingleCurveBootstrap:
    """Deposits and swaps on one curve."""

    @pytest.mark.parametrize("traits,interpolator", [
        ("Discount", "LogLinear"),
        ("ZeroYield", "Linear"),
        ("ForwardRate", "BackwardFlat"),
        ("ZeroYield", "CubicNaturalSpline"),
        ("Discount", "MonotonicLogCubicNaturalSpline"),
    ])
    def test_helpers_reprice(self, traits, interpolator):
        """Every helper reprices its own quote on the bootstrapped curve."""
        curve = PiecewiseYieldCurve(
            REFERENCE, single_curve_helpers(), traits=traits, interpolator=interpolator
        )

        assert max_repricing_error(curve) < 1e-9

    def test_nodes_at_pillars(self):
        helpers = single_curve_helpers()
        curve = PiecewiseYieldCurve(REFERENCE, helpers)

        assert curve.dates[0] == REFERENCE
        assert curve.dates[1:] == sorted(h.pillar_date for h in helpers)
        assert curve.data[0] == 1.0
        assert np.all(np.diff(curve.data) < 0)

    def test_helpers_sorted_by_pillar(self):
        helpers = single_curve_helpers()[::-1]
        curve = PiecewiseYieldCurve(REFERENCE, helpers)
        pillars = [h.pillar_date for h in curve.helpers]

        assert pillars == sorted(pillars)

    def test_lazy_rebuild_on_quote_change(self):
        quote = SimpleQuote(0.0300)
        helpers = [DepositRateHelper(0.0350, euribor("6M"))]
        helpers += [SwapRateHelper(r, t, euribor("6M")) for t, r in SWAP_QUOTES if t != "5Y"]
        helpers.append(SwapRateHelper(quote, "5Y", euribor("6M")))
        curve = PiecewiseYieldCurve(REFERENCE, helpers)

        before = curve.discount(5.0)
        assert curve.is_calculated()
        assert curve.discount(5.0) == before

        quote.set_value(0.0320)
        assert not curve.is_calculated()
        assert curve.discount(5.0) < before
        assert max_repricing_error(curve) < 1e-9

    def test_fra_helper(self):
        helpers = [
            DepositRateHelper(0.0350, euribor("6M")),
            FraRateHelper(0.0345, 3, euribor("6M")),
            SwapRateHelper(0.0330, "2Y", euribor("6M")),
        ]
        curve = PiecewiseYieldCurve(REFERENCE, helpers)

        assert max_repricing_error(curve) < 1e-9

    def test_duplicate_pillar(self):
        """A 0x6 FRA and a 6M deposit share their pillar."""
        helpers = [
            DepositRateHelper(0.0350, euribor("6M")),
            FraRateHelper(0.0352, 0, euribor("6M")),
        ]
        with pytest.raises(ConfigurationError, match="More than one instrument"):
            PiecewiseYieldCurve(REFERENCE, helpers)

    def test_no_helpers(self):
        with pytest.raises(ConfigurationError):
            PiecewiseYieldCurve(REFERENCE, [])

    def test_query_past_last_pillar(self):
        curve = PiecewiseYieldCurve(REFERENCE, single_curve_helpers())

        with pytest.raises(DomainError):
            curve.discount(curve.max_time + 50.0)
        assert curve.discount(curve.max_time + 50.0, extrapolate=True) > 0.0

    def test_helper_without_curve_dependency(self):
        ois = FlatForward(REFERENCE, 0.03)
        helper = SwapRateHelper(0.03, "5Y", euribor("6M", ois), discount_curve=ois)
        curve = PiecewiseYieldCurve(REFERENCE, [helper])

        with pytest.raises(ConfigurationError, match="does not depend"):
            curve.discount(1.0)


class TestMultiCurveBootstrap:
    """Projection curves bootstrapped against external discount curves."""

    @pytest.fixture
    def ois_quote(self):
        return SimpleQuote(0.0300)

    @pytest.fixture
    def ois(self, ois_quote):
        return FlatForward(REFERENCE, ois_quote)

    @pytest.fixture
    def curve6m(self, ois):
        helpers = [DepositRateHelper(0.0350, euribor("6M"))]
        helpers += [
            SwapRateHelper(rate, tenor, euribor("6M"), discount_curve=ois)
            for tenor, rate in SWAP_QUOTES
        ]
        return PiecewiseYieldCurve(REFERENCE, helpers)

    @pytest.fixture
    def curve3m(self, ois, curve6m):
        helpers = [DepositRateHelper(0.0340, euribor("3M"))]
        helpers += [
            TenorSwapRateHelper(
                spread, tenor,
                pay_index=euribor("3M"),
                rec_index=euribor("6M", curve6m),
                discount_curve=ois,
            )
            for tenor, spread in [("1Y", -0.0010), ("2Y", -0.0009), ("3Y", -0.0008), ("5Y", -0.0007)]
        ]
        return PiecewiseYieldCurve(REFERENCE, helpers)

    def test_cached_reads_skip_dependency_walk(self, curve6m, curve3m, monkeypatch):
        calls = {"key": 0, "check": 0}
        key_6m = curve6m._state_key
        check_3m = curve3m.check_dependencies

        def counting_key():
            calls["key"] += 1
            return key_6m()

        def counting_check():
            calls["check"] += 1
            check_3m()

        monkeypatch.setattr(curve6m, "_state_key", counting_key)
        monkeypatch.setattr(curve3m, "check_dependencies", counting_check)

        curve3m.discount(1.0)
        built = dict(calls)
        assert built["key"] <= 1
        assert built["check"] <= 1

        for _ in range(200):
            curve3m.discount(5.0)
        assert calls == built

    def test_upstream_change_rebuilds_downstream_once(self, ois_quote, curve6m, curve3m):
        before = curve3m.discount(5.0)
        version = curve3m.version

        ois_quote.set_value(0.0310)
        assert not curve3m.is_calculated()
        assert curve3m.discount(5.0) != before
        assert curve3m.version == version + 1
        assert curve3m.is_calculated()

    def test_projection_curve_reprices(self, curve6m):
        assert max_repricing_error(curve6m) < 1e-9

    def test_quote_errors_vanish(self, curve6m):
        curve6m.discount(1.0)
        for helper in curve6m.helpers:
            assert abs(helper.quote_error()) < 1e-9

    def test_external_curves_are_reported(self, curve6m):
        swap_helper = curve6m.helpers[1]
        assert set(swap_helper.external_curves()) == {"discount"}
        assert swap_helper.depends_on_term_structure()

    def test_tenor_basis_curve_reprices(self, curve3m):
        assert max_repricing_error(curve3m) < 1e-9

    def test_tenor_basis_spread_sign(self, curve3m, curve6m):
        """Paying 3M against 6M minus a spread makes 3M forwards lower."""
        f3 = curve3m.forward_rate(1.0, 1.25)
        f6 = curve6m.forward_rate(1.0, 1.25)
        assert f3 < f6

    def test_upstream_change_invalidates(self, ois_quote, curve6m, curve3m):
        curve3m.snapshot()
        assert curve3m.is_calculated()

        ois_quote.set_value(0.0310)
        assert not curve6m.is_calculated()
        assert not curve3m.is_calculated()
        assert max_repricing_error(curve3m) < 1e-9

    def test_external_curve_too_short(self):
        dates = [REFERENCE, date(2026, 1, 15), date(2029, 1, 15)]
        short_ois = DiscountCurve(dates, [1.0, 0.94, 0.86])
        helper = SwapRateHelper(0.03, "10Y", euribor("6M"), discount_curve=short_ois)
        curve = PiecewiseYieldCurve(REFERENCE, [helper])

        with pytest.raises(ConfigurationError, match="Missing external curve"):
            curve.discount(1.0)

    def test_circular_dependency(self, ois):
        placeholder = RelinkableHandle(FlatForward(REFERENCE, 0.03))
        curve_b = PiecewiseYieldCurve(
            REFERENCE, [SwapRateHelper(0.031, "5Y", euribor("6M", placeholder))]
        )
        curve_a = PiecewiseYieldCurve(
            REFERENCE, [SwapRateHelper(0.030, "5Y", euribor("6M"), discount_curve=curve_b)]
        )
        placeholder.link_to(curve_a)

        with pytest.raises(ConfigurationError, match="Circular"):
            curve_a.discount(1.0)
        with pytest.raises(ConfigurationError, match="Circular"):
            curve_b.discount(1.0)


class TestCrossCurrencyBootstrap:
    """EUR discount curve from EUR/USD cross-currency basis swaps."""

    @pytest.fixture
    def usd(self):
        return FlatForward(REFERENCE, 0.045)

    @pytest.fixture
    def usd_index(self, usd):
        return IborIndex("SOFR", "3M", "USD", forwarding_curve=usd)

    @pytest.fixture
    def eur_index(self):
        return IborIndex("EURIBOR", "3M", "EUR", forwarding_curve=FlatForward(REFERENCE, 0.03))

    def _helpers(self, usd, usd_index, eur_index, fx_resettable=False):
        quotes = [("1Y", -0.0010), ("2Y", -0.0012), ("3Y", -0.0014), ("5Y", -0.0016)]
        return [
            XCCYSwapRateHelper(
                spread, tenor,
                pay_index=usd_index,
                rec_index=eur_index,
                pay_discount_curve=usd,
                pay_fx_for_dom=1.0,
                rec_fx_for_dom=1.1,
                fx_resettable=fx_resettable,
            )
            for tenor, spread in quotes
        ]

    @pytest.mark.parametrize("fx_resettable", [False, True])
    def test_breakeven_npv_is_zero(self, usd, usd_index, eur_index, fx_resettable):
        """At the quoted spread every bootstrapped swap is worth zero."""
        helpers = self._helpers(usd, usd_index, eur_index, fx_resettable)
        curve = PiecewiseYieldCurve(REFERENCE, helpers)
        curve.snapshot()

        for helper in helpers:
            results = helper.engine().calculate(helper.basis_swap())
            assert abs(results.npv) < 1e-9
            assert results.fair_spread == pytest.approx(helper.quote, abs=1e-9)

    def test_negative_basis_lowers_eur_discount_rates(self, usd, usd_index, eur_index):
        """Receiving EURIBOR minus a spread at par needs EUR discounting below EURIBOR."""
        curve = PiecewiseYieldCurve(REFERENCE, self._helpers(usd, usd_index, eur_index))
        assert curve.zero_rate(3.0) < 0.03

    def test_fair_spread_prices_to_zero(self, usd, usd_index, eur_index):
        """Closed-form fair spread with all curves external."""
        helper = XCCYSwapRateHelper(
            0.0, "5Y",
            pay_index=usd_index,
            rec_index=eur_index,
            pay_discount_curve=usd,
            rec_discount_curve=FlatForward(REFERENCE, 0.028),
            rec_fx_for_dom=1.1,
            fx_resettable=True,
            reference_date=REFERENCE,
        )
        fair = helper.implied_quote()
        results = helper.engine().calculate(helper.basis_swap(fair))

        assert abs(results.npv) < 1e-10
        assert not helper.depends_on_term_structure()

    def test_invalid_fx(self, usd_index, eur_index):
        with pytest.raises(ConfigurationError):
            XCCYSwapRateHelper(0.0, "1Y", pay_index=usd_index, rec_index=eur_index, rec_fx_for_dom=-1.0)


class TestFxForwardBootstrap:

    SPOT = 1.10

    @pytest.fixture
    def usd(self):
        return FlatForward(REFERENCE, 0.045)

    @pytest.fixture
    def eur(self):
        return FlatForward(REFERENCE, 0.030)

    def _outright(self, helper, eur, usd):
        base = eur.discount(helper.maturity_date) / eur.discount(helper.spot_date)
        counter = usd.discount(helper.maturity_date) / usd.discount(helper.spot_date)
        return self.SPOT * base / counter

    def test_base_curve_recovered(self, usd, eur):
        helpers = [
            FxFwdRateHelper(
                "EUR", "USD", self.SPOT, 2, None, BusinessDayConvention.MODIFIED_FOLLOWING,
                term, SimpleQuote(0.0), 10000.0,
                counter_discount_curve=usd,
                bootstrap_type=FxBootstrapType.BASE,
                reference_date=REFERENCE,
            )
            for term in ["1M", "3M", "6M", "1Y", "2Y"]
        ]
        for helper in helpers:
            points = (self._outright(helper, eur, usd) - self.SPOT) * 10000.0
            helper.quote_handle.set_value(points)

        curve = PiecewiseYieldCurve(REFERENCE, helpers)

        for helper in helpers:
            assert curve.discount(helper.maturity_date) == pytest.approx(
                eur.discount(helper.maturity_date), rel=1e-9
            )
        assert max_repricing_error(curve) < 1e-7

    def test_covered_interest_parity(self, usd, eur):
        helper = FxFwdRateHelper(
            "EUR", "USD", self.SPOT, 2, None, BusinessDayConvention.MODIFIED_FOLLOWING,
            "1Y", 0.0, base_discount_curve=eur,
            bootstrap_type=FxBootstrapType.COUNTER,
        )
        helper.set_term_structure(usd)

        assert helper.spot_date == date(2024, 1, 17)
        assert helper.forward_rate() == pytest.approx(self._outright(helper, eur, usd))
        # EUR rates below USD rates: EUR trades at a forward premium
        assert helper.implied_quote() > 0

    def test_spot_quote_version(self, usd):
        spot = SimpleQuote(self.SPOT)
        helper = FxFwdRateHelper(
            "EUR", "USD", spot, 2, None, BusinessDayConvention.MODIFIED_FOLLOWING,
            "1Y", 0.0, counter_discount_curve=usd, reference_date=REFERENCE,
        )
        version = helper.version

        spot.set_value(1.12)
        assert helper.version != version


class TestBondBootstrap:

    def test_flat_curve_recovered(self):
        flat = FlatForward(REFERENCE, 0.04)
        bonds = [
            FixedRateBond(2, 100.0, date(2023, 1, 15), date(year, 1, 15), 0.04, Frequency.SEMI_ANNUAL)
            for year in (2025, 2026, 2027, 2029)
        ]
        helpers = []
        for bond in bonds:
            settlement = bond.settlement_date(REFERENCE)
            helpers.append(FixedRateBondHelper(bond.clean_price(flat, settlement), bond))

        curve = PiecewiseYieldCurve(REFERENCE, helpers)

        for bond in bonds:
            assert curve.discount(bond.maturity_date) == pytest.approx(
                flat.discount(bond.maturity_date), rel=1e-9
            )

    def test_helper_dates(self):
        bond = FixedRateBond(2, 100.0, date(2023, 1, 15), date(2028, 1, 15), 0.035)
        helper = FixedRateBondHelper(99.0, bond, reference_date=REFERENCE)

        assert helper.pillar_date == date(2028, 1, 15)
        assert helper.earliest_date == date(2024, 1, 17)

    def test_dates_need_reference(self):
        bond = FixedRateBond(2, 100.0, date(2023, 1, 15), date(2028, 1, 15), 0.035)
        helper = FixedRateBondHelper(99.0, bond)

        with pytest.raises(ConfigurationError):
            helper.pillar_date
