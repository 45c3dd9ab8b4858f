"""
Unit tests for pricers module.
"""

from datetime import date
import numpy as np
import pytest

from basislib.conventions import Compounding, DayCount, Frequency
from basislib.curves import FlatForward
from basislib.dates import make_schedule
from basislib.exceptions import ConfigurationError
from basislib.indexes import IborIndex
from basislib.market import Handle
from basislib.pricers import (
    BASIS_POINT,
    BasisSwap,
    BasisSwapEngine,
    FixedRateBond,
    FixedRateCoupon,
    IborCoupon,
    SimpleCashFlow,
    Swaption,
    SwaptionCashFlows,
    VanillaSwap,
    fixed_leg,
    ibor_leg,
    leg_bps,
    leg_npv,
    leg_table,
)

REFERENCE = date(2024, 1, 15)


@pytest.fixture
def curve():
    """Flat 3% curve used for projection and discounting."""
    return FlatForward(REFERENCE, 0.03)


@pytest.fixture
def schedule():
    return make_schedule(date(2024, 1, 17), date(2029, 1, 17), "6M")


def make_swap(index, fixed_rate=0.03, start=date(2024, 1, 17), years=5):
    end = date(start.year + years, start.month, start.day)
    return VanillaSwap(
        payer=True,
        nominal=1_000_000.0,
        fixed_schedule=make_schedule(start, end, "1Y"),
        fixed_rate=fixed_rate,
        fixed_day_count=DayCount.THIRTY_360,
        float_schedule=make_schedule(start, end, index.tenor),
        index=index,
    )


class TestLegs:
    """Tests for leg construction and valuation."""

    def test_fixed_leg_bps(self, curve, schedule):
        leg = fixed_leg(schedule, 100.0, 0.04, DayCount.ACT_360)
        expected = sum(100.0 * cf.accrual_period * curve.discount(cf.payment_date) for cf in leg)

        assert leg_bps(leg, curve) == pytest.approx(expected * BASIS_POINT)
        assert leg_npv(leg, curve) == pytest.approx(expected * 0.04)

    def test_redemption(self, schedule):
        leg = fixed_leg(schedule, 100.0, 0.04, redemption=True)

        assert isinstance(leg[-1], SimpleCashFlow)
        assert leg[-1].amount() == 100.0
        assert leg[-1].payment_date == schedule.dates[-1]

    def test_floating_leg_telescopes(self, curve, schedule):
        """Floater projected and discounted on one curve is worth P(start) - P(end)."""
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        leg = ibor_leg(schedule, index, 1.0)

        expected = curve.discount(schedule.dates[0]) - curve.discount(schedule.dates[-1])
        assert leg_npv(leg, curve) == pytest.approx(expected, rel=1e-12)

    def test_notional_exchange_nets_shared_dates(self, curve, schedule):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        leg = ibor_leg(schedule, index, [1.0, 1.1, 1.2, 1.3, 1.4, 1.5, 1.6, 1.7, 1.8, 1.9],
                       notional_exchange=True)
        exchanges = [cf for cf in leg if isinstance(cf, SimpleCashFlow)]

        # one flow per schedule date
        assert len(exchanges) == len(schedule.dates)
        assert exchanges[0].amount() == pytest.approx(-1.0)
        assert exchanges[1].amount() == pytest.approx(-0.1)
        assert exchanges[-1].amount() == pytest.approx(1.9)

    def test_nominal_count_mismatch(self, curve, schedule):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        with pytest.raises(ConfigurationError):
            ibor_leg(schedule, index, [1.0, 2.0])

    def test_settlement_date_flows(self, curve, schedule):
        leg = fixed_leg(schedule, 100.0, 0.04)
        first = leg[0].payment_date

        with_flow = leg_npv(leg, curve, True, settlement_date=first, npv_date=REFERENCE)
        without = leg_npv(leg, curve, False, settlement_date=first, npv_date=REFERENCE)
        assert with_flow - without == pytest.approx(leg[0].amount() * curve.discount(first))

    def test_past_fixing_is_used(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        index.add_fixing(date(2023, 11, 13), 0.041)
        coupon = IborCoupon(date(2024, 5, 15), 1.0, date(2023, 11, 15), date(2024, 5, 15), index, spread=0.001)

        assert coupon.coupon_rate() == pytest.approx(0.042)

    def test_leg_table(self, curve, schedule):
        leg = fixed_leg(schedule, 100.0, 0.04)
        table = leg_table(leg, curve)

        assert len(table) == len(leg)
        assert table["pv"].sum() == pytest.approx(leg_npv(leg, curve))


class TestVanillaSwap:
    """Tests for fixed vs float swaps."""

    def test_fair_rate_prices_to_zero(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        swap = make_swap(index)
        fair = swap.fair_rate(curve)

        at_par = make_swap(index, fixed_rate=fair)
        assert abs(at_par.npv(curve)) < 1e-6

    def test_payer_gains_when_rates_rise(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=FlatForward(REFERENCE, 0.04))
        swap = make_swap(index, fixed_rate=0.03)

        assert swap.npv(curve) > 0

    def test_fair_spread(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        swap = make_swap(index, fixed_rate=0.035)
        spread = swap.fair_spread(curve)

        shifted = VanillaSwap(
            True, swap.nominal, swap.fixed_schedule, 0.035, DayCount.THIRTY_360,
            swap.float_schedule, index, spread=spread,
        )
        assert abs(shifted.npv(curve)) < 1e-6
        assert spread > 0


class TestBasisSwapEngine:
    """Tests for multi-leg basis swap valuation."""

    @pytest.fixture
    def legs(self, curve, schedule):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        return ibor_leg(schedule, index, 1.0), ibor_leg(schedule, index, 1.0)

    def test_identical_legs_cancel(self, curve, legs):
        swap = BasisSwap(list(legs), [True, False], par_leg_index=1)
        results = BasisSwapEngine(curve).calculate(swap)

        assert results.npv == pytest.approx(0.0, abs=1e-14)
        assert results.fair_spread == pytest.approx(0.0, abs=1e-12)
        assert results.leg_npv[0] == pytest.approx(results.leg_npv[1])

    def test_fair_spread_reprices(self, curve, schedule):
        libor = IborIndex("EURIBOR", "6M", forwarding_curve=FlatForward(REFERENCE, 0.032))
        ois_like = IborIndex("EURIBOR", "3M", forwarding_curve=curve)
        pay = ibor_leg(make_schedule(schedule.dates[0], schedule.dates[-1], "3M"), ois_like, 1.0)
        rec = ibor_leg(schedule, libor, 1.0)
        engine = BasisSwapEngine(curve)

        fair = engine.calculate(BasisSwap([pay, rec], [True, False], par_leg_index=0)).fair_spread
        pay_shifted = ibor_leg(
            make_schedule(schedule.dates[0], schedule.dates[-1], "3M"), ois_like, 1.0, spread=fair
        )
        results = engine.calculate(BasisSwap([pay_shifted, rec], [True, False], par_leg_index=0))

        assert abs(results.npv) < 1e-12
        assert fair > 0

    def test_fx_conversion(self, curve, legs):
        swap = BasisSwap(list(legs), [True, False], calc_par_spread=False)
        results = BasisSwapEngine([curve, curve], [1.0, 1.25]).calculate(swap)

        assert results.npv == pytest.approx(0.25 * results.leg_npv[1])
        assert results.fair_spread is None

    def test_size_mismatch(self, legs):
        with pytest.raises(ConfigurationError):
            BasisSwap(list(legs), [True])
        with pytest.raises(ConfigurationError):
            BasisSwap(list(legs), [True, False], par_leg_index=2)

    def test_wrong_curve_count(self, curve, legs):
        swap = BasisSwap(list(legs) * 2, [True, False, True, False])
        with pytest.raises(ConfigurationError):
            BasisSwapEngine([curve, curve, curve]).calculate(swap)

    def test_empty_discount_curve(self, curve, legs):
        swap = BasisSwap(list(legs), [True, False])
        with pytest.raises(ConfigurationError, match="Missing external curve"):
            BasisSwapEngine([curve, Handle()]).calculate(swap)


class TestFixedRateBond:
    """Tests for bond pricing."""

    def test_yield_recovers_flat_rate(self):
        curve = FlatForward(REFERENCE, 0.05, DayCount.ACT_ACT, Compounding.COMPOUNDED, Frequency.SEMI_ANNUAL)
        bond = FixedRateBond(0, 100.0, date(2023, 1, 15), date(2029, 1, 15), 0.045)
        clean = bond.clean_price(curve, REFERENCE)

        assert clean < 100.0
        assert bond.yield_to_maturity(clean, REFERENCE) == pytest.approx(0.05, abs=1e-10)

    def test_par_bond(self):
        curve = FlatForward(REFERENCE, 0.05, DayCount.ACT_ACT, Compounding.COMPOUNDED, Frequency.SEMI_ANNUAL)
        bond = FixedRateBond(0, 100.0, date(2024, 1, 15), date(2034, 1, 15), 0.05)

        assert bond.clean_price(curve, REFERENCE) == pytest.approx(100.0, abs=0.05)

    def test_accrued_amount(self):
        bond = FixedRateBond(0, 100.0, date(2023, 6, 15), date(2028, 6, 15), 0.045)
        expected = 100.0 * 0.045 * (17 / 365 + 14 / 366)

        assert bond.accrued_amount(date(2024, 1, 15)) == pytest.approx(expected)
        assert bond.accrued_amount(date(2023, 12, 15)) == 0.0

    def test_remaining_cashflows(self):
        bond = FixedRateBond(2, 1000.0, date(2023, 6, 15), date(2025, 6, 15), 0.04)
        flows = bond.remaining_cashflows(date(2024, 1, 17))

        assert [d for d, _ in flows] == [date(2024, 6, 15), date(2024, 12, 15), date(2025, 6, 15), date(2025, 6, 15)]
        assert flows[-1][1] == 100.0

    def test_settlement_date(self):
        bond = FixedRateBond(2, 100.0, date(2023, 6, 15), date(2028, 6, 15), 0.045)
        assert bond.settlement_date(date(2024, 1, 19)) == date(2024, 1, 23)

    def test_invalid_dates(self):
        with pytest.raises(ConfigurationError):
            FixedRateBond(2, 100.0, date(2028, 6, 15), date(2023, 6, 15), 0.045)


class TestSwaptionCashFlows:
    """Tests for the zero-bond decomposition of a swaption underlying."""

    def test_single_curve_forward_rate(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        swap = make_swap(index, start=date(2026, 1, 19))
        cash_flows = SwaptionCashFlows(Swaption(date(2026, 1, 15), swap), curve)

        assert cash_flows.forward_swap_rate() == pytest.approx(swap.fair_rate(curve), rel=1e-10)
        np.testing.assert_allclose(cash_flows.float_weights[1:-1], 0.0, atol=1e-14)
        assert cash_flows.exercise_time == pytest.approx(2.0, abs=0.01)

    @pytest.mark.parametrize("cont_tenor_spread", [False, True])
    def test_tenor_basis_weights(self, curve, cont_tenor_spread):
        """Forwards above the discount curve give positive float weights."""
        index = IborIndex("EURIBOR", "6M", forwarding_curve=FlatForward(REFERENCE, 0.035))
        swap = make_swap(index, start=date(2025, 1, 17))
        cash_flows = SwaptionCashFlows(Swaption(date(2025, 1, 15), swap), curve, cont_tenor_spread)

        assert np.all(cash_flows.float_weights[1:-1] > 0)
        assert cash_flows.float_weights[0] == 1.0
        assert cash_flows.annuity() == pytest.approx(swap.fixed_leg_bps(curve) / BASIS_POINT / swap.nominal)

    def test_simple_basis_matches_swap_fair_rate(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=FlatForward(REFERENCE, 0.035))
        swap = make_swap(index, start=date(2025, 1, 17))
        cash_flows = SwaptionCashFlows(Swaption(date(2025, 1, 15), swap), curve, cont_tenor_spread=False)

        assert cash_flows.forward_swap_rate() == pytest.approx(swap.fair_rate(curve), rel=1e-10)

    def test_exercise_after_start(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        swap = make_swap(index, start=date(2025, 1, 17))
        with pytest.raises(ConfigurationError):
            Swaption(date(2025, 3, 1), swap)

    def test_fixed_coupons_typed(self, curve):
        index = IborIndex("EURIBOR", "6M", forwarding_curve=curve)
        swap = make_swap(index)
        assert all(isinstance(cf, FixedRateCoupon) for cf in swap.fixed_leg)
