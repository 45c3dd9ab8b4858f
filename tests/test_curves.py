"""
Unit tests for interpolated, flat and composite yield curves.
"""

from datetime import date, timedelta
import numpy as np
import pytest

from basislib.conventions import Compounding, DayCount, Frequency
from basislib.curves import (
    DiscountCurve,
    FlatForward,
    ForwardCurve,
    ForwardSpreadedTermStructure,
    ImpliedTermStructure,
    InterpolatedYieldCurve,
    InterpolatorKind,
    QuantoTermStructure,
    SpreadYTS,
    TraitKind,
    ZeroCurve,
)
from basislib.exceptions import ConfigurationError, DomainError
from basislib.market import Handle, RelinkableHandle, SimpleQuote
from basislib.vol import BlackConstantVol

REFERENCE = date(2024, 1, 15)


@pytest.fixture
def node_dates():
    return [REFERENCE + timedelta(days=d) for d in (0, 91, 182, 365, 730, 1825)]


def _node_data(traits):
    if traits == TraitKind.DISCOUNT:
        return [1.0, 0.992, 0.984, 0.968, 0.935, 0.84]
    return [0.030, 0.031, 0.032, 0.033, 0.034, 0.035]


class TestInterpolatedYieldCurve:
    """Tests for the trait x interpolator matrix."""

    @pytest.mark.parametrize("traits", list(TraitKind))
    @pytest.mark.parametrize("interpolator", list(InterpolatorKind))
    def test_nodes_round_trip(self, traits, interpolator, node_dates):
        """Querying the curve at a node returns the node value."""
        data = _node_data(traits)
        curve = InterpolatedYieldCurve(
            REFERENCE, node_dates, data, traits=traits, interpolator=interpolator
        )

        for d, value in zip(node_dates[1:], data[1:]):
            if traits == TraitKind.DISCOUNT:
                result = curve.discount(d)
            elif traits == TraitKind.ZERO_YIELD:
                result = curve.zero_rate(d)
            else:
                result = curve.instantaneous_forward(d)
            np.testing.assert_allclose(result, value, rtol=1e-9)

    def test_discount_at_reference_is_one(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        assert curve.discount(REFERENCE) == 1.0
        assert curve.discount(0.0) == 1.0

    def test_log_linear_forward_is_flat_between_nodes(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        t1, t2 = curve.times[3], curve.times[4]

        f_a = curve.instantaneous_forward(t1 + 0.2)
        f_b = curve.instantaneous_forward(t2 - 0.2)
        assert f_a == pytest.approx(f_b, rel=1e-6)

    def test_forward_curve_discount(self):
        dates = [REFERENCE, REFERENCE + timedelta(days=365), REFERENCE + timedelta(days=730)]
        curve = ForwardCurve(dates, [0.02, 0.02, 0.04])

        # backward flat: 2% over the first year, 4% over the second
        assert curve.discount(2.0) == pytest.approx(np.exp(-0.02 - 0.04))

    def test_zero_curve_converts_compounding(self):
        dates = [REFERENCE, REFERENCE + timedelta(days=365), REFERENCE + timedelta(days=730)]
        curve = ZeroCurve(
            dates, [0.03, 0.03, 0.03],
            compounding=Compounding.COMPOUNDED, frequency=Frequency.ANNUAL
        )

        assert curve.discount(2.0) == pytest.approx(1.03 ** -2)
        assert curve.zero_rate(2.0, Compounding.COMPOUNDED) == pytest.approx(0.03)

    def test_forward_rate_consistency(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        fwd = curve.forward_rate(1.0, 2.0, Compounding.SIMPLE)

        assert fwd == pytest.approx(curve.discount(1.0) / curve.discount(2.0) - 1.0)

    def test_to_frame(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        frame = curve.to_frame()

        assert list(frame["date"]) == node_dates
        assert np.isnan(frame["zero_rate"].iloc[0])

    def test_nodes_are_read_only(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        with pytest.raises(ValueError):
            curve.data[1] = 0.5


class TestCurveValidation:

    def test_duplicate_node_date(self, node_dates):
        dates = node_dates[:3] + [node_dates[2]] + node_dates[4:]
        with pytest.raises(ConfigurationError):
            DiscountCurve(dates, _node_data(TraitKind.DISCOUNT))

    def test_first_date_must_be_reference(self, node_dates):
        with pytest.raises(ConfigurationError):
            InterpolatedYieldCurve(
                REFERENCE - timedelta(days=1), node_dates, _node_data(TraitKind.DISCOUNT)
            )

    def test_first_discount_must_be_one(self, node_dates):
        data = _node_data(TraitKind.DISCOUNT)
        data[0] = 0.99
        with pytest.raises(ConfigurationError):
            DiscountCurve(node_dates, data)

    def test_length_mismatch(self, node_dates):
        with pytest.raises(ConfigurationError):
            DiscountCurve(node_dates, [1.0, 0.99])

    def test_unknown_interpolator(self, node_dates):
        with pytest.raises(ConfigurationError):
            DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT), interpolator="Akima")

    def test_query_far_past_last_node(self, node_dates):
        """Fifty years past the last node is out of range unless extrapolating."""
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        far = curve.max_time + 50.0

        with pytest.raises(DomainError):
            curve.discount(far)
        with pytest.raises(DomainError):
            curve.zero_rate(curve.max_date + timedelta(days=50 * 365))

        assert curve.discount(far, extrapolate=True) > 0.0
        curve.enable_extrapolation()
        assert curve.discount(far) > 0.0

    def test_negative_time(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        with pytest.raises(DomainError):
            curve.discount(-0.5)

    def test_forward_end_before_start(self, node_dates):
        curve = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        with pytest.raises(DomainError):
            curve.forward_rate(2.0, 1.0)


class TestJumps:

    def test_jump_applies_after_its_date(self, node_dates):
        jump_date = REFERENCE + timedelta(days=300)
        plain = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        jumped = DiscountCurve(
            node_dates, _node_data(TraitKind.DISCOUNT), jumps=[0.999], jump_dates=[jump_date]
        )

        before = REFERENCE + timedelta(days=200)
        after = REFERENCE + timedelta(days=400)
        assert jumped.discount(before) == pytest.approx(plain.discount(before))
        assert jumped.discount(after) == pytest.approx(0.999 * plain.discount(after))

    def test_jump_quote_updates(self, node_dates):
        quote = SimpleQuote(0.999)
        curve = DiscountCurve(
            node_dates, _node_data(TraitKind.DISCOUNT),
            jumps=[quote], jump_dates=[REFERENCE + timedelta(days=10)]
        )
        before = curve.discount(1.0)
        version = curve.version

        quote.set_value(0.998)
        assert curve.version != version
        assert curve.discount(1.0) == pytest.approx(before * 0.998 / 0.999)

    def test_jump_count_mismatch(self, node_dates):
        with pytest.raises(ConfigurationError):
            DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT), jumps=[0.999], jump_dates=[])


class TestFlatForward:

    def test_continuous(self):
        curve = FlatForward(REFERENCE, 0.03)
        assert curve.discount(2.0) == pytest.approx(np.exp(-0.06))
        assert curve.zero_rate(5.0) == pytest.approx(0.03)
        assert curve.instantaneous_forward(3.0) == pytest.approx(0.03, rel=1e-6)

    def test_compounded(self):
        curve = FlatForward(REFERENCE, 0.04, compounding=Compounding.COMPOUNDED, frequency=Frequency.SEMI_ANNUAL)
        assert curve.discount(1.0) == pytest.approx(1.02 ** -2)

    def test_follows_quote(self):
        quote = SimpleQuote(0.03)
        curve = FlatForward(REFERENCE, quote)
        version = curve.version

        quote.set_value(0.05)
        assert curve.version != version
        assert curve.discount(1.0) == pytest.approx(np.exp(-0.05))

    def test_unbounded_range(self):
        curve = FlatForward(REFERENCE, 0.03)
        assert curve.max_time == float("inf")
        assert curve.discount(100.0) > 0


class TestCompositeCurves:

    @pytest.fixture
    def base(self):
        return FlatForward(REFERENCE, 0.03)

    @pytest.fixture
    def spread(self):
        return FlatForward(REFERENCE, 0.035)

    @pytest.mark.parametrize("t", [0.5, 1.0, 5.0, 20.0])
    def test_spread_yts_alpha_zero_is_base(self, base, spread, t):
        curve = SpreadYTS(base, spread, alpha=0.0)
        assert curve.discount(t) == pytest.approx(base.discount(t), rel=1e-14)

    @pytest.mark.parametrize("t", [0.5, 1.0, 5.0, 20.0])
    def test_spread_yts_alpha_one_is_spread(self, base, spread, t):
        curve = SpreadYTS(base, spread, alpha=1.0)
        assert curve.discount(t) == pytest.approx(spread.discount(t), rel=1e-12)

    def test_spread_yts_half_blend(self, base, spread):
        curve = SpreadYTS(base, spread, alpha=0.5)
        assert curve.zero_rate(3.0) == pytest.approx(0.0325)

    def test_spread_yts_follows_relink(self, base, spread):
        handle = RelinkableHandle(spread)
        curve = SpreadYTS(base, handle, alpha=1.0)
        version = curve.version

        handle.link_to(FlatForward(REFERENCE, 0.05))
        assert curve.version != version
        assert curve.zero_rate(2.0) == pytest.approx(0.05)

    def test_spread_yts_reference_mismatch(self, base):
        other = FlatForward(REFERENCE + timedelta(days=1), 0.03)
        with pytest.raises(ConfigurationError):
            SpreadYTS(base, other)

    def test_spread_yts_day_count_mismatch(self, base):
        act360 = FlatForward(REFERENCE, 0.035, day_count=DayCount.ACT_360)
        with pytest.raises(ConfigurationError, match="Day-count mismatch"):
            SpreadYTS(base, act360)

    def test_spread_yts_relink_to_other_day_count(self, base, spread):
        handle = RelinkableHandle(spread)
        curve = SpreadYTS(base, handle, alpha=1.0)
        assert curve.discount(2.0) == pytest.approx(spread.discount(2.0), rel=1e-12)

        handle.link_to(FlatForward(REFERENCE, 0.035, day_count=DayCount.ACT_360))
        with pytest.raises(ConfigurationError, match="Day-count mismatch"):
            curve.discount(2.0)

    def test_spread_yts_missing_curve(self, base):
        with pytest.raises(ConfigurationError, match="Missing external curve"):
            SpreadYTS(base, Handle())

    def test_spread_yts_range_is_shorter_curve(self, base, node_dates):
        short = DiscountCurve(node_dates, _node_data(TraitKind.DISCOUNT))
        curve = SpreadYTS(base, short, alpha=0.5)

        assert curve.max_date == short.max_date
        with pytest.raises(DomainError):
            curve.discount(short.max_time + 50.0)

    def test_forward_spreaded(self, base):
        curve = ForwardSpreadedTermStructure(base, 0.001)
        assert curve.zero_rate(4.0) == pytest.approx(0.031)

    def test_implied_term_structure(self, base):
        later = REFERENCE + timedelta(days=365)
        curve = ImpliedTermStructure(base, later)

        assert curve.reference_date == later
        assert curve.discount(2.0) == pytest.approx(np.exp(-0.06))

    def test_implied_before_base_reference(self, base):
        with pytest.raises(ConfigurationError):
            ImpliedTermStructure(base, REFERENCE - timedelta(days=1))

    def test_quanto_adjustment(self):
        dividend = FlatForward(REFERENCE, 0.01)
        domestic = FlatForward(REFERENCE, 0.03)
        foreign = FlatForward(REFERENCE, 0.02)
        equity_vol = BlackConstantVol(REFERENCE, 0.25)
        fx_vol = BlackConstantVol(REFERENCE, 0.10)

        curve = QuantoTermStructure(
            dividend, domestic, foreign, equity_vol, 100.0, fx_vol, 1.1, -0.3
        )

        expected = 0.01 + 0.03 - 0.02 - 0.3 * 0.25 * 0.10
        assert curve.zero_rate(2.0) == pytest.approx(expected)

    def test_day_count_and_reference_inherited(self, base):
        curve = ForwardSpreadedTermStructure(base, 0.0)
        assert curve.day_count == DayCount.ACT_365
        assert curve.reference_date == REFERENCE
