"""
Tests for options pricing module.
"""

import pytest
import numpy as np

from basislib.exceptions import ConvergenceError, DomainError
from basislib.options.base_models import (
    bachelier_call,
    bachelier_put,
    black76_call,
    black76_put,
    implied_vol_bachelier,
    implied_vol_black,
)


class TestBachelierModel:
    """Tests for Bachelier (normal) model."""

    def test_bachelier_call_atm(self):
        """ATM call is vol * sqrt(T) * N'(0) * df."""
        F, K, T, vol, df = 0.04, 0.04, 1.0, 0.005, 0.96

        price = bachelier_call(F, K, T, vol, df)

        expected = vol * np.sqrt(T) * df / np.sqrt(2 * np.pi)
        np.testing.assert_allclose(price, expected, rtol=1e-12)

    def test_put_call_parity(self):
        F, K, T, vol, df = 0.03, 0.035, 2.0, 0.008, 0.94

        call = bachelier_call(F, K, T, vol, df)
        put = bachelier_put(F, K, T, vol, df)

        np.testing.assert_allclose(call - put, df * (F - K), atol=1e-15)

    def test_negative_rates(self):
        """Normal model prices options on negative forwards."""
        price = bachelier_call(-0.005, -0.002, 1.0, 0.006)
        assert price > 0

    def test_expired_is_intrinsic(self):
        assert bachelier_call(0.05, 0.04, 0.0, 0.01, 0.9) == pytest.approx(0.009)
        assert bachelier_put(0.05, 0.04, 0.0, 0.01) == 0.0

    def test_implied_vol_round_trip(self):
        F, K, T, vol = 0.03, 0.025, 1.5, 0.0075
        price = bachelier_put(F, K, T, vol, 0.97)

        implied = implied_vol_bachelier(price, F, K, T, 0.97, is_call=False)
        np.testing.assert_allclose(implied, vol, rtol=1e-9)


class TestBlack76Model:
    """Tests for Black'76 and shifted lognormal model."""

    def test_put_call_parity(self):
        F, K, T, vol, df = 0.04, 0.045, 1.0, 0.25, 0.95

        call = black76_call(F, K, T, vol, df)
        put = black76_put(F, K, T, vol, df)

        np.testing.assert_allclose(call - put, df * (F - K), atol=1e-15)

    def test_shift_moves_forward_and_strike(self):
        """A shifted price equals the unshifted price of the displaced forward and strike."""
        shifted = black76_call(-0.002, 0.001, 1.0, 0.2, shift=0.02)
        plain = black76_call(0.018, 0.021, 1.0, 0.2)

        np.testing.assert_allclose(shifted, plain, rtol=1e-14)

    def test_non_positive_shifted_strike(self):
        with pytest.raises(DomainError):
            black76_call(0.01, -0.01, 1.0, 0.2)
        with pytest.raises(DomainError):
            black76_put(0.01, -0.03, 1.0, 0.2, shift=0.02)

    def test_implied_vol_round_trip(self):
        F, K, T, vol, shift = 0.01, 0.015, 3.0, 0.35, 0.01
        price = black76_call(F, K, T, vol, 1.0, shift)

        implied = implied_vol_black(price, F, K, T, shift=shift)
        np.testing.assert_allclose(implied, vol, rtol=1e-9)

    def test_black_and_normal_agree_at_the_money(self):
        """ATM, sigma_n is close to sigma_b * F for short expiries."""
        F, T, sigma_b = 0.04, 0.25, 0.2
        price = black76_call(F, F, T, sigma_b)

        sigma_n = implied_vol_bachelier(price, F, F, T)
        np.testing.assert_allclose(sigma_n, sigma_b * F, rtol=1e-3)


class TestImpliedVolErrors:

    def test_expired(self):
        with pytest.raises(DomainError):
            implied_vol_bachelier(0.001, 0.03, 0.03, 0.0)
        with pytest.raises(DomainError):
            implied_vol_black(0.001, 0.03, 0.03, -1.0)

    def test_below_intrinsic(self):
        with pytest.raises(DomainError):
            implied_vol_bachelier(0.001, 0.05, 0.03, 1.0)

    def test_at_intrinsic_gives_zero_vol(self):
        assert implied_vol_black(0.02, 0.05, 0.03, 1.0) == 0.0

    def test_price_above_forward(self):
        """A Black call can never be worth more than the forward."""
        with pytest.raises(ConvergenceError):
            implied_vol_black(0.06, 0.05, 0.03, 1.0, max_iter=10)
