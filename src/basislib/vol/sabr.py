"""
SABR stochastic volatility model.

Implements the SABR smile used by the SABR volatility structures:
- Hagan et al. lognormal implied volatility approximation
- Shifted SABR for negative rates
- Alpha inversion from the ATM volatility
- Normal volatility by price equivalence with the Black smile

References:
- Hagan, P.S. et al. (2002). "Managing Smile Risk." Wilmott Magazine.
"""

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np
from scipy.optimize import brentq

from ..exceptions import ConfigurationError, ConvergenceError, DomainError
from ..options.base_models import black76_call, implied_vol_bachelier

logger = logging.getLogger(__name__)


@dataclass
class SabrParams:
    """
    SABR model parameters.

    Uses sigma_atm (the shifted lognormal ATM vol) instead of alpha, which
    is the desk convention; alpha is recovered per forward and expiry.

    Attributes:
        sigma_atm: ATM Black volatility of the shifted forward
        beta: CEV exponent (0 = normal, 1 = lognormal)
        rho: Correlation between forward and vol (-1 < rho < 1)
        nu: Volatility of volatility
        shift: Shift for negative rates
    """
    sigma_atm: float
    beta: float
    rho: float
    nu: float
    shift: float = 0.0

    def __post_init__(self):
        if not -1 < self.rho < 1:
            raise ConfigurationError(f"rho must be in (-1, 1), got {self.rho}")
        if self.nu < 0:
            raise ConfigurationError(f"nu must be non-negative, got {self.nu}")
        if not 0 <= self.beta <= 1:
            raise ConfigurationError(f"beta must be in [0, 1], got {self.beta}")
        if self.sigma_atm <= 0:
            raise ConfigurationError(f"sigma_atm must be positive, got {self.sigma_atm}")

    def to_dict(self) -> Dict[str, float]:
        return {
            "sigma_atm": self.sigma_atm,
            "beta": self.beta,
            "rho": self.rho,
            "nu": self.nu,
            "shift": self.shift,
        }


def _hagan_atm_vol(F: float, T: float, alpha: float, beta: float, rho: float, nu: float) -> float:
    """ATM Black vol of the (already shifted) forward."""
    F_beta = F ** (1 - beta)
    term1 = (1 - beta) ** 2 * alpha ** 2 / (24 * F ** (2 - 2 * beta))
    term2 = rho * beta * nu * alpha / (4 * F_beta)
    term3 = (2 - 3 * rho ** 2) * nu ** 2 / 24
    return alpha / F_beta * (1 + (term1 + term2 + term3) * T)


def hagan_black_vol(
    F: float,
    K: float,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float,
    shift: float = 0.0
) -> float:
    """
    Hagan et al. approximation of the SABR (shifted) Black volatility.

    Args:
        F: Forward rate
        K: Strike
        T: Time to expiry (years)
        alpha: Initial volatility
        beta: CEV exponent
        rho: Correlation
        nu: Vol of vol
        shift: Shift for negative rates

    Returns:
        Black implied volatility of the shifted forward
    """
    F_s = F + shift
    K_s = K + shift
    if F_s <= 0 or K_s <= 0:
        raise DomainError(f"Shifted forward ({F_s}) and strike ({K_s}) must be positive")

    if abs(F_s - K_s) < 1e-10:
        return _hagan_atm_vol(F_s, T, alpha, beta, rho, nu)

    one_minus_beta = 1 - beta
    log_fk = np.log(F_s / K_s)
    fk_mid = (F_s * K_s) ** (one_minus_beta / 2)
    denom = fk_mid * (
        1 + one_minus_beta ** 2 / 24 * log_fk ** 2 + one_minus_beta ** 4 / 1920 * log_fk ** 4
    )

    z = nu / alpha * fk_mid * log_fk
    if abs(z) < 1e-10:
        z_over_x = 1.0
    else:
        x = np.log((np.sqrt(1 - 2 * rho * z + z ** 2) + z - rho) / (1 - rho))
        z_over_x = z / x

    term1 = one_minus_beta ** 2 * alpha ** 2 / (24 * fk_mid ** 2)
    term2 = rho * beta * nu * alpha / (4 * fk_mid)
    term3 = (2 - 3 * rho ** 2) * nu ** 2 / 24
    return float(alpha / denom * z_over_x * (1 + (term1 + term2 + term3) * T))


class SabrModel:
    """Hagan SABR smile parameterised by the ATM volatility."""

    def alpha_from_sigma_atm(self, F: float, T: float, params: SabrParams) -> float:
        """
        Invert the ATM formula for alpha.

        Raises:
            ConvergenceError: If no alpha reproduces sigma_atm
        """
        F_s = F + params.shift
        if F_s <= 0:
            raise DomainError(f"Shifted forward {F_s} must be positive")

        def objective(alpha: float) -> float:
            return _hagan_atm_vol(F_s, T, alpha, params.beta, params.rho, params.nu) - params.sigma_atm

        alpha_init = params.sigma_atm * F_s ** (1 - params.beta)
        low, high = alpha_init * 0.01, alpha_init * 10.0
        for _ in range(10):
            if objective(low) * objective(high) <= 0:
                break
            low *= 0.1
            high *= 10.0
        else:
            raise ConvergenceError(
                f"Cannot bracket SABR alpha for sigma_atm={params.sigma_atm}, F={F}, T={T}"
            )
        return float(brentq(objective, low, high, xtol=1e-14))

    def implied_vol_black(self, F: float, K: float, T: float, params: SabrParams) -> float:
        """Shifted Black implied vol at strike K."""
        alpha = self.alpha_from_sigma_atm(F, T, params)
        return hagan_black_vol(F, K, T, alpha, params.beta, params.rho, params.nu, params.shift)

    def implied_vol_normal(self, F: float, K: float, T: float, params: SabrParams) -> float:
        """Normal implied vol with the same undiscounted price as the Black smile."""
        sigma_b = self.implied_vol_black(F, K, T, params)
        if T <= 0:
            return sigma_b * (F + params.shift)
        # Calls are more accurate out of the money, puts follow by parity
        if K >= F:
            price = black76_call(F, K, T, sigma_b, shift=params.shift)
            return implied_vol_bachelier(price, F, K, T)
        price = black76_call(F, K, T, sigma_b, shift=params.shift) - (F - K)
        return implied_vol_bachelier(price, F, K, T, is_call=False)


__all__ = [
    "SabrParams",
    "SabrModel",
    "hagan_black_vol",
]
