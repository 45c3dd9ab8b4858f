"""
Interpolation methods for yield curves.

Provides:
- BackwardFlatInterpolator / ForwardFlatInterpolator: piecewise constant
- LinearInterpolator: linear between nodes
- CubicInterpolator: piecewise cubic Hermite with a choice of node slopes
  (natural spline, parabolic, Kruger, Fritsch-Butland), optionally passed
  through the Hyman monotonicity filter
- LogInterpolator: any of the above applied to log(values)

The closed set of interpolator identifiers is InterpolatorKind; concrete
objects come from create_interpolator via a lookup table.

All interpolators extend the first/last segment when queried outside the
node range. Range policy (whether that is allowed) is enforced by the curve.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional, Union

import numpy as np
from scipy import integrate

from ..exceptions import ConfigurationError, DomainError


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    # True when moving one node changes the interpolant on other segments
    is_global = False

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of node values
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if times.shape != values.shape:
            raise ConfigurationError("Times and values must have same length")
        if len(times) < 2:
            raise ConfigurationError("Need at least 2 points for interpolation")
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("Interpolation times must be strictly increasing")
        self.times = times
        self.values = values
        self._calculate()

    def _calculate(self) -> None:
        """Precompute segment data after fit."""

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _segment(self, t: float) -> int:
        """Index i of the segment [x_i, x_{i+1}] used for t (end segments extend)."""
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        return max(0, min(idx, len(self.times) - 2))

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolated value at t."""

    @abstractmethod
    def derivative(self, t: float) -> float:
        """First derivative at t."""

    @abstractmethod
    def primitive(self, t: float) -> float:
        """Integral of the interpolant from the first node to t."""

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)


class BackwardFlatInterpolator(Interpolator):
    """
    Backward-flat interpolation.

    On (x_{i-1}, x_i] the value is y_i; beyond the last node it stays y_n.
    """

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        idx = int(np.searchsorted(self.times, t, side='left'))
        return float(self.values[min(idx, len(self.values) - 1)])

    def derivative(self, t: float) -> float:
        return 0.0

    def primitive(self, t: float) -> float:
        self._check_fitted()
        x, y = self.times, self.values
        if t <= x[0]:
            return float(y[0] * (t - x[0]))
        total = 0.0
        for i in range(1, len(x)):
            if t <= x[i]:
                return total + float(y[i] * (t - x[i - 1]))
            total += float(y[i] * (x[i] - x[i - 1]))
        return total + float(y[-1] * (t - x[-1]))


class ForwardFlatInterpolator(Interpolator):
    """
    Forward-flat interpolation.

    On [x_i, x_{i+1}) the value is y_i; beyond the last node it is y_n.
    """

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t >= self.times[-1]:
            return float(self.values[-1])
        if t <= self.times[0]:
            return float(self.values[0])
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        return float(self.values[idx])

    def derivative(self, t: float) -> float:
        return 0.0

    def primitive(self, t: float) -> float:
        self._check_fitted()
        x, y = self.times, self.values
        if t <= x[0]:
            return float(y[0] * (t - x[0]))
        total = 0.0
        for i in range(len(x) - 1):
            if t <= x[i + 1]:
                return total + float(y[i] * (t - x[i]))
            total += float(y[i] * (x[i + 1] - x[i]))
        return total + float(y[-1] * (t - x[-1]))


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.

    Extrapolation extends the first or last segment.
    """

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        t0, t1 = self.times[idx], self.times[idx + 1]
        v0, v1 = self.values[idx], self.values[idx + 1]
        w = (t - t0) / (t1 - t0)
        return float(v0 + w * (v1 - v0))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        return float(
            (self.values[idx + 1] - self.values[idx])
            / (self.times[idx + 1] - self.times[idx])
        )

    def primitive(self, t: float) -> float:
        self._check_fitted()
        x, y = self.times, self.values
        idx = self._segment(t)
        h = np.diff(x)
        total = float(np.sum(0.5 * (y[:-1] + y[1:])[:idx] * h[:idx]))
        dx = t - x[idx]
        slope = (y[idx + 1] - y[idx]) / h[idx]
        return total + float(y[idx] * dx + 0.5 * slope * dx * dx)


class CubicScheme(Enum):
    """Node slope schemes for cubic interpolation."""
    NATURAL_SPLINE = "Spline"
    PARABOLIC = "Parabolic"
    KRUGER = "Kruger"
    FRITSCH_BUTLAND = "FritschButland"


class CubicInterpolator(Interpolator):
    """
    Piecewise cubic Hermite interpolation.

    Each segment is a cubic a + b*dx + c*dx^2 + d*dx^3 matching node values
    and node slopes. Slopes come from the chosen scheme:

    - NATURAL_SPLINE: C2 spline with zero second derivative at both ends
    - PARABOLIC: slope of the parabola through each node and its neighbours
    - KRUGER: harmonic mean of adjacent secants (zero at local extrema)
    - FRITSCH_BUTLAND: weighted harmonic mean of adjacent secants

    With monotonic=True the slopes pass through the Hyman filter, so each
    segment stays within the values at its two end nodes.

    With only two nodes every scheme reduces to linear interpolation.
    """

    is_global = True

    def __init__(self, scheme: CubicScheme = CubicScheme.NATURAL_SPLINE, monotonic: bool = False):
        super().__init__()
        self.scheme = scheme
        self.monotonic = monotonic
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]
        self._cumulative: Optional[np.ndarray] = None

    def _calculate(self) -> None:
        x, y = self.times, self.values
        h = np.diff(x)
        secants = np.diff(y) / h

        if len(x) == 2:
            slopes = np.array([secants[0], secants[0]])
        else:
            slopes = self._slopes(h, secants)

        if self.monotonic:
            slopes = _hyman_filter(slopes, secants)

        n = len(x)
        self.coefficients = np.zeros((n - 1, 4))
        for i in range(n - 1):
            self.coefficients[i, 0] = y[i]
            self.coefficients[i, 1] = slopes[i]
            self.coefficients[i, 2] = (3 * secants[i] - 2 * slopes[i] - slopes[i + 1]) / h[i]
            self.coefficients[i, 3] = (slopes[i] + slopes[i + 1] - 2 * secants[i]) / (h[i] * h[i])

        seg_integrals = [self._segment_integral(i, h[i]) for i in range(n - 1)]
        self._cumulative = np.concatenate([[0.0], np.cumsum(seg_integrals)])

    def _slopes(self, h: np.ndarray, s: np.ndarray) -> np.ndarray:
        n = len(h) + 1
        d = np.zeros(n)

        if self.scheme == CubicScheme.NATURAL_SPLINE:
            # Tridiagonal system for second derivatives, M[0] = M[n-1] = 0
            A = np.zeros((n, n))
            b = np.zeros(n)
            A[0, 0] = 1.0
            A[n - 1, n - 1] = 1.0
            for i in range(1, n - 1):
                A[i, i - 1] = h[i - 1]
                A[i, i] = 2 * (h[i - 1] + h[i])
                A[i, i + 1] = h[i]
                b[i] = 6 * (s[i] - s[i - 1])
            M = np.linalg.solve(A, b)
            d[:-1] = s - h * (M[1:] + 2 * M[:-1]) / 6
            d[-1] = s[-1] + h[-1] * (2 * M[-1] + M[-2]) / 6
            return d

        if self.scheme == CubicScheme.PARABOLIC:
            for i in range(1, n - 1):
                d[i] = (h[i - 1] * s[i] + h[i] * s[i - 1]) / (h[i - 1] + h[i])
            d[0] = ((2 * h[0] + h[1]) * s[0] - h[0] * s[1]) / (h[0] + h[1])
            d[-1] = ((2 * h[-1] + h[-2]) * s[-1] - h[-1] * s[-2]) / (h[-1] + h[-2])
            return d

        if self.scheme == CubicScheme.KRUGER:
            for i in range(1, n - 1):
                if s[i - 1] * s[i] > 0:
                    d[i] = 2.0 / (1.0 / s[i - 1] + 1.0 / s[i])
            d[0] = (3 * s[0] - d[1]) / 2
            d[-1] = (3 * s[-1] - d[-2]) / 2
            return d

        if self.scheme == CubicScheme.FRITSCH_BUTLAND:
            for i in range(1, n - 1):
                if s[i - 1] * s[i] > 0:
                    s_min = min(abs(s[i - 1]), abs(s[i]))
                    s_max = max(abs(s[i - 1]), abs(s[i]))
                    d[i] = np.sign(s[i]) * 3 * s_min * s_max / (s_max + 2 * s_min)
            d[0] = ((2 * h[0] + h[1]) * s[0] - h[0] * s[1]) / (h[0] + h[1])
            d[-1] = ((2 * h[-1] + h[-2]) * s[-1] - h[-1] * s[-2]) / (h[-1] + h[-2])
            return d

        raise ConfigurationError(f"Unknown cubic scheme: {self.scheme}")

    def _segment_integral(self, idx: int, dx: float) -> float:
        a, b, c, d = self.coefficients[idx]
        return float(a * dx + b * dx**2 / 2 + c * dx**3 / 3 + d * dx**4 / 4)

    def interpolate(self, t: float) -> float:
        """Evaluate cubic at point t."""
        self._check_fitted()
        idx = self._segment(t)
        dx = t - self.times[idx]
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)

    def derivative(self, t: float) -> float:
        """First derivative of cubic at point t."""
        self._check_fitted()
        idx = self._segment(t)
        dx = t - self.times[idx]
        _, b, c, d = self.coefficients[idx]
        return float(b + 2*c*dx + 3*d*dx**2)

    def second_derivative(self, t: float) -> float:
        """Second derivative of cubic at point t."""
        self._check_fitted()
        idx = self._segment(t)
        dx = t - self.times[idx]
        _, _, c, d = self.coefficients[idx]
        return float(2*c + 6*d*dx)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        return float(self._cumulative[idx]) + self._segment_integral(idx, t - self.times[idx])


def _hyman_filter(slopes: np.ndarray, secants: np.ndarray) -> np.ndarray:
    """
    Restrict node slopes so every Hermite segment is monotonic.

    Slopes are zeroed at local extrema and flat segments, forced to the
    sign of the adjacent secants, and capped at three times the smaller
    adjacent secant.
    """
    n = len(slopes)
    filtered = slopes.copy()
    for i in range(n):
        if i == 0:
            adjacent = [secants[0]]
        elif i == n - 1:
            adjacent = [secants[-1]]
        else:
            adjacent = [secants[i - 1], secants[i]]

        if any(s == 0.0 for s in adjacent) or (
            len(adjacent) == 2 and adjacent[0] * adjacent[1] < 0
        ):
            filtered[i] = 0.0
            continue

        sign = np.sign(adjacent[0])
        limit = 3.0 * min(abs(s) for s in adjacent)
        filtered[i] = sign * min(max(0.0, sign * slopes[i]), limit)
    return filtered


class LogInterpolator(Interpolator):
    """
    Interpolation on log(values).

    Wraps another interpolator; values must be positive. Log-linear
    interpolation of discount factors gives piecewise flat forwards.
    """

    def __init__(self, inner: Interpolator):
        super().__init__()
        self.inner = inner
        self.is_global = inner.is_global

    def _calculate(self) -> None:
        if np.any(self.values <= 0):
            raise DomainError("Log interpolation requires positive values")
        self.inner.fit(self.times, np.log(self.values))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        return float(np.exp(self.inner.interpolate(t)))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return self.interpolate(t) * self.inner.derivative(t)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        x0 = self.times[0]
        if t == x0:
            return 0.0
        breakpoints = [x for x in self.times[1:-1] if min(x0, t) < x < max(x0, t)]
        value, _ = integrate.quad(self.interpolate, x0, t, points=breakpoints or None, limit=200)
        return float(value)


class InterpolatorKind(Enum):
    """Closed set of interpolator identifiers."""
    BACKWARD_FLAT = "BackwardFlat"
    FORWARD_FLAT = "ForwardFlat"
    LINEAR = "Linear"
    LOG_LINEAR = "LogLinear"
    CUBIC_NATURAL_SPLINE = "CubicNaturalSpline"
    LOG_CUBIC_NATURAL_SPLINE = "LogCubicNaturalSpline"
    MONOTONIC_CUBIC_NATURAL_SPLINE = "MonotonicCubicNaturalSpline"
    MONOTONIC_LOG_CUBIC_NATURAL_SPLINE = "MonotonicLogCubicNaturalSpline"
    KRUGER_CUBIC = "KrugerCubic"
    KRUGER_LOG_CUBIC = "KrugerLogCubic"
    FRITSCH_BUTLAND_CUBIC = "FritschButlandCubic"
    FRITSCH_BUTLAND_LOG_CUBIC = "FritschButlandLogCubic"
    PARABOLIC = "Parabolic"
    LOG_PARABOLIC = "LogParabolic"
    MONOTONIC_PARABOLIC = "MonotonicParabolic"
    MONOTONIC_LOG_PARABOLIC = "MonotonicLogParabolic"

    @classmethod
    def parse(cls, value: Union[str, "InterpolatorKind"]) -> "InterpolatorKind":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).replace("_", "").replace(" ", "").upper()
        for member in cls:
            if key in (member.value.upper(), member.name.replace("_", "")):
                return member
        raise ConfigurationError(f"Unknown interpolator: {value}")

    @property
    def is_monotonic(self) -> bool:
        return self.value.startswith("Monotonic")


_INTERPOLATORS: Dict[InterpolatorKind, Callable[[], Interpolator]] = {
    InterpolatorKind.BACKWARD_FLAT: BackwardFlatInterpolator,
    InterpolatorKind.FORWARD_FLAT: ForwardFlatInterpolator,
    InterpolatorKind.LINEAR: LinearInterpolator,
    InterpolatorKind.LOG_LINEAR: lambda: LogInterpolator(LinearInterpolator()),
    InterpolatorKind.CUBIC_NATURAL_SPLINE: lambda: CubicInterpolator(CubicScheme.NATURAL_SPLINE),
    InterpolatorKind.LOG_CUBIC_NATURAL_SPLINE: lambda: LogInterpolator(
        CubicInterpolator(CubicScheme.NATURAL_SPLINE)),
    InterpolatorKind.MONOTONIC_CUBIC_NATURAL_SPLINE: lambda: CubicInterpolator(
        CubicScheme.NATURAL_SPLINE, monotonic=True),
    InterpolatorKind.MONOTONIC_LOG_CUBIC_NATURAL_SPLINE: lambda: LogInterpolator(
        CubicInterpolator(CubicScheme.NATURAL_SPLINE, monotonic=True)),
    InterpolatorKind.KRUGER_CUBIC: lambda: CubicInterpolator(CubicScheme.KRUGER),
    InterpolatorKind.KRUGER_LOG_CUBIC: lambda: LogInterpolator(CubicInterpolator(CubicScheme.KRUGER)),
    InterpolatorKind.FRITSCH_BUTLAND_CUBIC: lambda: CubicInterpolator(CubicScheme.FRITSCH_BUTLAND),
    InterpolatorKind.FRITSCH_BUTLAND_LOG_CUBIC: lambda: LogInterpolator(
        CubicInterpolator(CubicScheme.FRITSCH_BUTLAND)),
    InterpolatorKind.PARABOLIC: lambda: CubicInterpolator(CubicScheme.PARABOLIC),
    InterpolatorKind.LOG_PARABOLIC: lambda: LogInterpolator(CubicInterpolator(CubicScheme.PARABOLIC)),
    InterpolatorKind.MONOTONIC_PARABOLIC: lambda: CubicInterpolator(
        CubicScheme.PARABOLIC, monotonic=True),
    InterpolatorKind.MONOTONIC_LOG_PARABOLIC: lambda: LogInterpolator(
        CubicInterpolator(CubicScheme.PARABOLIC, monotonic=True)),
}


def create_interpolator(kind: Union[str, InterpolatorKind]) -> Interpolator:
    """
    Factory function to create an interpolator by identifier.

    Args:
        kind: InterpolatorKind or its string identifier (e.g. "LogLinear")

    Returns:
        Unfitted interpolator instance
    """
    return _INTERPOLATORS[InterpolatorKind.parse(kind)]()


__all__ = [
    "Interpolator",
    "BackwardFlatInterpolator",
    "ForwardFlatInterpolator",
    "LinearInterpolator",
    "CubicScheme",
    "CubicInterpolator",
    "LogInterpolator",
    "InterpolatorKind",
    "create_interpolator",
]
