"""
Curve bootstrapping engine.

Implements the iterative bootstrap of a single curve from rate helpers:
1. Sort helpers by pillar date and reject duplicate pillars
2. Solve one node per helper, in pillar order, holding earlier nodes fixed
3. For non-local interpolators (cubic families), repeat full passes over
   all helpers until no node moves by more than the configured accuracy

Helpers may reference external, fully built curves (discount curves in
other currencies, projection curves of other tenors). Those are constants
during the bootstrap. Ordering bootstraps across curves is up to the
caller (see CurveGraph); a curve that ends up depending on itself through
its helpers' external curves is rejected with ConfigurationError.

PiecewiseYieldCurve wraps the bootstrap in a versioned lazy snapshot: it
rebuilds when any helper quote or external curve version changes and
always serves a completely bootstrapped curve.
"""

import logging
from datetime import date
from typing import Any, List, Optional, Sequence, Set, Union

import numpy as np
import pandas as pd

from ..conventions import DayCount, year_fraction
from ..exceptions import ConfigurationError, ConvergenceError
from ..market.quotes import Handle, LazyObject, version_of
from .base import YieldTermStructure
from .helpers import RateHelper
from .interpolated import InterpolatedYieldCurve
from .interpolation import InterpolatorKind, create_interpolator
from .solver import BootstrapConfig, solve_pillar
from .traits import TraitKind, get_traits

logger = logging.getLogger(__name__)


def sort_helpers(helpers: Sequence[RateHelper], reference_date: date) -> List[RateHelper]:
    """
    Sort helpers by pillar date and validate them.

    Raises:
        ConfigurationError: On empty input, pillars on or before the
            reference date, or two helpers sharing a pillar date
    """
    if not helpers:
        raise ConfigurationError("Need at least one rate helper to bootstrap")
    for helper in helpers:
        helper.initialize(reference_date)

    ordered = sorted(helpers, key=lambda h: h.pillar_date)
    for helper in ordered:
        if helper.pillar_date <= reference_date:
            raise ConfigurationError(
                f"{helper!r} has pillar {helper.pillar_date} on or before reference date {reference_date}"
            )
    for prev, curr in zip(ordered[:-1], ordered[1:]):
        if curr.pillar_date == prev.pillar_date:
            raise ConfigurationError(
                f"More than one instrument with pillar {curr.pillar_date}: {prev!r} and {curr!r}"
            )
    return ordered


class IterativeBootstrap:
    """
    Sequential bootstrap of curve nodes.

    Attributes:
        config: Tolerances, iteration budgets and initial bracket
    """

    def __init__(self, config: Optional[BootstrapConfig] = None):
        self.config = config or BootstrapConfig()

    def bootstrap(
        self,
        reference_date: date,
        helpers: Sequence[RateHelper],
        day_count: DayCount = DayCount.ACT_365,
        traits: Union[str, TraitKind] = TraitKind.DISCOUNT,
        interpolator: Union[str, InterpolatorKind] = InterpolatorKind.LOG_LINEAR,
        jumps: Optional[Sequence[Any]] = None,
        jump_dates: Optional[Sequence[date]] = None
    ) -> InterpolatedYieldCurve:
        """
        Solve the curve nodes so every helper reprices its quote.

        Args:
            reference_date: Curve reference date
            helpers: Rate helpers (any order)
            day_count: Curve time axis day count
            traits: Node quantity
            interpolator: Interpolation between nodes
            jumps: Optional discount jumps
            jump_dates: Dates of the jumps

        Returns:
            Bootstrapped InterpolatedYieldCurve

        Raises:
            ConfigurationError: Invalid helper set or missing external curve
            ConvergenceError: A pillar or the global iteration did not converge
        """
        config = self.config
        traits_impl = get_traits(traits)
        is_global = create_interpolator(interpolator).is_global

        ordered = sort_helpers(helpers, reference_date)
        for helper in ordered:
            if not helper.depends_on_term_structure():
                raise ConfigurationError(
                    f"{helper!r} does not depend on the curve being bootstrapped"
                )
            helper.check_external_curves()

        dates = [reference_date] + [h.pillar_date for h in ordered]
        times = np.array([year_fraction(reference_date, d, day_count) for d in dates])
        rates = np.zeros(len(dates))

        def build(last: int, extrapolate: bool = True) -> InterpolatedYieldCurve:
            values = [traits_impl.value_from_rate(rates[i], times[i]) for i in range(last + 1)]
            values[0] = traits_impl.initial_value(np.array(values))
            return InterpolatedYieldCurve(
                reference_date, dates[:last + 1], values, day_count,
                traits, interpolator, jumps, jump_dates, extrapolate=extrapolate
            )

        # quotes are read once so a concurrent set_value cannot mix two market states
        targets = [helper.quote for helper in ordered]
        n = len(ordered)
        for pass_no in range(1, config.max_passes + 1):
            previous = rates.copy()
            full = is_global and pass_no > 1
            for i, helper in enumerate(ordered, start=1):
                last = n if full else i

                def error(r: float, i: int = i, helper: RateHelper = helper, last: int = last) -> float:
                    rates[i] = r
                    helper.set_term_structure(build(last))
                    return targets[i - 1] - helper.implied_quote()

                if pass_no > 1:
                    guess = previous[i]
                elif i > 1:
                    guess = rates[i - 1]
                else:
                    guess = 0.02
                rates[i] = solve_pillar(error, guess, config, helper.pillar_date)

            if not is_global:
                break
            change = float(np.max(np.abs(rates - previous)))
            logger.debug("Bootstrap pass %d: max node change %.3e", pass_no, change)
            if pass_no > 1 and change < config.accuracy:
                break
        else:
            worst = int(np.argmax(np.abs(rates - previous)))
            logger.warning(
                "Bootstrap did not converge after %d passes (node %s)", config.max_passes, dates[worst]
            )
            raise ConvergenceError(
                f"Bootstrap did not converge after {config.max_passes} passes",
                pillar_date=dates[worst],
                residual=change,
            )

        curve = build(n, extrapolate=False)
        logger.info(
            "Bootstrapped %s/%s curve with %d pillars (%d pass%s)",
            TraitKind.parse(traits).value, InterpolatorKind.parse(interpolator).value,
            n, pass_no, "" if pass_no == 1 else "es"
        )
        return curve


def _walk_dependencies(root: Any, node: Any, on_path: List[Any], seen: Set[int]) -> None:
    """Depth-first search for a path leading back to root or another cycle."""
    for handle in getattr(node, "dependencies", lambda: [])():
        if isinstance(handle, Handle):
            if handle.empty:
                continue
            target = handle.link
        else:
            target = handle
        if target is root or any(target is p for p in on_path):
            names = " -> ".join(repr(p) for p in on_path + [target])
            raise ConfigurationError(f"Circular curve dependency: {names}")
        if id(target) in seen:
            continue
        seen.add(id(target))
        _walk_dependencies(root, target, on_path + [target], seen)


class PiecewiseYieldCurve(LazyObject, YieldTermStructure):
    """
    Yield curve bootstrapped from rate helpers.

    The curve is a lazily computed snapshot: the first query bootstraps it,
    later queries reuse the snapshot until a helper quote or an external
    curve changes version.

    Attributes:
        helpers: Rate helpers the curve reprices
        traits: TraitKind of the nodes
        interpolator: InterpolatorKind between nodes
        config: Bootstrap configuration
    """

    def __init__(
        self,
        reference_date: date,
        helpers: Sequence[RateHelper],
        day_count: DayCount = DayCount.ACT_365,
        traits: Union[str, TraitKind] = TraitKind.DISCOUNT,
        interpolator: Union[str, InterpolatorKind] = InterpolatorKind.LOG_LINEAR,
        config: Optional[BootstrapConfig] = None,
        jumps: Optional[Sequence[Any]] = None,
        jump_dates: Optional[Sequence[date]] = None,
        extrapolate: bool = False
    ):
        LazyObject.__init__(self)
        YieldTermStructure.__init__(self, reference_date, day_count, jumps, jump_dates, extrapolate)
        self.traits = TraitKind.parse(traits)
        self.interpolator = InterpolatorKind.parse(interpolator)
        self.config = config or BootstrapConfig()
        self.helpers = sort_helpers(list(helpers), reference_date)
        self._bootstrapper = IterativeBootstrap(self.config)
        self.check_dependencies()

    # ------------------------------------------------------------------
    # Lazy snapshot
    # ------------------------------------------------------------------

    def check_dependencies(self) -> None:
        """Raise ConfigurationError if this curve depends on itself."""
        _walk_dependencies(self, self, [], set())

    def dependencies(self) -> List[Handle]:
        deps: List[Handle] = []
        for helper in self.helpers:
            deps.extend(helper.dependencies())
        return deps

    def _validate_inputs(self) -> None:
        self.check_dependencies()

    def _state_key(self):
        return (
            tuple(h.version for h in self.helpers),
            tuple(version_of(j) for j in self._jumps),
        )

    def _perform_calculations(self) -> InterpolatedYieldCurve:
        curve = self._bootstrapper.bootstrap(
            self.reference_date, self.helpers, self.day_count,
            self.traits, self.interpolator, self._jumps, self._jump_dates
        )
        for helper in self.helpers:
            helper.set_term_structure(self)
        return curve

    # ------------------------------------------------------------------
    # Curve queries
    # ------------------------------------------------------------------

    @property
    def max_date(self) -> date:
        return self.snapshot().max_date

    def _discount_impl(self, t: float) -> float:
        return self.snapshot().discount(t, extrapolate=True)

    def discount(self, t, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        curve = self.snapshot()
        self._check_range(t, extrapolate)
        return curve.discount(t, extrapolate=True)

    @property
    def times(self) -> np.ndarray:
        return self.snapshot().times

    @property
    def dates(self) -> List[date]:
        return self.snapshot().dates

    @property
    def data(self) -> np.ndarray:
        return self.snapshot().data

    def nodes(self):
        return self.snapshot().nodes()

    def to_frame(self) -> pd.DataFrame:
        return self.snapshot().to_frame()

    def repricing_report(self) -> pd.DataFrame:
        """Quote, implied quote and error of every helper on the current curve."""
        self.snapshot()
        rows = []
        for helper in self.helpers:
            implied = helper.implied_quote()
            rows.append({
                "helper": type(helper).__name__,
                "pillar_date": helper.pillar_date,
                "quote": helper.quote,
                "implied_quote": implied,
                "error": helper.quote - implied,
            })
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (
            f"PiecewiseYieldCurve({self.reference_date}, traits={self.traits.value}, "
            f"interpolator={self.interpolator.value}, helpers={len(self.helpers)})"
        )


__all__ = [
    "BootstrapConfig",
    "IterativeBootstrap",
    "PiecewiseYieldCurve",
    "sort_helpers",
]
