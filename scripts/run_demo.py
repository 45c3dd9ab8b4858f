#!/usr/bin/env python
"""
BasisLib Demo Script

This script walks through a multi-curve build:
1. Build an OIS discount curve from a zero-rate table
2. Bootstrap a 6M projection curve and a 3M tenor-basis curve on it
3. Bootstrap a EUR discount curve from EUR/USD cross-currency basis swaps
4. Map optionlet and swaption volatilities from 3M to 6M
5. Export repricing reports

Run `pip install -e .` first.

Usage:
    python run_demo.py [--output-dir OUTPUT_DIR]
"""

import argparse
import logging
from datetime import date
from pathlib import Path

import pandas as pd

from basislib.conventions import Conventions, DayCount, Frequency
from basislib.curves import (
    DepositRateHelper,
    FlatForward,
    PiecewiseYieldCurve,
    SwapRateHelper,
    TenorSwapRateHelper,
    XCCYSwapRateHelper,
    ZeroCurve,
)
from basislib.dates import DateUtils
from basislib.indexes import IborIndex
from basislib.market import CurveGraph, SimpleQuote
from basislib.vol import (
    ConstantOptionletVolatility,
    ConstantSwaptionVolatility,
    TenorOptionletVTS,
    TenorSwaptionVTS,
    TwoParameterCorrelation,
)

REFERENCE = date(2024, 1, 15)

OIS_ZEROS = pd.DataFrame({
    "tenor": ["1M", "6M", "1Y", "2Y", "5Y", "10Y", "15Y"],
    "zero_rate": [0.0385, 0.0370, 0.0345, 0.0310, 0.0285, 0.0280, 0.0285],
})

SWAP_6M = pd.DataFrame({
    "tenor": ["1Y", "2Y", "3Y", "5Y", "7Y", "10Y"],
    "rate": [0.0360, 0.0330, 0.0315, 0.0302, 0.0303, 0.0308],
})

BASIS_3M6M = pd.DataFrame({
    "tenor": ["1Y", "2Y", "3Y", "5Y", "7Y"],
    "spread": [-0.0012, -0.0011, -0.0010, -0.0009, -0.0008],
})

XCCY_EURUSD = pd.DataFrame({
    "tenor": ["1Y", "2Y", "3Y", "5Y", "7Y"],
    "spread": [-0.0008, -0.0010, -0.0012, -0.0014, -0.0015],
})


def section(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def euribor(tenor: str, curve=None) -> IborIndex:
    return IborIndex("EURIBOR", tenor, forwarding_curve=curve)


def build_curve_graph(ois_quotes, swap_quotes, basis_quotes) -> CurveGraph:
    """Register OIS -> EURIBOR 6M -> EURIBOR 3M in a dependency graph."""
    graph = CurveGraph()

    def build_ois(deps):
        dates = [REFERENCE] + [DateUtils.add_tenor(REFERENCE, t) for t in OIS_ZEROS["tenor"]]
        zeros = [ois_quotes[0].value] + [q.value for q in ois_quotes]
        return ZeroCurve(dates, zeros)

    def build_6m(deps):
        helpers = [DepositRateHelper(0.0375, euribor("6M"))]
        helpers += [
            SwapRateHelper(q, tenor, euribor("6M"), discount_curve=deps["ois"])
            for tenor, q in zip(SWAP_6M["tenor"], swap_quotes)
        ]
        return PiecewiseYieldCurve(REFERENCE, helpers)

    def build_3m(deps):
        helpers = [DepositRateHelper(0.0385, euribor("3M"))]
        helpers += [
            TenorSwapRateHelper(
                q, tenor,
                pay_index=euribor("3M"),
                rec_index=euribor("6M", deps["euribor6m"]),
                discount_curve=deps["ois"],
            )
            for tenor, q in zip(BASIS_3M6M["tenor"], basis_quotes)
        ]
        return PiecewiseYieldCurve(REFERENCE, helpers)

    graph.add("ois", build_ois, inputs=ois_quotes)
    graph.add("euribor6m", build_6m, depends_on=["ois"], inputs=swap_quotes)
    graph.add("euribor3m", build_3m, depends_on=["ois", "euribor6m"], inputs=basis_quotes)
    return graph


def build_eur_xccy_curve(euribor3m) -> PiecewiseYieldCurve:
    """EUR discount curve implied by EUR/USD basis, USD collateral."""
    usd = FlatForward(REFERENCE, 0.0450)
    sofr = IborIndex("SOFR", "3M", "USD", forwarding_curve=usd)
    helpers = [
        XCCYSwapRateHelper(
            spread, tenor,
            pay_index=sofr,
            rec_index=euribor("3M", euribor3m),
            pay_discount_curve=usd,
            rec_fx_for_dom=1.09,
            fx_resettable=True,
        )
        for tenor, spread in zip(XCCY_EURUSD["tenor"], XCCY_EURUSD["spread"])
    ]
    return PiecewiseYieldCurve(REFERENCE, helpers)


def curve_table(curves: dict, tenors) -> pd.DataFrame:
    rows = []
    for tenor in tenors:
        maturity = DateUtils.add_tenor(REFERENCE, tenor)
        row = {"tenor": tenor}
        for name, curve in curves.items():
            row[f"{name}_zero"] = curve.zero_rate(maturity)
        rows.append(row)
    return pd.DataFrame(rows)


def tenor_vol_demo(ois, euribor3m, euribor6m) -> pd.DataFrame:
    idx3m = euribor("3M", euribor3m)
    idx6m = euribor("6M", euribor6m)
    correlation = TwoParameterCorrelation(rho_inf=0.6, beta=0.3)

    caplets_3m = ConstantOptionletVolatility(REFERENCE, 0.0090)
    caplets_6m = TenorOptionletVTS(caplets_3m, idx3m, idx6m, correlation)

    swaptions_3m = ConstantSwaptionVolatility(REFERENCE, 0.0085)
    eur_fixed = Conventions.eur_fixed()
    swaptions_6m = TenorSwaptionVTS(
        swaptions_3m, ois, idx3m, idx6m,
        base_fixed_frequency=Frequency.QUARTERLY,
        targ_fixed_frequency=eur_fixed.frequency,
        base_fixed_day_count=DayCount.ACT_360,
        targ_fixed_day_count=eur_fixed.day_count,
    )

    rows = []
    for expiry in [1.0, 2.0, 3.0]:
        rows.append({
            "expiry": f"{expiry:g}Y",
            "caplet_3m": caplets_3m.volatility(expiry, 0.03),
            "caplet_6m": caplets_6m.volatility(expiry, 0.03),
            "swaption_3m_5y": swaptions_3m.volatility(expiry, "5Y", 0.03),
            "swaption_6m_5y": swaptions_6m.volatility(expiry, "5Y", 0.03),
        })
    return pd.DataFrame(rows)


def main():
    parser = argparse.ArgumentParser(description="BasisLib multi-curve demo")
    parser.add_argument("--output-dir", type=Path, default=Path("output"))
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    ois_quotes = [SimpleQuote(r) for r in OIS_ZEROS["zero_rate"]]
    swap_quotes = [SimpleQuote(r) for r in SWAP_6M["rate"]]
    basis_quotes = [SimpleQuote(s) for s in BASIS_3M6M["spread"]]

    section("1. Curve graph")
    graph = build_curve_graph(ois_quotes, swap_quotes, basis_quotes)
    print("Build order:", " -> ".join(graph.order()))
    curves = graph.build_all()

    section("2. Repricing")
    for name in ["euribor6m", "euribor3m"]:
        report = curves[name].repricing_report()
        print(f"\n{name}: max |error| = {report['error'].abs().max():.2e}")
        print(report.to_string(index=False))
        report.to_csv(args.output_dir / f"{name}_repricing.csv", index=False)

    section("3. Cross-currency EUR discounting")
    eur_xccy = build_eur_xccy_curve(curves["euribor3m"])
    report = eur_xccy.repricing_report()
    print(f"max |error| = {report['error'].abs().max():.2e}")
    eur_xccy.to_frame().to_csv(args.output_dir / "eur_xccy_nodes.csv", index=False)

    curves["eur_xccy"] = eur_xccy
    table = curve_table(curves, ["1Y", "2Y", "3Y", "5Y", "7Y"])
    print(table.to_string(index=False, float_format=lambda x: f"{x:.4%}"))
    table.to_csv(args.output_dir / "zero_rates.csv", index=False)

    section("4. Quote change propagates downstream")
    before = curves["euribor3m"].zero_rate(5.0)
    swap_quotes[3].set_value(swap_quotes[3].value + 0.0010)
    print("Stale:", [name for name in graph.names() if graph.is_stale(name)])
    after = graph.get("euribor3m").zero_rate(5.0)
    print(f"3M 5Y zero: {before:.4%} -> {after:.4%}")
    swap_quotes[3].set_value(swap_quotes[3].value - 0.0010)

    section("5. Tenor volatility transforms")
    curves = graph.build_all()
    vols = tenor_vol_demo(curves["ois"], curves["euribor3m"], curves["euribor6m"])
    print(vols.to_string(index=False, float_format=lambda x: f"{x * 1e4:.2f}bp"))
    vols.to_csv(args.output_dir / "tenor_vols.csv", index=False)

    print(f"\nReports written to {args.output_dir.resolve()}")


if __name__ == "__main__":
    main()
