"""
Aggregations behind the dashboard, composition, trends and ranking pages.

All functions take plain yearly documents (``{"Year": 1990, "<category>": ...}``)
and return pandas frames ready for plotting.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from config import NOT_REPORTED_KEY, RECENT_YEARS_WINDOW, TOP_DESTINATIONS, YEAR_KEY
from data_io import emigrants_value
from synthetic_model import round_half_up


def long_frame(docs: Iterable[Mapping[str, Any]], skip_keys: Sequence[str] = ()) -> pd.DataFrame:
    """Melt yearly documents into (year, category, emigrants) rows."""
    rows = []
    for doc in docs:
        year = doc.get(YEAR_KEY)
        if year is None:
            continue
        for key, raw in doc.items():
            if key == YEAR_KEY or key in skip_keys:
                continue
            value = emigrants_value(raw)
            if value is None:
                continue
            rows.append({"year": int(year), "category": key, "emigrants": float(value)})
    return pd.DataFrame(rows, columns=["year", "category", "emigrants"])


def available_years(docs: Iterable[Mapping[str, Any]]) -> List[int]:
    return sorted({int(d[YEAR_KEY]) for d in docs if d.get(YEAR_KEY) is not None})


def yearly_totals(docs: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Sum of all positive category values per year; years totalling zero are dropped."""
    df = long_frame(docs)
    df = df[df["emigrants"] > 0]
    totals = df.groupby("year", as_index=False)["emigrants"].sum().rename(columns={"emigrants": "total"})
    totals = totals[totals["total"] > 0]
    return totals.sort_values("year").reset_index(drop=True)


def category_totals(docs: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    df = long_frame(docs, skip_keys=(NOT_REPORTED_KEY,))
    totals = df.groupby("category", as_index=False)["emigrants"].sum()
    totals = totals[totals["emigrants"] > 0]
    return totals.sort_values(["emigrants", "category"], ascending=[False, True]).reset_index(drop=True)


def category_trends(docs: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Wide frame indexed by year, one column per category, busiest category first."""
    df = long_frame(docs, skip_keys=(NOT_REPORTED_KEY,))
    if df.empty:
        return pd.DataFrame()
    wide = df.pivot_table(index="year", columns="category", values="emigrants", aggfunc="sum", fill_value=0)
    order = wide.sum().sort_values(ascending=False, kind="stable").index
    return wide[order].sort_index()


def growth_rate(totals: pd.DataFrame) -> float:
    """Percent change between the two most recent yearly totals."""
    if len(totals) < 2:
        return 0.0
    previous = float(totals["total"].iloc[-2])
    recent = float(totals["total"].iloc[-1])
    if previous == 0:
        return 0.0
    return (recent - previous) / previous * 100


def dashboard_summary(destination_docs: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    totals = yearly_totals(destination_docs)
    countries = category_totals(destination_docs)
    years = available_years(destination_docs)
    return {
        "total_emigrants": float(totals["total"].sum()) if not totals.empty else 0.0,
        "total_countries": int(len(countries)),
        "data_years": f"{years[0]}-{years[-1]}" if years else "N/A",
        "year_count": len(years),
        "growth_rate": growth_rate(totals),
    }


def bar_chart_frame(totals: pd.DataFrame, window: int = RECENT_YEARS_WINDOW) -> pd.DataFrame:
    """Recent years with one column for each of the two latest years.

    A year's total only appears in its own column; every other cell is 0.
    """
    if len(totals) < 2:
        return pd.DataFrame()
    year1, year2 = (int(y) for y in totals["year"].iloc[-2:])
    recent = totals.tail(window)
    return pd.DataFrame({
        "label": [str(int(y))[-2:] for y in recent["year"]],
        str(year1): np.where(recent["year"] == year1, recent["total"], 0),
        str(year2): np.where(recent["year"] == year2, recent["total"], 0),
    }).reset_index(drop=True)


def donut_frame(totals: pd.DataFrame, top_n: int = TOP_DESTINATIONS) -> pd.DataFrame:
    """Top categories plus an ``Others`` slice, with rounded percent shares."""
    if totals.empty:
        return pd.DataFrame(columns=["name", "value", "emigrants"])
    top = totals.head(top_n)
    others = float(totals["emigrants"].iloc[top_n:].sum())
    grand = float(top["emigrants"].sum()) + others

    rows = [{"name": r.category, "value": round_half_up(r.emigrants / grand * 100), "emigrants": r.emigrants}
            for r in top.itertuples()]
    if others > 0:
        rows.append({"name": "Others", "value": round_half_up(others / grand * 100), "emigrants": others})
    return pd.DataFrame(rows, columns=["name", "value", "emigrants"])


def area_chart_frame(trends: pd.DataFrame, window: int = RECENT_YEARS_WINDOW) -> pd.DataFrame:
    """The two busiest categories over the most recent years."""
    if trends.empty:
        return pd.DataFrame(columns=["year", "value1", "value2"])
    first = trends.columns[0]
    second = trends.columns[1] if len(trends.columns) > 1 else first
    frame = pd.DataFrame({
        "year": [str(y)[-2:] for y in trends.index],
        "value1": trends[first].to_numpy(),
        "value2": trends[second].to_numpy(),
    })
    frame = frame.tail(window).reset_index(drop=True)
    frame.attrs["labels"] = (first, second)
    return frame


def composition_frame(docs: Iterable[Mapping[str, Any]], year: int, skip_keys: Sequence[str] = ()) -> pd.DataFrame:
    """Category shares for a single year (positive values only)."""
    df = long_frame([d for d in docs if d.get(YEAR_KEY) == year], skip_keys=skip_keys)
    df = df[df["emigrants"] > 0]
    out = df.groupby("category", as_index=False)["emigrants"].sum()
    out = out.sort_values("emigrants", ascending=False).reset_index(drop=True)
    return out.rename(columns={"category": "label", "emigrants": "value"})


def radar_frame(trends: pd.DataFrame, years: Optional[Sequence[int]] = None, top_n: int = TOP_DESTINATIONS) -> pd.DataFrame:
    """Top categories scored 0-100 relative to the leader, per selected year."""
    if trends.empty:
        return pd.DataFrame()
    selected = trends if not years else trends.loc[trends.index.isin(list(years))]
    if selected.empty:
        return pd.DataFrame()
    top = selected.sum().sort_values(ascending=False, kind="stable").head(top_n).index
    subset = selected[top]
    peak = subset.max(axis=1).replace(0, np.nan)
    return subset.div(peak, axis=0).fillna(0).mul(100).round(1)
