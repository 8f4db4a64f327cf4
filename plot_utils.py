"""
Plotting utilities for the dashboard charts.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from typing import Optional, Sequence

from config import DEFAULT_FIGURE_SIZE, DEFAULT_PLOT_COLORS, DONUT_COLORS


def _millions(value, _pos=None) -> str:
    return f"{value / 1_000_000:.1f}M" if abs(value) >= 1_000_000 else f"{value:,.0f}"


def create_bar_chart(bar_df: pd.DataFrame, title: str = "Yearly Emigrants"):
    """Grouped bars: one series per year column, placed on the recent-years axis."""
    fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)
    if bar_df is None or bar_df.empty:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
        ax.set_axis_off()
        return fig

    series_cols = [c for c in bar_df.columns if c != "label"]
    x = np.arange(len(bar_df))
    width = 0.8 / max(1, len(series_cols))
    colors = [DEFAULT_PLOT_COLORS["previous_year"], DEFAULT_PLOT_COLORS["latest_year"]]
    for idx, col in enumerate(series_cols):
        ax.bar(x + idx * width, bar_df[col], width=width, label=col, color=colors[idx % len(colors)])

    ax.set_xticks(x + width * (len(series_cols) - 1) / 2)
    ax.set_xticklabels(bar_df["label"])
    ax.yaxis.set_major_formatter(plt.FuncFormatter(_millions))
    ax.set_title(title)
    ax.legend(frameon=False)
    ax.grid(axis="y", alpha=0.3)
    fig.tight_layout()
    return fig


def create_forecast_plot(merged: pd.DataFrame, title: str = "Time Series Forecast", y_label: str = "Emigrants"):
    """Line chart of historical values with the forecast continuing from the last actual."""
    fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)

    hist = merged.dropna(subset=["historical"]).sort_values("year")
    fcast = merged.dropna(subset=["forecast"]).sort_values("year")

    ax.plot(hist["year"], hist["historical"], marker="o", linewidth=2,
            color=DEFAULT_PLOT_COLORS["historical"], label="Historical")

    if not fcast.empty:
        # Start the forecast line at the last known point so there is no gap
        if not hist.empty:
            connection_point = pd.DataFrame({
                "year": [hist["year"].iloc[-1]],
                "forecast": [hist["historical"].iloc[-1]],
            })
            f_plot = pd.concat([connection_point, fcast[["year", "forecast"]]], ignore_index=True)
        else:
            f_plot = fcast
        ax.plot(f_plot["year"], f_plot["forecast"], linestyle="--", marker="o", linewidth=2,
                color=DEFAULT_PLOT_COLORS["forecast"], label="Forecast")

    ax.set_title(title)
    ax.set_xlabel("Year")
    ax.set_ylabel(y_label)
    ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda v, _p: f"{v:,.0f}"))
    ax.legend(frameon=False)
    ax.grid(alpha=0.3)
    fig.tight_layout()
    return fig


def create_line_chart(trends: pd.DataFrame, columns: Optional[Sequence[str]] = None, title: str = "Trends"):
    fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)
    cols = list(columns) if columns else list(trends.columns)
    for col in cols:
        ax.plot(trends.index, trends[col], linewidth=1.8, label=str(col))
    ax.set_title(title)
    ax.set_xlabel("Year")
    ax.yaxis.set_major_formatter(plt.FuncFormatter(_millions))
    if cols:
        ax.legend(loc="center left", bbox_to_anchor=(1.02, 0.5), fontsize=9, frameon=False)
    ax.grid(alpha=0.3)
    fig.tight_layout(rect=(0, 0, 0.8, 1))
    return fig


def create_donut_chart(frame: pd.DataFrame, label_col: str = "name", value_col: str = "value", title: str = ""):
    fig, ax = plt.subplots(figsize=(5, 5))
    if frame is None or frame.empty:
        frame = pd.DataFrame({label_col: ["No Data"], value_col: [100]})
    colors = [DONUT_COLORS[i % len(DONUT_COLORS)] for i in range(len(frame))]
    ax.pie(
        frame[value_col],
        labels=frame[label_col],
        colors=colors,
        startangle=90,
        counterclock=False,
        wedgeprops={"width": 0.4, "edgecolor": "white", "linewidth": 2},
        textprops={"fontsize": 8},
    )
    ax.set_title(title)
    ax.axis("equal")
    fig.tight_layout()
    return fig


def create_area_chart(area_df: pd.DataFrame, title: str = "Top Destinations Over Time"):
    fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)
    if area_df is None or area_df.empty:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
        ax.set_axis_off()
        return fig
    label1, label2 = area_df.attrs.get("labels", ("Series 1", "Series 2"))
    x = np.arange(len(area_df))
    ax.fill_between(x, area_df["value1"], alpha=0.4, color=DONUT_COLORS[0], label=str(label1))
    ax.fill_between(x, area_df["value2"], alpha=0.4, color=DONUT_COLORS[1], label=str(label2))
    ax.plot(x, area_df["value1"], color=DONUT_COLORS[0])
    ax.plot(x, area_df["value2"], color=DONUT_COLORS[1])
    ax.set_xticks(x)
    ax.set_xticklabels(area_df["year"])
    ax.yaxis.set_major_formatter(plt.FuncFormatter(_millions))
    ax.set_title(title)
    ax.legend(frameon=False)
    ax.grid(alpha=0.3)
    fig.tight_layout()
    return fig


def create_radar_chart(radar_df: pd.DataFrame, title: str = "Destination Ranking"):
    """One polygon per year (rows) over the ranked categories (columns)."""
    fig = plt.figure(figsize=(6, 6))
    ax = fig.add_subplot(111, polar=True)
    if radar_df is None or radar_df.empty:
        ax.set_title(f"{title} (no data)")
        return fig

    labels = [str(c) for c in radar_df.columns]
    angles = np.linspace(0, 2 * np.pi, len(labels), endpoint=False).tolist()
    angles += angles[:1]
    for idx, (year, row) in enumerate(radar_df.iterrows()):
        values = row.tolist()
        values += values[:1]
        color = DONUT_COLORS[idx % len(DONUT_COLORS)]
        ax.plot(angles, values, color=color, linewidth=1.5, label=str(year))
        ax.fill(angles, values, color=color, alpha=0.25)

    ax.set_xticks(angles[:-1])
    ax.set_xticklabels(labels, fontsize=8)
    ax.set_ylim(0, 100)
    ax.set_title(title)
    ax.legend(loc="upper right", bbox_to_anchor=(1.25, 1.1), fontsize=8, frameon=False)
    return fig


def create_results_table(results: pd.DataFrame) -> pd.DataFrame:
    """Display copy of forecast result rows with blanks for missing values."""
    table = results.copy()
    table.columns = [c.capitalize() for c in table.columns]
    for col in ("Actual", "Predicted", "Error"):
        if col in table.columns:
            table[col] = table[col].map(lambda v: "" if pd.isna(v) else f"{int(v):,}")
    return table
