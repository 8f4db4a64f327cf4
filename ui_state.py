"""
Session-scoped UI state: global year filter, collapsible navigation and the
training/forecast seed counters.

Every helper takes the state mapping explicitly (``st.session_state`` in the app, a
plain dict in tests).
"""

from typing import Any, List, MutableMapping, Union

import pandas as pd

from config import DEFAULT_HORIZON, NAVIGATION_ITEMS

YearValue = Union[int, str]

SELECTED_YEAR_KEY = "selected_year"
NAV_COLLAPSED_KEY = "nav_collapsed"
TRAIN_SEED_KEY = "train_seed"
FORECAST_SEED_KEY = "forecast_seed"
HAS_GENERATED_KEY = "has_generated"
HORIZON_KEY = "horizon"


def parse_year_option(option: Any) -> YearValue:
    """Select-box value -> ``"all"`` or an int year."""
    if option is None or str(option).strip().lower() == "all":
        return "all"
    return int(str(option).strip())


def get_selected_year(state: MutableMapping[str, Any]) -> YearValue:
    return state.get(SELECTED_YEAR_KEY, "all")


def set_selected_year(state: MutableMapping[str, Any], option: Any) -> YearValue:
    year = parse_year_option(option)
    state[SELECTED_YEAR_KEY] = year
    return year


def year_options(years: List[int]) -> List[str]:
    return ["all"] + [str(y) for y in sorted(years)]


def filter_by_year(frame: pd.DataFrame, selected_year: YearValue, column: str = "year") -> pd.DataFrame:
    """Keep rows for the selected year; ``"all"`` keeps everything.

    ``column="index"`` filters on the frame's index instead of a column.
    """
    if selected_year == "all" or frame.empty:
        return frame
    values = frame.index if column == "index" else frame[column]
    return frame[values == int(selected_year)]


def is_nav_collapsed(state: MutableMapping[str, Any]) -> bool:
    return bool(state.get(NAV_COLLAPSED_KEY, False))


def toggle_nav(state: MutableMapping[str, Any]) -> bool:
    state[NAV_COLLAPSED_KEY] = not is_nav_collapsed(state)
    return state[NAV_COLLAPSED_KEY]


def nav_labels(state: MutableMapping[str, Any]) -> List[str]:
    """Full labels, or initials when the sidebar is collapsed."""
    if is_nav_collapsed(state):
        return ["".join(word[0] for word in label.replace("/", " ").split()) for label, _ in NAVIGATION_ITEMS]
    return [label for label, _ in NAVIGATION_ITEMS]


def next_train_seed(state: MutableMapping[str, Any], page: str = "training") -> int:
    """Advance and return the session training counter for ``page`` (first run gets 1).

    Each page that can train keeps its own counter.
    """
    key = f"{TRAIN_SEED_KEY}:{page}"
    seed = int(state.get(key, 0)) + 1
    state[key] = seed
    return seed


def bump_forecast_seed(state: MutableMapping[str, Any]) -> int:
    seed = int(state.get(FORECAST_SEED_KEY, 0)) + 1
    state[FORECAST_SEED_KEY] = seed
    state[HAS_GENERATED_KEY] = True
    return seed


def reset_forecast(state: MutableMapping[str, Any]) -> None:
    state[HORIZON_KEY] = DEFAULT_HORIZON
    state[FORECAST_SEED_KEY] = 0
    state[HAS_GENERATED_KEY] = False
