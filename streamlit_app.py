from pathlib import Path
import sys

# Ensure project root is on sys.path for module imports in various runtimes
_APP_DIR = Path(__file__).parent
if str(_APP_DIR) not in sys.path:
    sys.path.insert(0, str(_APP_DIR))

import logging

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from config import (
    AGE_COLLECTION,
    CIVIL_STATUS_COLLECTION,
    DEFAULT_HORIZON,
    DESTINATION_COLLECTION,
    HORIZONS,
    LOG_LEVEL,
    NAVIGATION_ITEMS,
    NOT_REPORTED_KEY,
    SAMPLE_DIR,
    YEAR_KEY,
)
from dashboard_stats import (
    area_chart_frame,
    available_years,
    bar_chart_frame,
    category_totals,
    category_trends,
    composition_frame,
    dashboard_summary,
    donut_frame,
    radar_frame,
    yearly_totals,
)
from data_io import (
    DataError,
    delete_year_record,
    import_wide_table,
    load_age_groups,
    load_wide_table_with_checklist,
    records_frame,
    seed_store_from_directory,
    upsert_year_record,
)
from plot_utils import (
    create_area_chart,
    create_bar_chart,
    create_donut_chart,
    create_forecast_plot,
    create_line_chart,
    create_radar_chart,
    create_results_table,
)
from storage import StorageError, open_store
from synthetic_model import FORECAST_PAGE_GRID, TRAINING_GRID
from training import load_latest_model, parse_horizon_years, run_forecast, train_age_group, training_history
import ui_state

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("emigration_dashboard")

st.set_page_config(
    page_title="Filipino Emigrants Dashboard",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown(
    """
    <style>
        .block-container { padding: 1rem; margin: 1rem; }
        header[data-testid="stHeader"] { height: 20px; }
    </style>
    """,
    unsafe_allow_html=True,
)


@st.cache_resource
def _get_store():
    store = open_store()
    try:
        seeded = seed_store_from_directory(store, SAMPLE_DIR)
        if seeded:
            logger.info("seeded empty store: %s", seeded)
    except (DataError, StorageError) as e:
        logger.warning("could not seed store from %s: %s", SAMPLE_DIR, e)
    return store


def _show_fig(fig):
    st.pyplot(fig)
    plt.close(fig)


def _render_checklist(items):
    for status, text in items:
        icon = "✅" if status == "ok" else ("⚠️" if status == "warning" else "❌")
        st.markdown(f"<div style='margin:2px 0; line-height:1.2'>{icon} {text}</div>", unsafe_allow_html=True)


def _training_table(age_group, config, metrics, data_points):
    formatted = metrics.formatted()
    st.dataframe(pd.DataFrame([{
        "Age Bracket": age_group,
        "Lookback": config.lookback,
        "MLP Neurons": config.neurons_display,
        "Activation": config.activation,
        "Optimizer": config.optimizer,
        "Training Loss": formatted["trainingLoss"],
        "Validation Loss": formatted["validationLoss"],
        "MAE": formatted["mae"],
        "Data Points": data_points,
    }]), hide_index=True, use_container_width=True)


def _train_section(store, age_group, horizon, grid, result_key):
    """Train button + result table shared by the Training and ML Forecast pages."""
    if st.button("Train (Auto Tune + Auto Save)", disabled=not age_group, key=f"train_{result_key}"):
        seed = ui_state.next_train_seed(st.session_state, result_key)
        try:
            with st.spinner("Loading dataset and tuning hyperparameters..."):
                result = train_age_group(store, age_group, horizon, seed, grid)
            st.session_state[result_key] = result
            st.session_state[ui_state.FORECAST_SEED_KEY] = 0
            st.session_state[ui_state.HAS_GENERATED_KEY] = False
            st.success("Training complete. Saved to the document store.")
        except DataError as e:
            st.warning(str(e))
        except StorageError as e:
            logger.warning("training failed for %s: %s", age_group, e)
            st.error("Training failed. Please try again.")

    result = st.session_state.get(result_key)
    if result is not None and result.age_group == age_group:
        st.markdown("**Latest Training Result**")
        _training_table(result.age_group, result.config, result.metrics, result.data_points)


# -----------------------------
# Pages
# -----------------------------

def page_dashboard(store):
    docs = store.documents(DESTINATION_COLLECTION, order_by=YEAR_KEY)
    if not docs:
        st.info("No destination data yet. Upload a dataset first.")
        return
    summary = dashboard_summary(docs)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Emigrants", f"{summary['total_emigrants']:,.0f}")
    c2.metric("Total Countries", summary["total_countries"])
    c3.metric("Data Years", summary["data_years"])
    rate = summary["growth_rate"]
    c4.metric("Growth Rate", f"{'+' if rate > 0 else ''}{rate:.1f}%")

    left, right = st.columns([2, 1])
    with left:
        _show_fig(create_bar_chart(bar_chart_frame(yearly_totals(docs)), title="Emigrants per Year"))
    with right:
        _show_fig(create_donut_chart(donut_frame(category_totals(docs)), title="Top Destinations (%)"))
    _show_fig(create_area_chart(area_chart_frame(category_trends(docs))))


def page_composition(store):
    st.subheader("Composition Charts")
    age_docs = store.documents(AGE_COLLECTION, order_by=YEAR_KEY)
    dest_docs = store.documents(DESTINATION_COLLECTION, order_by=YEAR_KEY)
    civil_docs = store.documents(CIVIL_STATUS_COLLECTION, order_by=YEAR_KEY)
    years = available_years(dest_docs + age_docs + civil_docs)
    if not years:
        st.info("No data available.")
        return
    year = st.selectbox("Year", years, index=0)
    cols = st.columns(3)
    charts = [
        (dest_docs, f"Destination Countries Distribution ({year})", ()),
        (age_docs, f"Age Groups Distribution ({year})", (NOT_REPORTED_KEY,)),
        (civil_docs, f"Civil Status Distribution ({year})", ()),
    ]
    for col, (docs, title, skip) in zip(cols, charts):
        with col:
            frame = composition_frame(docs, year, skip_keys=skip)
            _show_fig(create_donut_chart(frame, label_col="label", value_col="value", title=title))


def page_trends(store):
    st.subheader("Trends")
    docs = store.documents(DESTINATION_COLLECTION, order_by=YEAR_KEY)
    trends = category_trends(docs)
    if trends.empty:
        st.info("No data available.")
        return
    options = ui_state.year_options(list(trends.index))
    current = str(ui_state.get_selected_year(st.session_state))
    choice = st.selectbox("Year", options, index=options.index(current) if current in options else 0)
    selected = ui_state.set_selected_year(st.session_state, choice)
    top = st.slider("Destinations shown", 1, min(10, len(trends.columns)), min(5, len(trends.columns)))
    view = ui_state.filter_by_year(trends, selected, column="index")
    if selected == "all":
        _show_fig(create_line_chart(view, columns=list(trends.columns[:top]), title="Emigrants by Destination"))
    else:
        frame = view.T.reset_index()
        frame.columns = ["label", "value"]
        frame = frame[frame["value"] > 0].sort_values("value", ascending=False).head(top)
        _show_fig(create_donut_chart(frame, label_col="label", value_col="value", title=f"Destinations in {selected}"))


def page_ranking(store):
    st.subheader("Ranking")
    trends = category_trends(store.documents(DESTINATION_COLLECTION, order_by=YEAR_KEY))
    if trends.empty:
        st.info("No data available.")
        return
    years = list(trends.index)
    picked = st.multiselect("Years", years, default=years[-3:])
    _show_fig(create_radar_chart(radar_frame(trends, picked)))


def page_training(store):
    st.subheader("Training")
    st.caption("Select an age bracket and train. Hyperparameter tuning runs automatically "
               "and each training run is saved.")
    groups = load_age_groups(store)
    c1, c2 = st.columns(2)
    age_group = c1.selectbox("Age Bracket", groups, key="training_age_group")
    horizon = c2.selectbox("Forecast Horizon", HORIZONS, index=HORIZONS.index(DEFAULT_HORIZON))
    _train_section(store, age_group, horizon, TRAINING_GRID, "training_result")

    history = training_history(store, age_group)
    if not history.empty:
        with st.expander("Training runs"):
            st.dataframe(history, hide_index=True, use_container_width=True)


def page_forecast(store):
    st.subheader("Forecasting")
    st.caption("Forecasting uses the latest trained model saved for the selected age bracket.")
    groups = load_age_groups(store)
    if ui_state.HORIZON_KEY not in st.session_state:
        st.session_state[ui_state.HORIZON_KEY] = DEFAULT_HORIZON
    c1, c2 = st.columns(2)
    age_group = c1.selectbox("Age Bracket", groups, key="forecast_age_group")
    horizon = c2.selectbox("Forecast Horizon", HORIZONS, key=ui_state.HORIZON_KEY)

    with st.expander("Train a model for this bracket"):
        _train_section(store, age_group, horizon, FORECAST_PAGE_GRID, "forecast_train_result")

    try:
        model = load_latest_model(store, age_group) if age_group else None
    except StorageError as e:
        logger.warning("failed to load model for %s: %s", age_group, e)
        st.error("Failed to load trained model. Please try again.")
        return
    st.write("Model status: " + ("Loaded" if model else "Not found"))

    b1, b2 = st.columns(2)
    if b1.button("Generate Forecast", disabled=model is None):
        ui_state.bump_forecast_seed(st.session_state)
    b2.button("Reset", on_click=ui_state.reset_forecast, args=(st.session_state,))

    if model is None:
        st.info("No trained model found for this age bracket. Please train it first in the Training page.")
        return
    if not st.session_state.get(ui_state.HAS_GENERATED_KEY):
        return

    try:
        run = run_forecast(store, age_group, parse_horizon_years(horizon),
                           st.session_state.get(ui_state.FORECAST_SEED_KEY, 0), model=model)
    except DataError as e:
        st.warning(str(e))
        return

    s = run.summary
    m = st.columns(5)
    m[0].metric("Training Loss", s["trainingLoss"])
    m[1].metric("Validation Loss", s["validationLoss"])
    m[2].metric("MAE", s["mae"])
    m[3].metric("CAGR", s["cagr"])
    m[4].metric("Data Points", s["dataPoints"])
    m = st.columns(5)
    m[0].metric("RMSE", s["rmse"])
    m[1].metric("MAPE", s["mape"])
    m[2].metric("R²", s["r2"])
    m[3].metric("Neurons", s["neuronsDisplay"])
    m[4].metric("Activation", s["activation1"] or "N/A")

    _show_fig(create_forecast_plot(run.merged, title=f"Time Series Forecast: {age_group}"))
    st.dataframe(create_results_table(run.results), hide_index=True, use_container_width=True)


def page_upload(store):
    st.subheader("Upload Data")
    collections = [AGE_COLLECTION, DESTINATION_COLLECTION, CIVIL_STATUS_COLLECTION]
    collection = st.selectbox("Target dataset", collections)
    uploaded = st.file_uploader("Wide CSV: a Year column plus one column per category (< 1MB)", type=["csv"])
    if uploaded is None:
        return
    frame, info = load_wide_table_with_checklist(uploaded)
    _render_checklist(info.get("checklist", []))
    if info.get("error"):
        st.error(info["error"])
        return
    st.dataframe(frame.head(20), hide_index=True)
    if st.button("Import"):
        try:
            count = import_wide_table(store, collection, frame)
            st.success(f"Imported {count} yearly records into {collection}.")
        except (DataError, StorageError) as e:
            st.error(f"Import failed: {e}")


def page_crud(store):
    st.subheader("Data Management")
    collections = [AGE_COLLECTION, DESTINATION_COLLECTION, CIVIL_STATUS_COLLECTION]
    collection = st.selectbox("Dataset", collections)
    frame = records_frame(store, collection)
    st.dataframe(frame, hide_index=True, use_container_width=True)

    categories = [c for c in frame.columns if c != YEAR_KEY]
    with st.form("upsert"):
        year = st.number_input("Year", min_value=1900, max_value=2100, value=2020, step=1)
        category = st.selectbox("Category", categories) if categories else st.text_input("Category")
        value = st.number_input("Emigrants", min_value=0, value=0, step=1)
        if st.form_submit_button("Save") and category:
            try:
                upsert_year_record(store, collection, int(year), {category: int(value)})
                st.success(f"Saved {category} for {int(year)}.")
            except (DataError, StorageError) as e:
                st.error(str(e))

    years = [int(y) for y in frame[YEAR_KEY].dropna()] if not frame.empty else []
    if years:
        doomed = st.selectbox("Delete year", years)
        if st.button("Delete"):
            if delete_year_record(store, collection, doomed):
                st.success(f"Deleted {doomed}.")


PAGES = {
    "dashboard": page_dashboard,
    "composition": page_composition,
    "trends": page_trends,
    "ranking": page_ranking,
    "training": page_training,
    "forecast": page_forecast,
    "upload": page_upload,
    "crud": page_crud,
}


# -----------------------------
# UI
# -----------------------------

st.sidebar.button("☰" if ui_state.is_nav_collapsed(st.session_state) else "✕",
                  on_click=ui_state.toggle_nav, args=(st.session_state,))
labels = ui_state.nav_labels(st.session_state)
choice = st.sidebar.radio("Navigation", range(len(labels)), format_func=lambda i: labels[i],
                          label_visibility="collapsed")
page_key = NAVIGATION_ITEMS[choice][1]

st.markdown("<div style='font-weight:600; margin:12px 0 18px 0; text-align:center; font-size:24px'>"
            "Filipino Emigrants Dashboard</div>", unsafe_allow_html=True)

try:
    PAGES[page_key](_get_store())
except StorageError as e:
    logger.warning("store error on %s: %s", page_key, e)
    st.error(f"Data store unavailable: {e}")
