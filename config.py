"""
Configuration constants for the emigration analytics dashboard.
"""

import os
from pathlib import Path

# Document store
STORE_DIR = Path(os.getenv("EMIGRATION_STORE_DIR", ".emigration_store"))
SAMPLE_DIR = Path(os.getenv("EMIGRATION_SAMPLE_DIR", str(Path(__file__).parent / "data")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Collections
AGE_COLLECTION = "emigrantData_age"
DESTINATION_COLLECTION = "emigrantData_destination"
CIVIL_STATUS_COLLECTION = "emigrantData_civilStatus"
MODELS_COLLECTION = "mlModels"
LATEST_MODELS_COLLECTION = "mlModels_latest"

# Bundled CSVs used to seed an empty store
SAMPLE_FILES = {
    AGE_COLLECTION: "emigrant_age.csv",
    DESTINATION_COLLECTION: "emigrant_destination.csv",
    CIVIL_STATUS_COLLECTION: "emigrant_civil_status.csv",
}

YEAR_KEY = "Year"
NOT_REPORTED_KEY = "Not Reported / No Response"

# Synthetic tuning grid (nested in this order: lookback, units1, units2, activation)
ACTIVATIONS = ("ReLU", "Tanh", "Sigmoid")
LOOKBACKS = (2, 3, 4, 5, 6)
NEURONS_LAYER1 = (32, 64, 96, 128)
NEURONS_LAYER2 = (0, 16, 32, 64)
OPTIMIZERS = ("Adam", "RMSProp", "SGD")

# Activation multipliers; unknown labels fall into the last bucket
LOSS_ACTIVATION_BOOST = {"ReLU": 0.95, "Tanh": 0.98, "Sigmoid": 1.03}
FORECAST_ACTIVATION_BOOST = {"ReLU": 1.05, "Tanh": 1.02, "Sigmoid": 0.98}

# Forecast horizons
HORIZONS = ["3 Years", "5 Years", "10 Years"]
DEFAULT_HORIZON = "10 Years"
FALLBACK_HORIZON_YEARS = 5

# Backtest on the tail of the history
DEFAULT_TEST_FRACTION = 0.2
MIN_BACKTEST_ROWS = 5
MIN_TRAINING_ROWS = 2

# Dashboard charts
RECENT_YEARS_WINDOW = 9
TOP_DESTINATIONS = 5
DEFAULT_FIGURE_SIZE = (10, 4.5)
DONUT_COLORS = ["#F8BBD0", "#A8D5E2", "#E1BEE7", "#B2DFDB", "#FFCCBC", "#B3E5FC"]
DEFAULT_PLOT_COLORS = {
    "historical": "#ec4899",
    "forecast": "#6366f1",
    "previous_year": "#FFCCBC",
    "latest_year": "#B3E5FC",
}

# Sidebar navigation (label, page key)
NAVIGATION_ITEMS = [
    ("Dashboard", "dashboard"),
    ("Composition", "composition"),
    ("Trends", "trends"),
    ("Ranking", "ranking"),
    ("Training", "training"),
    ("ML Forecast", "forecast"),
    ("Upload Data", "upload"),
    ("Data Management", "crud"),
]
