"""
AnalystTrack Platform Configuration
Master constants for analyst profiles, prediction submissions, and runtime settings
"""
import os

from dotenv import load_dotenv

load_dotenv()


# ============================================================================
# RUNTIME SETTINGS
# ============================================================================

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "analysttrack")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

APP_NAME = "AnalystTrack"
APP_VERSION = "1.0.0"


# ============================================================================
# ANALYST PROFILES
# ============================================================================

# Signup form choices (specialty is optional, "" when unset)
SPECIALTIES = [
    "Technology Stocks",
    "Healthcare & Biotech",
    "Financial Services",
    "Energy & Utilities",
    "Consumer Goods",
    "Real Estate",
    "Cryptocurrency",
    "International Markets",
    "Small Cap Stocks",
    "ESG Investing",
]

MIN_PASSWORD_LENGTH = 6

# Statistics block written for every new profile
DEFAULT_PROFILE_STATS = {
    "totalPredictions": 0,
    "correctPredictions": 0,
    "accuracy": 0,
    "avgReturn": 0,
    "rating": 0,
    "followers": 0,
    "following": 0,
}

# Analyst directory
TOP_ANALYSTS_LIMIT = 20
MIN_PREDICTIONS_FOR_DIRECTORY = 1


# ============================================================================
# PREDICTIONS
# ============================================================================

TIMEFRAMES = ["1 month", "3 months", "6 months", "1 year"]
CONFIDENCE_LEVELS = ["Low", "Medium", "High"]

DEFAULT_TIMEFRAME = "3 months"
DEFAULT_CONFIDENCE = "Medium"

PREDICTION_STATUS_ACTIVE = "active"

# currentPrice is a placeholder sample, not a market quote
PLACEHOLDER_PRICE_MIN = 50.0
PLACEHOLDER_PRICE_SPAN = 500.0

UNKNOWN_ANALYST = "Unknown Analyst"


# ============================================================================
# USER-FACING MESSAGES
# ============================================================================

MSG_REQUIRED_FIELDS = "Please fill in all required fields"
MSG_SUBMIT_SUCCESS = "Prediction submitted successfully!"
MSG_SUBMIT_FAILED = "Failed to submit prediction. Please try again."
MSG_DISPLAY_NAME_REQUIRED = "Display name is required"
