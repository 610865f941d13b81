from __future__ import annotations

import os


MANIFEST_ENV = "AGEGRADE_MANIFEST"
LOG_LEVEL_ENV = "AGEGRADE_LOG_LEVEL"

AGE_MIN = 5
AGE_MAX = 110

# Per-request timeout for HTTP fetches of the manifest and standards files.
FETCH_TIMEOUT_S = 30.0
USER_AGENT = "agegrade/0.1 (local)"

# Tried in order when no event is requested; falls back to the first event of the table.
PREFERRED_DEFAULT_EVENTS = ("5 km", "5k", "5K", "parkrun")

# peak_* = peak-age standards, age_* = runner's own age, custom = (custom sex, custom age)
TARGETS = ("peak_m", "peak_f", "age_m", "age_f", "custom")

PLACEHOLDER = "—"

DEFAULT_MESSAGE = "Enter a valid time to calculate."
NO_AGE_MESSAGE = "Enter a valid age to calculate."
NOT_FOUND_MESSAGE = "That age/event doesn’t exist in this standards set."
LOAD_ERROR_MESSAGE = (
    "Couldn’t load the standards data. Please refresh, or check that the data is deployed correctly."
)


def default_data_dir() -> str:
    return "age_grade_standards"


def default_manifest_location() -> str:
    return os.environ.get(MANIFEST_ENV) or f"{default_data_dir()}/manifest.json"


def default_log_level() -> str:
    return (os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
