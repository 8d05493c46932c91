"""
Configuration loaded from the environment (and a local .env file via python-dotenv).

The .env file is not read under pytest so tests see predictable defaults.
"""
from __future__ import annotations

import logging
import os
import pathlib

from dotenv import load_dotenv

is_testing = os.getenv("PYTEST_VERSION") is not None

if not is_testing:
    for env_path in (pathlib.Path.cwd() / ".env", pathlib.Path(__file__).parent.parent / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            break

# Remote appointments backend used by AppointmentApiStore
BOOKING_API_BASE_URL = os.getenv("BOOKING_API_BASE_URL", "http://localhost:8080/api")
BOOKING_API_TOKEN = os.getenv("BOOKING_API_TOKEN", "")
BOOKING_API_TIMEOUT = float(os.getenv("BOOKING_API_TIMEOUT", "15"))

# Bearer key expected by the HTTP surface; empty disables the check
BOOKING_SERVICE_KEY = os.getenv("BOOKING_SERVICE_KEY", "")

# best_effort | all_or_nothing
BULK_INSERT_MODE = os.getenv("BULK_INSERT_MODE", "best_effort")
ALLOW_PAST_SLOTS = os.getenv("ALLOW_PAST_SLOTS", "0") == "1"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
