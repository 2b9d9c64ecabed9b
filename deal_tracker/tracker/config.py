from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Load .env from project root
load_dotenv(_PROJECT_ROOT / ".env")


@dataclass(frozen=True)
class TrackerConfig:
    storage_key: str = "dealTrackerData"
    storage_version: str = "1.0.0"
    data_dir: Path = Path(os.getenv("DEAL_TRACKER_DATA_DIR", str(_PROJECT_ROOT / "data")))
    max_history_entries: int = 1000
    max_saved_deals: int = 100
    max_favorite_stores: int = 20
    recommendation_limit: int = 10
    min_recommendation_score: float = 0.3


DEFAULT_TRACKER_CONFIG = TrackerConfig()
