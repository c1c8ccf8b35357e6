import json
import os
from pathlib import Path
from typing import Any, Dict, List

from booking_app.core.config import settings
from booking_app.core.logger import logger

DEFAULT_SEED_PATH = Path(__file__).resolve().parents[2] / "data" / "seed_data.json"

SEED_SECTIONS = ("users", "bookings", "services", "time_slots", "notifications")


def resolve_seed_path() -> Path:
    if settings.SEED_DATA_PATH:
        return Path(settings.SEED_DATA_PATH).expanduser()
    return DEFAULT_SEED_PATH


def load_seed_data(path: Path | None = None) -> Dict[str, List[Any]]:
    """
    Loads the demo records used to seed an empty store.
    Raises FileNotFoundError if the seed file is missing.
    Returns: Dict with one list per section (users, bookings, services, time_slots, notifications).
    """
    seed_path = path or resolve_seed_path()
    if not os.path.exists(seed_path):
        logger.critical(f"❌ Seed data file '{seed_path}' not found!")
        raise FileNotFoundError(f"Seed data file not found at {seed_path}")

    try:
        with open(seed_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in seed data: {e}")
        raise ValueError(f"Invalid JSON in seed file: {e}")

    if not isinstance(data, dict):
        raise ValueError("Seed file must contain a JSON object")

    seed = {section: list(data.get(section) or []) for section in SEED_SECTIONS}
    logger.info(
        f"✅ Seed data loaded: {len(seed['users'])} users, {len(seed['bookings'])} bookings, "
        f"{len(seed['services'])} services, {len(seed['time_slots'])} time slots"
    )
    return seed
