"""Drill settings: validation, presets and persistence."""
import json
from dataclasses import asdict, fields, replace

from loguru import logger

from math_drill.db import get_connection
from math_drill.models import DrillSettings, Family

SETTINGS_KEY = "drill_settings"
MIN_DURATION_SECONDS = 10

# Class 2 ranges: (min, max, min2, max2). Division is quotient, then divisor.
PRESETS = {
    Family.ADDITION: (1, 20, 1, 20),
    Family.SUBTRACTION: (5, 20, 1, 10),
    Family.MULTIPLICATION: (1, 5, 1, 10),
    Family.DIVISION: (1, 5, 2, 5),
}


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def normalize_settings(settings: DrillSettings) -> DrillSettings:
    """Swap reversed ranges, keep divisors positive, enforce the minimum duration."""
    low, high = sorted((settings.min, settings.max))
    low2, high2 = sorted((settings.min2, settings.max2))
    if Family(settings.family) is Family.DIVISION:
        # Divisor can never be zero.
        low2, high2 = max(1, low2), max(1, high2)
    return replace(
        settings,
        family=Family(settings.family),
        min=low,
        max=high,
        min2=low2,
        max2=high2,
        duration_seconds=max(MIN_DURATION_SECONDS, settings.duration_seconds),
    )


def apply_simplified_defaults(settings: DrillSettings, enabled: bool) -> DrillSettings:
    """Toggle the simplified profile; switching it on resets to gentle defaults."""
    if not enabled:
        return replace(settings, profile_is_simplified=False)
    return replace(
        settings,
        profile_is_simplified=True,
        family=Family.ADDITION,
        min=1,
        max=20,
        min2=1,
        max2=10,
        duration_seconds=120,
        adaptive_weighting_enabled=True,
    )


def apply_preset(settings: DrillSettings) -> DrillSettings:
    """Apply the Class 2 ranges for the current family, if it has any."""
    preset = PRESETS.get(Family(settings.family))
    if preset is None:
        return settings
    low, high, low2, high2 = preset
    return replace(settings, min=low, max=high, min2=low2, max2=high2)


def settings_to_dict(settings: DrillSettings) -> dict:
    data = asdict(settings)
    data["family"] = Family(settings.family).value
    return data


def settings_from_dict(data: dict) -> DrillSettings:
    known = {f.name for f in fields(DrillSettings)}
    values = {k: v for k, v in data.items() if k in known}
    if "family" in values:
        values["family"] = Family(values["family"])
    return normalize_settings(DrillSettings(**values))


def load_settings(db_path: str) -> DrillSettings:
    raw = get_setting(db_path, SETTINGS_KEY)
    if raw is None:
        return DrillSettings()
    try:
        return settings_from_dict(json.loads(raw))
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Stored settings unreadable, using defaults: {e}")
        return DrillSettings()


def save_settings(db_path: str, settings: DrillSettings) -> None:
    set_setting(db_path, SETTINGS_KEY, json.dumps(settings_to_dict(settings)))
