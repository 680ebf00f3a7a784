import configparser
from pathlib import Path

from solver.engine import SearchLimits

SETTINGS_PATH = Path(__file__).with_name("settings.ini")
SECTION = "solver"

DEFAULT_SETTINGS = {
    "yield_seconds": "0.0",
    "report_pause_seconds": "0.0",
    "max_nodes": "0",
    "max_seconds": "0",
    "fully_explore": "false",
    "log_level": "WARNING",
}

LOG_LEVEL_ORDER = ("DEBUG", "INFO", "WARNING", "ERROR")


def _as_non_negative(raw, default, cast):
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        value = cast(default)
    if value < 0:
        value = cast(default)
    return value


def _sanitize(settings):
    data = dict(DEFAULT_SETTINGS)
    data.update({k: str(v) for k, v in settings.items() if k in DEFAULT_SETTINGS})

    for key in ("yield_seconds", "report_pause_seconds", "max_seconds"):
        data[key] = str(_as_non_negative(data[key], DEFAULT_SETTINGS[key], float))
    data["max_nodes"] = str(_as_non_negative(data["max_nodes"], DEFAULT_SETTINGS["max_nodes"], int))

    explore = data["fully_explore"].strip().lower()
    data["fully_explore"] = "true" if explore in ("1", "true", "yes", "on") else "false"

    level = data["log_level"].strip().upper()
    if level not in LOG_LEVEL_ORDER:
        level = DEFAULT_SETTINGS["log_level"]
    data["log_level"] = level
    return data


def load_settings():
    parser = configparser.ConfigParser()
    if not SETTINGS_PATH.exists():
        return _sanitize({})
    try:
        parser.read(SETTINGS_PATH, encoding="utf-8")
    except configparser.Error:
        return _sanitize({})
    if SECTION not in parser:
        return _sanitize({})
    return _sanitize(dict(parser[SECTION]))


def save_settings(settings):
    data = _sanitize(settings)
    parser = configparser.ConfigParser()
    parser[SECTION] = data
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with SETTINGS_PATH.open("w", encoding="utf-8") as f:
        parser.write(f)


def engine_options(settings) -> dict:
    """Keyword arguments for ``SearchEngine`` taken from sanitized settings."""
    max_nodes = int(settings["max_nodes"])
    max_seconds = float(settings["max_seconds"])
    return {
        "yield_seconds": float(settings["yield_seconds"]),
        "report_pause_seconds": float(settings["report_pause_seconds"]),
        "fully_explore": settings["fully_explore"] == "true",
        "limits": SearchLimits(
            max_nodes=max_nodes if max_nodes > 0 else None,
            max_seconds=max_seconds if max_seconds > 0 else None,
        ),
    }


def with_overrides(settings, overrides) -> dict:
    data = dict(settings)
    data.update(overrides)
    return _sanitize(data)
