from __future__ import annotations

import json
from typing import Any


###############################################################################
class ConfigurationError(RuntimeError):
    """The settings file is missing, unreadable or not a JSON object."""


# -----------------------------------------------------------------------------
def configuration_section(payload: Any, name: str) -> dict[str, Any]:
    """Named sub-object of a settings payload; absent or malformed sections read as empty."""
    if not isinstance(payload, dict):
        return {}
    section = payload.get(name)
    return section if isinstance(section, dict) else {}


# -----------------------------------------------------------------------------
def load_configuration_data(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Settings file not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Settings file {path} is not readable JSON") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must hold a JSON object")
    return data
