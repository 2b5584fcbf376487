"""Project configuration loader for the immutable hook."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .models import DEFAULT_PRIORITY, ImmutableOptions

DEFAULT_CONFIG_PATH = Path(".immutable/config.json")

PRODUCTION_ENV = "IMMUTABLE_PRODUCTION"

DEFAULT_SETTINGS = {
    "priority": DEFAULT_PRIORITY,
    "patches": False,
    "production": False,
    "insertEvent": "",
    "updateEvent": "",
    "deleteEvent": "",
}


def load_hook_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the ``immutable`` section of .immutable/config.json.

    Returns the defaults if the file doesn't exist or is invalid.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = DEFAULT_SETTINGS.copy()

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                section = json.load(f).get("immutable", {})
            if isinstance(section, dict):
                if "removeEvent" in section:
                    section.setdefault("deleteEvent", section.pop("removeEvent"))
                # Merge with defaults to ensure all keys exist
                config.update(section)
        except (json.JSONDecodeError, IOError, AttributeError):
            pass

    if _env_flag(PRODUCTION_ENV):
        config["production"] = True
    return config


def load_immutable_options(config_path: Optional[Path] = None) -> ImmutableOptions:
    return ImmutableOptions.model_validate(load_hook_config(config_path))


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")
