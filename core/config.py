from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".decompiler_view.json"


def default_config_path() -> Path:
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return Path(base_dir) / CONFIG_FILENAME


class Configuration:
    def __init__(self, path: Optional[Path | str] = None) -> None:
        self.path = Path(path) if path else default_config_path()
        self.selected_decompiler: Optional[str] = None
        self.last_listing: Optional[str] = None

    def load(self) -> "Configuration":
        if not self.path.exists():
            return self
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("configuration must be a JSON object")
            selected = data.get("selected_decompiler")
            if isinstance(selected, str) and selected:
                self.selected_decompiler = selected
            last_listing = data.get("last_listing")
            if isinstance(last_listing, str) and last_listing:
                self.last_listing = last_listing
        except (OSError, ValueError) as exc:
            # keep the defaults when the file is unreadable or malformed
            logger.warning("Ignoring configuration %s: %s", self.path, exc)
        return self

    def save(self) -> None:
        data = {
            "selected_decompiler": self.selected_decompiler,
            "last_listing": self.last_listing,
        }
        try:
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            logger.warning("Could not save configuration %s: %s", self.path, exc)

    def set_selected_decompiler(self, decompiler_id: Optional[str]) -> None:
        self.selected_decompiler = decompiler_id
        self.save()
