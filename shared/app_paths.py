from __future__ import annotations

import os
import sys
from pathlib import Path

APP_NAME = "InspectionAssistant"


def get_app_data_dir() -> Path:
    override = os.environ.get("INSPECTION_DATA_DIR")
    if override:
        app_dir = Path(override)
    else:
        base = os.environ.get("APPDATA")
        if base:
            base_dir = Path(base)
        else:
            base_dir = Path.home() / "AppData" / "Roaming"
        app_dir = base_dir / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_store_path() -> Path:
    return get_app_data_dir() / "store.json"


def get_exports_dir() -> Path:
    exports_dir = get_app_data_dir() / "exports"
    exports_dir.mkdir(parents=True, exist_ok=True)
    return exports_dir


def get_log_path() -> Path:
    return get_app_data_dir() / "inspection.log"


def get_resource_dir() -> Path:
    if getattr(sys, "frozen", False):
        base = Path(getattr(sys, "_MEIPASS", Path(__file__).parent.parent))
        return base / "inspection"
    return Path(__file__).resolve().parent.parent / "inspection"
