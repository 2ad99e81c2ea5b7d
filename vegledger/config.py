from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "VEG_LEDGER_DATA_DIR"

# Encoded bills are stored inline in the bills row; cap them below 1 MB.
DEFAULT_MAX_BILL_BYTES = 900 * 1024
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "INR"
    max_bill_bytes: int = DEFAULT_MAX_BILL_BYTES
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES


def _default_data_dir() -> Path:
    return Path.home() / ".veg_ledger"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    # Always written to the default folder, which is where get_settings looks for it.
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    cfg = default_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    st.session_state["veg_ledger_data_dir"] = str(data_dir)


def build_settings(data_dir: Path) -> Settings:
    data_dir = Path(data_dir).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "app.db",
    )


@st.cache_resource
def get_settings() -> Settings:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if "veg_ledger_data_dir" in st.session_state:
        data_dir = Path(st.session_state["veg_ledger_data_dir"])
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, ""))
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir))

    return build_settings(data_dir)
