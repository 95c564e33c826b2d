"""
Central configuration for the purchase-order store.

All paths and storage settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/po_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_LOCAL_STORAGE = PROJECT_ROOT / "data" / "purchase_orders_system.json"
DEFAULT_DOCUMENT_DB   = PROJECT_ROOT / "output" / "documents.db"
DEFAULT_SEED_DIR      = PROJECT_ROOT / "defaults"

# Bump to discard stored data and reseed from the defaults on next load
DATA_VERSION = "v2_products_update"


@dataclass
class Config:
    # --- Storage ---
    # "local"    → LocalStorageBackend (single JSON file, default)
    # "document" → DocumentStoreBackend (SQLite documents + atomic counters)
    storage_backend: str = field(
        default_factory=lambda: os.getenv("PO_STORAGE_BACKEND", "local")
    )
    local_storage_path: Path = field(
        default_factory=lambda: Path(os.getenv("PO_LOCAL_STORAGE", str(DEFAULT_LOCAL_STORAGE)))
    )
    document_db_path: Path = field(
        default_factory=lambda: Path(os.getenv("PO_DOCUMENT_DB", str(DEFAULT_DOCUMENT_DB)))
    )

    # --- Seeding / migration ---
    seed_dir: Path = field(
        default_factory=lambda: Path(os.getenv("PO_SEED_DIR", str(DEFAULT_SEED_DIR)))
    )
    seed_on_load: bool = field(
        default_factory=lambda: os.getenv("PO_SEED_ON_LOAD", "true").lower() != "false"
    )
    data_version: str = DATA_VERSION

    # --- Order numbering ---
    # Lowest suffix a proposed order number may follow (proposal is floor + 1
    # when no order exists yet for the year).
    order_number_floor: int = field(
        default_factory=lambda: int(os.getenv("PO_ORDER_NUMBER_FLOOR", "0"))
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from po_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "po_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "storage_backend":     str,
            "local_storage_path":  Path,
            "document_db_path":    Path,
            "seed_dir":            Path,
            "seed_on_load":        bool,
            "order_number_floor":  int,
        }
        # Environment variables still win over the settings file
        _env_names = {
            "storage_backend":     "PO_STORAGE_BACKEND",
            "local_storage_path":  "PO_LOCAL_STORAGE",
            "document_db_path":    "PO_DOCUMENT_DB",
            "seed_dir":            "PO_SEED_DIR",
            "seed_on_load":        "PO_SEED_ON_LOAD",
            "order_number_floor":  "PO_ORDER_NUMBER_FLOOR",
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and os.getenv(_env_names[key]) is None:
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load po_settings.json: %s", exc)

    def ensure_dirs(self) -> None:
        self.local_storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.document_db_path.parent.mkdir(parents=True, exist_ok=True)
