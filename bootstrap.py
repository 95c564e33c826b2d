"""
Bootstrap step: make sure the store holds the initial catalog.

Runs before the first read. Idempotent:
  1. If the stored data version differs from Config.data_version, stored
     records are discarded (the version is then recorded).
  2. If the store is empty, the default records in defaults/*.json are
     written in one batch together with the initial order counter.
"""
import json
import logging
from pathlib import Path

from config import Config
from store.backends import COLLECTIONS
from store.entity_store import EntityStore

logger = logging.getLogger(__name__)

DATA_VERSION_KEY = "data_version"
COUNTER_FILE = "order_counter.json"


def load_seed_records(seed_dir: Path) -> tuple[dict[str, list[dict]], dict]:
    """Read the default records. Missing files are skipped with a warning."""
    records: dict[str, list[dict]] = {}
    for collection in COLLECTIONS:
        path = seed_dir / f"{collection}.json"
        if not path.exists():
            logger.warning("Seed file not found, skipping %s: %s", collection, path)
            continue
        with open(path, encoding="utf-8") as f:
            records[collection] = json.load(f)

    counter: dict = {}
    counter_path = seed_dir / COUNTER_FILE
    if counter_path.exists():
        with open(counter_path, encoding="utf-8") as f:
            counter = json.load(f)
    return records, counter


def ensure_initial_data(store: EntityStore, config: Config) -> bool:
    """Migrate and seed the store if needed. Returns True if records were written."""
    backend = store.backend
    stored_version = backend.get_meta(DATA_VERSION_KEY)
    if stored_version != config.data_version:
        if stored_version is not None:
            logger.info(
                "Data version changed (%s -> %s), discarding stored records",
                stored_version, config.data_version,
            )
            store.reset()
        backend.set_meta(DATA_VERSION_KEY, config.data_version)

    if not config.seed_on_load or not store.is_empty():
        return False

    records, counter = load_seed_records(config.seed_dir)
    if not records:
        logger.warning("No seed data found in %s", config.seed_dir)
        return False

    written = store.import_records(records, order_counter=counter or None)
    logger.info("Seeded %d initial records from %s", written, config.seed_dir)
    return True


if __name__ == "__main__":
    from store.factory import open_store

    logging.basicConfig(level=logging.INFO)
    cfg = Config()
    ensure_initial_data(open_store(cfg), cfg)
