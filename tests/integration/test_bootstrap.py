"""
Integration tests for seeding and data-version migration.
"""
import json

import pytest

from bootstrap import DATA_VERSION_KEY, ensure_initial_data, load_seed_records
from models import SupplierCreate
from store.entity_store import EntityStore
from store.sync import SyncFacade


@pytest.mark.integration
class TestBootstrap:
    """Tests for ensure_initial_data."""

    def test_load_seed_records(self, test_config):
        records, counter = load_seed_records(test_config.seed_dir)
        assert set(records) == {"suppliers", "products", "companies", "budgets", "orders"}
        assert counter == {"2020": 29, "2025": 1}

    def test_seeds_empty_store(self, store, test_config):
        """Test an empty store receives the default catalog and counter."""
        assert ensure_initial_data(store, test_config) is True

        assert len(store.list_suppliers()) == 3
        assert len(store.list_products()) == 4
        assert len(store.list_companies()) == 2
        assert [b.code for b in store.budgets_by_type("investments")] == [7100, 7200]
        assert [o.order_number for o in store.list_orders()] == ["2025-1", "2020-29"]
        assert store.order_counter() == {2020: 29, 2025: 1}
        assert store.backend.get_meta(DATA_VERSION_KEY) == test_config.data_version

    def test_seeded_counter_continues(self, store, test_config):
        ensure_initial_data(store, test_config)
        assert store.numbers.next_number() == "2025-2"

    def test_idempotent(self, store, test_config):
        """Test a second run writes nothing and keeps user edits."""
        ensure_initial_data(store, test_config)
        store.add_supplier(SupplierCreate(name="ספק חדש"))

        assert ensure_initial_data(store, test_config) is False
        assert len(store.list_suppliers()) == 4

    def test_non_empty_store_not_seeded(self, store, test_config):
        store.add_supplier(SupplierCreate(name="ספק קיים"))
        assert ensure_initial_data(store, test_config) is False
        assert len(store.list_suppliers()) == 1

    def test_seed_disabled(self, store, test_config):
        test_config.seed_on_load = False
        assert ensure_initial_data(store, test_config) is False
        assert store.is_empty()
        assert store.backend.get_meta(DATA_VERSION_KEY) == test_config.data_version

    def test_version_change_discards_data(self, store, test_config):
        """Test a changed data version clears stored records and reseeds."""
        store.backend.set_meta(DATA_VERSION_KEY, "v1_initial")
        store.add_supplier(SupplierCreate(name="ישן"))

        assert ensure_initial_data(store, test_config) is True

        names = [s.name for s in store.list_suppliers()]
        assert "ישן" not in names
        assert len(names) == 3
        assert store.backend.get_meta(DATA_VERSION_KEY) == test_config.data_version

    def test_first_run_keeps_unversioned_data(self, store, test_config):
        """Test data without a recorded version is kept, only the version is stamped."""
        store.add_supplier(SupplierCreate(name="קיים"))
        assert ensure_initial_data(store, test_config) is False
        assert [s.name for s in store.list_suppliers()] == ["קיים"]

    def test_missing_seed_dir(self, store, test_config, temp_dir):
        test_config.seed_dir = temp_dir / "nowhere"
        assert ensure_initial_data(store, test_config) is False
        assert store.is_empty()

    def test_invalid_seed_writes_nothing(self, store, test_config, temp_dir):
        """Test one invalid record aborts the whole seed."""
        seed_dir = temp_dir / "seed"
        seed_dir.mkdir()
        (seed_dir / "suppliers.json").write_text(json.dumps([{"id": 1, "name": "A"}]))
        (seed_dir / "budgets.json").write_text(json.dumps([{"code": 1, "type": "unknown"}]))
        test_config.seed_dir = seed_dir

        with pytest.raises(ValueError):
            ensure_initial_data(store, test_config)
        assert store.is_empty()

    def test_facade_reset_reseeds(self, backend, clock, test_config):
        store = EntityStore(backend, clock=clock)
        facade = SyncFacade(store, bootstrap=lambda s: ensure_initial_data(s, test_config))
        facade.load()
        facade.add_supplier({"name": "זמני"})
        assert len(facade.suppliers) == 4

        facade.reset_to_defaults()

        assert len(facade.suppliers) == 3
        assert len(facade.orders) == 2
        assert store.order_counter() == {2020: 29, 2025: 1}
