"""
Pytest configuration and shared fixtures for the purchase-order test suite.
"""
import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


class FixedClock:
    """Deterministic clock; advance() moves it forward by whole seconds."""

    def __init__(self, when: datetime) -> None:
        self.when = when

    def __call__(self) -> datetime:
        return self.when

    def advance(self, seconds: float = 1.0) -> None:
        self.when = self.when + timedelta(seconds=seconds)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="po_store_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def test_config(temp_dir: Path) -> "Config":
    """Provide a test configuration with isolated paths."""
    from config import Config

    config = Config()
    config.storage_backend = "local"
    config.local_storage_path = temp_dir / "data" / "purchase_orders_system.json"
    config.document_db_path = temp_dir / "output" / "documents.db"
    config.seed_dir = PROJECT_ROOT / "defaults"
    config.seed_on_load = True
    config.order_number_floor = 0
    return config


@pytest.fixture(params=["local", "document"])
def backend(request, temp_dir: Path):
    """Every storage backend, so store behaviour is checked against both."""
    from store.document_store import DocumentStoreBackend
    from store.local_storage import LocalStorageBackend

    if request.param == "local":
        return LocalStorageBackend(temp_dir / "local.json")
    return DocumentStoreBackend(temp_dir / "documents.db")


@pytest.fixture
def reopen(backend, temp_dir: Path):
    """Return a callable that opens a fresh backend on the same storage."""
    from store.document_store import DocumentStoreBackend
    from store.local_storage import LocalStorageBackend

    def _reopen():
        if isinstance(backend, LocalStorageBackend):
            return LocalStorageBackend(backend.path)
        return DocumentStoreBackend(backend.db_path)

    return _reopen


@pytest.fixture
def store(backend, clock):
    """An empty entity store on each backend with the clock fixed in 2025."""
    from store.entity_store import EntityStore
    return EntityStore(backend, clock=clock)


@pytest.fixture
def facade(store):
    from store.sync import SyncFacade
    f = SyncFacade(store)
    f.load()
    return f


@pytest.fixture
def flaky(temp_dir, clock):
    """
    A loaded facade over a local backend whose reads can be failed on demand.
    Returns (backend, facade); set backend.fail_lists = True to break reads.
    """
    from store.entity_store import EntityStore
    from store.errors import PersistenceFailure
    from store.local_storage import LocalStorageBackend
    from store.sync import SyncFacade

    class FlakyReadBackend(LocalStorageBackend):
        fail_lists = False

        def list_documents(self, collection):
            if self.fail_lists:
                raise PersistenceFailure("simulated network drop")
            return super().list_documents(collection)

    backend = FlakyReadBackend(temp_dir / "flaky.json")
    facade = SyncFacade(EntityStore(backend, clock=clock))
    facade.load()
    return backend, facade


@pytest.fixture
def sample_supplier() -> dict:
    return {
        "name": "אלקטרו-טק בע\"מ",
        "contact_person": "יוסי כהן",
        "phone": "03-5551234",
        "email": "yossi@electrotech.co.il",
    }


@pytest.fixture
def sample_company() -> dict:
    return {
        "name": "תעשיות הגליל",
        "registration_number": "514000001",
        "payment_terms": "שוטף + 30",
        "warranty_options": ["שנה", "שנתיים"],
        "location": "כרמיאל",
    }


@pytest.fixture
def catalog(store, clock, sample_supplier, sample_company):
    """
    A small catalog: one supplier (id 1), one 100 ILS product, one company
    and one expenses budget (code 100).
    """
    from models.budget import Budget
    from models.company import CompanyCreate
    from models.product import ProductCreate
    from models.supplier import SupplierCreate

    supplier = store.add_supplier(SupplierCreate(**sample_supplier))
    product = store.add_product(ProductCreate(
        name="מסך 27 אינץ'", sku="MON-27", description="מסך 4K",
        currency="ILS", supplier_id=supplier.id, price=100,
    ))
    clock.advance()
    company = store.add_company(CompanyCreate(**sample_company))
    budget = store.add_budget(Budget(code=100, type="expenses", name="ציוד"))
    return {"supplier": supplier, "product": product, "company": company, "budget": budget}


@pytest.fixture
def order_data(store, catalog):
    """Order data for 3 units of the catalog product, VAT added on top."""
    from store.calculator import line_item_for

    item = line_item_for(catalog["product"], quantity=3, item_id="item-1")
    return store.draft_order(
        supplier_id=catalog["supplier"].id,
        company_id=catalog["company"].id,
        budget_code=catalog["budget"].code,
        items=[item],
        add_vat=True,
        date="2025-03-10",
    )


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
