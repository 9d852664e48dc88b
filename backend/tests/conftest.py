"""Shared fixtures: in-memory database, temporary upload storage and an API client."""
import os
import tempfile

# Configure the app before anything imports invoicer.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCAL_STORAGE_DIR"] = tempfile.mkdtemp(prefix="invoicer-uploads-")
os.environ.pop("STORAGE_ACCESS_KEY_ID", None)
os.environ.pop("STORAGE_SECRET_ACCESS_KEY", None)

import io
from datetime import date

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from invoicer.main import app
from invoicer.database import Base, get_db
from invoicer.services.invoice_engine import Party, build_invoice
from invoicer.services.storage_service import StorageService, get_storage_service


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return StorageService(local_storage_dir=str(tmp_path / "uploads"), use_s3=False)


@pytest.fixture
def client(db_session, storage):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (120, 60), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_invoice():
    return build_invoice(
        invoice_number="INV-2024-0001",
        payment_terms="NET30",
        issue_date=date(2024, 1, 15),
        items=[
            {"id": "a", "description": "Design work", "quantity": 2, "rate": "50.00",
             "discount_type": "percentage", "discount_value": 10},
            {"id": "b", "description": "Hosting", "quantity": 1, "rate": "10.00",
             "discount_type": "amount", "discount_value": 0},
        ],
        tax_rate=10,
        shipping_cost="5.00",
        business=Party(name="Acme Studio", address="1 Main St\nSpringfield", email="billing@acme.test"),
        client=Party(name="Globex Corp", tax_id="GB123456"),
    )


@pytest.fixture
def invoice_payload():
    return {
        "invoice_number": "INV-1001",
        "payment_terms": "NET15",
        "issue_date": "2024-03-01",
        "currency": "EUR",
        "business": {"name": "Acme Studio", "email": "billing@acme.test"},
        "client": {"name": "Globex Corp", "address": "42 Elm Road\nShelbyville"},
        "items": [
            {"description": "Consulting", "quantity": "3", "rate": "120.00",
             "discount_type": "percentage", "discount_value": "0"},
            {"description": "Travel", "quantity": "1", "rate": "80.00",
             "discount_type": "amount", "discount_value": "20"},
        ],
        "tax_rate": "20",
        "shipping_cost": "0",
    }
