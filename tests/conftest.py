import base64
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from storeadmin.config import Config
from storeadmin.gateway import DataGateway
from storeadmin.main import create_app
from storeadmin.models import Order
from storeadmin.realtime import RealtimeChannel
from storeadmin.storage import LocalBucket
from storeadmin.utils.db import create_tables, make_engine

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "s3cret"


@pytest.fixture
def config(tmp_path):
    return Config(
        database_url=f"sqlite:///{tmp_path / 'store.db'}",
        storage_dir=str(tmp_path / "storage"),
        storage_public_url="http://testserver/storage/v1",
        state_file=str(tmp_path / "state.json"),
        # Keep the poll timer out of the way; tests drive reloads explicitly
        poll_interval=3600,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def channel():
    return RealtimeChannel()


@pytest.fixture
def bucket(config):
    return LocalBucket(config.storage_dir, config.storage_public_url, config.storage_bucket)


@pytest.fixture
def gateway(config, bucket, channel):
    engine = make_engine(config.database_url)
    create_tables(engine)
    return DataGateway(engine, bucket, changes=channel)


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as c:
        yield c


@pytest.fixture
def admin(client):
    res = client.post("/auth/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return client


@pytest.fixture
def outside_gateway(config, bucket):
    """A second client writing to the same backend, invisible to the app's change feed"""
    engine = make_engine(config.database_url)
    create_tables(engine)
    return DataGateway(engine, bucket)


def make_order(userid="user-a", total=100.0, status="Pending", created_at=None, phone="9876500000", cartitems=None):
    return Order(
        userid=userid,
        totalprice=total,
        status=status,
        created_at=created_at or datetime(2024, 1, 15, 10, 30),
        checkoutdata={"phone": phone, "city": "Pune", "paymentMethod": "cod"},
        cartitems=cartitems or [],
    )


def image(filename="photo.png", data=b"\x89PNG fake image bytes"):
    return {"filename": filename, "content_base64": base64.b64encode(data).decode()}
