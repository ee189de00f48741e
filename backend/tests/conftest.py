import os
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.fernet import Fernet

os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("LINE_CHANNEL_ID", "test-channel")
os.environ.setdefault("LINE_CHANNEL_SECRET", "test-secret")
os.environ["DATABASE_URL"] = "sqlite://"

import database  # noqa: E402
from models import Product, User  # noqa: E402


@pytest.fixture
def engine(monkeypatch):
    engine = database.build_engine("sqlite://")
    database.init_db(engine)
    monkeypatch.setattr(database, "SessionLocal", database.build_session_factory(engine))
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_product(session):
    def _make(name="Widget", price=10.0, stock=5, expires_in=timedelta(days=30), **extra):
        product = Product(
            name=name,
            price=price,
            stock=stock,
            expiration_time=datetime.now(timezone.utc) + expires_in,
            is_sold_out=extra.pop("is_sold_out", False),
            is_deleted=extra.pop("is_deleted", False),
            **extra,
        )
        session.add(product)
        session.commit()
        return product

    return _make


@pytest.fixture
def make_user(session):
    def _make(display_name="alice", line_id=None):
        user = User(
            line_id=line_id or f"U-{display_name}",
            display_name=display_name,
            email=f"{display_name}@example.com",
            is_member=False,
            is_deleted=False,
        )
        session.add(user)
        session.commit()
        return user

    return _make
