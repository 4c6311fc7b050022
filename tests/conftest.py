import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("EMAIL_SEND_DELAY_SECONDS", "0")
for _var in ("RESEND_API_KEY", "SMTP_HOST", "GMAIL_USER", "SMTP_USERNAME"):
    os.environ.pop(_var, None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app
from app.models.product import Part, Product
from app.models.user import User

API = "/api"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(session):
    def _get_session():
        yield session

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fake_storage(monkeypatch):
    """Replace Supabase Storage calls with an in-memory record."""
    uploads: list[str] = []

    def _upload(path, data, content_type=None):
        uploads.append(path)
        return f"https://storage.test/{path}"

    def _delete(url):
        return None

    monkeypatch.setattr("app.services.order_service.upload_to_storage", _upload)
    monkeypatch.setattr("app.services.product_service.upload_to_storage", _upload)
    monkeypatch.setattr("app.services.product_service.delete_public_url", _delete)
    return uploads


def make_token(user_id: uuid.UUID, email: str) -> str:
    claims = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_header(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}


def _create_user(session: Session, email: str, role: str) -> User:
    user = User(id=uuid.uuid4(), email=email, name=email.split("@")[0], role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def customer(session) -> User:
    return _create_user(session, "driver@example.com", "user")


@pytest.fixture()
def other_customer(session) -> User:
    return _create_user(session, "someone@example.com", "user")


@pytest.fixture()
def admin(session) -> User:
    return _create_user(session, "admin@example.com", "admin")


@pytest.fixture()
def customer_headers(customer):
    return auth_header(customer)


@pytest.fixture()
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture()
def make_product(session):
    def _make(name="Forged Wheel 18in", price="25.00", stock=20, **kwargs):
        product = Product(
            name=name,
            slug=kwargs.pop("slug", name.lower().replace(" ", "-")),
            price=Decimal(price),
            stock_quantity=stock,
            **kwargs,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture()
def make_part(session):
    def _make(name="Brake Pad Set", price="40.00", stock=5, **kwargs):
        part = Part(name=name, price=Decimal(price), stock_quantity=stock, **kwargs)
        session.add(part)
        session.commit()
        session.refresh(part)
        return part

    return _make
