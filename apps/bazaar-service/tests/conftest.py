import os

# Force the in-memory SQLite engine before anything imports bazaar.db.database
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from fastapi.testclient import TestClient

from bazaar.api.main import app
from bazaar.db import database, models
from bazaar.db.database import get_db
from bazaar.db.repositories import tokens as token_repo
from bazaar.db.repositories import users as user_repo
from bazaar.services.email_service import reset_email_service_for_tests
from bazaar.utils.feature_flags import refresh_feature_flag_cache
from bazaar.utils.role_permissions import ROLE_EDITOR, ROLE_SUPER_ADMIN, ROLE_USER
from bazaar.utils.slugs import slugify

_GATEWAY_AND_MAIL_ENV = (
    "KHALTI_SECRET_KEY",
    "KHALTI_ENV",
    "ESEWA_MERCHANT_CODE",
    "ESEWA_SECRET_KEY",
    "ESEWA_ENV",
    "SMTP_HOST",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "ADMIN_EMAILS",
    "FEATURE_KHALTI_ENABLED",
    "FEATURE_ESEWA_ENABLED",
    "FEATURE_PROMOTIONS_ENABLED",
    "PROMOTION_CLEANUP_ENABLED",
    "VERIFICATION_CLEANUP_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_data():
    """Ensure each test starts with empty tables on the shared in-memory engine."""
    with database.engine.begin() as conn:
        for table in reversed(models.Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in _GATEWAY_AND_MAIL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    monkeypatch.setenv("API_BASE_URL", "http://localhost:8000")
    refresh_feature_flag_cache()
    reset_email_service_for_tests()
    yield
    refresh_feature_flag_cache()
    reset_email_service_for_tests()


@pytest.fixture
def db_session():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def user_factory(db_session):
    counter = {"n": 0}

    def _create(email=None, role=ROLE_USER, full_name=None, password="password123", **fields):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        user = user_repo.create_user(
            db_session,
            email=email,
            password=password,
            full_name=full_name or f"Test User {counter['n']}",
            role=role,
        )
        if fields:
            user = user_repo.update_user(db_session, user, **fields)
        return user

    return _create


@pytest.fixture
def auth_headers(db_session):
    def _headers(user):
        _token, full_token = token_repo.create_token(db_session, user_id=user.id, name="test")
        return {"Authorization": f"Bearer {full_token}"}

    return _headers


@pytest.fixture
def seller(user_factory):
    return user_factory(email="seller@example.com", full_name="Ram Seller")


@pytest.fixture
def editor(user_factory):
    return user_factory(email="editor@example.com", role=ROLE_EDITOR, full_name="Sita Editor")


@pytest.fixture
def super_admin(user_factory):
    return user_factory(email="admin@example.com", role=ROLE_SUPER_ADMIN, full_name="Hari Admin")


@pytest.fixture
def category_factory(db_session):
    def _create(name="Electronics", parent=None, slug=None, is_active=True):
        category = models.Category(
            name=name,
            slug=slug or slugify(name),
            parent_id=parent.id if parent else None,
            is_active=is_active,
            sort_order=0,
        )
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category

    return _create


@pytest.fixture
def location_factory(db_session):
    def _create(name="Kathmandu", type="district", parent=None):
        location = models.Location(
            name=name,
            slug=slugify(name),
            type=type,
            parent_id=parent.id if parent else None,
        )
        db_session.add(location)
        db_session.commit()
        db_session.refresh(location)
        return location

    return _create


@pytest.fixture
def ad_factory(db_session):
    def _create(user, title="iPhone 13 Pro", price=95000, status="approved", category=None, location=None, **fields):
        ad = models.Ad(
            title=title,
            description=fields.pop("description", "Lightly used, with box and charger."),
            price=price,
            status=status,
            user_id=user.id,
            category_id=category.id if category else None,
            location_id=location.id if location else None,
            view_count=fields.pop("view_count", 0),
            **fields,
        )
        db_session.add(ad)
        db_session.commit()
        ad.slug = f"{slugify(title)}-{ad.id}"
        db_session.commit()
        db_session.refresh(ad)
        return ad

    return _create
