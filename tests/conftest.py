"""Shared fixtures: in-memory SQLite, a recording asset store and the API client."""

from decimal import Decimal
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from campus_market.application.services.auth_service import caller_from_user, create_access_token
from campus_market.application.services.catalog_service import CatalogService
from campus_market.application.services.moderation_service import ModerationService
from campus_market.application.services.profile_service import ProfileService
from campus_market.config import Settings
from campus_market.core.exceptions import UpstreamServiceException
from campus_market.domain.models.product import Product
from campus_market.domain.models.report import Report  # noqa: F401
from campus_market.domain.models.user import User
from campus_market.domain.repositories.asset_store import ImageUpload, StoredAsset
from campus_market.infrastructure.cloudinary_store import extract_public_id
from campus_market.infrastructure.container import AppContainer
from campus_market.infrastructure.database import Base, create_db_engine, create_session_factory
from campus_market.infrastructure.mailer import Mailer
from campus_market.main import create_app

ADMIN_EMAIL = "admin@campus.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeAssetStore:
    """In-memory asset store that records every call."""

    def __init__(self):
        self.uploads: List[StoredAsset] = []
        self.deleted: List[str] = []
        self.fail_uploads = False
        self.fail_deletes = False
        self.closed = False

    def upload(self, image: ImageUpload, folder: str, key: str, transformation: Optional[List[dict]] = None) -> StoredAsset:
        if self.fail_uploads:
            raise UpstreamServiceException("Image upload timed out")
        public_id = f"{folder}/{key}"
        asset = StoredAsset(
            url=f"https://res.cloudinary.com/demo/image/upload/v1700000000/{public_id}.png",
            public_id=public_id,
        )
        self.uploads.append(asset)
        return asset

    def delete(self, public_id: str) -> bool:
        if self.fail_deletes:
            raise UpstreamServiceException("Image delete failed")
        self.deleted.append(public_id)
        return True

    def extract_public_id(self, url: Optional[str]) -> Optional[str]:
        return extract_public_id(url)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret",
        ADMIN_EMAILS=[ADMIN_EMAIL],
        ENVIRONMENT="test",
        SMTP_HOST="",
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def catalog(session_factory, asset_store, settings):
    return CatalogService(session_factory, asset_store, settings)


@pytest.fixture
def moderation(session_factory, settings):
    return ModerationService(session_factory, settings)


@pytest.fixture
def profiles(session_factory, asset_store, settings):
    return ProfileService(session_factory, asset_store, settings)


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    def _make(
        name: str = None,
        email: str = None,
        contact_number: Optional[str] = "0700000000",
        hostel: Optional[str] = "North Hall",
        role: str = "user",
        **extra,
    ) -> int:
        counter["n"] += 1
        n = counter["n"]
        with session_factory() as db:
            user = User(
                name=name or f"User {n}",
                email=email or f"user{n}@campus.test",
                contact_number=contact_number,
                hostel=hostel,
                role=role,
                **extra,
            )
            db.add(user)
            db.commit()
            return user.id

    return _make


@pytest.fixture
def make_product(session_factory):
    def _make(owner_id: int, **overrides) -> int:
        values = {
            "title": "Desk",
            "description": "Sturdy wooden study desk",
            "price": Decimal("50.00"),
            "category": "Furniture",
            "condition": "Used",
            "user_id": owner_id,
        }
        values.update(overrides)
        with session_factory() as db:
            product = Product(**values)
            db.add(product)
            db.commit()
            return product.id

    return _make


@pytest.fixture
def caller_for(session_factory):
    def _caller(user_id: int):
        with session_factory() as db:
            return caller_from_user(db.get(User, user_id))

    return _caller


@pytest.fixture
def fetch(session_factory):
    """Re-read a row in a fresh session."""
    def _fetch(model, pk):
        with session_factory() as db:
            return db.get(model, pk)

    return _fetch


@pytest.fixture
def image():
    return ImageUpload(content=PNG_BYTES, content_type="image/png", filename="desk.png")


@pytest.fixture
def container(settings, engine, session_factory, asset_store):
    return AppContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        asset_store=asset_store,
        mailer=Mailer(settings),
    )


@pytest.fixture
def client(settings, container):
    app = create_app(settings, container_factory=lambda _: container)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_header(settings):
    def _header(user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(settings, user_id)}"}

    return _header
