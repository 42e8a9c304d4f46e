"""Process-scoped dependencies, built at startup and closed on shutdown."""

from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from campus_market.config import Settings
from campus_market.domain.repositories.asset_store import AssetStore
from campus_market.infrastructure.cloudinary_store import CloudinaryAssetStore
from campus_market.infrastructure.database import create_db_engine, create_session_factory
from campus_market.infrastructure.mailer import Mailer


@dataclass
class AppContainer:
    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    asset_store: AssetStore
    mailer: Mailer

    def close(self) -> None:
        self.asset_store.close()
        self.engine.dispose()


def build_container(settings: Settings) -> AppContainer:
    engine = create_db_engine(settings)
    return AppContainer(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        asset_store=CloudinaryAssetStore(settings),
        mailer=Mailer(settings),
    )
