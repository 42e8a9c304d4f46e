"""
API Dependencies.
Services are built per request around the process-scoped container.
"""

from fastapi import Depends, Request

from campus_market.application.services.catalog_service import CatalogService
from campus_market.application.services.moderation_service import ModerationService
from campus_market.application.services.profile_service import ProfileService
from campus_market.config import Settings
from campus_market.infrastructure.container import AppContainer
from campus_market.infrastructure.mailer import Mailer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_app_settings(container: AppContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_mailer(container: AppContainer = Depends(get_container)) -> Mailer:
    return container.mailer


def get_catalog_service(container: AppContainer = Depends(get_container)) -> CatalogService:
    """Get catalog service instance."""
    return CatalogService(container.session_factory, container.asset_store, container.settings)


def get_moderation_service(container: AppContainer = Depends(get_container)) -> ModerationService:
    """Get moderation service instance."""
    return ModerationService(container.session_factory, container.settings)


def get_profile_service(container: AppContainer = Depends(get_container)) -> ProfileService:
    """Get profile service instance."""
    return ProfileService(container.session_factory, container.asset_store, container.settings)
