"""
Dependency wiring for the FastAPI app.

Clients are built once by `build_services` and stored on `app.state`;
request handlers reach them through the getters below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from models.gemini import GeminiClient, LanguageModel
from shared.types import User
from vinlogg.auth import AuthClient, InMemoryAuthClient, SupabaseAuthClient
from vinlogg.config import Settings
from vinlogg.db import DbClient, InMemoryDbClient, PostgresDbClient
from vinlogg.errors import NOT_SIGNED_IN, ApiError
from vinlogg.retailer import RetailerClient, StaticRetailerClient, SystembolagetClient
from vinlogg.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sb-access-token"


@dataclass
class Services:
    db: DbClient
    auth: AuthClient
    storage: StorageClient
    retailer: RetailerClient
    llm: Optional[LanguageModel] = None


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        logger.warning("Using in-memory database")
        return InMemoryDbClient()
    return PostgresDbClient(settings.database_url)


def build_auth_client(settings: Settings) -> AuthClient:
    if settings.use_in_memory_backends or not (
        settings.supabase_url and settings.supabase_anon_key
    ):
        logger.warning("Using in-memory auth; only registered test tokens work")
        return InMemoryAuthClient()
    return SupabaseAuthClient(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
    )


def build_storage_client(settings: Settings) -> StorageClient:
    public_base_url = settings.public_storage_base_url()
    if (
        settings.use_in_memory_backends
        or not settings.storage_endpoint
        or not public_base_url
    ):
        return InMemoryStorageClient()
    return S3StorageClient(
        bucket=settings.storage_bucket,
        endpoint=settings.storage_endpoint,
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
        public_base_url=public_base_url,
        region=settings.storage_region,
    )


def build_retailer_client(settings: Settings) -> RetailerClient:
    if settings.use_in_memory_backends:
        return StaticRetailerClient()
    return SystembolagetClient(
        api_key=settings.systembolaget_api_key,
        timeout=settings.retailer_timeout_seconds,
    )


def build_language_model(settings: Settings) -> Optional[LanguageModel]:
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set; label scanning is disabled")
        return None
    return GeminiClient(
        settings.gemini_api_key,
        vision_model=settings.vision_model,
        tag_model=settings.tag_model,
    )


def build_services(settings: Settings) -> Services:
    return Services(
        db=build_db_client(settings),
        auth=build_auth_client(settings),
        storage=build_storage_client(settings),
        retailer=build_retailer_client(settings),
        llm=build_language_model(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db_client(services: Services = Depends(get_services)) -> DbClient:
    return services.db


def get_auth_client(services: Services = Depends(get_services)) -> AuthClient:
    return services.auth


def get_storage_client(services: Services = Depends(get_services)) -> StorageClient:
    return services.storage


def get_language_model(
    services: Services = Depends(get_services),
) -> Optional[LanguageModel]:
    return services.llm


def _access_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(SESSION_COOKIE) or None


def get_current_user(
    request: Request, auth: AuthClient = Depends(get_auth_client)
) -> User:
    token = _access_token(request)
    if not token:
        raise ApiError(401, NOT_SIGNED_IN)
    user = auth.get_user(token)
    if user is None:
        raise ApiError(401, NOT_SIGNED_IN)
    return user
