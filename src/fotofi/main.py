"""Main application entrypoint for fotofi."""

import redis
from fastapi import FastAPI

from fotofi.api.v1 import routes_health
from fotofi.api.v1.routes_agents import router as agents_router
from fotofi.api.v1.routes_auth import router as auth_router
from fotofi.api.v1.routes_chat import router as chat_router
from fotofi.api.v1.routes_conversations import router as conversations_router
from fotofi.api.v1.routes_photos import router as photos_router
from fotofi.core.config import settings
from fotofi.core.logging import setup_logging
from fotofi.core.middleware import HTTPErrorLoggingMiddleware
from fotofi.db.session import get_engine, init_db
from fotofi.services.llm_client import ChatLLMClient
from fotofi.services.submissions import RedisSubmissionStore
from fotofi.storage.client_cache import StorageClientCache, create_storage_client
from fotofi.storage.moderation_store import InMemoryModerationStore
from fotofi.storage.multipart import MultipartUploadIssuer


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    # Shared collaborators, handed to routes through fotofi.api.deps
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    moderation_store = InMemoryModerationStore()
    client_cache = StorageClientCache(
        factory=create_storage_client,
        ttl_seconds=settings.STORAGE_CLIENT_TTL_SECONDS,
    )

    app.state.engine = engine
    app.state.moderation_store = moderation_store
    app.state.upload_issuer = MultipartUploadIssuer(client_cache, moderation_store)
    app.state.llm_client = ChatLLMClient()
    app.state.submission_store = RedisSubmissionStore(redis.Redis.from_url(settings.REDIS_URL))

    app.add_middleware(HTTPErrorLoggingMiddleware)

    # Register routers
    app.include_router(routes_health.router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(agents_router)
    app.include_router(conversations_router)
    app.include_router(chat_router)
    app.include_router(photos_router)

    return app


# Export app instance for ASGI servers
app = create_app()
