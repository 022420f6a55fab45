"""FastAPI application entry point for commerce_rag_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ClientRequestError
from services.ServiceContainer import ServiceContainer
from server.routers.QueryRouter import router as query_router
from server.routers.StoreRouter import router as store_router
from server.routers.UserRouter import router as user_router
from server.routers.StatusRouter import router as status_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    container = ServiceContainer(helper_config=app.state.helper_config)
    await container.boot()
    await container.check_connections()

    app.state.container = container
    app.state.rag_engine = container.rag_engine
    app.state.lock_manager = container.lock_manager
    app.state.namespace_manager = container.namespace_manager
    app.state.lifecycle_service = container.lifecycle_service
    app.state.background_runner = container.background_runner

    if app.state.helper_config.get_bool_val("SYNC_SCHEDULE_ON_STARTUP", default=True):
        try:
            scheduled = await container.schedule_active_stores()
            logging.info("Periodic sync scheduled for %d active store(s).", scheduled)
        except (ClientRequestError, httpx.HTTPError) as e:
            logging.error("Could not load active stores for scheduling: %s", e)

    # while the app is running...
    yield

    # when the app shuts down, stop timers and close all client connections
    logging.info("Shutting down, stopping timers and closing all clients...")
    await container.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="commerce_rag_bridge",
    description=(
        "Namespaced RAG indexing and retrieval for multi-tenant e-commerce assistants. "
        "Store data is synced from the commerce platform into per-store namespaces of a vector "
        "database and served to agents via POST /query. Store lifecycle events arrive on /stores."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_router)
app.include_router(store_router)
app.include_router(user_router)
app.include_router(status_router)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting commerce_rag_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
