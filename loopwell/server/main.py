"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request metrics), registers the exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loopwell.core.database import init_db
from loopwell.core.logging_config import get_logger, setup_logging
from loopwell.core.monitoring import initialize_logfire
from loopwell.realtime import init_realtime_hub

from .api.v1 import (
    ai_chat,
    chat_sessions,
    health,
    migrations,
    org,
    projects,
    realtime,
    tasks,
    templates,
    wiki,
    workspaces,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates the database schema when missing and the realtime hub on startup.
    """
    try:
        logger.info("Starting up Loopwell Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    init_realtime_hub(settings.realtime.enabled)

    yield

    logger.info("Shutting down Loopwell Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Loopwell Server API

    Backend of the Loopwell workspace: projects and tasks, the wiki, the org chart,
    the AI assistant, content imports and realtime collaboration events.
    """,
    version=constant.API_VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

initialize_logfire(app)
setup_exception_handlers(app)

app.add_middleware(LogfireMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(health.router, tags=["health"])
app.include_router(workspaces.router, prefix=f"{constant.API_V1_STR}/workspaces")
app.include_router(workspaces.invites_router, prefix=f"{constant.API_V1_STR}/invites")
app.include_router(projects.router, prefix=f"{constant.API_V1_STR}/projects")
app.include_router(tasks.router, prefix=f"{constant.API_V1_STR}/tasks")
app.include_router(templates.router, prefix=f"{constant.API_V1_STR}/task-templates")
app.include_router(templates.project_router, prefix=f"{constant.API_V1_STR}/project-templates")
app.include_router(wiki.router, prefix=f"{constant.API_V1_STR}/wiki")
app.include_router(org.router, prefix=f"{constant.API_V1_STR}/org")
app.include_router(chat_sessions.router, prefix=f"{constant.API_V1_STR}/ai/chat-sessions")
app.include_router(ai_chat.router, prefix=f"{constant.API_V1_STR}/ai")
app.include_router(migrations.router, prefix=f"{constant.API_V1_STR}/migrations")
app.include_router(realtime.router)
