"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .config import AppConfig, get_config, validate_config
from .core.logging import setup_logging, get_logger
from .core.execution_engine import ExecutionEngine
from .core.execution_logger import ExecutionLogStore
from .core.node_executors import NodeExecutorRegistry
from .core.workflow_manager import WorkflowManager
from .models.core import utc_now
from .storage.database import configure_database, create_tables, get_session_factory
from .tools.text_cleaner import OpenAITextCleaner, TextCleaner
from .api.endpoints import router, init_dependencies


class ApplicationState:
    """Container for application state and components."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.http_client: Optional[httpx.AsyncClient] = None
        self.log_store: Optional[ExecutionLogStore] = None
        self.workflow_manager: Optional[WorkflowManager] = None
        self.execution_engine: Optional[ExecutionEngine] = None
        self.logger = None


# Global application state
app_state = ApplicationState()


def initialize_database(config: AppConfig, logger) -> None:
    """Bind the global engine to the configured database and create tables."""
    try:
        configure_database(config.database_url, echo=config.database_echo)
        create_tables()
        logger.info("Database tables created")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def initialize_core_components(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    logger,
    text_cleaner: Optional[TextCleaner] = None
) -> tuple:
    """Build the log store, workflow manager and execution engine."""
    try:
        if text_cleaner is None:
            text_cleaner = OpenAITextCleaner(
                api_key=config.openai_api_key,
                http_client=http_client,
                model=config.openai_model,
                base_url=config.openai_base_url
            )

        session_factory = get_session_factory()
        log_store = ExecutionLogStore(session_factory, max_entries=config.execution_log_limit)
        workflow_manager = WorkflowManager(session_factory, log_store=log_store)
        node_executors = NodeExecutorRegistry.create(
            http_client=http_client,
            text_cleaner=text_cleaner,
            stripe_secret_key=config.stripe_secret_key
        )
        execution_engine = ExecutionEngine(
            node_executors,
            log_store=log_store,
            node_timeout=config.node_timeout
        )

        logger.info("Core components initialized")

        return log_store, workflow_manager, execution_engine

    except Exception as e:
        logger.error(f"Core components initialization failed: {e}")
        raise


def create_lifespan_handler(
    config: AppConfig,
    http_client: Optional[httpx.AsyncClient] = None,
    text_cleaner: Optional[TextCleaner] = None
):
    """Create application lifespan handler.

    A client passed in by the caller is left open on shutdown; a client
    created here is closed.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.log_structured,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )

        logger.info(f"Starting {config.app_name} v{config.app_version}")

        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(timeout=config.http_timeout)

        try:
            initialize_database(config, logger)

            log_store, workflow_manager, execution_engine = initialize_core_components(
                config, client, logger, text_cleaner=text_cleaner
            )

            app_state.config = config
            app_state.http_client = client
            app_state.log_store = log_store
            app_state.workflow_manager = workflow_manager
            app_state.execution_engine = execution_engine
            app_state.logger = logger

            init_dependencies(
                workflow_manager=workflow_manager,
                execution_engine=execution_engine,
                log_store=log_store
            )

            logger.info("Application startup completed successfully")

            yield

        except Exception as e:
            logger.error(f"Application lifecycle failed: {e}")
            raise

        finally:
            logger.info(f"Shutting down {config.app_name}")
            if owns_client:
                await client.aclose()
                logger.info("HTTP client closed")

    return lifespan


def create_app(
    config: Optional[AppConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    text_cleaner: Optional[TextCleaner] = None
) -> FastAPI:
    """Create and configure FastAPI application instance.

    Args:
        config: Application configuration; loaded from the environment when omitted
        http_client: Client used for outbound node requests; created per app when omitted
        text_cleaner: Cleaner used by Transform nodes; OpenAI-backed when omitted
    """
    if config is None:
        config = get_config()

    validate_config(config)

    app = FastAPI(
        title=config.app_name,
        description="Executes visually designed API workflows and records every run",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(config, http_client, text_cleaner)
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    if config.enable_performance_monitoring:
        from .core.middleware import ErrorHandlingMiddleware, PerformanceMonitoringMiddleware

        app.add_middleware(ErrorHandlingMiddleware)
        app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)

    app.include_router(router)

    add_health_endpoints(app, config)

    return app


def add_health_endpoints(app: FastAPI, config: AppConfig) -> None:
    """Add health check endpoints to the application."""

    @app.get("/")
    async def root():
        """Root endpoint for basic health check."""
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": config.app_name.lower().replace(" ", "-"),
            "version": config.app_version
        }

    @app.get("/health/ready")
    async def readiness_check():
        """Readiness check: the database answers a trivial query."""
        try:
            db = get_session_factory()()
            try:
                db.execute(text("SELECT 1"))
            finally:
                db.close()

            return {
                "ready": True,
                "checks": {"database": {"status": "healthy"}},
                "timestamp": utc_now().isoformat()
            }
        except Exception as e:
            logger = get_logger(__name__)
            logger.error(f"Readiness check failed: {str(e)}")
            return JSONResponse(
                status_code=503,
                content={
                    "ready": False,
                    "checks": {"database": {"status": "unhealthy", "error": str(e)}},
                    "timestamp": utc_now().isoformat()
                }
            )


def get_app_state() -> ApplicationState:
    """Get the current application state."""
    return app_state
