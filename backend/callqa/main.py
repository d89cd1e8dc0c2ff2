"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from callqa.api.v1.routes import api_router
from callqa.core.config import Settings, get_settings
from callqa.core.container import ServiceContainer, build_container
from callqa.core.logging_config import configure_logging
from callqa.core.validation import validate_providers_on_startup
from callqa.domain.exceptions import CallQAError

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    A prebuilt container (tests, scripts) is used as-is. Otherwise the
    lifespan hook validates provider configuration and builds one.
    """
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup:
        - Validates provider configuration (strict in production)
        - Builds the service container

        Shutdown:
        - Cancels outstanding analysis tasks and closes adapters
        """
        logger.info("Starting Call QA pipeline...")
        owns_container = app.state.container is None

        if owns_container:
            strict_validation = settings.is_production
            try:
                validate_providers_on_startup(settings, strict=strict_validation)
            except RuntimeError as e:
                logger.error(f"Startup failed: {e}")
                raise
            app.state.container = await build_container(settings)

        logger.info("Call QA pipeline started successfully")

        yield

        logger.info("Shutting down Call QA pipeline...")
        if owns_container:
            await app.state.container.shutdown()
            app.state.container = None
        logger.info("Call QA pipeline shutdown complete")

    app = FastAPI(
        title="Call QA Pipeline",
        description="Transcription and rubric scoring for field-service calls",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.exception_handler(CallQAError)
    async def call_qa_error_handler(request: Request, exc: CallQAError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = {
            ".".join(str(part) for part in error["loc"] if part != "body"): error["msg"]
            for error in exc.errors()
        }
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "code": "validation_error", "details": details},
        )

    @app.get("/")
    async def root():
        return {"message": "Call QA Pipeline API", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Reports the adapter behind each port and the number of analysis
        tasks in flight.
        """
        health = {"status": "healthy", "environment": settings.environment}
        if app.state.container is None:
            health["status"] = "starting"
        else:
            health["adapters"] = app.state.container.describe()
        return health

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
