"""FastAPI application entry point for the MICO bridge API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
import os
from server.api.routers.PipelineRouter import pipeline_router
from services.mico_submission.SubmissionService import SUBMISSION_VARIANTS
from shared.clients.platform.PlatformClientManager import PlatformClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.specification import StageConfiguration

app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Wire up both pipeline variants; the platform client is created lazily on first submission
    spool_directory = app.state.config.get_optional_string_val("SPOOL_DIR") or None
    app.state.submission_services = {
        name: service_class(helper_config=app.state.config, spool_directory=spool_directory)
        for name, service_class in SUBMISSION_VARIANTS.items()
    }
    app.state.stage_defaults = StageConfiguration.from_env(app.state.config)

    # Optional health check against the default MICO server
    if app.state.config.get_bool_val("MICO_HEALTHCHECK_ON_STARTUP", default=False):
        defaults = app.state.stage_defaults
        client = PlatformClientManager.get_or_create(app.state.config, defaults.server, defaults.user, defaults.password)
        client.do_healthcheck()

    app.state.logging.info("MICO bridge API ready.")
    yield

    # Shutdown
    PlatformClientManager.reset()
    app.state.logging.info("MICO bridge API shut down.")


app = FastAPI(
    title="MICO Bridge",
    description="Pipeline stage that submits ingested documents to the MICO analysis platform.",
    version=app_version,
    lifespan=lifespan,
)

app.include_router(pipeline_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logger = setup_logging()
    logger.info(f"Starting MICO bridge API Server v{app_version} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
