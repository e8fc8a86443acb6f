import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .adapters.entry.http.admin_router import router as admin_router
from .config import get_settings
from .workers.scheduler_supervisor import SchedulerSupervisor


def _setup_logging():
    logging.basicConfig(
        level=get_settings().LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = SchedulerSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context for startup/shutdown lifecycle.
    """
    _setup_logging()
    logging.getLogger(__name__).info("Starting dca-agent (lifespan startup)...")
    await supervisor.start()

    app.state.db = supervisor.db
    app.state.evaluate_use_case = supervisor.evaluate_use_case
    app.state.allowance_service = supervisor.allowance_service
    app.state.schedule_service = supervisor.schedule_service

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down dca-agent (lifespan shutdown)...")
        await supervisor.stop()


app = FastAPI(title="dca-agent", version="0.1.0", lifespan=lifespan)
app.include_router(admin_router)


@app.get("/healthz")
async def healthz():
    """
    Liveness probe endpoint.
    """
    return {"status": "ok"}
