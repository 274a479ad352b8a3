import asyncio
import contextlib
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sla_engine.api.routes import contracts, sla, sla_policies, tickets
from sla_engine.config import settings
from sla_engine.tasks.sla_checker import check_sla_breaches, deliver_notifications

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.notification_webhook_url is None:
        logger.info("No notification webhook configured; escalations are only logged")
    tasks = [
        asyncio.create_task(check_sla_breaches()),
        asyncio.create_task(deliver_notifications()),
    ]
    yield
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app() -> FastAPI:
    app = FastAPI(title="ITSM SLA Engine", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(tickets.router, prefix="/api/v1/tickets", tags=["tickets"])
    app.include_router(contracts.router, prefix="/api/v1/contracts", tags=["contracts"])
    app.include_router(sla_policies.router, prefix="/api/v1/sla-policies", tags=["sla-policies"])
    app.include_router(sla.router, prefix="/api/v1/sla", tags=["sla"])

    return app


app = create_app()
