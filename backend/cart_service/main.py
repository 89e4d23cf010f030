from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cart_service.api.errors import setup_error_handlers
from cart_service.api.health import router as health_router
from cart_service.api.routes_admin import router as admin_router
from cart_service.api.routes_cart import router as cart_router
from cart_service.config import settings
from cart_service.db import SessionLocal, init_db
from cart_service.scheduler import build_scheduler
from cart_service.utils.logging import configure_logging, get_logger

configure_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler(SessionLocal, settings)
        scheduler.start()
        log.info(
            f"Scheduler started: sweep every {settings.CART_SWEEP_INTERVAL_SECONDS}s, "
            f"purge every {settings.CART_PURGE_INTERVAL_SECONDS}s"
        )

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Cart Service", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(cart_router, tags=["cart"])

app.include_router(admin_router, tags=["admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
