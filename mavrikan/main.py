import asyncio
import os

from fastapi import FastAPI

from mavrikan.config import settings
from mavrikan.database import SessionLocal, init_db
from mavrikan.logging_config import get_logger, setup_logging
from mavrikan.routers import webhook
from mavrikan.services.conversation_service import sweep_idle_conversations
from mavrikan.services.ingress_guard import IngressGuard

setup_logging(settings.log_level)

app = FastAPI(
    title="Mavrikan Bot",
    description="WhatsApp lead qualification bot for upholstery cleaning",
    version="0.1.0",
)

app.state.ingress_guard = IngressGuard(
    dedup_window_seconds=settings.dedup_window_seconds,
    rate_limit_max=settings.rate_limit_max,
    rate_window_seconds=settings.rate_limit_window_seconds,
)

app.include_router(webhook.router)

logger = get_logger("main")
worker_logger = get_logger("workers")
_worker_tasks: list[asyncio.Task] = []

GUARD_TICK_SECONDS = 60.0


def _is_env_enabled(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def _are_workers_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return _is_env_enabled(os.environ.get("BACKGROUND_WORKERS_ENABLED"), default=settings.background_workers_enabled)


def _sweep_once() -> int:
    db = SessionLocal()
    try:
        return sweep_idle_conversations(db, timeout_minutes=settings.idle_timeout_minutes)
    finally:
        db.close()


async def _idle_sweeper_loop() -> None:
    while True:
        try:
            await asyncio.sleep(max(settings.idle_sweep_interval_seconds, 1.0))
            swept = await asyncio.to_thread(_sweep_once)
            if swept:
                worker_logger.info("Idle sweep finished", extra={"context": {"reset": swept}})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            worker_logger.error(
                "Idle sweeper loop failed",
                extra={"context": {"error": str(exc)}},
            )


async def _guard_maintenance_loop() -> None:
    guard: IngressGuard = app.state.ingress_guard
    while True:
        try:
            await asyncio.sleep(GUARD_TICK_SECONDS)
            guard.tick()
        except asyncio.CancelledError:
            break
        except Exception as exc:
            worker_logger.error(
                "Guard maintenance loop failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def startup() -> None:
    await asyncio.to_thread(init_db)
    logger.info("Database ready")

    if not _are_workers_enabled():
        return
    if not _worker_tasks:
        _worker_tasks.append(asyncio.create_task(_idle_sweeper_loop()))
        _worker_tasks.append(asyncio.create_task(_guard_maintenance_loop()))
        worker_logger.info("Background workers started")


@app.on_event("shutdown")
async def stop_workers() -> None:
    for task in _worker_tasks:
        task.cancel()
    for task in _worker_tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    _worker_tasks.clear()


@app.get("/health")
async def health():
    return {"status": "ok"}
