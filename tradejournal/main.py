"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradejournal.config import Settings, settings as default_settings
from tradejournal.database import build_engine, create_db_and_tables
from tradejournal.engine.scheduler import add_heartbeat_job, build_scheduler, stop_scheduler
from tradejournal.errors import JournalError
from tradejournal.services.event_hub import EventHub
from tradejournal.services.ingestion import IngestionGateway
from tradejournal.services.insight import InsightGenerator
from tradejournal.services.learning_log import LearningLog
from tradejournal.services.memory import MemoryReplica, SqlMemoryStore
from tradejournal.services.pattern_detector import PatternDetector
from tradejournal.services.signal_store import SignalStore
from tradejournal.services.stats import StatsAggregator
from tradejournal.services.trade_store import TradeStore
from tradejournal.utils.logging import setup_logging
from tradejournal.utils.timeutils import resolve_tz
from tradejournal.api import trades, signals, stats, learning, memory, webhooks, stream, system

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings, engine) -> IngestionGateway:
    """Wire the stores, hub and detectors into one gateway."""
    tz = resolve_tz(settings.timezone)
    trade_store = TradeStore(engine, tz)
    return IngestionGateway(
        trades=trade_store,
        signals=SignalStore(engine),
        learning=LearningLog(engine),
        memory=MemoryReplica(SqlMemoryStore(engine)),
        hub=EventHub(settings.subscriber_queue_size),
        detector=PatternDetector(trade_store, tz),
        stats=StatsAggregator(trade_store, tz),
        insight=InsightGenerator(
            api_key=settings.insight_api_key,
            model=settings.insight_model,
            base_url=settings.insight_base_url,
            timeout=settings.insight_timeout_seconds,
        ),
        webhook_secret=settings.webhook_secret,
        recent_trades=settings.init_recent_trades,
        recent_signals=settings.init_recent_signals,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        setup_logging(settings.log_level)
        engine = build_engine(settings.database_url)
        create_db_and_tables(engine)

        gateway = build_gateway(settings, engine)
        scheduler = build_scheduler()
        add_heartbeat_job(scheduler, gateway.hub, settings.heartbeat_interval_seconds)
        scheduler.start()

        app.state.engine = engine
        app.state.gateway = gateway
        app.state.scheduler = scheduler
        logger.info("Trade journal started")

        yield

        stop_scheduler(scheduler)
        gateway.hub.close()
        await gateway.wait_idle()
        if gateway.insight is not None:
            await gateway.insight.close()
        engine.dispose()

    app = FastAPI(
        title="Trade Journal",
        description="Trade and signal journal with live event stream and agent memory sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path}: {exc.message}")
        body = {"detail": exc.message}
        if exc.details is not None:
            body["errors"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=body)

    # Mount routers
    app.include_router(trades.router)
    app.include_router(signals.router)
    app.include_router(stats.router)
    app.include_router(learning.router)
    app.include_router(memory.router)
    app.include_router(webhooks.router)
    app.include_router(stream.router)
    app.include_router(system.router)
    return app


app = create_app()
