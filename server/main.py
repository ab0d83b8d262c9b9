"""FastAPI REST + server-sent events server for RDFPoker."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import ServerConfig, config
from errors import GameError, INVALID_REQUEST
from logging_config import setup_logging
from services.card_service import CardService
from services.game_state_service import GameStateService
from services.metrics import MetricsRegistry, close_metrics, get_metrics
from services.player_service import PlayerService
from services.rules_service import RulesService
from services.subscriptions import (
    SubscriptionManager,
    close_subscription_manager,
    get_subscription_manager,
)
from stores.game_store import GameStore, close_game_store, get_game_store

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


# =============================================================================
# Service wiring
# =============================================================================


def init_services(
    store: GameStore,
    subscriptions: SubscriptionManager,
    metrics: MetricsRegistry,
    settings: ServerConfig = config,
) -> None:
    """Build the game services and hand them to the routers."""
    from routers.admin import set_admin_service
    from routers.card import set_card_service
    from routers.health import set_health_dependencies
    from routers.player import set_player_service
    from routers.receive import set_receive_dependencies
    from routers.rules import set_rules_service
    from routers.state import set_game_state_service

    game_state_service = GameStateService(
        store,
        subscriptions,
        metrics,
        rules_defaults=settings.rules_defaults,
        display_is_global=settings.display_is_global,
    )
    set_game_state_service(game_state_service)
    set_admin_service(game_state_service)
    set_card_service(
        CardService(store, subscriptions, metrics, display_is_global=settings.display_is_global)
    )
    set_player_service(PlayerService(store, metrics))
    set_rules_service(RulesService(store, subscriptions))
    set_receive_dependencies(subscriptions, keepalive_seconds=settings.SSE_KEEPALIVE_SECONDS)
    set_health_dependencies(game_store=store, subscriptions=subscriptions, metrics=metrics)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for service initialization."""
    try:
        store = get_game_store(config.DATABASE_PATH)
    except Exception as e:
        logger.error(f"Failed to open database {config.DATABASE_PATH}: {e}")
        raise

    subscriptions = get_subscription_manager(
        queue_size=config.SSE_QUEUE_SIZE,
        max_subscribers_per_game=config.MAX_SUBSCRIBERS_PER_GAME,
    )
    init_services(store, subscriptions, get_metrics())

    logger.info(
        f"RDFPoker server started (environment={config.ENVIRONMENT}, "
        f"display_scope={config.DISPLAY_SCOPE})"
    )

    yield

    logger.info("Shutdown initiated...")
    await subscriptions.close_all()
    close_subscription_manager()
    close_metrics()
    close_game_store()
    logger.info("Shutdown complete")


app = FastAPI(
    title="RDFPoker",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Error handling
# =============================================================================


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": INVALID_REQUEST, "detail": "; ".join(problems)},
    )


# =============================================================================
# Middleware Setup (order matters: last added = outermost)
# =============================================================================

from middleware.security import SecurityHeadersMiddleware
app.add_middleware(
    SecurityHeadersMiddleware,
    environment=config.ENVIRONMENT,
)

# Request ID middleware (outermost - generates/propagates request IDs)
from middleware.request_id import RequestIDMiddleware
app.add_middleware(RequestIDMiddleware)


# =============================================================================
# Routers
# =============================================================================

from routers.state import router as state_router
from routers.card import router as card_router
from routers.player import router as player_router
from routers.rules import router as rules_router
from routers.receive import router as receive_router
from routers.health import router as health_router
app.include_router(state_router)
app.include_router(card_router)
app.include_router(player_router)
app.include_router(rules_router)
app.include_router(receive_router)
app.include_router(health_router)

if config.ADMIN_ENDPOINTS_ENABLED:
    from routers.admin import router as admin_router
    app.include_router(admin_router)
else:
    logger.info("Admin endpoints disabled")


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting RDFPoker server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
