"""FastAPI WebSocket server for the card table."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from config import config
from handlers import handle_message, leave_current_room
from logging_config import get_logger, room_id_var, session_id_var, setup_logging
from processor import ActionProcessor
from room import RoomManager
from routers.health import router as health_router, set_health_dependencies
from sessions import ConnectionContext, SessionRegistry
from undo import UndoEngine

# Initialize Sentry if configured
if config.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        environment=config.ENVIRONMENT,
        traces_sample_rate=0.1 if config.ENVIRONMENT == "production" else 1.0,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
    )
    logging.getLogger(__name__).info("Sentry error tracking initialized")

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


# =============================================================================
# Table services (one of each per process)
# =============================================================================

room_manager = RoomManager()
sessions = SessionRegistry()
processor = ActionProcessor(room_manager)
undo_engine = UndoEngine(room_manager)


def build_handler_deps() -> dict:
    """Shared dependencies passed to every handler."""
    return dict(
        room_manager=room_manager,
        sessions=sessions,
        processor=processor,
        undo_engine=undo_engine,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    set_health_dependencies(room_manager=room_manager, sessions=sessions)
    logger.info(f"Card table server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets()
    room_manager.rooms.clear()
    logger.info("Shutdown complete")


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for ctx in list(sessions.sessions.values()):
        try:
            await ctx.websocket.close(code=1001, reason="Server shutting down")
        except Exception as e:
            logger.debug(f"Close of session {ctx.session_id} failed: {e}")
        sessions.disconnect(ctx)
    logger.info("All WebSocket connections closed")


app = FastAPI(
    title="Card Table",
    debug=config.DEBUG,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    origin = websocket.headers.get("origin")
    if origin and origin != config.ALLOWED_ORIGIN:
        logger.warning(f"Rejected WebSocket from origin {origin}")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    await websocket.accept()

    session_id = str(uuid.uuid4())
    ctx = ConnectionContext(websocket=websocket, session_id=session_id)
    sessions.connect(ctx)
    session_id_var.set(session_id)
    log = get_logger(__name__).with_context(session_id=session_id)
    log.debug("WebSocket connected")

    handler_deps = build_handler_deps()

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                log.debug("Ignoring non-JSON frame")
                continue
            room_id_var.set(ctx.room_id)
            await handle_message(message, ctx, **handler_deps)
    except WebSocketDisconnect as e:
        log.debug(f"WebSocket disconnected ({e.code})")
    finally:
        await leave_current_room(ctx, room_manager, sessions, reason="disconnect")
        sessions.disconnect(ctx)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting card table server on {config.HOST}:{config.PORT}")
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
