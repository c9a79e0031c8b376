"""
Chatline - Main Server

REST API and WebSocket endpoint of the messaging backend:
- Local and OAuth authentication (JWT)
- Users, chats, groups and messages (SQLAlchemy)
- Image uploads to S3 via presigned URLs
- Realtime chat events over WebSocket
"""

import logging
import sys
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from . import __version__
from .api.auth import router as auth_router
from .api.chats import router as chats_router
from .api.chats import user_chats_router
from .api.images import router as images_router
from .api.messages import router as messages_router
from .api.oauth import router as oauth_router
from .api.uploads import router as uploads_router
from .api.users import router as users_router
from .config import settings
from .core.exceptions import ChatlineException
from .core.security import verify_jwt_token
from .database import Chat, async_session_maker, init_db
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from .realtime import manager
from .repositories import ChatRepository


def configure_logging() -> None:
    """Send loguru and standard logging output to stderr at LOG_LEVEL."""
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    await init_db()
    logger.info("Chatline started")
    yield
    logger.info("Chatline shutting down")


async def chatline_exception_handler(request: Request, exc: ChatlineException):
    """Render domain errors as {"detail": message}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


async def _websocket_endpoint(websocket: WebSocket, token: str = ""):
    """
    Realtime channel.

    Connect with ``?token=<access token>``. Send
    ``{"event": "join-room", "chat_id": ...}`` to receive a chat's events and
    ``{"event": "leave-room", "chat_id": ...}`` to stop.
    """
    payload = verify_jwt_token(token, expected_type="access") if token else None
    if payload is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = UUID(payload.sub)
    await websocket.accept()
    manager.connect(user_id, websocket)
    logger.info(f"WebSocket connected: {user_id}")

    try:
        while True:
            message = await websocket.receive_json()
            event = message.get("event") if isinstance(message, dict) else None

            try:
                chat_id = UUID(str(message.get("chat_id")))
            except (AttributeError, ValueError):
                await websocket.send_json({"event": "error", "data": {"detail": "chat_id required"}})
                continue

            if event == "join-room":
                async with async_session_maker() as session:
                    is_member = await ChatRepository(Chat, session).is_participant(chat_id, user_id)
                if not is_member:
                    await websocket.send_json({"event": "error", "data": {"detail": "Access denied"}})
                    continue
                manager.join(chat_id, websocket)
                await websocket.send_json({"event": "room-joined", "data": {"chat_id": str(chat_id)}})
            elif event == "leave-room":
                manager.leave(chat_id, websocket)
                await websocket.send_json({"event": "room-left", "data": {"chat_id": str(chat_id)}})
            else:
                await websocket.send_json({"event": "error", "data": {"detail": "Unknown event"}})
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {user_id}")
    finally:
        manager.disconnect(user_id, websocket)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Chatline",
        description="Messaging backend with chats, groups and image uploads",
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware runs bottom-up: logging wraps everything
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ChatlineException, chatline_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # REST API
    app.include_router(auth_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(chats_router, prefix="/api")
    app.include_router(user_chats_router, prefix="/api")
    app.include_router(messages_router, prefix="/api")
    app.include_router(uploads_router, prefix="/api")
    app.include_router(images_router, prefix="/api")

    # Browser redirects for OAuth live outside /api
    app.include_router(oauth_router)

    app.add_api_websocket_route("/ws", _websocket_endpoint)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Welcome to the Chatline API"

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/health")
    async def api_health():
        """API health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()


def run(
    host: str = settings.HOST,
    port: int = settings.PORT,
    reload: bool = settings.RELOAD,
):
    """Run the Chatline server."""
    import uvicorn

    configure_logging()
    logger.info(f"Starting Chatline on {host}:{port}")
    uvicorn.run(
        "chatline.server:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    run()
