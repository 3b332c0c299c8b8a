"""
Storefront API - FastAPI application.
Main entry point for the e-commerce backend gateway.

Run with:
    uvicorn storefront.app:app --reload --host 0.0.0.0 --port 8000
"""

import json
import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.websockets import WebSocketClose

from storefront import config
from storefront.api.routes import RouteGroups, RouteTable, default_route_table, register_routes
from storefront.auth import EmployeeDirectory, authenticate_user, make_login_handler
from storefront.core.logging import configure_logging, log_request
from storefront.domain.enums import Tier
from storefront.notifications import EventChannel, NotificationBridge, bind_notification_channel
from storefront.websocket import ConnectionManager

configure_logging()
logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Route not found"
SERVER_ERROR_MESSAGE = "Something went wrong!"
MALFORMED_JSON_MESSAGE = "Malformed JSON body"


def error_response(status_code: int, message, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


# ---------------------------------------------------------------------------
# Terminal handlers
# ---------------------------------------------------------------------------

def unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """Log the full traceback server-side and answer with a fixed 500 body."""
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        "Unhandled exception on %s %s [request_id=%s]: %s\n%s",
        request.method, request.url.path,
        getattr(request.state, "request_id", "-"), exc, tb,
    )
    return error_response(500, SERVER_ERROR_MESSAGE)


async def route_not_found(scope, receive, send):
    """Router default endpoint: nothing in the route table matched."""
    if scope["type"] == "websocket":
        await WebSocketClose()(scope, receive, send)
        return
    await error_response(404, NOT_FOUND_MESSAGE)(scope, receive, send)


# ---------------------------------------------------------------------------
# Request pipeline
# ---------------------------------------------------------------------------

async def request_logging_middleware(request: Request, call_next):
    """One structured log line per request; also the 500 error boundary.

    Every response carries ``X-Request-ID`` so a sanitized 500 can be matched
    to the logged traceback.
    """
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        response = unhandled_exception_response(request, exc)

    response.headers["X-Request-ID"] = request_id
    identity = getattr(request.state, "identity", None)
    log_request(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=(time.perf_counter() - started) * 1000,
        client=request.client.host if request.client else None,
        role=identity.role.value if identity is not None else None,
    )
    return response


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def json_body_middleware(request: Request, call_next):
    """Decode JSON bodies up front; malformed ones never reach a handler."""
    if _is_json(request.headers.get("content-type", "")):
        body = await request.body()
        if body.strip():
            try:
                request.state.json_body = json.loads(body)
            except ValueError:
                return error_response(400, MALFORMED_JSON_MESSAGE)
    return await call_next(request)


async def access_control_middleware(request: Request, call_next):
    """Authenticate, then role-gate, every request to a protected prefix."""
    table: RouteTable = request.app.state.route_table
    tier, rule = table.resolve(request.method, request.url.path)
    if tier is Tier.PROTECTED:
        try:
            identity = authenticate_user(request)
            table.gate_for(rule)(identity)
        except HTTPException as exc:
            headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
            return error_response(exc.status_code, exc.detail, headers)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs once on startup, yields for the lifetime of the app."""
    if not app.state.notifier.is_bound:
        logger.warning("Starting without a notification channel; events will be dropped.")
    logger.info("Storefront API ready.")
    yield


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def _events_endpoint(manager: ConnectionManager):
    async def websocket_events(websocket: WebSocket):
        """Push notification events to connected frontends."""
        await manager.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
                await websocket.send_text('{"type":"ack"}')
        except Exception:
            await manager.disconnect(websocket)

    return websocket_events


def create_app(
    groups: Optional[RouteGroups] = None,
    channel: Optional[EventChannel] = None,
    login_directory: Optional[EmployeeDirectory] = None,
    table: Optional[RouteTable] = None,
) -> FastAPI:
    """Compose the pipeline, mount the route table and bind the channel.

    ``login_directory`` is only used when ``groups`` is not supplied.  A
    ``ConnectionManager`` channel also gets the ``/ws/events`` endpoint.
    """
    app = FastAPI(
        title="Storefront API",
        version="1.0.0",
        description="E-commerce backend gateway",
        lifespan=lifespan,
    )
    app.state.route_table = table or default_route_table()
    app.state.notifier = NotificationBridge()

    # Starlette wraps in reverse: the last middleware added runs first.
    # Effective order: CORS -> logging/error boundary -> JSON -> access control.
    app.add_middleware(BaseHTTPMiddleware, dispatch=access_control_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=json_body_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_logging_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # a known path with an unknown method is still an unmatched route
        if exc.status_code == 405:
            return error_response(404, NOT_FOUND_MESSAGE)
        return error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return unhandled_exception_response(request, exc)

    if groups is None:
        groups = RouteGroups(login_employee=make_login_handler(login_directory))
    register_routes(app, groups, app.state.route_table)

    @app.get("/", response_class=PlainTextResponse)
    async def welcome():
        return config.WELCOME_MESSAGE

    app.router.default = route_not_found

    if channel is not None:
        bind_notification_channel(app, channel)
        if isinstance(channel, ConnectionManager):
            app.add_api_websocket_route("/ws/events", _events_endpoint(channel))

    return app


manager = ConnectionManager()
app = create_app(channel=manager)


# ---------------------------------------------------------------------------
# Development entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.app:app",
        host=config.HOST,
        port=config.PORT,
        reload=True,
    )
