"""
FastAPI Application - REST API for a table UI and the transport collaborator.

Endpoints:
    GET    /api/v1/health                  Health check
    GET    /api/v1/games                   Supported games and their commands
    GET    /api/v1/session                 Current view
    POST   /api/v1/session                 Start a game (optional auto-play)
    DELETE /api/v1/session                 Abandon the current game
    POST   /api/v1/session/restore/{id}    Rebind a session still live remotely
    POST   /api/v1/session/wagers          Stage a wager locally
    DELETE /api/v1/session/wagers          Clear staged wagers
    POST   /api/v1/session/commands        Submit a command batch
    POST   /api/v1/session/submit-staged   Place staged wagers (+ advance)
    POST   /api/v1/modifiers/{name}        Toggle shield or double
    POST   /api/v1/balance/refresh         Reconcile the cached balance
    POST   /api/v1/signals/started         Push signal: session created
    POST   /api/v1/signals/moved           Push signal: state changed
    POST   /api/v1/signals/completed       Push signal: session ended
    POST   /api/v1/signals/error           Push signal: authority error
    POST   /api/v1/signals/frame           Binary event frame (hex)
    GET    /api/v1/ledger                  PnL history
    POST   /api/v1/decode                  Decode a state blob
    WS     /api/v1/ws                      View broadcast after every transition

Signal Flow:
    1. POST /session submits the start and arms the watchdog
    2. The transport collaborator posts /signals/started when the
       authority confirms; any queued wagers are submitted then
    3. /signals/moved advances the snapshot, /signals/completed records
       the result in the ledger and returns the engine to idle
    4. If a signal is lost, the watchdog queries the authority directly

Every body, request or response, is a Pydantic model from schemas.py.
"""

from typing import Optional
import asyncio
import json
import logging

from ..config import SyncConfig
from ..logging_utils import setup_logging

logger = logging.getLogger(__name__)

# Settings read once at import
SETTINGS = SyncConfig.from_env()


def create_app(service=None, transport=None, config: Optional[SyncConfig] = None):
    """
    Build the sync API around a SyncService.

    Args:
        service: Optional SyncService instance (creates new if not provided)
        transport: Optional Transport for a new service (in-memory if not provided)
        config: Optional SyncConfig (environment settings if not provided)

    Returns:
        The configured FastAPI app
    """
    try:
        from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import ServiceError, SyncService
    from .schemas import (
        # Request models
        CommandBatchRequest,
        CompletedSignal,
        DecodeRequest,
        ErrorSignal,
        FrameRequest,
        MovedSignal,
        StageWagerRequest,
        StartGameRequest,
        StartedSignal,
        SubmitStagedRequest,
        # Response models
        BalanceResponse,
        DecodeResponse,
        ErrorResponse,
        GamesResponse,
        HealthResponse,
        LedgerResponse,
        SessionView,
        SignalResponse,
        SyncResponse,
        # Enums
        ErrorCode,
    )

    config = config or SETTINGS
    setup_logging(config.log_verbosity)

    app = FastAPI(
        title="Croupier Sync API",
        description="""
Client-side casino session sync engine.

## Session Flow

1. `POST /session` starts a game. Wagers given here (or staged earlier) are
   placed automatically once the authority confirms the session.
2. Push signals arrive on `/signals/*`. Each one is matched against the
   current session; stale signals are ignored.
3. Completion records the round in the ledger. `GET /ledger` returns it.

## Error Codes

| Code | Description |
|------|-------------|
| `NO_ACTIVE_SESSION` | The request needs a running game |
| `REQUEST_REJECTED` | Refused in the current state (e.g. move pending) |
| `UNKNOWN_GAME` | Game type not recognized |
| `UNKNOWN_COMMAND` | Command kind not recognized |
| `ENCODE_FAILED` | Command not encodable for the game |
| `DECODE_FAILED` | State blob or frame could not be decoded |
| `INVALID_HEX` | Malformed hex field |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or SyncService.create(config=config, transport=transport)
    app.state.service = api_service

    # WebSocket connections
    ws_connections: list[WebSocket] = []
    broadcast_tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Wrap a failure in the shared ErrorResponse body."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return make_error_response(exc.error_code, exc.message, exc.status_code, exc.details)

    async def broadcast_view():
        """Send the current view to every WebSocket client."""
        if not ws_connections:
            return
        message = {"type": "view", "payload": api_service.view().model_dump(mode="json")}
        dead_connections = []
        for ws in list(ws_connections):
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("Dropping WebSocket client: %s", e)
                dead_connections.append(ws)
        for ws in dead_connections:
            if ws in ws_connections:
                ws_connections.remove(ws)

    def on_transition():
        # Transitions happen inside the event loop (requests, signals, watchdog)
        if not ws_connections:
            return
        task = asyncio.get_running_loop().create_task(broadcast_view())
        broadcast_tasks.add(task)
        task.add_done_callback(broadcast_tasks.discard)

    api_service.reconciler.listeners.append(on_transition)

    # =========================================================================
    # System Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Liveness probe; reports the configured environment."""
        return HealthResponse(env=config.env)

    @app.get("/", tags=["System"])
    async def root():
        """Service name and where the docs live."""
        return {
            "name": "Croupier Sync API",
            "version": "1.0.0",
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    @app.get(
        "/api/v1/games",
        response_model=GamesResponse,
        tags=["System"],
        summary="List supported games",
    )
    async def list_games() -> GamesResponse:
        return api_service.games()

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/session",
        response_model=SessionView,
        tags=["Session"],
        summary="Get the current view",
    )
    async def get_session() -> SessionView:
        """Current state, snapshot, merged wagers, table history and player stats."""
        return api_service.view()

    @app.post(
        "/api/v1/session",
        response_model=SyncResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Unknown game"},
            409: {"model": ErrorResponse, "description": "A game is already in progress"},
        },
        tags=["Session"],
        summary="Start a game",
    )
    async def start_game(body: StartGameRequest) -> SyncResponse:
        """
        Start a game.

        **Auto-play:** wagers (and `advance`) are submitted as soon as the
        session is confirmed, exactly once.

        **Request Body:**
        ```json
        {"game_type": "roulette", "wagers": [{"kind": 0, "target": 17, "amount": 10}], "advance": true}
        ```
        """
        return await api_service.start_game(body)

    @app.delete(
        "/api/v1/session",
        response_model=SyncResponse,
        responses={409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Abandon the current game",
    )
    async def abandon_session() -> SyncResponse:
        return api_service.abandon()

    @app.post(
        "/api/v1/session/restore/{session_id}",
        response_model=SyncResponse,
        responses={409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Restore a live session",
    )
    async def restore_session(session_id: int) -> SyncResponse:
        """Rebind to a session the authority still reports as active."""
        return await api_service.restore_session(session_id)

    @app.post(
        "/api/v1/session/wagers",
        response_model=SyncResponse,
        responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Stage a wager",
    )
    async def stage_wager(body: StageWagerRequest) -> SyncResponse:
        """Stage a wager locally. Nothing is submitted until submit-staged."""
        return api_service.stage_wager(body)

    @app.delete(
        "/api/v1/session/wagers",
        response_model=SyncResponse,
        tags=["Session"],
        summary="Clear staged wagers",
    )
    async def clear_staged() -> SyncResponse:
        return api_service.clear_staged()

    @app.post(
        "/api/v1/session/commands",
        response_model=SyncResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Unknown command"},
            409: {"model": ErrorResponse, "description": "No game, or previous move still pending"},
        },
        tags=["Session"],
        summary="Submit a command batch",
    )
    async def submit_commands(body: CommandBatchRequest) -> SyncResponse:
        """
        Submit commands for the current game.

        **Request Body:**
        ```json
        {"commands": [{"kind": "place_wager", "wager": {"kind": 0, "amount": 10}}, {"kind": "advance"}]}
        ```
        """
        return await api_service.submit_commands(body)

    @app.post(
        "/api/v1/session/submit-staged",
        response_model=SyncResponse,
        responses={409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Place staged wagers",
    )
    async def submit_staged(body: SubmitStagedRequest) -> SyncResponse:
        """Place staged wagers. While idle this starts a game carrying them."""
        return await api_service.submit_staged(body)

    @app.post(
        "/api/v1/modifiers/{name}",
        response_model=SyncResponse,
        responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Toggle shield or double",
    )
    async def toggle_modifier(name: str) -> SyncResponse:
        return await api_service.toggle_modifier(name)

    @app.post(
        "/api/v1/balance/refresh",
        response_model=BalanceResponse,
        tags=["Session"],
        summary="Refresh the balance",
    )
    async def refresh_balance() -> BalanceResponse:
        return await api_service.refresh_balance()

    # =========================================================================
    # Signal Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/signals/started",
        response_model=SignalResponse,
        tags=["Signals"],
        summary="Session created",
    )
    async def signal_started(body: StartedSignal) -> SignalResponse:
        return await api_service.signal_started(body)

    @app.post(
        "/api/v1/signals/moved",
        response_model=SignalResponse,
        tags=["Signals"],
        summary="Session state changed",
    )
    async def signal_moved(body: MovedSignal) -> SignalResponse:
        return await api_service.signal_moved(body)

    @app.post(
        "/api/v1/signals/completed",
        response_model=SignalResponse,
        tags=["Signals"],
        summary="Session ended",
    )
    async def signal_completed(body: CompletedSignal) -> SignalResponse:
        """Record the result. `entry` carries the ledger line when handled."""
        return await api_service.signal_completed(body)

    @app.post(
        "/api/v1/signals/error",
        response_model=SignalResponse,
        tags=["Signals"],
        summary="Authority error",
    )
    async def signal_error(body: ErrorSignal) -> SignalResponse:
        return await api_service.signal_error(body)

    @app.post(
        "/api/v1/signals/frame",
        response_model=SignalResponse,
        responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Signals"],
        summary="Binary event frame",
    )
    async def signal_frame(body: FrameRequest) -> SignalResponse:
        """Decode a tagged event frame (21 started, 22 moved, 23 completed) and route it."""
        return await api_service.signal_frame(body)

    # =========================================================================
    # Ledger & Decode Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/ledger",
        response_model=LedgerResponse,
        tags=["Ledger"],
        summary="PnL history",
    )
    async def get_ledger(
        limit: Optional[int] = Query(None, ge=1, description="Newest entries to return"),
    ) -> LedgerResponse:
        return api_service.ledger(limit)

    @app.post(
        "/api/v1/decode",
        response_model=DecodeResponse,
        responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Tools"],
        summary="Decode a state blob",
    )
    async def decode_state(body: DecodeRequest) -> DecodeResponse:
        return api_service.decode(body)

    # =========================================================================
    # WebSocket
    # =========================================================================

    @app.websocket("/api/v1/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Push the view to UI clients after every transition.

        Messages from server:
        - view: The engine's view after a transition
        - pong: Reply to ping
        - error: Client sent something unreadable

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.append(websocket)

        try:
            await websocket.send_json({
                "type": "view",
                "payload": api_service.view().model_dump(mode="json"),
            })

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect:
            logger.debug("WebSocket client disconnected")
        finally:
            if websocket in ws_connections:
                ws_connections.remove(websocket)

    return app


# For running directly: uvicorn croupier.api.app:app
app = create_app()
