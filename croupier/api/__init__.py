"""
API Module - HTTP surface for the sync engine.

Exposes the engine via REST and WebSocket:
1. A table UI starts games, stages wagers and submits commands
2. The transport collaborator posts push signals as webhooks
3. Every transition is broadcast as a fresh view

All state lives in one reconciler per service instance.
"""

from .schemas import (
    # Requests
    CommandBatchRequest,
    CommandRequest,
    CompletedSignal,
    DecodeRequest,
    ErrorSignal,
    FrameRequest,
    MovedSignal,
    StageWagerRequest,
    StartGameRequest,
    StartedSignal,
    SubmitStagedRequest,
    WagerRequest,
    # Responses
    DecodeResponse,
    ErrorResponse,
    LedgerResponse,
    SignalResponse,
    SyncResponse,
    # Shared
    ErrorCode,
    SessionView,
    SnapshotInfo,
    WagerInfo,
)
from .service import ServiceError, SyncService
from .app import create_app

__all__ = [
    # Requests
    "CommandBatchRequest",
    "CommandRequest",
    "CompletedSignal",
    "DecodeRequest",
    "ErrorSignal",
    "FrameRequest",
    "MovedSignal",
    "StageWagerRequest",
    "StartGameRequest",
    "StartedSignal",
    "SubmitStagedRequest",
    "WagerRequest",
    # Responses
    "DecodeResponse",
    "ErrorResponse",
    "LedgerResponse",
    "SignalResponse",
    "SyncResponse",
    # Shared
    "ErrorCode",
    "SessionView",
    "SnapshotInfo",
    "WagerInfo",
    # Service
    "ServiceError",
    "SyncService",
    "create_app",
]
