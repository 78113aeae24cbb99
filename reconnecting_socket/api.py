import time
from typing import Any, Dict, Optional

from fastapi import FastAPI

from reconnecting_socket.dashboard import Broadcaster, build_router
from reconnecting_socket.state import ConnectionState
from reconnecting_socket.utils import describe_error


def describe_socket(socket: Any) -> Dict[str, Any]:
    last_error = socket.last_error
    return {
        "name": socket.name,
        "state": socket.state.value,
        "attempts": socket.attempts,
        "last_error": describe_error(last_error) if last_error is not None else None,
        "metrics": socket.metrics.snapshot(),
    }


def overall_status(sockets) -> str:
    states = [s.state for s in sockets]
    if any(state is ConnectionState.FAILED for state in states):
        return "failed"
    if all(state is ConnectionState.OPENED for state in states):
        return "ok"
    return "degraded"


def create_app(*sockets: Any, broadcaster: Optional[Broadcaster] = None) -> FastAPI:
    app = FastAPI(title="reconnecting-socket")
    app.state.broadcaster = broadcaster or Broadcaster()
    app.include_router(build_router(app.state.broadcaster))
    start_time = int(time.time() * 1000)

    @app.get("/health")
    def health():
        now = int(time.time() * 1000)
        return {
            "status": overall_status(sockets),
            "uptime_ms": now - start_time,
            "sockets": [describe_socket(s) for s in sockets],
        }

    return app
