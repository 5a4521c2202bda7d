"""API Dependencies — access to process-wide objects wired in the lifespan.

Invariants:
    - The RelayEngine is created once per process in main.lifespan and stored
      on app.state; routes never construct their own

Design Decisions:
    - HTTPConnection parameter: the same dependency serves HTTP and WebSocket routes
    - Tests override get_relay_engine via app.dependency_overrides
"""

from fastapi.requests import HTTPConnection

from relay.services.relay_engine import RelayEngine


def get_relay_engine(connection: HTTPConnection) -> RelayEngine:
    engine = getattr(connection.app.state, "relay_engine", None)
    if engine is None:
        raise RuntimeError("Relay engine not initialized")
    return engine
