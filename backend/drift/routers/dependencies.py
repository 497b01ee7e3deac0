"""FastAPI dependencies for conversation sessions."""

from fastapi import Request

from drift.services.sessions import SessionRegistry


def get_session_registry(request: Request) -> SessionRegistry:
    """Return the process-wide session registry created at startup."""

    return request.app.state.sessions
