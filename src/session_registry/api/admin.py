"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

if TYPE_CHECKING:
    from session_registry.containers import AppContainer
    from session_registry.services.sessions import SessionRegistryClient

router = APIRouter(prefix="/admin", tags=["admin"])


class SessionTokenPayload(BaseModel):
    """Token to register for a user."""

    session_id: str


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


def _get_session_client(request: Request) -> SessionRegistryClient:
    container: AppContainer = request.app.state.container
    return container.session_client


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return every session record of the organization."""
    sessions = await _get_session_client(request).list_sessions()
    return {"sessions": [session.to_wire() for session in sessions]}


@router.get("/sessions/{user_name}", dependencies=[Depends(require_admin)])
async def get_session(user_name: str, request: Request) -> dict[str, object]:
    """Return the session record of one user."""
    session = await _get_session_client(request).get_session(user_name)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return session.to_wire()


@router.post("/sessions/{user_name}", dependencies=[Depends(require_admin)])
async def add_session(
    user_name: str, payload: SessionTokenPayload, request: Request
) -> dict[str, bool]:
    """Register a session token for a user."""
    client = _get_session_client(request)
    return {"affected": await client.add_session(user_name, payload.session_id)}


@router.put("/sessions/{user_name}", dependencies=[Depends(require_admin)])
async def update_session(
    user_name: str, payload: SessionTokenPayload, request: Request
) -> dict[str, bool]:
    """Register a session token on an existing record."""
    client = _get_session_client(request)
    return {"affected": await client.update_session(user_name, payload.session_id)}


@router.delete("/sessions/{user_name}", dependencies=[Depends(require_admin)])
async def delete_session(user_name: str, request: Request) -> dict[str, bool]:
    """Remove every session token of a user."""
    return {"affected": await _get_session_client(request).delete_session(user_name)}


@router.get("/sessions/{user_name}/duplicated", dependencies=[Depends(require_admin)])
async def session_duplicated(
    user_name: str, session_id: str, request: Request
) -> dict[str, object]:
    """Report whether a token is already registered for a user."""
    result = await _get_session_client(request).check_session_duplicated(
        user_name, session_id
    )
    return {"result": result.status.value, "duplicated": result.duplicated}
