"""
Per-plugin API for the OmniLogic panel. Mounted at /api/omnilogic/.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from poolmon.core.errors import AuthenticationError, NotAuthenticatedError, RequestTimeoutError
from .snapshot import snapshot_to_dict


class LoginRequest(BaseModel):
    session_key: str
    username: str
    password: str


class LogoutRequest(BaseModel):
    session_key: str


class AuthResponse(BaseModel):
    success: bool
    message: str


class SessionInfo(BaseModel):
    session_key: str
    authenticated: bool
    last_activity: datetime
    expired: bool


def get_router(pool_app) -> Optional[APIRouter]:
    router = APIRouter(tags=["OmniLogic"])

    @router.post("/login", response_model=AuthResponse)
    def login(body: LoginRequest) -> AuthResponse:
        session = pool_app.registry.get(body.session_key)
        try:
            result = session.authenticate(body.username, body.password)
        except AuthenticationError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except RequestTimeoutError as e:
            raise HTTPException(status_code=504, detail=str(e))
        except requests.exceptions.RequestException as e:
            raise HTTPException(status_code=502, detail=f"Panel unreachable: {e}")
        if not result.success:
            raise HTTPException(status_code=401, detail=result.message)
        return AuthResponse(success=result.success, message=result.message)

    @router.post("/logout", response_model=AuthResponse)
    def logout(body: LogoutRequest) -> AuthResponse:
        removed = pool_app.registry.remove(body.session_key)
        pool_app.collector.cache.invalidate(body.session_key)
        return AuthResponse(success=removed, message="Logged out" if removed else "No such session")

    @router.get("/sessions", response_model=List[SessionInfo])
    def list_sessions() -> List[SessionInfo]:
        return [
            SessionInfo(
                session_key=s.session_key,
                authenticated=s.authenticated,
                last_activity=datetime.fromtimestamp(s.last_activity, tz=timezone.utc),
                expired=s.is_expired(),
            )
            for s in pool_app.registry.all_sessions()
        ]

    @router.get("/data")
    def get_data(session_key: str) -> Dict[str, Any]:
        session = pool_app.registry.get(session_key)
        try:
            snapshot = pool_app.collector.collect_once(session, pool_app.credentials_for(session_key))
        except (AuthenticationError, NotAuthenticatedError) as e:
            raise HTTPException(status_code=401, detail=str(e))
        except RequestTimeoutError as e:
            raise HTTPException(status_code=504, detail=str(e))
        except requests.exceptions.RequestException as e:
            raise HTTPException(status_code=502, detail=f"Panel unreachable: {e}")
        return snapshot_to_dict(snapshot)

    @router.get("/latest")
    def get_latest() -> Dict[str, Any]:
        snapshot = pool_app.collector.get_latest()
        if snapshot is None:
            raise HTTPException(status_code=404, detail="No snapshot collected yet")
        return snapshot_to_dict(snapshot)

    return router
