from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..auth.base import AuthProvider, AuthSession
from ..services.reconciler import Reconciler
from ..services.workspace import Workspace

bearer_scheme = HTTPBearer(auto_error=False)


def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def get_auth(request: Request) -> AuthProvider:
    return request.app.state.workspace.auth


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthProvider = Depends(get_auth),
) -> AuthSession:
    """Resolve the bearer token to a session or fail with 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session = await auth.get_session(credentials.credentials)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_reconciler(
    session: AuthSession = Depends(get_current_session),
    workspace: Workspace = Depends(get_workspace),
) -> Reconciler:
    return await workspace.reconciler_for(session)
