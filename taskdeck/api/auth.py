from fastapi import APIRouter, Depends, status

from ..auth.base import AuthProvider, AuthSession
from ..schemas.user import Credentials, SessionOut
from ..dependencies.auth import get_auth, get_current_session

router = APIRouter()


def _session_out(session: AuthSession) -> SessionOut:
    return SessionOut(
        user_id=session.user_id,
        email=session.email,
        access_token=session.access_token,
        expires_at=session.expires_at,
    )


@router.post("/auth/signup", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def sign_up(credentials: Credentials, auth: AuthProvider = Depends(get_auth)):
    return _session_out(await auth.sign_up(credentials.email, credentials.password))


@router.post("/auth/signin", response_model=SessionOut)
async def sign_in(credentials: Credentials, auth: AuthProvider = Depends(get_auth)):
    return _session_out(await auth.sign_in(credentials.email, credentials.password))


@router.post("/auth/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    session: AuthSession = Depends(get_current_session),
    auth: AuthProvider = Depends(get_auth),
):
    """End the session; the user's loaded tasks and history are discarded."""
    await auth.sign_out(session.access_token)


@router.get("/auth/session", response_model=SessionOut)
async def get_session(session: AuthSession = Depends(get_current_session)):
    return _session_out(session)
