"""Self-hosted accounts: hashed passwords in SQL, signed JWT access tokens."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Set
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from ..db.session import get_session
from ..db.tables import UserRecord
from ..errors import AuthError
from .base import SIGNED_OUT, AuthProvider, AuthSession

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# JWT settings
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60
MIN_PASSWORD_LENGTH = 6


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class LocalAuth(AuthProvider):
    """AuthProvider storing users in the `users` table."""

    def __init__(self, engine: Engine, secret: str, expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES):
        super().__init__()
        self.engine = engine
        self.secret = secret
        self.expire_minutes = expire_minutes
        self._revoked: Set[str] = set()

    def create_access_token(self, user: UserRecord) -> AuthSession:
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes)
        to_encode = {"sub": user.id, "email": user.email, "exp": expire, "jti": uuid4().hex}
        encoded_jwt = jwt.encode(to_encode, self.secret, algorithm=ALGORITHM)
        return AuthSession(user_id=user.id, email=user.email, access_token=encoded_jwt, expires_at=expire)

    async def sign_up(self, email: str, password: str) -> AuthSession:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("A valid email is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        try:
            with get_session(self.engine) as session:
                user = UserRecord(email=email, hashed_password=get_password_hash(password))
                session.add(user)
                session.commit()
                session.refresh(user)
        except IntegrityError as e:
            raise AuthError(f"An account for {email} already exists") from e
        logger.info(f"Registered user {user.id}")
        return await self._signed_in(self.create_access_token(user))

    async def sign_in(self, email: str, password: str) -> AuthSession:
        email = (email or "").strip().lower()
        with get_session(self.engine) as session:
            user = session.exec(select(UserRecord).where(UserRecord.email == email)).first()
        if not user or not verify_password(password or "", user.hashed_password):
            raise AuthError("Invalid email or password")
        return await self._signed_in(self.create_access_token(user))

    async def sign_out(self, access_token: Optional[str] = None) -> None:
        session = await self.get_session(access_token)
        if session is None:
            return
        self._revoked.add(session.access_token)
        if self._current and self._current.access_token == session.access_token:
            self._current = None
        await self._emit(SIGNED_OUT, session)

    async def get_session(self, access_token: Optional[str] = None) -> Optional[AuthSession]:
        if access_token is None:
            return self._current
        if access_token in self._revoked:
            return None
        try:
            payload = jwt.decode(access_token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            return None
        user_id = payload.get("sub")
        if not user_id:
            return None
        return AuthSession(
            user_id=user_id,
            email=payload.get("email", ""),
            access_token=access_token,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc) if "exp" in payload else None,
        )
