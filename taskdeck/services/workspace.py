"""Per-user reconcilers wired to the configured backend."""

import logging
from typing import Callable, Dict, Optional

from sqlalchemy.engine import Engine

from ..auth.base import SIGNED_OUT, AuthProvider, AuthSession
from ..auth.local import LocalAuth
from ..auth.supabase import SupabaseAuth
from ..config import Settings
from ..db.session import create_db_and_tables, make_engine
from ..errors import RemoteFailure
from ..remote.base import RemoteStore
from ..remote.sql import SqlRemote
from ..remote.supabase import SupabaseRemote
from .reconciler import LocalReconciler, Notice, Reconciler
from .sync import RemoteReconciler

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[AuthSession], RemoteStore]


def create_reconciler(
    settings: Settings,
    owner_id: str,
    remote: Optional[RemoteStore] = None,
    on_notice: Optional[Callable[[Notice], None]] = None,
) -> Reconciler:
    """Build the reconciler variant for `settings.backend`."""
    if settings.backend == "local":
        return LocalReconciler(owner_id, history_limit=settings.history_limit, on_notice=on_notice)
    if remote is None:
        raise ValueError(f"Backend '{settings.backend}' needs a remote store")
    return RemoteReconciler(owner_id, remote, history_limit=settings.history_limit, on_notice=on_notice)


def create_engine_for(settings: Settings) -> Engine:
    """Engine holding user accounts (and, for the sql backend, tasks)."""
    url = settings.database_url if settings.backend == "sql" else "sqlite://"
    engine = make_engine(url)
    create_db_and_tables(engine)
    return engine


def create_auth(settings: Settings, engine: Optional[Engine] = None) -> AuthProvider:
    if settings.backend == "supabase":
        return SupabaseAuth(settings.supabase_url, settings.supabase_anon_key, timeout=settings.remote_timeout)
    return LocalAuth(engine if engine is not None else create_engine_for(settings), settings.auth_secret)


def default_remote_factory(settings: Settings, engine: Optional[Engine] = None) -> Optional[RemoteFactory]:
    """Factory producing the remote store for a signed-in session, or None for local."""
    if settings.backend == "sql":
        shared = SqlRemote(engine if engine is not None else create_engine_for(settings))
        return lambda session: shared
    if settings.backend == "supabase":
        return lambda session: SupabaseRemote(
            settings.supabase_url,
            settings.supabase_anon_key,
            access_token=session.access_token,
            timeout=settings.remote_timeout,
        )
    return None


class Workspace:
    """Keeps one loaded reconciler per signed-in user.

    Signing out drops the user's reconciler (and its history) and closes
    the remote store it was using.
    """

    def __init__(self, settings: Settings, auth: AuthProvider, remote_factory: Optional[RemoteFactory] = None):
        self.settings = settings
        self.auth = auth
        self.remote_factory = remote_factory
        self._reconcilers: Dict[str, Reconciler] = {}
        self._remotes: Dict[str, RemoteStore] = {}
        self._unsubscribe = auth.subscribe(self._on_auth_event)

    async def _on_auth_event(self, event: str, session: Optional[AuthSession]) -> None:
        if event == SIGNED_OUT and session is not None:
            await self.drop(session.user_id)

    async def reconciler_for(self, session: AuthSession) -> Reconciler:
        """Return the user's reconciler, loading it on first use."""
        reconciler = self._reconcilers.get(session.user_id)
        if reconciler is not None:
            return reconciler

        remote = None
        if self.remote_factory is not None:
            remote = self.remote_factory(session)
            self._remotes[session.user_id] = remote
        reconciler = create_reconciler(self.settings, session.user_id, remote)
        if not await reconciler.load():
            # Nothing is cached, so the next request retries the load
            message = reconciler.notices[-1].message if reconciler.notices else "Could not load tasks"
            await self.drop(session.user_id)
            raise RemoteFailure(message, operation="load")
        self._reconcilers[session.user_id] = reconciler
        logger.info(f"Opened workspace for {session.user_id} ({self.settings.backend})")
        return reconciler

    async def drop(self, user_id: str) -> None:
        self._reconcilers.pop(user_id, None)
        remote = self._remotes.pop(user_id, None)
        # The sql backend shares one store between users
        if remote is not None and remote not in self._remotes.values():
            await remote.close()
        logger.info(f"Closed workspace for {user_id}")

    async def close(self) -> None:
        self._unsubscribe()
        for user_id in list(self._reconcilers):
            await self.drop(user_id)
        await self.auth.close()
