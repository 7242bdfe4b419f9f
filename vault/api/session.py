"""Process-wide authentication session."""

from typing import Callable, List, Optional, Protocol

from common.exceptions import AuthError
from common.logging_config import get_logger

logger = get_logger(__name__)

InvalidationListener = Callable[[str], None]


class TokenStore(Protocol):
    """Persistence for the bearer token (the CLI config file implements it)."""

    def get_auth_token(self) -> Optional[str]: ...

    def set_auth_token(self, token: str) -> None: ...

    def clear_auth_token(self) -> None: ...


class Session:
    """
    Holds the bearer token every outgoing request reads.

    The session is started explicitly after login and torn down explicitly,
    either by the user (``end``) or because the server rejected the token
    (``invalidate``). Invalidation listeners run synchronously inside
    ``invalidate`` so dependent components stop using the session before the
    failing request returns to its caller.
    """

    def __init__(self, store: Optional[TokenStore] = None):
        self._store = store
        self._token: Optional[str] = store.get_auth_token() if store is not None else None
        self.username: Optional[str] = None
        self._listeners: List[InvalidationListener] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_active(self) -> bool:
        return self._token is not None

    def start(self, token: str, username: Optional[str] = None) -> None:
        """Begin a session with a freshly issued token."""
        self._token = token
        self.username = username
        if self._store is not None:
            self._store.set_auth_token(token)
        logger.info(f"Session started [user={username}]")

    def end(self) -> None:
        """Forget the token without notifying listeners (user logout)."""
        self._clear()
        logger.info("Session ended")

    def invalidate(self, reason: str = "Session expired. Please log in again.") -> None:
        """
        Tear the session down after the server rejected it.

        Listeners are called once per active session; invalidating an already
        inactive session is a no-op.

        Args:
            reason: Human-readable reason passed to every listener
        """
        if not self.is_active:
            return
        self._clear()
        logger.warning(f"Session invalidated: {reason}")
        for listener in list(self._listeners):
            listener(reason)

    def add_invalidation_listener(self, listener: InvalidationListener) -> Callable[[], None]:
        """
        Register a callback for session invalidation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def auth_header(self) -> dict:
        """
        Get Authorization header with the session token.

        Raises:
            AuthError: If no session is active
        """
        if self._token is None:
            raise AuthError("Not logged in. Please run: login <username> <password>")
        return {'Authorization': f'Bearer {self._token}'}

    def _clear(self) -> None:
        self._token = None
        self.username = None
        if self._store is not None:
            self._store.clear_auth_token()
