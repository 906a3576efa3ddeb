"""Bearer token storage.

Two opaque strings are kept: the user token (``token``) and the admin
token (``adminToken``). Nothing else is persisted on the client.
"""

import json
from pathlib import Path

import structlog

logger = structlog.get_logger()

USER_KEY = "token"
ADMIN_KEY = "adminToken"


class TokenStore:
    """In-memory token store."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    @property
    def user_token(self) -> str | None:
        return self._values.get(USER_KEY)

    @property
    def admin_token(self) -> str | None:
        return self._values.get(ADMIN_KEY)

    def set_user_token(self, token: str) -> None:
        self._values[USER_KEY] = token
        self._flush()

    def set_admin_token(self, token: str) -> None:
        self._values[ADMIN_KEY] = token
        self._flush()

    def clear_user(self) -> None:
        if self._values.pop(USER_KEY, None) is not None:
            self._flush()

    def clear_admin(self) -> None:
        if self._values.pop(ADMIN_KEY, None) is not None:
            self._flush()

    def _flush(self) -> None:
        pass


class FileTokenStore(TokenStore):
    """Token store persisted as a small JSON document on disk."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text())
            except (OSError, ValueError):
                data = None
            if not isinstance(data, dict):
                logger.warning("token_store_unreadable", path=str(self.path))
                data = {}
            self._values = {
                k: v for k, v in data.items() if k in (USER_KEY, ADMIN_KEY) and isinstance(v, str)
            }

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values))


def token_store_from_settings(path: str | None) -> TokenStore:
    return FileTokenStore(path) if path else TokenStore()
