"""
Database driver factory for libsql-orm.

Maps a database URL onto the driver that serves it:

    libsql://host   -> HranaDriver over https://host
    https://host    -> HranaDriver
    http://host     -> HranaDriver
    wss://host      -> HranaDriver over https://host
    ws://host       -> HranaDriver over http://host
    file:path       -> LocalDriver (embedded SQLite file)
    :memory:        -> LocalDriver (in-memory SQLite)

No pooling and no retry: each call opens one fresh logical connection.
"""

from __future__ import annotations

from typing import Optional, Tuple

from libsql_orm.config import get_settings
from libsql_orm.errors import OrmConnectionError
from libsql_orm.infrastructure.base import AbstractDriver
from libsql_orm.infrastructure.hrana import HranaDriver
from libsql_orm.infrastructure.local import LocalDriver

MEMORY = ":memory:"

_REMOTE_SCHEMES = {
    "libsql": "https",
    "https": "https",
    "wss": "https",
    "http": "http",
    "ws": "http",
}


def parse_url(url: str) -> Tuple[str, str]:
    """
    Classify a database URL.

    Returns
    -------
    tuple[str, str]
        ``("remote", http_base_url)`` or ``("local", sqlite_path)``.

    Raises
    ------
    OrmConnectionError
        For an empty URL or an unsupported scheme.
    """
    url = (url or "").strip()
    if not url:
        raise OrmConnectionError("Database URL is empty")

    if url == MEMORY:
        return "local", MEMORY

    if url.startswith("file:"):
        path = url[len("file:"):]
        if path.startswith("//"):
            path = path[2:]
        return "local", path or MEMORY

    scheme, sep, rest = url.partition("://")
    if sep and scheme.lower() in _REMOTE_SCHEMES:
        return "remote", f"{_REMOTE_SCHEMES[scheme.lower()]}://{rest}"

    raise OrmConnectionError(f"Unsupported database URL scheme: {url!r}")


async def open_driver(
    url: Optional[str] = None,
    auth_token: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AbstractDriver:
    """
    Open a driver for `url`, falling back to the configured settings.

    Parameters
    ----------
    url : str, optional
        Database URL; defaults to ``Settings.database_url``.
    auth_token : str, optional
        Bearer token for remote URLs; defaults to ``Settings.auth_token``.
    timeout : float, optional
        Request timeout in seconds; defaults to ``Settings.http_timeout_seconds``.
    """
    settings = get_settings()
    url = url or settings.database_url
    auth_token = auth_token if auth_token is not None else settings.auth_token
    timeout = timeout if timeout is not None else settings.http_timeout_seconds

    kind, target = parse_url(url)
    if kind == "local":
        return await LocalDriver.open(target, timeout=timeout)
    return HranaDriver(target, auth_token=auth_token, timeout=timeout)


__all__ = ["open_driver", "parse_url", "MEMORY"]
