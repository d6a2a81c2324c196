"""
Remote libSQL driver over the Hrana v2 HTTP pipeline protocol.

Every statement is one ``POST <base>/v2/pipeline`` carrying an ``execute``
request. The server hands back a baton that identifies the stream; sending it
with the next request keeps all statements on the same server-side
connection, which is what lets BEGIN ... COMMIT span several calls.

Values on the wire are tagged objects:

    {"type": "null"}
    {"type": "integer", "value": "42"}      (decimal string, 64-bit)
    {"type": "float", "value": 1.5}
    {"type": "text", "value": "hi"}
    {"type": "blob", "base64": "aGk"}       (unpadded)
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional, Sequence

import httpx

from libsql_orm.errors import OrmConnectionError, SqlError
from libsql_orm.infrastructure.base import AbstractDriver, DriverResult
from libsql_orm.utils.logging import get_logger

log = get_logger(__name__)

PIPELINE_PATH = "/v2/pipeline"


def encode_arg(value: Any) -> Dict[str, Any]:
    """Encode a native parameter as a Hrana value object."""
    if value is None:
        return {"type": "null"}
    if isinstance(value, bool):
        return {"type": "integer", "value": "1" if value else "0"}
    if isinstance(value, int):
        return {"type": "integer", "value": str(value)}
    if isinstance(value, float):
        return {"type": "float", "value": value}
    if isinstance(value, str):
        return {"type": "text", "value": value}
    if isinstance(value, (bytes, bytearray, memoryview)):
        encoded = base64.b64encode(bytes(value)).decode("ascii").rstrip("=")
        return {"type": "blob", "base64": encoded}
    raise SqlError(f"Cannot bind parameter of type {type(value).__name__}")


def decode_value(cell: Dict[str, Any]) -> Any:
    """Decode a Hrana value object into a native value."""
    kind = cell.get("type")
    if kind == "null":
        return None
    if kind == "integer":
        return int(cell["value"])
    if kind == "float":
        return float(cell["value"])
    if kind == "text":
        return cell["value"]
    if kind == "blob":
        raw = cell.get("base64", "")
        return base64.b64decode(raw + "=" * (-len(raw) % 4))
    raise SqlError(f"Unknown value type in response: {kind!r}")


class HranaDriver(AbstractDriver):
    """
    One Hrana stream over an `httpx.AsyncClient`.

    Parameters
    ----------
    base_url : str
        ``https://`` or ``http://`` endpoint of the database.
    auth_token : str, optional
        Sent as ``Authorization: Bearer <token>``.
    timeout : float, optional
        Per-request timeout in seconds; None waits indefinitely.
    transport : httpx.AsyncBaseTransport, optional
        Injected transport (tests pass an `httpx.MockTransport`).
    """

    name: str = "hrana"

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {auth_token}"} if auth_token else {}
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)
        self._pipeline_url = base_url.rstrip("/") + PIPELINE_PATH
        self._baton: Optional[str] = None

    @property
    def baton(self) -> Optional[str]:
        return self._baton

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> DriverResult:
        request = {
            "type": "execute",
            "stmt": {
                "sql": sql,
                "args": [encode_arg(p) for p in params],
                "want_rows": True,
            },
        }
        (response,) = await self._pipeline([request])
        return self._to_result(response.get("result", {}))

    async def execute_batch(self, sql: str) -> None:
        await self._pipeline([{"type": "sequence", "sql": sql}])

    async def close(self) -> None:
        try:
            if self._baton is not None:
                await self._pipeline([{"type": "close"}])
        except (OrmConnectionError, SqlError) as exc:
            log.warning("Failed to close remote stream: %s", exc)
        finally:
            self._baton = None
            await self._client.aclose()

    async def _pipeline(self, requests: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        body = {"baton": self._baton, "requests": requests}
        try:
            response = await self._client.post(self._pipeline_url, json=body)
        except httpx.HTTPError as exc:
            raise OrmConnectionError(f"Request to {self._pipeline_url} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise OrmConnectionError(f"Authentication rejected (HTTP {response.status_code})")
        if response.status_code != 200:
            raise SqlError(f"HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise SqlError(f"Malformed pipeline response: {exc}") from exc

        self._baton = data.get("baton")
        if data.get("base_url"):
            self._pipeline_url = data["base_url"].rstrip("/") + PIPELINE_PATH

        responses: List[Dict[str, Any]] = []
        for entry in data.get("results", []):
            if entry.get("type") == "error":
                error = entry.get("error", {})
                raise SqlError(error.get("message", "unknown error"))
            responses.append(entry.get("response", {}))
        return responses

    @staticmethod
    def _to_result(result: Dict[str, Any]) -> DriverResult:
        columns = [col.get("name") or "" for col in result.get("cols", [])]
        rows = [tuple(decode_value(cell) for cell in row) for row in result.get("rows", [])]
        rowid = result.get("last_insert_rowid")
        return DriverResult(
            columns=columns,
            rows=rows,
            rows_affected=int(result.get("affected_row_count", 0)),
            last_insert_rowid=int(rowid) if rowid is not None else None,
        )


__all__ = ["HranaDriver", "encode_arg", "decode_value", "PIPELINE_PATH"]
