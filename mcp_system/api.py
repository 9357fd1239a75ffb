"""Result envelope returned to controllers and socket handlers.

Every orchestration call is awaited through handle(), which turns raised
errors into an ApiResult with an HTTP-style status instead of letting them
escape to the transport.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any

from mcp_system.errors import MCPError

logger = logging.getLogger(__name__)

_GENERIC_ERROR = "Unexpected server error"


@dataclass
class ApiResult:
    status: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _payload(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_payload(v) for v in value]
    return value


async def handle(
    operation: Callable[[], Awaitable[Any]],
    key: str | None = None,
    success_status: int = 200,
) -> ApiResult:
    """Await operation and wrap its result.

    With key the body is {key: result}; without it a dataclass result becomes
    the body itself, e.g. a DebateTurnResult gives {"entry": ..., "is_completed": ...}.
    """
    try:
        result = await operation()
    except MCPError as exc:
        logger.info("Request failed (%d %s): %s", exc.status_code, exc.kind, exc)
        return ApiResult(status=exc.status_code, body={"error": str(exc), "kind": exc.kind})
    except Exception:
        logger.exception("Unhandled error in %s operation", key or "request")
        return ApiResult(status=500, body={"error": _GENERIC_ERROR, "kind": "server_error"})

    if key is not None:
        return ApiResult(status=success_status, body={key: _payload(result)})
    return ApiResult(status=success_status, body=_payload(result) if result is not None else {})
