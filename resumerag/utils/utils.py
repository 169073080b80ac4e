import base64
import binascii
from typing import Any, Awaitable, Callable, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from resumerag.services.idempotency import IdempotencyGuard
from resumerag.utils.exceptions import ValidationError


def decode_base64(b64_string: str, field: str = "content") -> bytes:
    try:
        return base64.b64decode(b64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 content: {e}", field=field, cause=e) from e


def rate_limit_headers(request: Request) -> dict:
    status = getattr(request.state, "rate_limit", None)
    return status.headers() if status is not None else {}


async def idempotent_response(
    request: Request,
    idempotency_key: Optional[str],
    body: Any,
    guard: IdempotencyGuard,
    operation: Callable[[], Awaitable[Tuple[int, Any]]],
) -> JSONResponse:
    """Run a mutating handler behind the idempotency guard.

    ``operation`` must return an already JSON-encodable body so that a replay
    serialises to the same bytes as the first response.
    """
    endpoint = f"{request.method}:{request.url.path}"
    status_code, content = await guard.guarded_call(idempotency_key, endpoint, body, operation)
    return JSONResponse(status_code=status_code, content=content, headers=rate_limit_headers(request))
