"""
Per-call context for AuthService RPCs.

Resolves the RPC method from the request path, binds a call id for log
correlation and records one line per finished call with its outcome.
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from pharmacy_auth.logging_config import call_id_var, get_logger, rpc_method_var

logger = get_logger(__name__)

CALL_ID_HEADER = "X-Request-ID"
RPC_SERVICE = "auth.AuthService"
MAX_CALL_ID_LENGTH = 128


def rpc_method_from_path(path: str) -> Optional[str]:
    """``/auth.AuthService/Login`` -> ``Login``; None for non-RPC paths."""
    service, _, method = path.strip("/").partition("/")
    if service != RPC_SERVICE or not method or "/" in method:
        return None
    return method


def _accepted_call_id(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value or len(value) > MAX_CALL_ID_LENGTH:
        return None
    return value


class RpcContextMiddleware(BaseHTTPMiddleware):
    """
    Bind call id and RPC method for the duration of a call.

    The caller may supply the call id in X-Request-ID; it is echoed back
    either way. Transport-level rejections (413, 422, 500) are logged as
    warnings since domain failures always travel as 200.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        call_id = _accepted_call_id(request.headers.get(CALL_ID_HEADER)) or str(uuid.uuid4())
        method = rpc_method_from_path(request.url.path)

        request.state.call_id = call_id
        call_token = call_id_var.set(call_id)
        method_token = rpc_method_var.set(method)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[CALL_ID_HEADER] = call_id
            if method is not None:
                duration_ms = round((time.perf_counter() - start) * 1000, 1)
                extra = {
                    "method": method,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
                if response.status_code == 200:
                    logger.info("RPC completed", extra=extra)
                else:
                    logger.warning("RPC rejected by transport", extra=extra)
            return response
        finally:
            rpc_method_var.reset(method_token)
            call_id_var.reset(call_token)
