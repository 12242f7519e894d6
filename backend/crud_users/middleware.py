"""HTTP middleware for response hardening and request size limits."""

from fastapi import Request
from fastapi.responses import JSONResponse

from crud_users.config import settings
from crud_users.errors import ApiError, normalize_error

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}
HSTS_HEADER = "max-age=15552000; includeSubDomains"

BODY_METHODS = ("POST", "PUT", "PATCH")


async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if settings.is_production:
        response.headers.setdefault("Strict-Transport-Security", HSTS_HEADER)
    return response


def _too_large() -> JSONResponse:
    status_code, body = normalize_error(ApiError.payload_too_large(settings.max_body_bytes))
    return JSONResponse(status_code=status_code, content=body)


async def limit_body_size(request: Request, call_next):
    """Reject bodies over ``settings.max_body_bytes`` with 413."""
    if request.method in BODY_METHODS:
        length = request.headers.get("content-length")
        if length is not None and length.isdigit():
            if int(length) > settings.max_body_bytes:
                return _too_large()
        elif len(await request.body()) > settings.max_body_bytes:
            # chunked uploads carry no length header
            return _too_large()
    return await call_next(request)
