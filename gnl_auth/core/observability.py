import logging

from fastapi import Request

from gnl_auth.core.api_response import get_request_id


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def log_business_event(
    logger: logging.Logger,
    request: Request | None,
    *,
    event: str,
    **fields,
) -> None:
    request_id = get_request_id(request) if request is not None else "-"
    chunks = [f"event={event}", f"request_id={request_id}"]
    for key, value in fields.items():
        chunks.append(f"{key}={value}")
    logger.info("business_event %s", " ".join(chunks))


def device_fingerprint(request: Request, declared: str | None = None) -> str | None:
    value = (declared or request.headers.get("User-Agent") or "").strip()
    return value[:500] or None
