"""
api_response.py

Response envelope builders.

Success: {success: true, message, data?, timestamp}
Error:   {success: false, message, error, code, timestamp, validation?, request_id}

"""

from datetime import datetime, timezone

from fastapi import Request


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return str(rid) if rid else "-"


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def success_payload(message: str, data=None) -> dict:
    payload = {
        "success": True,
        "message": message,
        "timestamp": _timestamp(),
    }
    if data is not None:
        payload["data"] = data
    return payload


def error_response_payload(
    request: Request,
    *,
    code: str,
    error: str,
    message: str,
    validation=None,
) -> dict:
    payload = {
        "success": False,
        "message": message,
        "error": error,
        "code": code,
        "timestamp": _timestamp(),
        "request_id": get_request_id(request),
    }
    if validation is not None:
        payload["validation"] = validation
    return payload
