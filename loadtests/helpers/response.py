"""Response error extraction for load test observability.

Parses storefront API error responses into human-readable messages.
Handles two response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Storefront errors (400/404/409/503): {"error": {"field": ["msg"]}, "code": "ErrorName"}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def _flatten(messages) -> str:
    if isinstance(messages, list):
        return "; ".join(str(m) for m in messages)
    return str(messages)


def error_code(response: Response) -> str | None:
    """The storefront error code of a failed response, if it carries one."""
    try:
        return response.json().get("code")
    except Exception:
        return None


def extract_error_detail(response: Response) -> str:
    """Extract a compact error message for Locust failure messages and log lines."""
    try:
        body = response.json()
    except Exception:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "error" in body:
        error = body["error"]
        detail = (
            " | ".join(f"{field}: {_flatten(messages)}" for field, messages in error.items())
            if isinstance(error, dict)
            else str(error)
        )
        return f"[{body['code']}] {detail}" if body.get("code") else detail

    return str(body)[:300]
