"""
Response utilities: redaction of secrets, masking of sensitive fields and
turning upstream error payloads into user-facing text.
"""

import json
import re
from datetime import datetime
from typing import Any, List, Optional

# JWTs, bearer values, "token": "..." pairs and long opaque strings
_JWT_RE = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_TOKEN_FIELD_RE = re.compile(
    r"""(["']?(?:access_?token|refresh_?token|token|refreshToken|accessToken)["']?\s*[:=]\s*["']?)[^"'\s,}]+""",
    re.IGNORECASE,
)
_OPAQUE_RE = re.compile(r"\b[A-Za-z0-9_-]{40,}\b")

REDACTED = "[REDACTED]"


def redact_sensitive(text: Any, opaque: bool = True) -> str:
    """Strip token-like substrings from text before it is shown or logged.

    ``opaque=False`` keeps long opaque strings, so chat text can still show
    wallet addresses and transaction hashes.
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        try:
            text = json.dumps(text, default=str)
        except (TypeError, ValueError):
            text = str(text)
    text = _JWT_RE.sub(REDACTED, text)
    text = _BEARER_RE.sub(lambda m: m.group(1) + REDACTED, text)
    text = _TOKEN_FIELD_RE.sub(lambda m: m.group(1) + REDACTED, text)
    if opaque:
        text = _OPAQUE_RE.sub(REDACTED, text)
    return text


def mask_account_number(account_number: str) -> str:
    """Mask every digit except the last four."""
    return re.sub(r"\d(?=\d{4})", "*", account_number or "")


def shorten_address(address: str, head: int = 10, tail: int = 10) -> str:
    if not address or len(address) <= head + tail:
        return address or ""
    return f"{address[:head]}...{address[-tail:]}"


def format_validation_errors(errors: List[Any]) -> str:
    """Pick a readable message out of a validation error array."""
    if not isinstance(errors, list) or not errors:
        return "Validation error"

    first = errors[0]
    if isinstance(first, str):
        return first
    if isinstance(first, dict):
        if first.get("message"):
            return str(first["message"])
        constraints = first.get("constraints")
        if isinstance(constraints, dict) and constraints:
            return str(next(iter(constraints.values())))

    return "Invalid input provided"


def extract_error_message(body: Any, default: str) -> str:
    """Best-effort human message from an error response body."""
    if body is None:
        return default

    if isinstance(body, list):
        return format_validation_errors(body)

    if isinstance(body, str):
        stripped = body.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            try:
                return format_validation_errors(json.loads(stripped))
            except ValueError:
                return stripped
        return stripped or default

    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, list):
            return format_validation_errors(message)
        if isinstance(message, dict):
            return extract_error_message(message, default)
        if isinstance(message, str) and message.strip():
            return extract_error_message(message, default)

        error = body.get("error")
        if isinstance(error, (dict, list)):
            return extract_error_message(error, default)
        if isinstance(error, str) and error.strip():
            return error.strip()

    return default


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


_MARKDOWN_SPECIALS = re.compile(r"([_*`\[])")


def escape_markdown(text: Any) -> str:
    """Escape user-supplied text for Telegram's legacy Markdown mode."""
    return _MARKDOWN_SPECIALS.sub(r"\\\1", "" if text is None else str(text))
