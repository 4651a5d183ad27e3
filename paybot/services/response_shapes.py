"""
Response shape normalization for the payments API.

The authentication endpoints have been observed to answer in several shapes
(``status``/``success``/``code`` envelopes, tokens nested under
``data.tokens.access.token`` or hoisted to the top level, or a bare ``token``).
Each shape is an explicit matcher; matchers are tried in priority order and the
first one that recognizes the body wins. A body nothing recognizes is reported
as ``UNRECOGNIZED`` so callers decide what ambiguity means for them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from paybot.schemas.core import AuthTokens, Outcome
from paybot.utils.config import AmbiguousResponsePolicy
from paybot.utils.response_utils import extract_error_message, redact_sensitive


class ShapeKind(str, Enum):
    CANONICAL_ENVELOPE = "canonical_envelope"
    FLATTENED_ENVELOPE = "flattened_envelope"
    BARE_TOKEN = "bare_token"
    DEEP_SEARCH = "deep_search"
    EXPLICIT_FAILURE = "explicit_failure"
    UNRECOGNIZED = "unrecognized"


class NormalizedResponse(BaseModel):
    kind: ShapeKind
    outcome: Outcome
    message: str = ""
    tokens: Optional[AuthTokens] = None
    user: Dict[str, Any] = Field(default_factory=dict)
    data: Any = None


Matcher = Callable[[Any], Optional[NormalizedResponse]]


def _message(body: Dict[str, Any], default: str) -> str:
    message = body.get("message")
    if isinstance(message, str) and message.strip():
        return redact_sensitive(message.strip())
    return default


def _failure_message(body: Any) -> str:
    return redact_sensitive(extract_error_message(body, "Request failed"))


def _dig(body: Any, *path: str) -> Any:
    current = body
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def parse_expiry(value: Any) -> Optional[int]:
    """ISO-8601 string or epoch number -> epoch millis."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Seconds vs millis: anything below 1e12 is treated as seconds
        return int(value * 1000) if value < 1e12 else int(value)
    if isinstance(value, str):
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return None
    return None


def _tokens_from(tokens: Any) -> Optional[AuthTokens]:
    """Read ``{"access": {"token", "expires"}, "refresh": {"token"}}``."""
    access = _dig(tokens, "access", "token")
    if not isinstance(access, str) or not access:
        return None
    refresh = _dig(tokens, "refresh", "token")
    return AuthTokens(
        access_token=access,
        refresh_token=refresh if isinstance(refresh, str) and refresh else None,
        expires_at=parse_expiry(_dig(tokens, "access", "expires")),
    )


def _explicit_status(body: Dict[str, Any]) -> Optional[bool]:
    for key in ("status", "success"):
        if isinstance(body.get(key), bool):
            return body[key]
    return None


# Token-bearing matchers (authenticate, refresh)

def match_canonical_envelope(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict) or _explicit_status(body) is not True:
        return None
    tokens = _tokens_from(_dig(body, "data", "tokens"))
    if tokens is None:
        return None
    user = _dig(body, "data", "user")
    return NormalizedResponse(
        kind=ShapeKind.CANONICAL_ENVELOPE,
        outcome=Outcome.SUCCESS,
        message=_message(body, "Authentication successful"),
        tokens=tokens,
        user=user if isinstance(user, dict) else {},
        data=body.get("data"),
    )


def match_flattened_envelope(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict) or _explicit_status(body) is False:
        return None
    tokens = _tokens_from(body.get("tokens"))
    if tokens is None:
        return None
    user = body.get("user")
    return NormalizedResponse(
        kind=ShapeKind.FLATTENED_ENVELOPE,
        outcome=Outcome.SUCCESS,
        message="Authentication successful",
        tokens=tokens,
        user=user if isinstance(user, dict) else {},
        data={"tokens": body.get("tokens"), "user": user},
    )


def match_bare_token(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict) or _explicit_status(body) is False:
        return None
    access = body.get("token") or body.get("accessToken")
    if not isinstance(access, str) or not access:
        return None
    refresh = body.get("refreshToken")
    user = body.get("user")
    return NormalizedResponse(
        kind=ShapeKind.BARE_TOKEN,
        outcome=Outcome.SUCCESS,
        message="Authentication successful",
        tokens=AuthTokens(
            access_token=access,
            refresh_token=refresh if isinstance(refresh, str) and refresh else None,
            expires_at=parse_expiry(body.get("expires") or body.get("expiresAt")),
        ),
        user=user if isinstance(user, dict) else {},
        data=body,
    )


def _find_field(node: Any, names: Tuple[str, ...], depth: int = 0) -> Optional[Any]:
    if depth > 6:
        return None
    if isinstance(node, dict):
        for name in names:
            value = node.get(name)
            if isinstance(value, str) and value:
                return value
        for value in node.values():
            found = _find_field(value, names, depth + 1)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = _find_field(item, names, depth + 1)
            if found is not None:
                return found
    return None


def match_deep_search(body: Any) -> Optional[NormalizedResponse]:
    """Last resort: any nested field literally named token/accessToken."""
    if not isinstance(body, (dict, list)):
        return None
    if isinstance(body, dict) and _explicit_status(body) is False:
        return None
    access = _find_field(body, ("token", "accessToken"))
    if access is None:
        return None
    user: Dict[str, Any] = {}
    email = _find_field(body, ("email",))
    if email:
        user["email"] = email
    user_id = _find_field(body, ("id",))
    if user_id:
        user["id"] = user_id
    organization_id = _find_field(body, ("organizationId",))
    if organization_id:
        user["organizationId"] = organization_id
    return NormalizedResponse(
        kind=ShapeKind.DEEP_SEARCH,
        outcome=Outcome.SUCCESS,
        message="Authentication successful",
        tokens=AuthTokens(access_token=access),
        user=user,
        data=body,
    )


# Acknowledgement matchers (OTP request)

def match_status_envelope(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict):
        return None
    status = _explicit_status(body)
    if status is None:
        return None
    if status:
        return NormalizedResponse(
            kind=ShapeKind.CANONICAL_ENVELOPE,
            outcome=Outcome.SUCCESS,
            message=_message(body, "Verification code sent successfully"),
            data=body.get("data"),
        )
    return NormalizedResponse(
        kind=ShapeKind.EXPLICIT_FAILURE,
        outcome=Outcome.FAILURE,
        message=_failure_message(body),
        data=body.get("data"),
    )


def match_flattened_ack(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict) or body.get("error"):
        return None
    if body.get("code") == 200 or body.get("statusCode") == 200 or (
        isinstance(body.get("message"), str) and body.get("message")
    ):
        return NormalizedResponse(
            kind=ShapeKind.FLATTENED_ENVELOPE,
            outcome=Outcome.SUCCESS,
            message=_message(body, "Verification code sent successfully"),
            data=body.get("data"),
        )
    return None


def match_explicit_failure(body: Any) -> Optional[NormalizedResponse]:
    if not isinstance(body, dict):
        return None
    if _explicit_status(body) is False or body.get("error"):
        return NormalizedResponse(
            kind=ShapeKind.EXPLICIT_FAILURE,
            outcome=Outcome.FAILURE,
            message=_failure_message(body),
            data=body.get("data"),
        )
    return None


TOKEN_SHAPES: Sequence[Matcher] = (
    match_canonical_envelope,
    match_flattened_envelope,
    match_bare_token,
    match_deep_search,
)

ACK_SHAPES: Sequence[Matcher] = (
    match_status_envelope,
    match_flattened_ack,
    match_explicit_failure,
)


def _first_match(body: Any, matchers: Sequence[Matcher]) -> Optional[NormalizedResponse]:
    for matcher in matchers:
        result = matcher(body)
        if result is not None:
            return result
    return None


def normalize_token_response(body: Any) -> NormalizedResponse:
    """Normalize an authenticate/refresh body. No tokens found means failure."""
    matched = _first_match(body, TOKEN_SHAPES) or match_explicit_failure(body)
    if matched is not None:
        return matched
    return NormalizedResponse(
        kind=ShapeKind.UNRECOGNIZED,
        outcome=Outcome.FAILURE,
        message="Authentication failed: Unexpected response format",
        data=body,
    )


def normalize_ack_response(
    body: Any,
    policy: AmbiguousResponsePolicy = AmbiguousResponsePolicy.ASSUME_SUCCESS,
) -> NormalizedResponse:
    """Normalize an acknowledgement body such as an OTP request.

    An unrecognized body is a success under ASSUME_SUCCESS (the side effect, e.g.
    the OTP e-mail, has usually happened) and UNKNOWN under FLAG_UNKNOWN.
    """
    matched = _first_match(body, ACK_SHAPES)
    if matched is not None:
        return matched
    data = body.get("data", body) if isinstance(body, dict) else body
    if policy == AmbiguousResponsePolicy.ASSUME_SUCCESS:
        return NormalizedResponse(
            kind=ShapeKind.UNRECOGNIZED,
            outcome=Outcome.SUCCESS,
            message="Verification code sent",
            data=data,
        )
    return NormalizedResponse(
        kind=ShapeKind.UNRECOGNIZED,
        outcome=Outcome.UNKNOWN,
        message="Could not confirm that the verification code was sent",
        data=data,
    )
