"""Authentication calls: email OTP request/verify, profile and KYC."""

from typing import Optional
from paybot.schemas.core import ApiResult, ErrorKind, Outcome
from paybot.services.api_gateway import ApiGateway
from paybot.services.response_shapes import (
    ShapeKind,
    normalize_ack_response,
    normalize_token_response,
)
from paybot.utils.config import AmbiguousResponsePolicy, settings
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import redact_sensitive
from paybot.utils.token_registry import TokenRegistry

logger = get_logger("auth_service")


class AuthService:
    """Service class for the payments API authentication endpoints."""

    def __init__(self, gateway: ApiGateway, tokens: TokenRegistry,
                 ambiguous_policy: Optional[AmbiguousResponsePolicy] = None):
        self.gateway = gateway
        self.tokens = tokens
        self.ambiguous_policy = ambiguous_policy or settings.ambiguous_response_policy

    async def request_email_otp(self, email: str) -> ApiResult:
        """Ask the API to e-mail a one-time code."""
        logger.info("Requesting email OTP")
        result = await self.gateway.request("POST", "/auth/email-otp/request", {"email": email})

        if result.error_kind == ErrorKind.UNREACHABLE:
            return result
        if result.status_code is not None and result.status_code >= 400:
            return result

        normalized = normalize_ack_response(result.body, self.ambiguous_policy)
        if normalized.kind == ShapeKind.UNRECOGNIZED:
            logger.warning(f"Ambiguous OTP request response treated as {normalized.outcome.value}: "
                           f"{redact_sensitive(result.body)}")

        return ApiResult(
            success=normalized.outcome == Outcome.SUCCESS,
            message=normalized.message,
            data=normalized.data,
            status_code=result.status_code,
            error_kind=ErrorKind.UPSTREAM if normalized.outcome == Outcome.FAILURE else (
                ErrorKind.UNKNOWN_SHAPE if normalized.outcome == Outcome.UNKNOWN else None
            ),
            outcome=normalized.outcome,
            body=result.body,
        )

    async def authenticate_with_otp(self, email: str, otp: str, chat_id: str) -> ApiResult:
        """Verify the code and store the returned tokens for the chat.

        On success ``data`` is ``{"tokens": ..., "user": {...}}``.
        """
        logger.info(f"Authenticating chat {chat_id} with OTP")
        result = await self.gateway.request(
            "POST", "/auth/email-otp/authenticate", {"email": email, "otp": otp}
        )

        if result.error_kind == ErrorKind.UNREACHABLE:
            return result
        if result.status_code is not None and result.status_code >= 400:
            if result.status_code == 401:
                result.message = "Invalid OTP code. Please check and try again."
            elif result.status_code == 429:
                result.message = "Too many attempts. Please wait before trying again."
            return result

        normalized = normalize_token_response(result.body)
        if normalized.tokens is None:
            if normalized.kind == ShapeKind.UNRECOGNIZED:
                logger.error(f"Unexpected authentication response format: {redact_sensitive(result.body)}")
            return ApiResult.failure(
                message=normalized.message,
                error_kind=ErrorKind.AUTH if normalized.kind == ShapeKind.EXPLICIT_FAILURE else ErrorKind.UNKNOWN_SHAPE,
                status_code=result.status_code,
                error=redact_sensitive(result.body),
                body=result.body,
            )

        self.tokens.store_tokens(chat_id, normalized.tokens)
        logger.info(f"Stored tokens for chat {chat_id} ({normalized.kind.value})")

        user = dict(normalized.user)
        user.setdefault("email", email)
        return ApiResult(
            success=True,
            message=normalized.message,
            data={"tokens": normalized.tokens.model_dump(), "user": user, "shape": normalized.kind.value},
            status_code=result.status_code,
            body=result.body,
        )

    async def get_user_profile(self, chat_id: str) -> ApiResult:
        return await self.gateway.request("GET", "/auth/me", chat_id=chat_id)

    async def get_kyc_status(self, chat_id: str) -> ApiResult:
        return await self.gateway.request("GET", "/kycs", chat_id=chat_id)

    def logout(self, chat_id: str) -> None:
        self.tokens.clear_token(chat_id)
