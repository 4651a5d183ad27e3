"""Gateway for every outbound call to the payments API."""

import httpx
from typing import Any, Dict, Optional
from paybot.schemas.core import ApiResult, AuthTokens, ErrorKind, Outcome
from paybot.services.response_shapes import normalize_token_response
from paybot.utils.config import settings
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import extract_error_message, redact_sensitive
from paybot.utils.token_registry import TokenRegistry

logger = get_logger("api_gateway")

UNREACHABLE_MESSAGE = "The payments service is unreachable right now. Please try again later."


class PaymentsAPIError(Exception):
    """Transport-level failure talking to the payments API."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_data: Optional[Any] = None,
                 error_kind: ErrorKind = ErrorKind.UPSTREAM):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        self.error_kind = error_kind
        super().__init__(self.message)


class ApiGateway:
    """Attaches bearer tokens, refreshes once on 401 and normalizes results.

    ``request`` never raises: transport errors, timeouts and HTTP failures all come
    back as an ``ApiResult`` with ``success=False``.
    """

    REFRESH_PATH = "/auth/refresh-token"

    def __init__(self, tokens: TokenRegistry, base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.tokens = tokens
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def _send(self, method: str, path: str, payload: Optional[Dict] = None,
                    params: Optional[Dict] = None, token: Optional[str] = None) -> httpx.Response:
        method = method.upper()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        query = dict(params or {})
        body = None
        if payload is not None:
            if method in ("POST", "PUT", "PATCH"):
                body = payload
            else:
                query.update(payload)

        try:
            async with self._client() as client:
                response = await client.request(
                    method=method,
                    url=path,
                    headers=headers,
                    json=body,
                    params=query or None,
                )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out after {self.timeout}s: {e}")
            raise PaymentsAPIError(UNREACHABLE_MESSAGE, error_kind=ErrorKind.UNREACHABLE)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} network error: {e}")
            raise PaymentsAPIError(UNREACHABLE_MESSAGE, error_kind=ErrorKind.UNREACHABLE)

        logger.info(f"{method} {path} - Status: {response.status_code}")
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text or None

    async def request(self, method: str, path: str, payload: Optional[Dict] = None,
                      chat_id: Optional[str] = None,
                      params: Optional[Dict] = None) -> ApiResult:
        """Make a request, refreshing the chat's token at most once on 401."""
        try:
            response = await self._send(method, path, payload, params, self.tokens.get_token(chat_id))
            if response.status_code == 401 and chat_id:
                response = await self._retry_after_refresh(method, path, payload, params, chat_id, response)
            return self._to_result(response)
        except PaymentsAPIError as e:
            return ApiResult.failure(
                message=e.message,
                error_kind=e.error_kind,
                status_code=e.status_code,
                error=redact_sensitive(e.response_data) if e.response_data is not None else None,
            )
        except Exception as e:
            logger.error(f"Unexpected error on {method} {path}: {redact_sensitive(str(e))}")
            return ApiResult.failure(
                message="Something went wrong talking to the payments service.",
                error_kind=ErrorKind.UPSTREAM,
                error=redact_sensitive(str(e)),
            )

    async def _retry_after_refresh(self, method: str, path: str, payload: Optional[Dict],
                                   params: Optional[Dict], chat_id: str,
                                   original: httpx.Response) -> httpx.Response:
        tokens = await self.refresh(chat_id)
        if tokens is None:
            logger.info(f"Token refresh unavailable for chat {chat_id}; clearing tokens")
            self.tokens.clear_token(chat_id)
            return original

        retried = await self._send(method, path, payload, params, tokens.access_token)
        if retried.status_code == 401:
            # No second refresh: a 401 after refresh is terminal
            logger.warning(f"{method} {path} still unauthorized after refresh for chat {chat_id}")
            self.tokens.clear_token(chat_id)
        return retried

    async def refresh(self, chat_id: str) -> Optional[AuthTokens]:
        """Exchange the chat's refresh token for a new access token."""
        refresh_token = self.tokens.get_refresh_token(chat_id)
        if not refresh_token:
            return None

        try:
            response = await self._send("POST", self.REFRESH_PATH, {"refreshToken": refresh_token})
        except PaymentsAPIError as e:
            logger.warning(f"Token refresh failed for chat {chat_id}: {e.message}")
            return None

        if response.status_code >= 400:
            logger.warning(f"Token refresh rejected for chat {chat_id} with status {response.status_code}")
            return None

        normalized = normalize_token_response(self._decode(response))
        if normalized.tokens is None:
            logger.warning(f"Token refresh response for chat {chat_id} carried no token ({normalized.kind.value})")
            return None

        self.tokens.store_tokens(chat_id, normalized.tokens)
        logger.info(f"Refreshed access token for chat {chat_id}")
        return normalized.tokens

    def _to_result(self, response: httpx.Response) -> ApiResult:
        body = self._decode(response)
        status_code = response.status_code

        if status_code < 400:
            if isinstance(body, dict) and isinstance(body.get("status", body.get("success")), bool):
                ok = body.get("status", body.get("success"))
                message = body.get("message") if isinstance(body.get("message"), str) else None
                return ApiResult(
                    success=ok,
                    message=redact_sensitive(message or ("OK" if ok else extract_error_message(body, "Request failed"))),
                    data=body.get("data"),
                    error=None if ok else redact_sensitive(body),
                    status_code=status_code,
                    error_kind=None if ok else ErrorKind.UPSTREAM,
                    outcome=Outcome.SUCCESS if ok else Outcome.FAILURE,
                    body=body,
                )
            return ApiResult(success=True, message="OK", data=body, status_code=status_code, body=body)

        if status_code in (401, 403):
            kind = ErrorKind.AUTH
            default = "Your session has expired. Please log in again with /login."
        elif status_code in (400, 422):
            kind = ErrorKind.VALIDATION
            default = "The request was rejected as invalid."
        else:
            kind = ErrorKind.UPSTREAM
            default = f"The payments service returned an error ({status_code})."

        message = redact_sensitive(extract_error_message(body, default))
        logger.error(f"Request failed with status {status_code}: {message}")
        return ApiResult.failure(
            message=message,
            error_kind=kind,
            status_code=status_code,
            error=redact_sensitive(body) if body is not None else None,
            body=body,
        )
