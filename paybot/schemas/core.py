"""
Core Pydantic schemas for the payments chat bot.
Provides type safety for chat sessions, tokens, gateway results and payments API data.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, Field


class BotState(str, Enum):
    """Conversation state attached to a chat session."""

    START = "start"
    AUTH_EMAIL = "auth_email"
    AUTH_OTP = "auth_otp"
    MAIN_MENU = "main_menu"
    TRANSFER_MENU = "transfer_menu"
    TRANSFER_EMAIL = "transfer_email"
    TRANSFER_WALLET = "transfer_wallet"
    TRANSFER_BANK = "transfer_bank"


TRANSFER_STATES = frozenset({
    BotState.TRANSFER_EMAIL,
    BotState.TRANSFER_WALLET,
    BotState.TRANSFER_BANK,
})


# Session Schemas
class Session(BaseModel):
    """Per-chat conversation session. Volatile, process lifetime only."""
    chat_id: str = Field(..., description="Messaging-platform chat id")
    email: Optional[str] = Field(None, description="Authenticated email")
    organization_id: Optional[str] = Field(None, description="Organization id; set only once logged in")
    current_state: BotState = Field(default=BotState.START)
    last_action: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    temp_data: Dict[str, Any] = Field(default_factory=dict, description="Flow-scoped scratch fields")


class TokenRecord(BaseModel):
    """Access token, refresh token and expiry held for one chat."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = Field(None, description="Access token expiry, epoch millis")


class AuthTokens(BaseModel):
    """Tokens extracted from an authentication or refresh response."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


# Gateway Schemas
class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    UNREACHABLE = "unreachable"
    UPSTREAM = "upstream"
    UNKNOWN_SHAPE = "unknown_shape"


class ApiResult(BaseModel):
    """Uniform result of every gateway call. Handlers never see transport exceptions."""
    success: bool
    message: str = ""
    data: Any = None
    error: Any = None
    status_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    outcome: Outcome = Outcome.SUCCESS
    body: Any = Field(default=None, repr=False, description="Raw decoded response body")

    @classmethod
    def failure(cls, message: str, error_kind: ErrorKind, status_code: Optional[int] = None,
                error: Any = None, body: Any = None) -> "ApiResult":
        return cls(
            success=False,
            message=message,
            error=error,
            status_code=status_code,
            error_kind=error_kind,
            outcome=Outcome.FAILURE,
            body=body,
        )


# Payments API Schemas
class User(BaseModel):
    """Payments API user profile."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    id: str = ""
    email: str = ""
    name: Optional[str] = None
    role: Optional[str] = None
    organization_id: Optional[str] = Field(None, alias="organizationId")


class Kyc(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str = ""
    status: str = ""
    type: Optional[str] = None


class Wallet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    id: str = ""
    network: str = ""
    address: str = ""
    is_default: bool = Field(False, alias="isDefault")


class WalletBalance(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    asset: str = "USDC"
    network: str = ""
    balance: float = 0.0
    available_balance: float = Field(0.0, alias="availableBalance")


class Transfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    id: str = ""
    amount: float = 0.0
    asset: str = "USDC"
    network: Optional[str] = None
    type: str = ""
    status: str = ""
    to_email: Optional[str] = Field(None, alias="toEmail")
    to_address: Optional[str] = Field(None, alias="toAddress")
    created_at: Optional[str] = Field(None, alias="createdAt")


class EmailTransferRequest(BaseModel):
    asset: str
    network: str
    amount: float
    email: str
    message: str = ""


class WalletTransferRequest(BaseModel):
    asset: str
    network: str
    amount: float
    address: str


class BankTransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    asset: str
    amount: float
    name: str
    account_number: str = Field(..., alias="accountNumber")
    routing_number: str = Field(..., alias="routingNumber")
    bank_name: str = Field(..., alias="bankName")


class DepositNotification(BaseModel):
    """Deposit event pushed to an organization's channel."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    amount: float
    asset: str = "USDC"
    network: Optional[str] = None
    address: Optional[str] = None
    tx_hash: Optional[str] = Field(None, alias="txHash")
    timestamp: Optional[str] = None


class NotificationEvent(BaseModel):
    """Envelope accepted by the notifications endpoint."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    organization_id: str = Field(..., alias="organizationId")
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


InlineKeyboard = List[List[Dict[str, str]]]
