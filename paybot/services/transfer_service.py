"""Transfer submission and history against the payments API."""

from paybot.schemas.core import (
    ApiResult,
    BankTransferRequest,
    EmailTransferRequest,
    Transfer,
    WalletTransferRequest,
)
from paybot.services.api_gateway import ApiGateway
from paybot.utils.logger import get_logger

logger = get_logger("transfer_service")


class TransferService:
    """Service class for transfer endpoints."""

    def __init__(self, gateway: ApiGateway):
        self.gateway = gateway

    async def get_transfer_history(self, chat_id: str, page: int = 1, limit: int = 10) -> ApiResult:
        result = await self.gateway.request(
            "GET", "/transfers", chat_id=chat_id, params={"page": page, "limit": limit}
        )
        if result.success:
            data = result.data
            items = (data.get("data") or []) if isinstance(data, dict) else (data or [])
            result.data = [Transfer.model_validate(t) for t in items if isinstance(t, dict)]
        return result

    async def send_email_transfer(self, chat_id: str, request: EmailTransferRequest) -> ApiResult:
        logger.info(f"Submitting email transfer of {request.amount} {request.asset} for chat {chat_id}")
        return await self.gateway.request(
            "POST", "/transfers/send", request.model_dump(), chat_id=chat_id
        )

    async def send_wallet_transfer(self, chat_id: str, request: WalletTransferRequest) -> ApiResult:
        logger.info(f"Submitting wallet transfer of {request.amount} {request.asset} for chat {chat_id}")
        return await self.gateway.request(
            "POST", "/transfers/wallet-withdraw", request.model_dump(), chat_id=chat_id
        )

    async def send_bank_transfer(self, chat_id: str, request: BankTransferRequest) -> ApiResult:
        logger.info(f"Submitting bank withdrawal of {request.amount} {request.asset} for chat {chat_id}")
        return await self.gateway.request(
            "POST", "/transfers/offramp", request.model_dump(by_alias=True), chat_id=chat_id
        )
