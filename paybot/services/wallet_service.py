"""Wallet lookups against the payments API."""

from typing import List
from paybot.schemas.core import ApiResult, Wallet, WalletBalance
from paybot.services.api_gateway import ApiGateway
from paybot.utils.logger import get_logger

logger = get_logger("wallet_service")


def _as_list(data) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return data["data"]
    return []


class WalletService:
    """Service class for wallet and balance endpoints."""

    def __init__(self, gateway: ApiGateway):
        self.gateway = gateway

    async def get_wallets(self, chat_id: str) -> ApiResult:
        result = await self.gateway.request("GET", "/wallets", chat_id=chat_id)
        if result.success:
            result.data = [Wallet.model_validate(w) for w in _as_list(result.data)]
        return result

    async def get_wallet_balances(self, chat_id: str) -> ApiResult:
        result = await self.gateway.request("GET", "/wallets/balances", chat_id=chat_id)
        if result.success:
            result.data = [WalletBalance.model_validate(b) for b in _as_list(result.data)]
        return result

    async def get_default_wallet(self, chat_id: str) -> ApiResult:
        result = await self.gateway.request("GET", "/wallets/default", chat_id=chat_id)
        if result.success and isinstance(result.data, dict) and result.data.get("id"):
            result.data = Wallet.model_validate(result.data)
        return result

    async def set_default_wallet(self, chat_id: str, wallet_id: str) -> ApiResult:
        logger.info(f"Setting default wallet {wallet_id} for chat {chat_id}")
        result = await self.gateway.request("PUT", "/wallets/default", {"walletId": wallet_id}, chat_id=chat_id)
        if result.success and isinstance(result.data, dict) and result.data.get("id"):
            result.data = Wallet.model_validate(result.data)
        return result

    @staticmethod
    def networks(balances: List[WalletBalance]) -> List[str]:
        """Distinct networks in the order the API listed them."""
        seen: List[str] = []
        for balance in balances:
            if balance.network and balance.network not in seen:
                seen.append(balance.network)
        return seen
