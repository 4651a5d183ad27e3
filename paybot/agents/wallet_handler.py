#!/usr/bin/env python3
"""
Wallet Handler Module
Handles balance, wallet listing, deposit addresses and the default wallet.
"""

from typing import List, Optional
from paybot.agents.bot_context import ChatContext
from paybot.agents.events import Action
from paybot.schemas.core import Wallet, WalletBalance
from paybot.utils import keyboards
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import escape_markdown

logger = get_logger("wallet_handler")


def format_balances(balances: List[WalletBalance]) -> str:
    text = "💰 *Your Wallet Balances*\n\n"
    for balance in balances:
        text += f"*{escape_markdown(balance.asset)}* on {escape_markdown(balance.network)}:\n"
        text += f"  Total: {balance.balance:.6f}\n"
        text += f"  Available: {balance.available_balance:.6f}\n\n"
    text += "Use /deposit to get deposit address or /send to transfer funds."
    return text


class WalletHandler:
    """Wallet and balance commands."""

    async def balance(self, chat: ChatContext) -> None:
        loading_id = await chat.loading("Fetching wallet balances...")
        result = await chat.bot.wallets.get_wallet_balances(chat.chat_id)
        await chat.delete(loading_id)

        if not result.success:
            await chat.reply(f"❌ Failed to fetch balances: {result.message}")
            return
        if not result.data:
            await chat.reply(
                "📭 You don't have any wallet balances yet.\n\n"
                "Use /deposit to get deposit address to add funds to your wallet."
            )
            return
        await chat.reply(format_balances(result.data), markdown=True)

    async def wallets(self, chat: ChatContext) -> None:
        loading_id = await chat.loading("Fetching your wallets...")
        result = await chat.bot.wallets.get_wallets(chat.chat_id)
        default_result = await chat.bot.wallets.get_default_wallet(chat.chat_id) if result.success else None
        await chat.delete(loading_id)

        if not result.success:
            await chat.reply(f"❌ Failed to fetch wallets: {result.message}")
            return
        wallets: List[Wallet] = result.data or []
        if not wallets:
            await chat.reply(
                "📭 You don't have any wallets yet.\n\n"
                "This is unusual. Please contact Copperx support for assistance."
            )
            return

        default_id: Optional[str] = None
        if default_result is not None and isinstance(default_result.data, Wallet):
            default_id = default_result.data.id

        text = "🔐 *Your Wallets*\n\n"
        for wallet in wallets:
            marker = " ✅ (Default)" if wallet.id == default_id or (default_id is None and wallet.is_default) else ""
            text += f"*{escape_markdown(wallet.network)}*{marker}\n"
            text += f"Address: `{wallet.address}`\n\n"
        text += "Use /set\\_default\\_wallet to change your default wallet."
        await chat.reply(text, markdown=True)

    async def deposit(self, chat: ChatContext) -> None:
        loading_id = await chat.loading("Fetching deposit information...")
        result = await chat.bot.wallets.get_wallets(chat.chat_id)
        await chat.delete(loading_id)

        if not result.success or not result.data:
            await chat.reply("❌ Failed to fetch deposit addresses. Please try again later or contact support.")
            return

        asset = chat.bot.settings.default_asset
        text = "📥 *Deposit Information*\n\n"
        text += f"You can deposit {asset} to any of the following addresses:\n\n"
        for wallet in result.data:
            text += f"*{escape_markdown(wallet.network)}* Network\n"
            text += f"Address: `{wallet.address}`\n\n"
        text += (
            "⚠️ *Important Notes*:\n"
            f"- Only send {asset} to these addresses\n"
            "- Ensure you're using the correct network\n"
            "- You'll receive a notification when deposit is confirmed"
        )
        await chat.reply(text, markdown=True)

    async def choose_default_wallet(self, chat: ChatContext) -> None:
        loading_id = await chat.loading("Fetching your wallets...")
        result = await chat.bot.wallets.get_wallets(chat.chat_id)
        await chat.delete(loading_id)

        if not result.success or not result.data:
            await chat.reply("❌ Failed to fetch wallets. Please try again later or contact support.")
            return
        await chat.reply("Select a wallet to set as default:", keyboards.default_wallet_keyboard(result.data))

    async def set_default_wallet(self, chat: ChatContext, action: Action) -> None:
        wallet_id = action.arg
        if not wallet_id:
            await chat.reply("❌ No wallet selected. Use /set_default_wallet to try again.")
            return

        await chat.edit(action.message_id, "Setting default wallet...")
        result = await chat.bot.wallets.set_default_wallet(chat.chat_id, wallet_id)
        if result.success:
            network = result.data.network if isinstance(result.data, Wallet) else "selected"
            await chat.edit(action.message_id, f"✅ Default wallet set to {network} network successfully!")
        else:
            await chat.edit(action.message_id, f"❌ Failed to set default wallet: {result.message or 'Unknown error'}")
