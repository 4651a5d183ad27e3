#!/usr/bin/env python3
"""
Transfer Handler - collects transfer details one message at a time, shows a
confirmation summary and submits exactly one transfer request.

Collected fields live in the session's scratch data. The next field to ask for
is always the first required field that has not been collected yet, so the
order is fixed per mode:

- email:  email -> network -> amount -> message
- wallet: address -> network -> amount
- bank:   name -> account_number -> routing_number -> bank_name -> amount

Starting a flow, cancelling and submitting all clear the scratch data.
"""

import re
from typing import Any, Dict, List, Optional
from paybot.agents.bot_context import ChatContext
from paybot.agents.events import Action
from paybot.schemas.core import (
    ApiResult,
    BankTransferRequest,
    BotState,
    EmailTransferRequest,
    Transfer,
    WalletTransferRequest,
)
from paybot.utils import keyboards
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import (
    escape_markdown,
    format_timestamp,
    mask_account_number,
    shorten_address,
)
from paybot.utils.validators import is_valid_email, is_valid_wallet_address, parse_amount

logger = get_logger("transfer_handler")

EMAIL = "email"
WALLET = "wallet"
BANK = "bank"

REQUIRED_FIELDS: Dict[str, tuple] = {
    EMAIL: ("email", "network", "amount", "message"),
    WALLET: ("address", "network", "amount"),
    BANK: ("name", "account_number", "routing_number", "bank_name", "amount"),
}

# Fields that count as collected even when empty
OPTIONAL_FIELDS = frozenset({"message"})

STATE_BY_MODE = {
    EMAIL: BotState.TRANSFER_EMAIL,
    WALLET: BotState.TRANSFER_WALLET,
    BANK: BotState.TRANSFER_BANK,
}
MODE_BY_STATE = {state: mode for mode, state in STATE_BY_MODE.items()}

NETWORKS_KEY = "available_networks"
SKIP_WORD = "skip"

_DIGITS_RE = re.compile(r"^[0-9]+$")

BANK_PROMPTS = {
    "name": "Enter the account holder's full name:",
    "account_number": "Enter the account number:",
    "routing_number": "Enter the routing number:",
    "bank_name": "Enter the bank name:",
}


def format_amount(amount: Any) -> str:
    try:
        return f"{float(amount):f}".rstrip("0").rstrip(".")
    except (TypeError, ValueError):
        return str(amount)


class TransferHandler:
    """Transfer flow accumulator for email, wallet and bank transfers."""

    # Scratch helpers

    def _collected(self, chat: ChatContext, key: str) -> bool:
        sessions = chat.bot.sessions
        if key in OPTIONAL_FIELDS:
            return sessions.has_temp_data(chat.chat_id, key)
        value = sessions.get_temp_data(chat.chat_id, key)
        return value is not None and value != ""

    def next_field(self, chat: ChatContext, mode: str) -> Optional[str]:
        """First required field for the mode that is still missing, or None when complete."""
        for key in REQUIRED_FIELDS[mode]:
            if not self._collected(chat, key):
                return key
        return None

    def _fields(self, chat: ChatContext, mode: str) -> Dict[str, Any]:
        return {key: chat.bot.sessions.get_temp_data(chat.chat_id, key) or "" for key in REQUIRED_FIELDS[mode]}

    def _store(self, chat: ChatContext, key: str, value: Any) -> None:
        chat.bot.sessions.set_temp_data(chat.chat_id, key, value)

    def _reset(self, chat: ChatContext, state: BotState) -> None:
        chat.bot.sessions.clear_temp_data(chat.chat_id)
        chat.set_state(state)

    # Entry points

    async def send(self, chat: ChatContext) -> None:
        """/send: open the transfer type menu with a clean scratch map."""
        self._reset(chat, BotState.TRANSFER_MENU)
        await chat.reply(
            "💸 *Send Funds*\n\nHow would you like to send funds?",
            keyboards.transfer_menu_keyboard(),
            markdown=True,
        )

    async def select_type(self, chat: ChatContext, action: Action) -> None:
        mode = action.arg
        if mode not in STATE_BY_MODE:
            self._reset(chat, BotState.MAIN_MENU)
            await chat.edit(action.message_id, "❌ Invalid option. Please try again with /send.")
            return

        self._reset(chat, STATE_BY_MODE[mode])
        logger.info(f"Chat {chat.chat_id} started a {mode} transfer")

        if mode == EMAIL:
            await chat.edit(
                action.message_id,
                "📧 *Send to Email*\n\nPlease enter the recipient's email address:",
                keyboards.cancel_keyboard(),
                markdown=True,
            )
        elif mode == WALLET:
            await chat.edit(
                action.message_id,
                "🔐 *Send to Wallet*\n\nPlease enter the recipient's wallet address:",
                keyboards.cancel_keyboard(),
                markdown=True,
            )
        else:
            await chat.edit(
                action.message_id,
                "🏦 *Withdraw to Bank*\n\n"
                "You will be asked for:\n"
                "1. Account holder name\n"
                "2. Account number\n"
                "3. Routing number\n"
                "4. Bank name\n\n"
                + BANK_PROMPTS["name"],
                keyboards.cancel_keyboard(),
                markdown=True,
            )

    async def cancel(self, chat: ChatContext, action: Optional[Action] = None) -> None:
        """Discard every collected field and return to the main menu. No API call."""
        self._reset(chat, BotState.MAIN_MENU)
        logger.info(f"Chat {chat.chat_id} cancelled the transfer")
        text = "✅ Transfer cancelled. Returning to main menu."
        if action is not None:
            await chat.edit(action.message_id, text, keyboards.main_menu_keyboard())
        else:
            await chat.reply(text, keyboards.main_menu_keyboard())

    # Free text

    async def handle_text(self, chat: ChatContext, text: str) -> None:
        mode = MODE_BY_STATE.get(chat.state)
        if mode is None:
            logger.warning(f"Transfer text received outside a transfer state for chat {chat.chat_id}")
            return

        field = self.next_field(chat, mode)
        text = text.strip()

        if field is None:
            await chat.reply("Please confirm or cancel the transfer using the buttons below.")
            await self.show_confirmation(chat, mode)
        elif field in ("email", "address"):
            await self._collect_recipient(chat, mode, field, text)
        elif field == "network":
            await self._collect_typed_network(chat, mode, text)
        elif field == "amount":
            await self._collect_amount(chat, mode, text)
        elif field == "message":
            self._store(chat, "message", "" if text.lower() == SKIP_WORD else text)
            await self.show_confirmation(chat, mode)
        else:
            await self._collect_bank_field(chat, field, text)

    async def _collect_recipient(self, chat: ChatContext, mode: str, field: str, text: str) -> None:
        if field == "email":
            if not is_valid_email(text):
                await chat.reply("❌ Invalid email format. Please enter a valid email address.")
                return
        elif not is_valid_wallet_address(text, chat.bot.settings.min_wallet_address_length):
            await chat.reply("❌ Invalid wallet address. Please enter a valid wallet address.")
            return

        self._store(chat, field, text)
        await self._prompt_network(chat)

    async def _prompt_network(self, chat: ChatContext) -> None:
        result = await chat.bot.wallets.get_wallet_balances(chat.chat_id)
        if not result.success:
            self._reset(chat, BotState.MAIN_MENU)
            await chat.reply(f"❌ Could not fetch your balances: {result.message}", keyboards.main_menu_keyboard())
            return

        balances = result.data or []
        networks = chat.bot.wallets.networks(balances)
        if not networks:
            self._reset(chat, BotState.MAIN_MENU)
            await chat.reply(
                "❌ You don't have any available balance. Please deposit funds first.",
                keyboards.main_menu_keyboard(),
            )
            return

        self._store(chat, NETWORKS_KEY, networks)
        text = "Your available balances:\n\n"
        for balance in balances:
            text += f"{balance.available_balance:.6f} {balance.asset} on {balance.network}\n"
        text += "\nSelect the network you want to use:"
        await chat.reply(text, keyboards.network_keyboard(networks))

    async def _collect_typed_network(self, chat: ChatContext, mode: str, text: str) -> None:
        networks: List[str] = chat.bot.sessions.get_temp_data(chat.chat_id, NETWORKS_KEY) or []
        match = next((n for n in networks if n.lower() == text.lower()), None)
        if match is None:
            await chat.reply("Please select the network using the buttons above.", keyboards.network_keyboard(networks))
            return
        await self._network_chosen(chat, mode, match, None)

    async def select_network(self, chat: ChatContext, action: Action) -> None:
        mode = MODE_BY_STATE.get(chat.state)
        if mode not in (EMAIL, WALLET) or self.next_field(chat, mode) != "network":
            await chat.reply("That network selection is no longer active. Continue with the current step or /cancel.")
            return
        networks = chat.bot.sessions.get_temp_data(chat.chat_id, NETWORKS_KEY) or []
        if networks and action.arg not in networks:
            await chat.reply("❌ Unknown network. Please pick one of the listed networks.")
            return
        await self._network_chosen(chat, mode, action.arg, action.message_id)

    async def _network_chosen(self, chat: ChatContext, mode: str, network: str, message_id: Optional[int]) -> None:
        self._store(chat, "network", network)
        asset = chat.bot.settings.default_asset
        verb = "send" if mode == EMAIL else "withdraw"
        await chat.edit(message_id, f"Selected network: {network}\n\nPlease enter the amount of {asset} to {verb}:")

    async def _collect_amount(self, chat: ChatContext, mode: str, text: str) -> None:
        amount = parse_amount(text)
        if amount is None:
            await chat.reply("❌ Please enter a valid amount greater than 0.")
            return

        self._store(chat, "amount", amount)
        if mode == EMAIL:
            await chat.reply(
                "Please enter an optional message for this transfer, or type 'skip' to proceed without a message:",
                keyboards.skip_message_keyboard(),
            )
            return
        await self.show_confirmation(chat, mode)

    async def skip_message(self, chat: ChatContext, action: Action) -> None:
        if chat.state != BotState.TRANSFER_EMAIL or self.next_field(chat, EMAIL) != "message":
            await chat.reply("There is no message to skip right now.")
            return
        self._store(chat, "message", "")
        await self.show_confirmation(chat, EMAIL)

    async def _collect_bank_field(self, chat: ChatContext, field: str, text: str) -> None:
        value = text
        if field in ("account_number", "routing_number"):
            value = re.sub(r"[\s-]", "", text)
            if not _DIGITS_RE.match(value):
                label = "account number" if field == "account_number" else "routing number"
                await chat.reply(f"❌ Invalid {label}. Please enter digits only.")
                return
        elif not value:
            await chat.reply(BANK_PROMPTS[field])
            return

        self._store(chat, field, value)
        following = self.next_field(chat, BANK)
        if following in BANK_PROMPTS:
            await chat.reply(BANK_PROMPTS[following], keyboards.cancel_keyboard())
        else:
            asset = chat.bot.settings.default_asset
            await chat.reply(f"Please enter the amount of {asset} to withdraw:", keyboards.cancel_keyboard())

    # Confirmation and submission

    def confirmation_summary(self, chat: ChatContext, mode: str) -> str:
        fields = self._fields(chat, mode)
        asset = chat.bot.settings.default_asset
        amount = format_amount(fields["amount"])
        if mode == EMAIL:
            return (
                "📧 *Email Transfer Confirmation*\n\n"
                f"Recipient: {escape_markdown(fields['email'])}\n"
                f"Amount: {amount} {asset}\n"
                f"Network: {escape_markdown(fields['network'])}\n"
                f"Message: {escape_markdown(fields['message'] or 'None')}\n\n"
                "Please confirm this transfer:"
            )
        if mode == WALLET:
            return (
                "🔐 *Wallet Transfer Confirmation*\n\n"
                f"Recipient Address: {escape_markdown(shorten_address(fields['address']))}\n"
                f"Amount: {amount} {asset}\n"
                f"Network: {escape_markdown(fields['network'])}\n\n"
                "Please confirm this transfer:"
            )
        return (
            "🏦 *Bank Withdrawal Confirmation*\n\n"
            f"Name: {escape_markdown(fields['name'])}\n"
            f"Account: {escape_markdown(mask_account_number(fields['account_number']))}\n"
            f"Bank: {escape_markdown(fields['bank_name'])}\n"
            f"Amount: {amount} {asset}\n\n"
            "Please confirm this withdrawal:"
        )

    async def show_confirmation(self, chat: ChatContext, mode: str) -> None:
        await chat.reply(self.confirmation_summary(chat, mode), keyboards.confirm_keyboard(mode), markdown=True)

    async def confirm(self, chat: ChatContext, action: Action) -> None:
        mode = MODE_BY_STATE.get(chat.state)
        if mode is None or action.arg != mode:
            await chat.reply("This confirmation does not match the transfer in progress. Continue or /cancel.")
            return

        missing = self.next_field(chat, mode)
        if missing is not None:
            logger.warning(f"Confirm pressed with '{missing}' still missing for chat {chat.chat_id}")
            await chat.reply("❌ Transfer details are incomplete. Please finish the current step first.")
            return

        fields = self._fields(chat, mode)
        # Cleared before the call so a second confirm press finds nothing to submit
        self._reset(chat, BotState.MAIN_MENU)
        await chat.edit(action.message_id, f"🔄 Processing {mode} transfer...")

        result = await self._submit(chat, mode, fields)
        await chat.edit(action.message_id, self._result_text(mode, fields, result, chat.bot.settings.default_asset),
                        keyboards.main_menu_keyboard())

    async def _submit(self, chat: ChatContext, mode: str, fields: Dict[str, Any]) -> ApiResult:
        service = chat.bot.transfers
        asset = chat.bot.settings.default_asset
        amount = float(fields["amount"])
        if mode == EMAIL:
            return await service.send_email_transfer(chat.chat_id, EmailTransferRequest(
                asset=asset,
                network=fields["network"],
                amount=amount,
                email=fields["email"],
                message=fields["message"],
            ))
        if mode == WALLET:
            return await service.send_wallet_transfer(chat.chat_id, WalletTransferRequest(
                asset=asset,
                network=fields["network"],
                amount=amount,
                address=fields["address"],
            ))
        return await service.send_bank_transfer(chat.chat_id, BankTransferRequest(
            asset=asset,
            amount=amount,
            name=fields["name"],
            account_number=fields["account_number"],
            routing_number=fields["routing_number"],
            bank_name=fields["bank_name"],
        ))

    @staticmethod
    def _result_text(mode: str, fields: Dict[str, Any], result: ApiResult, asset: str) -> str:
        if not result.success:
            return (
                f"❌ Transfer failed: {result.message or 'Unknown error'}\n\n"
                "Please try again later or contact support."
            )
        amount = format_amount(fields["amount"])
        if mode == EMAIL:
            detail = f"Sent {amount} {asset} to {fields['email']} on {fields['network']} network."
        elif mode == WALLET:
            detail = f"Sent {amount} {asset} to wallet on {fields['network']} network."
        else:
            detail = f"Withdrawal of {amount} {asset} to {fields['bank_name']} initiated."
        transfer_id = result.data.get("id") if isinstance(result.data, dict) else None
        text = f"✅ Transfer successful!\n\n{detail}"
        if transfer_id:
            text += f"\nTransaction ID: {transfer_id}"
        return text

    # History

    async def history(self, chat: ChatContext) -> None:
        loading_id = await chat.loading("Fetching your transfer history...")
        result = await chat.bot.transfers.get_transfer_history(chat.chat_id, page=1, limit=10)
        await chat.delete(loading_id)

        if not result.success:
            await chat.reply(f"❌ Failed to fetch transfers: {result.message}")
            return
        transfers: List[Transfer] = result.data or []
        if not transfers:
            await chat.reply("📭 You don't have any transfers yet.\n\nUse /send to make your first transfer.")
            return

        lines = ["📜 *Recent Transfers*\n"]
        for transfer in transfers:
            recipient = transfer.to_email or (shorten_address(transfer.to_address, 6, 4) if transfer.to_address else "")
            line = f"• {format_amount(transfer.amount)} {transfer.asset} - {escape_markdown(transfer.type or 'transfer')}"
            if recipient:
                line += f" to {escape_markdown(recipient)}"
            line += f"\n  Status: {escape_markdown(transfer.status or 'unknown')} | {format_timestamp(transfer.created_at)}"
            lines.append(line)
        await chat.reply("\n".join(lines), markdown=True)
