"""
Inline keyboard layouts.

Callback data is always ``tag:arg`` so the message processor can route button
presses on the tag alone.
"""

from typing import List
from paybot.schemas.core import InlineKeyboard, Wallet
from paybot.utils.response_utils import shorten_address


def button(text: str, tag: str, arg: str = "") -> dict:
    return {"text": text, "callback_data": f"{tag}:{arg}" if arg else tag}


def start_keyboard() -> InlineKeyboard:
    return [
        [button("🔑 Login", "menu", "login")],
        [button("📋 Menu", "menu", "menu"), button("❓ Help", "menu", "help")],
    ]


def login_keyboard() -> InlineKeyboard:
    return [[button("🔑 Login", "menu", "login")]]


def main_menu_keyboard() -> InlineKeyboard:
    return [
        [button("💰 Balance", "menu", "balance"), button("👛 Wallets", "menu", "wallets")],
        [button("💸 Send", "menu", "send"), button("📥 Deposit", "menu", "deposit")],
        [button("📜 History", "menu", "transfers"), button("👤 Profile", "menu", "profile")],
        [button("❓ Help", "menu", "help"), button("🚪 Logout", "menu", "logout")],
    ]


def transfer_menu_keyboard() -> InlineKeyboard:
    return [
        [button("📧 Send to Email", "transfer", "email")],
        [button("🔐 Send to Wallet", "transfer", "wallet")],
        [button("🏦 Withdraw to Bank", "transfer", "bank")],
        [button("❌ Cancel", "cancel")],
    ]


def network_keyboard(networks: List[str]) -> InlineKeyboard:
    rows = [[button(network, "network", network)] for network in networks]
    rows.append([button("❌ Cancel", "cancel")])
    return rows


def skip_message_keyboard() -> InlineKeyboard:
    return [[button("⏭ Skip", "skip")], [button("❌ Cancel", "cancel")]]


def cancel_keyboard() -> InlineKeyboard:
    return [[button("❌ Cancel", "cancel")]]


def confirm_keyboard(mode: str) -> InlineKeyboard:
    return [
        [button("✅ Confirm Transfer", "confirm", mode)],
        [button("❌ Cancel", "cancel")],
    ]


def default_wallet_keyboard(wallets: List[Wallet]) -> InlineKeyboard:
    rows = []
    for wallet in wallets:
        label = f"{wallet.network}: {shorten_address(wallet.address, 6, 4)}"
        if wallet.is_default:
            label = f"✅ {label}"
        rows.append([button(label, "wallet_default", wallet.id)])
    return rows
