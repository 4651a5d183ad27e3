#!/usr/bin/env python3
"""
Menu Handler Module
Static, auth-aware help screens: /menu, /help and /support.
"""

from paybot.agents.bot_context import ChatContext
from paybot.utils import keyboards


class MenuHandler:
    """Renders the menu, help and support screens."""

    async def menu(self, chat: ChatContext) -> None:
        if chat.is_authenticated:
            await chat.reply(
                "🔹 *Copperx Payment Bot Menu* 🔹\n\n"
                "*Account Commands*\n"
                "/profile - View your account profile\n"
                "/logout - Log out of your account\n\n"
                "*Wallet Commands*\n"
                "/balance - Check your wallet balances\n"
                "/wallets - View your wallet addresses\n"
                "/deposit - Get deposit instructions\n"
                "/set\\_default\\_wallet - Set your default wallet\n\n"
                "*Transfer Commands*\n"
                "/send - Send funds (email, wallet, bank)\n"
                "/transfers - View your transfer history\n\n"
                "*Help Commands*\n"
                "/help - Show help information\n"
                "/support - Get support information",
                keyboards.main_menu_keyboard(),
                markdown=True,
            )
            return

        await chat.reply(
            "🔹 *Copperx Payment Bot Menu* 🔹\n\n"
            "You are not logged in. Available commands:\n\n"
            "/login - Log in to your Copperx account\n"
            "/help - Show help information\n"
            "/support - Get support information",
            keyboards.login_keyboard(),
            markdown=True,
        )

    async def help(self, chat: ChatContext) -> None:
        text = (
            "📚 *Copperx Payment Bot Help* 📚\n\n"
            "This bot allows you to interact with your Copperx account directly through Telegram.\n\n"
        )
        if chat.is_authenticated:
            text += (
                "*Account Management*\n"
                "/profile - View your account profile\n"
                "/logout - Log out of your account\n\n"
                "*Wallet Management*\n"
                "/balance - Check your wallet balances\n"
                "/wallets - View your wallet addresses\n"
                "/deposit - Get deposit instructions\n"
                "/set\\_default\\_wallet - Set your default wallet\n\n"
                "*Fund Transfers*\n"
                "/send - Send funds to email, wallet, or bank\n"
                "/transfers - View your transfer history\n"
                "/cancel - Abandon the transfer in progress\n\n"
            )
        else:
            text += (
                "*Getting Started*\n"
                "Use /login to authenticate with your Copperx account.\n"
                "After logging in, you'll have access to all features of the bot.\n\n"
            )
        text += (
            "*Need More Help?*\n"
            "Use /support to get information about contacting Copperx support.\n\n"
            "*Useful Tips*\n"
            "- Keep your account secure by logging out when not in use\n"
            "- Double-check all transaction details before confirming\n"
            "- For depositing, make sure to use the correct network"
        )
        await chat.reply(text, markdown=True)

    async def support(self, chat: ChatContext) -> None:
        await chat.reply(
            "📞 *Copperx Support* 📞\n\n"
            "If you need assistance with your Copperx account or this bot, "
            "please contact us through one of the following channels:\n\n"
            "*Community Support*\n"
            f"Join our Telegram group: {chat.bot.settings.support_url}\n\n"
            "*Email Support*\n"
            "For account-specific issues: support@copperx.io\n\n"
            "A support representative will assist you as soon as possible.",
            markdown=True,
        )
