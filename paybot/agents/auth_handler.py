#!/usr/bin/env python3
"""
Auth Handler Module
Handles /start, the email + OTP login flow, /logout and /profile.
"""

from typing import Any, List
from paybot.agents.bot_context import ChatContext
from paybot.schemas.core import ApiResult, BotState, ErrorKind, Kyc, Outcome, User
from paybot.utils import keyboards
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import escape_markdown
from paybot.utils.validators import is_valid_email, is_valid_otp

logger = get_logger("auth_handler")

LOGIN_EMAIL_KEY = "login_email"


def describe_otp_request_error(result: ApiResult) -> str:
    """Map an OTP request failure onto a user-facing reason."""
    message = result.message or "Unknown error"
    lowered = message.lower()
    if result.status_code == 429 or "rate limit" in lowered or "too many" in lowered:
        return "Too many attempts. Please wait before trying again."
    if result.status_code == 404 or "not found" in lowered or "doesn't exist" in lowered:
        return "Email not registered. Please check your email or register first."
    return message


def kyc_status_line(kycs: List[Kyc]) -> str:
    if any(kyc.status.lower() == "approved" for kyc in kycs):
        return "✅ KYC Status: Approved"
    return "⚠️ KYC Status: Not approved - Some features may be limited"


def _kyc_items(data: Any) -> List[Kyc]:
    if isinstance(data, dict):
        data = data.get("data", [])
    if not isinstance(data, list):
        return []
    return [Kyc.model_validate(item) for item in data if isinstance(item, dict)]


class AuthHandler:
    """Login lifecycle for one bot."""

    async def start(self, chat: ChatContext) -> None:
        chat.set_state(BotState.START)
        await chat.reply(
            "👋 *Welcome to the Copperx Payment Bot!*\n\n"
            "This bot allows you to manage your Copperx wallet, make transfers, "
            "and monitor your account.\n\n"
            "Please login to access all features, or browse the menu to learn more.",
            keyboards.start_keyboard(),
            markdown=True,
        )

    async def login(self, chat: ChatContext) -> None:
        if chat.is_authenticated and chat.bot.tokens.get_token(chat.chat_id):
            email = chat.session.email or "your account"
            await chat.reply(
                f"You are already logged in as {email}. Use /logout first to switch accounts.",
                keyboards.main_menu_keyboard(),
            )
            return
        if chat.is_authenticated:
            # Tokens were dropped after an unrecoverable 401
            chat.bot.notifications.unsubscribe(chat.session.organization_id, chat.chat_id)
            chat.bot.sessions.clear_session(chat.chat_id)
        chat.bot.sessions.clear_temp_data(chat.chat_id)
        chat.set_state(BotState.AUTH_EMAIL)
        await chat.reply("Please enter your email address to receive a one-time verification code.")

    async def logout(self, chat: ChatContext) -> None:
        bot = chat.bot
        organization_id = chat.session.organization_id
        bot.notifications.unsubscribe(organization_id, chat.chat_id)
        bot.auth.logout(chat.chat_id)
        bot.sessions.clear_session(chat.chat_id)
        logger.info(f"Chat {chat.chat_id} logged out")
        await chat.reply("You have been logged out successfully.", keyboards.login_keyboard())

    async def handle_email(self, chat: ChatContext, text: str) -> None:
        """AUTH_EMAIL: validate the address and request a one-time code."""
        email = text.strip()
        if not is_valid_email(email):
            await chat.reply("❌ Invalid email format. Please enter a valid email address.")
            return

        loading_id = await chat.loading("Requesting verification code...")
        result = await chat.bot.auth.request_email_otp(email)
        await chat.delete(loading_id)

        if result.outcome == Outcome.UNKNOWN:
            # Delivery unconfirmed; the user decides whether a code arrived
            chat.bot.sessions.set_temp_data(chat.chat_id, LOGIN_EMAIL_KEY, email)
            chat.set_state(BotState.AUTH_OTP)
            await chat.reply(
                f"⚠️ We could not confirm that a verification code was sent to {email}.\n\n"
                "If you received one, enter it now. Otherwise use /login to try again."
            )
            return

        if not result.success:
            logger.warning(f"OTP request failed for chat {chat.chat_id}: {result.message}")
            if result.error_kind == ErrorKind.UNREACHABLE:
                await chat.reply(f"❌ {result.message}")
                return
            await chat.reply(
                f"❌ Failed to send verification code: {describe_otp_request_error(result)}\n\n"
                f"Please try again or contact support at {chat.bot.settings.support_url}"
            )
            return

        chat.bot.sessions.set_temp_data(chat.chat_id, LOGIN_EMAIL_KEY, email)
        chat.set_state(BotState.AUTH_OTP)
        await chat.reply(
            f"✅ Verification code sent to {email}.\n\n"
            "Please enter the verification code to complete login.\n\n"
            "(Check your spam folder if you don't see it in your inbox)"
        )

    async def handle_otp(self, chat: ChatContext, text: str) -> None:
        """AUTH_OTP: verify the code, store tokens and the organization id."""
        bot = chat.bot
        email = bot.sessions.get_temp_data(chat.chat_id, LOGIN_EMAIL_KEY)
        if not email:
            chat.set_state(BotState.START)
            await chat.reply(
                "Session expired. Please start the login process again.",
                keyboards.login_keyboard(),
            )
            return

        otp = text.strip()
        if not is_valid_otp(otp):
            await chat.reply("The verification code should be a 4-8 digit number. Please check and try again.")
            return

        loading_id = await chat.loading("Verifying code...")
        result = await bot.auth.authenticate_with_otp(email, otp, chat.chat_id)
        await chat.delete(loading_id)

        if not result.success:
            logger.warning(f"OTP verification failed for chat {chat.chat_id}: {result.message}")
            await chat.reply(f"❌ Login failed: {result.message or 'Invalid code'}\n\nPlease try again.")
            return

        user = User.model_validate(result.data.get("user") or {})
        organization_id = await self._resolve_organization_id(chat, user)

        bot.sessions.set_session(
            chat.chat_id,
            email=user.email or email,
            organization_id=organization_id,
            current_state=BotState.MAIN_MENU,
            temp_data={},
        )
        logger.info(f"Chat {chat.chat_id} logged in")

        if user.organization_id:
            bot.notifications.subscribe(user.organization_id, chat.chat_id)

        kyc_line = ""
        kyc_result = await bot.auth.get_kyc_status(chat.chat_id)
        if kyc_result.success:
            kyc_line = kyc_status_line(_kyc_items(kyc_result.data))

        await chat.reply(
            f"🎉 Login successful! Welcome {escape_markdown(user.name or user.email or email)}!\n\n{kyc_line}",
            [[keyboards.button("📋 View Menu", "menu", "menu")],
             [keyboards.button("❓ Help", "menu", "help")]],
            markdown=True,
        )

    async def _resolve_organization_id(self, chat: ChatContext, user: User) -> str:
        """Organization id marks the session authenticated, so it must never be empty after login."""
        if user.organization_id:
            return user.organization_id

        profile = await chat.bot.auth.get_user_profile(chat.chat_id)
        if profile.success and isinstance(profile.data, dict):
            profile_user = User.model_validate(profile.data)
            if profile_user.organization_id:
                user.organization_id = profile_user.organization_id
                user.name = user.name or profile_user.name
                return profile_user.organization_id

        fallback = user.id or user.email or chat.chat_id
        logger.warning(f"No organization id returned for chat {chat.chat_id}; using account identifier instead")
        return fallback

    async def profile(self, chat: ChatContext) -> None:
        bot = chat.bot
        loading_id = await chat.loading("Fetching your profile...")
        result = await bot.auth.get_user_profile(chat.chat_id)
        if not result.success:
            await chat.delete(loading_id)
            await chat.reply(f"❌ Failed to fetch profile: {result.message}")
            return

        user = User.model_validate(result.data if isinstance(result.data, dict) else {})
        kyc_result = await bot.auth.get_kyc_status(chat.chat_id)
        await chat.delete(loading_id)

        lines: List[str] = [
            "👤 *Your Profile*\n",
            f"Email: {escape_markdown(user.email or chat.session.email or 'N/A')}",
        ]
        if user.name:
            lines.append(f"Name: {escape_markdown(user.name)}")
        if user.role:
            lines.append(f"Role: {escape_markdown(user.role)}")
        if kyc_result.success:
            lines.append("")
            lines.append(kyc_status_line(_kyc_items(kyc_result.data)))

        await chat.reply("\n".join(lines), keyboards.main_menu_keyboard(), markdown=True)
