#!/usr/bin/env python3
"""
Message Processor Module
Routes normalized inbound events to handlers through one dispatch table keyed on
``(state, kind)``. ``kind`` is ``"text"`` for free text, the action tag for
button presses and ``"/name"`` for commands. ``ANY`` matches every state and is
consulted after the state-specific entry.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple
from paybot.agents.auth_handler import AuthHandler
from paybot.agents.bot_context import BotContext, ChatContext
from paybot.agents.events import Action, Command, FreeText, InboundEvent, normalize_update
from paybot.agents.menu_handler import MenuHandler
from paybot.agents.transfer_handler import TransferHandler
from paybot.agents.wallet_handler import WalletHandler
from paybot.schemas.core import BotState, TRANSFER_STATES
from paybot.utils import keyboards
from paybot.utils.config import OutOfStateActionPolicy
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import redact_sensitive

logger = get_logger("message_processor")

ANY = None

Handler = Callable[[ChatContext, InboundEvent], Awaitable[None]]
DispatchKey = Tuple[Optional[BotState], str]

APOLOGY = "❌ Sorry, something went wrong while handling that. Please try again or use /menu."
LOGIN_REQUIRED = "🔐 You need to log in first.\n\nPlease use /login to authenticate with your Copperx account."


class Route:
    """A dispatch table entry."""

    def __init__(self, handler: Handler, requires_auth: bool = False):
        self.handler = handler
        self.requires_auth = requires_auth


class MessageProcessor:
    """Normalizes updates, resolves the chat's state and runs the matching handler."""

    def __init__(self, bot: BotContext):
        self.bot = bot
        self.auth = AuthHandler()
        self.menus = MenuHandler()
        self.wallets = WalletHandler()
        self.transfers = TransferHandler()
        self.routes: Dict[DispatchKey, Route] = {}
        self._register_routes()

    # Table

    def register(self, states: Iterable[Optional[BotState]], kind: str, handler: Handler,
                 requires_auth: bool = False) -> None:
        for state in states:
            self.routes[(state, kind)] = Route(handler, requires_auth)

    def _register_routes(self) -> None:
        auth, menus, wallets, transfers = self.auth, self.menus, self.wallets, self.transfers

        # Commands work in every state
        commands = {
            "start": (lambda c, e: auth.start(c), False),
            "login": (lambda c, e: auth.login(c), False),
            "logout": (lambda c, e: auth.logout(c), False),
            "menu": (lambda c, e: menus.menu(c), False),
            "help": (lambda c, e: menus.help(c), False),
            "support": (lambda c, e: menus.support(c), False),
            "profile": (lambda c, e: auth.profile(c), True),
            "balance": (lambda c, e: wallets.balance(c), True),
            "wallets": (lambda c, e: wallets.wallets(c), True),
            "deposit": (lambda c, e: wallets.deposit(c), True),
            "set_default_wallet": (lambda c, e: wallets.choose_default_wallet(c), True),
            "send": (lambda c, e: transfers.send(c), True),
            "transfers": (lambda c, e: transfers.history(c), True),
            "cancel": (lambda c, e: self._cancel_command(c), False),
        }
        for name, (handler, requires_auth) in commands.items():
            self.register([ANY], f"/{name}", handler, requires_auth)

        # Free text is routed by state alone
        self.register([BotState.AUTH_EMAIL], "text", lambda c, e: auth.handle_email(c, e.text))
        self.register([BotState.AUTH_OTP], "text", lambda c, e: auth.handle_otp(c, e.text))
        self.register(TRANSFER_STATES, "text", lambda c, e: transfers.handle_text(c, e.text), True)

        # Menu buttons replay the command of the same name
        self.register([ANY], "menu", self._menu_action)

        self.register([BotState.MAIN_MENU, BotState.TRANSFER_MENU], "transfer",
                      lambda c, e: transfers.select_type(c, e), True)
        self.register([BotState.TRANSFER_EMAIL, BotState.TRANSFER_WALLET], "network",
                      lambda c, e: transfers.select_network(c, e), True)
        self.register([BotState.TRANSFER_EMAIL], "skip", lambda c, e: transfers.skip_message(c, e), True)
        self.register(TRANSFER_STATES, "confirm", lambda c, e: transfers.confirm(c, e), True)
        self.register(list(TRANSFER_STATES) + [BotState.TRANSFER_MENU], "cancel",
                      lambda c, e: transfers.cancel(c, e))
        self.register([BotState.MAIN_MENU, BotState.TRANSFER_MENU], "wallet_default",
                      lambda c, e: wallets.set_default_wallet(c, e), True)

    def resolve(self, state: BotState, kind: str) -> Optional[Route]:
        return self.routes.get((state, kind)) or self.routes.get((ANY, kind))

    # Entry points

    async def process_update(self, update: Dict[str, Any]) -> bool:
        """Handle one raw Telegram update. Returns False when the update was ignored."""
        event = normalize_update(update)
        if event is None:
            logger.debug(f"Ignoring update {update.get('update_id')}: nothing to handle")
            return False
        await self.dispatch(event)
        return True

    async def dispatch(self, event: InboundEvent) -> None:
        chat = ChatContext(self.bot, event.chat_id, event.message_id)
        state = chat.state
        kind = event.dispatch_key
        try:
            route = self.resolve(state, kind)
            if route is None:
                await self._unhandled(chat, state, event)
                return
            if route.requires_auth and not chat.is_authenticated:
                logger.info(f"Chat {chat.chat_id} needs to log in for '{kind}'")
                await chat.reply(LOGIN_REQUIRED, keyboards.login_keyboard())
                return
            logger.debug(f"Dispatching ({state.value}, {kind}) for chat {chat.chat_id}")
            await route.handler(chat, event)
        except Exception as e:
            logger.exception(f"Handler for ({state.value}, {kind}) failed in chat {chat.chat_id}: "
                             f"{redact_sensitive(str(e))}")
            await chat.reply(APOLOGY)
        finally:
            if isinstance(event, Action) and event.callback_id:
                await self.bot.messenger.answer_callback_query(event.callback_id)

    async def _menu_action(self, chat: ChatContext, event: Action) -> None:
        command = Command(chat_id=event.chat_id, name=event.arg or "menu", message_id=event.message_id)
        route = self.resolve(chat.state, command.dispatch_key)
        if route is None:
            logger.warning(f"Menu button '{event.arg}' has no command in chat {chat.chat_id}")
            await chat.reply("That option is not available. Use /menu to see what you can do.")
            return
        if route.requires_auth and not chat.is_authenticated:
            await chat.reply(LOGIN_REQUIRED, keyboards.login_keyboard())
            return
        await route.handler(chat, command)

    async def _cancel_command(self, chat: ChatContext) -> None:
        if chat.state in TRANSFER_STATES or chat.state == BotState.TRANSFER_MENU:
            await self.transfers.cancel(chat)
            return
        if chat.state in (BotState.AUTH_EMAIL, BotState.AUTH_OTP):
            self.bot.sessions.clear_temp_data(chat.chat_id)
            chat.set_state(BotState.START)
            await chat.reply("Login cancelled.", keyboards.start_keyboard())
            return
        await chat.reply("There is nothing to cancel.")

    # Missing (state, kind) combinations

    async def _unhandled(self, chat: ChatContext, state: BotState, event: InboundEvent) -> None:
        if isinstance(event, FreeText):
            logger.info(f"No text handler in state {state.value} for chat {chat.chat_id}")
            if chat.is_authenticated:
                await chat.reply("I didn't understand that. Use /menu to see available commands.",
                                 keyboards.main_menu_keyboard())
            else:
                await chat.reply("Please use /login to get started, or /help for more information.",
                                 keyboards.start_keyboard())
            return

        if isinstance(event, Command):
            logger.info(f"Unknown command /{event.name} from chat {chat.chat_id}")
            await chat.reply(f"Unknown command /{event.name}. Use /help to see available commands.")
            return

        await self._out_of_state_action(chat, state, event)

    async def _out_of_state_action(self, chat: ChatContext, state: BotState, event: Action) -> None:
        policy = self.bot.settings.out_of_state_action_policy
        logger.warning(f"Action '{event.tag}' has no handler in state {state.value} "
                       f"for chat {chat.chat_id}; policy={policy.value}")

        if policy == OutOfStateActionPolicy.IGNORE:
            return

        if policy == OutOfStateActionPolicy.CANCEL:
            self.bot.sessions.clear_temp_data(chat.chat_id)
            if chat.is_authenticated:
                chat.set_state(BotState.MAIN_MENU)
                await chat.reply("⚠️ That button is not valid right now. The current step was cancelled.",
                                 keyboards.main_menu_keyboard())
            else:
                chat.set_state(BotState.START)
                await chat.reply("⚠️ That button is not valid right now. The current step was cancelled.",
                                 keyboards.start_keyboard())
            return

        await chat.reply("⚠️ That button is not valid right now. Please finish or cancel the current step first.")
