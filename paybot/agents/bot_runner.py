#!/usr/bin/env python3
"""
Long-polling runner: fetches Telegram updates and feeds them to the message
processor. Used when no public webhook URL is available.
"""

import asyncio
from typing import Optional
from paybot.agents.bot_context import BotContext, build_bot_context
from paybot.agents.message_processor import MessageProcessor
from paybot.utils.logger import get_logger

logger = get_logger("bot_runner")


class BotRunner:
    """Polls getUpdates and dispatches each update in order."""

    def __init__(self, bot: Optional[BotContext] = None, poll_timeout: int = 25, idle_delay: float = 1.0):
        self.bot = bot or build_bot_context()
        self.processor = MessageProcessor(self.bot)
        self.poll_timeout = poll_timeout
        self.idle_delay = idle_delay
        self.offset: Optional[int] = None
        self._running = False

    def stop(self) -> None:
        self._running = False

    async def prepare(self) -> bool:
        """Remove any webhook so getUpdates receives updates."""
        messenger = self.bot.messenger
        info = await messenger.get_webhook_info()
        if info.get("url"):
            logger.info(f"Removing webhook {info['url']} before polling")
            return await messenger.delete_webhook()
        return True

    async def poll_once(self) -> int:
        """Fetch one batch and dispatch it. Returns the number of updates handled."""
        updates, next_offset = await self.bot.messenger.get_updates(self.offset, timeout=self.poll_timeout)
        handled = 0
        for update in updates:
            try:
                if await self.processor.process_update(update):
                    handled += 1
            except Exception as e:
                logger.error(f"Failed to process update {update.get('update_id')}: {e}")
        if updates:
            self.offset = next_offset
        return handled

    async def run(self) -> None:
        if not self.bot.settings.telegram_enabled:
            logger.error("TELEGRAM_BOT_TOKEN not configured; cannot start polling")
            return

        await self.prepare()
        self._running = True
        logger.info("Telegram long polling started")
        try:
            while self._running:
                handled = await self.poll_once()
                if not handled:
                    await asyncio.sleep(self.idle_delay)
        finally:
            self.bot.notifications.disconnect_all()
            logger.info("Telegram long polling stopped")
