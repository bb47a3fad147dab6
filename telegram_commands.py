"""
Telegram Command Handler
Answers project queries ("#12 fidenza", "#? open") and a few bot commands
from the authorized chat.
"""

import asyncio
import aiohttp
import logging
import random
from typing import Dict, Optional

from artindexer.errors import SourceUnavailable
from artindexer.query_handler import ProjectQueryResult
from config import TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID

logger = logging.getLogger(__name__)

HELP_TEXT = """
🎨 *ART BLOCKS BOT*

*Project queries:*
`#<n> <project>` - token n of a project, e.g. `#12 fidenza`
`#? <project>` - random token of a project
`#?` - random token of a random project
`#? open` - random token of a project still minting
Add `?details` for project details

*Commands:*
/project <n> - random token of Art Blocks project n, live from the subgraph
/status - Index status
/help - Show this message
"""


class TelegramCommandHandler:
    """Poll Telegram getUpdates and route messages to the project query handler."""

    def __init__(self, query_handler, telegram_notifier, builders: Dict = None, source=None,
                 bot_token: str = None, chat_id: str = None):
        """
        Args:
            query_handler: ProjectQueryHandler resolving "#..." messages
            telegram_notifier: TelegramNotifier used for replies
            builders: {family: ProjectIndexBuilder}, reported by /status
            source: ArtBlocksProjectSource for /project and upstream counts
        """
        self.query_handler = query_handler
        self.telegram = telegram_notifier
        self.builders = builders or {}
        self.source = source
        self.rng = random.Random()

        token = TELEGRAM_BOT_TOKEN if bot_token is None else bot_token
        chat = TELEGRAM_CHAT_ID if chat_id is None else chat_id
        self.bot_token = token.strip().strip('"').strip("'")
        self.authorized_chat_id = str(chat).strip().strip('"').strip("'")

        if not self.bot_token or not self.authorized_chat_id:
            logger.warning("Telegram bot token or chat ID missing. Commands disabled.")
            self.enabled = False
        else:
            self.enabled = True
            logger.info(f"Telegram commands enabled for chat {self.authorized_chat_id}")

        # Track last update ID to avoid processing duplicates
        self.last_update_id = 0
        self.poll_interval = 2.0
        self.queries_answered = 0
        self._running = False

    async def start_polling(self):
        """Start polling for messages (runs as background task)."""
        if not self.enabled:
            logger.info("Command handler disabled (missing config)")
            return

        logger.info("📱 Telegram command handler started")
        self._running = True

        while self._running:
            try:
                await self._poll_updates()
                await asyncio.sleep(self.poll_interval)
            except Exception as e:
                logger.error(f"Command polling error: {e}")
                await asyncio.sleep(5)

    def stop(self):
        self._running = False

    async def _poll_updates(self):
        """Poll Telegram for new messages."""
        url = f"https://api.telegram.org/bot{self.bot_token}/getUpdates"
        params = {
            'offset': self.last_update_id + 1,
            'timeout': 1,
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=5)) as resp:
                    if resp.status != 200:
                        logger.debug(f"getUpdates HTTP {resp.status}")
                        return

                    data = await resp.json()
                    if not data.get('ok'):
                        return

                    for update in data.get('result', []):
                        self.last_update_id = max(self.last_update_id, update['update_id'])
                        await self._process_update(update)

        except asyncio.TimeoutError:
            pass  # Normal timeout, continue polling
        except aiohttp.ClientError as e:
            logger.debug(f"Poll update error: {e}")

    async def _process_update(self, update: dict) -> Optional[bool]:
        """
        Process a single update.

        Returns:
            Result of the reply, or None when the message was ignored
        """
        message = update.get('message')
        if not message:
            return None

        chat_id = str(message.get('chat', {}).get('id', ''))
        text = (message.get('text') or '').strip()

        if chat_id != self.authorized_chat_id:
            logger.warning(f"Ignored message from unauthorized chat: {chat_id}")
            return None

        try:
            if text.startswith('#'):
                return await self._handle_query(chat_id, text)

            command = text.split()[0].lower() if text else ''
            if command in ('/help', '/start'):
                return await self.telegram.send_message_async(HELP_TEXT, chat_id=chat_id)
            if command == '/status':
                return await self._handle_status(chat_id)
            if command == '/project':
                return await self._handle_project(chat_id, text.split()[1:])
            return None

        except Exception as e:
            logger.error(f"Error processing update: {e}")
            return await self.telegram.send_message_async(f"❌ Error processing message: {e}", chat_id=chat_id)

    async def _handle_query(self, chat_id: str, text: str) -> Optional[bool]:
        result = await self.query_handler.handle(text)
        if result is None:
            logger.info(f"[QUERY] No project matched: {text}")
            return None
        self.queries_answered += 1
        return await self.telegram.reply(chat_id, result)

    async def _handle_project(self, chat_id: str, args: list) -> bool:
        """Handle /project [number], fetched live from the subgraph."""
        if self.source is None:
            return await self.telegram.send_message_async("📭 Project source not configured", chat_id=chat_id)
        try:
            project_number = int(args[0])
        except (IndexError, ValueError):
            return await self.telegram.send_message_async("❌ Usage: `/project [number]`", chat_id=chat_id)

        record = await self.source.fetch_project(project_number)
        if record is None:
            return await self.telegram.send_message_async(f"❌ Project {project_number} not found", chat_id=chat_id)

        self.queries_answered += 1
        result = ProjectQueryResult(record=record, token_id=record.random_token_id(self.rng), details=True)
        return await self.telegram.reply(chat_id, result)

    async def _handle_status(self, chat_id: str) -> bool:
        if not self.builders:
            return await self.telegram.send_message_async("📭 Project index not running", chat_id=chat_id)

        response = "📊 *INDEX STATUS*\n"
        for family, builder in self.builders.items():
            stats = builder.get_stats()
            response += f"\n*{family}*: {stats.get('published_projects', 0)} projects, "
            response += f"{stats.get('rebuilds_completed', 0)} ok / {stats.get('rebuilds_failed', 0)} failed"
            if stats.get('rebuilding'):
                response += " (rebuilding)"

        if self.source is not None:
            try:
                count = await self.source.fetch_project_count()
                response += f"\n\nCore projects on subgraph: {count}"
            except SourceUnavailable as e:
                logger.warning(f"[STATUS] Project count unavailable: {e}")

        response += f"\nQueries answered: {self.queries_answered}"
        return await self.telegram.send_message_async(response, chat_id=chat_id)
