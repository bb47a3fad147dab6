"""
Telegram Notifier - Art Blocks alerts
Dispatch to Telegram:
- Marketplace listing alerts
- Project birthday announcements
- Random art posts
- Replies to project queries
"""
import logging

from telegram import Bot
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

from artindexer.models import TOKENS_PER_PROJECT
from config import TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID

logger = logging.getLogger(__name__)

ARTBLOCKS_TOKEN_URL = "https://www.artblocks.io/token"
ARTBLOCKS_MEDIA_URL = "https://media.artblocks.io"
ARTBLOCKS_PROFILE_URL = "https://www.artblocks.io/user"


def token_page_url(contract: str, token_id: int) -> str:
    return f"{ARTBLOCKS_TOKEN_URL}/{contract}/{token_id}"


def token_image_url(token_id: int) -> str:
    return f"{ARTBLOCKS_MEDIA_URL}/{token_id}.png"


class TelegramNotifier:
    """
    Telegram notifier for the art indexer.

    Every send method returns True when the message went out and False when
    the notifier is disabled (no token / chat id) or Telegram refused it.
    """

    def __init__(self, bot_token: str = None, chat_id: str = None):
        self.bot_token = TELEGRAM_BOT_TOKEN if bot_token is None else bot_token
        self.chat_id = TELEGRAM_CHAT_ID if chat_id is None else chat_id
        self.enabled = bool(self.bot_token and self.chat_id)
        self.sent = 0
        self.failed = 0

        if self.enabled:
            self.bot = Bot(token=self.bot_token)
        else:
            self.bot = None

    async def send_listing(self, listing, metadata: dict, seller_text: str, url: str) -> bool:
        """Listing alert for one Reservoir ask."""
        name = escape_markdown(metadata.get('name') or f"#{listing.token_id}")
        artist = escape_markdown(metadata.get('artist') or '')
        collection = escape_markdown(metadata.get('collection_name') or '')

        message = f"🏷 *LIST* @ {listing.price:g} ETH\n\n"
        message += f"*{name}*\n"
        if collection and artist:
            message += f"{collection} by {artist}\n"
        message += f"\n👤 Seller: [{escape_markdown(seller_text)}]({ARTBLOCKS_PROFILE_URL}/{listing.maker})\n"
        message += f"🏪 Platform: {escape_markdown(listing.platform)}\n"
        if url:
            message += f"🔗 [View listing]({url})"

        return await self.send_message_async(message, preview=True)

    async def send_birthday(self, record, years: int) -> bool:
        plural = "year" if years == 1 else "years"
        message = f"🎂 *HAPPY BIRTHDAY {escape_markdown(record.name.upper())}!*\n\n"
        message += f"Launched {years} {plural} ago today"
        if record.created_at is not None:
            message += f" ({record.created_at:%Y-%m-%d})"
        message += f"\n🔗 [Random token]({token_page_url(record.contract, record.random_token_id())})"
        return await self.send_message_async(message, preview=True)

    async def send_project_token(self, record, token_id: int) -> bool:
        message = self._format_token(record, token_id)
        return await self.send_message_async(message, preview=True)

    async def reply(self, chat_id: str, result) -> bool:
        """Answer a project query (ProjectQueryResult) in the chat it came from."""
        if result.record is None or result.token_id is None:
            message = escape_markdown(result.message)
        else:
            message = self._format_token(result.record, result.token_id, details=result.details)
        return await self.send_message_async(message, chat_id=chat_id, preview=True)

    def _format_token(self, record, token_id: int, details: bool = False) -> str:
        invocation = token_id % TOKENS_PER_PROJECT
        message = f"🎨 *{escape_markdown(record.name)} #{invocation}*\n"
        message += f"🖼 [Image]({token_image_url(token_id)}) | "
        message += f"[Art Blocks]({token_page_url(record.contract, token_id)})"
        if details:
            status = "Open" if record.active else "Closed"
            message += f"\n\n📊 Project #{record.project_number}\n"
            minted = f"{record.invocations}"
            if record.max_invocations:
                minted += f" / {record.max_invocations}"
            message += f"Minted: {minted}\n"
            if record.curation_status:
                message += f"Curation: {escape_markdown(record.curation_status.title())}\n"
            message += f"Status: {status}"
            if record.created_at is not None:
                message += f"\nLaunched: {record.created_at:%Y-%m-%d}"
        return message

    async def send_message_async(self, message: str, chat_id: str = None, preview: bool = False) -> bool:
        """
        Send a simple text message to Telegram.
        """
        if not self.enabled:
            return False

        try:
            await self.bot.send_message(
                chat_id=chat_id or self.chat_id,
                text=message,
                parse_mode='Markdown',
                disable_web_page_preview=not preview
            )
            self.sent += 1
            return True
        except TelegramError as e:
            self.failed += 1
            logger.error(f"Telegram send error: {e}")
            return False

    def get_stats(self) -> dict:
        return {
            'enabled': self.enabled,
            'sent': self.sent,
            'failed': self.failed,
        }
