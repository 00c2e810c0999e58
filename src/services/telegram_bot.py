"""
Telegram bot trigger: a "Run" button that builds the agenda on demand.
"""

import asyncio
from collections.abc import Awaitable, Callable

from core.config import AppConfig
from core.logging import get_logger
from models.events import AgendaResult
from services.pipeline import run_agenda
from services.telegram import TelegramError, TelegramService

logger = get_logger(__name__)

RUN_CALLBACK = "run_agenda"
START_TEXT = "Press the button to analyze today's schedule:"
RUN_BUTTON_TEXT = "Run"
WORKING_TEXT = "Analyzing the schedule. This can take up to 2 minutes..."
TIMEOUT_TEXT = "The process failed. Please try again"

RUN_TIMEOUT = 10 * 60  # seconds
POLL_TIMEOUT = 30  # seconds, long polling
POLL_INTERVAL = 2  # seconds between polls

START_KEYBOARD = {
    "inline_keyboard": [[{"text": RUN_BUTTON_TEXT, "callback_data": RUN_CALLBACK}]]
}

AgendaRunner = Callable[[AppConfig], Awaitable[AgendaResult]]


async def _run_without_delivery(config: AppConfig) -> AgendaResult:
    return await run_agenda(config, deliver=False)


class TelegramBot:
    """Long-polls getUpdates and answers /start and the run button."""

    def __init__(
        self,
        config: AppConfig,
        telegram: TelegramService | None = None,
        runner: AgendaRunner = _run_without_delivery,
    ):
        self.config = config
        self.telegram = telegram or TelegramService(config.telegram)
        self.runner = runner
        self.last_update_id = 0
        self._running = False

    async def send_start_message(self, chat_id: int | str | None = None) -> None:
        try:
            await self.telegram.send_message(START_TEXT, chat_id, reply_markup=START_KEYBOARD)
        except TelegramError as e:
            logger.error("Failed to send start message", error=str(e))

    async def _reply(self, chat_id: int | str, text: str) -> None:
        try:
            await self.telegram.send_message(text, chat_id)
        except TelegramError as e:
            logger.error("Failed to send message", chat_id=chat_id, error=str(e))

    async def handle_update(self, update: dict) -> None:
        if "callback_query" in update:
            await self.handle_callback_query(update["callback_query"])
            return

        message = update.get("message") or {}
        if message.get("text") == "/start":
            await self.send_start_message(message["chat"]["id"])

    async def handle_callback_query(self, query: dict) -> None:
        if query.get("data") != RUN_CALLBACK:
            return

        chat = (query.get("message") or {}).get("chat") or {}
        chat_id = chat.get("id") or self.config.telegram.chat_id

        try:
            await self.telegram.call(
                "answerCallbackQuery",
                {"callback_query_id": query["id"], "text": "Starting..."},
            )
        except TelegramError as e:
            logger.warning("Failed to answer callback query", error=str(e))
        await self._reply(chat_id, WORKING_TEXT)

        try:
            result = await asyncio.wait_for(self.runner(self.config), timeout=RUN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.error("Agenda run timed out", timeout_seconds=RUN_TIMEOUT)
            await self._reply(chat_id, TIMEOUT_TEXT)
        except Exception as e:
            logger.exception("Agenda run failed")
            await self._reply(chat_id, f"Errors: {e}")
        else:
            await self._reply(chat_id, result.message)
            if result.errors:
                await self._reply(chat_id, "Errors: " + "; ".join(result.errors))

        await self.send_start_message(chat_id)

    async def poll_once(self) -> None:
        """Fetch pending updates and handle them in order."""
        updates = await self.telegram.call(
            "getUpdates",
            {"offset": self.last_update_id, "timeout": POLL_TIMEOUT},
            timeout=POLL_TIMEOUT + 10,
        )
        for update in updates or []:
            # Offset moves before handling; a failing update is not fetched again
            self.last_update_id = update["update_id"] + 1
            await self.handle_update(update)

    async def run(self) -> None:
        """Poll until stop() is called."""
        self._running = True
        logger.info("Telegram bot polling started")
        await self.send_start_message()

        while self._running:
            try:
                await self.poll_once()
            except TelegramError as e:
                logger.error("Polling error", error=str(e))
            except Exception:
                logger.exception("Unexpected error while handling updates")
            await asyncio.sleep(POLL_INTERVAL)

        await self.telegram.close()
        logger.info("Telegram bot polling stopped")

    def stop(self) -> None:
        self._running = False
