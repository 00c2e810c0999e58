#!/usr/bin/env python3
"""
Run the Telegram bot that builds the agenda when its button is pressed.

Usage:
    uv run python src/scripts/run_bot.py
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import LOG_LEVEL, ConfigError, load_config
from core.logging import setup_logging
from services.telegram_bot import TelegramBot


async def main() -> int:
    """Main entry point."""
    setup_logging(LOG_LEVEL)

    try:
        config = load_config()
    except ConfigError as e:
        print(f"\n{e}")
        return 2

    bot = TelegramBot(config)
    if not await bot.telegram.test_connection():
        print("\nTelegram rejected the bot token, check TELEGRAM_BOT_TOKEN")
        await bot.telegram.close()
        return 1

    print("Bot started, press Ctrl+C to stop")
    try:
        await bot.run()
    except asyncio.CancelledError:
        bot.stop()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nStopped")
