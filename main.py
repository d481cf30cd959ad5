#!/usr/bin/env python3
"""
Ghost Buster Bot - Main Entry Point
Removes group members who stayed silent longer than the chat's activity window
"""

import sys
import asyncio
import logging
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from pydantic import ValidationError
from telegram import Bot
from telegram.error import TelegramError

from ghostbuster.bot import GhostBusterBot
from ghostbuster.config import get_settings


async def send_crash_notice(error: Exception):
    settings = get_settings()
    if not settings.admin_user_id:
        return
    try:
        async with Bot(token=settings.telegram_bot_token) as bot:
            await bot.send_message(
                chat_id=settings.admin_user_id,
                text=f"💥 Bot Crashed\n\n"
                     f"Error: {str(error)[:200]}\n"
                     f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
            )
    except TelegramError as e:
        logging.error(f"Could not send crash notification: {e}")


def main():
    """Main function"""
    try:
        bot = GhostBusterBot()
        bot.run()
    except KeyboardInterrupt:
        logging.info("Bot stopped by user")
    except ValidationError as e:
        logging.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        asyncio.run(send_crash_notice(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
