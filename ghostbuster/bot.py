import logging
import asyncio
from datetime import datetime
from typing import Optional
from telegram import Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ChatMemberHandler,
    CommandHandler,
    MessageHandler,
    MessageReactionHandler,
    filters,
    ContextTypes
)

from .clock import SystemClock
from .config import Settings, get_settings
from .database import Database
from .handlers.commands import CommandHandlers
from .handlers.events import EventHandler
from .services.activity import ActivityRecorder
from .services.chat_config import ChatConfigStore
from .services.gateway import TelegramGateway
from .services.membership import MembershipStore
from .services.scheduler import SweepScheduler
from .services.sweeper import RetentionSweeper
from .texts import Texts

logger = logging.getLogger(__name__)

# Activity tracking runs before command handlers so commands count as activity too
TRACKING_GROUP = -1


def setup_logging(level: str = 'INFO'):
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, level.upper(), logging.INFO)
    )
    # Silence noisy loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('telegram.ext.Application').setLevel(logging.WARNING)
    logging.getLogger('telegram.ext.Updater').setLevel(logging.WARNING)


class GhostBusterBot:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.clock = SystemClock()
        self.texts = Texts()
        self.db = Database(self.settings.database_url)
        self.chats = ChatConfigStore(
            self.db,
            default_window_days=self.settings.default_window_days,
            default_grace_days=self.settings.default_grace_days
        )
        self.members = MembershipStore(self.db)
        self.recorder = ActivityRecorder(self.chats, self.members)
        self.app: Optional[Application] = None
        self.gateway: Optional[TelegramGateway] = None
        self.scheduler: Optional[SweepScheduler] = None
        self.scheduler_task: Optional[asyncio.Task] = None

    async def notify_admin(self, application: Application, text: str):
        if not self.settings.admin_user_id:
            return
        try:
            await application.bot.send_message(
                chat_id=self.settings.admin_user_id,
                text=text,
                parse_mode=ParseMode.HTML
            )
        except TelegramError as e:
            logger.warning(f"Could not send admin notification: {e}")

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Log errors raised by handlers; the update is dropped"""
        logger.error(f"Error while handling update: {context.error}", exc_info=context.error)

    async def post_init(self, application: Application):
        """Initialize bot after application is built"""
        bot_info = await application.bot.get_me()
        logger.info(f"Bot started: @{bot_info.username}")

        await self.db.init()

        sweeper = RetentionSweeper(
            self.chats,
            self.members,
            self.gateway,
            call_timeout=self.settings.gateway_timeout_seconds,
            concurrency=self.settings.sweep_concurrency
        )
        self.scheduler = SweepScheduler(
            sweeper,
            hour=self.settings.sweep_hour,
            minute=self.settings.sweep_minute,
            tz_name=self.settings.sweep_timezone,
            clock=self.clock
        )
        self.scheduler_task = asyncio.create_task(self.scheduler.start())

        await self.notify_admin(
            application,
            f"🟢 <b>Bot Started</b>\n\n"
            f"Bot: @{bot_info.username}\n"
            f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"Next sweep: {self.scheduler.next_run():%Y-%m-%d %H:%M} UTC"
        )

    async def shutdown(self, application: Application):
        """Cleanup on shutdown"""
        logger.info("Shutting down bot...")

        await self.notify_admin(
            application,
            f"🔴 <b>Bot Stopping</b>\n\n"
            f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        )

        if self.scheduler:
            self.scheduler.stop()
        if self.scheduler_task:
            self.scheduler_task.cancel()
            try:
                await self.scheduler_task
            except asyncio.CancelledError:
                pass

        await self.db.close()

    def register_handlers(self, app: Application, commands: CommandHandlers, events: EventHandler):
        groups = filters.ChatType.GROUPS

        app.add_handler(CommandHandler(["help", "start"], commands.help_command, filters=groups))
        app.add_handler(CommandHandler("set_window", commands.set_window_command, filters=groups))
        app.add_handler(CommandHandler("preview", commands.preview_command, filters=groups))
        app.add_handler(CommandHandler("status", commands.status_command, filters=groups))
        app.add_handler(CommandHandler("exclude", commands.exclude_command, filters=groups))
        app.add_handler(CommandHandler("include", commands.include_command, filters=groups))

        app.add_handler(
            MessageHandler(groups & filters.UpdateType.MESSAGE, events.handle_message),
            group=TRACKING_GROUP
        )
        app.add_handler(MessageReactionHandler(events.handle_reaction), group=TRACKING_GROUP)
        app.add_handler(
            ChatMemberHandler(events.handle_chat_member, ChatMemberHandler.CHAT_MEMBER),
            group=TRACKING_GROUP
        )
        app.add_handler(
            ChatMemberHandler(events.handle_my_chat_member, ChatMemberHandler.MY_CHAT_MEMBER),
            group=TRACKING_GROUP
        )
        app.add_error_handler(self.error_handler)

    def run(self):
        """Run the bot"""
        setup_logging(self.settings.log_level)

        self.app = (
            Application.builder()
            .token(self.settings.telegram_bot_token)
            .post_init(self.post_init)
            .post_stop(self.shutdown)
            .build()
        )

        self.gateway = TelegramGateway(self.app.bot, self.texts)
        commands = CommandHandlers(
            self.chats,
            self.members,
            self.gateway,
            self.texts,
            self.settings,
            self.clock
        )
        self.register_handlers(self.app, commands, EventHandler(self.recorder))

        # chat_member and message_reaction updates are only delivered when requested explicitly
        logger.info("Starting bot...")
        logger.info("NOTE: the bot must be a group admin with the 'Ban users' right to remove members")
        self.app.run_polling(
            allowed_updates=Update.ALL_TYPES,
            drop_pending_updates=False
        )
