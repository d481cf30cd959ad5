import logging
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from ..clock import Clock
from ..config import Settings
from ..errors import GatewaySendFailed, InvalidPolicy
from ..models.chat import MIN_WINDOW_DAYS, MAX_WINDOW_DAYS
from ..services.chat_config import ChatConfigStore
from ..services.gateway import NotificationGateway
from ..services.membership import MembershipStore
from ..texts import Texts

logger = logging.getLogger(__name__)


class CommandHandlers:
    """Admin commands; non-admin callers are ignored silently"""

    def __init__(self, chats: ChatConfigStore, members: MembershipStore,
                 gateway: NotificationGateway, texts: Texts, settings: Settings, clock: Clock):
        self.chats = chats
        self.members = members
        self.gateway = gateway
        self.texts = texts
        self.settings = settings
        self.clock = clock

    async def _reply(self, update: Update, text: str):
        await update.effective_message.reply_text(text, parse_mode=ParseMode.HTML)

    async def _from_admin(self, update: Update) -> bool:
        chat = update.effective_chat
        user = update.effective_user
        if not chat or not user:
            return False
        return await self.gateway.is_admin(chat.id, user.id)

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /help and /start"""
        await self._reply(update, self.texts.render(
            'help',
            sweep_time=f"{self.settings.sweep_hour:02d}:{self.settings.sweep_minute:02d}",
            sweep_timezone=self.settings.sweep_timezone,
            window_days=self.chats.default_policy.window_days,
            grace_days=self.chats.default_policy.grace_days,
            min_days=MIN_WINDOW_DAYS,
            max_days=MAX_WINDOW_DAYS,
        ))

    async def set_window_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /set_window N"""
        if not await self._from_admin(update):
            return

        chat_id = update.effective_chat.id
        usage = self.texts.render('set_window_usage', min_days=MIN_WINDOW_DAYS, max_days=MAX_WINDOW_DAYS)
        if not context.args:
            await self._reply(update, usage)
            return

        try:
            window_days = await self.chats.set_activity_window(chat_id, context.args[0], self.clock.now())
        except InvalidPolicy as e:
            logger.info(f"Rejected window in chat {chat_id}: {e}")
            await self._reply(update, usage)
            return

        await self._reply(update, self.texts.render('set_window_done', window_days=window_days))

    async def preview_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /preview - members with their projected removal date"""
        if not await self._from_admin(update):
            return

        chat_id = update.effective_chat.id
        policy = await self.chats.get_policy(chat_id)
        members = await self.members.preview(chat_id)
        for chunk in self.texts.preview(members, policy):
            await self._reply(update, chunk)

    async def status_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /status - can the bot remove members here"""
        if not await self._from_admin(update):
            return

        chat_id = update.effective_chat.id
        try:
            status = await self.gateway.bot_status(chat_id)
        except GatewaySendFailed as e:
            logger.warning(f"Status check failed: {e}")
            await self._reply(update, self.texts.render('status_failed'))
            return

        await self._reply(update, self.texts.render(
            'status',
            status=status.status or 'unknown',
            can_restrict=self.texts.render('answer_yes' if status.can_restrict else 'answer_no'),
        ))

    async def exclude_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /exclude in reply to a member's message"""
        await self._set_excluded(update, excluded=True)

    async def include_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /include in reply to a member's message"""
        await self._set_excluded(update, excluded=False)

    async def _set_excluded(self, update: Update, excluded: bool):
        if not await self._from_admin(update):
            return

        reply = update.effective_message.reply_to_message
        if not reply or not reply.from_user:
            await self._reply(update, self.texts.render('exclude_usage'))
            return

        target = reply.from_user
        updated = await self.members.set_excluded(update.effective_chat.id, target.id, excluded)
        if not updated:
            await self._reply(update, self.texts.render('member_unknown'))
            return

        name = self.texts.mention(target.id, target.full_name or target.username or str(target.id))
        key = 'exclude_done' if excluded else 'include_done'
        await self._reply(update, self.texts.render(key, name=name))
