import logging
from telegram import Update
from telegram.constants import ChatType
from telegram.ext import ContextTypes

from ..models import ActivityKind, ChatIdentity, MemberIdentity
from ..services.activity import ActivityRecorder

logger = logging.getLogger(__name__)

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)


def _is_group(chat) -> bool:
    return chat is not None and chat.type in GROUP_CHAT_TYPES


class EventHandler:
    """Feeds group updates into the ActivityRecorder"""

    def __init__(self, recorder: ActivityRecorder):
        self.recorder = recorder

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Any group message, commands and service messages included, counts as activity"""
        message = update.message
        if not message or not message.from_user or not _is_group(message.chat):
            return

        await self.recorder.ensure_chat(ChatIdentity.from_telegram(message.chat), message.date)
        await self.recorder.record_activity(
            message.chat_id,
            MemberIdentity.from_telegram(message.from_user),
            ActivityKind.MESSAGE,
            message.date
        )

    async def handle_reaction(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        reaction = update.message_reaction
        # Anonymous reactions carry no user
        if not reaction or not reaction.user or not _is_group(reaction.chat):
            return

        await self.recorder.ensure_chat(ChatIdentity.from_telegram(reaction.chat), reaction.date)
        await self.recorder.record_activity(
            reaction.chat.id,
            MemberIdentity.from_telegram(reaction.user),
            ActivityKind.REACTION,
            reaction.date
        )

    async def handle_chat_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Joins, departures, promotions and bans reported by Telegram"""
        change = update.chat_member
        if not change or not _is_group(change.chat):
            return

        await self.recorder.ensure_chat(ChatIdentity.from_telegram(change.chat), change.date)
        new_member = change.new_chat_member
        await self.recorder.record_role_change(
            change.chat.id,
            MemberIdentity.from_telegram(new_member.user),
            new_member.status,
            change.date
        )

    async def handle_my_chat_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """The bot itself was added, promoted or removed"""
        change = update.my_chat_member
        if not change or not _is_group(change.chat):
            return

        logger.info(f"Bot status in chat {change.chat.id}: {change.new_chat_member.status}")
        await self.recorder.ensure_chat(ChatIdentity.from_telegram(change.chat), change.date)
