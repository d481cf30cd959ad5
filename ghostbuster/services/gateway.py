import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from telegram import Bot
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.error import TelegramError

from ..errors import GatewaySendFailed
from ..models import ChatMember
from ..texts import Texts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotStatus:
    status: Optional[str]
    can_restrict: bool


class NotificationGateway(Protocol):
    """Outbound side of the engine: warnings, removals and admin checks"""

    async def send_warning(self, chat_id: int, members: Sequence[ChatMember]) -> None: ...

    async def remove(self, chat_id: int, user_id: int) -> None: ...

    async def is_admin(self, chat_id: int, user_id: int) -> bool: ...

    async def bot_status(self, chat_id: int) -> BotStatus: ...


class TelegramGateway:
    """NotificationGateway over the Bot API; failures raise GatewaySendFailed"""

    def __init__(self, bot: Bot, texts: Texts):
        self.bot = bot
        self.texts = texts

    async def send_warning(self, chat_id: int, members: Sequence[ChatMember]) -> None:
        text = self.texts.warning(members)
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML
            )
        except TelegramError as e:
            raise GatewaySendFailed('send_warning', chat_id, str(e)) from e
        logger.info(f"Warned {len(members)} member(s) in chat {chat_id}")

    async def remove(self, chat_id: int, user_id: int) -> None:
        try:
            await self.bot.ban_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramError as e:
            raise GatewaySendFailed('remove', chat_id, f"user {user_id}: {e}") from e
        logger.info(f"Removed member {user_id} from chat {chat_id}")

    async def is_admin(self, chat_id: int, user_id: int) -> bool:
        try:
            member = await self.bot.get_chat_member(chat_id=chat_id, user_id=user_id)
        except TelegramError as e:
            logger.warning(f"Could not check admin status of {user_id} in chat {chat_id}: {e}")
            return False
        return member.status in (ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER)

    async def bot_status(self, chat_id: int) -> BotStatus:
        try:
            member = await self.bot.get_chat_member(chat_id=chat_id, user_id=self.bot.id)
        except TelegramError as e:
            raise GatewaySendFailed('bot_status', chat_id, str(e)) from e
        can_restrict = bool(getattr(member, 'can_restrict_members', False))
        return BotStatus(
            status=member.status,
            can_restrict=can_restrict or member.status == ChatMemberStatus.OWNER,
        )
