import logging
from datetime import datetime

from ..models import ActivityKind, ChatIdentity, ChatRole, MemberIdentity
from .chat_config import ChatConfigStore
from .membership import MembershipStore

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Turns observed chat events into member and chat state.

    All writes are idempotent, so an event delivered twice can simply be
    applied twice. Store errors propagate to the caller.
    """

    def __init__(self, chats: ChatConfigStore, members: MembershipStore):
        self.chats = chats
        self.members = members

    async def ensure_chat(self, chat: ChatIdentity, at: datetime):
        await self.chats.ensure_chat(chat, at)

    async def record_activity(self, chat_id: int, user: MemberIdentity,
                              kind: ActivityKind, at: datetime) -> bool:
        """Record a message or reaction; returns False when the event was ignored"""
        if user.is_bot:
            return False
        await self.members.upsert_activity(chat_id, user, ActivityKind(kind), at)
        logger.debug(f"Recorded {ActivityKind(kind).value} from {user.user_id} in chat {chat_id}")
        return True

    async def record_role_change(self, chat_id: int, user: MemberIdentity,
                                 new_status, at: datetime) -> bool:
        role = ChatRole(new_status)
        if user.is_bot:
            return False
        await self.members.upsert_role(chat_id, user, role, at)
        logger.info(f"Member {user.user_id} in chat {chat_id} is now {role.value}")
        return True
