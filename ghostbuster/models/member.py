import enum

from sqlalchemy import Column, BigInteger, String, Boolean, DateTime
from .base import Base


class ChatRole(str, enum.Enum):
    MEMBER = 'member'
    ADMINISTRATOR = 'administrator'
    CREATOR = 'creator'
    RESTRICTED = 'restricted'
    LEFT = 'left'
    KICKED = 'kicked'


class ActivityKind(str, enum.Enum):
    MESSAGE = 'message'
    REACTION = 'reaction'


PROTECTED_ROLES = frozenset({ChatRole.ADMINISTRATOR, ChatRole.CREATOR})

# Role transitions applied when new activity is recorded; unlisted roles stay as they are
ROLE_ON_ACTIVITY = {
    ChatRole.LEFT: ChatRole.MEMBER,
    ChatRole.KICKED: ChatRole.MEMBER,
}


class ChatMember(Base):
    __tablename__ = 'chat_members'

    chat_id = Column(BigInteger, primary_key=True, autoincrement=False)
    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    display_name = Column(String, nullable=False)
    username = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=ChatRole.MEMBER.value, index=True)
    joined_at = Column(DateTime, nullable=True)
    last_message_at = Column(DateTime, nullable=True)
    last_reaction_at = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, nullable=True)
    warned_at = Column(DateTime, nullable=True)
    excluded = Column(Boolean, nullable=False, default=False)

    @property
    def is_protected(self) -> bool:
        return self.excluded or self.role in {r.value for r in PROTECTED_ROLES}

    def __repr__(self):
        return f"<ChatMember(chat_id={self.chat_id}, user_id={self.user_id}, role={self.role})>"
