from .base import Base
from .chat import Chat
from .member import ChatMember, ChatRole, ActivityKind
from .identity import MemberIdentity, ChatIdentity

__all__ = [
    'Base', 'Chat', 'ChatMember', 'ChatRole', 'ActivityKind',
    'MemberIdentity', 'ChatIdentity',
]
