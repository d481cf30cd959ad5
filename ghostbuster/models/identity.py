from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MemberIdentity:
    """Who performed an event, detached from the Telegram object"""
    user_id: int
    display_name: str
    username: Optional[str] = None
    is_bot: bool = False

    @classmethod
    def from_telegram(cls, user) -> "MemberIdentity":
        name = user.full_name or user.username or str(user.id)
        return cls(
            user_id=user.id,
            display_name=name,
            username=user.username,
            is_bot=bool(user.is_bot),
        )


@dataclass(frozen=True)
class ChatIdentity:
    chat_id: int
    title: str

    @classmethod
    def from_telegram(cls, chat) -> "ChatIdentity":
        return cls(chat_id=chat.id, title=chat.title or chat.username or str(chat.id))
