import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select

from ..clock import to_utc_naive
from ..database import Database
from ..models import Chat, ChatIdentity
from ..models.chat import DEFAULT_WINDOW_DAYS, DEFAULT_GRACE_DAYS
from ..policy import ChatPolicy, validate_window_days

logger = logging.getLogger(__name__)


class ChatConfigStore:
    """Per-chat metadata and retention policy"""

    def __init__(self, db: Database,
                 default_window_days: int = DEFAULT_WINDOW_DAYS,
                 default_grace_days: int = DEFAULT_GRACE_DAYS):
        self.db = db
        self.default_policy = ChatPolicy(
            window_days=validate_window_days(default_window_days),
            grace_days=max(0, int(default_grace_days)),
        )

    async def ensure_chat(self, chat: ChatIdentity, at: datetime):
        """Create the chat with default policy, or refresh its title; policy is never changed"""
        at = to_utc_naive(at)
        stmt = self.db.insert(Chat).values(
            chat_id=chat.chat_id,
            title=chat.title,
            activity_window_days=self.default_policy.window_days,
            grace_days=self.default_policy.grace_days,
            created_at=at,
            updated_at=at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Chat.chat_id],
            set_={'title': stmt.excluded.title, 'updated_at': stmt.excluded.updated_at},
        )
        async with self.db.session() as session:
            await session.execute(stmt)

    async def set_activity_window(self, chat_id: int, days, at: datetime) -> int:
        """Validate and store a new activity window; returns the stored value"""
        window_days = validate_window_days(days)
        at = to_utc_naive(at)
        stmt = self.db.insert(Chat).values(
            chat_id=chat_id,
            title=str(chat_id),
            activity_window_days=window_days,
            grace_days=self.default_policy.grace_days,
            created_at=at,
            updated_at=at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Chat.chat_id],
            set_={
                'activity_window_days': stmt.excluded.activity_window_days,
                'updated_at': stmt.excluded.updated_at,
            },
        )
        async with self.db.session() as session:
            await session.execute(stmt)
        logger.info(f"Activity window for chat {chat_id} set to {window_days} days")
        return window_days

    async def get_policy(self, chat_id: int) -> ChatPolicy:
        async with self.db.session() as session:
            result = await session.execute(
                select(Chat.activity_window_days, Chat.grace_days)
                .where(Chat.chat_id == chat_id)
            )
            row = result.first()
        if row is None:
            return self.default_policy
        return ChatPolicy(window_days=row.activity_window_days, grace_days=row.grace_days)

    async def list_policies(self) -> List[Tuple[int, ChatPolicy]]:
        """All known chats with their policies, ordered by chat id"""
        async with self.db.session() as session:
            result = await session.execute(
                select(Chat.chat_id, Chat.activity_window_days, Chat.grace_days)
                .order_by(Chat.chat_id)
            )
            rows = result.all()
        return [
            (row.chat_id, ChatPolicy(window_days=row.activity_window_days, grace_days=row.grace_days))
            for row in rows
        ]
