"""Member activity records and the queries behind the warn/kick decisions.

Every write here is a single SQL statement: activity is merged with an
``INSERT .. ON CONFLICT DO UPDATE`` and sweep transitions are conditional
``UPDATE``s that re-check their predicate, so a concurrent activity write
always wins over a warn or kick decided on a stale read.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update, and_, or_, case, func

from ..clock import to_utc_naive
from ..database import Database
from ..models import ChatMember, ChatRole, ActivityKind, MemberIdentity
from ..models.member import ROLE_ON_ACTIVITY
from ..policy import ChatPolicy

logger = logging.getLogger(__name__)

_ACTIVITY_COLUMNS = {
    ActivityKind.MESSAGE: 'last_message_at',
    ActivityKind.REACTION: 'last_reaction_at',
}

PREVIEW_ROLES = (ChatRole.MEMBER.value, ChatRole.ADMINISTRATOR.value, ChatRole.CREATOR.value)


def _latest(current, incoming):
    """SQL max of a nullable stored timestamp and an incoming one"""
    return case(
        (or_(current.is_(None), incoming > current), incoming),
        else_=current,
    )


def _role_after_activity():
    return case(
        *[(ChatMember.role == before.value, after.value) for before, after in ROLE_ON_ACTIVITY.items()],
        else_=ChatMember.role,
    )


def _inactive_since(threshold: datetime):
    return or_(ChatMember.last_activity_at.is_(None), ChatMember.last_activity_at <= threshold)


def _eligible(chat_id: int, policy: ChatPolicy, now: datetime):
    return and_(
        ChatMember.chat_id == chat_id,
        ChatMember.role == ChatRole.MEMBER.value,
        ChatMember.excluded == False,
        or_(ChatMember.joined_at.is_(None), ChatMember.joined_at <= policy.grace_cutoff(now)),
    )


def warn_predicate(chat_id: int, policy: ChatPolicy, now: datetime):
    return and_(
        _eligible(chat_id, policy, now),
        ChatMember.warned_at.is_(None),
        _inactive_since(policy.warn_threshold(now)),
    )


def kick_predicate(chat_id: int, policy: ChatPolicy, now: datetime):
    return and_(
        _eligible(chat_id, policy, now),
        ChatMember.warned_at.isnot(None),
        _inactive_since(policy.kick_threshold(now)),
    )


class MembershipStore:
    def __init__(self, db: Database):
        self.db = db

    async def upsert_activity(self, chat_id: int, member: MemberIdentity,
                              kind: ActivityKind, at: datetime):
        """Merge one activity event into the member row atomically"""
        at = to_utc_naive(at)
        column = _ACTIVITY_COLUMNS[ActivityKind(kind)]
        stmt = self.db.insert(ChatMember).values(
            chat_id=chat_id,
            user_id=member.user_id,
            display_name=member.display_name,
            username=member.username,
            role=ChatRole.MEMBER.value,
            joined_at=at,
            last_activity_at=at,
            warned_at=None,
            excluded=False,
            **{column: at},
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChatMember.chat_id, ChatMember.user_id],
            set_={
                'display_name': stmt.excluded.display_name,
                'username': stmt.excluded.username,
                column: _latest(ChatMember.__table__.c[column], stmt.excluded[column]),
                'last_activity_at': _latest(ChatMember.last_activity_at, stmt.excluded.last_activity_at),
                'role': _role_after_activity(),
                'warned_at': None,
            },
        )
        async with self.db.session() as session:
            await session.execute(stmt)

    async def upsert_role(self, chat_id: int, member: MemberIdentity,
                          role: ChatRole, at: datetime):
        """Store identity and role; activity timestamps and warned_at are left alone"""
        at = to_utc_naive(at)
        stmt = self.db.insert(ChatMember).values(
            chat_id=chat_id,
            user_id=member.user_id,
            display_name=member.display_name,
            username=member.username,
            role=ChatRole(role).value,
            joined_at=at,
            excluded=False,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChatMember.chat_id, ChatMember.user_id],
            set_={
                'display_name': stmt.excluded.display_name,
                'username': stmt.excluded.username,
                'role': stmt.excluded.role,
            },
        )
        async with self.db.session() as session:
            await session.execute(stmt)

    async def get(self, chat_id: int, user_id: int) -> Optional[ChatMember]:
        async with self.db.session() as session:
            return await session.get(ChatMember, (chat_id, user_id))

    async def warn_candidates(self, chat_id: int, policy: ChatPolicy,
                              now: datetime) -> List[ChatMember]:
        """Eligible members one day short of the window and not yet warned"""
        now = to_utc_naive(now)
        async with self.db.session() as session:
            result = await session.execute(
                select(ChatMember)
                .where(warn_predicate(chat_id, policy, now))
                .order_by(ChatMember.display_name, ChatMember.user_id)
            )
            return list(result.scalars().all())

    async def kick_candidates(self, chat_id: int, policy: ChatPolicy,
                              now: datetime) -> List[ChatMember]:
        """Warned members still inactive at or past the full window"""
        now = to_utc_naive(now)
        async with self.db.session() as session:
            result = await session.execute(
                select(ChatMember)
                .where(kick_predicate(chat_id, policy, now))
                .order_by(ChatMember.user_id)
            )
            return list(result.scalars().all())

    async def mark_warned(self, chat_id: int, user_ids: Iterable[int],
                          policy: ChatPolicy, now: datetime) -> int:
        """Set warned_at for members that still match the warn predicate"""
        user_ids = list(user_ids)
        if not user_ids:
            return 0
        now = to_utc_naive(now)
        async with self.db.session() as session:
            result = await session.execute(
                update(ChatMember)
                .where(warn_predicate(chat_id, policy, now), ChatMember.user_id.in_(user_ids))
                .values(warned_at=now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    async def is_removable(self, chat_id: int, user_id: int,
                           policy: ChatPolicy, now: datetime) -> bool:
        now = to_utc_naive(now)
        async with self.db.session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(ChatMember)
                .where(kick_predicate(chat_id, policy, now), ChatMember.user_id == user_id)
            )
            return bool(result.scalar())

    async def mark_kicked(self, chat_id: int, user_id: int) -> bool:
        """Record a completed removal unless the member changed role meanwhile"""
        async with self.db.session() as session:
            result = await session.execute(
                update(ChatMember)
                .where(
                    ChatMember.chat_id == chat_id,
                    ChatMember.user_id == user_id,
                    ChatMember.role == ChatRole.MEMBER.value,
                )
                .values(role=ChatRole.KICKED.value)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0

    async def set_excluded(self, chat_id: int, user_id: int, excluded: bool) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                update(ChatMember)
                .where(ChatMember.chat_id == chat_id, ChatMember.user_id == user_id)
                .values(excluded=bool(excluded))
                .execution_options(synchronize_session=False)
            )
            updated = result.rowcount > 0
        if updated:
            logger.info(f"Member {user_id} in chat {chat_id} excluded={bool(excluded)}")
        return updated

    async def preview(self, chat_id: int) -> List[ChatMember]:
        """Current members and admins, regular members first"""
        async with self.db.session() as session:
            result = await session.execute(
                select(ChatMember)
                .where(ChatMember.chat_id == chat_id, ChatMember.role.in_(PREVIEW_ROLES))
                .order_by(ChatMember.role != ChatRole.MEMBER.value, ChatMember.display_name)
            )
            return list(result.scalars().all())
