"""Common fixtures: a throwaway SQLite database, the stores and a fake gateway."""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

import pytest

from ghostbuster.database import Database
from ghostbuster.errors import GatewaySendFailed
from ghostbuster.models import ChatIdentity, ChatMember, MemberIdentity
from ghostbuster.services.activity import ActivityRecorder
from ghostbuster.services.chat_config import ChatConfigStore
from ghostbuster.services.gateway import BotStatus
from ghostbuster.services.membership import MembershipStore
from ghostbuster.services.sweeper import RetentionSweeper

CHAT_ID = -1001
OTHER_CHAT_ID = -1002


def user(user_id: int, name: Optional[str] = None, username: Optional[str] = None,
         is_bot: bool = False) -> MemberIdentity:
    return MemberIdentity(
        user_id=user_id,
        display_name=name or f"User {user_id}",
        username=username,
        is_bot=is_bot,
    )


class FakeGateway:
    """In-memory NotificationGateway recording every call"""

    def __init__(self):
        self.warnings: List[Tuple[int, List[int]]] = []
        self.removed: List[Tuple[int, int]] = []
        self.admins: Set[Tuple[int, int]] = set()
        self.failing_warning_chats: Set[int] = set()
        self.failing_removals: Set[int] = set()
        self.delay = 0.0
        self.on_warning: Optional[Callable] = None

    async def send_warning(self, chat_id, members):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.on_warning:
            await self.on_warning(chat_id, members)
        if chat_id in self.failing_warning_chats:
            raise GatewaySendFailed('send_warning', chat_id, 'chat not found')
        self.warnings.append((chat_id, [m.user_id for m in members]))

    async def remove(self, chat_id, user_id):
        if user_id in self.failing_removals:
            raise GatewaySendFailed('remove', chat_id, 'not enough rights')
        self.removed.append((chat_id, user_id))

    async def is_admin(self, chat_id, user_id):
        return (chat_id, user_id) in self.admins

    async def bot_status(self, chat_id):
        return BotStatus(status='administrator', can_restrict=True)


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.init()
    yield database
    await database.close()


@pytest.fixture
def chats(db):
    return ChatConfigStore(db)


@pytest.fixture
def members(db):
    return MembershipStore(db)


@pytest.fixture
def recorder(chats, members):
    return ActivityRecorder(chats, members)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sweeper(chats, members, gateway):
    return RetentionSweeper(chats, members, gateway, call_timeout=1.0)


@pytest.fixture
def add_chat(chats):
    async def _add(chat_id: int = CHAT_ID, at: datetime = datetime(2024, 1, 1)):
        await chats.ensure_chat(ChatIdentity(chat_id=chat_id, title=f"Chat {chat_id}"), at)
    return _add


@pytest.fixture
def add_member(db):
    """Insert a member row with explicit field values"""
    async def _add(user_id: int, chat_id: int = CHAT_ID, **fields) -> ChatMember:
        values = dict(
            chat_id=chat_id,
            user_id=user_id,
            display_name=f"User {user_id}",
            role='member',
            excluded=False,
        )
        values.update(fields)
        member = ChatMember(**values)
        async with db.session() as session:
            session.add(member)
        return member
    return _add
