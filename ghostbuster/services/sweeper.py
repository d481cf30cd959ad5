"""Retention sweep: warn members about to exceed the activity window, remove
members that were warned and stayed silent.

Per chat, with W = window days and G = grace days:
- eligible: role ``member``, not excluded, joined at least G days ago
- warn set: eligible, not warned yet, inactive for at least W - 1 days
- kick set: eligible, warned, inactive for at least W days

The warn phase of a chat finishes (or fails) before its kick set is read, so
a member already past W is warned and removed by the same pass.
Failures are isolated per chat for warnings and per member for removals, and
every outcome is returned in the ``SweepReport``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, List, Optional

from ..clock import to_utc_naive
from ..errors import GatewaySendFailed
from ..models import ChatMember
from ..policy import ChatPolicy
from .chat_config import ChatConfigStore
from .gateway import NotificationGateway
from .membership import MembershipStore

logger = logging.getLogger(__name__)


@dataclass
class KickOutcome:
    user_id: int
    removed: bool
    skipped: bool = False  # became active or protected before the removal call
    error: Optional[str] = None


@dataclass
class ChatSweepResult:
    chat_id: int
    policy: ChatPolicy
    warn_candidates: List[int] = field(default_factory=list)
    warned: int = 0
    warn_error: Optional[str] = None
    kicks: List[KickOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def removed(self) -> List[int]:
        return [k.user_id for k in self.kicks if k.removed]

    @property
    def failed_removals(self) -> List[int]:
        return [k.user_id for k in self.kicks if k.error]

    @property
    def ok(self) -> bool:
        return not (self.warn_error or self.error or self.failed_removals)


@dataclass
class SweepReport:
    now: datetime
    chats: List[ChatSweepResult]
    elapsed_ms: float = 0.0

    @property
    def warned(self) -> int:
        return sum(c.warned for c in self.chats)

    @property
    def removed(self) -> int:
        return sum(len(c.removed) for c in self.chats)

    @property
    def failures(self) -> int:
        return sum(
            bool(c.warn_error) + bool(c.error) + len(c.failed_removals)
            for c in self.chats
        )

    def for_chat(self, chat_id: int) -> Optional[ChatSweepResult]:
        for result in self.chats:
            if result.chat_id == chat_id:
                return result
        return None


class RetentionSweeper:
    def __init__(self, chats: ChatConfigStore, members: MembershipStore,
                 gateway: NotificationGateway, call_timeout: float = 15.0,
                 concurrency: int = 4):
        self.chats = chats
        self.members = members
        self.gateway = gateway
        self.call_timeout = call_timeout
        self.concurrency = max(1, concurrency)

    async def run_sweep(self, now: datetime) -> SweepReport:
        """Run one pass over every known chat using `now` as the reference time"""
        now = to_utc_naive(now)
        t0 = time.monotonic()
        policies = await self.chats.list_policies()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(chat_id: int, policy: ChatPolicy) -> ChatSweepResult:
            async with semaphore:
                return await self.sweep_chat(chat_id, policy, now)

        results = await asyncio.gather(*(guarded(chat_id, policy) for chat_id, policy in policies))
        report = SweepReport(
            now=now,
            chats=list(results),
            elapsed_ms=(time.monotonic() - t0) * 1000,
        )
        logger.info(
            f"Sweep at {now:%Y-%m-%d %H:%M}: {len(report.chats)} chats, "
            f"{report.warned} warned, {report.removed} removed, {report.failures} failures "
            f"({report.elapsed_ms:.0f} ms)"
        )
        return report

    async def sweep_chat(self, chat_id: int, policy: ChatPolicy,
                         now: datetime) -> ChatSweepResult:
        result = ChatSweepResult(chat_id=chat_id, policy=policy)

        try:
            await self._warn_phase(result, now)
        except Exception as e:
            result.warn_error = str(e)
            logger.error(f"Warning phase failed in chat {chat_id}: {e}")

        try:
            await self._kick_phase(result, now)
        except Exception as e:
            result.error = str(e)
            logger.error(f"Removal phase failed in chat {chat_id}: {e}")

        return result

    async def _warn_phase(self, result: ChatSweepResult, now: datetime):
        candidates = await self.members.warn_candidates(result.chat_id, result.policy, now)
        result.warn_candidates = [m.user_id for m in candidates]
        if not candidates:
            return

        # Nothing is marked unless the warning went out; the next pass retries
        await self._call(
            self.gateway.send_warning(result.chat_id, candidates),
            'send_warning', result.chat_id
        )
        result.warned = await self.members.mark_warned(
            result.chat_id, result.warn_candidates, result.policy, now
        )

    async def _kick_phase(self, result: ChatSweepResult, now: datetime):
        candidates = await self.members.kick_candidates(result.chat_id, result.policy, now)
        for member in candidates:
            result.kicks.append(await self._kick_member(result, member, now))

    async def _kick_member(self, result: ChatSweepResult, member: ChatMember,
                           now: datetime) -> KickOutcome:
        chat_id = result.chat_id
        try:
            if not await self.members.is_removable(chat_id, member.user_id, result.policy, now):
                logger.info(f"Member {member.user_id} in chat {chat_id} no longer removable, skipping")
                return KickOutcome(user_id=member.user_id, removed=False, skipped=True)
            await self._call(self.gateway.remove(chat_id, member.user_id), 'remove', chat_id)
            await self.members.mark_kicked(chat_id, member.user_id)
        except Exception as e:
            logger.error(f"Could not remove member {member.user_id} from chat {chat_id}: {e}")
            return KickOutcome(user_id=member.user_id, removed=False, error=str(e))
        return KickOutcome(user_id=member.user_id, removed=True)

    async def _call(self, call: Awaitable, action: str, chat_id: int):
        try:
            return await asyncio.wait_for(call, timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise GatewaySendFailed(action, chat_id, f"timed out after {self.call_timeout}s") from e
