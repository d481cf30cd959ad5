"""Retention policy values and the date arithmetic derived from them."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .errors import InvalidPolicy
from .models import ChatMember
from .models.chat import (
    DEFAULT_WINDOW_DAYS,
    DEFAULT_GRACE_DAYS,
    MIN_WINDOW_DAYS,
    MAX_WINDOW_DAYS,
)


@dataclass(frozen=True)
class ChatPolicy:
    """Retention policy of one chat: W (window) and G (grace) in days"""
    window_days: int = DEFAULT_WINDOW_DAYS
    grace_days: int = DEFAULT_GRACE_DAYS

    def grace_cutoff(self, now: datetime) -> datetime:
        """Members joined at or before this instant are past their grace period"""
        return now - timedelta(days=self.grace_days)

    def warn_threshold(self, now: datetime) -> datetime:
        return now - timedelta(days=self.window_days - 1)

    def kick_threshold(self, now: datetime) -> datetime:
        return now - timedelta(days=self.window_days)


def validate_window_days(days) -> int:
    try:
        value = float(days)
    except (TypeError, ValueError):
        raise InvalidPolicy('activity_window_days', days, 'not a number')
    if not math.isfinite(value) or not value.is_integer():
        raise InvalidPolicy('activity_window_days', days, 'must be a whole number of days')
    if not MIN_WINDOW_DAYS <= value <= MAX_WINDOW_DAYS:
        raise InvalidPolicy(
            'activity_window_days', days,
            f'must be between {MIN_WINDOW_DAYS} and {MAX_WINDOW_DAYS}'
        )
    return int(value)


def projected_removal(member: ChatMember, policy: ChatPolicy) -> Optional[datetime]:
    """Earliest instant the member may be removed, or None if unknown or protected"""
    if member.is_protected:
        return None
    candidates = []
    if member.last_activity_at is not None:
        candidates.append(member.last_activity_at + timedelta(days=policy.window_days))
    if member.joined_at is not None:
        candidates.append(member.joined_at + timedelta(days=policy.grace_days))
    if not candidates:
        return None
    return max(candidates)
