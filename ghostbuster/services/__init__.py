"""Services module"""

from ..policy import ChatPolicy
from .chat_config import ChatConfigStore
from .membership import MembershipStore
from .activity import ActivityRecorder
from .sweeper import RetentionSweeper, SweepReport
from .gateway import NotificationGateway, TelegramGateway
from .scheduler import SweepScheduler

__all__ = [
    'ChatConfigStore', 'ChatPolicy', 'MembershipStore', 'ActivityRecorder',
    'RetentionSweeper', 'SweepReport', 'NotificationGateway', 'TelegramGateway',
    'SweepScheduler',
]
