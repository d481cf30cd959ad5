from sqlalchemy import Column, Integer, String, BigInteger
from .base import Base, TimestampMixin

DEFAULT_WINDOW_DAYS = 60
DEFAULT_GRACE_DAYS = 7
MIN_WINDOW_DAYS = 7
MAX_WINDOW_DAYS = 365


class Chat(TimestampMixin, Base):
    """Moderated Telegram group and its retention policy"""
    __tablename__ = "chats"

    chat_id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String)
    activity_window_days = Column(Integer, default=DEFAULT_WINDOW_DAYS, nullable=False)
    grace_days = Column(Integer, default=DEFAULT_GRACE_DAYS, nullable=False)

    def __repr__(self):
        return f"<Chat(chat_id={self.chat_id}, title={self.title}, window={self.activity_window_days})>"
