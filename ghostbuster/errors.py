"""Exceptions raised by the retention engine.

- ``InvalidPolicy``: a policy value is out of bounds; nothing was written.
- ``StoreUnavailable``: the database failed while serving one operation.
- ``GatewaySendFailed``: a Telegram call (warning or removal) failed or timed out.
"""


class GhostBusterError(Exception):
    """Base class for all engine errors"""


class InvalidPolicy(GhostBusterError, ValueError):
    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class StoreUnavailable(GhostBusterError):
    pass


class GatewaySendFailed(GhostBusterError):
    def __init__(self, action: str, chat_id: int, detail: str = ''):
        self.action = action
        self.chat_id = chat_id
        self.detail = detail
        message = f"{action} failed in chat {chat_id}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
