# src/shared/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import NewType, Optional

UserId = NewType("UserId", int)
ChatId = NewType("ChatId", int)
ThreadId = NewType("ThreadId", int)

# thread_id = 0 в старых записях означает "топик ещё не создан"
NO_THREAD = ThreadId(0)


@dataclass
class Ticket:
    """
    Связка клиента с его топиком в группе поддержки.
    """

    user_id: UserId
    user_chat_id: ChatId
    thread_id: Optional[ThreadId] = None
    last_update: Optional[datetime] = None

    @property
    def has_thread(self) -> bool:
        return self.thread_id is not None and self.thread_id != NO_THREAD
