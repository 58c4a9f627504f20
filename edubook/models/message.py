"""Message model definitions."""

from datetime import datetime

from pydantic import BaseModel


class Message(BaseModel):
    """An immutable direct message between two accounts."""

    id: str
    sender_id: str
    sender_name: str | None = None
    receiver_id: str
    content: str
    timestamp: datetime
    participants: list[str]

    def is_between(self, user_id: str, peer_id: str) -> bool:
        return (self.sender_id == user_id and self.receiver_id == peer_id) or (
            self.sender_id == peer_id and self.receiver_id == user_id
        )
