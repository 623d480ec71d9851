from typing import Optional, TYPE_CHECKING
from sqlmodel import Field, Relationship
from sqlalchemy import Column, ForeignKey, Integer, Text
from models.base import ConversationTables
from schemas.message_schema import Message, decode_message, encode_message

if TYPE_CHECKING:
    from models.conversation_model import Conversation


class History(ConversationTables, table=True):
    __tablename__ = "history"

    id: Optional[int] = Field(primary_key=True, default=None)

    conversation_id: int = Field(
        sa_column=Column(
            "conversation",
            Integer,
            ForeignKey("conversation.id"),
            key="conversation_id",
            nullable=False
        )
    )
    message: str = Field(sa_column=Column(Text, nullable=False))

    parent: Optional["Conversation"] = Relationship(back_populates="history")

    @classmethod
    def from_message(cls, conversation_id: int, message: Message) -> "History":
        return cls(conversation_id=conversation_id, message=encode_message(message))

    def decoded(self) -> Message:
        return decode_message(self.message)
