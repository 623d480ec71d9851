from sqlmodel import Field, Relationship
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Column, Integer, Text, text
from models.base import ConversationTables
from schemas.conversation_schema import ConversationBase, DEFAULT_MAX_TOKENS, DEFAULT_MODEL


if TYPE_CHECKING:
    from models.message_model import History


class Conversation(ConversationBase, ConversationTables, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS,
        sa_column=Column(
            Integer,
            nullable=False,
            server_default=text(str(DEFAULT_MAX_TOKENS))
        )
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        sa_column=Column(
            Text,
            nullable=False,
            server_default=DEFAULT_MODEL
        )
    )
    prompt: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    history: list["History"] = Relationship(back_populates="parent")
