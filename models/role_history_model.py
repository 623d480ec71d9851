from typing import Optional
from sqlmodel import Field, Relationship
from sqlalchemy import Column, ForeignKey, Integer, Text
from models.base import RoleHistoryTables
from models.types import RoleType
from schemas.conversation_schema import RoleConversationBase
from schemas.message_schema import Role


class RoleConversation(RoleConversationBase, RoleHistoryTables, table=True):
    __tablename__ = "conversation"

    id: Optional[int] = Field(default=None, primary_key=True)

    history: list["RoleHistory"] = Relationship(back_populates="parent")


class RoleHistory(RoleHistoryTables, table=True):
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
    role: Role = Field(sa_column=Column(RoleType(), nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))

    parent: Optional[RoleConversation] = Relationship(back_populates="history")
