from typing import Optional
from sqlmodel import Field, Relationship
from sqlalchemy import Column, ForeignKey, Integer, Text
from models.base import PersonalityTables
from models.types import RoleType
from schemas.personality_schema import PersonalityBase
from schemas.message_schema import Role


class Personality(PersonalityBase, PersonalityTables, table=True):
    __tablename__ = "personalities"

    id: Optional[int] = Field(default=None, primary_key=True)

    prompt: str = Field(sa_column=Column(Text, nullable=False))

    history: list["PersonalityHistory"] = Relationship(back_populates="parent")


class PersonalityHistory(PersonalityTables, table=True):
    __tablename__ = "history"

    id: Optional[int] = Field(primary_key=True, default=None)

    personality_id: int = Field(
        sa_column=Column(
            "personality",
            Integer,
            ForeignKey("personalities.id"),
            key="personality_id",
            nullable=False
        )
    )
    role: Role = Field(sa_column=Column(RoleType(), nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))

    parent: Optional[Personality] = Relationship(back_populates="history")
