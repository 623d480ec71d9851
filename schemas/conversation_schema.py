from sqlmodel import SQLModel, Field
from typing import Optional

DEFAULT_MAX_TOKENS = 256
DEFAULT_MODEL = "gpt-3.5-turbo"


class ConversationBase(SQLModel):
    name: str = Field(max_length=255, unique=True)


class ConversationSettings(SQLModel):
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    model: str = DEFAULT_MODEL
    prompt: Optional[str] = None


class RoleConversationBase(SQLModel):
    name: str = Field(unique=True)
