from enum import Enum

from sqlalchemy import MetaData
from sqlalchemy.orm import registry
from sqlmodel import SQLModel

# Variants 1 and 2 both declare "conversation" and "history", so every
# variant gets its own registry and MetaData.


class ConversationTables(SQLModel, registry=registry()):
    pass


class RoleHistoryTables(SQLModel, registry=registry()):
    pass


class PersonalityTables(SQLModel, registry=registry()):
    pass


class SchemaVariant(str, Enum):
    CONVERSATION = "conversation"
    ROLE_HISTORY = "role_history"
    PERSONALITY = "personality"

    @property
    def metadata(self) -> MetaData:
        # Table classes register themselves on import
        import models.conversation_model  # noqa: F401
        import models.message_model  # noqa: F401
        import models.personality_model  # noqa: F401
        import models.role_history_model  # noqa: F401

        return {
            SchemaVariant.CONVERSATION: ConversationTables.metadata,
            SchemaVariant.ROLE_HISTORY: RoleHistoryTables.metadata,
            SchemaVariant.PERSONALITY: PersonalityTables.metadata,
        }[self]
