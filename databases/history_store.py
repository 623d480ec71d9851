from typing import Optional, Sequence, Union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, delete, func

from core.config import settings as app_settings
from core.exceptions import ConversationNotFound, PersonalityNotFound
from core.logger import logger
from databases.database import DatabaseManager, dbm
from models.base import SchemaVariant
from models.conversation_model import Conversation
from models.message_model import History
from models.personality_model import Personality, PersonalityHistory
from models.role_history_model import RoleConversation, RoleHistory
from schemas.conversation_schema import ConversationSettings
from schemas.personality_schema import PersonalityCreate
from schemas.message_schema import ContentMessage, Message, Role, to_chat_messages


ConversationRef = Union[Conversation, int]
RoleConversationRef = Union[RoleConversation, int]
PersonalityRef = Union[Personality, int]


def _ref_id(ref) -> int:
    if isinstance(ref, int):
        return ref
    if ref.id is None:
        raise ValueError(f"{type(ref).__name__} has not been saved yet")
    return ref.id


async def _find_or_create(session: AsyncSession, table, name: str):
    """Return the row of ``table`` called ``name``, inserting it when absent."""
    statement = select(table).where(table.name == name).limit(1)
    result = await session.execute(statement)
    row = result.scalars().first()
    if row is not None:
        return row

    row = table(name=name)
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        # Someone else inserted the same name first
        await session.rollback()
        result = await session.execute(statement)
        return result.scalar_one()

    await session.refresh(row)
    logger.info(f"Created {table.__tablename__} {name!r} with id {row.id}")
    return row


async def _require(session: AsyncSession, table, row_id: int, not_found):
    row = await session.get(table, row_id)
    if row is None:
        raise not_found(row_id)
    return row


async def _history_rows(session: AsyncSession, table, owner_column, owner_id: int, limit: Optional[int]):
    if limit is not None and limit < 0:
        raise ValueError("limit must not be negative")

    statement = select(table).where(owner_column == owner_id)
    if limit is None:
        statement = statement.order_by(table.id)
        result = await session.execute(statement)
        return list(result.scalars().all())

    # Newest ``limit`` rows, handed back oldest first
    statement = statement.order_by(table.id.desc()).limit(limit)
    result = await session.execute(statement)
    return list(reversed(result.scalars().all()))


async def _clear_rows(session: AsyncSession, table, owner_column, owner_id: int) -> int:
    result = await session.execute(delete(table).where(owner_column == owner_id))
    await session.commit()
    return result.rowcount or 0


class _Store:
    variant: SchemaVariant

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def init_schema(self) -> None:
        await self.database.create_all(self.variant)

    def session(self) -> AsyncSession:
        return self.database.async_session_maker()


class ConversationStore(_Store):
    """Conversations with their model settings and JSON encoded messages."""

    variant = SchemaVariant.CONVERSATION

    async def find_conversation(self, name: str) -> Conversation:
        async with self.session() as session:
            return await _find_or_create(session, Conversation, name)

    async def get_conversation(self, conversation: ConversationRef) -> Conversation:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            return await _require(session, Conversation, conversation_id, ConversationNotFound)

    async def settings(self, conversation: ConversationRef) -> ConversationSettings:
        db_conv = await self.get_conversation(conversation)
        # Stored rows are not revalidated
        return ConversationSettings.model_construct(
            max_tokens=db_conv.max_tokens,
            model=db_conv.model,
            prompt=db_conv.prompt
        )

    async def _update(self, conversation: ConversationRef, **values) -> Conversation:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            db_conv = await session.get(Conversation, conversation_id)
            if db_conv is None:
                raise ConversationNotFound(conversation_id)
            for key, value in values.items():
                setattr(db_conv, key, value)
            session.add(db_conv)
            await session.commit()
            await session.refresh(db_conv)
            return db_conv

    async def set_prompt(self, conversation: ConversationRef, text: Optional[str]) -> Conversation:
        return await self._update(conversation, prompt=text)

    async def get_prompt(self, conversation: ConversationRef) -> Optional[str]:
        return (await self.get_conversation(conversation)).prompt

    async def set_model(self, conversation: ConversationRef, model: str) -> Conversation:
        if not model:
            raise ValueError("model must not be empty")
        return await self._update(conversation, model=model)

    async def model(self, conversation: ConversationRef) -> str:
        return (await self.get_conversation(conversation)).model

    async def set_max_tokens(self, conversation: ConversationRef, max_tokens: int) -> Conversation:
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        return await self._update(conversation, max_tokens=max_tokens)

    async def max_tokens(self, conversation: ConversationRef) -> int:
        return (await self.get_conversation(conversation)).max_tokens

    async def add_message(self, conversation: ConversationRef, message: Message) -> History:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            row = History.from_message(conversation_id, message)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as ex:
                await session.rollback()
                logger.warning(f"Rejected message for missing conversation {conversation_id}")
                raise ConversationNotFound(conversation_id) from ex
            await session.refresh(row)
            return row

    async def add_user_message(self, conversation: ConversationRef, content: str) -> History:
        return await self.add_message(conversation, ContentMessage(role=Role.USER, content=content))

    async def add_assistant_message(self, conversation: ConversationRef, content: str) -> History:
        return await self.add_message(conversation, ContentMessage(role=Role.ASSISTANT, content=content))

    async def add_system_message(self, conversation: ConversationRef, content: str) -> History:
        return await self.add_message(conversation, ContentMessage(role=Role.SYSTEM, content=content))

    async def history(self, conversation: ConversationRef, limit: Optional[int] = None) -> list[Message]:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            await _require(session, Conversation, conversation_id, ConversationNotFound)
            rows = await _history_rows(session, History, History.conversation_id, conversation_id, limit)
        return [row.decoded() for row in rows]

    async def clear_history(self, conversation: ConversationRef) -> int:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            await _require(session, Conversation, conversation_id, ConversationNotFound)
            deleted = await _clear_rows(session, History, History.conversation_id, conversation_id)
        logger.info(f"Cleared {deleted} messages from conversation {conversation_id}")
        return deleted

    async def chat_messages(self, conversation: ConversationRef, default_prompt: Optional[str] = None) -> list[dict]:
        """History in chat completion form, led by the conversation prompt.

        The stored prompt wins over ``default_prompt``; with neither there is
        no system message.
        """
        prompt = await self.get_prompt(conversation)
        messages = await self.history(conversation)
        return to_chat_messages(messages, system_prompt=prompt if prompt is not None else default_prompt)


class RoleHistoryStore(_Store):
    variant = SchemaVariant.ROLE_HISTORY

    async def find_conversation(self, name: str) -> RoleConversation:
        async with self.session() as session:
            return await _find_or_create(session, RoleConversation, name)

    async def get_conversation(self, conversation: RoleConversationRef) -> RoleConversation:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            return await _require(session, RoleConversation, conversation_id, ConversationNotFound)

    async def add_message(self, conversation: RoleConversationRef, role: Union[Role, int, str], content: str) -> RoleHistory:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            row = RoleHistory(conversation_id=conversation_id, role=Role.from_value(role), content=content)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as ex:
                await session.rollback()
                logger.warning(f"Rejected message for missing conversation {conversation_id}")
                raise ConversationNotFound(conversation_id) from ex
            await session.refresh(row)
            return row

    async def history(self, conversation: RoleConversationRef, limit: Optional[int] = None) -> list[RoleHistory]:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            await _require(session, RoleConversation, conversation_id, ConversationNotFound)
            return await _history_rows(session, RoleHistory, RoleHistory.conversation_id, conversation_id, limit)

    async def clear_history(self, conversation: RoleConversationRef) -> int:
        conversation_id = _ref_id(conversation)
        async with self.session() as session:
            await _require(session, RoleConversation, conversation_id, ConversationNotFound)
            return await _clear_rows(session, RoleHistory, RoleHistory.conversation_id, conversation_id)


class PersonalityStore(_Store):
    variant = SchemaVariant.PERSONALITY

    async def set_personality(self, name: str, prompt: str) -> Personality:
        payload = PersonalityCreate(name=name, prompt=prompt)
        statement = select(Personality).where(Personality.name == payload.name)

        async with self.session() as session:
            result = await session.execute(statement)
            personality = result.scalar_one_or_none()
            if personality is None:
                personality = Personality(name=payload.name, prompt=payload.prompt)
                session.add(personality)
                try:
                    await session.commit()
                except IntegrityError:
                    # Someone else created it first, update theirs instead
                    await session.rollback()
                    result = await session.execute(statement)
                    personality = result.scalar_one()
                else:
                    await session.refresh(personality)
                    logger.info(f"Created personality {payload.name!r} with id {personality.id}")
                    return personality

            personality.prompt = payload.prompt
            session.add(personality)
            await session.commit()
            await session.refresh(personality)
            return personality

    async def get_personality(self, name: str) -> Personality:
        async with self.session() as session:
            result = await session.execute(select(Personality).where(Personality.name == name))
            personality = result.scalar_one_or_none()
        if personality is None:
            raise PersonalityNotFound(name)
        return personality

    async def list_personalities(self, offset: int = 0, limit: int = 100) -> Sequence[Personality]:
        async with self.session() as session:
            statement = select(Personality).order_by(Personality.name).offset(offset).limit(limit)
            result = await session.execute(statement)
            return result.scalars().all()

    async def count_messages(self, personality: PersonalityRef) -> int:
        personality_id = _ref_id(personality)
        async with self.session() as session:
            await _require(session, Personality, personality_id, PersonalityNotFound)
            statement = select(func.count()).select_from(PersonalityHistory).where(
                PersonalityHistory.personality_id == personality_id
            )
            result = await session.execute(statement)
            return result.scalar_one()

    async def add_message(self, personality: PersonalityRef, role: Union[Role, int, str], content: str) -> PersonalityHistory:
        personality_id = _ref_id(personality)
        async with self.session() as session:
            row = PersonalityHistory(personality_id=personality_id, role=Role.from_value(role), content=content)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as ex:
                await session.rollback()
                logger.warning(f"Rejected message for missing personality {personality_id}")
                raise PersonalityNotFound(personality_id) from ex
            await session.refresh(row)
            return row

    async def history(self, personality: PersonalityRef, limit: Optional[int] = None) -> list[PersonalityHistory]:
        personality_id = _ref_id(personality)
        async with self.session() as session:
            await _require(session, Personality, personality_id, PersonalityNotFound)
            return await _history_rows(session, PersonalityHistory, PersonalityHistory.personality_id, personality_id, limit)

    async def clear_history(self, personality: PersonalityRef) -> int:
        personality_id = _ref_id(personality)
        async with self.session() as session:
            await _require(session, Personality, personality_id, PersonalityNotFound)
            return await _clear_rows(session, PersonalityHistory, PersonalityHistory.personality_id, personality_id)


_STORES: dict[SchemaVariant, type[_Store]] = {
    SchemaVariant.CONVERSATION: ConversationStore,
    SchemaVariant.ROLE_HISTORY: RoleHistoryStore,
    SchemaVariant.PERSONALITY: PersonalityStore,
}


def get_store(variant: Union[SchemaVariant, str, None] = None, database: Optional[DatabaseManager] = None) -> _Store:
    """Store for ``variant``, defaulting to ``settings.SCHEMA_VARIANT`` on the shared engine."""
    if variant is None:
        variant = app_settings.SCHEMA_VARIANT
    return _STORES[SchemaVariant(variant)](database or dbm)
