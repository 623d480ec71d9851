# tests/test_models.py
import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from models.conversation_model import Conversation
from models.message_model import History
from models.role_history_model import RoleConversation, RoleHistory
from models.personality_model import Personality, PersonalityHistory
from schemas.message_schema import ContentMessage, Role


@pytest.mark.asyncio
async def test_conversation_history_flow(conversation_session):
    session = conversation_session

    # 1. Create a Conversation with defaults
    # --------------------------------------
    new_conv = Conversation(name="#general")
    session.add(new_conv)
    await session.commit()
    await session.refresh(new_conv)

    assert new_conv.id is not None
    assert new_conv.max_tokens == 256
    assert new_conv.model == "gpt-3.5-turbo"
    assert new_conv.prompt is None

    # 2. Attach History rows
    # ----------------------
    msg1 = History.from_message(new_conv.id, ContentMessage(role=Role.USER, content="How do I exit vim?"))
    msg2 = History.from_message(new_conv.id, ContentMessage(role=Role.ASSISTANT, content="You don't. You live there now."))
    session.add_all([msg1, msg2])
    await session.commit()

    # 3. Relationships are lazy in async, refresh them explicitly
    # -----------------------------------------------------------
    await session.refresh(new_conv, ["history"])
    assert [h.id for h in new_conv.history] == [msg1.id, msg2.id]
    assert new_conv.history[1].decoded().content == "You don't. You live there now."

    await session.refresh(msg1, ["parent"])
    assert msg1.parent.name == "#general"


@pytest.mark.asyncio
async def test_conversation_defaults_from_server(conversation_session):
    session = conversation_session
    await session.execute(text("INSERT INTO conversation (name) VALUES ('raw')"))
    await session.commit()

    result = await session.execute(select(Conversation).where(Conversation.name == "raw"))
    db_conv = result.scalar_one()

    assert db_conv.max_tokens == 256
    assert db_conv.model == "gpt-3.5-turbo"
    assert db_conv.prompt is None


@pytest.mark.asyncio
async def test_conversation_round_trip(conversation_session):
    session = conversation_session
    conv = Conversation(name="tuned", max_tokens=1024, model="gpt-4", prompt="Be brief.")
    session.add(conv)
    await session.commit()
    conv_id = conv.id
    session.expunge_all()

    db_conv = await session.get(Conversation, conv_id)
    assert (db_conv.name, db_conv.max_tokens, db_conv.model, db_conv.prompt) == ("tuned", 1024, "gpt-4", "Be brief.")

    row = History(conversation_id=conv_id, message='{"Content":{"role":"User","content":"hi"}}')
    session.add(row)
    await session.commit()
    row_id = row.id
    session.expunge_all()

    db_row = await session.get(History, row_id)
    assert db_row.conversation_id == conv_id
    assert db_row.message == '{"Content":{"role":"User","content":"hi"}}'


@pytest.mark.asyncio
async def test_conversation_name_is_unique(conversation_session):
    session = conversation_session
    session.add(Conversation(name="dup"))
    await session.commit()

    session.add(Conversation(name="dup"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


@pytest.mark.asyncio
async def test_conversation_history_needs_parent(conversation_session):
    session = conversation_session
    session.add(History(conversation_id=999, message="orphan"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


@pytest.mark.asyncio
async def test_conversation_history_message_not_null(conversation_session):
    session = conversation_session
    conv = Conversation(name="c")
    session.add(conv)
    await session.commit()

    with pytest.raises(IntegrityError):
        await session.execute(text("INSERT INTO history (conversation) VALUES (:c)"), {"c": conv.id})
    await session.rollback()


@pytest.mark.asyncio
async def test_role_history_round_trip(role_history_session):
    session = role_history_session
    conv = RoleConversation(name="#random")
    session.add(conv)
    await session.commit()

    row = RoleHistory(conversation_id=conv.id, role=Role.ASSISTANT, content="hello")
    session.add(row)
    await session.commit()
    row_id = row.id
    session.expunge_all()

    db_row = await session.get(RoleHistory, row_id)
    assert db_row.role is Role.ASSISTANT
    assert db_row.content == "hello"

    result = await session.execute(text("SELECT role FROM history WHERE id = :id"), {"id": row_id})
    assert result.scalar_one() == 2


@pytest.mark.asyncio
async def test_role_history_constraints(role_history_session):
    session = role_history_session
    session.add(RoleConversation(name="dup"))
    await session.commit()

    session.add(RoleConversation(name="dup"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()

    session.add(RoleHistory(conversation_id=12345, role=Role.USER, content="orphan"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


@pytest.mark.asyncio
async def test_personality_round_trip(personality_session):
    session = personality_session
    personality = Personality(name="pirate", prompt="Talk like a pirate.")
    session.add(personality)
    await session.commit()
    personality_id = personality.id

    session.add(PersonalityHistory(personality_id=personality_id, role=Role.USER, content="ahoy"))
    await session.commit()
    session.expunge_all()

    db_personality = await session.get(Personality, personality_id)
    assert db_personality.prompt == "Talk like a pirate."

    await session.refresh(db_personality, ["history"])
    assert [(h.role, h.content) for h in db_personality.history] == [(Role.USER, "ahoy")]


@pytest.mark.asyncio
async def test_personality_prompt_is_required(personality_session):
    session = personality_session
    with pytest.raises(IntegrityError):
        await session.execute(text("INSERT INTO personalities (name) VALUES ('blank')"))
    await session.rollback()


@pytest.mark.asyncio
async def test_personality_constraints(personality_session):
    session = personality_session
    session.add(Personality(name="dup", prompt="one"))
    await session.commit()

    session.add(Personality(name="dup", prompt="two"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()

    session.add(PersonalityHistory(personality_id=404, role=Role.SYSTEM, content="orphan"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()
