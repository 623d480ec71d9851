from typing import Any, ClassVar, Iterable, Optional, Union
from enum import IntEnum
import json

from pydantic import BaseModel, ValidationError, field_serializer, field_validator

from core.exceptions import InvalidRoleError, MessageDecodeError


class Role(IntEnum):
    SYSTEM = 0
    USER = 1
    ASSISTANT = 2
    FUNCTION = 3

    @property
    def label(self) -> str:
        """Role name as the chat completion API spells it."""
        return self.name.lower()

    @classmethod
    def from_value(cls, value: Union["Role", int, str]) -> "Role":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise InvalidRoleError(value) from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRoleError(value) from None
        raise InvalidRoleError(value)


class _MessageBase(BaseModel):
    tag: ClassVar[str]

    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value: Any) -> Role:
        return Role.from_value(value)

    # Stored rows spell the role capitalised, e.g. "Assistant"
    @field_serializer("role")
    def _dump_role(self, role: Role) -> str:
        return role.name.capitalize()


class ContentMessage(_MessageBase):
    tag: ClassVar[str] = "Content"

    content: str

    @property
    def text(self) -> str:
        return self.content


class FunctionMessage(_MessageBase):
    tag: ClassVar[str] = "Function"

    fn_name: str
    fn_args: str

    @property
    def text(self) -> str:
        return f"{self.fn_name}({self.fn_args})"


Message = Union[ContentMessage, FunctionMessage]

_MESSAGE_TYPES: dict[str, type[_MessageBase]] = {
    ContentMessage.tag: ContentMessage,
    FunctionMessage.tag: FunctionMessage,
}


def encode_message(message: Message) -> str:
    return json.dumps({message.tag: message.model_dump(mode="json")}, separators=(",", ":"), ensure_ascii=False)


def decode_message(raw: str) -> Message:
    """Parse a stored ``history.message`` value.

    The value is an externally tagged object with exactly one key, either
    ``Content`` or ``Function``.
    """
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as ex:
        raise MessageDecodeError(f"Message is not valid JSON: {ex}") from ex

    if not isinstance(data, dict) or len(data) != 1:
        raise MessageDecodeError(f"Expected a single tagged message, got: {raw!r}")

    (tag, body), = data.items()
    message_type = _MESSAGE_TYPES.get(tag)
    if message_type is None:
        raise MessageDecodeError(f"Unknown message kind: {tag!r}")

    try:
        return message_type.model_validate(body)
    except (ValidationError, InvalidRoleError) as ex:
        raise MessageDecodeError(f"Invalid {tag} message: {ex}") from ex


def message_from_response(payload: dict[str, Any]) -> Message:
    """Build a message from a chat completion response ``message`` object."""
    role = payload.get("role", Role.ASSISTANT)
    content = payload.get("content")
    function_call = payload.get("function_call")

    try:
        if content is not None and function_call is None:
            return ContentMessage(role=role, content=content)
        if content is None and function_call is not None:
            return FunctionMessage(
                role=role,
                fn_name=function_call["name"],
                fn_args=function_call.get("arguments", ""),
            )
    except (KeyError, TypeError, AttributeError, ValidationError) as ex:
        raise MessageDecodeError(f"Invalid response message: {ex!r}") from ex
    raise MessageDecodeError("Response must carry either content or a function call")


def to_chat_message(message: Message) -> dict[str, Any]:
    if isinstance(message, FunctionMessage):
        return {
            "role": message.role.label,
            "content": None,
            "name": message.fn_name,
            "function_call": {"name": message.fn_name, "arguments": message.fn_args},
        }
    return {"role": message.role.label, "content": message.content}


def to_chat_messages(messages: Iterable[Message], system_prompt: Optional[str] = None) -> list[dict[str, Any]]:
    clean_list = []
    if system_prompt is not None:
        clean_list.append({"role": Role.SYSTEM.label, "content": system_prompt})

    for msg in messages:
        clean_list.append(to_chat_message(msg))

    return clean_list
