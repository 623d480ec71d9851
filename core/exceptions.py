class HistoryStoreError(Exception):
    """Base class for errors raised by the history stores."""


class ConversationNotFound(HistoryStoreError, LookupError):
    def __init__(self, conversation: int | str):
        self.conversation = conversation
        super().__init__(f"Conversation not found: {conversation}")


class PersonalityNotFound(HistoryStoreError, LookupError):
    def __init__(self, personality: int | str):
        self.personality = personality
        super().__init__(f"Personality not found: {personality}")


class InvalidRoleError(HistoryStoreError, ValueError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid role: {value!r}")


class MessageDecodeError(HistoryStoreError, ValueError):
    pass
