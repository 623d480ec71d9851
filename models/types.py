from sqlalchemy import Integer
from sqlalchemy.types import TypeDecorator

from schemas.message_schema import Role


class RoleType(TypeDecorator):
    """Stores a ``Role`` as its INTEGER code."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(Role.from_value(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Role.from_value(value)
