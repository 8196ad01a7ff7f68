from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class CaseInsensitiveEnum(TypeDecorator):
    """Store a ``str`` enum by value in a plain VARCHAR column.

    Strings are matched case-insensitively on the way in, so ``"pending"`` and
    ``BookingStatus.PENDING`` bind identically. Rows always load back as enum
    members.
    """

    impl = String
    cache_ok = True

    def __init__(self, enum_cls, name=None, length=32):
        super().__init__(length)
        self.enum_cls = enum_cls
        self.name = name

    def _coerce(self, value):
        if value is None or isinstance(value, self.enum_cls):
            return value
        return self.enum_cls(str(value).strip().upper())

    def process_bind_param(self, value, dialect):
        member = self._coerce(value)
        return None if member is None else member.value

    def process_result_value(self, value, dialect):
        return self._coerce(value)
