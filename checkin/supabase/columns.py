from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Generic, Type, TypeVar

T = TypeVar("T")


class Column(str, Generic[T]):
    def __new__(cls, name: str, converter: Callable[[Any], T] = str):
        instance = super().__new__(cls, name)
        instance._converter = converter
        return instance

    def __repr__(self):
        return f"Column({self}<{self._converter.__name__}>)"

    def __call__(self, data: dict) -> T:
        """
        Convert the value to the correct data type.
        """
        value = data.get(self)

        if value is None:
            return None
        return self._converter(value)


def datetime_column(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def date_column(value):
    if isinstance(value, date):
        return value
    return datetime.strptime(value, "%Y-%m-%d").date()


E = TypeVar("E", bound=Enum)


def enum_column(enum_type: Type[E]) -> Callable[[Any], E]:
    def converter(value):
        return enum_type(value)

    return converter


class ApprovalMethod(str, Enum):
    CALL = "call"
    SMS = "sms"
    IN_PERSON = "in_person"

    @classmethod
    def _missing_(cls, value: object) -> "ApprovalMethod":
        return cls.IN_PERSON


class AgeBucket(str, Enum):
    """Age groups, declared in display order (youngest first)."""

    PRESCHOOL = "preschool"
    PRIMARY = "primary"
    PRETEEN = "preteen"

    @classmethod
    def _missing_(cls, value: object) -> "AgeBucket":
        return cls.default()

    @classmethod
    def default(cls) -> "AgeBucket":
        return cls.PRIMARY

    @classmethod
    def display_order(cls) -> list["AgeBucket"]:
        return list(cls)
