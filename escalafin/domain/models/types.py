"""Column helpers shared by the ORM models."""

from datetime import datetime, timezone

from sqlalchemy import Enum


def enum_column_type(enum_cls) -> Enum:
    """Store a str-enum by value, rejecting unknown strings on write and read."""
    return Enum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
