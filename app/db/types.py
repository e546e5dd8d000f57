# app/db/types.py
from __future__ import annotations

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from app.utils.money import Money


class MoneyType(TypeDecorator):
    """Money <-> BIGINT minor units. SUM() over these columns stays exact."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Money):
            return value.minor
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise TypeError(f"MoneyType expects Money, got {type(value).__name__}")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Money(int(value))
