# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All ledger tables (accounts, items, payments, invoices, claims) inherit from this."""
    pass
