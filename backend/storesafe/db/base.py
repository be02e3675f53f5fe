"""
Database Base Definition
========================

Defines the SQLAlchemy Declarative Base and shared column types.

All ORM models must inherit from this Base. Importing
`storesafe.models` registers every table on `Base.metadata`.
"""

from enum import Enum
from typing import Type

from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import declarative_base

# Base class for all database models
Base = declarative_base()


def enum_column_type(enum_cls: Type[Enum], length: int = 30) -> SAEnum:
    """
    Store a str Enum as its lowercase value in a VARCHAR column.

    Rows load back as enum members; plain string values are accepted on write.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
