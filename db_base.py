from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Deterministic constraint names, so migrations can drop what they created
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
}


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    No engine/session imports here, so Alembic and the sync scripts can import
    Base without pulling in async drivers.
    """
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
