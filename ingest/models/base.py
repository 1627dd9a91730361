from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# JSONB/TSVECTOR on PostgreSQL, portable types everywhere else (tests run on SQLite).
JSONList = JSON().with_variant(JSONB(), "postgresql")
SearchVector = Text().with_variant(TSVECTOR(), "postgresql")
