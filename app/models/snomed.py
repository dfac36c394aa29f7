"""SQLAlchemy mappings for the read-only ``snomed`` schema.

The terminology tables are loaded and indexed outside this service (RF2
release import plus a ``pg_trgm`` GIN index on ``description.term``).  These
mappings exist so queries can be composed with the SQLAlchemy expression
language; the service never writes to them.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import BigInteger, Boolean, Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

SNOMED_SCHEMA = "snomed"

IS_A_TYPE_ID = 116680003
SYNONYM_TYPE_ID = 900000000000013009
FSN_TYPE_ID = 900000000000003001


class Concept(Base):
    __tablename__ = "concept"
    __table_args__ = {"schema": SNOMED_SCHEMA}

    concept_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    effective_time: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    module_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    definition_status_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class Description(Base):
    __tablename__ = "description"
    __table_args__ = {"schema": SNOMED_SCHEMA}

    description_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    effective_time: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    module_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    concept_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    language_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    type_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    term: Mapped[str] = mapped_column(Text, nullable=False)
    case_significance_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class Relationship(Base):
    __tablename__ = "relationship"
    __table_args__ = {"schema": SNOMED_SCHEMA}

    relationship_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    effective_time: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    module_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    source_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    destination_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    relationship_group: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    characteristic_type_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    modifier_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class TextDefinition(Base):
    __tablename__ = "text_definition"
    __table_args__ = {"schema": SNOMED_SCHEMA}

    definition_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    effective_time: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    module_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    concept_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    language_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    type_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    term: Mapped[str] = mapped_column(Text, nullable=False)
    case_significance_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class SemanticTagInfo(Base):
    """One row per concept: its FSN and the tag parsed from the FSN suffix."""

    __tablename__ = "semantic_tag"
    __table_args__ = {"schema": SNOMED_SCHEMA}

    concept_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    fully_specified_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    semantic_tag: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
