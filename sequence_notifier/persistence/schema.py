"""Database schema definition and ORM models.

Two tables: ``customers`` holds one row per email address, ``dna`` holds
any number of sequences per customer.
"""

import logging

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

logger = logging.getLogger(__name__)

Base = declarative_base()

# Longest email address permitted by RFC 3696 errata.
EMAIL_MAX_LENGTH = 320


class CustomerModel(Base):
    """ORM model for the customers table."""

    __tablename__ = "customers"

    customer_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(EMAIL_MAX_LENGTH), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)

    sequences = relationship(
        "SequenceModel",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SequenceModel.position",
    )


class SequenceModel(Base):
    """ORM model for the dna table."""

    __tablename__ = "dna"

    dna_id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer,
        ForeignKey("customers.customer_id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence = Column(Text, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    customer = relationship("CustomerModel", back_populates="sequences")

    __table_args__ = (Index("idx_dna_customer", "customer_id"),)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
