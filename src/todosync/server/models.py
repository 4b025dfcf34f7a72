"""SQLAlchemy models for todosync.

This module defines the database schema using SQLAlchemy ORM.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class TodoListRecord(Base):
    """Represents a todo list."""

    __tablename__ = "todo_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    remote_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    items: Mapped[list[TodoItemRecord]] = relationship(
        "TodoItemRecord",
        back_populates="todo_list",
        cascade="all, delete-orphan",
        order_by="TodoItemRecord.id",
    )

    # Indexes
    __table_args__ = (
        Index("idx_todo_lists_remote_id", "remote_id"),
        Index("idx_todo_lists_source_id", "source_id"),
    )


class TodoItemRecord(Base):
    """Represents a todo item belonging to a list."""

    __tablename__ = "todo_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    todo_list_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("todo_lists.id", ondelete="CASCADE"), nullable=False
    )
    remote_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    todo_list: Mapped[TodoListRecord] = relationship(
        "TodoListRecord", back_populates="items"
    )

    # Indexes
    __table_args__ = (
        Index("idx_todo_items_list", "todo_list_id"),
        Index("idx_todo_items_remote_id", "remote_id"),
    )


class DeletedEntityRecord(Base):
    """Tombstone for a synced entity deleted locally, pending remote deletion."""

    __tablename__ = "deleted_entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    remote_id: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    parent_remote_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Indexes
    __table_args__ = (Index("idx_deleted_entities_type", "entity_type"),)
