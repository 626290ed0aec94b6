import time
from typing import Any

from sqlalchemy import JSON, Column, Index, UniqueConstraint
from sqlmodel import Field, SQLModel


class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"
    __table_args__ = (Index("ix_conversations_dataset_split_status", "dataset_id", "split", "status"),)

    id: int | None = Field(default=None, primary_key=True)
    dataset_id: int = Field(foreign_key="datasets.id", ondelete="CASCADE", index=True)
    split: str = Field(default="train")
    status: str = Field(default="approved")
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    source: str = Field(default="")
    notes: str = Field(default="")
    created_at: int = Field(default_factory=lambda: int(time.time()))
    updated_at: int = Field(default_factory=lambda: int(time.time()))


class ConversationMessage(SQLModel, table=True):
    __tablename__ = "conversation_messages"
    __table_args__ = (UniqueConstraint("conversation_id", "idx", name="uq_conversation_messages_conversation_idx"),)

    id: int | None = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="conversations.id", ondelete="CASCADE", index=True)
    idx: int
    role: str
    name: str = Field(default="")
    content: str
    meta: Any = Field(default=None, sa_column=Column(JSON(none_as_null=True), nullable=True))
    created_at: int = Field(default_factory=lambda: int(time.time()))
