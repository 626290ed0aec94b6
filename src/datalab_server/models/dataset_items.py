import time

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


class DatasetItem(SQLModel, table=True):
    """A schema-free JSON record.

    ``data`` holds the JSON document as compact text. Exports copy it to the
    output without decoding, so writers must store exactly one JSON value with
    no embedded newlines.
    """

    __tablename__ = "dataset_items"

    id: int | None = Field(default=None, primary_key=True)
    dataset_id: int = Field(foreign_key="datasets.id", ondelete="CASCADE", index=True)
    data: str = Field(sa_column=Column(Text, nullable=False))
    source_ref: str = Field(default="")
    created_at: int = Field(default_factory=lambda: int(time.time()))
    updated_at: int = Field(default_factory=lambda: int(time.time()))
