import time
from enum import StrEnum

from sqlmodel import Field, SQLModel


class DatasetKind(StrEnum):
    ITEMS = "items"
    CONVERSATIONS = "conversations"


class Dataset(SQLModel, table=True):
    __tablename__ = "datasets"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str = Field(default="")
    kind: str = Field(default=DatasetKind.ITEMS.value)
    created_at: int = Field(default_factory=lambda: int(time.time()))
    updated_at: int = Field(default_factory=lambda: int(time.time()))

    @property
    def is_items(self) -> bool:
        return self.kind.lower() == DatasetKind.ITEMS.value
