from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ExportType = Literal["pairs", "conversations", "items", "items_with_meta"]
ContextMode = Literal["none", "window", "full"]
RoleStyle = Literal["labels", "plain"]


class ExportOptions(BaseModel):
    type: ExportType = "pairs"
    dataset_id: int = Field(default=0, ge=0)
    split: str = "train"
    status: str = "approved"
    include_system: bool = False

    # pairs only
    context: ContextMode = "none"
    context_turns: int = Field(default=6, ge=0)
    role_style: RoleStyle = "labels"

    max_examples: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class ExportMessage(BaseModel):
    role: str = ""
    content: str = ""
    name: str = ""
    meta: Any | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("role", "content", "name", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ExportPair(BaseModel):
    user: str
    assistant: str
