from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Split = Literal["train", "valid", "test"]
ConversationStatus = Literal["draft", "pending", "approved", "rejected", "archived"]


class ImportMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str
    name: str = ""
    meta: Any = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("content", "name")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        if not value:
            raise ValueError("message content cannot be empty")
        return value


class ImportConversation(BaseModel):
    split: Split = "train"
    status: ConversationStatus = "approved"
    tags: list[str] = Field(default_factory=list)
    source: str = ""
    notes: str = ""
    messages: list[ImportMessage] = Field(default_factory=list)

    # Single-turn shorthand, used when ``messages`` is empty.
    user: str = ""
    assistant: str = ""
    system: str = ""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def expand_single_turn(self) -> "ImportConversation":
        if self.messages:
            return self

        user, assistant, system = self.user.strip(), self.assistant.strip(), self.system.strip()
        if not user or not assistant:
            raise ValueError("missing messages and missing user/assistant")

        if system:
            self.messages.append(ImportMessage(role="system", content=system))
        self.messages.append(ImportMessage(role="user", content=user))
        self.messages.append(ImportMessage(role="assistant", content=assistant))
        return self


class ImportItem(BaseModel):
    data: Any
    source_ref: str = ""


class _ImportRequest(BaseModel):
    dataset: str
    description: str = ""
    replace: bool = False

    model_config = ConfigDict(extra="ignore")

    @field_validator("dataset")
    @classmethod
    def validate_dataset(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("dataset cannot be empty")
        return value


class ImportConversationsRequest(_ImportRequest):
    conversations: list[ImportConversation]


class ImportItemsRequest(_ImportRequest):
    items: list[ImportItem]


class ImportResponse(BaseModel):
    dataset_id: int
    imported: int
