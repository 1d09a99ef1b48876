import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from essay_reviewer.model.evaluation_result import EvaluationResult


def new_history_id(now: Optional[datetime] = None) -> str:
    """Timestamp prefix keeps ids readable; the uuid4 suffix keeps them unique."""
    now = now or datetime.now(timezone.utc)
    return f"{now.isoformat()}-{uuid.uuid4().hex}"


def default_history_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Redação - {now:%d/%m %H:%M}"


class HistoryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="Unique identifier of the record")
    name: str = Field(description="User-editable display label")
    essay_text: Optional[str] = Field(default=None, alias="essayText", description="The analyzed essay text")
    image_data_url: Optional[str] = Field(
        default=None, alias="imageDataUrl", description="data: URL of the photographed essay"
    )
    evaluation: EvaluationResult
    date: str = Field(description="ISO-8601 creation timestamp")

    @model_validator(mode="after")
    def _has_input(self):
        if self.essay_text is None and self.image_data_url is None:
            raise ValueError("a history item needs essayText or imageDataUrl")
        return self

    @classmethod
    def from_evaluation(
        cls,
        evaluation: EvaluationResult,
        essay_text: Optional[str] = None,
        image_data_url: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "HistoryItem":
        created = datetime.now(timezone.utc)
        return cls(
            id=new_history_id(created),
            name=name or default_history_name(created.astimezone()),
            essay_text=essay_text,
            image_data_url=image_data_url,
            evaluation=evaluation,
            date=created.isoformat(),
        )

    def renamed(self, new_name: str) -> "HistoryItem":
        return self.model_copy(update={"name": new_name})

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
