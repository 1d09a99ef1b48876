import json
from typing import List, Optional
import pytest
from essay_reviewer.model.evaluation_result import EvaluationResult
from essay_reviewer.model.history_item import HistoryItem
from essay_reviewer.service.history_repository import HistoryRepository
from essay_reviewer.storage.store_adapter import MemoryStore

ROMAN = ["I", "II", "III", "IV", "V"]


def build_evaluation_payload(
    scores: Optional[List[int]] = None,
    summary: str = "Texto bem estruturado, com repertório pertinente.",
    insights: Optional[List[str]] = None,
    deviations: Optional[List[dict]] = None,
) -> dict:
    scores = scores or [160, 160, 160, 160, 160]
    payload = {
        "overallScore": sum(scores),
        "summary": summary,
        "competencies": [
            {
                "name": f"Competência {numeral}",
                "score": score,
                "feedback": f"Feedback da competência {numeral}.",
            }
            for numeral, score in zip(ROMAN, scores)
        ],
        "improvementInsights": insights if insights is not None else ["Revise a pontuação."],
    }
    if deviations is not None:
        payload["deviations"] = deviations
    return payload


def build_evaluation(**kwargs) -> EvaluationResult:
    return EvaluationResult.model_validate(build_evaluation_payload(**kwargs))


def build_item(
    item_id: str,
    name: Optional[str] = None,
    essay_text: str = "Uma redação qualquer sobre mobilidade urbana.",
    date: str = "2024-03-01T12:00:00+00:00",
    **evaluation_kwargs,
) -> HistoryItem:
    return HistoryItem(
        id=item_id,
        name=name or f"Redação {item_id}",
        essay_text=essay_text,
        evaluation=build_evaluation(**evaluation_kwargs),
        date=date,
    )


def evaluation_response(**kwargs) -> str:
    return json.dumps(build_evaluation_payload(**kwargs), ensure_ascii=False)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store) -> HistoryRepository:
    repo = HistoryRepository(store)
    repo.load()
    return repo
