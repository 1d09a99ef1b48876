"""
Bounded, most-recent-first history of completed essay evaluations.

The repository owns the in-memory list and rewrites the whole serialized list
to its store after every mutation. Storage problems never escape to the
caller: they are reported through ``HistoryResult.status`` and the in-memory
list stays authoritative.
"""
import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, List, Optional
from pydantic import TypeAdapter, ValidationError
from essay_reviewer.model.history_item import HistoryItem
from essay_reviewer.storage.store_adapter import StoreAdapter, StoreError

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 20
HISTORY_STORAGE_KEY = "essayHistory"

SAVE_FAILED_MESSAGE = "Não foi possível salvar no histórico. O armazenamento pode estar cheio."
LOAD_FAILED_MESSAGE = "Não foi possível carregar o histórico salvo. Iniciando com um histórico vazio."

_history_adapter = TypeAdapter(List[HistoryItem])


class HistoryStatus(StrEnum):
    OK = "ok"
    RECOVERED_EMPTY = "recovered_empty"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class HistoryResult:
    items: List[HistoryItem]
    status: HistoryStatus = HistoryStatus.OK
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == HistoryStatus.OK


def serialize_history(items: Iterable[HistoryItem]) -> bytes:
    payload = [item.to_json_dict() for item in items]
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def deserialize_history(payload: bytes) -> List[HistoryItem]:
    data = json.loads(payload.decode("utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    return _history_adapter.validate_python(data)


def matches_query(item: HistoryItem, query: str) -> bool:
    """Case-insensitive substring match over the searchable fields of an item.

    ``query`` must already be normalized (stripped and lowercased).
    """
    if not query:
        return True

    evaluation = item.evaluation
    fields = [item.name, item.essay_text or "", str(evaluation.overall_score), evaluation.summary]
    for competency in evaluation.competencies:
        fields.append(competency.name)
        fields.append(competency.feedback)
    fields.extend(evaluation.improvement_insights)
    for deviation in evaluation.deviations:
        fields.append(deviation.type)
        fields.append(deviation.comment)
        fields.append(deviation.correction)

    return any(query in field.lower() for field in fields)


class HistoryRepository:
    def __init__(
        self,
        store: StoreAdapter,
        key: str = HISTORY_STORAGE_KEY,
        max_items: int = MAX_HISTORY_ITEMS,
    ):
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.store = store
        self.key = key
        self.max_items = max_items
        self._items: List[HistoryItem] = []

    @property
    def items(self) -> List[HistoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[HistoryItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def load(self) -> HistoryResult:
        try:
            payload = self.store.read(self.key)
        except (StoreError, OSError) as e:
            logger.error(f"Failed to read history from store: {e}")
            self._items = []
            return self._result(HistoryStatus.RECOVERED_EMPTY, LOAD_FAILED_MESSAGE)

        if payload is None:
            self._items = []
            return self._result()

        try:
            items = deserialize_history(payload)
        except (ValueError, UnicodeDecodeError, RecursionError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError; deeply nested arrays overflow the decoder.
            # The payload is left untouched.
            logger.error(f"Failed to load history, starting empty: {e}")
            self._items = []
            return self._result(HistoryStatus.RECOVERED_EMPTY, LOAD_FAILED_MESSAGE)

        if len(items) > self.max_items:
            logger.warning(f"Stored history has {len(items)} items, keeping the newest {self.max_items}")
        self._items = items[: self.max_items]
        return self._result()

    def add(self, item: HistoryItem) -> HistoryResult:
        if self.get(item.id) is not None:
            raise ValueError(f"history item {item.id!r} already exists")
        self._items = [item, *self._items][: self.max_items]
        return self._persist()

    def remove(self, item_id: str) -> HistoryResult:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return self._result()
        self._items = remaining
        return self._persist()

    def rename(self, item_id: str, new_name: str) -> HistoryResult:
        if self.get(item_id) is None:
            return self._result()
        self._items = [item.renamed(new_name) if item.id == item_id else item for item in self._items]
        return self._persist()

    def clear_all(self) -> HistoryResult:
        self._items = []
        try:
            self.store.delete(self.key)
        except (StoreError, OSError) as e:
            logger.error(f"Failed to clear history from store: {e}")
            return self._result(HistoryStatus.DEGRADED, SAVE_FAILED_MESSAGE)
        return self._result()

    def search(self, query: str) -> List[HistoryItem]:
        normalized = (query or "").strip().lower()
        return [item for item in self._items if matches_query(item, normalized)]

    def _persist(self) -> HistoryResult:
        try:
            self.store.write(self.key, serialize_history(self._items))
        except (StoreError, OSError) as e:
            logger.error(f"Failed to save history to store: {e}")
            return self._result(HistoryStatus.DEGRADED, SAVE_FAILED_MESSAGE)
        return self._result()

    def _result(self, status: HistoryStatus = HistoryStatus.OK, message: Optional[str] = None) -> HistoryResult:
        return HistoryResult(items=self.items, status=status, message=message)
