"""
Persistence Adapter Module

Round-trips the full Snapshot through one fixed storage slot as JSON text.
Decoding is strict about field types; anything malformed is converted into an
empty snapshot plus a PersistenceParseError at this boundary, never raised.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
import json

from .errors import PersistenceParseError
from .logging_config import get_logger, log_action
from .models import Prize, RedemptionLogEntry, Snapshot, Student
from .storage import StorageInterface


T = TypeVar('T')


@dataclass(frozen=True)
class LoadResult:
    """Outcome of reading the durable slot"""
    snapshot: Snapshot
    error: Optional[PersistenceParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def encode_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to its stored text form"""
    return json.dumps(snapshot.to_dict(), ensure_ascii=False)


def _check_fields(data: Any, kind: str, fields: Dict[str, Tuple[type, bool]]) -> None:
    """Validate presence and type of each field; (type, required) per name"""
    if not isinstance(data, dict):
        raise PersistenceParseError(f"{kind} entry is not an object")
    for name, (expected, required) in fields.items():
        if name not in data or data[name] is None:
            if required:
                raise PersistenceParseError(f"{kind} entry missing '{name}'")
            continue
        value = data[name]
        # bool is an int subclass but never a valid count
        if isinstance(value, bool) or not isinstance(value, expected):
            raise PersistenceParseError(
                f"{kind} field '{name}' has type {type(value).__name__}"
            )


_STUDENT_FIELDS = {
    'id': (str, True),
    'name': (str, True),
    'points': (int, True),
}

_PRIZE_FIELDS = {
    'id': (str, True),
    'name': (str, True),
    'price': (int, True),
    'stock': (int, True),
    'image': (str, False),
    'category': (str, False),
}

_LOG_FIELDS = {
    'id': (str, True),
    'studentName': (str, True),
    'prizeName': (str, True),
    'cost': (int, True),
    'timestamp': (str, True),
}


def _decode_collection(
    payload: Dict[str, Any],
    key: str,
    fields: Dict[str, Tuple[type, bool]],
    factory: Callable[[Dict[str, Any]], T]
) -> List[T]:
    raw = payload.get(key)
    if raw is None:
        # Older blobs may omit an empty collection
        return []
    if not isinstance(raw, list):
        raise PersistenceParseError(f"'{key}' is not a list")
    items = []
    for entry in raw:
        _check_fields(entry, key, fields)
        try:
            items.append(factory(entry))
        except ValueError as e:
            raise PersistenceParseError(str(e)) from e
    return items


def decode_snapshot(text: str) -> Snapshot:
    """
    Deserialize stored text into a snapshot

    Raises:
        PersistenceParseError: If the text is not valid JSON or any field has
            the wrong shape
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise PersistenceParseError(f"Stored data is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise PersistenceParseError("Stored data is not an object")

    return Snapshot(
        students=_decode_collection(payload, 'students', _STUDENT_FIELDS, Student.from_dict),
        prizes=_decode_collection(payload, 'prizes', _PRIZE_FIELDS, Prize.from_dict),
        logs=_decode_collection(payload, 'logs', _LOG_FIELDS, RedemptionLogEntry.from_dict)
    )


class PersistenceAdapter:
    """Durable round-trip of the full snapshot under one storage key"""

    def __init__(self, storage: StorageInterface, key: str = "chichi_prize_house_data_v2"):
        self.storage = storage
        self.key = key
        self.logger = get_logger("prize_house.persistence")

    def save(self, snapshot: Snapshot) -> None:
        """Overwrite the slot with the serialized snapshot"""
        self.storage.put(self.key, encode_snapshot(snapshot))
        self.logger.debug(
            f"Snapshot saved: {len(snapshot.students)} students, "
            f"{len(snapshot.prizes)} prizes, {len(snapshot.logs)} log entries"
        )

    def load(self) -> LoadResult:
        """
        Read and decode the slot

        Returns:
            LoadResult with the stored snapshot, or an empty snapshot and the
            parse error when the slot is malformed. A missing slot is not an
            error.
        """
        text = self.storage.get(self.key)
        if text is None:
            return LoadResult(Snapshot.empty())

        try:
            return LoadResult(decode_snapshot(text))
        except PersistenceParseError as e:
            log_action(
                self.logger, "warning", f"Stored data unreadable, starting empty: {e}",
                action="load_snapshot", resource=f"slot:{self.key}"
            )
            return LoadResult(Snapshot.empty(), error=e)
