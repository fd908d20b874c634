"""
Catalog Manager Module

Administrative operations on the roster, the prize catalog and the
redemption log. Each operation reads the current snapshot, derives new
collections and commits them through the store. Operations that would not
change anything (unknown ids, empty imports) do not commit at all.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .errors import ValidationError
from .events import DomainEvent, EventDispatcher
from .logging_config import get_logger, log_action
from .models import Prize, Student, new_id
from .store import EntityStore


@dataclass
class PrizeDraft:
    """
    Editable prize fields as entered in the workbench

    Any field may be missing while editing; validation decides whether the
    draft can become a Prize.
    """
    name: Optional[str] = None
    price: Optional[int] = None
    stock: Optional[int] = None
    image: str = ""
    category: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_prize(cls, prize: Prize) -> 'PrizeDraft':
        """Load an existing prize into the editor"""
        return cls(
            name=prize.name,
            price=prize.price,
            stock=prize.stock,
            image=prize.image,
            category=prize.category,
            id=prize.id
        )

    def to_prize(self, prize_id: str) -> Prize:
        return Prize(
            id=prize_id,
            name=self.name,
            price=self.price,
            stock=self.stock,
            image=self.image or "",
            category=self.category
        )


def validate_draft(draft: PrizeDraft) -> Optional[ValidationError]:
    """
    Check a draft against the catalog entry policy

    Name, price and stock must be present. Zero is accepted for price and
    stock; negative values are rejected because stock can never go below
    zero and a negative price would add points on redemption.
    """
    missing = []
    if not draft.name:
        missing.append("name")
    if draft.price is None:
        missing.append("price")
    if draft.stock is None:
        missing.append("stock")

    invalid = []
    if draft.price is not None and draft.price < 0:
        invalid.append("price")
    if draft.stock is not None and draft.stock < 0:
        invalid.append("stock")

    if missing or invalid:
        return ValidationError(missing=tuple(missing), invalid=tuple(invalid))
    return None


def parse_roster(raw_text: str) -> Tuple[str, ...]:
    """One name per line; surrounding whitespace trimmed, blank lines dropped"""
    names = (line.strip() for line in raw_text.split("\n"))
    return tuple(name for name in names if name)


class CatalogManager:
    """
    Manages prizes, the student roster, point adjustments and the log
    """

    def __init__(self, store: EntityStore, event_dispatcher: Optional[EventDispatcher] = None):
        self.store = store
        self._event_dispatcher = event_dispatcher
        self.logger = get_logger("prize_house.catalog")

    # Prize operations

    def create_prize(self, draft: PrizeDraft) -> Union[Prize, ValidationError]:
        """
        Create a new prize listing at the front of the catalog

        Args:
            draft: Prize fields; any id on the draft is ignored

        Returns:
            The created Prize, or ValidationError naming the offending fields
        """
        error = validate_draft(draft)
        if error:
            self._log_rejection("create_prize", error)
            return error

        prize = draft.to_prize(new_id())
        snapshot = self.store.snapshot
        self.store.replace(snapshot.evolve(prizes=(prize,) + snapshot.prizes))

        self._record("Prize created", "create_prize", "prize", prize.id,
                     DomainEvent.PRIZE_CREATED,
                     {"name": prize.name, "price": prize.price, "stock": prize.stock})
        return prize

    def update_prize(self, prize_id: str, fields: PrizeDraft) -> Union[Prize, ValidationError, None]:
        """
        Replace the full record of an existing prize

        Returns:
            The updated Prize, ValidationError if the fields are unacceptable,
            or None when no prize has this id (nothing changes)
        """
        error = validate_draft(fields)
        if error:
            self._log_rejection("update_prize", error)
            return error

        snapshot = self.store.snapshot
        if snapshot.find_prize(prize_id) is None:
            return None

        updated = fields.to_prize(prize_id)
        self.store.replace(snapshot.evolve(
            prizes=tuple(updated if p.id == prize_id else p for p in snapshot.prizes)
        ))

        self._record("Prize updated", "update_prize", "prize", prize_id,
                     DomainEvent.PRIZE_UPDATED,
                     {"name": updated.name, "price": updated.price, "stock": updated.stock})
        return updated

    def delete_prize(self, prize_id: str) -> bool:
        """Remove a prize; returns False (and changes nothing) if absent"""
        snapshot = self.store.snapshot
        remaining = tuple(p for p in snapshot.prizes if p.id != prize_id)
        if len(remaining) == len(snapshot.prizes):
            return False

        self.store.replace(snapshot.evolve(prizes=remaining))
        self._record("Prize deleted", "delete_prize", "prize", prize_id,
                     DomainEvent.PRIZE_DELETED, {})
        return True

    # Roster operations

    def add_student(self, name: str) -> Union[Student, ValidationError]:
        """Append a single student with zero points"""
        name = (name or "").strip()
        if not name:
            return ValidationError(missing=("name",))

        student = Student(id=new_id(), name=name, points=0)
        snapshot = self.store.snapshot
        self.store.replace(snapshot.evolve(students=snapshot.students + (student,)))

        self._record("Student added", "add_student", "student", student.id,
                     DomainEvent.STUDENT_ADDED, {"name": name})
        return student

    def import_students(self, raw_text: str) -> Tuple[Student, ...]:
        """
        Append one student per non-blank line of text

        Duplicate names are allowed; the id is the identity.

        Returns:
            The students added, in input order
        """
        new_students = tuple(
            Student(id=new_id(), name=name, points=0)
            for name in parse_roster(raw_text)
        )
        if not new_students:
            return new_students

        snapshot = self.store.snapshot
        self.store.replace(snapshot.evolve(students=snapshot.students + new_students))

        self._record(f"Imported {len(new_students)} students", "import_students",
                     "student", None, DomainEvent.STUDENTS_IMPORTED,
                     {"count": len(new_students),
                      "student_ids": [s.id for s in new_students]})
        return new_students

    def delete_student(self, student_id: str) -> bool:
        """Remove a student; returns False (and changes nothing) if absent"""
        snapshot = self.store.snapshot
        remaining = tuple(s for s in snapshot.students if s.id != student_id)
        if len(remaining) == len(snapshot.students):
            return False

        self.store.replace(snapshot.evolve(students=remaining))
        self._record("Student deleted", "delete_student", "student", student_id,
                     DomainEvent.STUDENT_DELETED, {})
        return True

    def adjust_points(self, student_id: str, delta: int) -> Optional[Student]:
        """
        Credit or debit a student's points, clamping the result at zero

        Returns:
            The updated student, or None if the id is unknown
        """
        snapshot = self.store.snapshot
        student = snapshot.find_student(student_id)
        if student is None:
            return None

        updated = student.with_points(max(0, student.points + delta))
        if updated == student:
            return student

        self.store.replace(snapshot.evolve(
            students=tuple(updated if s.id == student_id else s for s in snapshot.students)
        ))

        self._record("Points adjusted", "adjust_points", "student", student_id,
                     DomainEvent.POINTS_ADJUSTED,
                     {"delta": delta, "before": student.points, "after": updated.points})
        return updated

    # Log operations

    def clear_log(self) -> int:
        """
        Empty the redemption log

        Returns:
            Number of entries removed
        """
        snapshot = self.store.snapshot
        count = len(snapshot.logs)
        if count == 0:
            return 0

        self.store.replace(snapshot.evolve(logs=()))
        self._record("Redemption log cleared", "clear_log", "log", None,
                     DomainEvent.LOG_CLEARED, {"entries_removed": count})
        return count

    def _record(self, message, action, entity_type, entity_id, event_type, data) -> None:
        resource = f"{entity_type}:{entity_id}" if entity_id else entity_type
        log_action(self.logger, "info", message, action=action, resource=resource, extra=data)
        if self._event_dispatcher:
            self._event_dispatcher.emit(event_type, entity_type, entity_id, data)

    def _log_rejection(self, action: str, error: ValidationError) -> None:
        log_action(self.logger, "info", f"Rejected: {error.message}", action=action)
