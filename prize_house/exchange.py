"""
Exchange Engine Module

Turns points into a prize. attempt_exchange() is a pure function over the
three collections: it either returns all three new collections (points
debited, stock decremented, log entry prepended) or a Rejected value and
touches nothing. ExchangeService binds it to the store and the session.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple, Union

from .errors import ExchangeRejection, Rejected
from .events import DomainEvent, EventDispatcher
from .logging_config import get_logger, log_action
from .models import Prize, RedemptionLogEntry, Student, new_id
from .session import SessionRouter
from .store import EntityStore


DEFAULT_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


@dataclass(frozen=True)
class ExchangeOutcome:
    """The three collections after a successful exchange"""
    students: Tuple[Student, ...]
    prizes: Tuple[Prize, ...]
    logs: Tuple[RedemptionLogEntry, ...]

    @property
    def entry(self) -> RedemptionLogEntry:
        """The log entry this exchange produced"""
        return self.logs[0]


def check_exchange(student: Optional[Student], prize: Prize) -> Optional[ExchangeRejection]:
    """
    Run the exchange preconditions in order without producing any state

    Returns:
        The first failing precondition, or None if the exchange may proceed
    """
    if student is None:
        return ExchangeRejection.NO_ACTIVE_SESSION
    if student.points < prize.price:
        return ExchangeRejection.INSUFFICIENT_POINTS
    if prize.stock <= 0:
        return ExchangeRejection.OUT_OF_STOCK
    return None


def attempt_exchange(
    student: Optional[Student],
    prize: Prize,
    students: Sequence[Student],
    prizes: Sequence[Prize],
    logs: Sequence[RedemptionLogEntry],
    timestamp: Optional[str] = None
) -> Union[ExchangeOutcome, Rejected]:
    """
    Execute a redemption as one all-or-nothing transition

    Args:
        student: The signed-in student, or None when nobody is signed in
        prize: The prize being redeemed
        students: Current roster
        prizes: Current catalog
        logs: Current redemption log, newest first
        timestamp: Display time for the log entry; now when omitted

    Returns:
        ExchangeOutcome with the new collections, or Rejected with the first
        failing precondition
    """
    reason = check_exchange(student, prize)
    if reason is not None:
        return Rejected(reason)

    new_students = tuple(
        s.with_points(s.points - prize.price) if s.id == student.id else s
        for s in students
    )
    new_prizes = tuple(
        p.with_stock(p.stock - 1) if p.id == prize.id else p
        for p in prizes
    )
    entry = RedemptionLogEntry(
        id=new_id(),
        student_name=student.name,
        prize_name=prize.name,
        cost=prize.price,
        timestamp=timestamp or datetime.now().strftime(DEFAULT_TIMESTAMP_FORMAT)
    )

    return ExchangeOutcome(
        students=new_students,
        prizes=new_prizes,
        logs=(entry,) + tuple(logs)
    )


class ExchangeService:
    """
    Runs exchanges against the live store for the signed-in student
    """

    def __init__(
        self,
        store: EntityStore,
        session: SessionRouter,
        event_dispatcher: Optional[EventDispatcher] = None,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.store = store
        self.session = session
        self._event_dispatcher = event_dispatcher
        self.timestamp_format = timestamp_format
        self._clock = clock
        self.logger = get_logger("prize_house.exchange")

    def check(self, prize_id: str) -> Optional[ExchangeRejection]:
        """Pre-check a redemption for the current student without committing"""
        snapshot = self.store.snapshot
        student = snapshot.find_student(self.session.current_student_id)
        if student is None:
            return ExchangeRejection.NO_ACTIVE_SESSION
        prize = snapshot.find_prize(prize_id)
        if prize is None:
            return ExchangeRejection.PRIZE_NOT_FOUND
        return check_exchange(student, prize)

    def redeem(self, prize_id: str) -> Union[ExchangeOutcome, Rejected]:
        """
        Redeem a prize for the signed-in student

        Student and prize are resolved from the current snapshot at call
        time, never from a copy held by the caller.

        Args:
            prize_id: ID of the prize to redeem

        Returns:
            ExchangeOutcome when committed, Rejected otherwise
        """
        snapshot = self.store.snapshot
        student = snapshot.find_student(self.session.current_student_id)
        prize = snapshot.find_prize(prize_id)

        # Session is checked before the prize lookup
        if student is None:
            result = Rejected(ExchangeRejection.NO_ACTIVE_SESSION)
        elif prize is None:
            result = Rejected(ExchangeRejection.PRIZE_NOT_FOUND)
        else:
            result = attempt_exchange(
                student, prize,
                snapshot.students, snapshot.prizes, snapshot.logs,
                timestamp=self._clock().strftime(self.timestamp_format)
            )

        if isinstance(result, Rejected):
            log_action(
                self.logger, "info", f"Exchange rejected: {result.reason.value}",
                action="redeem", resource=f"prize:{prize_id}",
                extra={
                    "student_id": student.id if student else None,
                    "reason": result.reason.value
                }
            )
            if self._event_dispatcher:
                self._event_dispatcher.emit(
                    DomainEvent.EXCHANGE_REJECTED, "prize", prize_id,
                    {"reason": result.reason.value}
                )
            return result

        self.store.replace(snapshot.evolve(
            students=result.students,
            prizes=result.prizes,
            logs=result.logs
        ))

        entry = result.entry
        log_action(
            self.logger, "info", "Exchange completed",
            action="redeem", resource=f"prize:{prize.id}",
            extra={
                "student_id": student.id,
                "log_id": entry.id,
                "cost": entry.cost,
                "stock_left": prize.stock - 1
            }
        )
        if self._event_dispatcher:
            self._event_dispatcher.emit(
                DomainEvent.EXCHANGE_COMPLETED, "redemption", entry.id,
                {
                    "student_id": student.id,
                    "prize_id": prize.id,
                    "student_name": entry.student_name,
                    "prize_name": entry.prize_name,
                    "cost": entry.cost
                }
            )
        return result
