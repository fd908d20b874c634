"""
Test suite for the exchange engine

Covers the precondition chain, atomicity of rejected exchanges, point and
stock conservation on success, and the service bound to the live store.
"""

import pytest
from datetime import datetime

from prize_house.errors import ExchangeRejection, Rejected
from prize_house.events import DomainEvent, EventDispatcher
from prize_house.exchange import (
    ExchangeOutcome, ExchangeService, attempt_exchange, check_exchange
)
from prize_house.models import Prize, RedemptionLogEntry, Snapshot, Student
from prize_house.persistence import PersistenceAdapter
from prize_house.session import SessionRouter
from prize_house.storage import InMemoryStorage
from prize_house.store import EntityStore


class TestAttemptExchange:
    """Test the pure exchange transition"""

    def setup_method(self):
        self.xiaoming = Student(id="s1", name="小明", points=10)
        self.xiaohua = Student(id="s2", name="小華", points=5)
        self.sticker = Prize(id="p1", name="貼紙", price=10, stock=1)
        self.pencil = Prize(id="p2", name="鉛筆", price=3, stock=5)
        self.students = (self.xiaoming, self.xiaohua)
        self.prizes = (self.sticker, self.pencil)
        self.logs = ()

    def test_successful_exchange(self):
        """Scenario A: 10 points buys the last sticker"""
        result = attempt_exchange(
            self.xiaoming, self.sticker, self.students, self.prizes, self.logs,
            timestamp="2026/10/19 09:00:00"
        )

        assert isinstance(result, ExchangeOutcome)
        assert result.students[0].points == 0
        assert result.prizes[0].stock == 0
        assert len(result.logs) == 1
        assert result.logs[0].cost == 10
        assert result.logs[0].student_name == "小明"
        assert result.logs[0].prize_name == "貼紙"
        assert result.logs[0].timestamp == "2026/10/19 09:00:00"

    def test_other_entities_untouched(self):
        """Only the matching student and prize change"""
        result = attempt_exchange(
            self.xiaoming, self.sticker, self.students, self.prizes, self.logs
        )

        assert result.students[1] is self.xiaohua
        assert result.prizes[1] is self.pencil

    def test_second_attempt_after_scenario_a_is_rejected(self):
        """Scenario B: repeating the exchange on the resulting state is refused"""
        first = attempt_exchange(
            self.xiaoming, self.sticker, self.students, self.prizes, self.logs
        )
        student = first.students[0]
        prize = first.prizes[0]

        second = attempt_exchange(student, prize, first.students, first.prizes, first.logs)

        assert isinstance(second, Rejected)
        # Points are checked before stock, and both are now exhausted
        assert second.reason == ExchangeRejection.INSUFFICIENT_POINTS

    def test_out_of_stock_when_points_suffice(self):
        """Scenario B with a topped-up balance: stock is the blocker"""
        first = attempt_exchange(
            self.xiaoming, self.sticker, self.students, self.prizes, self.logs
        )
        topped_up = first.students[0].with_points(10)
        students = (topped_up,) + first.students[1:]

        second = attempt_exchange(topped_up, first.prizes[0], students, first.prizes, first.logs)

        assert second == Rejected(ExchangeRejection.OUT_OF_STOCK)

    def test_insufficient_points(self):
        """Scenario C: 5 points cannot buy a 10 point prize"""
        result = attempt_exchange(
            self.xiaohua, self.sticker, self.students, self.prizes, self.logs
        )

        assert result == Rejected(ExchangeRejection.INSUFFICIENT_POINTS)

    def test_no_active_session(self):
        """No student selected is the first precondition"""
        empty_prize = Prize(id="p3", name="空", price=100, stock=0)

        result = attempt_exchange(None, empty_prize, self.students, self.prizes, self.logs)

        assert result == Rejected(ExchangeRejection.NO_ACTIVE_SESSION)

    def test_zero_price_exchange_succeeds(self):
        """A free prize is redeemable by a student with no points"""
        broke = Student(id="s3", name="阿明", points=0)
        freebie = Prize(id="p4", name="貼紙", price=0, stock=2)

        result = attempt_exchange(broke, freebie, (broke,), (freebie,), ())

        assert isinstance(result, ExchangeOutcome)
        assert result.students[0].points == 0
        assert result.prizes[0].stock == 1
        assert result.entry.cost == 0

    def test_zero_price_still_needs_stock(self):
        """Free does not mean unlimited"""
        freebie = Prize(id="p4", name="貼紙", price=0, stock=0)

        result = attempt_exchange(self.xiaoming, freebie, self.students, (freebie,), ())

        assert result == Rejected(ExchangeRejection.OUT_OF_STOCK)

    def test_new_entry_is_prepended(self):
        """Log is newest first"""
        old_entry = RedemptionLogEntry(
            id="l0", student_name="小華", prize_name="鉛筆", cost=3,
            timestamp="2026/10/18 10:00:00"
        )

        result = attempt_exchange(
            self.xiaoming, self.pencil, self.students, self.prizes, (old_entry,)
        )

        assert len(result.logs) == 2
        assert result.logs[0].prize_name == "鉛筆"
        assert result.logs[0].student_name == "小明"
        assert result.logs[1] is old_entry

    def test_rejected_exchange_leaves_inputs_identical(self):
        """Rejection produces nothing and the inputs are the same objects"""
        students, prizes, logs = self.students, self.prizes, self.logs

        result = attempt_exchange(self.xiaohua, self.sticker, students, prizes, logs)

        assert isinstance(result, Rejected)
        assert students is self.students
        assert prizes is self.prizes
        assert logs is self.logs
        assert self.xiaohua.points == 5
        assert self.sticker.stock == 1

    def test_check_exchange_matches_attempt(self):
        """Pre-check reports the same reason the attempt would"""
        assert check_exchange(self.xiaoming, self.sticker) is None
        assert check_exchange(self.xiaohua, self.sticker) == ExchangeRejection.INSUFFICIENT_POINTS
        assert check_exchange(None, self.sticker) == ExchangeRejection.NO_ACTIVE_SESSION

    def test_invariants_hold_across_repeated_exchanges(self):
        """Points and stock never go negative however often we try"""
        students, prizes, logs = self.students, self.prizes, self.logs
        for _ in range(10):
            student = next(s for s in students if s.id == "s1")
            prize = next(p for p in prizes if p.id == "p2")
            result = attempt_exchange(student, prize, students, prizes, logs)
            if isinstance(result, ExchangeOutcome):
                students, prizes, logs = result.students, result.prizes, result.logs

        assert all(s.points >= 0 for s in students)
        assert all(p.stock >= 0 for p in prizes)
        # 10 points at price 3 buys three pencils
        assert next(s for s in students if s.id == "s1").points == 1
        assert next(p for p in prizes if p.id == "p2").stock == 2
        assert len(logs) == 3


class TestExchangeService:
    """Test exchanges against the live store"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.dispatcher = EventDispatcher()
        self.adapter = PersistenceAdapter(self.storage, "test_slot")
        self.store = EntityStore(self.adapter, self.dispatcher)
        self.session = SessionRouter(self.store, self.dispatcher)
        self.service = ExchangeService(
            self.store, self.session, self.dispatcher,
            clock=lambda: datetime(2026, 10, 19, 13, 48, 0)
        )
        self.store.replace(Snapshot(
            students=(Student(id="s1", name="小明", points=10),
                      Student(id="s2", name="小華", points=5)),
            prizes=(Prize(id="p1", name="貼紙", price=10, stock=1),)
        ))

    def test_redeem_commits_and_persists(self):
        """A successful redeem replaces the snapshot and flushes it"""
        self.session.login("s1")

        result = self.service.redeem("p1")

        assert isinstance(result, ExchangeOutcome)
        snapshot = self.store.snapshot
        assert snapshot.find_student("s1").points == 0
        assert snapshot.find_prize("p1").stock == 0
        assert snapshot.logs[0].timestamp == "2026/10/19 13:48:00"
        assert self.adapter.load().snapshot == snapshot

    def test_redeem_without_session(self):
        """Nobody signed in"""
        before = self.store.snapshot

        result = self.service.redeem("p1")

        assert result == Rejected(ExchangeRejection.NO_ACTIVE_SESSION)
        assert self.store.snapshot is before

    def test_redeem_rejected_leaves_store_identical(self):
        """Scenario C through the service: snapshot object is unchanged"""
        self.session.login("s2")
        before = self.store.snapshot
        stored_before = self.storage.get("test_slot")

        result = self.service.redeem("p1")

        assert result == Rejected(ExchangeRejection.INSUFFICIENT_POINTS)
        assert self.store.snapshot is before
        assert self.storage.get("test_slot") == stored_before

    def test_redeem_unknown_prize(self):
        """Unknown prize id"""
        self.session.login("s1")

        result = self.service.redeem("missing")

        assert result == Rejected(ExchangeRejection.PRIZE_NOT_FOUND)

    def test_redeem_unknown_prize_without_session(self):
        """Missing session is reported before the prize lookup"""
        assert self.service.redeem("missing") == Rejected(ExchangeRejection.NO_ACTIVE_SESSION)
        assert self.service.check("missing") == ExchangeRejection.NO_ACTIVE_SESSION

    def test_redeem_uses_current_balance(self):
        """Balance is read from the store, not from the login-time record"""
        self.session.login("s2")
        snapshot = self.store.snapshot
        self.store.replace(snapshot.evolve(students=(
            snapshot.students[0], snapshot.students[1].with_points(20)
        )))

        result = self.service.redeem("p1")

        assert isinstance(result, ExchangeOutcome)
        assert self.store.snapshot.find_student("s2").points == 10

    def test_log_names_are_snapshots(self):
        """Renaming after the fact does not alter history"""
        self.session.login("s1")
        self.service.redeem("p1")

        snapshot = self.store.snapshot
        self.store.replace(snapshot.evolve(
            students=tuple(
                Student(id=s.id, name="王小明", points=s.points) if s.id == "s1" else s
                for s in snapshot.students
            ),
            prizes=(Prize(id="p1", name="閃亮貼紙", price=10, stock=0),)
        ))

        entry = self.store.snapshot.logs[0]
        assert entry.student_name == "小明"
        assert entry.prize_name == "貼紙"

    def test_events_published(self):
        """Completed and rejected exchanges are announced"""
        completed = []
        rejected = []
        self.dispatcher.subscribe(DomainEvent.EXCHANGE_COMPLETED, completed.append)
        self.dispatcher.subscribe(DomainEvent.EXCHANGE_REJECTED, rejected.append)
        self.session.login("s1")

        self.service.redeem("p1")
        self.service.redeem("p1")

        assert len(completed) == 1
        assert completed[0].data["cost"] == 10
        assert len(rejected) == 1
        assert rejected[0].data["reason"] == "insufficient_points"

    def test_check_reports_reason_without_committing(self):
        """Service pre-check"""
        self.session.login("s2")
        before = self.store.snapshot

        assert self.service.check("p1") == ExchangeRejection.INSUFFICIENT_POINTS
        assert self.service.check("nope") == ExchangeRejection.PRIZE_NOT_FOUND
        assert self.store.snapshot is before
