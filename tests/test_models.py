"""
Tests for entity records and snapshots
"""

import pytest
from dataclasses import FrozenInstanceError

from prize_house.models import Prize, RedemptionLogEntry, Snapshot, Student, new_id


class TestRecords:
    """Test record invariants"""

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            Student(id="s1", name="小明", points=-1)

    def test_negative_stock_rejected(self):
        with pytest.raises(ValueError):
            Prize(id="p1", name="貼紙", price=10, stock=-1)

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            Prize(id="p1", name="貼紙", price=-50, stock=3)

    def test_records_are_frozen(self):
        student = Student(id="s1", name="小明", points=3)

        with pytest.raises(FrozenInstanceError):
            student.points = 100

    def test_with_points_returns_copy(self):
        student = Student(id="s1", name="小明", points=3)

        richer = student.with_points(8)

        assert richer.points == 8
        assert student.points == 3

    def test_display_category(self):
        assert Prize(id="p", name="x", price=1, stock=1).display_category("一般") == "一般"
        assert Prize(id="p", name="x", price=1, stock=1, category="").display_category("一般") == "一般"
        assert Prize(id="p", name="x", price=1, stock=1, category="特權").display_category("一般") == "特權"

    def test_sold_out(self):
        assert Prize(id="p", name="x", price=1, stock=0).is_sold_out
        assert not Prize(id="p", name="x", price=1, stock=1).is_sold_out

    def test_log_entry_wire_names(self):
        entry = RedemptionLogEntry(id="l1", student_name="小明", prize_name="貼紙",
                                   cost=10, timestamp="2026/10/19 13:48:00")

        assert RedemptionLogEntry.from_dict(entry.to_dict()) == entry
        assert "studentName" in entry.to_dict()

    def test_new_id_is_unique(self):
        assert len({new_id() for _ in range(100)}) == 100


class TestSnapshot:
    """Test snapshot lookups and evolution"""

    def test_lists_become_tuples(self):
        snapshot = Snapshot(students=[Student(id="s1", name="小明")])

        assert isinstance(snapshot.students, tuple)

    def test_find(self):
        student = Student(id="s1", name="小明")
        prize = Prize(id="p1", name="貼紙", price=10, stock=1)
        snapshot = Snapshot(students=(student,), prizes=(prize,))

        assert snapshot.find_student("s1") is student
        assert snapshot.find_prize("p1") is prize
        assert snapshot.find_student("missing") is None
        assert snapshot.find_student(None) is None
        assert snapshot.find_prize(None) is None

    def test_evolve_leaves_original_untouched(self):
        original = Snapshot(students=(Student(id="s1", name="小明"),))

        evolved = original.evolve(students=())

        assert evolved.students == ()
        assert len(original.students) == 1
