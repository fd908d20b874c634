"""
Entity Model Module

Students, prizes and redemption log entries, plus the Snapshot that groups
the three collections. All records are frozen; a change always produces a
new record and a new Snapshot so every transition is observable as a value.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple
import uuid


def new_id() -> str:
    """Generate a fresh opaque entity id"""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Student:
    """Roster entry with a point balance (never negative)"""
    id: str
    name: str
    points: int = 0

    def __post_init__(self):
        if self.points < 0:
            raise ValueError(f"Student {self.id} points cannot be negative")

    def with_points(self, points: int) -> 'Student':
        """Return a copy carrying a new balance"""
        return replace(self, points=points)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'points': self.points}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Student':
        return cls(id=data['id'], name=data['name'], points=data['points'])


@dataclass(frozen=True)
class Prize:
    """
    Catalog listing

    Stock is only ever decremented by an exchange; restocking is an explicit
    edit through the catalog.
    """
    id: str
    name: str
    price: int
    stock: int
    image: str = ""
    category: Optional[str] = None

    def __post_init__(self):
        if self.price < 0:
            raise ValueError(f"Prize {self.id} price cannot be negative")
        if self.stock < 0:
            raise ValueError(f"Prize {self.id} stock cannot be negative")

    @property
    def is_sold_out(self) -> bool:
        """Check if no units are left"""
        return self.stock <= 0

    def display_category(self, default: str) -> str:
        """Category label, falling back to the given default"""
        return self.category or default

    def with_stock(self, stock: int) -> 'Prize':
        """Return a copy carrying a new stock count"""
        return replace(self, stock=stock)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
            'image': self.image,
        }
        if self.category is not None:
            result['category'] = self.category
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Prize':
        return cls(
            id=data['id'],
            name=data['name'],
            price=data['price'],
            stock=data['stock'],
            image=data.get('image') or "",
            category=data.get('category')
        )


@dataclass(frozen=True)
class RedemptionLogEntry:
    """
    Immutable record of one exchange

    Names are copied at exchange time so renaming a student or prize later
    does not rewrite history.
    """
    id: str
    student_name: str
    prize_name: str
    cost: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'studentName': self.student_name,
            'prizeName': self.prize_name,
            'cost': self.cost,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RedemptionLogEntry':
        return cls(
            id=data['id'],
            student_name=data['studentName'],
            prize_name=data['prizeName'],
            cost=data['cost'],
            timestamp=data['timestamp']
        )


@dataclass(frozen=True)
class Snapshot:
    """Complete value of the three collections at one point in time"""
    students: Tuple[Student, ...] = field(default_factory=tuple)
    prizes: Tuple[Prize, ...] = field(default_factory=tuple)
    logs: Tuple[RedemptionLogEntry, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any sequence but always hold tuples
        object.__setattr__(self, 'students', tuple(self.students))
        object.__setattr__(self, 'prizes', tuple(self.prizes))
        object.__setattr__(self, 'logs', tuple(self.logs))

    @classmethod
    def empty(cls) -> 'Snapshot':
        return cls()

    def find_student(self, student_id: Optional[str]) -> Optional[Student]:
        """Look up a student by id"""
        if student_id is None:
            return None
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def find_prize(self, prize_id: Optional[str]) -> Optional[Prize]:
        """Look up a prize by id"""
        if prize_id is None:
            return None
        for prize in self.prizes:
            if prize.id == prize_id:
                return prize
        return None

    def evolve(self, **changes) -> 'Snapshot':
        """Return a new snapshot with some collections replaced"""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'students': [s.to_dict() for s in self.students],
            'prizes': [p.to_dict() for p in self.prizes],
            'logs': [entry.to_dict() for entry in self.logs],
        }
