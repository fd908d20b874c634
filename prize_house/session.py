"""
Session Router Module

Tracks which surface is showing and which student is signed in. Only the
student's id is kept; the record itself is always re-resolved from the store
so balances changed elsewhere are visible immediately.
"""

from enum import Enum
from typing import Optional

from .events import DomainEvent, EventDispatcher
from .logging_config import get_logger
from .models import Snapshot, Student
from .store import EntityStore


class View(Enum):
    """Kiosk surfaces"""
    LOGIN = "login"    # Anonymous student picker
    STORE = "store"    # Student storefront
    ADMIN = "admin"    # Teacher workbench


class SessionRouter:
    """Thin holder of the active view and student id"""

    def __init__(self, store: EntityStore, event_dispatcher: Optional[EventDispatcher] = None):
        self.store = store
        self._event_dispatcher = event_dispatcher
        self.view = View.LOGIN
        self.current_student_id: Optional[str] = None
        self.logger = get_logger("prize_house.session")

    @property
    def current_student(self) -> Optional[Student]:
        """The signed-in student as currently stored"""
        return self.store.snapshot.find_student(self.current_student_id)

    def login(self, student_id: str) -> Optional[Student]:
        """
        Sign a student in and open the storefront

        Returns:
            The student, or None if no such student exists (view unchanged)
        """
        student = self.store.snapshot.find_student(student_id)
        if student is None:
            return None

        self.current_student_id = student.id
        self.view = View.STORE
        self.logger.info(f"Session started for student {student.id}")
        self._emit(DomainEvent.SESSION_STARTED, student.id)
        return student

    def logout(self) -> None:
        """End any session and return to the picker"""
        student_id = self.current_student_id
        self.current_student_id = None
        self.view = View.LOGIN
        if student_id:
            self.logger.info(f"Session ended for student {student_id}")
            self._emit(DomainEvent.SESSION_ENDED, student_id)

    def go_home(self) -> None:
        """Leave the storefront or workbench"""
        self.logout()

    def enter_admin(self) -> None:
        """Open the workbench; a student session does not survive this"""
        self.logout()
        self.view = View.ADMIN
        self._emit(DomainEvent.ADMIN_ENTERED, None)

    def sync(self, snapshot: Snapshot) -> None:
        """On-commit hook: drop a session whose student no longer exists"""
        if self.current_student_id and snapshot.find_student(self.current_student_id) is None:
            self.logger.info(f"Student {self.current_student_id} removed, ending session")
            self.logout()

    def _emit(self, event_type: DomainEvent, student_id: Optional[str]) -> None:
        if self._event_dispatcher:
            self._event_dispatcher.emit(
                event_type, "session", student_id, {"view": self.view.value}
            )
