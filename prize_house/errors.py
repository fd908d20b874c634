"""
Error Taxonomy Module

Business failures are returned as values (Rejected, ValidationError) so the
caller decides how to present them. Only PersistenceParseError is an
exception, and it never leaves the persistence adapter.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ExchangeRejection(Enum):
    """Reasons an exchange is refused"""
    NO_ACTIVE_SESSION = "no_active_session"
    INSUFFICIENT_POINTS = "insufficient_points"
    OUT_OF_STOCK = "out_of_stock"
    PRIZE_NOT_FOUND = "prize_not_found"


@dataclass(frozen=True)
class Rejected:
    """An exchange that was refused; no state was touched"""
    reason: ExchangeRejection

    @property
    def message(self) -> str:
        return self.reason.value.replace("_", " ")


@dataclass(frozen=True)
class ValidationError:
    """
    Admin entry that cannot be accepted

    ``missing`` lists required fields that were absent, ``invalid`` lists
    fields present with an unacceptable value.
    """
    missing: Tuple[str, ...] = ()
    invalid: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        parts = []
        if self.missing:
            parts.append(f"missing: {', '.join(self.missing)}")
        if self.invalid:
            parts.append(f"invalid: {', '.join(self.invalid)}")
        return "; ".join(parts)


class PersistenceParseError(Exception):
    """Stored snapshot could not be decoded"""
