"""
Entity Store Module

Owns the current Snapshot. State only changes through replace(), which swaps
the whole snapshot and then runs the on-commit hooks (persistence flush
first) before announcing the commit on the event dispatcher.
"""

from typing import Callable, List, Optional

from .events import DomainEvent, EventDispatcher
from .logging_config import get_logger
from .models import Snapshot
from .persistence import LoadResult, PersistenceAdapter


CommitHook = Callable[[Snapshot], None]


class EntityStore:
    """Single source of truth for students, prizes and the redemption log"""

    def __init__(
        self,
        adapter: PersistenceAdapter,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        self.adapter = adapter
        self._event_dispatcher = event_dispatcher
        self._snapshot = Snapshot.empty()
        self._commit_hooks: List[CommitHook] = [adapter.save]
        self.logger = get_logger("prize_house.store")

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot; re-read this after any await"""
        return self._snapshot

    def add_commit_hook(self, hook: CommitHook) -> None:
        """Register a callable run with the new snapshot after every replace"""
        self._commit_hooks.append(hook)

    def load(self) -> LoadResult:
        """
        Load persisted state into memory

        Loading does not run commit hooks; the slot already holds this state.

        Returns:
            LoadResult carrying the snapshot now held in memory; its error is
            set when stored data was unreadable and the store started empty
        """
        result = self.adapter.load()
        self._snapshot = result.snapshot
        self.logger.info(
            f"Loaded {len(self._snapshot.students)} students, "
            f"{len(self._snapshot.prizes)} prizes, {len(self._snapshot.logs)} log entries"
        )
        return result

    def replace(self, snapshot: Snapshot) -> None:
        """Commit a new snapshot wholesale"""
        self._snapshot = snapshot
        for hook in self._commit_hooks:
            hook(snapshot)

        if self._event_dispatcher:
            self._event_dispatcher.emit(
                DomainEvent.SNAPSHOT_COMMITTED, "snapshot", None,
                {
                    "students": len(snapshot.students),
                    "prizes": len(snapshot.prizes),
                    "logs": len(snapshot.logs)
                }
            )
