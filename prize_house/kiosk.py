"""
Kiosk Module

Wires storage, persistence, store, catalog, exchange and session together
and exposes the UI-event entry points. Prompt-driven flows are coroutines:
awaiting a prompt yields to the event loop, so every flow re-reads the store
after the prompt resolves instead of reusing state from before it.
"""

import asyncio
import hmac
from typing import Optional, Set, Tuple, Union

from .catalog import CatalogManager, PrizeDraft
from .collaborators import (
    EffectPlayer, FeedbackEffect, InteractionPrompt, NullPrompt, PromptIcon,
    SilentEffectPlayer
)
from .config import PrizeHouseConfig, get_config
from .errors import ExchangeRejection, Rejected, ValidationError
from .events import EventDispatcher
from .exchange import ExchangeOutcome, ExchangeService
from .logging_config import get_logger
from .models import Prize, Student
from .persistence import LoadResult, PersistenceAdapter
from .session import SessionRouter, View
from .storage import StorageInterface, create_storage
from .store import EntityStore


class Kiosk:
    """Prize house kiosk with all components initialized"""

    def __init__(
        self,
        storage: StorageInterface,
        config: Optional[PrizeHouseConfig] = None,
        prompt: Optional[InteractionPrompt] = None,
        effects: Optional[EffectPlayer] = None
    ):
        self.config = config or get_config()
        self.storage = storage
        self.prompt = prompt or NullPrompt()
        self.effects = effects or SilentEffectPlayer()
        self.logger = get_logger("prize_house.kiosk")

        self.event_dispatcher = EventDispatcher()
        self.adapter = PersistenceAdapter(storage, self.config.storage_key)
        self.store = EntityStore(self.adapter, self.event_dispatcher)
        self.session = SessionRouter(self.store, self.event_dispatcher)
        self.store.add_commit_hook(self.session.sync)
        self.catalog = CatalogManager(self.store, self.event_dispatcher)
        self.exchange = ExchangeService(
            self.store, self.session, self.event_dispatcher,
            timestamp_format=self.config.timestamp_format
        )

        # Prompts shown without waiting for them
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        config: Optional[PrizeHouseConfig] = None,
        prompt: Optional[InteractionPrompt] = None,
        effects: Optional[EffectPlayer] = None
    ) -> 'Kiosk':
        config = config or get_config()
        return cls(create_storage(config), config, prompt, effects)

    def start(self) -> LoadResult:
        """Load persisted state; unreadable data starts the kiosk empty"""
        result = self.store.load()
        if result.error:
            self.logger.warning(f"Starting with empty data: {result.error}")
        return result

    def close(self) -> None:
        self.event_dispatcher.clear()
        self.storage.close()

    @property
    def view(self) -> View:
        return self.session.view

    @property
    def current_student(self) -> Optional[Student]:
        return self.session.current_student

    # Student flows

    def login(self, student_id: str) -> Optional[Student]:
        """Pick a student from the roster and open the storefront"""
        student = self.session.login(student_id)
        if student:
            self._play(FeedbackEffect.CLICK)
        return student

    def logout(self) -> None:
        self.session.logout()

    def can_redeem(self, prize_id: str) -> Optional[ExchangeRejection]:
        """Why the redeem button should be disabled, or None if it should not"""
        return self.exchange.check(prize_id)

    async def redeem(self, prize_id: str) -> Union[ExchangeOutcome, Rejected]:
        """
        Redeem a prize for the signed-in student

        The transition is committed before any cue fires. On success one
        success effect plays and one acknowledgement is shown; the
        acknowledgement is not awaited.
        """
        result = self.exchange.redeem(prize_id)
        if isinstance(result, Rejected):
            return result

        entry = result.entry
        prize = next(p for p in result.prizes if p.id == prize_id)
        self._play(FeedbackEffect.SUCCESS)
        self._show(self.prompt.acknowledge(
            f"太棒了！獲得 {entry.prize_name}！",
            text="你的努力得到了回報！",
            image_url=prize.image or self.config.default_prize_image,
            icon=PromptIcon.SUCCESS
        ))
        return result

    # Admin flows

    def check_admin_password(self, password: str) -> bool:
        return hmac.compare_digest(
            password.encode("utf-8"), self.config.admin_password.encode("utf-8")
        )

    async def admin_login(self) -> bool:
        """
        Ask for the admin password and open the workbench if it matches

        A cancelled prompt is not a failed attempt: no error is shown.
        """
        password = await self.prompt.ask_secret("老師管理登入", label="請輸入密碼")
        if password is None:
            return False

        if self.check_admin_password(password):
            self.session.enter_admin()
            self._play(FeedbackEffect.SUCCESS)
            return True

        self.logger.info("Admin login failed")
        await self.prompt.acknowledge("密碼不正確喔！", icon=PromptIcon.ERROR)
        return False

    async def import_roster(self) -> Tuple[Student, ...]:
        """Ask for one name per line and append them to the roster"""
        text = await self.prompt.ask_multiline(
            "批量匯入", label="一行一個姓名", placeholder="例：\n陳小明\n林阿華"
        )
        if not text:
            return ()
        return self.catalog.import_students(text)

    async def add_student(self) -> Union[Student, ValidationError, None]:
        """Ask for a single name and append it to the roster"""
        name = await self.prompt.ask_text("手動新增", placeholder="學生姓名")
        if not name:
            return None
        return self.catalog.add_student(name)

    def new_prize_draft(self) -> PrizeDraft:
        """Blank editor contents"""
        return PrizeDraft(
            name="",
            price=self.config.draft_price,
            stock=self.config.draft_stock,
            image="",
            category=self.config.draft_category
        )

    async def save_prize(self, draft: PrizeDraft) -> Union[Prize, ValidationError, None]:
        """
        Save the workbench editor: update when the draft carries an id,
        otherwise create a new listing
        """
        if draft.id:
            result = self.catalog.update_prize(draft.id, draft)
            done_title = "更新成功！"
        else:
            result = self.catalog.create_prize(draft)
            done_title = "上架成功！"

        if isinstance(result, ValidationError):
            await self.prompt.acknowledge(
                "錯誤", text="請填寫獎品名稱、價格與數量", icon=PromptIcon.ERROR
            )
        elif result is not None:
            self._show(self.prompt.acknowledge(done_title, icon=PromptIcon.SUCCESS))
        return result

    async def drain(self) -> None:
        """Wait for every acknowledgement still on screen"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _play(self, effect: FeedbackEffect) -> None:
        try:
            self.effects.play(effect)
        except Exception as e:
            self.logger.error(f"Error playing effect {effect.value}: {e}")

    def _show(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._prompt_done)

    def _prompt_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Error showing prompt: {task.exception()}")
