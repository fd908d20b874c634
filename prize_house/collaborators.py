"""
Collaborator Interfaces Module

The kiosk core drives two outside components: interaction prompts (modal
input and acknowledgement dialogs, resolved asynchronously) and feedback
effects (sound or particle cues, fire-and-forget). Front ends supply real
implementations; the null ones here serve headless and HTTP use.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


class FeedbackEffect(Enum):
    """Closed set of cues the core may trigger"""
    SUCCESS = "success"
    CLICK = "click"
    ERROR = "error"


class PromptIcon(Enum):
    """Icon shown on an acknowledgement dialog"""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class InteractionPrompt(ABC):
    """
    Modal prompts shown to the user

    Input methods resolve to the entered text, or None when the user
    cancelled. None and "" are different outcomes.
    """

    @abstractmethod
    async def ask_text(self, title: str, placeholder: Optional[str] = None) -> Optional[str]:
        """Single-line free text input"""
        pass

    @abstractmethod
    async def ask_secret(self, title: str, label: Optional[str] = None) -> Optional[str]:
        """Masked input"""
        pass

    @abstractmethod
    async def ask_multiline(
        self,
        title: str,
        label: Optional[str] = None,
        placeholder: Optional[str] = None
    ) -> Optional[str]:
        """Multi-line text input"""
        pass

    @abstractmethod
    async def acknowledge(
        self,
        title: str,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
        icon: Optional[PromptIcon] = None
    ) -> None:
        """Dialog the user only has to dismiss"""
        pass


class EffectPlayer(ABC):
    """Fire-and-forget feedback cues"""

    @abstractmethod
    def play(self, effect: FeedbackEffect) -> None:
        pass


class NullPrompt(InteractionPrompt):
    """Prompt that cancels every input and dismisses every dialog"""

    async def ask_text(self, title, placeholder=None):
        return None

    async def ask_secret(self, title, label=None):
        return None

    async def ask_multiline(self, title, label=None, placeholder=None):
        return None

    async def acknowledge(self, title, text=None, image_url=None, icon=None):
        return None


class SilentEffectPlayer(EffectPlayer):
    """Plays nothing"""

    def play(self, effect: FeedbackEffect) -> None:
        pass
