# core/providers.py

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union

from PIL import Image

from smart_organizer.core.exceptions import (
    ProviderLoadError,
    ProviderRunError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Analysis kinds backed by an external model"""
    CLASSIFY = "classify"
    CAPTION = "caption"
    DETECT_OBJECTS = "detect-objects"
    DETECT_NSFW = "detect-nsfw"
    DETECT_FACES = "detect-faces"
    RECOGNIZE_TEXT = "recognize-text"


# ---------------------------------------------------------------------------
# Load state: NotLoaded | Loaded(handle) | Failed(reason)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotLoaded:
    pass


@dataclass(frozen=True)
class Loaded:
    handle: Any


@dataclass(frozen=True)
class Failed:
    reason: str


CapabilityState = Union[NotLoaded, Loaded, Failed]


class CapabilityProvider(ABC):
    """
    Abstract base class for capability providers.

    Subclasses implement _load_handle() and _run(). Loading happens at most
    once per provider: the first outcome, success or failure, is kept for
    the session.
    """

    capability: Capability
    display_name: str = "Provider"

    def __init__(self):
        self._state: CapabilityState = NotLoaded()

    @property
    def state(self) -> CapabilityState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return isinstance(self._state, Loaded)

    @property
    def has_failed(self) -> bool:
        return isinstance(self._state, Failed)

    def load(self) -> CapabilityState:
        """Load the backend once and cache the outcome"""
        if not isinstance(self._state, NotLoaded):
            return self._state

        try:
            handle = self._load_handle()
        except Exception as e:  # any backend/import problem degrades the stage
            reason = str(e) or e.__class__.__name__
            logger.warning("Failed to load %s: %s", self.display_name, reason)
            self._state = Failed(reason)
        else:
            logger.info("%s loaded", self.display_name)
            self._state = Loaded(handle)

        return self._state

    def run(self, image: Image.Image):
        """Run the loaded backend on one RGB image"""
        if not isinstance(self._state, Loaded):
            raise ProviderUnavailableError(f"{self.display_name} is not loaded")

        try:
            return self._run(self._state.handle, image)
        except ProviderRunError:
            raise
        except Exception as e:
            raise ProviderRunError(f"{self.display_name} failed: {e}") from e

    def close(self):
        """Release backend resources and forget the load outcome"""
        if isinstance(self._state, Loaded):
            self._release(self._state.handle)
        self._state = NotLoaded()

    @abstractmethod
    def _load_handle(self) -> Any:
        """
        Build the backend handle.

        Raises:
            ProviderLoadError (or any exception) when the backend is unusable.
        """
        pass

    @abstractmethod
    def _run(self, handle: Any, image: Image.Image):
        """Invoke the backend and convert its output to the capability struct"""
        pass

    def _release(self, handle: Any):
        pass


class AnalysisContext:
    """
    Registry of capability providers, built once and shared by reference.
    """

    def __init__(self, providers: Optional[Dict[Capability, CapabilityProvider]] = None):
        self._providers: Dict[Capability, CapabilityProvider] = {}
        for capability, provider in (providers or {}).items():
            self.register(provider, capability)

    def register(self, provider: CapabilityProvider,
                 capability: Optional[Capability] = None):
        capability = capability or provider.capability
        if capability in self._providers:
            raise ValueError(f"Provider already registered for {capability.value}")
        self._providers[capability] = provider

    def get(self, capability: Capability) -> Optional[CapabilityProvider]:
        return self._providers.get(capability)

    def usable(self, capability: Capability) -> Optional[CapabilityProvider]:
        """Provider for capability if it is loaded, else None"""
        provider = self._providers.get(capability)
        if provider is not None and provider.is_loaded:
            return provider
        return None

    def __iter__(self) -> Iterator[CapabilityProvider]:
        return iter(self._providers.values())

    def items(self):
        return self._providers.items()


def require(condition: bool, message: str):
    """Raise ProviderLoadError unless condition holds"""
    if not condition:
        raise ProviderLoadError(message)
