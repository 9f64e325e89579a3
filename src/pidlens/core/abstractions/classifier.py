"""
Classifier contract shared by every identifier family.

Lifecycle: construct with a raw value -> ``detects_format()`` -> ``resolve()``
(fresh) or ``resolve(data)`` (rehydrated from the entity cache) -> read
``sorted_items()`` / ``sorted_actions()`` -> persist ``data``.

``resolve`` is a template method: it runs the variant's ``_resolve`` once and
turns any failure into a visible "Error" item instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Union

import aiohttp

from pidlens.domain.errors import ParseError, PidLensError
from pidlens.domain.items import Action, Item, sort_actions, sort_items, unique_actions, unique_items
from pidlens.domain.settings import SettingValue

if TYPE_CHECKING:
    from pidlens.application.ports.fetcher_port import MetadataFetcherPort
    from pidlens.application.services.pid_resolver import PIDResolver

logger = logging.getLogger(__name__)

# Failures a classifier turns into an error item.
RECOVERABLE_ERRORS = (
    PidLensError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ValueError,
    KeyError,
    TypeError,
)

# Raised while walking a metadata body of the wrong shape; reported as ParseError.
SHAPE_ERRORS = (AttributeError, IndexError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ClassifierContext:
    """Collaborators handed to every classifier instance."""

    fetcher: Optional["MetadataFetcherPort"] = None
    pid_resolver: Optional["PIDResolver"] = None
    clock: Callable[[], datetime] = _utcnow
    prefers_dark: Callable[[], bool] = field(default=lambda: False)

    def require_fetcher(self) -> "MetadataFetcherPort":
        if self.fetcher is None:
            raise PidLensError("No metadata fetcher configured")
        return self.fetcher


class IdentifierClassifier(ABC):
    """Base class of all identifier classifiers."""

    key: str = ""

    def __init__(
        self,
        value: str,
        settings: Optional[Iterable[Union[SettingValue, Dict[str, Any]]]] = None,
        context: Optional[ClassifierContext] = None,
    ):
        self._value = value
        self.context = context or ClassifierContext()
        self.items: List[Item] = []
        self.actions: List[Action] = []
        self.is_dark_mode = False
        self._settings: List[SettingValue] = []
        self._resolved = False
        self._error: Optional[str] = None
        self.settings = settings or []

    @property
    def value(self) -> str:
        return self._value

    @property
    def settings(self) -> List[SettingValue]:
        return self._settings

    @settings.setter
    def settings(self, values: Iterable[Union[SettingValue, Dict[str, Any]]]) -> None:
        self._settings = [SettingValue.from_any(v) for v in values or []]
        self._update_dark_mode()

    def setting(self, name: str, default: Any = None) -> Any:
        for s in self._settings:
            if s.name == name:
                return s.value
        return default

    def _update_dark_mode(self) -> None:
        mode = self.setting("darkMode")
        if mode == "dark":
            self.is_dark_mode = True
        elif mode == "system":
            self.is_dark_mode = bool(self.context.prefers_dark())
        else:
            self.is_dark_mode = False

    def settings_key(self) -> str:
        return self.key or type(self).__name__

    @property
    def data(self) -> Any:
        """JSON-serializable payload stored in the entity cache; None when nothing was obtained."""
        return None

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def resolved(self) -> bool:
        return self._resolved

    @abstractmethod
    async def detects_format(self) -> bool:
        ...

    @abstractmethod
    async def _resolve(self, data: Any = None) -> None:
        """Populate items/actions, from ``data`` when given, otherwise from the network."""
        ...

    async def resolve(self, data: Any = None) -> None:
        if self._resolved:
            return
        self._resolved = True
        try:
            await self._resolve(data)
        except SHAPE_ERRORS as e:
            self._record_error(ParseError(f"Unexpected metadata layout for {self.value}: {e}"))
        except RECOVERABLE_ERRORS as e:
            self._record_error(e)

    def _record_error(self, exc: BaseException) -> None:
        message = str(exc) or type(exc).__name__
        logger.warning(f"{self.settings_key()} could not resolve {self.value!r}: {message}")
        self._error = message
        self.items.append(Item(0, "Error", message, "The identifier could not be resolved.", render_dynamically=False))

    def is_resolvable(self) -> bool:
        if self._error is not None:
            return False
        return self._has_metadata()

    def _has_metadata(self) -> bool:
        return self.data is not None

    def sorted_items(self) -> List[Item]:
        return sort_items(unique_items(self.items))

    def sorted_actions(self) -> List[Action]:
        return sort_actions(unique_actions(self.actions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.settings_key(),
            "value": self.value,
            "resolvable": self.is_resolvable(),
            "error": self._error,
            "dark_mode": self.is_dark_mode,
            "items": [i.to_dict() for i in self.sorted_items()],
            "actions": [a.to_dict() for a in self.sorted_actions()],
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"
