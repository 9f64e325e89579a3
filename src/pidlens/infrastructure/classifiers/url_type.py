# src/pidlens/infrastructure/classifiers/url_type.py
from __future__ import annotations

import re
from typing import Any

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.items import Action, ActionStyle

_URL_RE = re.compile(r"^http(s)?:(//([^/?#]*))?([^?#]*)(\?([^#]*))?(#(.*))?$")


class URLType(IdentifierClassifier):
    key = "URLType"

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and _URL_RE.match(self.value) is not None

    async def _resolve(self, data: Any = None) -> None:
        self.actions.append(Action(0, "Open URL", self.value, ActionStyle.PRIMARY))

    def is_resolvable(self) -> bool:
        return False
