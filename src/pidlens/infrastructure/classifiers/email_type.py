# src/pidlens/infrastructure/classifiers/email_type.py
from __future__ import annotations

import re
from typing import Any, List

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.items import Action, ActionStyle

# one address or a comma separated list of them
_EMAIL_LIST_RE = re.compile(r"^(([\w\-.]+@([\w-]+\.)+[\w-]{2,})(\s*,\s*)?)*$")


def split_addresses(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class EmailType(IdentifierClassifier):
    key = "EmailType"

    async def detects_format(self) -> bool:
        if not isinstance(self.value, str) or not self.value.strip():
            return False
        return _EMAIL_LIST_RE.match(self.value) is not None

    async def _resolve(self, data: Any = None) -> None:
        for address in split_addresses(self.value):
            self.actions.append(Action(0, f"Send e-mail to {address}", f"mailto:{address}", ActionStyle.PRIMARY))

    def is_resolvable(self) -> bool:
        return False
