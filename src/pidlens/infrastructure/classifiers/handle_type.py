# src/pidlens/infrastructure/classifiers/handle_type.py
"""
Handle PIDs (``prefix/suffix``) resolved through the Handle REST API.

Items come from the record entries:
- entries typed by a resolved ``TypeDescriptor`` -> row titled with the type name
- entries whose type stayed a PID -> row titled with the PID string
- plain string types other than the ``HS_*`` administrative ones -> text row
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pidlens.application.services.pid_resolver import HANDLE_API_URL, PIDResolver
from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.errors import FetchError
from pidlens.domain.items import Action, ActionStyle, Item
from pidlens.domain.pid import PID, PIDRecord, TypeDescriptor

logger = logging.getLogger(__name__)

FAIRDOSCOPE_URL = "https://kit-data-manager.github.io/fairdoscope/?pid={pid}"


class HandleType(IdentifierClassifier):
    key = "HandleType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.record: Optional[PIDRecord] = None

    @property
    def data(self) -> Any:
        return self.record.to_dict() if self.record is not None else None

    async def detects_format(self) -> bool:
        return PID.is_pid(self.value)

    def _resolver(self) -> PIDResolver:
        if self.context.pid_resolver is None:
            self.context.pid_resolver = PIDResolver(self.context.require_fetcher())
        return self.context.pid_resolver

    async def _resolve(self, data: Any = None) -> None:
        if data is not None:
            self.record = PIDRecord.from_dict(data)
        else:
            pid = PID.from_string(self.value)
            self.record = await self._resolver().resolve(pid)
            if self.record is None:
                url = HANDLE_API_URL.format(prefix=pid.prefix, suffix=pid.suffix)
                raise FetchError(url, message=f"{pid} could not be resolved")

        for entry in self.record.entries:
            if isinstance(entry.type, TypeDescriptor):
                descriptor = entry.type
                self.items.append(
                    Item(
                        0,
                        descriptor.name,
                        entry.value,
                        descriptor.description or None,
                        descriptor.redirect_url or None,
                        descriptor.regex,
                    )
                )
            elif isinstance(entry.type, PID):
                if entry.is_location_entry():
                    continue
                self.items.append(Item(0, str(entry.type), entry.value))
            elif entry.type and not entry.type.upper().startswith("HS_"):
                self.items.append(Item(0, entry.type, entry.value))

        self.actions.append(
            Action(0, "Open in FAIR-DOscope", FAIRDOSCOPE_URL.format(pid=self.record.pid), ActionStyle.PRIMARY)
        )

    def _has_metadata(self) -> bool:
        return self.record is not None and len(self.record.entries) > 0
