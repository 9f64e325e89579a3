# src/pidlens/infrastructure/classifiers/ror_type.py
"""
Research Organization Registry identifiers (``https://ror.org/0xxxxxxxx``).

API: https://api.ror.org/v2/organizations/{id}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.errors import ParseError
from pidlens.domain.identifiers import is_ror, ror_id
from pidlens.domain.items import Action, ActionStyle, Item

logger = logging.getLogger(__name__)

ROR_API_URL = "https://api.ror.org/v2/organizations/{ror_id}"
OSM_URL = "https://www.openstreetmap.org/?mlat={lat}&mlon={lng}&zoom=15"

RELATIONSHIP_TITLES: Dict[str, Dict[str, str]] = {
    "parent": {"title": "Parent Organization", "tooltip": "Organization that this organization is part of"},
    "child": {"title": "Child Organization", "tooltip": "Organization that is part of this organization"},
    "related": {"title": "Related Organization", "tooltip": "Organization that is related to this organization"},
    "predecessor": {"title": "Predecessor Organization", "tooltip": "Organization that preceded this organization"},
    "successor": {"title": "Successor Organization", "tooltip": "Organization that succeeded this organization"},
}

DISPLAY_LABELS = {
    "active": "🟢 Active",
    "inactive": "⚪️ Inactive",
    "withdrawn": "⚠️ Withdrawn",
    "education": "🏫 Education",
    "funder": "💰 Funder",
    "healthcare": "🏥 Healthcare",
    "company": "🏢 Company",
    "archive": "📚 Archive",
    "nonprofit": "🎗️ Nonprofit",
    "government": "🏛️ Government",
    "facility": "🔬 Facility",
    "other": "Other",
    "unknown": "❓ Unknown",
}


def display_label(content: str) -> str:
    return DISPLAY_LABELS.get(content.lower(), content)


def _records(org: Dict[str, Any], field_name: str) -> List[Dict[str, Any]]:
    """Elements of a list-of-objects field; a missing field counts as empty."""
    node = org.get(field_name)
    if node is None:
        return []
    if not isinstance(node, list) or not all(isinstance(e, dict) for e in node):
        raise ParseError(f"ROR field {field_name!r} is not a list of objects")
    return node


class RORType(IdentifierClassifier):
    key = "RORType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.ror_data: Optional[Dict[str, Any]] = None
        self.label: Optional[str] = None
        self.acronym: Optional[str] = None

    @property
    def data(self) -> Any:
        return self.ror_data

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and is_ror(self.value)

    async def _resolve(self, data: Any = None) -> None:
        if data is not None:
            self.ror_data = data
        else:
            identifier = ror_id(self.value)
            if identifier is None:
                raise ValueError(f"Not a ROR ID: {self.value!r}")
            self.ror_data = await self.context.require_fetcher().fetch_json(ROR_API_URL.format(ror_id=identifier))
        if not isinstance(self.ror_data, dict):
            raise ParseError(f"Unexpected ROR response for {self.value}")

        org = self.ror_data
        names = _records(org, "names")
        if not names:
            self.label = "Unknown"
            self.items.append(Item(0, "Name", "Unknown", "No names available for this organization"))
            return

        for name in names:
            types = name.get("types") or []
            if "acronym" in types:
                self.acronym = name.get("value")
                self.items.append(Item(20, "Acronym", name.get("value"), "Short form of the organization name"))
            elif "ror_display" in types:
                self.label = name.get("value")
                self.items.append(Item(1, "Display Name", name.get("value"), "Name used for display purposes"))
            elif "alias" in types:
                self.items.append(Item(5, "Alias", name.get("value"), "Alternative name for the organization"))
            elif "label" in types:
                self.items.append(Item(15, "Label", name.get("value"), "Name in another language or script"))

        org_id = org.get("id") or self.value
        self.items.append(
            Item(20, "ROR ID", org_id, "Unique identifier for the organization in the ROR registry", render_dynamically=False)
        )
        self.actions.append(Action(10, "View on ROR", org_id, ActionStyle.PRIMARY))
        self.items.append(
            Item(30, "Status", display_label(org.get("status") or "unknown"), "Current status of the organization in the ROR registry")
        )

        for org_type in org.get("types") or ["unknown"]:
            self.items.append(Item(25, "Type", display_label(org_type), "Type of organization"))

        for link in _records(org, "links"):
            title = f"Link to {link['type']}" if link.get("type") else "Link"
            self.items.append(Item(35, title, link.get("value"), "External link related to the organization"))

        for external in _records(org, "external_ids"):
            ext_type = external.get("type")
            value = external.get("preferred") or (external.get("all") or [None])[0]
            if value:
                self.items.append(
                    Item(40, f"External ID: {ext_type}", value, f"Identifier from another system: {ext_type}")
                )

        for rel in _records(org, "relationships"):
            rel_type = rel.get("type") or ""
            meta = RELATIONSHIP_TITLES.get(rel_type, {"title": rel_type, "tooltip": f"{rel_type} organization"})
            self.items.append(Item(90, meta["title"], rel.get("id"), meta["tooltip"]))

        for location in _records(org, "locations"):
            details = location.get("geonames_details")
            if not isinstance(details, dict):
                continue
            if details.get("country_code"):
                self.items.append(Item(50, "Country", details["country_code"], "Country where the organization is located"))
            lat, lng = details.get("lat"), details.get("lng")
            if lat and lng:
                self.items.append(Item(55, "Coordinates", f"{lat}, {lng}", "Geographic coordinates of the organization"))
                self.actions.append(Action(20, "View on OpenStreetMap", OSM_URL.format(lat=lat, lng=lng), ActionStyle.SECONDARY))
