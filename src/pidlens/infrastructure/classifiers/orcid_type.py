# src/pidlens/infrastructure/classifiers/orcid_type.py
"""
ORCiD researcher identifiers.

Metadata source: https://pub.orcid.org/v3.0/{orcid} (public API, JSON).
The raw record is what gets cached; ``OrcidInfo`` is re-derived from it on
every resolve so cached and fresh instances render identically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.errors import ParseError
from pidlens.domain.identifiers import is_orcid, normalize_orcid
from pidlens.domain.items import Action, ActionStyle, Item

logger = logging.getLogger(__name__)

ORCID_API_URL = "https://pub.orcid.org/v3.0/{orcid}"
ORCID_PROFILE_URL = "https://orcid.org/{orcid}"


def _value(node: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _fuzzy_date(node: Any) -> Optional[date]:
    year = _value(node, "year", "value")
    if not year:
        return None
    month = _value(node, "month", "value") or 1
    day = _value(node, "day", "value") or 1
    try:
        return date(int(year), int(month), int(day))
    except (TypeError, ValueError):
        return None


def format_us_date(d: date) -> str:
    return f"{d.month}/{d.day}/{d.year}"


@dataclass
class Employment:
    organization: Optional[str]
    department: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def active_at(self, when: date) -> bool:
        if self.start_date is None or self.start_date > when:
            return False
        return self.end_date is None or self.end_date >= when

    def label(self, show_department: bool = True) -> Optional[str]:
        if not self.organization:
            return None
        if show_department and self.department:
            return f"{self.organization} [{self.department}]"
        return self.organization


@dataclass
class OrcidInfo:
    orcid: str
    family_name: str = ""
    given_names: str = ""
    employments: List[Employment] = field(default_factory=list)
    preferred_locale: Optional[str] = None
    biography: Optional[str] = None
    emails: List[Dict[str, Any]] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    researcher_urls: List[Dict[str, str]] = field(default_factory=list)
    country: Optional[str] = None

    @classmethod
    def from_record(cls, orcid: str, record: Dict[str, Any]) -> "OrcidInfo":
        if not isinstance(record, dict) or not isinstance(record.get("person"), dict):
            raise ParseError(f"ORCiD record for {orcid} has no person section")
        person = record["person"]

        employments: List[Employment] = []
        groups = _value(record, "activities-summary", "employments", "affiliation-group") or []
        for group in groups:
            summaries = group.get("summaries") or [] if isinstance(group, dict) else []
            if not summaries:
                continue
            summary = _value(summaries[0], "employment-summary") if isinstance(summaries, list) else None
            if not isinstance(summary, dict):
                raise ParseError(f"ORCiD employment entry for {orcid} has no employment summary")
            employments.append(
                Employment(
                    organization=_value(summary, "organization", "name"),
                    department=summary.get("department-name"),
                    start_date=_fuzzy_date(summary.get("start-date")),
                    end_date=_fuzzy_date(summary.get("end-date")),
                )
            )

        emails = [
            {"email": e.get("email"), "primary": bool(e.get("primary")), "verified": bool(e.get("verified"))}
            for e in _value(person, "emails", "email") or []
            if isinstance(e, dict) and e.get("email")
        ]

        raw_keywords = [k for k in _value(person, "keywords", "keyword") or [] if isinstance(k, dict)]
        raw_keywords.sort(key=lambda k: k.get("display-index") or 0)

        raw_urls = [u for u in _value(person, "researcher-urls", "researcher-url") or [] if isinstance(u, dict)]
        raw_urls.sort(key=lambda u: u.get("display-index") or 0)

        addresses = _value(person, "addresses", "address") or []

        return cls(
            orcid=orcid,
            family_name=_value(person, "name", "family-name", "value") or "",
            given_names=_value(person, "name", "given-names", "value") or "",
            employments=employments,
            preferred_locale=_value(record, "preferences", "locale"),
            biography=_value(person, "biography", "content"),
            emails=emails,
            keywords=[k.get("content") for k in raw_keywords if k.get("content")],
            researcher_urls=[
                {"name": u.get("url-name") or _value(u, "url", "value") or "", "url": _value(u, "url", "value") or ""}
                for u in raw_urls
                if _value(u, "url", "value")
            ],
            country=_value(addresses[0], "country", "value") if addresses else None,
        )

    def affiliations_at(self, when: date) -> List[Employment]:
        return [e for e in self.employments if e.active_at(when)]


def _parse_setting_date(raw: Any) -> Optional[date]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000).date()
    text = str(raw).strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() not in {"false", "0", "no", "off", ""}
    return bool(raw)


class ORCIDType(IdentifierClassifier):
    key = "ORCIDType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.record: Optional[Dict[str, Any]] = None
        self.info: Optional[OrcidInfo] = None
        self.affiliation_at: Optional[date] = None
        self.show_affiliation = True

    @property
    def data(self) -> Any:
        return self.record

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and is_orcid(self.value)

    async def _resolve(self, data: Any = None) -> None:
        orcid = normalize_orcid(self.value)
        if orcid is None:
            raise ValueError(f"Not an ORCiD: {self.value!r}")

        if data is not None:
            self.record = data
        else:
            fetcher = self.context.require_fetcher()
            self.record = await fetcher.fetch_json(
                ORCID_API_URL.format(orcid=orcid), headers={"Accept": "application/json"}
            )
        self.info = OrcidInfo.from_record(orcid, self.record)

        today = self.context.clock().date()
        self.affiliation_at = _parse_setting_date(self.setting("affiliationAt")) or today
        self.show_affiliation = _as_bool(self.setting("showAffiliation", True))
        self._build(today)

    def _build(self, today: date) -> None:
        info = self.info
        assert info is not None

        self.items.append(
            Item(
                0,
                "ORCiD",
                info.orcid,
                "ORCiD is a free service for researchers to distinguish themselves by creating a unique personal identifier.",
                "https://orcid.org",
                render_dynamically=True,
            )
        )
        self.items.append(Item(1, "Family Name", info.family_name, "The family name of the person."))
        if info.given_names:
            self.items.append(Item(2, "Given Names", info.given_names, "The given names of the person."))

        self.actions.append(
            Action(0, "Open ORCiD profile", ORCID_PROFILE_URL.format(orcid=info.orcid), ActionStyle.PRIMARY)
        )

        for employment in info.affiliations_at(today):
            label = employment.label()
            if label and len(label) > 2:
                self.items.append(
                    Item(50, "Current Affiliation", label, "The current affiliation of the person.", render_dynamically=False)
                )

        when = self.affiliation_at
        if when is not None and when != today:
            title = f"Affiliation at {format_us_date(when)}"
            for employment in info.affiliations_at(when):
                label = employment.label()
                if label:
                    self.items.append(
                        Item(49, title, label, "The affiliation of the person at the given date.", render_dynamically=False)
                    )

        primary = next((e for e in info.emails if e["primary"]), None)
        others = [e["email"] for e in info.emails if not e["primary"]]
        if primary is not None:
            self.items.append(
                Item(20, "Primary E-Mail address", primary["email"], "The primary e-mail address of the person.")
            )
            self.actions.append(Action(0, "Send E-Mail", f"mailto:{primary['email']}", ActionStyle.SECONDARY))
        if others:
            self.items.append(
                Item(70, "Other E-Mail addresses", ", ".join(others), "All other e-mail addresses of the person.", render_dynamically=False)
            )

        if info.preferred_locale:
            self.items.append(
                Item(25, "Preferred Language", info.preferred_locale, "The preferred locale/language of the person.")
            )
        for url in info.researcher_urls:
            self.items.append(Item(100, url["name"], url["url"], "A link to a website specified by the person."))
        if info.keywords:
            self.items.append(
                Item(60, "Keywords", ", ".join(info.keywords), "Keywords specified by the person.", render_dynamically=False)
            )
        if info.biography:
            self.items.append(
                Item(200, "Biography", info.biography, "The biography of the person.", render_dynamically=False)
            )
        if info.country:
            self.items.append(Item(30, "Country", info.country, "The country of the person."))

    def preview(self) -> str:
        """``Family, Given (Organization)`` one-liner."""
        if self.info is None:
            return self.value
        text = f"{self.info.family_name}, {self.info.given_names}"
        if self.show_affiliation:
            current = self.info.affiliations_at(self.context.clock().date())
            if current and current[0].label(show_department=False):
                text += f" ({current[0].label(show_department=False)})"
        return text
