# src/pidlens/infrastructure/classifiers/doi_metadata.py
"""
DOI metadata from DataCite and CrossRef.

DataCite is asked first (it registers research data and software DOIs),
CrossRef second. Both wrappers keep the raw response so it can be cached and
re-read without another request.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup

from pidlens.application.ports.fetcher_port import MetadataFetcherPort
from pidlens.domain.errors import FetchError, ParseError
from pidlens.domain.identifiers import doi_url
from pidlens.domain.items import Item

logger = logging.getLogger(__name__)

DATACITE_API_URL = "https://api.datacite.org/dois/{doi}"
CROSSREF_API_URL = "https://api.crossref.org/works/{doi}"

SOURCE_DATACITE = "DataCite"
SOURCE_CROSSREF = "CrossRef"

_ORCID_PREFIX_RE = re.compile(r"^(https?://orcid\.org/|orcid:)", re.IGNORECASE)
_ROR_PREFIX_RE = re.compile(r"^https?://ror\.org/", re.IGNORECASE)


def datacite_url(doi: str) -> str:
    return DATACITE_API_URL.format(doi=quote(doi, safe=""))


def crossref_url(doi: str) -> str:
    return CROSSREF_API_URL.format(doi=quote(doi, safe=""))


def strip_jats(text: Optional[str]) -> Optional[str]:
    """Plain text of a JATS-tagged abstract, one paragraph per line."""
    if not text:
        return text
    soup = BeautifulSoup(text, "html.parser")
    paragraphs = [p.get_text(" ", strip=True) for p in soup.find_all(["jats:p", "p"])]
    paragraphs = [p for p in paragraphs if p]
    if paragraphs:
        return "\n\n".join(paragraphs)
    return soup.get_text(" ", strip=True)


@dataclass
class Creator:
    name: str
    orcid: Optional[str] = None
    affiliation: Optional[str] = None
    ror: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None

    def tooltip(self, prefix: str = "") -> str:
        suffix = f" ({self.affiliation})" if self.affiliation else ""
        return f"{prefix}{self.name}{suffix}"

    def to_item(self, priority: int, title: str, tooltip_prefix: str = "") -> Item:
        return Item(
            priority,
            title,
            self.orcid or self.name,
            self.tooltip(tooltip_prefix),
            f"https://orcid.org/{self.orcid}" if self.orcid else None,
            render_dynamically=False,
        )


def _value_at(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _display_name(name: Optional[str], given: Optional[str], family: Optional[str]) -> str:
    if name:
        return name
    if given and family:
        return f"{given} {family}"
    return given or family or ""


class DataCiteInfo:
    def __init__(self, doi: str, response: Dict[str, Any]):
        self.doi = doi
        self.raw = response
        attributes = _value_at(response, "data", "attributes")
        if not isinstance(attributes, dict):
            raise ParseError(f"DataCite response for {doi} has no attributes object")
        self.attributes: Dict[str, Any] = attributes

    @property
    def title(self) -> str:
        for t in self.attributes.get("titles") or []:
            if isinstance(t, str):
                return t
            if isinstance(t, dict) and t.get("titleType") in (None, "", "Title"):
                return t.get("title") or ""
        return ""

    def _creator(self, raw: Dict[str, Any]) -> Creator:
        creator = Creator(
            name=_display_name(raw.get("name"), raw.get("givenName"), raw.get("familyName")),
            given_name=raw.get("givenName"),
            family_name=raw.get("familyName"),
        )
        for ident in raw.get("nameIdentifiers") or []:
            if (ident.get("nameIdentifierScheme") or "").lower() == "orcid" and ident.get("nameIdentifier"):
                creator.orcid = _ORCID_PREFIX_RE.sub("", ident["nameIdentifier"])
                break
        affiliations = raw.get("affiliation") or []
        if affiliations and isinstance(affiliations[0], dict):
            primary = affiliations[0]
            creator.affiliation = primary.get("name")
            if (primary.get("affiliationIdentifierScheme") or "").lower() == "ror" and primary.get(
                "affiliationIdentifier"
            ):
                creator.ror = _ROR_PREFIX_RE.sub("", primary["affiliationIdentifier"])
        return creator

    @property
    def creators(self) -> List[Creator]:
        result: List[Creator] = []
        for raw in self.attributes.get("creators") or []:
            creator = Creator(name=raw) if isinstance(raw, str) else self._creator(raw)
            if creator.name:
                result.append(creator)
        return result

    @property
    def corresponding_author(self) -> Optional[Creator]:
        for raw in self.attributes.get("contributors") or []:
            if (raw.get("contributorType") or "").lower() == "contactperson":
                return self._creator(raw)
        return None

    @property
    def publisher(self) -> Optional[str]:
        publisher = self.attributes.get("publisher")
        if isinstance(publisher, dict):
            return publisher.get("name")
        return publisher

    @property
    def publication_date(self) -> Optional[str]:
        for d in self.attributes.get("dates") or []:
            if (d.get("dateType") or "").lower() == "issued" and d.get("date"):
                return d["date"]
        year = self.attributes.get("publicationYear")
        return str(year) if year else None

    @property
    def resource_type(self) -> Optional[str]:
        types = self.attributes.get("types") or {}
        return types.get("resourceTypeGeneral") or self.attributes.get("resourceTypeGeneral")

    @property
    def resource_type_specific(self) -> Optional[str]:
        return (self.attributes.get("types") or {}).get("resourceType")

    @property
    def description(self) -> Optional[str]:
        for d in self.attributes.get("descriptions") or []:
            if isinstance(d, str):
                return d
            if (d.get("descriptionType") or "").lower() in ("abstract", ""):
                return d.get("description")
        return None

    @property
    def url(self) -> str:
        return self.attributes.get("url") or doi_url(self.doi)

    @property
    def subjects(self) -> List[str]:
        result = []
        for s in self.attributes.get("subjects") or []:
            text = s if isinstance(s, str) else s.get("subject")
            if text:
                result.append(text)
        return result

    def generate_items(self) -> List[Item]:
        items: List[Item] = []
        priority = 10

        def add(item: Item) -> None:
            nonlocal priority
            items.append(item)
            priority += 1

        if self.title:
            add(Item(priority, "Title", self.title, "The title of the resource.", render_dynamically=False))
        corresponding = self.corresponding_author
        if corresponding is not None and corresponding.name:
            add(corresponding.to_item(priority, "Corresponding Author", "Corresponding author: "))
        for idx, creator in enumerate(self.creators):
            add(creator.to_item(priority, f"Creator {idx + 1}"))
        if self.publisher:
            add(Item(priority, "Publisher", self.publisher, "The publisher of the resource."))
        if self.publication_date:
            add(Item(priority, "Publication Date", self.publication_date, "The publication date in ISO 8601 format."))
        if self.resource_type:
            add(Item(priority, "Resource Type", self.resource_type_specific or self.resource_type, "The type of the resource."))
        if self.description:
            add(
                Item(
                    priority,
                    "Description",
                    self.description,
                    "The description or abstract of the resource.",
                    render_dynamically=False,
                )
            )
        for subject in self.subjects:
            add(
                Item(
                    priority,
                    "Subject",
                    subject,
                    "A subject area or keyword associated with the resource.",
                    render_dynamically=False,
                )
            )
        return items


class CrossRefInfo:
    def __init__(self, doi: str, response: Dict[str, Any]):
        self.doi = doi
        self.raw = response
        message = _value_at(response, "message")
        if not isinstance(message, dict):
            raise ParseError(f"CrossRef response for {doi} has no message object")
        self.message: Dict[str, Any] = message

    @property
    def title(self) -> str:
        titles = self.message.get("title") or []
        return titles[0] if titles else ""

    @staticmethod
    def _creator(raw: Dict[str, Any]) -> Creator:
        creator = Creator(
            name=_display_name(raw.get("name"), raw.get("given"), raw.get("family")),
            given_name=raw.get("given"),
            family_name=raw.get("family"),
        )
        if raw.get("ORCID"):
            creator.orcid = _ORCID_PREFIX_RE.sub("", raw["ORCID"])
        affiliations = raw.get("affiliation") or []
        if affiliations and isinstance(affiliations[0], dict):
            creator.affiliation = affiliations[0].get("name")
        return creator

    @property
    def creators(self) -> List[Creator]:
        return [c for c in (self._creator(a) for a in self.message.get("author") or []) if c.name]

    @property
    def corresponding_author(self) -> Optional[Creator]:
        authors = self.message.get("author") or []
        if not authors:
            return None
        first = next((a for a in authors if a.get("sequence") == "first"), authors[0])
        return self._creator(first)

    @property
    def publisher(self) -> Optional[str]:
        return self.message.get("publisher")

    @property
    def publication_date(self) -> Optional[str]:
        node = self.message.get("issued") or self.message.get("published") or self.message.get("created") or {}
        parts_list = node.get("date-parts") or []
        if not parts_list or not parts_list[0]:
            return None
        parts = list(parts_list[0]) + [None, None]
        year, month, day = parts[0], parts[1], parts[2]
        if year and month and day:
            return f"{year}-{int(month):02d}-{int(day):02d}"
        if year and month:
            return f"{year}-{int(month):02d}"
        return str(year) if year else None

    @property
    def resource_type(self) -> Optional[str]:
        return self.message.get("type")

    @property
    def description(self) -> Optional[str]:
        return strip_jats(self.message.get("abstract"))

    @property
    def url(self) -> str:
        return self.message.get("URL") or ((self.message.get("resource") or {}).get("primary") or {}).get(
            "URL"
        ) or doi_url(self.doi)

    @property
    def subjects(self) -> List[str]:
        return [s for s in self.message.get("subject") or [] if s]

    def generate_items(self) -> List[Item]:
        items: List[Item] = []
        priority = 10
        corresponding = self.corresponding_author
        if self.title:
            items.append(Item(priority, "Title", self.title, "The title of the resource.", render_dynamically=False))
            priority += 1
        if corresponding is not None and corresponding.name:
            items.append(corresponding.to_item(priority, "Corresponding Author", "First/corresponding author: "))
            priority += 1
        for idx, creator in enumerate(self.creators):
            # the first author is already listed as corresponding author
            if idx == 0 and corresponding is not None:
                continue
            items.append(creator.to_item(priority, f"Author {idx + 1}"))
            priority += 1
        for title, value, tooltip in (
            ("Publisher", self.publisher, "The publisher of the resource."),
            ("Publication Date", self.publication_date, "The publication date in ISO 8601 format."),
            ("Resource Type", self.resource_type, "The type of the resource."),
        ):
            if value:
                items.append(Item(priority, title, value, tooltip))
                priority += 1
        if self.description:
            items.append(
                Item(priority, "Abstract", self.description, "The abstract of the resource.", render_dynamically=False)
            )
            priority += 1
        for subject in self.subjects:
            items.append(
                Item(
                    priority,
                    "Subject",
                    subject,
                    "A subject area or keyword associated with the resource.",
                    render_dynamically=False,
                )
            )
            priority += 1
        return items


class DOIMetadata:
    """Metadata of one DOI from whichever registry answered."""

    def __init__(self, doi: str, source: str, raw: Dict[str, Any]):
        self.doi = doi
        self.source = source
        self.raw = raw
        if source == SOURCE_DATACITE:
            self.info: Any = DataCiteInfo(doi, raw)
        elif source == SOURCE_CROSSREF:
            self.info = CrossRefInfo(doi, raw)
        else:
            raise ParseError(f"Unknown DOI metadata source: {source!r}")

    @property
    def title(self) -> str:
        return self.info.title

    @property
    def url(self) -> str:
        return self.info.url

    @property
    def creators(self) -> List[Creator]:
        return self.info.creators

    @property
    def publication_date(self) -> Optional[str]:
        return self.info.publication_date

    @property
    def resource_type(self) -> Optional[str]:
        return self.info.resource_type

    def generate_items(self) -> List[Item]:
        return self.info.generate_items()

    def to_dict(self) -> Dict[str, Any]:
        return {"doi": self.doi, "source": self.source, "raw": self.raw}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DOIMetadata":
        return cls(doi=data["doi"], source=data["source"], raw=data.get("raw") or {})

    @classmethod
    async def fetch(cls, doi: str, fetcher: MetadataFetcherPort) -> "DOIMetadata":
        """DataCite first, CrossRef second; raises FetchError when neither knows the DOI."""
        try:
            response = await fetcher.fetch_json(datacite_url(doi), headers={"Accept": "application/vnd.api+json"})
            if isinstance(response, dict) and response.get("data"):
                return cls(doi, SOURCE_DATACITE, response)
        except (FetchError, ParseError) as e:
            logger.debug(f"DataCite lookup failed for {doi}: {e}")

        try:
            response = await fetcher.fetch_json(crossref_url(doi), headers={"Accept": "application/json"})
            if isinstance(response, dict) and response.get("message"):
                return cls(doi, SOURCE_CROSSREF, response)
        except (FetchError, ParseError) as e:
            logger.debug(f"CrossRef lookup failed for {doi}: {e}")

        raise FetchError(doi_url(doi), message=f"Failed to resolve DOI: {doi}")
