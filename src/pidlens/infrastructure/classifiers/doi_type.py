# src/pidlens/infrastructure/classifiers/doi_type.py
from __future__ import annotations

from typing import Any, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.identifiers import doi_url, is_doi, normalize_doi
from pidlens.domain.items import Action, ActionStyle, Item
from pidlens.infrastructure.classifiers.doi_citation import CitationStyle, format_citation
from pidlens.infrastructure.classifiers.doi_metadata import (
    SOURCE_CROSSREF,
    SOURCE_DATACITE,
    DOIMetadata,
    crossref_url,
    datacite_url,
)


class DOIType(IdentifierClassifier):
    """Digital Object Identifiers, with metadata from DataCite or CrossRef."""

    key = "DOIType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.metadata: Optional[DOIMetadata] = None

    @property
    def data(self) -> Any:
        return self.metadata.to_dict() if self.metadata is not None else None

    async def detects_format(self) -> bool:
        return isinstance(self.value, str) and is_doi(self.value)

    async def _resolve(self, data: Any = None) -> None:
        if data is not None:
            self.metadata = DOIMetadata.from_dict(data)
        else:
            doi = normalize_doi(self.value)
            if doi is None:
                raise ValueError(f"Not a DOI: {self.value!r}")
            self.metadata = await DOIMetadata.fetch(doi, self.context.require_fetcher())

        meta = self.metadata
        self.items.append(
            Item(
                0,
                "DOI",
                meta.doi,
                "Digital Object Identifier - A persistent identifier for academic and research resources.",
                "https://www.doi.org/",
                render_dynamically=False,
            )
        )
        self.items.append(
            Item(
                1,
                "Metadata Source",
                meta.source,
                f"Metadata provided by {meta.source}",
                "https://datacite.org" if meta.source == SOURCE_DATACITE else "https://www.crossref.org",
                render_dynamically=False,
            )
        )
        if meta.resource_type:
            self.items.append(
                Item(5, "Resource Type", meta.resource_type, "The type of the resource.", render_dynamically=False)
            )
        if meta.title:
            self.items.append(
                Item(
                    2,
                    "Citation",
                    self.preview(),
                    f"Short citation in {self.citation_style.value} style.",
                    render_dynamically=False,
                )
            )
        self.items.extend(meta.generate_items())

        if meta.url:
            self.actions.append(Action(0, "Open Resource", meta.url, ActionStyle.PRIMARY))
        self.actions.append(Action(1, "Resolve DOI", doi_url(meta.doi), ActionStyle.SECONDARY))
        if meta.source == SOURCE_DATACITE:
            self.actions.append(Action(2, "View DataCite Metadata", datacite_url(meta.doi), ActionStyle.SECONDARY))
        elif meta.source == SOURCE_CROSSREF:
            self.actions.append(Action(2, "View CrossRef Metadata", crossref_url(meta.doi), ActionStyle.SECONDARY))

    @property
    def citation_style(self) -> CitationStyle:
        return CitationStyle.from_setting(self.setting("citationStyle"))

    def preview(self) -> str:
        if self.metadata is None:
            return self.value
        meta = self.metadata
        return format_citation(meta.title, meta.creators, meta.publication_date, self.citation_style)

    def _has_metadata(self) -> bool:
        return self.metadata is not None and self.metadata.title != ""
