from __future__ import annotations

import re
from typing import Optional


_DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)
_DOI_RE = re.compile(r"^10\.\d{4,9}/[-._;()/:A-Za-z0-9]+$")
_ORCID_RE = re.compile(r"^(https://orcid\.org/)?[0-9]{4}-[0-9]{4}-[0-9]{4}-[0-9]{3}[0-9X]$")
_ROR_RE = re.compile(r"^https?://ror\.org/[0-9a-z]{9}$", re.IGNORECASE)
_SPDX_URL_RE = re.compile(r"^https?://spdx\.org/licenses/[\w.\-+]+/?$", re.IGNORECASE)
_SPDX_ID_RE = re.compile(r"^[\w.\-+]+$")


def strip_doi_prefix(value: str | None) -> str:
    return _DOI_PREFIX_RE.sub("", (value or "").strip())


def is_doi(value: str | None) -> bool:
    return _DOI_RE.match(strip_doi_prefix(value)) is not None


def normalize_doi(value: str | None) -> Optional[str]:
    text = strip_doi_prefix(value)
    if not _DOI_RE.match(text):
        return None
    return text


def doi_url(doi: str) -> str:
    return f"https://doi.org/{doi}"


def is_orcid(value: str | None) -> bool:
    return _ORCID_RE.match((value or "").strip()) is not None


def normalize_orcid(value: str | None) -> Optional[str]:
    text = (value or "").strip()
    if not _ORCID_RE.match(text):
        return None
    return text.replace("https://orcid.org/", "")


def is_ror(value: str | None) -> bool:
    return _ROR_RE.match((value or "").strip()) is not None


def ror_id(value: str | None) -> Optional[str]:
    text = (value or "").strip()
    if not _ROR_RE.match(text):
        return None
    return text.rstrip("/").split("/")[-1]


def is_spdx_url(value: str | None) -> bool:
    return _SPDX_URL_RE.match((value or "").strip()) is not None


def is_spdx_id(value: str | None) -> bool:
    return _SPDX_ID_RE.match((value or "").strip()) is not None


def spdx_license_id(value: str | None) -> str:
    text = (value or "").strip()
    if "/" not in text and "://" not in text:
        return text
    text = re.sub(r"^https?://spdx\.org/licenses/", "", text, flags=re.IGNORECASE)
    text = text.rstrip("/")
    return re.sub(r"\.(json|html)$", "", text, flags=re.IGNORECASE)
