# src/pidlens/infrastructure/classifiers/doi_citation.py
"""
One-line citation previews for DOI metadata.

Only the first creator is named; more creators collapse into "et al.".
Titles are cut at 60 characters, preferably on a word boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

TITLE_MAX_LENGTH = 60


class CitationStyle(str, Enum):
    APA = "APA"
    CHICAGO = "Chicago"
    IEEE = "IEEE"
    HARVARD = "Harvard"
    ANGLIA_RUSKIN = "Anglia Ruskin"

    @classmethod
    def from_setting(cls, raw: Any) -> "CitationStyle":
        """Parse a ``citationStyle`` setting value; unknown or missing values give APA."""
        if raw is None:
            return cls.APA
        key = str(raw).strip().upper().replace(" ", "_")
        for style in cls:
            if key in (style.name, style.name.replace("_", "")):
                return style
        return cls.APA


def truncate_title(title: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    if len(title) <= max_length:
        return title
    truncated = title[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.7:
        return truncated[:last_space] + "..."
    return truncated + "..."


def _name_parts(creator: Any) -> Tuple[str, str]:
    """(given, family) from the explicit fields, else from a ``Family, Given`` or ``Given Family`` name."""
    given, family = creator.given_name or "", creator.family_name or ""
    if given and family:
        return given, family
    name = (creator.name or "").strip()
    if "," in name:
        name_family, name_given = (part.strip() for part in name.split(",", 1))
    else:
        parts = name.split()
        name_given = parts[0] if len(parts) > 1 else ""
        name_family = parts[-1] if parts else name
    return given or name_given, family or name_family


def format_citation(
    title: str,
    creators: Sequence[Any],
    year: Optional[str] = None,
    style: CitationStyle = CitationStyle.APA,
) -> str:
    """
    Format a citation preview.

    Args:
        title: resource title
        creators: objects with ``name``, ``given_name`` and ``family_name``
        year: publication date; only the part before the first ``-`` is used
        style: citation style

    Returns:
        The preview, or the bare title ("Untitled" without one) when there are no creators.
    """
    if not title or not creators:
        return title or "Untitled"

    given, family = _name_parts(creators[0])
    et_al = " et al." if len(creators) > 1 else ""
    year = year.split("-")[0] if year else ""
    short_title = truncate_title(title)

    if style is CitationStyle.CHICAGO:
        head = f"{family}, {given}{et_al}" if given else f"{family}{et_al}"
        if not head.endswith("."):
            head += "."
        year_part = f" {year}." if year else ""
        return f'{head}{year_part} "{short_title}"'
    if style is CitationStyle.IEEE:
        initial = f"{given[0]}." if given else ""
        name = " ".join(part for part in (initial, family) if part)
        year_part = f", {year}" if year else ""
        return f'{name}{et_al}, "{short_title}"{year_part}'
    if style is CitationStyle.HARVARD:
        initials: List[str] = [f"{n[0]}." for n in given.split()]
        year_part = f", {year}" if year else ""
        return f"{family}, {''.join(initials)}{et_al}{year_part}. {short_title}"
    if style is CitationStyle.ANGLIA_RUSKIN:
        et_al = et_al.upper()
        year_part = f" {year}." if year else ""
        return f"{family.upper()}{et_al}{year_part} {short_title}"

    year_part = f" ({year})" if year else ""
    return f"{family}{et_al}{year_part}. {short_title}"
