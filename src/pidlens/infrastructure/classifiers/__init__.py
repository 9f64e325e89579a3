# src/pidlens/infrastructure/classifiers/__init__.py
"""
Identifier classifiers, one per identifier family.

Each classifier implements the IdentifierClassifier contract and is
registered under its key in the classifier registry.
"""

from .date_type import DateType
from .doi_type import DOIType
from .email_type import EmailType
from .fallback_type import FallbackType
from .handle_type import HandleType
from .json_type import JSONType
from .locale_type import LocaleType
from .orcid_type import ORCIDType
from .ror_type import RORType
from .spdx_type import SPDXType
from .url_type import URLType

__all__ = [
    "DateType",
    "ORCIDType",
    "DOIType",
    "HandleType",
    "RORType",
    "SPDXType",
    "EmailType",
    "URLType",
    "LocaleType",
    "JSONType",
    "FallbackType",
]
