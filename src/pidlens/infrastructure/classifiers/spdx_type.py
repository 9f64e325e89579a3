# src/pidlens/infrastructure/classifiers/spdx_type.py
"""
SPDX license identifiers, either as ``https://spdx.org/licenses/<id>`` URLs or
as bare IDs from the list of well-known licenses.

License details come from ``https://spdx.org/licenses/<id>.json``. The request
races a fixed timer; when it loses or fails, built-in data for the common
licenses is used instead.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pidlens.core.abstractions.classifier import IdentifierClassifier
from pidlens.domain.errors import FetchError, ParseError
from pidlens.domain.identifiers import is_spdx_id, is_spdx_url, spdx_license_id
from pidlens.domain.items import Action, ActionStyle, Item

logger = logging.getLogger(__name__)

SPDX_BASE_URL = "https://spdx.org/licenses"
REQUEST_TIMEOUT = 10.0  # seconds
OSI_LICENSES_URL = "https://opensource.org/licenses/"
FSF_LICENSING_URL = "https://www.fsf.org/licensing/"
OFFICIAL_HOSTS = ("opensource.org", "fsf.org", "gnu.org", "apache.org", "creativecommons.org")

FALLBACK_LICENSES: Dict[str, Dict[str, Any]] = {
    "MIT": {"licenseId": "MIT", "name": "MIT License", "isOsiApproved": True},
    "Apache-2.0": {"licenseId": "Apache-2.0", "name": "Apache License 2.0", "isOsiApproved": True},
    "GPL-3.0-only": {"licenseId": "GPL-3.0-only", "name": "GNU General Public License v3.0 only", "isOsiApproved": True},
    "GPL-2.0-only": {"licenseId": "GPL-2.0-only", "name": "GNU General Public License v2.0 only", "isOsiApproved": True},
    "BSD-3-Clause": {"licenseId": "BSD-3-Clause", "name": "BSD 3-Clause License", "isOsiApproved": True},
    "BSD-2-Clause": {"licenseId": "BSD-2-Clause", "name": "BSD 2-Clause License", "isOsiApproved": True},
    "LGPL-3.0-only": {
        "licenseId": "LGPL-3.0-only",
        "name": "GNU Lesser General Public License v3.0 only",
        "isOsiApproved": True,
    },
    "LGPL-2.1-only": {
        "licenseId": "LGPL-2.1-only",
        "name": "GNU Lesser General Public License v2.1 only",
        "isOsiApproved": True,
    },
    "MPL-2.0": {"licenseId": "MPL-2.0", "name": "Mozilla Public License 2.0", "isOsiApproved": True},
    "AGPL-3.0-only": {
        "licenseId": "AGPL-3.0-only",
        "name": "GNU Affero General Public License v3.0 only",
        "isOsiApproved": True,
    },
    "CC-BY-4.0": {
        "licenseId": "CC-BY-4.0",
        "name": "Creative Commons Attribution 4.0 International",
        "isOsiApproved": False,
    },
    "CC-BY-SA-4.0": {
        "licenseId": "CC-BY-SA-4.0",
        "name": "Creative Commons Attribution-ShareAlike 4.0 International",
        "isOsiApproved": False,
    },
    "CC0-1.0": {"licenseId": "CC0-1.0", "name": "Creative Commons Zero v1.0 Universal", "isOsiApproved": False},
    "Unlicense": {"licenseId": "Unlicense", "name": "The Unlicense", "isOsiApproved": False},
    "ISC": {"licenseId": "ISC", "name": "ISC License (ISCL)", "isOsiApproved": True},
}

COMMON_LICENSES = tuple(FALLBACK_LICENSES)


def find_official_url(urls: List[str]) -> Optional[str]:
    for url in urls:
        lower = url.lower()
        if any(host in lower for host in OFFICIAL_HOSTS):
            return url
    return None


class SPDXType(IdentifierClassifier):
    key = "SPDXType"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.license_id = ""
        self.license_data: Optional[Dict[str, Any]] = None

    @property
    def data(self) -> Any:
        return self.license_data

    async def detects_format(self) -> bool:
        if not isinstance(self.value, str):
            return False
        if is_spdx_url(self.value):
            return True
        # bare IDs are only claimed for well-known licenses; anything else is too ambiguous
        return is_spdx_id(self.value) and self.value.strip() in COMMON_LICENSES

    async def _fetch_license(self) -> Dict[str, Any]:
        url = f"{SPDX_BASE_URL}/{self.license_id}.json"
        try:
            body = await asyncio.wait_for(
                self.context.require_fetcher().fetch_json(url), timeout=REQUEST_TIMEOUT
            )
            if isinstance(body, dict) and body.get("licenseId"):
                return body
            raise ParseError(f"No license data in {url}")
        except (FetchError, ParseError, asyncio.TimeoutError) as e:
            fallback = FALLBACK_LICENSES.get(self.license_id)
            if fallback is None:
                raise FetchError(url, message=str(e) or "Request timeout") from e
            logger.warning(f"Using built-in data for license {self.license_id}: {e}")
            return dict(fallback)

    async def _resolve(self, data: Any = None) -> None:
        self.license_id = spdx_license_id(self.value)
        if data is not None:
            self.license_data = data
        else:
            self.license_data = await self._fetch_license()

        lic = self.license_data
        self.items.append(Item(0, "Full Name", lic.get("name") or self.license_id, "The full legal name of the license", render_dynamically=False))
        self.items.append(Item(10, "SPDX ID", lic.get("licenseId") or self.license_id, "The unique SPDX identifier for this license", render_dynamically=False))
        if lic.get("isDeprecatedLicenseId"):
            self.items.append(Item(15, "Deprecated", "Yes", "This license ID has been deprecated by SPDX", render_dynamically=False))
            if lic.get("deprecatedVersion"):
                self.items.append(
                    Item(16, "Deprecated Since", lic["deprecatedVersion"], "The SPDX version when this license was deprecated", render_dynamically=False)
                )
        self.items.append(
            Item(
                20,
                "OSI Approved",
                "Yes" if lic.get("isOsiApproved") else "No",
                "Whether the license is approved by the Open Source Initiative",
                OSI_LICENSES_URL,
                render_dynamically=False,
            )
        )
        if lic.get("isFsfLibre") is not None:
            self.items.append(
                Item(
                    25,
                    "FSF Free/Libre",
                    "Yes" if lic["isFsfLibre"] else "No",
                    'Whether the license is considered "Free" by the Free Software Foundation',
                    FSF_LICENSING_URL,
                    render_dynamically=False,
                )
            )
        see_also = [u for u in lic.get("seeAlso") or [] if u]
        for i, url in enumerate(see_also):
            self.items.append(Item(30 + i, "Related URL", url, "A related URL with more information about this license"))

        self.actions.append(
            Action(10, "View on SPDX", f"{SPDX_BASE_URL}/{lic.get('licenseId') or self.license_id}", ActionStyle.PRIMARY)
        )
        if lic.get("isOsiApproved"):
            self.actions.append(Action(20, "View on OSI", OSI_LICENSES_URL, ActionStyle.SECONDARY))
        if see_also:
            official = find_official_url(see_also) or see_also[0]
            self.actions.append(Action(30, "View Official License", official, ActionStyle.SECONDARY))

    def _record_error(self, exc: BaseException) -> None:
        super()._record_error(exc)
        license_id = self.license_id or spdx_license_id(self.value)
        self.items.append(Item(10, "License ID", license_id, "The license identifier that was detected"))
        self.items.append(
            Item(
                20,
                "Network Issue",
                "The SPDX API could not be reached. This may be due to network connectivity issues or the SPDX service being unavailable.",
                "Try again when you have internet connectivity",
            )
        )
        self.actions.append(Action(10, "View on SPDX", f"{SPDX_BASE_URL}/{license_id}", ActionStyle.PRIMARY))
