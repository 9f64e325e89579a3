"""ORCiD, ROR, SPDX and Handle classifiers against canned registry responses."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from pidlens.application.services.pid_resolver import HANDLE_API_URL, PIDResolver
from pidlens.core.abstractions.classifier import ClassifierContext
from pidlens.infrastructure.classifiers import HandleType, ORCIDType, RORType, SPDXType
from pidlens.infrastructure.classifiers import spdx_type
from pidlens.infrastructure.classifiers.handle_type import FAIRDOSCOPE_URL
from pidlens.infrastructure.classifiers.orcid_type import ORCID_API_URL, format_us_date
from pidlens.infrastructure.classifiers.ror_type import ROR_API_URL

ORCID = "0000-0002-1825-0097"

ORCID_RECORD = {
    "person": {
        "name": {"family-name": {"value": "Carberry"}, "given-names": {"value": "Josiah"}},
        "emails": {
            "email": [
                {"email": "josiah@brown.example", "primary": True, "verified": True},
                {"email": "jc@old.example", "primary": False, "verified": True},
            ]
        },
        "keywords": {"keyword": [{"content": "teapots", "display-index": 2}, {"content": "ceramics", "display-index": 1}]},
        "researcher-urls": {"researcher-url": [{"url-name": "Blog", "url": {"value": "https://blog.example"}}]},
        "addresses": {"address": [{"country": {"value": "US"}}]},
        "biography": {"content": "Psychoceramicist."},
    },
    "activities-summary": {
        "employments": {
            "affiliation-group": [
                {
                    "summaries": [
                        {
                            "employment-summary": {
                                "organization": {"name": "Brown University"},
                                "department-name": "Psychoceramics",
                                "start-date": {"year": {"value": "2010"}},
                            }
                        }
                    ]
                },
                {
                    "summaries": [
                        {
                            "employment-summary": {
                                "organization": {"name": "Old College"},
                                "start-date": {"year": {"value": "2000"}},
                                "end-date": {"year": {"value": "2005"}},
                            }
                        }
                    ]
                },
            ]
        }
    },
    "preferences": {"locale": "en"},
}

ROR_RECORD = {
    "id": "https://ror.org/04t3en479",
    "names": [
        {"value": "Karlsruhe Institute of Technology", "types": ["ror_display", "label"]},
        {"value": "KIT", "types": ["acronym"]},
    ],
    "status": "active",
    "types": ["education", "funder"],
    "links": [{"type": "website", "value": "https://www.kit.edu"}],
    "external_ids": [{"type": "grid", "preferred": "grid.7892.4", "all": ["grid.7892.4"]}],
    "relationships": [{"type": "child", "id": "https://ror.org/0xxxxxxxx", "label": "Sub"}],
    "locations": [{"geonames_details": {"country_code": "DE", "lat": 49.01, "lng": 8.42}}],
}


def _fixed_clock():
    return datetime(2024, 6, 1, tzinfo=timezone.utc)


def _values(classifier, title):
    return [item.value for item in classifier.sorted_items() if item.title == title]


# --- ORCiD ---


@pytest.mark.asyncio
async def test_orcid_items_and_historic_affiliation(fake_fetcher):
    fake_fetcher.responses[ORCID_API_URL.format(orcid=ORCID)] = ORCID_RECORD
    classifier = ORCIDType(
        f"https://orcid.org/{ORCID}",
        [{"name": "affiliationAt", "value": "2003-01-01"}],
        ClassifierContext(fetcher=fake_fetcher, clock=_fixed_clock),
    )

    assert await classifier.detects_format()
    await classifier.resolve()

    assert _values(classifier, "ORCiD") == [ORCID]
    assert _values(classifier, "Family Name") == ["Carberry"]
    assert _values(classifier, "Given Names") == ["Josiah"]
    assert _values(classifier, "Current Affiliation") == ["Brown University [Psychoceramics]"]
    assert _values(classifier, f"Affiliation at {format_us_date(datetime(2003, 1, 1).date())}") == ["Old College"]
    assert _values(classifier, "Primary E-Mail address") == ["josiah@brown.example"]
    assert _values(classifier, "Other E-Mail addresses") == ["jc@old.example"]
    assert _values(classifier, "Keywords") == ["ceramics, teapots"]
    assert _values(classifier, "Preferred Language") == ["en"]
    assert _values(classifier, "Blog") == ["https://blog.example"]
    assert _values(classifier, "Country") == ["US"]
    assert fake_fetcher.headers[0] == {"Accept": "application/json"}
    assert classifier.preview() == "Carberry, Josiah (Brown University)"
    assert {a.title for a in classifier.actions} == {"Open ORCiD profile", "Send E-Mail"}


@pytest.mark.asyncio
async def test_orcid_without_person_section_is_an_error(fake_fetcher):
    fake_fetcher.responses[ORCID_API_URL.format(orcid=ORCID)] = {"orcid-identifier": {}}
    classifier = ORCIDType(ORCID, context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error is not None
    assert not classifier.is_resolvable()


@pytest.mark.asyncio
async def test_orcid_employment_without_summary_object_is_an_error(fake_fetcher):
    fake_fetcher.responses[ORCID_API_URL.format(orcid=ORCID)] = {
        "person": {"name": {"family-name": {"value": "Carberry"}}},
        "activities-summary": {"employments": {"affiliation-group": [{"summaries": ["Brown University"]}]}},
    }
    classifier = ORCIDType(ORCID, context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert "employment summary" in classifier.error
    assert classifier.sorted_items()[0].title == "Error"
    assert not classifier.is_resolvable()


def test_format_us_date():
    assert format_us_date(datetime(2021, 3, 7).date()) == "3/7/2021"


# --- ROR ---


@pytest.mark.asyncio
async def test_ror_items_and_actions(fake_fetcher):
    fake_fetcher.responses[ROR_API_URL.format(ror_id="04t3en479")] = ROR_RECORD
    classifier = RORType("https://ror.org/04t3en479", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert _values(classifier, "Display Name") == ["Karlsruhe Institute of Technology"]
    assert _values(classifier, "Acronym") == ["KIT"]
    assert _values(classifier, "ROR ID") == ["https://ror.org/04t3en479"]
    assert _values(classifier, "Status") == ["🟢 Active"]
    assert _values(classifier, "Type") == ["🏫 Education", "💰 Funder"]
    assert _values(classifier, "Link to website") == ["https://www.kit.edu"]
    assert _values(classifier, "External ID: grid") == ["grid.7892.4"]
    assert _values(classifier, "Child Organization") == ["https://ror.org/0xxxxxxxx"]
    assert _values(classifier, "Coordinates") == ["49.01, 8.42"]
    assert [a.title for a in classifier.sorted_actions()] == ["View on ROR", "View on OpenStreetMap"]
    assert classifier.label == "Karlsruhe Institute of Technology"


@pytest.mark.asyncio
async def test_ror_without_names(fake_fetcher):
    fake_fetcher.responses[ROR_API_URL.format(ror_id="04t3en479")] = {"id": "https://ror.org/04t3en479"}
    classifier = RORType("https://ror.org/04t3en479", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert _values(classifier, "Name") == ["Unknown"]
    assert classifier.actions == []


@pytest.mark.parametrize(
    "body",
    [
        {"names": ["KIT"]},
        {**ROR_RECORD, "links": "https://www.kit.edu"},
        {**ROR_RECORD, "locations": [None]},
    ],
)
@pytest.mark.asyncio
async def test_ror_list_fields_of_the_wrong_shape_are_errors(fake_fetcher, body):
    fake_fetcher.responses[ROR_API_URL.format(ror_id="04t3en479")] = body
    classifier = RORType("https://ror.org/04t3en479", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error is not None
    assert classifier.sorted_items()[0].title == "Error"
    assert not classifier.is_resolvable()


@pytest.mark.asyncio
async def test_ror_types_of_the_wrong_shape_are_reported_as_layout_errors(fake_fetcher):
    fake_fetcher.responses[ROR_API_URL.format(ror_id="04t3en479")] = {**ROR_RECORD, "types": [{"id": 1}]}
    classifier = RORType("https://ror.org/04t3en479", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error.startswith("Unexpected metadata layout")
    assert not classifier.is_resolvable()


# --- SPDX ---


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "value,expected",
    [
        ("MIT", True),
        ("Apache-2.0", True),
        ("https://spdx.org/licenses/Foo-1.0.html", True),
        ("SomeRandomWord", False),
    ],
)
async def test_spdx_detection(value, expected):
    assert await SPDXType(value).detects_format() is expected


@pytest.mark.asyncio
async def test_spdx_license_from_api(fake_fetcher):
    fake_fetcher.responses["https://spdx.org/licenses/MIT.json"] = {
        "licenseId": "MIT",
        "name": "MIT License",
        "isOsiApproved": True,
        "isFsfLibre": True,
        "seeAlso": ["https://example.org/mit", "https://opensource.org/license/mit/"],
    }
    classifier = SPDXType("MIT", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert _values(classifier, "Full Name") == ["MIT License"]
    assert _values(classifier, "OSI Approved") == ["Yes"]
    assert _values(classifier, "FSF Free/Libre") == ["Yes"]
    assert len(_values(classifier, "Related URL")) == 2
    official = [a for a in classifier.actions if a.title == "View Official License"]
    assert official[0].link == "https://opensource.org/license/mit/"


@pytest.mark.asyncio
async def test_spdx_uses_builtin_data_when_offline(fake_fetcher):
    classifier = SPDXType("Apache-2.0", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error is None
    assert _values(classifier, "Full Name") == ["Apache License 2.0"]


@pytest.mark.asyncio
async def test_spdx_unknown_license_offline_shows_network_issue(fake_fetcher):
    classifier = SPDXType("https://spdx.org/licenses/Foo-1.0", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error is not None
    assert _values(classifier, "License ID") == ["Foo-1.0"]
    assert _values(classifier, "Network Issue")
    assert classifier.actions[0].link == "https://spdx.org/licenses/Foo-1.0"


@pytest.mark.asyncio
async def test_spdx_slow_api_times_out_to_builtin_data(monkeypatch):
    class _SlowFetcher:
        async def fetch_json(self, url, headers=None, timeout=None):
            await asyncio.sleep(1)
            return {}

        async def close(self):
            return None

    monkeypatch.setattr(spdx_type, "REQUEST_TIMEOUT", 0.01)
    classifier = SPDXType("MIT", context=ClassifierContext(fetcher=_SlowFetcher()))

    await classifier.resolve()

    assert _values(classifier, "Full Name") == ["MIT License"]


# --- Handle ---


def _handle_url(text: str) -> str:
    prefix, suffix = text.split("/", 1)
    return HANDLE_API_URL.format(prefix=prefix, suffix=suffix)


HANDLE_RESPONSES = {
    _handle_url("21.T1/obj"): {
        "values": [
            {"index": 1, "type": "21.T1/type", "data": {"format": "string", "value": "dataset"}},
            {"index": 2, "type": "21.T1/untyped", "data": {"format": "string", "value": "raw"}},
            {"index": 3, "type": "URL", "data": {"format": "string", "value": "https://example.org/obj"}},
            {"index": 100, "type": "HS_ADMIN", "data": {"format": "admin", "value": {"index": 200}}},
        ]
    },
    _handle_url("21.T1/type"): {
        "values": [
            {
                "index": 1,
                "type": "10320/loc",
                "data": {
                    "format": "string",
                    "value": '<locations><location href="https://dtr.example/type" view="ui"/>'
                    '<location href="https://dtr.example/type.json" view="json"/></locations>',
                },
            }
        ]
    },
    "https://dtr.example/type.json": {"name": "digitalObjectType", "description": "Kind of object"},
}


@pytest.mark.asyncio
async def test_handle_items_from_record(fake_fetcher):
    fake_fetcher.responses.update(HANDLE_RESPONSES)
    context = ClassifierContext(fetcher=fake_fetcher, pid_resolver=PIDResolver(fake_fetcher))
    classifier = HandleType("21.T1/obj", context=context)

    await classifier.resolve()

    items = {item.title: item for item in classifier.sorted_items()}
    assert items["digitalObjectType"].value == "dataset"
    assert items["digitalObjectType"].tooltip == "Kind of object"
    assert items["digitalObjectType"].link == "https://dtr.example/type"
    assert items["21.T1/untyped"].value == "raw"
    assert items["URL"].value == "https://example.org/obj"
    assert "HS_ADMIN" not in items
    assert classifier.actions[0].link == FAIRDOSCOPE_URL.format(pid="21.T1/obj")
    assert classifier.is_resolvable()


@pytest.mark.asyncio
async def test_handle_builds_its_own_resolver_and_reports_failures(fake_fetcher):
    classifier = HandleType("21.T1/missing", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.context.pid_resolver is not None
    assert classifier.error is not None
    assert classifier.sorted_items()[0].title == "Error"


@pytest.mark.asyncio
async def test_handle_rehydrates_from_stored_record(fake_fetcher):
    fake_fetcher.responses.update(HANDLE_RESPONSES)
    fresh = HandleType("21.T1/obj", context=ClassifierContext(fetcher=fake_fetcher))
    await fresh.resolve()
    calls = len(fake_fetcher.calls)

    cached = HandleType("21.T1/obj")
    await cached.resolve(fresh.data)

    assert cached.to_dict() == fresh.to_dict()
    assert len(fake_fetcher.calls) == calls
