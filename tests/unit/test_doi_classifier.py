from __future__ import annotations

import pytest

from pidlens.core.abstractions.classifier import ClassifierContext
from pidlens.infrastructure.classifiers import DOIType
from pidlens.infrastructure.classifiers.doi_metadata import crossref_url, datacite_url, strip_jats

DATACITE_RESPONSE = {
    "data": {
        "id": "10.1234/5678",
        "attributes": {
            "titles": [{"title": "A research dataset"}],
            "creators": [
                {
                    "name": "Doe, Jane",
                    "nameIdentifiers": [
                        {"nameIdentifierScheme": "ORCID", "nameIdentifier": "https://orcid.org/0000-0002-1825-0097"}
                    ],
                    "affiliation": [{"name": "KIT"}],
                }
            ],
            "publisher": "Zenodo",
            "publicationYear": 2024,
            "types": {"resourceTypeGeneral": "Dataset"},
            "url": "https://zenodo.org/record/5678",
            "subjects": [{"subject": "Physics"}],
        },
    }
}

CROSSREF_RESPONSE = {
    "message": {
        "title": ["A paper"],
        "author": [
            {"given": "Jane", "family": "Doe", "sequence": "first", "ORCID": "http://orcid.org/0000-0002-1825-0097"},
            {"given": "John", "family": "Roe", "sequence": "additional"},
        ],
        "publisher": "ACM",
        "issued": {"date-parts": [[2020, 3, 5]]},
        "type": "journal-article",
        "abstract": "<jats:p>First part.</jats:p><jats:p>Second part.</jats:p>",
        "URL": "https://dx.doi.org/10.1145/123456",
    }
}


def _titles(classifier):
    return {item.title: item.value for item in classifier.sorted_items()}


def test_strip_jats_keeps_paragraphs():
    assert strip_jats("<jats:p>One</jats:p><jats:p>Two</jats:p>") == "One\n\nTwo"
    assert strip_jats("plain") == "plain"
    assert strip_jats(None) is None


@pytest.mark.asyncio
async def test_datacite_metadata(fake_fetcher):
    fake_fetcher.responses[datacite_url("10.1234/5678")] = DATACITE_RESPONSE
    classifier = DOIType("https://doi.org/10.1234/5678", context=ClassifierContext(fetcher=fake_fetcher))

    assert await classifier.detects_format()
    await classifier.resolve()

    items = _titles(classifier)
    assert items["DOI"] == "10.1234/5678"
    assert items["Metadata Source"] == "DataCite"
    assert items["Title"] == "A research dataset"
    assert items["Creator 1"] == "0000-0002-1825-0097"
    assert items["Publisher"] == "Zenodo"
    assert items["Publication Date"] == "2024"
    assert items["Subject"] == "Physics"
    assert [a.title for a in classifier.sorted_actions()] == [
        "Open Resource",
        "Resolve DOI",
        "View DataCite Metadata",
    ]
    assert classifier.is_resolvable()
    assert fake_fetcher.count("crossref") == 0


@pytest.mark.asyncio
async def test_crossref_is_asked_when_datacite_does_not_know_the_doi(fake_fetcher):
    fake_fetcher.responses[crossref_url("10.1145/123456")] = CROSSREF_RESPONSE
    classifier = DOIType("10.1145/123456", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    items = _titles(classifier)
    assert items["Metadata Source"] == "CrossRef"
    assert items["Corresponding Author"] == "0000-0002-1825-0097"
    assert items["Author 2"] == "John Roe"
    assert "Author 1" not in items
    assert items["Publication Date"] == "2020-03-05"
    assert items["Abstract"] == "First part.\n\nSecond part."
    assert fake_fetcher.calls == [datacite_url("10.1145/123456"), crossref_url("10.1145/123456")]


@pytest.mark.asyncio
async def test_unknown_doi_becomes_error_item(fake_fetcher):
    classifier = DOIType("10.9999/nothing", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error is not None
    assert classifier.sorted_items()[0].title == "Error"
    assert not classifier.is_resolvable()
    assert classifier.data is None


@pytest.mark.asyncio
async def test_rehydrated_instance_renders_the_same_without_network(fake_fetcher):
    fake_fetcher.responses[datacite_url("10.1234/5678")] = DATACITE_RESPONSE
    fresh = DOIType("10.1234/5678", context=ClassifierContext(fetcher=fake_fetcher))
    await fresh.resolve()

    cached = DOIType("10.1234/5678")
    await cached.resolve(fresh.data)

    assert cached.to_dict() == fresh.to_dict()
    assert len(fake_fetcher.calls) == 1


@pytest.mark.asyncio
async def test_datacite_body_without_attributes_falls_through_to_crossref(fake_fetcher):
    fake_fetcher.responses[datacite_url("10.1234/5678")] = {"data": "not an object"}
    classifier = DOIType("10.1234/5678", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.sorted_items()[0].title == "Error"
    assert not classifier.is_resolvable()
    assert fake_fetcher.calls == [datacite_url("10.1234/5678"), crossref_url("10.1234/5678")]


@pytest.mark.parametrize(
    "url_for, body",
    [
        (datacite_url, {"data": {"attributes": {"titles": [{"title": "T"}], "creators": [7]}}}),
        (crossref_url, {"message": {"title": ["T"], "author": ["Jane Doe"]}}),
    ],
)
@pytest.mark.asyncio
async def test_wrong_shape_metadata_becomes_parse_error_item(fake_fetcher, url_for, body):
    fake_fetcher.responses[url_for("10.1234/5678")] = body
    classifier = DOIType("10.1234/5678", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert classifier.error.startswith("Unexpected metadata layout for 10.1234/5678")
    assert classifier.sorted_items()[0].title == "Error"
    assert not classifier.is_resolvable()


@pytest.mark.asyncio
async def test_citation_item_defaults_to_apa(fake_fetcher):
    fake_fetcher.responses[datacite_url("10.1234/5678")] = DATACITE_RESPONSE
    classifier = DOIType("10.1234/5678", context=ClassifierContext(fetcher=fake_fetcher))

    await classifier.resolve()

    assert _titles(classifier)["Citation"] == "Doe (2024). A research dataset"
    assert classifier.preview() == "Doe (2024). A research dataset"


@pytest.mark.asyncio
async def test_citation_style_setting_applies_to_rehydrated_instance(fake_fetcher):
    fake_fetcher.responses[crossref_url("10.1145/123456")] = CROSSREF_RESPONSE
    fresh = DOIType("10.1145/123456", context=ClassifierContext(fetcher=fake_fetcher))
    await fresh.resolve()

    cached = DOIType("10.1145/123456", [{"name": "citationStyle", "value": "IEEE"}])
    await cached.resolve(fresh.data)

    assert _titles(cached)["Citation"] == 'J. Doe et al., "A paper", 2020'
