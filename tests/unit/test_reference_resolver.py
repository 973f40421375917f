import itertools

import pytest

from content_agent.config import ReferenceConfig
from content_agent.references.parser import parse_references
from content_agent.references.resolver import ReferenceResolver, select_best_match
from content_agent.references.store import InMemoryReferenceStore
from content_agent.types import ContentRecord, FileRecord, SectionRecord, SourceRecord

ORG = "org-1"

CANDIDATES = [
    {"id": "1", "slug": "classic-gingerbread-cookies"},
    {"id": "2", "slug": "classic-chocolate-cake"},
    {"id": "3", "slug": "gingerbread-basics"},
]


def _slug(item: dict[str, str]) -> list[str]:
    return [item["slug"]]


def test_select_best_match_prefers_exact() -> None:
    result = select_best_match("gingerbread-basics", CANDIDATES, _slug)

    assert result.match["id"] == "3"
    assert result.ambiguous == []
    assert result.tier == "exact"


def test_select_best_match_reports_prefix_ties() -> None:
    result = select_best_match("classic", CANDIDATES, _slug)

    assert result.match is None
    assert [item["id"] for item in result.ambiguous] == ["1", "2"]
    assert result.tier == "prefix"


def test_select_best_match_prefix_beats_substring() -> None:
    result = select_best_match("Gingerbread", CANDIDATES, _slug)

    assert result.match["id"] == "3"
    assert result.tier == "prefix"


def test_select_best_match_no_candidates_match() -> None:
    result = select_best_match("pancakes", CANDIDATES, _slug)

    assert result.match is None
    assert result.ambiguous == []
    assert result.tier is None


def test_select_best_match_is_order_independent() -> None:
    files = [
        {"id": "a", "names": ["report.pdf", "Q3 report.pdf"]},
        {"id": "b", "names": ["summary-report.pdf", "report"]},
        {"id": "c", "names": ["notes.txt", "report-notes.txt"]},
    ]

    outcomes = set()
    for ordering in itertools.permutations(files):
        result = select_best_match("report", ordering, lambda f: f["names"])
        winner = result.match["id"] if result.match else None
        outcomes.add((result.tier, winner, frozenset(f["id"] for f in result.ambiguous)))

    assert outcomes == {("exact", "b", frozenset())}


def _file(file_id: str, name: str, mime_type: str = "application/pdf") -> FileRecord:
    return FileRecord(id=file_id, organization_id=ORG, file_name=name, original_name=name, mime_type=mime_type)


@pytest.mark.asyncio
async def test_resolver_prefix_tie_on_files_is_ambiguous() -> None:
    store = InMemoryReferenceStore()
    store.add_file(_file("f1", "report.pdf"))
    store.add_file(_file("f2", "report-final.pdf"))

    result = await ReferenceResolver(store).resolve(parse_references("see @report"), organization_id=ORG)

    assert result.resolved == []
    assert len(result.ambiguous) == 1
    assert {candidate.id for candidate in result.ambiguous[0].candidates} == {"f1", "f2"}


@pytest.mark.asyncio
async def test_resolver_exact_file_name_wins_over_prefix() -> None:
    store = InMemoryReferenceStore()
    store.add_file(_file("f1", "report.pdf"))
    store.add_file(_file("f2", "report-final.pdf"))

    result = await ReferenceResolver(store).resolve(parse_references("see @report.pdf"), organization_id=ORG)

    assert [(ref.type, ref.id) for ref in result.resolved] == [("file", "f1")]
    assert result.ambiguous == []


@pytest.mark.asyncio
async def test_resolver_upgrades_anchor_to_section() -> None:
    store = InMemoryReferenceStore()
    store.add_content(
        ContentRecord(
            id="c1",
            organization_id=ORG,
            slug="acme-launch",
            title="Acme Launch",
            sections=[
                SectionRecord(id="sec_0", title="Intro", type="introduction", index=0),
                SectionRecord(id="sec_1", title="Pricing", type="body", index=1),
            ],
        )
    )

    result = await ReferenceResolver(store).resolve(
        parse_references("Summarize @acme-launch#intro please"), organization_id=ORG
    )

    assert len(result.resolved) == 1
    section = result.resolved[0]
    assert section.type == "section"
    assert section.id == "sec_0"
    assert section.content_id == "c1"
    assert result.ambiguous == []
    assert result.unresolved == []


@pytest.mark.asyncio
async def test_resolver_hash_anchor_matches_section_id() -> None:
    store = InMemoryReferenceStore()
    store.add_content(
        ContentRecord(
            id="c1",
            organization_id=ORG,
            slug="acme-launch",
            sections=[SectionRecord(id="sec_1", title="Pricing", index=1)],
        )
    )

    result = await ReferenceResolver(store).resolve(
        parse_references("Fix @acme-launch#SEC_1"), organization_id=ORG
    )

    assert [(ref.type, ref.id) for ref in result.resolved] == [("section", "sec_1")]


@pytest.mark.asyncio
async def test_resolver_missing_section_degrades_to_content_with_suggestions() -> None:
    store = InMemoryReferenceStore()
    store.add_content(
        ContentRecord(
            id="c1",
            organization_id=ORG,
            slug="acme-launch",
            title="Acme Launch",
            sections=[SectionRecord(id=f"sec_{i}", title=f"Part {i}", index=i) for i in range(7)],
        )
    )

    result = await ReferenceResolver(store).resolve(
        parse_references("Edit @acme-launch:faq"), organization_id=ORG
    )

    assert [(ref.type, ref.id) for ref in result.resolved] == [("content", "c1")]
    assert len(result.unresolved) == 1
    miss = result.unresolved[0]
    assert miss.reason == "section_not_found"
    assert len(miss.suggestions) == 5
    assert miss.suggestions[0].reference == "acme-launch#sec_0"


@pytest.mark.asyncio
async def test_resolver_falls_back_from_content_to_file() -> None:
    store = InMemoryReferenceStore()
    store.add_file(_file("f1", "brandbook", mime_type="text/plain"))

    result = await ReferenceResolver(store).resolve(parse_references("use @brandbook"), organization_id=ORG)

    assert [(ref.type, ref.id) for ref in result.resolved] == [("file", "f1")]


@pytest.mark.asyncio
async def test_resolver_dotted_identifier_falls_back_to_content() -> None:
    store = InMemoryReferenceStore()
    store.add_content(ContentRecord(id="c9", organization_id=ORG, slug="release-2.0"))

    result = await ReferenceResolver(store).resolve(parse_references("see @release-2.0"), organization_id=ORG)

    assert [(ref.type, ref.id) for ref in result.resolved] == [("content", "c9")]


@pytest.mark.asyncio
async def test_resolver_source_prefix_and_not_found() -> None:
    store = InMemoryReferenceStore()
    store.add_source(
        SourceRecord(id="s1", organization_id=ORG, title="Manual transcript", external_id="manual-transcript")
    )

    result = await ReferenceResolver(store).resolve(
        parse_references("Use @source:manual-transcript and @nothing-here"), organization_id=ORG
    )

    assert [(ref.type, ref.id) for ref in result.resolved] == [("source", "s1")]
    assert [(miss.token.identifier, miss.reason) for miss in result.unresolved] == [("nothing-here", "not_found")]


@pytest.mark.asyncio
async def test_resolver_is_organization_scoped_and_caps_candidates() -> None:
    store = InMemoryReferenceStore()
    store.add_content(ContentRecord(id="other", organization_id="org-2", slug="guide"))
    for i in range(8):
        store.add_content(ContentRecord(id=f"c{i}", organization_id=ORG, slug=f"guide-{i}"))

    resolver = ReferenceResolver(store, ReferenceConfig(max_candidates=3))
    result = await resolver.resolve(parse_references("@guide"), organization_id=ORG)

    assert result.resolved == []
    assert len(result.ambiguous) == 1
    candidates = result.ambiguous[0].candidates
    assert len(candidates) == 3
    assert all(candidate.id != "other" for candidate in candidates)
