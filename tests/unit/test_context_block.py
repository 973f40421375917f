import pytest

from content_agent.config import ReferenceConfig
from content_agent.references.context import SCOPE_CONTRACT, build_context_block
from content_agent.references.loader import is_text_like_mime, load_reference_content, truncate_text
from content_agent.references.parser import parse_references
from content_agent.references.resolver import ReferenceResolver
from content_agent.references.store import InMemoryReferenceStore
from content_agent.types import ContentRecord, FileRecord, SectionRecord, SourceRecord

ORG = "org-1"


def _store() -> InMemoryReferenceStore:
    store = InMemoryReferenceStore()
    store.add_file(
        FileRecord(
            id="f1",
            organization_id=ORG,
            file_name="brief.md",
            original_name="brief.md",
            file_type="document",
            mime_type="text/markdown",
            size=42,
        ),
        text="# Brief\n" + "x" * 50,
    )
    store.add_file(
        FileRecord(
            id="f2",
            organization_id=ORG,
            file_name="hero.png",
            original_name="hero.png",
            file_type="image",
            mime_type="image/png",
        ),
        text="binary",
    )
    store.add_content(
        ContentRecord(
            id="c1",
            organization_id=ORG,
            slug="launch-post",
            title="Launch Post",
            frontmatter={"seoTitle": "Launch"},
            sections=[
                SectionRecord(id="sec_0", title="Intro", index=0, body="Hello world"),
                SectionRecord(id="sec_1", title="Pricing", index=1, body="It is cheap"),
            ],
        )
    )
    store.add_source(
        SourceRecord(
            id="s1",
            organization_id=ORG,
            title="Call notes",
            source_type="context",
            external_id="call-notes",
            source_text="Customer asked about pricing.",
        )
    )
    return store


def test_text_like_mime_detection() -> None:
    assert is_text_like_mime("text/plain")
    assert is_text_like_mime("application/json")
    assert is_text_like_mime("text/markdown; charset=utf-8")
    assert not is_text_like_mime("image/png")
    assert not is_text_like_mime(None)


def test_truncate_text() -> None:
    assert truncate_text("short", 10) == ("short", False)
    assert truncate_text("abcdefghij", 4) == ("abcd", True)


@pytest.mark.asyncio
async def test_load_reference_content_per_kind() -> None:
    store = _store()
    resolution = await ReferenceResolver(store).resolve(
        parse_references("Use @brief.md, @hero.png, @launch-post, @launch-post:pricing and @source:call-notes"),
        organization_id=ORG,
    )

    contents = await load_reference_content(
        resolution.resolved, store, organization_id=ORG, config=ReferenceConfig(max_text_chars=20)
    )

    by_raw = {item.token.raw: item for item in contents}
    assert by_raw["@brief.md"].text_content == "# Brief\n" + "x" * 12
    assert by_raw["@brief.md"].truncated
    assert by_raw["@hero.png"].text_content is None
    assert [s.id for s in by_raw["@launch-post"].sections_summary] == ["sec_0", "sec_1"]
    assert by_raw["@launch-post"].frontmatter_summary == {"seoTitle": "Launch"}
    assert by_raw["@launch-post:pricing"].type == "section"
    assert by_raw["@launch-post:pricing"].body == "It is cheap"
    assert by_raw["@source:call-notes"].text_content == "Customer asked about"


@pytest.mark.asyncio
async def test_context_block_lists_references_and_scope_contract() -> None:
    store = _store()
    resolution = await ReferenceResolver(store).resolve(
        parse_references("Put @hero.png into @launch-post:intro"), organization_id=ORG
    )
    contents = await load_reference_content(resolution.resolved, store, organization_id=ORG)

    block = build_context_block(contents, ambiguous=resolution.ambiguous, unresolved=resolution.unresolved)

    assert block is not None
    assert SCOPE_CONTRACT in block
    assert "### File: hero.png" in block
    assert 'insert_image with fileId "f2"' in block
    assert "### Section: launch-post#sec_0" in block
    assert "Hello world" in block


@pytest.mark.asyncio
async def test_context_block_reports_ambiguous_and_unresolved() -> None:
    store = InMemoryReferenceStore()
    store.add_file(FileRecord(id="f1", organization_id=ORG, file_name="report.pdf", original_name="report.pdf"))
    store.add_file(
        FileRecord(id="f2", organization_id=ORG, file_name="report-final.pdf", original_name="report-final.pdf")
    )
    resolution = await ReferenceResolver(store).resolve(
        parse_references("see @report and @ghost"), organization_id=ORG
    )

    block = build_context_block([], ambiguous=resolution.ambiguous, unresolved=resolution.unresolved)

    assert "### Ambiguous references" in block
    assert "report.pdf" in block and "report-final.pdf" in block
    assert "### Unresolved references" in block
    assert "@ghost: not_found" in block


def test_context_block_is_none_without_references() -> None:
    assert build_context_block([]) is None
