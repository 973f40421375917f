"""Load the bodies of resolved references for the model's context."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from content_agent.config import ReferenceConfig
from content_agent.references.store import ReferenceStore
from content_agent.types import ReferenceContent, ResolvedReference, SectionSummary

LOGGER = logging.getLogger(__name__)

_TEXT_MIME_MARKERS = ("json", "markdown", "xml", "csv")


def is_text_like_mime(mime_type: str | None) -> bool:
    if not mime_type:
        return False
    lower = mime_type.lower()
    return lower.startswith("text/") or any(marker in lower for marker in _TEXT_MIME_MARKERS)


def truncate_text(value: str, max_chars: int) -> tuple[str, bool]:
    if len(value) <= max_chars:
        return value, False
    return value[:max_chars], True


async def load_reference_content(
    resolved: Iterable[ResolvedReference],
    store: ReferenceStore,
    *,
    organization_id: str,
    config: ReferenceConfig | None = None,
) -> list[ReferenceContent]:
    config = config or ReferenceConfig()
    contents: list[ReferenceContent] = []

    for reference in resolved:
        if reference.type == "file":
            text: str | None = None
            truncated = False
            if is_text_like_mime(reference.metadata.mime_type):
                body = await store.read_file_text(reference.metadata)
                if body:
                    text, truncated = truncate_text(body, config.max_text_chars)
            contents.append(
                ReferenceContent(
                    type="file",
                    token=reference.token,
                    metadata=reference.metadata,
                    text_content=text,
                    truncated=truncated,
                )
            )

        elif reference.type == "content":
            content = await store.get_content(organization_id, reference.id)
            if content is None:
                LOGGER.warning("Referenced content %s disappeared before loading", reference.id)
            contents.append(
                ReferenceContent(
                    type="content",
                    token=reference.token,
                    metadata=reference.metadata,
                    frontmatter_summary=content.frontmatter if content else None,
                    sections_summary=[
                        SectionSummary(id=s.id, title=s.title, type=s.type, index=s.index)
                        for s in (content.sections if content else [])
                    ],
                )
            )

        elif reference.type == "section":
            content = await store.get_content(organization_id, reference.content_id)
            sections = content.sections if content else []
            section = next((s for s in sections if s.id == reference.id), None)
            contents.append(
                ReferenceContent(
                    type="section",
                    token=reference.token,
                    metadata=reference.metadata,
                    body=section.body if section else "",
                )
            )

        elif reference.type == "source":
            source = await store.get_source(organization_id, reference.id)
            text, truncated = truncate_text(
                (source.source_text if source else None) or "", config.max_text_chars
            )
            contents.append(
                ReferenceContent(
                    type="source",
                    token=reference.token,
                    metadata=reference.metadata,
                    text_content=text or None,
                    truncated=truncated,
                )
            )

    return contents
