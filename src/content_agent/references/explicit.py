"""Resolve entities the user picked explicitly (e.g. from a mention picker)."""

from __future__ import annotations

from collections.abc import Iterable

from content_agent.references.store import ReferenceStore
from content_agent.types import (
    ContentMetadata,
    ContentReference,
    FileReference,
    ReferenceSelection,
    ReferenceToken,
    ResolvedReference,
    SectionMetadata,
    SectionReference,
    SourceMetadata,
    SourceReference,
)


def build_selection_identifier_set(selections: Iterable[ReferenceSelection]) -> set[str]:
    identifiers: set[str] = set()
    for selection in selections:
        if selection.identifier:
            identifiers.add(_normalize(selection.identifier))
        if selection.label:
            identifiers.add(_normalize(selection.label))
        identifiers.add(_normalize(selection.id))
    return identifiers


async def resolve_explicit_selections(
    selections: Iterable[ReferenceSelection],
    store: ReferenceStore,
    *,
    organization_id: str,
) -> list[ResolvedReference]:
    """Look up each selection by ID; selections that no longer exist are dropped."""

    resolved: list[ResolvedReference] = []

    for selection in selections:
        token = _selection_token(selection)

        if selection.type == "file":
            file = await store.get_file(organization_id, selection.id)
            if file is not None:
                resolved.append(FileReference(id=file.id, token=token, metadata=file))

        elif selection.type == "content":
            content = await store.get_content(organization_id, selection.id)
            if content is not None:
                resolved.append(
                    ContentReference(
                        id=content.id,
                        token=token,
                        metadata=ContentMetadata(
                            id=content.id,
                            slug=content.slug,
                            title=content.title,
                            status=content.status,
                        ),
                    )
                )

        elif selection.type == "section":
            if not selection.content_id:
                continue
            content = await store.get_content(organization_id, selection.content_id)
            if content is None:
                continue
            section = next((s for s in content.sections if s.id == selection.id), None)
            if section is None:
                continue
            resolved.append(
                SectionReference(
                    id=section.id,
                    content_id=content.id,
                    token=token,
                    metadata=SectionMetadata(
                        section_id=section.id,
                        content_id=content.id,
                        content_slug=content.slug,
                        content_title=content.title,
                        title=section.title,
                        type=section.type,
                        index=section.index,
                    ),
                )
            )

        elif selection.type == "source":
            source = await store.get_source(organization_id, selection.id)
            if source is not None:
                resolved.append(
                    SourceReference(
                        id=source.id,
                        token=token,
                        metadata=SourceMetadata(
                            id=source.id,
                            title=source.title or "",
                            source_type=source.source_type or "",
                        ),
                    )
                )

    return resolved


def _selection_token(selection: ReferenceSelection) -> ReferenceToken:
    identifier = (selection.identifier or "").strip() or (selection.label or "").strip() or selection.id
    raw = f"@{identifier}"
    return ReferenceToken(raw=raw, identifier=identifier, start_index=0, end_index=len(raw))


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()
