"""Render loaded references into a markdown context block for the model."""

from __future__ import annotations

import json
from collections.abc import Sequence

from content_agent.types import AmbiguousReference, ReferenceContent, UnresolvedReference

SCOPE_CONTRACT = "Scope Contract: Edits are allowed ONLY on referenced entities. Everything else is read-only."


def build_context_block(
    reference_contents: Sequence[ReferenceContent],
    *,
    ambiguous: Sequence[AmbiguousReference] = (),
    unresolved: Sequence[UnresolvedReference] = (),
) -> str | None:
    if not reference_contents and not ambiguous and not unresolved:
        return None

    blocks = ["## Referenced Context (resolved from @ mentions)", SCOPE_CONTRACT]
    if ambiguous:
        blocks.append("Some references were ambiguous; ask the user to clarify.")

    for ref in reference_contents:
        header, details = _describe(ref)
        blocks.append(header)
        blocks.append("\n".join(details))

    if ambiguous:
        blocks.append("### Ambiguous references")
        lines = []
        for item in ambiguous:
            options = ", ".join(
                f"{c.label} ({c.subtitle})" if c.subtitle else c.label for c in item.candidates
            )
            lines.append(f"{item.token.raw}: {options}")
        blocks.append(_format_list(lines))

    if unresolved:
        blocks.append("### Unresolved references")
        lines = []
        for item in unresolved:
            hint = ""
            if item.suggestions:
                hint = " Suggestions: " + ", ".join(s.label for s in item.suggestions)
            lines.append(f"{item.token.raw}: {item.reason}{hint}")
        blocks.append(_format_list(lines))

    return "\n\n".join(blocks)


def _describe(ref: ReferenceContent) -> tuple[str, list[str]]:
    meta = ref.metadata
    truncated = " (truncated)" if ref.truncated else ""

    if ref.type == "file":
        details = [
            f"- ID: {meta.id}",
            f"- Type: {meta.file_type or 'unknown'} ({meta.mime_type or 'unknown'})",
            f"- Size: {meta.size} bytes",
            f"- URL: {meta.url}",
        ]
        if meta.file_type == "image" or (meta.mime_type or "").startswith("image/"):
            details.append(f'- Hint: Use insert_image with fileId "{meta.id}" to place this image in content.')
        if ref.text_content:
            details.append(f"- Text preview{truncated}:\n\n```\n{ref.text_content}\n```")
        return f"### File: {meta.file_name or meta.original_name}", details

    if ref.type == "content":
        details = [f"- ID: {meta.id}", f"- Title: {meta.title}", f"- Status: {meta.status}"]
        if ref.frontmatter_summary:
            details.append(f"- Frontmatter: {json.dumps(ref.frontmatter_summary)}")
        if ref.sections_summary:
            sections = [
                f"[{s.index if s.index is not None else ''}] {s.title or s.type or s.id} (id: {s.id})"
                for s in ref.sections_summary
            ]
            details.append(f"- Sections:\n{_format_list(sections)}")
        return f"### Content: {meta.slug}", details

    if ref.type == "section":
        details = [
            f"- Content ID: {meta.content_id}",
            f"- Content: {meta.content_title}",
            f"- Title: {meta.title or meta.type or 'Untitled section'}",
            f"- Index: {meta.index if meta.index is not None else 'n/a'}",
            f"- Body:\n\n```\n{ref.body}\n```",
        ]
        return f"### Section: {meta.content_slug}#{meta.section_id}", details

    details = [f"- ID: {meta.id}", f"- Type: {meta.source_type or 'unknown'}"]
    if ref.text_content:
        details.append(f"- Text excerpt{truncated}:\n\n```\n{ref.text_content}\n```")
    return f"### Source: {meta.title or 'Untitled source'}", details


def _format_list(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)
