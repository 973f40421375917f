"""Reduce resolved mentions to the entity IDs a turn may mutate."""

from __future__ import annotations

from collections.abc import Iterable

from content_agent.types import ReferenceScope, ResolvedReference


def build_reference_scope(resolved: Iterable[ResolvedReference]) -> ReferenceScope:
    """Aggregate resolved references into a fresh per-turn scope.

    Sources are read-only inputs and never widen the scope.
    """

    scope = ReferenceScope()
    for reference in resolved:
        if reference.type == "content":
            scope.allowed_content_ids.add(reference.id)
        elif reference.type == "section":
            scope.allowed_section_ids.add(reference.id)
        elif reference.type == "file":
            scope.allowed_file_ids.add(reference.id)
    return scope
