"""Resolve parsed mentions to files, content items, sections, and sources."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

from content_agent.config import ReferenceConfig
from content_agent.references.store import ReferenceStore
from content_agent.types import (
    AmbiguousReference,
    ContentMetadata,
    ContentRecord,
    ContentReference,
    FileRecord,
    FileReference,
    ReferenceAnchor,
    ReferenceCandidate,
    ReferenceResolutionResult,
    ReferenceToken,
    ResolvedReference,
    SectionMetadata,
    SectionReference,
    SourceMetadata,
    SourceRecord,
    SourceReference,
    UnresolvedReference,
)

LOGGER = logging.getLogger(__name__)

MatchTier = Literal["exact", "prefix", "substring"]
_TIER_ORDER: tuple[MatchTier, ...] = ("exact", "prefix", "substring")
_SOURCE_PREFIXES = ("source:", "source/")

T = TypeVar("T")


@dataclass
class MatchResult(Generic[T]):
    """Best-tier match: a single winner, or every candidate tied in that tier."""

    match: T | None = None
    ambiguous: list[T] = field(default_factory=list)
    tier: MatchTier | None = None


@dataclass(slots=True)
class _KindOutcome:
    resolved: ResolvedReference | None = None
    unresolved: UnresolvedReference | None = None
    ambiguous: AmbiguousReference | None = None


def normalize_value(value: str | None) -> str:
    return (value or "").strip().lower()


def select_best_match(
    identifier: str,
    candidates: Iterable[T],
    get_keys: Callable[[T], Sequence[str | None]],
) -> MatchResult[T]:
    """Pick the candidate whose keys best match `identifier`.

    Tiers rank exact > prefix > substring on normalized keys. A candidate is
    classified by its best key. When several candidates share the winning
    tier, all of them are returned as ambiguous (in input order) instead of
    picking one.
    """

    normalized = normalize_value(identifier)
    tiered: list[tuple[T, MatchTier]] = []

    for candidate in candidates:
        tier = _classify(normalized, get_keys(candidate))
        if tier is not None:
            tiered.append((candidate, tier))

    for tier in _TIER_ORDER:
        best = [candidate for candidate, candidate_tier in tiered if candidate_tier == tier]
        if len(best) == 1:
            return MatchResult(match=best[0], tier=tier)
        if best:
            return MatchResult(ambiguous=best, tier=tier)
    return MatchResult()


def _classify(normalized: str, keys: Sequence[str | None]) -> MatchTier | None:
    tier: MatchTier | None = None
    for key in (normalize_value(k) for k in keys):
        if not key:
            continue
        if key == normalized:
            return "exact"
        if key.startswith(normalized):
            tier = "prefix"
        elif normalized in key and tier is None:
            tier = "substring"
    return tier


class ReferenceResolver:
    """Resolves mention tokens against an organization's workspace.

    Identifiers prefixed with `source:`/`source/` are looked up as sources.
    Identifiers containing a dot prefer files and fall back to content; all
    others prefer content and fall back to files. A content match with an
    anchor is narrowed to one of its sections when the anchor matches.
    """

    def __init__(self, store: ReferenceStore, config: ReferenceConfig | None = None) -> None:
        self.store = store
        self.config = config or ReferenceConfig()

    async def resolve(
        self,
        tokens: Sequence[ReferenceToken],
        *,
        organization_id: str,
    ) -> ReferenceResolutionResult:
        result = ReferenceResolutionResult(tokens=list(tokens))

        for token in tokens:
            identifier = token.identifier.strip()
            if not identifier:
                result.unresolved.append(UnresolvedReference(token=token, reason="invalid"))
                continue

            if identifier.lower().startswith(_SOURCE_PREFIXES):
                outcome = await self._resolve_source(token, organization_id, identifier[len("source:") :])
                _collect(result, outcome)
                continue

            if "." in identifier:
                file_outcome = await self._resolve_file(token, organization_id, identifier)
                if file_outcome.resolved or file_outcome.ambiguous:
                    _collect(result, file_outcome)
                    continue
                _collect(result, await self._resolve_content(token, organization_id, identifier))
                continue

            content_outcome = await self._resolve_content(token, organization_id, identifier)
            if content_outcome.resolved or content_outcome.ambiguous:
                _collect(result, content_outcome)
                continue

            file_outcome = await self._resolve_file(token, organization_id, identifier)
            if file_outcome.resolved or file_outcome.ambiguous:
                _collect(result, file_outcome)
            else:
                # Both missed: report the miss of the preferred kind.
                _collect(result, content_outcome)

        LOGGER.debug(
            "Resolved %d reference tokens: %d resolved, %d ambiguous, %d unresolved",
            len(result.tokens),
            len(result.resolved),
            len(result.ambiguous),
            len(result.unresolved),
        )
        return result

    async def _resolve_file(self, token: ReferenceToken, organization_id: str, identifier: str) -> _KindOutcome:
        candidates = await self.store.search_files(
            organization_id, normalize_value(identifier), self.config.candidate_limit
        )
        match = select_best_match(identifier, candidates, lambda f: [f.file_name, f.original_name])

        if match.match is not None:
            file = match.match
            return _KindOutcome(resolved=FileReference(id=file.id, token=token, metadata=file))

        if len(match.ambiguous) > 1:
            return _KindOutcome(
                ambiguous=AmbiguousReference(
                    token=token,
                    candidates=self._candidates(_file_candidate(f) for f in match.ambiguous),
                )
            )
        return _KindOutcome(unresolved=UnresolvedReference(token=token, reason="not_found"))

    async def _resolve_content(self, token: ReferenceToken, organization_id: str, identifier: str) -> _KindOutcome:
        candidates = await self.store.search_contents(
            organization_id, normalize_value(identifier), self.config.candidate_limit
        )
        match = select_best_match(identifier, candidates, lambda c: [c.slug])

        if match.match is None:
            if len(match.ambiguous) > 1:
                return _KindOutcome(
                    ambiguous=AmbiguousReference(
                        token=token,
                        candidates=self._candidates(_content_candidate(c) for c in match.ambiguous),
                    )
                )
            return _KindOutcome(unresolved=UnresolvedReference(token=token, reason="not_found"))

        content = match.match
        base = ContentReference(
            id=content.id,
            token=token,
            metadata=ContentMetadata(
                id=content.id,
                slug=content.slug,
                title=content.title,
                status=content.status,
            ),
        )
        if token.anchor is None:
            return _KindOutcome(resolved=base)

        section_ref = _match_section(token.anchor, token, content)
        if section_ref is not None:
            return _KindOutcome(resolved=section_ref)

        suggestions = self._candidates(
            ReferenceCandidate(
                type="section",
                id=section.id,
                label=section.title or section.type or section.id,
                subtitle=content.title,
                reference=f"{content.slug}#{section.id}",
            )
            for section in content.sections
            if section.id
        )
        return _KindOutcome(
            resolved=base,
            unresolved=UnresolvedReference(
                token=token,
                reason="section_not_found",
                suggestions=suggestions or None,
            ),
        )

    async def _resolve_source(self, token: ReferenceToken, organization_id: str, identifier: str) -> _KindOutcome:
        candidates = await self.store.search_sources(
            organization_id, normalize_value(identifier), self.config.candidate_limit
        )
        match = select_best_match(identifier, candidates, lambda s: [s.external_id, s.title])

        if match.match is not None:
            source = match.match
            return _KindOutcome(
                resolved=SourceReference(
                    id=source.id,
                    token=token,
                    metadata=SourceMetadata(id=source.id, title=source.title, source_type=source.source_type),
                )
            )

        if len(match.ambiguous) > 1:
            return _KindOutcome(
                ambiguous=AmbiguousReference(
                    token=token,
                    candidates=self._candidates(_source_candidate(s) for s in match.ambiguous),
                )
            )
        return _KindOutcome(unresolved=UnresolvedReference(token=token, reason="not_found"))

    def _candidates(self, candidates: Iterable[ReferenceCandidate]) -> list[ReferenceCandidate]:
        return list(candidates)[: self.config.max_candidates]


def _match_section(
    anchor: ReferenceAnchor, token: ReferenceToken, content: ContentRecord
) -> SectionReference | None:
    wanted = normalize_value(anchor.value)

    section = None
    if anchor.kind == "hash":
        section = next((s for s in content.sections if normalize_value(s.id) == wanted), None)
    if section is None:
        # `#intro` also reaches a section titled "Intro" when no ID matches.
        section = next(
            (s for s in content.sections if wanted in (normalize_value(s.title), normalize_value(s.type))),
            None,
        )
    if section is None:
        return None

    return SectionReference(
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


def _file_candidate(file: FileRecord) -> ReferenceCandidate:
    label = file.file_name or file.original_name
    return ReferenceCandidate(
        type="file",
        id=file.id,
        label=label,
        subtitle=file.original_name if file.original_name != file.file_name else None,
        reference=label,
    )


def _content_candidate(content: ContentRecord) -> ReferenceCandidate:
    return ReferenceCandidate(
        type="content",
        id=content.id,
        label=content.slug,
        subtitle=content.title,
        reference=content.slug,
    )


def _source_candidate(source: SourceRecord) -> ReferenceCandidate:
    return ReferenceCandidate(
        type="source",
        id=source.id,
        label=source.title or source.external_id or "Untitled source",
        subtitle=source.source_type,
        reference=f"source:{source.external_id or source.title or source.id}",
    )


def _collect(result: ReferenceResolutionResult, outcome: _KindOutcome) -> None:
    if outcome.resolved is not None:
        result.resolved.append(outcome.resolved)
    if outcome.unresolved is not None:
        result.unresolved.append(outcome.unresolved)
    if outcome.ambiguous is not None:
        result.ambiguous.append(outcome.ambiguous)
