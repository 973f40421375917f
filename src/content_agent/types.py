"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ChatMode = Literal["chat", "agent"]
ReferenceType = Literal["file", "content", "section", "source"]
AnchorKind = Literal["hash", "colon"]
ResolutionReason = Literal["not_found", "section_not_found", "permission", "invalid"]


@dataclass(frozen=True, slots=True)
class ReferenceAnchor:
    """The `#section-id` or `:label` suffix of a mention."""

    kind: AnchorKind
    value: str


@dataclass(frozen=True, slots=True)
class ReferenceToken:
    """A parsed `@mention` span of a user message."""

    raw: str
    identifier: str
    start_index: int
    end_index: int
    anchor: ReferenceAnchor | None = None


@dataclass(slots=True)
class ReferenceCandidate:
    """One disambiguation option shown to the user."""

    type: ReferenceType
    id: str
    label: str
    reference: str
    subtitle: str | None = None


# Storage records returned by a ReferenceStore.


@dataclass(slots=True)
class FileRecord:
    id: str
    organization_id: str
    file_name: str
    original_name: str
    file_type: str = ""
    mime_type: str = ""
    size: int = 0
    url: str = ""
    is_active: bool = True


@dataclass(slots=True)
class SectionRecord:
    id: str
    title: str | None = None
    type: str | None = None
    index: int | None = None
    body: str = ""


@dataclass(slots=True)
class ContentRecord:
    id: str
    organization_id: str
    slug: str
    title: str = ""
    status: str = "draft"
    sections: list[SectionRecord] = field(default_factory=list)
    frontmatter: dict[str, Any] | None = None


@dataclass(slots=True)
class SourceRecord:
    id: str
    organization_id: str
    title: str | None = None
    source_type: str | None = None
    external_id: str | None = None
    source_text: str | None = None


# Resolved references (tagged by `type`).


@dataclass(slots=True)
class ContentMetadata:
    id: str
    slug: str
    title: str
    status: str


@dataclass(slots=True)
class SectionMetadata:
    section_id: str
    content_id: str
    content_slug: str
    content_title: str
    title: str | None = None
    type: str | None = None
    index: int | None = None


@dataclass(slots=True)
class SourceMetadata:
    id: str
    title: str | None = None
    source_type: str | None = None


@dataclass(slots=True)
class FileReference:
    id: str
    token: ReferenceToken
    metadata: FileRecord
    type: Literal["file"] = "file"


@dataclass(slots=True)
class ContentReference:
    id: str
    token: ReferenceToken
    metadata: ContentMetadata
    type: Literal["content"] = "content"


@dataclass(slots=True)
class SectionReference:
    id: str
    content_id: str
    token: ReferenceToken
    metadata: SectionMetadata
    type: Literal["section"] = "section"


@dataclass(slots=True)
class SourceReference:
    id: str
    token: ReferenceToken
    metadata: SourceMetadata
    type: Literal["source"] = "source"


ResolvedReference = FileReference | ContentReference | SectionReference | SourceReference


@dataclass(slots=True)
class AmbiguousReference:
    """A mention matching several entities equally well; never authorizes anything."""

    token: ReferenceToken
    candidates: list[ReferenceCandidate]


@dataclass(slots=True)
class UnresolvedReference:
    token: ReferenceToken
    reason: ResolutionReason
    suggestions: list[ReferenceCandidate] | None = None


@dataclass(slots=True)
class ReferenceResolutionResult:
    tokens: list[ReferenceToken]
    resolved: list[ResolvedReference] = field(default_factory=list)
    unresolved: list[UnresolvedReference] = field(default_factory=list)
    ambiguous: list[AmbiguousReference] = field(default_factory=list)


@dataclass(slots=True)
class ReferenceSelection:
    """An entity picked explicitly in the client instead of typed as a mention."""

    type: ReferenceType
    id: str
    label: str | None = None
    identifier: str | None = None
    content_id: str | None = None


@dataclass(slots=True)
class ReferenceScope:
    """Entity IDs a single chat turn may mutate.

    Built from the resolved mentions of the current message only. A scope is
    never cached or merged with the scope of an earlier turn.
    """

    allowed_content_ids: set[str] = field(default_factory=set)
    allowed_section_ids: set[str] = field(default_factory=set)
    allowed_file_ids: set[str] = field(default_factory=set)

    def issubset(self, other: "ReferenceScope") -> bool:
        return (
            self.allowed_content_ids <= other.allowed_content_ids
            and self.allowed_section_ids <= other.allowed_section_ids
            and self.allowed_file_ids <= other.allowed_file_ids
        )


@dataclass(slots=True)
class ToolExecutionResult:
    """Outcome returned by a tool executor.

    The loop only inspects `success`; `source_content_id` and `content_id`
    let the caller correlate session state with what the tool touched.
    """

    success: bool
    result: Any = None
    error: str | None = None
    source_content_id: str | None = None
    content_id: str | None = None


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    success: bool
    latency_ms: float
    error: str | None = None
    attempt: int = 1


@dataclass(slots=True)
class SectionSummary:
    id: str
    title: str | None = None
    type: str | None = None
    index: int | None = None


@dataclass(slots=True)
class ReferenceContent:
    """Loaded body of a resolved reference, ready to be shown to the model.

    Which optional fields are filled depends on `type`: files and sources carry
    `text_content`, content items carry frontmatter and section summaries, and
    sections carry `body`.
    """

    type: ReferenceType
    token: ReferenceToken
    metadata: FileRecord | ContentMetadata | SectionMetadata | SourceMetadata
    text_content: str | None = None
    truncated: bool = False
    frontmatter_summary: dict[str, Any] | None = None
    sections_summary: list[SectionSummary] = field(default_factory=list)
    body: str = ""
