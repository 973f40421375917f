"""Chat tool catalogue: argument models and registration.

The orchestration loop never runs these tools itself. It validates the
model's arguments against the schemas below, checks mode and reference
scope, and hands the resulting invocation to an injected executor.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from content_agent.agent.registry import ToolRegistry, ToolSpec

OrderBy = Literal["updatedAt", "createdAt", "title"]
OrderDirection = Literal["asc", "desc"]


class ToolArguments(BaseModel):
    """Base for tool arguments; wire names are camelCase as emitted by the model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ContentWriteInput(ToolArguments):
    action: Literal["create", "enrich"] = Field(
        description='"create" to create new content from source, or "enrich" to refresh an '
        "existing item's frontmatter and JSON-LD."
    )
    source_content_id: str | None = Field(default=None, description="Source content ID to generate from.")
    source_text: str | None = Field(default=None, description="Inline source text to generate from.")
    context: str | None = Field(default=None, description="Alias for sourceText; sourceText wins if both are set.")
    title: str | None = Field(default=None, description="Optional working title.")
    slug: str | None = Field(default=None, description="Optional slug.")
    status: str | None = Field(default=None, description="Desired content status (draft, review, published, ...).")
    primary_keyword: str | None = Field(default=None, description="Primary SEO keyword.")
    target_locale: str | None = Field(default=None, description="Target locale, e.g. en-US.")
    content_type: str | None = Field(default=None, description="Content type (blog_post, newsletter, ...).")
    system_prompt: str | None = Field(default=None, description="Style guidance overriding the default prompt.")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    content_id: str | None = Field(default=None, description='Content to re-enrich (required for action="enrich").')
    base_url: str | None = Field(default=None, description="Base URL for absolute URLs in JSON-LD.")

    @model_validator(mode="after")
    def _check_action(self) -> "ContentWriteInput":
        if self.action == "create" and not (self.source_content_id or self.source_text or self.context):
            raise ValueError('action="create" requires sourceContentId, sourceText, or context')
        if self.action == "enrich" and not self.content_id:
            raise ValueError('action="enrich" requires contentId')
        return self


class EditSectionInput(ToolArguments):
    content_id: str = Field(description="Content ID containing the section to patch.")
    section_id: str | None = Field(default=None, description="Identifier of the section to patch.")
    section_title: str | None = Field(default=None, description="Section title when no sectionId is known.")
    instructions: str | None = Field(default=None, description="The user's requested edits.")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)


class EditMetadataInput(ToolArguments):
    content_id: str = Field(description="Content ID of the item to update.")
    title: str | None = None
    slug: str | None = Field(default=None, description="New slug (will be slugified).")
    status: str | None = Field(
        default=None, description="New status (draft, in_review, ready_for_publish, published, archived)."
    )
    primary_keyword: str | None = None
    target_locale: str | None = None
    content_type: str | None = None


class InsertImageInput(ToolArguments):
    content_id: str = Field(description="Content ID to place the image in.")
    file_id: str = Field(description="ID of the referenced image file.")
    section_id: str | None = Field(default=None, description="Section to insert into; defaults to the best fit.")
    alt_text: str | None = None
    position: Literal["before", "after", "replace"] | None = None


class SourceIngestInput(ToolArguments):
    source_type: Literal["youtube", "context"] = Field(
        description='"youtube" to fetch captions from a video, "context" to save pasted text.'
    )
    youtube_url: str | None = Field(default=None, description='Video URL (required for sourceType="youtube").')
    title_hint: str | None = None
    context: str | None = Field(default=None, description='Text to save (required for sourceType="context").')
    title: str | None = None

    @model_validator(mode="after")
    def _check_source(self) -> "SourceIngestInput":
        if self.source_type == "youtube" and not self.youtube_url:
            raise ValueError('sourceType="youtube" requires youtubeUrl')
        if self.source_type == "context" and not self.context:
            raise ValueError('sourceType="context" requires context')
        return self


class ReadContentInput(ToolArguments):
    content_id: str = Field(description="ID of the content to read.")


class ReadSectionInput(ToolArguments):
    content_id: str = Field(description="ID of the content containing the section.")
    section_id: str = Field(description="ID of the section to read.")


class ReadSourceInput(ToolArguments):
    source_content_id: str = Field(description="ID of the source content to read.")


class ReadContentListInput(ToolArguments):
    status: str | None = None
    content_type: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    offset: int | None = Field(default=None, ge=0)
    order_by: OrderBy | None = None
    order_direction: OrderDirection | None = None


class ReadSourceListInput(ToolArguments):
    source_type: str | None = None
    ingest_status: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    offset: int | None = Field(default=None, ge=0)
    order_by: OrderBy | None = None
    order_direction: OrderDirection | None = None


class ReadWorkspaceSummaryInput(ToolArguments):
    content_id: str = Field(description="ID of the content workspace to summarize.")


CHAT_TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="content_write",
        kind="write",
        description=(
            'Write or enrich content. Use action="create" to create new content from source '
            '(saved source content, inline text, or conversation history). Use action="enrich" to '
            "refresh an existing content item's frontmatter and JSON-LD structured data. For editing "
            "sections use edit_section; for metadata fields use edit_metadata."
        ),
        args_schema=ContentWriteInput,
        tags=["generation"],
    ),
    ToolSpec(
        name="edit_section",
        kind="write",
        description="Edit a specific section of an existing content item using the user's instructions.",
        args_schema=EditSectionInput,
        tags=["generation"],
    ),
    ToolSpec(
        name="edit_metadata",
        kind="write",
        description=(
            "Update metadata fields (title, slug, status, primaryKeyword, targetLocale, contentType) "
            "of an existing content item without creating a new version."
        ),
        args_schema=EditMetadataInput,
    ),
    ToolSpec(
        name="insert_image",
        kind="write",
        description="Insert a referenced image file into a content item, optionally at a given section.",
        args_schema=InsertImageInput,
    ),
    ToolSpec(
        name="source_ingest",
        kind="ingest",
        description=(
            'Ingest source content. Use sourceType="youtube" to fetch captions from a YouTube video, '
            'or sourceType="context" to save pasted text as source content.'
        ),
        args_schema=SourceIngestInput,
        tags=["ingest"],
    ),
    ToolSpec(
        name="read_content",
        kind="read",
        description="Fetch a content item and its current version (metadata and sections). Read-only.",
        args_schema=ReadContentInput,
    ),
    ToolSpec(
        name="read_section",
        kind="read",
        description="Fetch a specific section of a content item. Read-only.",
        args_schema=ReadSectionInput,
    ),
    ToolSpec(
        name="read_source",
        kind="read",
        description="Fetch a source content item with its text and chunk metadata. Read-only.",
        args_schema=ReadSourceInput,
    ),
    ToolSpec(
        name="read_content_list",
        kind="read",
        description="List content items with optional filtering and pagination. Read-only.",
        args_schema=ReadContentListInput,
    ),
    ToolSpec(
        name="read_source_list",
        kind="read",
        description="List source content items (YouTube videos, pasted context, ...) with optional filtering. Read-only.",
        args_schema=ReadSourceListInput,
    ),
    ToolSpec(
        name="read_workspace_summary",
        kind="read",
        description="Get a human-readable summary of a content workspace: version, sections and source. Read-only.",
        args_schema=ReadWorkspaceSummaryInput,
    ),
)


def register_chat_tools(registry: ToolRegistry) -> None:
    """Register the built-in chat tool catalogue."""
    for spec in CHAT_TOOL_SPECS:
        registry.register(spec)


@lru_cache(maxsize=1)
def default_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_chat_tools(registry)
    return registry
