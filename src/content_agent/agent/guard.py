"""Mode and reference-scope checks applied before a tool is dispatched."""

from __future__ import annotations

from content_agent.agent.registry import ChatToolInvocation, ToolRegistry, get_mode_enforcement_error
from content_agent.agent.tools import default_registry
from content_agent.types import ChatMode, ReferenceScope

NO_REFERENCE_ERROR = "I can't edit that because it wasn't referenced. Add @<thing> to scope this edit."


def get_reference_scope_error(
    invocation: ChatToolInvocation,
    *,
    mode: ChatMode,
    scope: ReferenceScope | None = None,
    registry: ToolRegistry | None = None,
) -> str | None:
    """Return a user-facing rejection for `invocation`, or None when it may run.

    Chat mode rejects every mutating tool. In agent mode a mutating tool must
    target entities mentioned in the current message: the scope of a missing
    message is empty, so nothing is editable without a mention.
    """

    registry = registry or default_registry()
    if not registry.is_tool_allowed_in_mode(invocation.name, mode):
        return get_mode_enforcement_error(invocation.name)
    if mode == "chat":
        return None

    scope = scope or ReferenceScope()
    args = invocation.arguments

    if invocation.name == "edit_section":
        if not args.section_id or args.section_id not in scope.allowed_section_ids:
            return NO_REFERENCE_ERROR
    elif invocation.name in ("edit_metadata", "content_write"):
        if not args.content_id or args.content_id not in scope.allowed_content_ids:
            return NO_REFERENCE_ERROR
    elif invocation.name == "insert_image":
        if args.content_id not in scope.allowed_content_ids or args.file_id not in scope.allowed_file_ids:
            return NO_REFERENCE_ERROR

    return None
