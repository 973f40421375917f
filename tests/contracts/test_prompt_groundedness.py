from content_agent.agent.prompts import CONTINUE_PROMPT, build_system_prompt
from content_agent.agent.tools import default_registry
from content_agent.references.context import SCOPE_CONTRACT


def test_chat_prompt_is_read_only_and_lists_only_read_tools() -> None:
    prompt = build_system_prompt("chat")

    assert "read-only mode" in prompt
    assert "MUST NOT" in prompt
    for tool in default_registry().tools_for_mode("chat"):
        assert tool["function"]["name"] in prompt


def test_agent_prompt_requires_mentions_for_edits() -> None:
    prompt = build_system_prompt("agent")

    assert "@mentions" in prompt
    assert "read-only mode" not in prompt
    for name in ("edit_metadata", "edit_section", "insert_image", "content_write", "source_ingest"):
        assert name in prompt


def test_context_blocks_are_appended_after_instructions() -> None:
    block = f"## Referenced Context\n\n{SCOPE_CONTRACT}"
    prompt = build_system_prompt("agent", [block, "extra"])

    assert prompt.endswith(f"Context:\n{block}\n\nextra")
    assert build_system_prompt("agent", []) == build_system_prompt("agent")


def test_continue_prompt_is_stable() -> None:
    assert CONTINUE_PROMPT == "Continue with the next step."
