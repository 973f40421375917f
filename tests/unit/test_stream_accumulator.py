from content_agent.llm.stream import (
    ChoiceDelta,
    FunctionDelta,
    StreamAccumulator,
    StreamChoice,
    StreamChunk,
    ToolCallDelta,
)


def test_accumulator_merges_argument_fragments_by_index() -> None:
    accumulator = StreamAccumulator()

    opened = accumulator.add_tool_call_delta(
        ToolCallDelta(index=1, id="call_b", function=FunctionDelta(name="read_content", arguments='{"con'))
    )
    accumulator.add_tool_call_delta(
        ToolCallDelta(index=0, id="call_a", function=FunctionDelta(name="edit_metadata", arguments="{}"))
    )
    again = accumulator.add_tool_call_delta(
        ToolCallDelta(index=1, function=FunctionDelta(arguments='tentId": "c1"}'))
    )

    assert opened is not None and opened.id == "call_b"
    assert again is None
    assert [call.id for call in accumulator.tool_calls] == ["call_a", "call_b"]
    assert accumulator.tool_calls[1].arguments == '{"contentId": "c1"}'
    assert accumulator.tool_calls[1].name == "read_content"


def test_later_deltas_do_not_rename_the_call() -> None:
    accumulator = StreamAccumulator()
    accumulator.add_tool_call_delta(ToolCallDelta(index=0, id="call_a", function=FunctionDelta(name="first")))
    accumulator.add_tool_call_delta(ToolCallDelta(index=0, id="other", function=FunctionDelta(name="second")))

    call = accumulator.tool_calls[0]
    assert (call.id, call.name) == ("call_a", "first")


def test_assistant_message_shape() -> None:
    accumulator = StreamAccumulator()
    assert accumulator.is_empty()
    assert accumulator.assistant_message() == {"role": "assistant", "content": ""}

    accumulator.observe(StreamChunk(id="resp-1", model="gpt", choices=[StreamChoice(delta=ChoiceDelta())]))
    accumulator.add_content("Working on it")
    accumulator.add_tool_call_delta(
        ToolCallDelta(index=0, id="call_a", function=FunctionDelta(name="read_content", arguments="{}"))
    )

    assert accumulator.response_id == "resp-1"
    assert accumulator.model == "gpt"
    assert not accumulator.is_empty()
    assert accumulator.assistant_message() == {
        "role": "assistant",
        "content": "Working on it",
        "tool_calls": [
            {"id": "call_a", "type": "function", "function": {"name": "read_content", "arguments": "{}"}}
        ],
    }
