import pytest

from content_agent.obs.tracing import Timer, TraceStore, estimate_token_count
from content_agent.types import ToolTrace


def test_trace_store_records_tool_attempts_and_outcome() -> None:
    store = TraceStore()

    with Timer() as timer:
        pass

    record = store.create_record(
        mode="agent",
        user_message="Update @launch-post",
        final_message="I tried running edit_metadata multiple times but it kept failing.",
        rounds=3,
        tool_traces=[
            ToolTrace(name="edit_metadata", input_payload={"contentId": "c1"}, success=False, latency_ms=timer.elapsed_ms),
            ToolTrace(name="edit_metadata", input_payload={"contentId": "c1"}, success=False, latency_ms=1.0, attempt=2),
            ToolTrace(name="read_content", input_payload={"contentId": "c1"}, success=True, latency_ms=1.0),
        ],
        exhausted_tools=["edit_metadata"],
        input_tokens=4,
        output_tokens=12,
        latency_ms=12.5,
    )

    assert timer.elapsed_ms >= 0.0
    assert store.get(record.trace_id) is record
    assert record.failed_tool_calls == 2
    assert record.retried_tool_calls == 1
    assert record.exhausted_tools == ["edit_metadata"]
    assert record.tool_traces[0].input_payload == {"contentId": "c1"}


def test_trace_store_missing_trace() -> None:
    with pytest.raises(KeyError):
        TraceStore().get("missing")


def test_estimate_token_count_counts_words_and_punctuation() -> None:
    assert estimate_token_count("Hello, world!") == 4
    assert estimate_token_count("") == 0
