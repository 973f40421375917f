from content_agent.references.parser import parse_references
from content_agent.types import ReferenceAnchor


def test_parses_references_with_punctuation_and_anchors() -> None:
    message = "Add @image.jpg, then update @classic-gingerbread-cookies:conclusion."
    tokens = parse_references(message)

    assert len(tokens) == 2
    assert tokens[0].raw == "@image.jpg"
    assert tokens[0].identifier == "image.jpg"
    assert tokens[0].anchor is None
    assert tokens[1].raw == "@classic-gingerbread-cookies:conclusion"
    assert tokens[1].identifier == "classic-gingerbread-cookies"
    assert tokens[1].anchor == ReferenceAnchor(kind="colon", value="conclusion")

    first_index = message.index("@image.jpg")
    assert tokens[0].start_index == first_index
    assert tokens[0].end_index == first_index + len("@image.jpg")


def test_ignores_email_addresses() -> None:
    assert parse_references("Contact me at name@example.com for details.") == []


def test_parses_hash_anchor_and_reserved_source_prefix() -> None:
    tokens = parse_references("Rewrite @post-slug#section-123 and @source:manual-transcript.")

    assert [token.raw for token in tokens] == ["@post-slug#section-123", "@source:manual-transcript"]
    assert tokens[0].identifier == "post-slug"
    assert tokens[0].anchor == ReferenceAnchor(kind="hash", value="section-123")
    assert tokens[1].identifier == "source:manual-transcript"
    assert tokens[1].anchor is None


def test_mention_after_opening_punctuation_and_at_start() -> None:
    tokens = parse_references("@draft (see @notes.md)")

    assert [token.identifier for token in tokens] == ["draft", "notes.md"]
    assert tokens[0].start_index == 0


def test_at_sign_requires_alphanumeric_follower() -> None:
    assert parse_references("ping @ everyone or @-dash or @") == []


def test_non_boundary_prefix_yields_no_token() -> None:
    assert parse_references("foo@bar") == []
    assert parse_references("") == []


def test_empty_anchor_value_is_not_split() -> None:
    tokens = parse_references("open @slug#")

    assert len(tokens) == 1
    # The trailing '#' is stripped as punctuation.
    assert tokens[0].raw == "@slug"
    assert tokens[0].anchor is None


def test_raw_spans_match_message_slices() -> None:
    message = "Compare @alpha, @beta-2! and @gamma:intro?"
    tokens = parse_references(message)

    assert [token.identifier for token in tokens] == ["alpha", "beta-2", "gamma"]
    for token in tokens:
        assert message[token.start_index : token.end_index] == token.raw

    rebuilt = " ".join(token.raw for token in tokens)
    assert [token.raw for token in parse_references(rebuilt)] == [token.raw for token in tokens]
