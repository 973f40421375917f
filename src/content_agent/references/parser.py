"""Tokenizer for `@mention` references in chat messages."""

from __future__ import annotations

from content_agent.types import ReferenceAnchor, ReferenceToken

_BOUNDARY_CHARS = frozenset('.,!?;:()[]{}<>"\'')
_TRAILING_PUNCTUATION = frozenset('.,!?;:#)]}"\'')
_RESERVED_PREFIXES = ("source:", "source/")


def parse_references(message: str) -> list[ReferenceToken]:
    """Return every `@identifier` mention in `message`, in order of appearance.

    An `@` only opens a mention at a word boundary (start of text, whitespace
    or an opening/closing punctuation mark) and when followed by an ASCII
    letter or digit, so `name@example.com` is never a mention. The mention
    runs to the next whitespace, minus any trailing punctuation.
    """

    if not message:
        return []

    tokens: list[ReferenceToken] = []
    length = len(message)
    index = 0

    while index < length:
        if message[index] != "@" or not _is_boundary(message, index - 1):
            index += 1
            continue
        if index + 1 >= length or not _is_identifier_start(message[index + 1]):
            index += 1
            continue

        end = index + 1
        while end < length and not message[end].isspace():
            end += 1

        raw = message[index:end]
        while len(raw) > 2 and raw[-1] in _TRAILING_PUNCTUATION:
            raw = raw[:-1]

        identifier, anchor = _split_anchor(raw[1:])
        if identifier:
            tokens.append(
                ReferenceToken(
                    raw=raw,
                    identifier=identifier,
                    anchor=anchor,
                    start_index=index,
                    end_index=index + len(raw),
                )
            )
        index += len(raw)

    return tokens


def _is_boundary(message: str, position: int) -> bool:
    if position < 0:
        return True
    char = message[position]
    return char.isspace() or char in _BOUNDARY_CHARS


def _is_identifier_start(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _split_anchor(identifier: str) -> tuple[str, ReferenceAnchor | None]:
    normalized = identifier.strip()
    if not normalized or normalized.lower().startswith(_RESERVED_PREFIXES):
        return normalized, None

    positions = [pos for pos in (normalized.find("#"), normalized.find(":")) if pos > 0]
    if not positions:
        return normalized, None

    anchor_index = min(positions)
    value = normalized[anchor_index + 1 :]
    if not value:
        return normalized, None

    kind = "hash" if normalized[anchor_index] == "#" else "colon"
    return normalized[:anchor_index], ReferenceAnchor(kind=kind, value=value)
