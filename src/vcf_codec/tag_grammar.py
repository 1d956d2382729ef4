"""Parser and serializer for the ``<K=V,...>`` tag lists of structured header lines.

Values may contain ``,``, ``=`` and ``>`` inside double quotes, so the tag
list is read with a single left-to-right scan instead of naive splitting.
Inside quotes a backslash escapes the next character; outside quotes it is
an ordinary character. Values are returned unescaped.
"""

from collections.abc import Iterable

from .errors import GrammarError


def parse_tags(text: str) -> dict[str, str]:
    """Parse a tag list such as ``<ID=DP,Number=1,Description="Depth">``.

    Args:
        text: The tag list including the enclosing ``<`` and ``>``.

    Returns:
        Mapping of tag name to unescaped value, in declaration order.

    Raises:
        GrammarError: If the brackets are missing or a quote is unterminated.

    A token with no ``=`` continues the previous value, so an unquoted list
    such as ``Values=[WholeGenome, Exome]`` is kept whole. Tokens with an
    empty name are dropped.
    """
    if not text.startswith("<"):
        raise GrammarError(f"tag list does not start with '<': {text}")
    if not text.endswith(">") or len(text) < 2:
        raise GrammarError(f"tag list is missing closing '>': {text}")

    tags: dict[str, str] = {}
    key: str | None = None
    current: list[str] = []
    in_quote = False
    escape = False
    last = len(text) - 1

    for index, char in enumerate(text):
        if in_quote:
            if escape:
                current.append(char)
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_quote = False
            else:
                current.append(char)
            continue

        if char == '"':
            in_quote = True
        elif char == "<" and index == 0:
            continue
        elif char == ">" and index == last:
            _store(tags, key, "".join(current))
        elif char == "=" and key is None:
            key = "".join(current)
            current = []
        elif char == ",":
            _store(tags, key, "".join(current))
            key = None
            current = []
        else:
            current.append(char)

    if in_quote:
        raise GrammarError(f"unclosed quote in header line: {text}")
    return tags


def _store(tags: dict[str, str], key: str | None, value: str) -> None:
    if key is None:
        if value.strip() and tags:
            previous = next(reversed(tags))
            tags[previous] = f"{tags[previous]},{value}"
        return
    if key:
        tags[key] = value


def quote_value(value: str) -> str:
    """Return ``value`` in double quotes with ``\\`` and ``"`` escaped."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_tags(items: Iterable[tuple[str, str]], unquoted: Iterable[str] = ()) -> str:
    """Serialize ``(key, value)`` pairs as a ``<...>`` tag list.

    Tags named in ``unquoted`` are written bare, every other value is quoted.
    """
    bare = set(unquoted)
    pairs = []
    for key, value in items:
        if key in bare:
            pairs.append(f"{key}={value}")
        else:
            pairs.append(f"{key}={quote_value(value)}")
    return "<" + ",".join(pairs) + ">"
