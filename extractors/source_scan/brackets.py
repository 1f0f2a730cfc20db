"""
String-aware bracket matching shared by every language scanner.

The walkers skip over string literals and comments so that delimiters
inside them never affect nesting depth. Per-language quoting rules
are expressed as QuoteRules values.
"""

from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class QuoteRules:
    """
    Lexical rules for one language.

    quotes: characters opening an escaped string
    raw_quotes: characters opening a string without backslash escapes
    triple_quotes: honour Python-style triple-quoted strings
    line_comment: line comment introducer, empty when unsupported
    block_comment: (open, close) pair, None when unsupported
    """
    quotes: str = '"'
    raw_quotes: str = ""
    triple_quotes: bool = False
    line_comment: str = ""
    block_comment: Optional[tuple[str, str]] = None


GO_RULES = QuoteRules(quotes='"\'', raw_quotes="`", line_comment="//", block_comment=("/*", "*/"))
CSHARP_RULES = QuoteRules(quotes='"\'', line_comment="//", block_comment=("/*", "*/"))
PYTHON_RULES = QuoteRules(quotes='"\'', triple_quotes=True, line_comment="#")
JS_RULES = QuoteRules(quotes='"\'`', line_comment="//", block_comment=("/*", "*/"))
# Single quotes are lifetimes in Rust, not strings.
RUST_RULES = QuoteRules(quotes='"', line_comment="//", block_comment=("/*", "*/"))
JAVA_RULES = QuoteRules(quotes='"\'', line_comment="//", block_comment=("/*", "*/"))
CPP_RULES = QuoteRules(quotes='"\'', line_comment="//", block_comment=("/*", "*/"))

_OPENERS = "([{"
_CLOSERS = ")]}"


def skip_string(content: str, start: int, rules: QuoteRules) -> Optional[int]:
    """Return the index just past the string literal starting at start, None if unterminated."""
    quote = content[start]
    delimiter = quote
    if rules.triple_quotes and content.startswith(quote * 3, start):
        delimiter = quote * 3
    escapes = quote not in rules.raw_quotes

    i = start + len(delimiter)
    n = len(content)
    while i < n:
        if escapes and content[i] == "\\":
            i += 2
            continue
        if content.startswith(delimiter, i):
            return i + len(delimiter)
        i += 1
    return None


def iter_code(content: str, start: int, rules: QuoteRules) -> Iterator[tuple[int, str]]:
    """
    Yield (index, char) for every character outside strings and comments.

    Iteration stops at end of input or at an unterminated string/comment.
    """
    i = start
    n = len(content)
    while i < n:
        if rules.line_comment and content.startswith(rules.line_comment, i):
            newline = content.find("\n", i)
            if newline == -1:
                return
            i = newline + 1
            continue
        if rules.block_comment and content.startswith(rules.block_comment[0], i):
            end = content.find(rules.block_comment[1], i + len(rules.block_comment[0]))
            if end == -1:
                return
            i = end + len(rules.block_comment[1])
            continue
        c = content[i]
        if c in rules.quotes or c in rules.raw_quotes:
            after = skip_string(content, i, rules)
            if after is None:
                return
            i = after
            continue
        yield i, c
        i += 1


def find_closing(
    content: str,
    open_index: int,
    rules: QuoteRules,
    open_char: str = "(",
    close_char: str = ")",
) -> Optional[int]:
    """
    Find the delimiter matching content[open_index].

    Depth starts at 1 just after the opening delimiter.

    Returns:
        Index just past the matching close, or None at end of input
    """
    depth = 1
    for i, c in iter_code(content, open_index + 1, rules):
        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def call_arguments(content: str, open_index: int, rules: QuoteRules) -> Optional[str]:
    """Return the text between content[open_index] == '(' and its matching ')'."""
    end = find_closing(content, open_index, rules)
    if end is None:
        return None
    return content[open_index + 1:end - 1]


def split_arguments(args: str, rules: QuoteRules) -> list[str]:
    """Split an argument list on top-level commas; empty trailing arguments are dropped."""
    parts = []
    depth = 0
    last = 0
    for i, c in iter_code(args, 0, rules):
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
        elif c == "," and depth == 0:
            parts.append(args[last:i].strip())
            last = i + 1
    tail = args[last:].strip()
    if tail:
        parts.append(tail)
    return parts
