"""Strict raw XML tokenization.

This module implements a low-level tokenizer that converts XML text into
start-element, end-element, character-data and markup tokens. It checks
well-formedness of each individual token but does not match start and end
tags, resolve namespaces or validate anything; the tree builder owns tag
matching.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple

from soap_multiref.shared import MalformedXMLError, get_logger

# XML 1.0 (fifth edition) name productions
_NAME_START_CHARS = (
    "A-Za-z_:"
    "\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF"
    "\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF"
    "\uFDF0-\uFFFD\U00010000-\U000EFFFF"
)
_NAME_CHARS = _NAME_START_CHARS + "\\-.0-9\u00B7\u0300-\u036F\u203F-\u2040"
_NAME_RE = re.compile(f"[{_NAME_START_CHARS}][{_NAME_CHARS}]*")
_ENTITY_RE = re.compile(f"&(#[0-9]+|#x[0-9a-fA-F]+|[{_NAME_START_CHARS}][{_NAME_CHARS}]*);")

_WHITESPACE = " \t\r\n"

PREDEFINED_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "apos": "'",
    "quot": '"',
}

COMMENT_OPEN = "<!--"
CDATA_OPEN = "<![CDATA["
CDATA_CLOSE = "]]>"
PI_OPEN = "<?"
PI_CLOSE = "?>"

logger = get_logger(__name__, component="xml_tokenizer")


class TokenType(Enum):
    """XML token types produced by the tokenizer."""

    START_ELEMENT = auto()           # <name attr="value"> or <name/>
    END_ELEMENT = auto()             # </name>, synthesized for <name/>
    CHAR_DATA = auto()               # Text and CDATA content
    COMMENT = auto()                 # <!-- ... -->
    PROCESSING_INSTRUCTION = auto()  # <?target ... ?>
    DIRECTIVE = auto()               # <!DOCTYPE ...> and friends


@dataclass(frozen=True)
class QName:
    """Qualified element or attribute name as written in the source.

    ``space`` holds the namespace prefix, not a resolved URI.
    """

    space: str
    local: str

    @classmethod
    def parse(cls, raw: str) -> "QName":
        """Split ``raw`` at its first colon.

        A colon in first or last position is kept as part of the local name.
        """
        colon = raw.find(":")
        if colon < 1 or colon > len(raw) - 2:
            return cls("", raw)
        return cls(raw[:colon], raw[colon + 1:])

    def __str__(self) -> str:
        if self.space:
            return f"{self.space}:{self.local}"
        return self.local


@dataclass(frozen=True)
class Attribute:
    """A single attribute: name, entity-decoded value and escaped source value."""

    name: QName
    value: str
    raw_value: str

    @classmethod
    def create(cls, name: str, value: str) -> "Attribute":
        """Build an attribute from a plain name and an unescaped value."""
        raw = (
            value.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace('"', "&quot;")
        )
        return cls(QName.parse(name), value, raw)


@dataclass
class TokenPosition:
    """Position information for XML tokens."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")


@dataclass
class Token:
    """Represents a single XML token with its source position."""

    type: TokenType
    position: TokenPosition
    name: Optional[QName] = None
    attributes: List[Attribute] = field(default_factory=list)
    text: str = ""
    self_closing: bool = False


class _LineIndex:
    """Maps character offsets to line and column numbers."""

    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(match.end() for match in re.finditer("\n", text))

    def position(self, offset: int) -> TokenPosition:
        line = bisect_right(self._starts, offset) - 1
        return TokenPosition(line + 1, offset - self._starts[line] + 1, offset)


class _Scanner:
    """Tokenizes one text. Holds all per-call state."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.length = len(text)
        self.lines = _LineIndex(text)

    def error(self, message: str, offset: int) -> MalformedXMLError:
        pos = self.lines.position(min(offset, self.length))
        return MalformedXMLError(message, pos.line, pos.column, pos.offset)

    def tokens(self) -> Iterator[Token]:
        text = self.text
        pos = 0
        while pos < self.length:
            if text[pos] != "<":
                end = text.find("<", pos)
                if end == -1:
                    end = self.length
                yield Token(
                    TokenType.CHAR_DATA,
                    self.lines.position(pos),
                    text=self.decode_entities(text[pos:end], pos),
                )
                pos = end
            elif text.startswith(COMMENT_OPEN, pos):
                token, pos = self.scan_comment(pos)
                yield token
            elif text.startswith(CDATA_OPEN, pos):
                token, pos = self.scan_cdata(pos)
                yield token
            elif text.startswith("<!", pos):
                token, pos = self.scan_directive(pos)
                yield token
            elif text.startswith(PI_OPEN, pos):
                token, pos = self.scan_processing_instruction(pos)
                yield token
            elif text.startswith("</", pos):
                token, pos = self.scan_end_tag(pos)
                yield token
            else:
                token, pos = self.scan_start_tag(pos)
                yield token
                if token.self_closing:
                    yield Token(TokenType.END_ELEMENT, token.position, name=token.name)

    def scan_comment(self, start: int) -> Tuple[Token, int]:
        body = start + len(COMMENT_OPEN)
        dashes = self.text.find("--", body)
        if dashes == -1:
            raise self.error("unexpected EOF in comment", self.length)
        if not self.text.startswith("-->", dashes):
            raise self.error('invalid sequence "--" not allowed in comments', dashes)
        token = Token(
            TokenType.COMMENT,
            self.lines.position(start),
            text=self.text[body:dashes],
        )
        return token, dashes + 3

    def scan_cdata(self, start: int) -> Tuple[Token, int]:
        body = start + len(CDATA_OPEN)
        end = self.text.find(CDATA_CLOSE, body)
        if end == -1:
            raise self.error("unexpected EOF in CDATA section", self.length)
        token = Token(
            TokenType.CHAR_DATA,
            self.lines.position(start),
            text=self.text[body:end],
        )
        return token, end + len(CDATA_CLOSE)

    def scan_directive(self, start: int) -> Tuple[Token, int]:
        # Internal DTD subsets nest angle brackets and may quote them
        depth = 1
        quote: Optional[str] = None
        pos = start + 2
        while pos < self.length:
            char = self.text[pos]
            if quote is not None:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == "<":
                depth += 1
            elif char == ">":
                depth -= 1
                if depth == 0:
                    token = Token(
                        TokenType.DIRECTIVE,
                        self.lines.position(start),
                        text=self.text[start + 2:pos],
                    )
                    return token, pos + 1
            pos += 1
        raise self.error("unexpected EOF in directive", self.length)

    def scan_processing_instruction(self, start: int) -> Tuple[Token, int]:
        match = _NAME_RE.match(self.text, start + len(PI_OPEN))
        if not match:
            raise self.error("expected target name after <?", start + len(PI_OPEN))
        end = self.text.find(PI_CLOSE, match.end())
        if end == -1:
            raise self.error("unexpected EOF in processing instruction", self.length)
        token = Token(
            TokenType.PROCESSING_INSTRUCTION,
            self.lines.position(start),
            name=QName("", match.group()),
            text=self.text[match.end():end].strip(_WHITESPACE),
        )
        return token, end + len(PI_CLOSE)

    def scan_end_tag(self, start: int) -> Tuple[Token, int]:
        match = _NAME_RE.match(self.text, start + 2)
        if not match:
            raise self.error("expected element name after </", start + 2)
        pos = self.skip_whitespace(match.end())
        if pos >= self.length:
            raise self.error("unexpected EOF in end tag", pos)
        if self.text[pos] != ">":
            raise self.error(
                f"invalid characters between </{match.group()} and >", pos
            )
        token = Token(
            TokenType.END_ELEMENT,
            self.lines.position(start),
            name=QName.parse(match.group()),
        )
        return token, pos + 1

    def scan_start_tag(self, start: int) -> Tuple[Token, int]:
        match = _NAME_RE.match(self.text, start + 1)
        if not match:
            raise self.error("expected element name after <", start + 1)
        name = match.group()
        attributes: List[Attribute] = []
        pos = match.end()

        while True:
            after_space = self.skip_whitespace(pos)
            if after_space >= self.length:
                raise self.error("unexpected EOF in start tag", after_space)
            if self.text.startswith("/>", after_space):
                return self.start_token(start, name, attributes, True), after_space + 2
            if self.text[after_space] == ">":
                return self.start_token(start, name, attributes, False), after_space + 1
            if after_space == pos:
                raise self.error(
                    f"expected whitespace before attribute in element <{name}>", pos
                )
            attribute, pos = self.scan_attribute(after_space, name)
            attributes.append(attribute)

    def scan_attribute(self, start: int, element: str) -> Tuple[Attribute, int]:
        match = _NAME_RE.match(self.text, start)
        if not match:
            raise self.error(f"invalid attribute name in element <{element}>", start)
        pos = self.skip_whitespace(match.end())
        if pos >= self.length or self.text[pos] != "=":
            raise self.error(
                f"attribute name without = in element <{element}>", pos
            )
        pos = self.skip_whitespace(pos + 1)
        if pos >= self.length or self.text[pos] not in "'\"":
            raise self.error(
                f"unquoted or missing attribute value in element <{element}>", pos
            )
        quote = self.text[pos]
        end = self.text.find(quote, pos + 1)
        if end == -1:
            raise self.error("unexpected EOF in attribute value", self.length)
        raw = self.text[pos + 1:end]
        if "<" in raw:
            raise self.error("unescaped < inside quoted string", pos + 1 + raw.index("<"))
        attribute = Attribute(
            QName.parse(match.group()),
            self.decode_entities(raw, pos + 1),
            raw,
        )
        return attribute, end + 1

    def start_token(
        self, start: int, name: str, attributes: List[Attribute], self_closing: bool
    ) -> Token:
        return Token(
            TokenType.START_ELEMENT,
            self.lines.position(start),
            name=QName.parse(name),
            attributes=attributes,
            self_closing=self_closing,
        )

    def skip_whitespace(self, pos: int) -> int:
        while pos < self.length and self.text[pos] in _WHITESPACE:
            pos += 1
        return pos

    def decode_entities(self, raw: str, offset: int) -> str:
        """Replace entity and character references in ``raw``."""
        if "&" not in raw:
            return raw

        parts = []
        index = 0
        while True:
            amp = raw.find("&", index)
            if amp == -1:
                parts.append(raw[index:])
                break
            parts.append(raw[index:amp])
            match = _ENTITY_RE.match(raw, amp)
            if not match:
                raise self.error("invalid character entity", offset + amp)
            parts.append(self.resolve_reference(match.group(1), offset + amp))
            index = match.end()

        return "".join(parts)

    def resolve_reference(self, ref: str, offset: int) -> str:
        if not ref.startswith("#"):
            if ref not in PREDEFINED_ENTITIES:
                raise self.error(f"invalid character entity &{ref};", offset)
            return PREDEFINED_ENTITIES[ref]

        codepoint = int(ref[2:], 16) if ref.startswith("#x") else int(ref[1:])
        if not _is_xml_char(codepoint):
            raise self.error(f"invalid character entity &{ref};", offset)
        return chr(codepoint)


def _is_xml_char(codepoint: int) -> bool:
    return (
        codepoint in (0x9, 0xA, 0xD)
        or 0x20 <= codepoint <= 0xD7FF
        or 0xE000 <= codepoint <= 0xFFFD
        or 0x10000 <= codepoint <= 0x10FFFF
    )


class XMLTokenizer:
    """Raw XML tokenizer.

    The tokenizer itself holds no per-document state, so one instance may be
    shared between threads. Errors are raised as ``MalformedXMLError`` with
    the line and column of the offending construct.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the XML tokenizer.

        Args:
            correlation_id: Optional correlation ID for tracking requests
        """
        self.correlation_id = correlation_id

    def iter_tokens(self, text: str) -> Iterator[Token]:
        """Lazily tokenize ``text``.

        Args:
            text: Decoded XML text

        Yields:
            Tokens in document order

        Raises:
            MalformedXMLError: On the first malformed construct
        """
        return _Scanner(text).tokens()

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize ``text`` completely and return the token list."""
        tokens = list(self.iter_tokens(text))
        logger.debug(
            "Tokenization completed",
            extra={
                "correlation_id": self.correlation_id,
                "token_count": len(tokens),
                "char_count": len(text),
            }
        )
        return tokens
