"""Tests for the strict raw XML tokenizer."""

from unittest.mock import patch

import pytest

from soap_multiref.shared import MalformedXMLError
from soap_multiref.tokenization import (
    Attribute,
    QName,
    Token,
    TokenPosition,
    TokenType,
    XMLTokenizer,
)


def _types(tokens):
    return [token.type for token in tokens]


class TestQName:
    """Test qualified name splitting."""

    def test_unprefixed(self):
        """Test a name without prefix."""
        assert QName.parse("Envelope") == QName("", "Envelope")

    def test_prefixed(self):
        """Test a prefixed name."""
        name = QName.parse("soapenv:Envelope")

        assert name == QName("soapenv", "Envelope")
        assert str(name) == "soapenv:Envelope"

    def test_splits_at_first_colon(self):
        """Test that only the first colon separates prefix and local part."""
        assert QName.parse("a:b:c") == QName("a", "b:c")

    @pytest.mark.parametrize("raw", [":x", "x:"])
    def test_edge_colons_stay_local(self, raw):
        """Test that a leading or trailing colon is part of the local name."""
        name = QName.parse(raw)

        assert name.space == ""
        assert name.local == raw


class TestTokenPosition:
    """Test position validation."""

    def test_valid_position(self):
        """Test a valid position."""
        position = TokenPosition(1, 1, 0)
        assert position.line == 1

    @pytest.mark.parametrize("line,column,offset", [(0, 1, 0), (1, 0, 0), (1, 1, -1)])
    def test_invalid_position(self, line, column, offset):
        """Test that out-of-range positions are rejected."""
        with pytest.raises(ValueError):
            TokenPosition(line, column, offset)


class TestXMLTokenizer:
    """Test tokenization of well-formed input."""

    def setup_method(self):
        self.tokenizer = XMLTokenizer()

    def test_simple_element(self):
        """Test start tag, text and end tag."""
        tokens = self.tokenizer.tokenize("<a>hi</a>")

        assert _types(tokens) == [
            TokenType.START_ELEMENT,
            TokenType.CHAR_DATA,
            TokenType.END_ELEMENT,
        ]
        assert tokens[0].name == QName("", "a")
        assert tokens[1].text == "hi"

    def test_self_closing_yields_end(self):
        """Test that a self-closing tag yields a matching end token."""
        tokens = self.tokenizer.tokenize('<b href="#x"/>')

        assert _types(tokens) == [TokenType.START_ELEMENT, TokenType.END_ELEMENT]
        assert tokens[0].self_closing
        assert tokens[1].name == tokens[0].name

    def test_attributes_keep_order_and_raw_value(self):
        """Test attribute order with decoded and raw values."""
        tokens = self.tokenizer.tokenize(
            "<a xsi:type=\"xsd:string\" title='a &amp; b' z=\"&#65;\"></a>"
        )
        attributes = tokens[0].attributes

        assert [str(attr.name) for attr in attributes] == ["xsi:type", "title", "z"]
        assert attributes[1].value == "a & b"
        assert attributes[1].raw_value == "a &amp; b"
        assert attributes[2].value == "A"

    def test_whitespace_around_equals(self):
        """Test that whitespace around = is accepted."""
        tokens = self.tokenizer.tokenize('<a  id = "1" ></a>')

        assert tokens[0].attributes[0].value == "1"

    def test_entities_in_text(self):
        """Test predefined, decimal and hexadecimal references."""
        tokens = self.tokenizer.tokenize("<a>&lt;&gt;&amp;&apos;&quot;&#233;&#xE9;</a>")

        assert tokens[1].text == "<>&'\"éé"

    def test_cdata_becomes_char_data(self):
        """Test that CDATA content is delivered verbatim as character data."""
        tokens = self.tokenizer.tokenize("<a><![CDATA[x < y & z]]></a>")

        assert tokens[1].type == TokenType.CHAR_DATA
        assert tokens[1].text == "x < y & z"

    def test_markup_tokens(self):
        """Test comments, processing instructions and directives."""
        tokens = self.tokenizer.tokenize(
            '<?xml version="1.0"?><!DOCTYPE a [<!ENTITY e "x>">]><!-- note --><a/>'
        )

        assert _types(tokens)[:3] == [
            TokenType.PROCESSING_INSTRUCTION,
            TokenType.DIRECTIVE,
            TokenType.COMMENT,
        ]
        assert tokens[0].name.local == "xml"
        assert tokens[0].text == 'version="1.0"'
        assert tokens[1].text.startswith("DOCTYPE a [")
        assert tokens[2].text == " note "

    def test_positions(self):
        """Test line and column tracking."""
        tokens = self.tokenizer.tokenize("<a>\n  <b/>\n</a>")
        start_b = tokens[2]

        assert start_b.name.local == "b"
        assert (start_b.position.line, start_b.position.column) == (2, 3)
        assert start_b.position.offset == 6

    def test_iter_tokens_is_lazy(self):
        """Test that iter_tokens yields before reaching a later error."""
        tokens = self.tokenizer.iter_tokens("<a>text</a><")

        first = next(tokens)
        assert first.type == TokenType.START_ELEMENT
        with pytest.raises(MalformedXMLError):
            list(tokens)

    def test_tokenize_logs_completion(self):
        """Test that tokenize logs its completion at debug level."""
        with patch("soap_multiref.tokenization.tokenizer.logger") as mock_logger:
            self.tokenizer.tokenize("<a/>")

        mock_logger.debug.assert_called_once()
        assert mock_logger.debug.call_args[1]["extra"]["token_count"] == 2

    def test_no_tag_matching(self):
        """Test that the tokenizer itself does not match tags."""
        tokens = self.tokenizer.tokenize("<a></b>")

        assert _types(tokens) == [TokenType.START_ELEMENT, TokenType.END_ELEMENT]


class TestMalformedInput:
    """Test that malformed constructs raise MalformedXMLError."""

    @pytest.mark.parametrize(
        "text,message",
        [
            ("<a", "unexpected EOF in start tag"),
            ("<a b>", "attribute name without ="),
            ("<a b=c>", "unquoted or missing attribute value"),
            ('<a b="1"c="2">', "expected whitespace before attribute"),
            ('<a b="x<y">', "unescaped < inside quoted string"),
            ("<a>&bogus;</a>", "invalid character entity &bogus;"),
            ("<a>& </a>", "invalid character entity"),
            ("<a>&#0;</a>", "invalid character entity"),
            ("<!-- a -- b -->", 'invalid sequence "--"'),
            ("<!-- open", "unexpected EOF in comment"),
            ("<![CDATA[x", "unexpected EOF in CDATA section"),
            ("<!DOCTYPE a", "unexpected EOF in directive"),
            ("<?xml", "unexpected EOF in processing instruction"),
            ("</a", "unexpected EOF in end tag"),
            ("</a b>", "invalid characters between </a and >"),
            ("<1a/>", "expected element name"),
        ],
    )
    def test_malformed(self, text, message):
        """Test the error raised for each malformed construct."""
        with pytest.raises(MalformedXMLError, match=message):
            XMLTokenizer().tokenize(text)

    def test_error_position(self):
        """Test that errors carry line and column."""
        with pytest.raises(MalformedXMLError) as exc_info:
            XMLTokenizer().tokenize("<a>\n<b c=d/></a>")

        assert exc_info.value.line == 2
        assert exc_info.value.column == 6


class TestAttribute:
    """Test attribute construction."""

    def test_create_escapes_raw_value(self):
        """Test that create derives an escaped raw value."""
        attribute = Attribute.create("xlink:href", 'say "a<b" & go')

        assert attribute.name == QName("xlink", "href")
        assert attribute.value == 'say "a<b" & go'
        assert attribute.raw_value == "say &quot;a&lt;b&quot; &amp; go"

    def test_token_defaults(self):
        """Test token default field values."""
        token = Token(TokenType.CHAR_DATA, TokenPosition(1, 1, 0))

        assert token.name is None
        assert token.attributes == []
        assert token.text == ""
        assert not token.self_closing
