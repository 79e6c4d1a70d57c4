"""Tree building from raw token streams.

This module turns an XML buffer into an ordered list of top-level elements.
Each element keeps its name, its attributes and its inner markup as escaped
text; children are not materialized up front but re-derived from that text
whenever they are asked for.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from soap_multiref.character import decode_document
from soap_multiref.shared import MalformedXMLError, get_logger
from soap_multiref.tokenization import (
    Attribute,
    QName,
    Token,
    TokenType,
    XMLTokenizer,
)

from .serializer import (
    escape_text,
    format_end_tag,
    format_start_tag,
    serialize_element,
)

# A child node: an element, or a run of escaped character data
Node = Union["Element", str]


@dataclass
class Element:
    """One XML element with raw inner content.

    ``content`` is escaped markup ready for re-embedding. Children are
    obtained by re-parsing it, which is repeatable and free of side effects
    but costs a scan every time.
    """

    name: QName
    attributes: List[Attribute] = field(default_factory=list)
    content: str = ""

    @property
    def local_name(self) -> str:
        """Get local tag name without namespace prefix."""
        return self.name.local

    @property
    def prefix(self) -> str:
        """Get namespace prefix, or an empty string."""
        return self.name.space

    @property
    def tag(self) -> str:
        """Get tag name including namespace prefix if present."""
        return str(self.name)

    def find_attribute(self, local: str, space: Optional[str] = None) -> Optional[Attribute]:
        """Return the first attribute with local name ``local``.

        With ``space`` left as None any prefix matches, so ``href`` also
        finds ``xlink:href``.
        """
        for attribute in self.attributes:
            if attribute.name.local == local and (space is None or attribute.name.space == space):
                return attribute
        return None

    def get(
        self, local: str, default: Optional[str] = None, space: Optional[str] = None
    ) -> Optional[str]:
        """Get the decoded value of an attribute with optional default."""
        attribute = self.find_attribute(local, space)
        if attribute is None:
            return default
        return attribute.value

    def children(self) -> List["Element"]:
        """Re-parse the content and return the child elements."""
        return build_elements(self.content)

    def nodes(self) -> List[Node]:
        """Re-parse the content and return children and text in order."""
        return build_nodes(self.content)

    def to_xml(self) -> str:
        """Serialize this element."""
        return serialize_element(self)


class ElementTreeBuilder:
    """Builds top-level elements from an XML buffer.

    Works with an explicit stack of open tags, so nesting depth is not
    limited by the interpreter's recursion limit. Holds no per-build state.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        tokenizer: Optional[XMLTokenizer] = None
    ) -> None:
        """Initialize tree builder.

        Args:
            correlation_id: Optional correlation ID for request tracking
            tokenizer: Tokenizer to use, a fresh one by default
        """
        self.correlation_id = correlation_id
        self.tokenizer = tokenizer or XMLTokenizer(correlation_id)
        self.logger = get_logger(__name__, correlation_id, "element_tree_builder")

    def build(self, data: Union[str, bytes]) -> List[Element]:
        """Return the top-level elements of ``data`` in document order.

        Raises:
            MalformedXMLError: If tags do not match or input is truncated
        """
        return [node for node in self.build_nodes(data) if isinstance(node, Element)]

    def build_nodes(self, data: Union[str, bytes]) -> List[Node]:
        """Return top-level elements and the escaped text between them.

        Args:
            data: XML document or fragment as text or bytes

        Returns:
            Elements and text runs in document order; comments, processing
            instructions and directives are dropped

        Raises:
            MalformedXMLError: If tags do not match or input is truncated
        """
        text = decode_document(data)
        nodes: List[Node] = []
        open_names: List[QName] = []
        top: Optional[Token] = None
        inner: List[str] = []
        loose_text: List[str] = []

        for token in self.tokenizer.iter_tokens(text):
            if token.type == TokenType.START_ELEMENT:
                if open_names:
                    inner.append(format_start_tag(token.name, token.attributes))
                else:
                    if loose_text:
                        nodes.append("".join(loose_text))
                        loose_text = []
                    top = token
                    inner = []
                open_names.append(token.name)

            elif token.type == TokenType.END_ELEMENT:
                self._check_end_tag(token, open_names)
                open_names.pop()
                if open_names:
                    inner.append(format_end_tag(token.name))
                else:
                    nodes.append(Element(top.name, list(top.attributes), "".join(inner)))

            elif token.type == TokenType.CHAR_DATA:
                if open_names:
                    inner.append(escape_text(token.text))
                else:
                    loose_text.append(escape_text(token.text))

        if open_names:
            raise MalformedXMLError(
                f"unexpected EOF: element <{open_names[-1]}> is not closed",
                offset=len(text),
            )
        if loose_text:
            nodes.append("".join(loose_text))

        if self.logger.is_enabled_for(logging.DEBUG):
            self.logger.debug(
                "Tree building completed",
                extra={"node_count": len(nodes), "char_count": len(text)}
            )
        return nodes

    def _check_end_tag(self, token: Token, open_names: List[QName]) -> None:
        pos = token.position
        if not open_names:
            raise MalformedXMLError(
                f"unexpected end element </{token.name}>",
                pos.line, pos.column, pos.offset,
            )
        if open_names[-1] != token.name:
            raise MalformedXMLError(
                f"unexpected end element </{token.name}>, expected </{open_names[-1]}>",
                pos.line, pos.column, pos.offset,
            )


_default_builder = ElementTreeBuilder()


def build_elements(data: Union[str, bytes]) -> List[Element]:
    """Parse ``data`` into its top-level elements."""
    return _default_builder.build(data)


def build_nodes(data: Union[str, bytes]) -> List[Node]:
    """Parse ``data`` into top-level elements and text runs."""
    return _default_builder.build_nodes(data)
