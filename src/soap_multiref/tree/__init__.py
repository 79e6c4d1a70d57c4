"""Tree building engine for SOAP multiRef flattening.

This module converts raw token streams into top-level elements whose
children are derived on demand, and serializes elements back to text.

Key Components:
    ElementTreeBuilder: Builds top-level elements from an XML buffer
    Element: Name, ordered attributes and raw inner content
    build_elements: Module-level convenience around a shared builder
    serialize_element: Re-serialization of an element to markup
"""

from .builder import (
    Element,
    ElementTreeBuilder,
    Node,
    build_elements,
    build_nodes,
)
from .serializer import (
    escape_text,
    format_empty_tag,
    format_end_tag,
    format_start_tag,
    serialize_element,
    write_element,
)

__all__ = [
    "Element",
    "ElementTreeBuilder",
    "Node",
    "build_elements",
    "build_nodes",
    "escape_text",
    "format_empty_tag",
    "format_end_tag",
    "format_start_tag",
    "serialize_element",
    "write_element",
]
