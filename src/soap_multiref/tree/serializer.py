"""Text serialization of elements, tags and character data.

Pure functions only: nothing here keeps state between calls, so they are
safe to use from any number of threads at once.
"""

from typing import Callable, List, Sequence, TYPE_CHECKING

from soap_multiref.tokenization import Attribute, QName

if TYPE_CHECKING:
    from .builder import Element

_TEXT_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\r": "&#xD;",
})


def escape_text(text: str) -> str:
    """Escape character data for embedding between tags."""
    return text.translate(_TEXT_ESCAPES)


def format_name(name: QName) -> str:
    return str(name)


def format_attributes(attributes: Sequence[Attribute]) -> str:
    """Render attributes in order, each preceded by a space.

    Raw values are written verbatim. A double quote can only appear in a raw
    value that was single-quoted in the source, and is escaped so the value
    fits between double quotes.
    """
    parts = []
    for attribute in attributes:
        raw = attribute.raw_value
        if '"' in raw:
            raw = raw.replace('"', "&quot;")
        parts.append(f' {format_name(attribute.name)}="{raw}"')
    return "".join(parts)


def format_start_tag(name: QName, attributes: Sequence[Attribute] = ()) -> str:
    return f"<{format_name(name)}{format_attributes(attributes)}>"


def format_end_tag(name: QName) -> str:
    return f"</{format_name(name)}>"


def format_empty_tag(name: QName, attributes: Sequence[Attribute] = ()) -> str:
    return f"<{format_name(name)}{format_attributes(attributes)} />"


def write_element(element: "Element", write: Callable[[str], None]) -> None:
    """Write ``element`` to a text sink.

    Args:
        element: Element to serialize
        write: Callable receiving successive pieces of markup, such as
            ``io.StringIO.write`` or ``list.append``
    """
    if element.content:
        write(format_start_tag(element.name, element.attributes))
        write(element.content)
        write(format_end_tag(element.name))
    else:
        write(format_empty_tag(element.name, element.attributes))


def serialize_element(element: "Element") -> str:
    """Return the markup of ``element`` as a string."""
    parts: List[str] = []
    write_element(element, parts.append)
    return "".join(parts)
