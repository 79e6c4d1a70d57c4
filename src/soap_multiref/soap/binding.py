"""Typed binding of XML elements onto dataclasses.

Binding rules follow conventional name matching:

- A field is filled from the child elements whose local name equals the
  field's XML name. Without ``xml_field`` that name is the Python field name.
- A name may be qualified as ``"namespace-uri local"``; then the namespace
  must match too. An unqualified name matches any namespace.
- ``attr=True`` reads an attribute, ``chardata=True`` the element's own
  text, ``innerxml=True`` the serialized inner markup.
- ``List[T]`` collects every match; other fields take the last match.
- Missing data leaves the field default, or the type's zero value.

A dataclass may declare ``__xml_name__`` to require a particular root
element name.

Example:
    >>> @dataclass
    ... class Header:
    ...     session: str = xml_field("sessionId")
"""

import dataclasses
import types
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from lxml import etree

from soap_multiref.shared import DecodeError

XML_METADATA_KEY = "xml"

_TRUE_VALUES = ("1", "t", "true")
_FALSE_VALUES = ("", "0", "f", "false")
_UNION_TYPES = tuple(
    union for union in (Union, getattr(types, "UnionType", None)) if union is not None
)

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class XMLFieldSpec:
    """How one dataclass field maps onto XML."""

    name: Optional[str] = None
    namespace: Optional[str] = None
    attr: bool = False
    chardata: bool = False
    innerxml: bool = False

    def __post_init__(self) -> None:
        if sum((self.attr, self.chardata, self.innerxml)) > 1:
            raise ValueError("attr, chardata and innerxml are mutually exclusive")

    @classmethod
    def parse(cls, qualified: Optional[str], **flags: bool) -> "XMLFieldSpec":
        """Build a spec from ``"local"`` or ``"namespace-uri local"``."""
        if qualified and " " in qualified.strip():
            namespace, local = qualified.strip().rsplit(" ", 1)
            return cls(local, namespace, **flags)
        return cls(qualified, None, **flags)


def xml_field(
    name: Optional[str] = None,
    *,
    attr: bool = False,
    chardata: bool = False,
    innerxml: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """Declare a dataclass field bound to XML.

    Args:
        name: Element or attribute name, optionally ``"namespace-uri local"``
        attr: Read an attribute of the element instead of a child
        chardata: Read the element's own character data
        innerxml: Read the element's inner markup
        default: Field default value
        default_factory: Field default factory
    """
    spec = XMLFieldSpec.parse(name, attr=attr, chardata=chardata, innerxml=innerxml)
    kwargs: Dict[str, Any] = {"metadata": {XML_METADATA_KEY: spec}}
    if default is not dataclasses.MISSING:
        kwargs["default"] = default
    if default_factory is not dataclasses.MISSING:
        kwargs["default_factory"] = default_factory
    return dataclasses.field(**kwargs)


def split_tag(tag: str) -> Tuple[Optional[str], str]:
    """Split a Clark-notation tag into namespace URI and local name.

    A prefix left in the local part (an undeclared prefix kept by a
    recovering parser) is dropped.
    """
    namespace = None
    if tag.startswith("{"):
        namespace, tag = tag[1:].split("}", 1)
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return namespace, tag


def direct_text(element: etree._Element) -> str:
    """Character data directly inside ``element``, excluding descendants."""
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


def inner_xml(element: etree._Element) -> str:
    """Serialized markup between the start and end tag of ``element``."""
    parts = [_escape(element.text or "")]
    parts.extend(
        etree.tostring(child, encoding="unicode", with_tail=True) for child in element
    )
    return "".join(parts)


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def bind(element: etree._Element, target: Type[T]) -> T:
    """Create an instance of the dataclass ``target`` from ``element``.

    Raises:
        TypeError: If ``target`` is not a dataclass type
        DecodeError: If the root name does not match ``__xml_name__`` or a
            value cannot be converted to its field type
    """
    if not (isinstance(target, type) and dataclasses.is_dataclass(target)):
        raise TypeError(f"Binding target must be a dataclass type, got {target!r}")

    expected = getattr(target, "__xml_name__", None)
    if expected:
        spec = XMLFieldSpec.parse(expected)
        if not _matches(element, spec.name, spec.namespace):
            _, local = split_tag(element.tag)
            raise DecodeError(f"expected element type <{spec.name}> but have <{local}>")

    return _bind_dataclass(element, target)


def _bind_dataclass(element: etree._Element, cls: type) -> Any:
    hints = get_type_hints(cls)
    values: Dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        if not field.init:
            continue
        spec: XMLFieldSpec = field.metadata.get(XML_METADATA_KEY) or XMLFieldSpec()
        field_type = hints[field.name]
        name = spec.name or field.name

        if spec.attr:
            raw = _find_attribute(element, name, spec.namespace)
            values[field.name] = (
                _missing(field, field_type) if raw is None
                else _convert_text(raw, field_type, field.name)
            )
        elif spec.chardata:
            values[field.name] = _convert_text(direct_text(element), field_type, field.name)
        elif spec.innerxml:
            values[field.name] = _convert_text(inner_xml(element), field_type, field.name)
        else:
            matches = [child for child in element if _matches(child, name, spec.namespace)]
            values[field.name] = _bind_matches(matches, field, field_type)

    return cls(**values)


def _bind_matches(matches: List[etree._Element], field: dataclasses.Field, field_type: Any) -> Any:
    inner = _unwrap_optional(field_type)
    if inner is not None:
        if not matches:
            return None
        return _bind_value(matches[-1], inner, field.name)

    if get_origin(field_type) in (list, List):
        if not matches:
            return _missing(field, field_type)
        (item_type,) = get_args(field_type) or (str,)
        return [_bind_value(match, item_type, field.name) for match in matches]

    if not matches:
        return _missing(field, field_type)
    return _bind_value(matches[-1], field_type, field.name)


def _bind_value(element: etree._Element, value_type: Any, field_name: str) -> Any:
    if dataclasses.is_dataclass(value_type):
        return _bind_dataclass(element, value_type)
    if value_type is etree._Element:
        return element
    return _convert_text(direct_text(element), value_type, field_name)


def _convert_text(text: str, value_type: Any, field_name: str) -> Any:
    inner = _unwrap_optional(value_type)
    if inner is not None:
        value_type = inner

    if value_type is str or value_type is Any:
        return text
    if value_type is bytes:
        return text.encode("utf-8")

    stripped = text.strip()
    if value_type is bool:
        lowered = stripped.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise DecodeError(f"cannot decode {stripped!r} as bool for field {field_name!r}")
    if value_type in (int, float):
        if not stripped:
            return value_type(0)
        try:
            return value_type(stripped)
        except ValueError as e:
            raise DecodeError(
                f"cannot decode {stripped!r} as {value_type.__name__} for field {field_name!r}"
            ) from e

    raise TypeError(f"Unsupported field type {value_type!r} for field {field_name!r}")


def _missing(field: dataclasses.Field, field_type: Any) -> Any:
    if field.default is not dataclasses.MISSING:
        return field.default
    if field.default_factory is not dataclasses.MISSING:
        return field.default_factory()
    return _zero_value(field_type)


def _zero_value(value_type: Any) -> Any:
    if _unwrap_optional(value_type) is not None or value_type is etree._Element:
        return None
    if get_origin(value_type) in (list, List):
        return []
    if dataclasses.is_dataclass(value_type):
        hints = get_type_hints(value_type)
        return value_type(**{
            field.name: _missing(field, hints[field.name])
            for field in dataclasses.fields(value_type)
            if field.init
        })
    if value_type in (str, bytes, int, float, bool):
        return value_type()
    if value_type is Any:
        return None
    raise TypeError(f"Unsupported field type {value_type!r}")


def _unwrap_optional(value_type: Any) -> Optional[Any]:
    """Return ``T`` for ``Optional[T]``, otherwise None."""
    if get_origin(value_type) not in _UNION_TYPES:
        return None
    args = [arg for arg in get_args(value_type) if arg is not type(None)]
    if len(args) != 1:
        raise TypeError(f"Unsupported union type {value_type!r}")
    return args[0]


def _matches(element: etree._Element, local: str, namespace: Optional[str]) -> bool:
    if not isinstance(element.tag, str):
        return False
    element_namespace, element_local = split_tag(element.tag)
    return element_local == local and (namespace is None or element_namespace == namespace)


def _find_attribute(element: etree._Element, local: str, namespace: Optional[str]) -> Optional[str]:
    for key, value in element.attrib.items():
        key_namespace, key_local = split_tag(key)
        if key_local == local and (namespace is None or key_namespace == namespace):
            return value
    return None
