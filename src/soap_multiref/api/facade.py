"""Decode facade: flatten, then decode with lxml.

Entry points, from simplest to most configurable:

- ``flatten(data)`` returns the flattened document bytes
- ``flatten_with_report(data)`` also returns diagnostics and metrics
- ``unmarshal(data, Target)`` flattens and binds onto a dataclass
- ``parse_response(response, Target)`` does the same for an HTTP response,
  raising the SOAP Fault it carries first
"""

from typing import Any, Optional, Type, TypeVar, Union

import requests

from soap_multiref.multiref import Flattener
from soap_multiref.shared import DecodeError, FlattenResult, SoapConfig, get_logger
from soap_multiref.soap.binding import bind
from soap_multiref.soap.envelope import check_fault, parse_document
from soap_multiref.tree import build_elements

COMPONENT = "decode_facade"

T = TypeVar("T")


def flatten(
    data: Union[str, bytes],
    config: Optional[SoapConfig] = None,
    correlation_id: Optional[str] = None
) -> bytes:
    """Flatten every href reference in ``data``.

    Args:
        data: Complete XML document
        config: Configuration, ``config.flatten`` drives substitution
        correlation_id: Overrides ``config.correlation_id`` for logging

    Returns:
        The flattened document as UTF-8 bytes

    Examples:
        >>> flatten(b'<a><b href="#x"/><multiRef id="x">1</multiRef></a>')
        b'<a><b href="#x">1</b></a>'
    """
    return flatten_with_report(data, config, correlation_id).output


def flatten_with_report(
    data: Union[str, bytes],
    config: Optional[SoapConfig] = None,
    correlation_id: Optional[str] = None
) -> FlattenResult:
    """Flatten ``data`` and return the output with diagnostics and metrics."""
    config = config or SoapConfig()
    flattener = Flattener(config.flatten, correlation_id or config.correlation_id)
    return flattener.flatten_with_report(data)


def unmarshal(
    data: Union[str, bytes],
    target: Optional[Type[T]] = None,
    config: Optional[SoapConfig] = None,
    correlation_id: Optional[str] = None
) -> Any:
    """Flatten ``data`` and decode its first top-level element.

    Args:
        data: Complete XML document
        target: Dataclass to bind onto; None returns the lxml element
        config: Configuration
        correlation_id: Overrides ``config.correlation_id`` for logging

    Returns:
        An instance of ``target``, or the root lxml element

    Raises:
        MalformedXMLError: If ``data`` is not well-formed
        FlattenError: If references cannot be flattened
        DecodeError: If the flattened document does not fit ``target``
    """
    config = config or SoapConfig()
    correlation_id = correlation_id or config.correlation_id
    logger = get_logger(__name__, correlation_id, COMPONENT)

    flattened = flatten(data, config, correlation_id)
    roots = build_elements(flattened)
    if not roots:
        raise DecodeError("no root element")

    # Substituted content may use prefixes declared only around the target
    root = parse_document(roots[0].to_xml(), recover=True)
    logger.debug(
        "Decoding flattened document",
        extra={"root": roots[0].tag, "target": getattr(target, "__name__", None)}
    )
    if target is None:
        return root
    return bind(root, target)


def parse_response(
    response: requests.Response,
    target: Optional[Type[T]] = None,
    config: Optional[SoapConfig] = None
) -> Any:
    """Decode an HTTP response from a SOAP endpoint.

    The body is checked for a Fault before flattening, so a Fault is raised
    even when the rest of the response could not be decoded into ``target``.

    Raises:
        SoapFault: If the response carries a Fault
        MalformedXMLError: If the body is not well-formed
        FlattenError: If references cannot be flattened
        DecodeError: If the body does not fit ``target``
    """
    body = response.content
    check_fault(body)
    return unmarshal(body, target, config)
