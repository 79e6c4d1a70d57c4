"""SOAP 1.1 envelope handling: namespaces, document parsing and Faults."""

import re
from typing import Optional, Union

from lxml import etree

from soap_multiref.character import decode_document
from soap_multiref.shared import DecodeError, MalformedXMLError, SoapFault

from .binding import direct_text, inner_xml, split_tag

NS_XSI = "http://www.w3.org/2001/XMLSchema-instance"
NS_XSD = "http://www.w3.org/2001/XMLSchema"
NS_SOAP_ENV = "http://schemas.xmlsoap.org/soap/envelope/"
NS_SOAP_ENCODING = "http://schemas.xmlsoap.org/soap/encoding/"

ENVELOPE_TAG = f"{{{NS_SOAP_ENV}}}Envelope"
BODY_TAG = f"{{{NS_SOAP_ENV}}}Body"
FAULT_TAG = f"{{{NS_SOAP_ENV}}}Fault"

_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")


def secure_parser(recover: bool = False) -> etree.XMLParser:
    """Return an lxml parser that never resolves entities or touches the network."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=False,
        recover=recover,
    )


def parse_document(data: Union[str, bytes], recover: bool = False) -> etree._Element:
    """Parse ``data`` into an lxml element tree.

    Args:
        data: XML as bytes, or as text
        recover: Let libxml2 recover from namespace and syntax problems

    Returns:
        The root element

    Raises:
        MalformedXMLError: If lxml rejects the document
    """
    if isinstance(data, str):
        # lxml refuses text carrying an encoding declaration
        data = _DECLARATION_RE.sub("", decode_document(data), count=1)

    try:
        root = etree.fromstring(data, secure_parser(recover))
    except etree.XMLSyntaxError as e:
        line, column = e.position
        raise MalformedXMLError(e.msg, line, column) from e

    if root is None:
        raise MalformedXMLError("document has no root element")
    return root


def fault_from_element(element: etree._Element) -> SoapFault:
    """Build a SoapFault from a ``Fault`` element.

    Children are matched by local name; ``detail`` and the non-standard
    ``faultDetail`` both fill the fault detail.
    """
    values = {"faultcode": "", "faultstring": "", "faultactor": ""}
    detail = b""
    for child in element:
        if not isinstance(child.tag, str):
            continue
        _, local = split_tag(child.tag)
        if local in values:
            values[local] = direct_text(child).strip()
        elif local in ("detail", "faultDetail"):
            detail = inner_xml(child).encode("utf-8")

    return SoapFault(
        code=values["faultcode"],
        string=values["faultstring"],
        actor=values["faultactor"],
        detail=detail,
    )


def find_fault(data: Union[str, bytes]) -> Optional[SoapFault]:
    """Return the Fault carried by a SOAP response, or None.

    Raises:
        MalformedXMLError: If ``data`` is not well-formed
        DecodeError: If the root element is not a SOAP 1.1 Envelope
    """
    root = parse_document(data)
    if root.tag != ENVELOPE_TAG:
        namespace, local = split_tag(root.tag)
        if local != "Envelope":
            raise DecodeError(f"expected element type <Envelope> but have <{local}>")
        raise DecodeError(
            f"expected element type <Envelope> in namespace {NS_SOAP_ENV} "
            f"but have namespace {namespace or '(none)'}"
        )

    body = root.find(BODY_TAG)
    if body is None:
        return None
    fault = body.find(FAULT_TAG)
    if fault is None:
        return None
    return fault_from_element(fault)


def check_fault(data: Union[str, bytes]) -> None:
    """Raise the SoapFault carried by ``data``, if any."""
    fault = find_fault(data)
    if fault is not None:
        raise fault
