"""SOAP 1.1 layer: envelope and Fault handling, typed binding, HTTP transport."""

from .binding import XMLFieldSpec, bind, direct_text, inner_xml, split_tag, xml_field
from .envelope import (
    NS_SOAP_ENCODING,
    NS_SOAP_ENV,
    NS_XSD,
    NS_XSI,
    check_fault,
    fault_from_element,
    find_fault,
    parse_document,
    secure_parser,
)
from .transport import SOAP_CONTENT_TYPE, SoapClient, new_request

__all__ = [
    "NS_SOAP_ENCODING",
    "NS_SOAP_ENV",
    "NS_XSD",
    "NS_XSI",
    "SOAP_CONTENT_TYPE",
    "SoapClient",
    "XMLFieldSpec",
    "bind",
    "check_fault",
    "direct_text",
    "fault_from_element",
    "find_fault",
    "inner_xml",
    "new_request",
    "parse_document",
    "secure_parser",
    "split_tag",
    "xml_field",
]
