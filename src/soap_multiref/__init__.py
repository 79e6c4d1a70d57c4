"""SOAP multiRef flattening.

Rewrites SOAP 1.1 documents produced by encoders that share values through
``href="#id"`` placeholders and sibling ``multiRef`` elements, so that
ordinary tree-structured decoders can bind them.

Progressive API Disclosure:
- Level 1: Simple functions - flatten(), unmarshal()
- Level 2: Reports and configuration - flatten_with_report(), SoapConfig
- Level 3: Building blocks - Flattener, ElementTreeBuilder, SoapClient
"""

__version__ = "0.1.0"

from .api import flatten, flatten_with_report, parse_response, unmarshal
from .multiref import Flattener
from .shared import (
    DecodeError,
    FlattenConfig,
    FlattenError,
    FlattenResult,
    MalformedXMLError,
    ReferenceCycleError,
    ReferenceDepthError,
    SoapConfig,
    SoapFault,
    SoapMultirefError,
    TransportConfig,
)
from .soap import SoapClient, bind, check_fault, find_fault, new_request, xml_field
from .tree import Element, ElementTreeBuilder

__all__ = [
    # Version
    "__version__",

    # Level 1: Simple functions
    "flatten",
    "unmarshal",
    "parse_response",

    # Level 2: Reports and configuration
    "flatten_with_report",
    "FlattenResult",
    "FlattenConfig",
    "SoapConfig",
    "TransportConfig",

    # Level 3: Building blocks
    "Flattener",
    "Element",
    "ElementTreeBuilder",
    "SoapClient",
    "new_request",
    "bind",
    "xml_field",
    "check_fault",
    "find_fault",

    # Errors
    "SoapMultirefError",
    "MalformedXMLError",
    "FlattenError",
    "ReferenceCycleError",
    "ReferenceDepthError",
    "DecodeError",
    "SoapFault",
]
