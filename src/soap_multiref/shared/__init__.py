"""Shared utilities for SOAP multiRef flattening.

This module provides the configuration objects, error hierarchy, result
types and logging helpers used across all processing layers.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    FlattenConfig,
    SoapConfig,
    TransportConfig,
)
from .errors import (
    DecodeError,
    FlattenError,
    MalformedXMLError,
    ReferenceCycleError,
    ReferenceDepthError,
    SoapFault,
    SoapMultirefError,
)
from .logging import CorrelationLogger, get_logger
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    FlattenMetrics,
    FlattenResult,
)

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DecodeError",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "FlattenConfig",
    "FlattenError",
    "FlattenMetrics",
    "FlattenResult",
    "MalformedXMLError",
    "ReferenceCycleError",
    "ReferenceDepthError",
    "SoapConfig",
    "SoapFault",
    "SoapMultirefError",
    "TransportConfig",
    "get_logger",
]
