"""Result objects and diagnostic types for multiRef flattening.

This module defines the report returned by ``Flattener.flatten_with_report``:
the flattened buffer together with diagnostics and metrics describing what
the substitution pass did.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    INFO = auto()       # Input was ambiguous but handled predictably
    WARNING = auto()    # Part of the input could not be flattened


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.name,
            "code": self.code,
            "message": self.message,
            "component": self.component,
            "details": self.details or {},
        }


@dataclass
class FlattenMetrics:
    """Counters collected while flattening one document."""

    processing_time_ms: float = 0.0
    input_bytes: int = 0
    output_bytes: int = 0
    elements_indexed: int = 0
    references_resolved: int = 0
    references_unresolved: int = 0
    multirefs_suppressed: int = 0
    # longest chain of nested href expansions
    max_reference_depth: int = 0

    @property
    def total_references(self) -> int:
        """Number of href placeholders encountered."""
        return self.references_resolved + self.references_unresolved

    @property
    def resolution_rate(self) -> float:
        """Fraction of placeholders that found their target."""
        if self.total_references == 0:
            return 1.0
        return self.references_resolved / self.total_references

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processing_time_ms": self.processing_time_ms,
            "input_bytes": self.input_bytes,
            "output_bytes": self.output_bytes,
            "elements_indexed": self.elements_indexed,
            "references_resolved": self.references_resolved,
            "references_unresolved": self.references_unresolved,
            "multirefs_suppressed": self.multirefs_suppressed,
            "max_reference_depth": self.max_reference_depth,
            "resolution_rate": self.resolution_rate,
        }


@dataclass
class FlattenResult:
    """Flattened document plus diagnostics and metrics."""

    output: bytes = b""
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)
    metrics: FlattenMetrics = field(default_factory=FlattenMetrics)
    correlation_id: Optional[str] = None

    @property
    def success(self) -> bool:
        """True when every href placeholder found its target."""
        return not self.unresolved_references

    @property
    def unresolved_references(self) -> List[str]:
        """Ids referenced by an href but never declared."""
        return [
            diag.details["ref"]
            for diag in self.diagnostics
            if diag.code == "UNRESOLVED" and diag.details
        ]

    def add_diagnostic(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Add a diagnostic entry to the result."""
        self.diagnostics.append(
            DiagnosticEntry(
                severity=severity,
                message=message,
                component=component,
                code=code,
                details=details,
                correlation_id=self.correlation_id,
            )
        )

    def get_diagnostics_by_severity(
        self, severity: DiagnosticSeverity
    ) -> List[DiagnosticEntry]:
        """Get all diagnostics of a specific severity level."""
        return [diag for diag in self.diagnostics if diag.severity == severity]

    def summary(self) -> Dict[str, Any]:
        """Return a JSON-friendly summary of the operation."""
        return {
            "success": self.success,
            "correlation_id": self.correlation_id,
            "metrics": self.metrics.to_dict(),
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
        }
