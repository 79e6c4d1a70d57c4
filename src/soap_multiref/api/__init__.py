"""Public decode API."""

from .facade import flatten, flatten_with_report, parse_response, unmarshal

__all__ = [
    "flatten",
    "flatten_with_report",
    "parse_response",
    "unmarshal",
]
