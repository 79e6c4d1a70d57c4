"""Exception hierarchy for SOAP multiRef flattening and decoding.

All errors raised by the package derive from ``SoapMultirefError`` so callers
can catch everything at one seam, while still distinguishing malformed input
from reference problems, decode problems and SOAP faults.
"""

from typing import List, Optional


class SoapMultirefError(Exception):
    """Base class for all package errors."""


class MalformedXMLError(SoapMultirefError):
    """Input is not well-formed XML.

    Raised by the tokenizer and tree builder. No partial result is ever
    returned alongside this error.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None:
            return f"XML syntax error: {self.message}"
        return f"XML syntax error on line {self.line}, column {self.column}: {self.message}"


class FlattenError(SoapMultirefError):
    """Reference substitution could not be completed."""


class ReferenceCycleError(FlattenError):
    """An href chain leads back to an id that is still being expanded."""

    def __init__(self, chain: List[str]) -> None:
        self.chain = list(chain)
        path = " -> ".join(f"#{ref}" for ref in self.chain)
        super().__init__(f"Reference cycle detected: {path}")


class ReferenceDepthError(FlattenError):
    """An href chain nests more expansions than the configured limit."""

    def __init__(self, depth: int, limit: int) -> None:
        self.depth = depth
        self.limit = limit
        super().__init__(f"Reference depth {depth} exceeds limit of {limit} while flattening")


class DecodeError(SoapMultirefError):
    """Flattened XML could not be bound to the requested type."""


class SoapFault(SoapMultirefError):
    """A SOAP 1.1 Fault returned in a response Body."""

    def __init__(
        self,
        code: str = "",
        string: str = "",
        actor: str = "",
        detail: bytes = b"",
    ) -> None:
        self.code = code
        self.string = string
        self.actor = actor
        self.detail = detail
        super().__init__(string)

    def __str__(self) -> str:
        return self.string

    def __repr__(self) -> str:
        return f"SoapFault(code={self.code!r}, string={self.string!r}, actor={self.actor!r})"

    def to_dict(self) -> dict:
        """Return the fault as a JSON-friendly dictionary."""
        return {
            "faultcode": self.code,
            "faultstring": self.string,
            "faultactor": self.actor,
            "detail": self.detail.decode("utf-8", errors="replace"),
        }
