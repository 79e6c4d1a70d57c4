"""Encoding detection and decoding of raw XML byte buffers.

Detection runs in sequence: Byte Order Mark, then the XML declaration, then
the UTF-8 default. Decoding is strict; undecodable input is reported as
malformed XML instead of being patched up.
"""

import codecs
import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Union

from soap_multiref.shared.errors import MalformedXMLError

DEFAULT_ENCODING = "utf-8"
DECLARATION_SCAN_LIMIT = 1024


class DetectionMethod(Enum):
    """Enumeration of encoding detection methods."""
    BOM = "bom"
    XML_DECLARATION = "xml_declaration"
    DEFAULT = "default"


@dataclass
class EncodingResult:
    """Result of encoding detection.

    Attributes:
        encoding: Detected encoding name (codec name)
        method: Detection method used
        bom_length: Number of leading bytes occupied by a BOM
    """
    encoding: str
    method: DetectionMethod
    bom_length: int = 0


class BOMDetector:
    """Byte Order Mark (BOM) detection for all major encodings."""

    BOM_PATTERNS: ClassVar[Dict[bytes, str]] = {
        b"\xef\xbb\xbf": "utf-8",
        b"\xff\xfe": "utf-16-le",
        b"\xfe\xff": "utf-16-be",
        b"\xff\xfe\x00\x00": "utf-32-le",
        b"\x00\x00\xfe\xff": "utf-32-be",
    }

    def detect(self, data: bytes) -> Optional[EncodingResult]:
        """Detect encoding based on BOM.

        Args:
            data: Byte data to analyze

        Returns:
            EncodingResult if BOM detected, None otherwise
        """
        if not data:
            return None

        # UTF-32 BOMs first, the UTF-16 LE BOM is a prefix of UTF-32 LE
        for bom_bytes, encoding in sorted(
            self.BOM_PATTERNS.items(), key=lambda x: len(x[0]), reverse=True
        ):
            if data.startswith(bom_bytes):
                return EncodingResult(
                    encoding=encoding,
                    method=DetectionMethod.BOM,
                    bom_length=len(bom_bytes),
                )

        return None


class XMLDeclarationParser:
    """Parser for XML encoding declarations."""

    XML_DECLARATION_PATTERN = re.compile(
        rb'^\s*<\?xml\s[^>]*?encoding\s*=\s*["\']([A-Za-z][A-Za-z0-9._-]*)["\']'
    )

    ALIASES: ClassVar[Dict[str, str]] = {
        "utf8": "utf-8",
        "iso-8859-1": "latin-1",
        "windows-1252": "cp1252",
    }

    def parse_declaration(self, data: bytes) -> Optional[EncodingResult]:
        """Parse encoding from XML declaration.

        Args:
            data: Byte data to analyze

        Returns:
            EncodingResult if a declaration names an encoding, None otherwise

        Raises:
            MalformedXMLError: If the declared encoding is unknown
        """
        match = self.XML_DECLARATION_PATTERN.match(data[:DECLARATION_SCAN_LIMIT])
        if not match:
            return None

        declared = match.group(1).decode("ascii").lower()
        encoding = self.ALIASES.get(declared, declared)
        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise MalformedXMLError(f"unsupported encoding {declared!r}") from e

        return EncodingResult(encoding=encoding, method=DetectionMethod.XML_DECLARATION)


class EncodingDetector:
    """Pick the encoding of an XML byte buffer."""

    def __init__(self) -> None:
        self.bom_detector = BOMDetector()
        self.declaration_parser = XMLDeclarationParser()

    def detect(self, data: bytes) -> EncodingResult:
        """Detect encoding using BOM, then declaration, then the default."""
        result = self.bom_detector.detect(data)
        if result is not None:
            return result

        result = self.declaration_parser.parse_declaration(data)
        if result is not None:
            return result

        return EncodingResult(encoding=DEFAULT_ENCODING, method=DetectionMethod.DEFAULT)


_detector = EncodingDetector()


def decode_document(data: Union[str, bytes]) -> str:
    """Return the text of an XML document given as ``str`` or ``bytes``.

    Args:
        data: Document as text or as a raw byte buffer

    Returns:
        Decoded text without any Byte Order Mark

    Raises:
        MalformedXMLError: If the bytes cannot be decoded
    """
    if isinstance(data, str):
        return data[1:] if data.startswith("\ufeff") else data

    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected str or bytes, got {type(data).__name__}")

    raw = bytes(data)
    result = _detector.detect(raw)
    try:
        return raw[result.bom_length:].decode(result.encoding)
    except UnicodeDecodeError as e:
        raise MalformedXMLError(
            f"invalid {result.encoding} byte sequence", offset=e.start
        ) from e
