"""Character layer: turns raw XML byte buffers into text.

Key Components:
    EncodingDetector: BOM / XML declaration / default encoding detection
    decode_document: Strict decoding of ``str`` or ``bytes`` input
"""

from .encoding import (
    BOMDetector,
    DetectionMethod,
    EncodingDetector,
    EncodingResult,
    XMLDeclarationParser,
    decode_document,
)

__all__ = [
    "BOMDetector",
    "DetectionMethod",
    "EncodingDetector",
    "EncodingResult",
    "XMLDeclarationParser",
    "decode_document",
]
