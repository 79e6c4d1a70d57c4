"""Reference resolution for SOAP multiRef documents.

Key Components:
    Flattener: Two-pass href substitution and re-serialization
    ReferenceIndex: Mapping from id value to declaring element
    build_reference_index: Depth-first indexing of a document
    flatten: Module-level convenience around Flattener
"""

from .flattener import Flattener, flatten
from .index import ReferenceIndex, build_reference_index

__all__ = [
    "Flattener",
    "ReferenceIndex",
    "build_reference_index",
    "flatten",
]
