"""Reference index: every element declaring an ``id``, keyed by that id."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from soap_multiref.tree import Element


@dataclass
class ReferenceIndex:
    """Mapping from id value to the element that declared it.

    Built fresh for every flatten call. When an id is declared twice the
    later-visited element wins and the id is listed in ``duplicates``.
    """

    entries: Dict[str, Element] = field(default_factory=dict)
    duplicates: List[str] = field(default_factory=list)
    elements_visited: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, ref_id: object) -> bool:
        return ref_id in self.entries

    def get(self, ref_id: str) -> Optional[Element]:
        return self.entries.get(ref_id)

    def record(self, ref_id: str, element: Element) -> None:
        if ref_id in self.entries:
            self.duplicates.append(ref_id)
        self.entries[ref_id] = element


def build_reference_index(
    elements: Iterable[Element], id_attribute: str = "id"
) -> ReferenceIndex:
    """Walk every element depth-first and index those carrying an id.

    Children are visited before their parent and siblings in document order.
    The walk keeps an explicit stack instead of recursing.

    Args:
        elements: Top-level elements of the document
        id_attribute: Local name of the id attribute, any prefix matches

    Returns:
        The populated ReferenceIndex

    Raises:
        MalformedXMLError: If some element content fails to re-parse
    """
    index = ReferenceIndex()
    stack: List[Tuple[Element, bool]] = [(element, False) for element in reversed(list(elements))]

    while stack:
        element, expanded = stack.pop()
        if not expanded:
            stack.append((element, True))
            stack.extend((child, False) for child in reversed(element.children()))
            continue

        index.elements_visited += 1
        ref_id = element.get(id_attribute)
        if ref_id is not None:
            index.record(ref_id, element)

    return index
