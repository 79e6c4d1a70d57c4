"""Reference flattening for SOAP multiRef documents.

SOAP encoders such as Apache Axis serialize a shared value once, in a sibling
element carrying ``id="X"``, and leave ``href="#X"`` placeholders wherever the
value is used. Flattening copies the referenced content into each placeholder
and drops the ``multiRef`` containers, giving a self-contained document that
ordinary tree-structured binding can decode.

Flattening runs in two passes over the same buffer:

1. Index pass: every element with an id is recorded (last one wins).
2. Substitution pass: over a freshly built tree, placeholders receive the
   referenced content, children are flattened in turn and each element is
   re-serialized.

The substitution pass walks the tree with an explicit stack, so element
nesting is not limited. Reference cycles are detected through the stack of
ids being expanded, and the length of that stack is bounded by
``FlattenConfig.max_depth``.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Union

from soap_multiref.shared import (
    DiagnosticSeverity,
    FlattenConfig,
    FlattenResult,
    ReferenceCycleError,
    ReferenceDepthError,
    get_logger,
)
from soap_multiref.tree import Element, ElementTreeBuilder, Node, serialize_element

from .index import ReferenceIndex, build_reference_index

COMPONENT = "reference_flattener"


@dataclass
class _FlattenState:
    """Everything that belongs to one flatten call."""

    index: ReferenceIndex
    result: FlattenResult
    expanding: List[str] = field(default_factory=list)


@dataclass
class _Frame:
    """An element whose children are being flattened."""

    element: Element
    nodes: List[Node]
    expanded_ref: Optional[str]
    parts: List[str] = field(default_factory=list)
    position: int = 0


class Flattener:
    """Replaces href placeholders with the content they reference.

    The instance only holds configuration; all per-document state lives in
    the call, so a single Flattener may serve several threads.
    """

    def __init__(
        self,
        config: Optional[FlattenConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the flattener.

        Args:
            config: Flatten configuration, defaults to ``FlattenConfig()``
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or FlattenConfig()
        self.correlation_id = correlation_id
        self.builder = ElementTreeBuilder(correlation_id)
        self.logger = get_logger(__name__, correlation_id, COMPONENT)

    def flatten(self, data: Union[str, bytes]) -> bytes:
        """Return ``data`` with every resolvable reference substituted.

        Args:
            data: Complete XML document as bytes (UTF-8 unless declared
                otherwise) or text

        Returns:
            The flattened document, UTF-8 encoded

        Raises:
            MalformedXMLError: If the input is not well-formed
            ReferenceCycleError: If an href chain loops back on itself
            ReferenceDepthError: If an href chain is longer than the configured limit
        """
        return self.flatten_with_report(data).output

    def flatten_with_report(self, data: Union[str, bytes]) -> FlattenResult:
        """Flatten ``data`` and report what the substitution pass did.

        Raises the same errors as :meth:`flatten`; unresolved references and
        duplicate ids are not errors and only show up as diagnostics.
        """
        start_time = time.time()
        result = FlattenResult(correlation_id=self.correlation_id)
        if isinstance(data, str):
            result.metrics.input_bytes = len(data.encode("utf-8"))
        else:
            result.metrics.input_bytes = len(data)

        index = build_reference_index(self.builder.build(data), self.config.id_attribute)
        result.metrics.elements_indexed = index.elements_visited
        for ref_id in index.duplicates:
            result.add_diagnostic(
                DiagnosticSeverity.INFO,
                f"Duplicate id {ref_id!r}; the later declaration is used",
                COMPONENT,
                code="DUPLICATE_ID",
                details={"ref": ref_id},
            )

        state = _FlattenState(index=index, result=result)
        parts: List[str] = []
        for node in self.builder.build_nodes(data):
            if isinstance(node, Element):
                parts.append(self._flatten_element(node, state))
            elif self.config.preserve_text:
                parts.append(node)

        result.output = "".join(parts).encode("utf-8")
        result.metrics.output_bytes = len(result.output)
        result.metrics.processing_time_ms = (time.time() - start_time) * 1000

        self.logger.info(
            "Flattening completed",
            extra={
                "ids_indexed": len(index),
                "references_resolved": result.metrics.references_resolved,
                "references_unresolved": result.metrics.references_unresolved,
                "multirefs_suppressed": result.metrics.multirefs_suppressed,
                "processing_time_ms": result.metrics.processing_time_ms,
            }
        )
        return result

    def _flatten_element(self, element: Element, state: _FlattenState) -> str:
        """Flatten one top-level element and return its markup.

        Children are handled in post-order with an explicit stack of frames,
        one per open element.
        """
        entered = self._enter(element, state)
        if isinstance(entered, str):
            return entered

        stack = [entered]
        while True:
            frame = stack[-1]
            if frame.position < len(frame.nodes):
                node = frame.nodes[frame.position]
                frame.position += 1
                if not isinstance(node, Element):
                    frame.parts.append(node)
                    continue
                child = self._enter(node, state)
                if isinstance(child, str):
                    frame.parts.append(child)
                else:
                    stack.append(child)
                continue

            stack.pop()
            markup = self._leave(frame, state)
            if not stack:
                return markup
            stack[-1].parts.append(markup)

    def _enter(self, element: Element, state: _FlattenState) -> Union[str, _Frame]:
        """Open ``element``; suppressed elements come back as finished markup."""
        # Axis wraps reference targets in sibling multiRef elements
        if self.config.suppress_multiref and element.local_name == self.config.multiref_tag:
            state.result.metrics.multirefs_suppressed += 1
            return ""

        expanded_ref = self._substitute(element, state)

        if self.config.preserve_text:
            nodes = element.nodes()
        else:
            nodes = list(element.children())
        if not any(isinstance(node, Element) for node in nodes):
            # no children: content is kept as is
            nodes = []
        return _Frame(element=element, nodes=nodes, expanded_ref=expanded_ref)

    def _leave(self, frame: _Frame, state: _FlattenState) -> str:
        if frame.nodes:
            frame.element.content = "".join(frame.parts)
        if frame.expanded_ref is not None:
            state.expanding.pop()
        return serialize_element(frame.element)

    def _substitute(self, element: Element, state: _FlattenState) -> Optional[str]:
        """Copy referenced content into a placeholder.

        Returns the id pushed onto the expansion stack, or None when nothing
        was substituted.
        """
        ref_id = self._find_href(element)
        if ref_id is None:
            return None

        target = state.index.get(ref_id)
        if target is None:
            state.result.metrics.references_unresolved += 1
            state.result.add_diagnostic(
                DiagnosticSeverity.WARNING,
                f"No element declares id {ref_id!r}; <{element.tag}> left unchanged",
                COMPONENT,
                code="UNRESOLVED",
                details={"ref": ref_id, "element": element.tag},
            )
            self.logger.warning("Unresolved reference", extra={"ref": ref_id})
            return None

        if self.config.detect_cycles and ref_id in state.expanding:
            raise ReferenceCycleError(state.expanding + [ref_id])

        depth = len(state.expanding) + 1
        if depth > self.config.max_depth:
            raise ReferenceDepthError(depth, self.config.max_depth)

        element.content = target.content
        metrics = state.result.metrics
        metrics.references_resolved += 1
        metrics.max_reference_depth = max(metrics.max_reference_depth, depth)
        state.expanding.append(ref_id)
        return ref_id

    def _find_href(self, element: Element) -> Optional[str]:
        value = element.get(self.config.href_attribute)
        if value is not None and len(value) > 1 and value[0] == "#":
            return value[1:]
        return None


def flatten(
    data: Union[str, bytes],
    config: Optional[FlattenConfig] = None,
    correlation_id: Optional[str] = None
) -> bytes:
    """Flatten ``data`` with a one-off :class:`Flattener`."""
    return Flattener(config, correlation_id).flatten(data)
