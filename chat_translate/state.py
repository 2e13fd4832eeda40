"""
Per-node annotation side table.

Nodes belong to the host document; the translator only annotates them. The
annotations are kept here, keyed by node identity and held through weak
references, so they survive changes to a node's children and disappear once
the page drops the node.
"""

from __future__ import annotations

import weakref
from enum import Enum
from typing import Dict, Iterator, Optional

from bs4 import Tag


class ProcessingState(Enum):
    UNTOUCHED = "untouched"
    IN_FLIGHT = "in_flight"
    DONE = "done"


class _Annotation:
    __slots__ = ("ref", "state", "original_text")

    def __init__(self, ref: weakref.ref):
        self.ref = ref
        self.state = ProcessingState.UNTOUCHED
        self.original_text: Optional[str] = None


class NodeStateTable:
    """Processing state and provenance for nodes the pipeline has touched."""

    def __init__(self):
        # bs4 tags hash and compare by markup, so key on id() instead
        self._annotations: Dict[int, _Annotation] = {}

    def _entry(self, node: Tag) -> _Annotation:
        key = id(node)
        annotation = self._annotations.get(key)
        if annotation is None or annotation.ref() is not node:
            ref = weakref.ref(node, lambda _ref, key=key: self._discard(key, _ref))
            annotation = _Annotation(ref)
            self._annotations[key] = annotation
        return annotation

    def _discard(self, key: int, ref: weakref.ref) -> None:
        annotation = self._annotations.get(key)
        if annotation is not None and annotation.ref is ref:
            del self._annotations[key]

    def state(self, node: Tag) -> ProcessingState:
        annotation = self._annotations.get(id(node))
        if annotation is None or annotation.ref() is not node:
            return ProcessingState.UNTOUCHED
        return annotation.state

    def original_text(self, node: Tag) -> Optional[str]:
        annotation = self._annotations.get(id(node))
        if annotation is None or annotation.ref() is not node:
            return None
        return annotation.original_text

    def try_begin(self, node: Tag) -> bool:
        """Move an untouched node to in-flight. False if it was not untouched."""
        annotation = self._entry(node)
        if annotation.state is not ProcessingState.UNTOUCHED:
            return False
        annotation.state = ProcessingState.IN_FLIGHT
        return True

    def release(self, node: Tag) -> None:
        """Return an in-flight node to untouched so a later scan retries it."""
        annotation = self._annotations.get(id(node))
        if annotation is not None and annotation.state is ProcessingState.IN_FLIGHT:
            annotation.state = ProcessingState.UNTOUCHED

    def mark_done(self, node: Tag, original_text: str) -> None:
        annotation = self._entry(node)
        if annotation.original_text is None:
            annotation.original_text = original_text
        annotation.state = ProcessingState.DONE

    def reset(self, node: Tag) -> None:
        """Make a done node eligible again; its recorded original is kept."""
        annotation = self._annotations.get(id(node))
        if annotation is not None:
            annotation.state = ProcessingState.UNTOUCHED

    def is_busy(self, node: Tag) -> bool:
        return self.state(node) is not ProcessingState.UNTOUCHED

    def nodes_in(self, state: ProcessingState) -> Iterator[Tag]:
        for annotation in list(self._annotations.values()):
            node = annotation.ref()
            if node is not None and annotation.state is state:
                yield node

    def __len__(self) -> int:
        return len(self._annotations)
