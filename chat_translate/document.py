"""
Observable host document.

``HostDocument`` is the narrow interface the translator needs from the page it
annotates: selector queries, a handful of targeted mutations, and
MutationObserver-style subscriptions scoped to a subtree.

``SoupDocument`` implements it on top of BeautifulSoup. The same object is
used by whatever drives the page (a chat client, a replay feed, tests) to
append, remove and rebuild nodes. Mutation records are queued per
subscription and delivered in one batch on the next event-loop iteration,
so a burst of insertions reaches the observer together.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

logger = logging.getLogger(__name__)

MutationCallback = Callable[[List["MutationRecord"]], None]
VisibilityListener = Callable[[bool], None]


@dataclass
class MutationRecord:
    """One structural change under ``target``."""
    target: Tag
    added_nodes: List[PageElement] = field(default_factory=list)
    removed_nodes: List[PageElement] = field(default_factory=list)


class Subscription:
    """Handle for a live subtree observation."""

    def __init__(self, document: "HostDocument", target: Tag, callback: MutationCallback):
        self.document = document
        self.target = target
        self.callback = callback
        self.active = True
        self._pending: List[MutationRecord] = []

    def take_records(self) -> List[MutationRecord]:
        records, self._pending = self._pending, []
        return records

    def disconnect(self) -> None:
        if self.active:
            self.active = False
            self._pending = []
            self.document.unobserve(self)


class HostDocument(abc.ABC):
    """Structural probing and targeted mutation of a document tree."""

    @property
    @abc.abstractmethod
    def root(self) -> Tag:
        raise NotImplementedError

    @abc.abstractmethod
    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        raise NotImplementedError

    @abc.abstractmethod
    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        raise NotImplementedError

    @abc.abstractmethod
    def is_attached(self, node: PageElement) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def observe(self, target: Tag, callback: MutationCallback) -> Subscription:
        """Subscribe to child-list changes anywhere under ``target``."""
        raise NotImplementedError

    @abc.abstractmethod
    def unobserve(self, subscription: Subscription) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def create_element(self, name: str, attrs: Optional[Dict[str, object]] = None, text: Optional[str] = None) -> Tag:
        raise NotImplementedError

    @abc.abstractmethod
    def set_text(self, node: Tag, text: str) -> None:
        """Replace all children of ``node`` with a single text node."""
        raise NotImplementedError

    @abc.abstractmethod
    def set_attribute(self, node: Tag, name: str, value: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def append_child(self, parent: Tag, child: PageElement) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, node: PageElement) -> None:
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def hidden(self) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def add_visibility_listener(self, listener: VisibilityListener) -> None:
        raise NotImplementedError


class SoupDocument(HostDocument):
    """BeautifulSoup-backed document with subtree mutation observers."""

    def __init__(self, markup: str = "<html><body></body></html>", parser: str = "html.parser"):
        self.parser = parser
        self._soup = BeautifulSoup(markup, parser)
        self._subscriptions: List[Subscription] = []
        self._flush_scheduled = False
        self._hidden = False
        self._visibility_listeners: List[VisibilityListener] = []

    @classmethod
    def from_file(cls, path: Union[str, Path], parser: str = "html.parser") -> "SoupDocument":
        with open(path, 'r', encoding='utf-8') as f:
            return cls(f.read(), parser=parser)

    # Probing

    @property
    def root(self) -> Tag:
        return self._soup

    @property
    def body(self) -> Tag:
        return self._soup.body or self._soup

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        return list((root if root is not None else self._soup).select(selector))

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        return (root if root is not None else self._soup).select_one(selector)

    def is_attached(self, node: PageElement) -> bool:
        return node is self._soup or _has_ancestor(node, self._soup)

    def to_html(self) -> str:
        return str(self._soup)

    def save(self, path: Union[str, Path]) -> None:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_html())

    # Observation

    def observe(self, target: Tag, callback: MutationCallback) -> Subscription:
        subscription = Subscription(self, target, callback)
        self._subscriptions.append(subscription)
        return subscription

    def unobserve(self, subscription: Subscription) -> None:
        subscription.active = False
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    @property
    def observer_count(self) -> int:
        return len(self._subscriptions)

    def _record(self, record: MutationRecord) -> None:
        queued = False
        for subscription in self._subscriptions:
            if record.target is subscription.target or _has_ancestor(record.target, subscription.target):
                subscription._pending.append(record)
                queued = True
        if not queued or self._flush_scheduled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (synchronous use): deliver right away
            self._flush()
            return
        self._flush_scheduled = True
        loop.call_soon(self._flush)

    def _flush(self) -> None:
        self._flush_scheduled = False
        for subscription in list(self._subscriptions):
            records = subscription.take_records()
            if not records or not subscription.active:
                continue
            try:
                subscription.callback(records)
            except Exception:
                logger.exception("Mutation callback failed")

    # Mutation used by the translator

    def create_element(self, name: str, attrs: Optional[Dict[str, object]] = None, text: Optional[str] = None) -> Tag:
        tag = self._soup.new_tag(name, attrs=dict(attrs or {}))
        if text is not None:
            tag.string = text
        return tag

    def set_text(self, node: Tag, text: str) -> None:
        removed = list(node.contents)
        node.string = text
        self._record(MutationRecord(node, added_nodes=list(node.contents), removed_nodes=removed))

    def set_attribute(self, node: Tag, name: str, value: str) -> None:
        node[name] = value

    def append_child(self, parent: Tag, child: PageElement) -> None:
        parent.append(child)
        self._record(MutationRecord(parent, added_nodes=[child]))

    def remove(self, node: PageElement) -> None:
        parent = node.parent
        node.extract()
        if parent is not None:
            self._record(MutationRecord(parent, removed_nodes=[node]))

    # Mutation used by the page itself

    def append(self, parent: Tag, content: Union[str, PageElement]) -> List[Tag]:
        """Append markup (or an element) to ``parent`` as one batch.

        Returns the top-level elements that were inserted.
        """
        nodes = self._to_nodes(content)
        for node in nodes:
            parent.append(node)
        if nodes:
            self._record(MutationRecord(parent, added_nodes=nodes))
        return [n for n in nodes if isinstance(n, Tag)]

    def replace_body(self, markup: str) -> List[Tag]:
        """Tear down the body and rebuild it, as a single-page navigation does."""
        body = self.body
        removed = list(body.contents)
        for node in removed:
            node.extract()
        nodes = self._to_nodes(markup)
        for node in nodes:
            body.append(node)
        self._record(MutationRecord(body, added_nodes=nodes, removed_nodes=removed))
        return [n for n in nodes if isinstance(n, Tag)]

    # Visibility

    @property
    def hidden(self) -> bool:
        return self._hidden

    def add_visibility_listener(self, listener: VisibilityListener) -> None:
        self._visibility_listeners.append(listener)

    def set_hidden(self, hidden: bool) -> None:
        if hidden == self._hidden:
            return
        self._hidden = hidden
        for listener in list(self._visibility_listeners):
            listener(hidden)

    def _to_nodes(self, content: Union[str, PageElement]) -> List[PageElement]:
        if isinstance(content, str):
            fragment = BeautifulSoup(content, self.parser)
            return [node.extract() for node in list(fragment.contents)]
        return [content]


def _has_ancestor(node: PageElement, ancestor: PageElement) -> bool:
    # Identity walk: bs4 tags compare structurally with ==
    return any(parent is ancestor for parent in node.parents)


def iter_elements(nodes: Iterable[PageElement]) -> List[Tag]:
    """Filter a node list down to elements."""
    return [n for n in nodes if isinstance(n, Tag)]
