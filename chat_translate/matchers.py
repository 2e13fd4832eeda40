"""Ordered matcher strategies for heuristic tree probing."""

from __future__ import annotations

import abc
from typing import Iterable, List, NamedTuple, Optional

from bs4 import Tag

from .signatures import (
    CHAT_RELATED_SELECTOR,
    CONTAINER_MIN_MESSAGES,
    CONTAINER_MIN_TEXT,
    MESSAGE_SHAPE_SELECTOR,
)


class Match(NamedTuple):
    matcher: "Matcher"
    node: Tag


class Matcher(abc.ABC):
    """One probing strategy. ``find`` returns a node on success, None on failure."""

    name = "matcher"

    @abc.abstractmethod
    def find(self, root: Tag) -> Optional[Tag]:
        raise NotImplementedError

    def find_all(self, root: Tag) -> List[Tag]:
        found = self.find(root)
        return [found] if found is not None else []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class SelectorMatcher(Matcher):
    """Matches descendants of the root against a CSS selector."""

    def __init__(self, selector: str):
        self.selector = selector
        self.name = selector

    def find(self, root: Tag) -> Optional[Tag]:
        return root.select_one(self.selector)

    def find_all(self, root: Tag) -> List[Tag]:
        return list(root.select(self.selector))


class DensityMatcher(Matcher):
    """Finds a chat-related element holding enough text and several messages."""

    name = "content-density"

    def __init__(
        self,
        candidates: str = CHAT_RELATED_SELECTOR,
        shape: str = MESSAGE_SHAPE_SELECTOR,
        min_text: int = CONTAINER_MIN_TEXT,
        min_messages: int = CONTAINER_MIN_MESSAGES,
    ):
        self.candidates = candidates
        self.shape = shape
        self.min_text = min_text
        self.min_messages = min_messages

    def find(self, root: Tag) -> Optional[Tag]:
        for element in root.select(self.candidates):
            if len(element.get_text()) <= self.min_text:
                continue
            if len(element.select(self.shape)) >= self.min_messages:
                return element
        return None


class MatcherChain:
    """Tries matchers in priority order."""

    def __init__(self, matchers: Iterable[Matcher]):
        self.matchers = list(matchers)

    @classmethod
    def from_selectors(cls, selectors: Iterable[str]) -> "MatcherChain":
        return cls(SelectorMatcher(s) for s in selectors)

    def first(self, root: Tag) -> Optional[Match]:
        for matcher in self.matchers:
            node = matcher.find(root)
            if node is not None:
                return Match(matcher, node)
        return None

    def union(self, root: Tag) -> List[Match]:
        """Every node any matcher finds, in priority order, each node once."""
        seen = set()
        matches: List[Match] = []
        for matcher in self.matchers:
            for node in matcher.find_all(root):
                if id(node) in seen:
                    continue
                seen.add(id(node))
                matches.append(Match(matcher, node))
        return matches
