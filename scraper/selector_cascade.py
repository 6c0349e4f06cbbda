"""Ordered-fallback CSS lookups over BeautifulSoup nodes."""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Union

from bs4 import Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    """
    One step of a field lookup.

    Attributes:
        selector: CSS selector evaluated relative to the card
        attr: Read this attribute instead of the element text
        postprocess: Optional cleanup; returning a falsy value moves on
    """
    selector: str
    attr: Optional[str] = None
    postprocess: Optional[Callable[[str], Optional[str]]] = None


Rule = Union[str, FieldRule]


def _as_rule(rule: Rule) -> FieldRule:
    return rule if isinstance(rule, FieldRule) else FieldRule(rule)


def _select(node: Tag, selector: str) -> List[Tag]:
    try:
        return node.select(selector)
    except SelectorSyntaxError as e:
        logger.warning(f"Invalid selector '{selector}': {e}")
        return []


def _value(element: Tag, attr: Optional[str]) -> str:
    if attr:
        value = element.get(attr) or ''
        if isinstance(value, list):
            value = ' '.join(value)
        return value.strip()
    return element.get_text(' ', strip=True)


def first_match(node: Optional[Tag], selectors: Iterable[Rule]) -> Optional[str]:
    """
    Return the trimmed value of the earliest selector that yields text.

    Selectors are tried strictly in order; within one selector the first
    matching element with a non-empty value wins.

    Args:
        node: Card or document node to search under
        selectors: Ordered CSS selectors or FieldRule entries

    Returns:
        Matched text, or None when no selector produced a value
    """
    if node is None:
        return None

    for rule in map(_as_rule, selectors):
        for element in _select(node, rule.selector):
            value = _value(element, rule.attr)
            if value and rule.postprocess:
                value = rule.postprocess(value)
            if value:
                return value.strip()
    return None


def first_nonempty_set(node: Tag, selectors: Sequence[str]) -> List[Tag]:
    """Return elements for the first selector that matches anything."""
    for selector in selectors:
        elements = _select(node, selector)
        if elements:
            logger.debug(f"Selector '{selector}' matched {len(elements)} elements")
            return elements
    return []


@dataclass(frozen=True)
class ElementFilter:
    """
    Predicate excluding navigation/filter/menu noise from card candidates.

    Attributes:
        class_denylist: Substrings that disqualify a node when found in its classes
        text_denylist: Phrases that disqualify a node whose text equals or starts with them
        min_text_length: Nodes with less text than this are ignored
    """
    class_denylist: Sequence[str] = ('nav', 'menu', 'filter', 'breadcrumb', 'pagination', 'footer', 'header')
    text_denylist: Sequence[str] = ()
    min_text_length: int = 3

    def __call__(self, element: Tag) -> bool:
        classes = ' '.join(element.get('class') or []).lower()
        if any(token in classes for token in self.class_denylist):
            return False

        text = element.get_text(' ', strip=True)
        if len(text) < self.min_text_length:
            return False

        lowered = text.lower()
        for phrase in self.text_denylist:
            phrase = phrase.lower()
            if lowered == phrase or lowered.startswith(phrase):
                return False
        return True
