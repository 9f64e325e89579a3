"""
Display rows and actions produced by classifiers.

Contains the value objects persisted alongside every resolved entity:
- Item: a key/value row (lower priority renders first)
- Action: a link rendered as a button
- ActionStyle: visual weight of an action
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ActionStyle(str, Enum):
    """Visual weight of an action."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    DANGER = "danger"


@dataclass(eq=False)
class Item:
    """
    A single key/value row of a resolved identifier.

    Equality only looks at what a reader sees (title, value, tooltip, link and
    whether the value is rendered as a nested identifier). Priority and the
    type-priority hint are ordering data and do not take part in it.
    """

    priority: int
    title: str
    value: str
    tooltip: Optional[str] = None
    link: Optional[str] = None
    value_regex: Optional[str] = None
    render_dynamically: bool = True
    estimated_type_priority: int = 0

    def _identity(self) -> tuple:
        return (self.title, self.value, self.tooltip, self.link, self.render_dynamically)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def is_valid_value(self) -> bool:
        """Check the value against ``value_regex``; items without one are always valid."""
        if not self.value_regex:
            return True
        return re.search(self.value_regex, self.value or "") is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "title": self.title,
            "value": self.value,
            "tooltip": self.tooltip,
            "link": self.link,
            "value_regex": self.value_regex,
            "render_dynamically": self.render_dynamically,
            "estimated_type_priority": self.estimated_type_priority,
        }


@dataclass(frozen=True)
class Action:
    """A link shown as a button. Equality covers all four fields."""

    priority: int
    title: str
    link: str
    style: ActionStyle = field(default=ActionStyle.SECONDARY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "title": self.title,
            "link": self.link,
            "style": ActionStyle(self.style).value,
        }


def sort_items(items: Iterable[Item]) -> List[Item]:
    """Order by priority, then type-priority hint, ties broken on the title."""
    return sorted(items, key=lambda i: (i.priority, i.estimated_type_priority, i.title))


def sort_actions(actions: Iterable[Action]) -> List[Action]:
    return sorted(actions, key=lambda a: (a.priority, a.title))


def unique_items(items: Iterable[Item]) -> List[Item]:
    """Drop structurally equal rows, keeping the first occurrence."""
    seen: set = set()
    result: List[Item] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def unique_actions(actions: Iterable[Action]) -> List[Action]:
    seen: set = set()
    result: List[Action] = []
    for action in actions:
        if action in seen:
            continue
        seen.add(action)
        result.append(action)
    return result
