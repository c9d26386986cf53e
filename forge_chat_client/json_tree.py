"""Collapsible tree view over arbitrary JSON values.

Every node carries its own expansion flag. Expanding a node builds its
immediate children collapsed; collapsing it drops them again, so nothing a
node does reaches its siblings or ancestors. Traversals use an explicit stack
and a composite deeper than ``max_depth`` is shown as a truncation marker.
"""

import json
from html import escape
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

Label = Union[str, int, None]

TRUNCATION_MARKER = "[truncated]"
DEFAULT_HTML_MAX_DEPTH = 64


def is_composite(value: Any) -> bool:
    return isinstance(value, (dict, list))


def kind_label(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return "Array"
    if isinstance(value, dict):
        return "Object"
    return None


def literal(value: Any) -> str:
    """JSON literal text of a scalar, strings quoted"""
    return json.dumps(value, ensure_ascii=False)


def child_items(value: Any) -> Iterator[Tuple[Label, Any]]:
    """Children of a composite: properties in insertion order or elements by index"""
    if isinstance(value, dict):
        yield from value.items()
    elif isinstance(value, list):
        yield from enumerate(value)


class JsonNode:
    def __init__(
        self,
        value: Any,
        label: Label = None,
        expanded: bool = False,
        depth: int = 0,
        max_depth: Optional[int] = None,
    ):
        self.value = value
        self.label = label
        self.depth = depth
        self.max_depth = max_depth
        self.expanded = False
        self.children: List["JsonNode"] = []
        if expanded:
            self.expand()

    @property
    def is_composite(self) -> bool:
        return is_composite(self.value)

    @property
    def truncated(self) -> bool:
        return (
            self.is_composite
            and self.max_depth is not None
            and self.depth >= self.max_depth
        )

    @property
    def text(self) -> str:
        if self.is_composite:
            return kind_label(self.value)
        return literal(self.value)

    def expand(self) -> None:
        if not self.is_composite or self.expanded:
            return
        self.expanded = True
        if self.truncated:
            return
        self.children = [
            JsonNode(child, label=label, depth=self.depth + 1, max_depth=self.max_depth)
            for label, child in child_items(self.value)
        ]

    def collapse(self) -> None:
        self.expanded = False
        self.children = []

    def toggle(self) -> bool:
        if self.expanded:
            self.collapse()
        else:
            self.expand()
        return self.expanded

    def find(self, path: Sequence[Label]) -> "JsonNode":
        """Visible descendant reached by following labels; raises KeyError"""
        node = self
        for label in path:
            for child in node.children:
                if child.label == label:
                    node = child
                    break
            else:
                raise KeyError(f"No visible child {label!r} under {node.label!r}")
        return node

    def display(self) -> str:
        prefix = "" if self.label is None else f"{self.label}: "
        if not self.is_composite:
            return prefix + self.text
        marker = "▾" if self.expanded else "▸"
        line = f"{prefix}{marker} {self.text}"
        if self.expanded and self.truncated:
            line += f" {TRUNCATION_MARKER}"
        return line

    def lines(self, indent: str = "  ") -> List[str]:
        out = []
        stack = [(self, 0)]
        while stack:
            node, level = stack.pop()
            out.append(indent * level + node.display())
            stack.extend((child, level + 1) for child in reversed(node.children))
        return out

    def __repr__(self) -> str:
        return f"JsonNode(label={self.label!r}, text={self.text!r}, expanded={self.expanded})"


def render(value: Any, expanded: bool = False, max_depth: Optional[int] = None) -> JsonNode:
    """Builds a fresh tree; only the root honours ``expanded``"""
    return JsonNode(value, expanded=expanded, max_depth=max_depth)


def render_html(
    value: Any,
    expanded: bool = False,
    max_depth: Optional[int] = DEFAULT_HTML_MAX_DEPTH,
) -> str:
    """Nested <details> markup; the browser keeps each node's open state on its own"""
    parts = []
    stack: List[Union[str, Tuple[Label, Any, int, bool]]] = [(None, value, 0, expanded)]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue

        label, node_value, depth, is_open = item
        key = "" if label is None else f'<span class="json-key">{escape(str(label))}: </span>'

        if not is_composite(node_value):
            parts.append(
                f'<div class="json-leaf">{key}'
                f'<span class="json-scalar">{escape(literal(node_value))}</span></div>'
            )
            continue
        if max_depth is not None and depth >= max_depth:
            parts.append(
                f'<div class="json-leaf">{key}{kind_label(node_value)} '
                f'<span class="json-truncated">{TRUNCATION_MARKER}</span></div>'
            )
            continue

        open_attr = " open" if is_open else ""
        parts.append(
            f'<details class="json-node"{open_attr}><summary>{key}{kind_label(node_value)}</summary>'
            '<div class="json-children">'
        )
        stack.append("</div></details>")
        children = [(child_label, child, depth + 1, False) for child_label, child in child_items(node_value)]
        stack.extend(reversed(children))
    return "".join(parts)
