"""
Virtual elements and their HTML renderer.

Handlers may return markup as a tree instead of a string::

    def Card(props):
        return h("div", {"class": "card"}, props["title"])

    def page(request):
        return h("main", None, h(Card, {"title": "Hello"}))

A JSX-style ``{"type": ..., "props": {...}}`` mapping is accepted too and
converted with :func:`to_element`.
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from html import escape
from typing import Any, TypeAlias

from bifrost.exceptions import RenderError

MAX_RENDER_DEPTH: int = 100


@dataclass(frozen=True, slots=True)
class Text:
    value: str


@dataclass(frozen=True, slots=True)
class Fragment:
    children: tuple["Element", ...] = ()


@dataclass(frozen=True, slots=True)
class Tag:
    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    children: tuple["Element", ...] = ()


@dataclass(frozen=True, slots=True)
class Component:
    """A function of ``props`` producing more markup, resolved at render."""

    render: Callable[[dict[str, Any]], Any]
    props: dict[str, Any] = field(default_factory=dict)


Element: TypeAlias = Text | Fragment | Tag | Component

ELEMENT_TYPES: tuple[type, ...] = (Text, Fragment, Tag, Component)


def is_element_mapping(value: Any) -> bool:
    """True for ``{"type": <tag or callable>, "props": ...}`` shaped mappings."""
    if not isinstance(value, Mapping):
        return False
    if "type" not in value or "props" not in value:
        return False
    kind = value["type"]
    return (isinstance(kind, str) and bool(kind)) or callable(kind)


def h(kind: str | Callable[..., Any], props: Mapping[str, Any] | None = None, *children: Any) -> Element:
    """Build an element, hyperscript style."""
    props = dict(props or {})
    if children:
        props["children"] = list(children)
    if callable(kind):
        return Component(kind, props)
    return _tag(kind, props)


def to_element(value: Any, depth: int = 0) -> Element:
    """Coerce strings, numbers, lists and JSX-style mappings into elements."""
    _check_depth(depth)
    if isinstance(value, ELEMENT_TYPES):
        return value
    if value is None or value is False or value is True:
        return Text("")
    if isinstance(value, (str, int, float)):
        return Text(str(value))
    if isinstance(value, (bytes, bytearray)):
        return Text(bytes(value).decode("utf-8", errors="replace"))
    if isinstance(value, Mapping):
        if not is_element_mapping(value):
            raise RenderError(f"Mapping is not a renderable element: {value!r}")
        props = dict(value.get("props") or {})
        if callable(value["type"]):
            return Component(value["type"], props)
        return _tag(value["type"], props, depth)
    if isinstance(value, Sequence):
        return Fragment(tuple(to_element(item, depth + 1) for item in value))
    raise RenderError(f"Cannot render {type(value).__name__} as markup")


def _tag(name: str, props: dict[str, Any], depth: int = 0) -> Tag:
    children = props.pop("children", None)
    if children is None:
        nodes: tuple[Element, ...] = ()
    elif isinstance(children, (list, tuple)):
        nodes = tuple(to_element(child, depth + 1) for child in children)
    else:
        nodes = (to_element(children, depth + 1),)
    return Tag(name, props, nodes)


def render(node: Any) -> str:
    """Render an element tree (or anything :func:`to_element` accepts) to HTML."""
    return _render(to_element(node), 0)


def _check_depth(depth: int) -> None:
    if depth > MAX_RENDER_DEPTH:
        raise RenderError(
            f"Element tree deeper than {MAX_RENDER_DEPTH} levels; "
            "check for a component that renders itself"
        )


def _render(node: Element, depth: int) -> str:
    _check_depth(depth)

    if isinstance(node, Text):
        return node.value
    if isinstance(node, Fragment):
        return "".join(_render(child, depth + 1) for child in node.children)
    if isinstance(node, Component):
        return _render(to_element(node.render(node.props), depth + 1), depth + 1)

    attrs = render_attributes(node.attributes)
    inner = "".join(_render(child, depth + 1) for child in node.children)
    return f"<{node.name}{attrs}>{inner}</{node.name}>"


def render_attributes(attributes: Mapping[str, Any]) -> str:
    """Serialize attributes as `` name="value"`` pairs."""
    parts: list[str] = []
    for name, value in attributes.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}")
        else:
            parts.append(f' {name}="{escape(str(value), quote=True)}"')
    return "".join(parts)
