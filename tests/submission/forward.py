"""Annotations that cannot be resolved at runtime."""

from __future__ import annotations

from typing import ClassVar

from .model import Item


class Node:
    parent: Missing
    children: list[Item]
    registry: ClassVar[dict[str, Node]]
    label: str | None
