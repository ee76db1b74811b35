"""The box tree: containers, boxes that carry a payload, and visitors over them."""

from __future__ import annotations

import copy
import dataclasses
from abc import ABC, abstractmethod
from typing import Any

from mp4tool.box_types import MP4FILE, REMOVED, BoxHead


def _as_head(head: BoxHead | int) -> BoxHead:
    if isinstance(head, BoxHead):
        return dataclasses.replace(head)
    return BoxHead(boxtype=head)


class Visitor:
    """Walks a box tree; subclasses override the hooks they care about.

    ``visit_container`` receives the container's own child list, so a visitor
    may rewrite it in place (for example ``boxes[:] = kept``).
    """

    def visit_container(self, head: BoxHead, boxes: list[Box]) -> None:
        for child in boxes:
            child.accept(self)

    def visit_data(self, head: BoxHead, data: Any) -> None:
        """Called for every box that carries a payload; does nothing by default."""


class Box(ABC):
    """A node of the box tree."""

    def __init__(self, head: BoxHead | int) -> None:
        self.head = _as_head(head)

    @abstractmethod
    def clone(self) -> Box:
        """Return a deep copy of this box and everything below it."""

    @abstractmethod
    def remove(self) -> None:
        """Blank this box out so that it takes no space in the output."""

    @abstractmethod
    def accept(self, visitor: Visitor) -> None:
        """Hand this box to the visitor."""

    @abstractmethod
    def select(self, boxtype: int) -> list[Box]:
        """Return every descendant of the given type, in depth-first order."""

    @abstractmethod
    def select_type(self, data_type: type) -> list[Box]:
        """Return every descendant whose payload is of the given type."""

    @abstractmethod
    def is_type(self, data_type: type) -> bool:
        """Tell whether this box carries a payload of exactly the given type."""

    def add_child(self, box: Box) -> None:
        raise TypeError(f"box {self.head.boxtype:#010x} cannot hold children")

    def __lshift__(self, box: Box) -> Box:
        self.add_child(box)
        return self


class ContainerBox(Box):
    """A box whose body is a sequence of other boxes."""

    def __init__(self, head: BoxHead | int, boxes: list[Box] | None = None) -> None:
        super().__init__(head)
        self.boxes: list[Box] = list(boxes) if boxes else []

    def clone(self) -> ContainerBox:
        twin = copy.copy(self)
        twin.head = dataclasses.replace(self.head)
        twin.boxes = [child.clone() for child in self.boxes]
        return twin

    def remove(self) -> None:
        self.head.offset = 0
        self.head.boxsize = 0
        self.head.boxheadsize = 0
        self.head.boxtype = REMOVED
        self.boxes.clear()

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_container(self.head, self.boxes)

    def select(self, boxtype: int) -> list[Box]:
        result: list[Box] = []
        for child in self.boxes:
            if child.head.boxtype == boxtype:
                result.append(child)
            result.extend(child.select(boxtype))
        return result

    def select_type(self, data_type: type) -> list[Box]:
        result: list[Box] = []
        for child in self.boxes:
            if child.is_type(data_type):
                result.append(child)
            result.extend(child.select_type(data_type))
        return result

    def is_type(self, data_type: type) -> bool:
        return False

    def add_child(self, box: Box) -> None:
        self.boxes.append(box)


class DataBox(Box):
    """A leaf box carrying one payload object from ``box_types``."""

    def __init__(self, head: BoxHead | int, data: Any) -> None:
        super().__init__(head)
        self.data = data

    def clone(self) -> DataBox:
        return DataBox(self.head, copy.deepcopy(self.data))

    def remove(self) -> None:
        self.head.offset = 0
        self.head.boxsize = 0
        self.head.boxheadsize = 0
        self.head.boxtype = REMOVED

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_data(self.head, self.data)

    def select(self, boxtype: int) -> list[Box]:
        return []

    def select_type(self, data_type: type) -> list[Box]:
        return []

    def is_type(self, data_type: type) -> bool:
        return type(self.data) is data_type


class Mp4File(ContainerBox):
    """The root of a box tree, remembering the path it came from."""

    def __init__(self, path: str) -> None:
        super().__init__(MP4FILE)
        self.path = path


def select(box: Box, boxtype: int) -> list[Box]:
    """Return ``box`` itself if it has the type, followed by matching descendants."""
    result: list[Box] = [box] if box.head.boxtype == boxtype else []
    result.extend(box.select(boxtype))
    return result


def select_data(box: Box, data_type: type) -> list[DataBox]:
    """Return ``box`` and its descendants whose payload is of the given type."""
    result: list[Box] = [box] if box.is_type(data_type) else []
    result.extend(box.select_type(data_type))
    return [found for found in result if isinstance(found, DataBox)]