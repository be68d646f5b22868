"""Traversal Engine — walk a network's adjacency into a rooted tree.

Usage::

    from mepnet.graph import TraversalTree

    tree = TraversalTree.from_elements(elements, member_ids=network.element_ids)
    if tree.traverse():
        nested = tree.dump_top_down()
        flat = tree.dump_bottom_up()

The walk is a depth-first search driven by an explicit stack, visiting the
deepest branch first in adjacency discovery order.  Nodes live in an arena
(``tree.nodes``); parent and child links are arena indices.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from mepnet.config import ROOT_PARENT_SENTINEL
from mepnet.graph.connectivity import build_adjacency
from mepnet.models.element import PhysicalElement, describe_element

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeNode:
    """One element's position in the traversal tree."""

    element_id: int
    label: str
    parent: int | None
    """Arena index of the parent node, None for the root."""

    children: tuple[int, ...] = ()
    """Arena indices of the children, in discovery order."""


def choose_root(
    adjacency: Mapping[int, list[int]],
    root_id: int | None = None,
    base_element_id: int | None = None,
) -> int | None:
    """Pick the traversal root.

    An explicit *root_id* wins, then the system's designated base element,
    then the element with the most connections (first in membership order on
    ties).  Returns None for an empty graph.
    """
    if root_id is not None and root_id in adjacency:
        return root_id
    if base_element_id is not None and base_element_id in adjacency:
        return base_element_id

    best: int | None = None
    best_degree = -1
    for eid, neighbours in adjacency.items():
        if len(neighbours) > best_degree:
            best = eid
            best_degree = len(neighbours)
    return best


class TraversalTree:
    """Rooted, acyclic tree built from a network's connectivity graph.

    Parameters
    ----------
    adjacency:
        ``{element_id: [neighbour ids]}``; the keys are the membership set.
    root_id:
        Root element.  When omitted (or not a member) the root is chosen by
        :func:`choose_root`.
    labels:
        Optional display label per element id.
    base_element_id:
        Designated system base element, preferred over the degree heuristic.
    """

    def __init__(
        self,
        adjacency: Mapping[int, list[int]],
        root_id: int | None = None,
        labels: Mapping[int, str] | None = None,
        base_element_id: int | None = None,
    ) -> None:
        self._adjacency = {eid: list(nbrs) for eid, nbrs in adjacency.items()}
        self._labels = dict(labels or {})
        self._root_id = choose_root(self._adjacency, root_id, base_element_id)
        self._nodes: tuple[TreeNode, ...] = ()
        self._result: bool | None = None

    @classmethod
    def from_elements(
        cls,
        elements: Iterable[PhysicalElement],
        member_ids: Iterable[int] | None = None,
        root_id: int | None = None,
        base_element_id: int | None = None,
    ) -> TraversalTree:
        """Build the adjacency from *elements* and label nodes per category."""
        elements = list(elements)
        adjacency = build_adjacency(elements, member_ids)
        labels = {e.id: describe_element(e) for e in elements}
        return cls(adjacency, root_id=root_id, labels=labels, base_element_id=base_element_id)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def adjacency(self) -> dict[int, list[int]]:
        return self._adjacency

    @property
    def root_id(self) -> int | None:
        """The chosen root element id (available before traversal)."""
        return self._root_id

    @property
    def nodes(self) -> tuple[TreeNode, ...]:
        """Node arena in discovery order; empty unless traversal succeeded."""
        return self._nodes

    @property
    def root(self) -> TreeNode | None:
        return self._nodes[0] if self._nodes else None

    def __len__(self) -> int:
        return len(self._nodes)

    def label_for(self, element_id: int) -> str:
        return self._labels.get(element_id, f"Element {element_id}")

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def traverse(self) -> bool:
        """Walk the graph from the root.

        Returns True when every member was reached.  A False result means
        the graph has more than one connected component; no tree is kept.
        Repeated calls return the first result.
        """
        if self._result is not None:
            return self._result

        if self._root_id is None:
            self._result = False
            return False

        ids: list[int] = [self._root_id]
        parents: list[int | None] = [None]
        children: list[list[int]] = [[]]
        visited = {self._root_id}

        stack: list[tuple[int, Iterator[int]]] = [
            (0, iter(self._adjacency[self._root_id]))
        ]
        while stack:
            index, neighbours = stack[-1]
            for nid in neighbours:
                if nid in visited or nid not in self._adjacency:
                    continue
                visited.add(nid)
                child = len(ids)
                ids.append(nid)
                parents.append(index)
                children.append([])
                children[index].append(child)
                stack.append((child, iter(self._adjacency[nid])))
                break
            else:
                stack.pop()

        if len(visited) != len(self._adjacency):
            unreached = len(self._adjacency) - len(visited)
            logger.debug(
                "Traversal from %s left %d of %d elements unreached",
                self._root_id, unreached, len(self._adjacency),
            )
            self._result = False
            return False

        self._nodes = tuple(
            TreeNode(
                element_id=eid,
                label=self.label_for(eid),
                parent=parents[i],
                children=tuple(children[i]),
            )
            for i, eid in enumerate(ids)
        )
        self._result = True
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _require_tree(self) -> None:
        if not self._nodes:
            raise RuntimeError("No tree available: traverse() has not succeeded")

    def dump_bottom_up(self) -> list[dict[str, str]]:
        """Flat records ``{id, parent, text}`` in discovery order.

        The root's parent is ``"#"``; ids are strings.
        """
        self._require_tree()
        records: list[dict[str, str]] = []
        for node in self._nodes:
            if node.parent is None:
                parent = ROOT_PARENT_SENTINEL
            else:
                parent = str(self._nodes[node.parent].element_id)
            records.append({
                "id": str(node.element_id),
                "parent": parent,
                "text": node.label,
            })
        return records

    def dump_top_down(self) -> dict[str, Any]:
        """Nested ``{id, name, children}`` dict rooted at the tree root.

        Nesting depth equals tree depth; export with
        :meth:`dump_top_down_json`.
        """
        self._require_tree()
        records = [
            {"id": node.element_id, "name": node.label, "children": []}
            for node in self._nodes
        ]
        for node, record in zip(self._nodes, records):
            record["children"].extend(records[c] for c in node.children)
        return records[0]

    def dump_bottom_up_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.dump_bottom_up(), indent=indent)

    def dump_top_down_json(self) -> str:
        """Nested tree form as a compact JSON string.

        Encoded with an explicit stack, so the depth of the tree is not
        bounded by the interpreter's recursion limit.  The text is the same
        as ``json.dumps(self.dump_top_down())``.
        """
        self._require_tree()
        parts: list[str] = []
        # Arena indices to open, or literal text to emit
        pending: list[int | str] = [0]
        while pending:
            item = pending.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            node = self._nodes[item]
            parts.append(
                f'{{"id": {json.dumps(node.element_id)}, '
                f'"name": {json.dumps(node.label)}, "children": ['
            )
            pending.append("]}")
            for position in range(len(node.children) - 1, -1, -1):
                pending.append(node.children[position])
                if position:
                    pending.append(", ")
        return "".join(parts)


def edges_from_bottom_up(records: Iterable[Mapping[str, Any]]) -> set[tuple[str, str]]:
    """Rebuild ``(parent_id, child_id)`` edges from the flat tree form."""
    return {
        (str(r["parent"]), str(r["id"]))
        for r in records
        if r["parent"] != ROOT_PARENT_SENTINEL
    }


def edges_from_top_down(tree: Mapping[str, Any]) -> set[tuple[str, str]]:
    """Rebuild ``(parent_id, child_id)`` edges from the nested tree form."""
    edges: set[tuple[str, str]] = set()
    pending = [tree]
    while pending:
        node = pending.pop()
        for child in node.get("children") or ():
            edges.add((str(node["id"]), str(child["id"])))
            pending.append(child)
    return edges
