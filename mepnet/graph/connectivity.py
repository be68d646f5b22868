"""Connectivity Graph Builder — element adjacency from matched connectors.

Only symmetric connector pairs produce edges: if A's connector points at B's
connector, B's connector must point back at A's.  Anything else is treated
as malformed and dropped.  Links to elements outside the network are
ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from mepnet.models.element import PhysicalElement

logger = logging.getLogger(__name__)


def build_adjacency(
    elements: Iterable[PhysicalElement],
    member_ids: Iterable[int] | None = None,
) -> dict[int, list[int]]:
    """Return ``{element_id: [neighbour ids]}`` for one network.

    Parameters
    ----------
    elements:
        The network's elements with resolved connectors.
    member_ids:
        Optional membership order.  Defaults to the order of *elements*.
        Members with no matching element still appear as isolated keys.

    Every member is a key, in membership order; neighbour lists are in
    discovery order and free of duplicates.
    """
    by_id: dict[int, PhysicalElement] = {}
    for element in elements:
        by_id.setdefault(element.id, element)

    order = list(dict.fromkeys(member_ids)) if member_ids is not None else list(by_id)
    members = set(order)
    adjacency: dict[int, list[int]] = {eid: [] for eid in order}

    for eid in order:
        element = by_id.get(eid)
        if element is None:
            continue
        for conn in element.connectors:
            if conn.peer is None:
                continue
            peer_id = conn.peer.element_id
            if peer_id == eid or peer_id not in members:
                continue

            peer = by_id.get(peer_id)
            peer_conn = peer.connector(conn.peer.connector_id) if peer else None
            if (
                peer_conn is None
                or peer_conn.peer is None
                or peer_conn.peer.element_id != eid
                or peer_conn.peer.connector_id != conn.id
            ):
                logger.debug(
                    "Dropping asymmetric connection %s:%s -> %s:%s",
                    eid, conn.id, peer_id, conn.peer.connector_id,
                )
                continue

            if peer_id not in adjacency[eid]:
                adjacency[eid].append(peer_id)
            if eid not in adjacency[peer_id]:
                adjacency[peer_id].append(eid)

    return adjacency


def element_degree(adjacency: dict[int, list[int]], element_id: int) -> int:
    """Number of distinct elements directly connected to *element_id*."""
    return len(adjacency.get(element_id, ()))
