"""
Read-only view of the forwarding chain: user, deployed drones and AP sorted by x
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from drone_node import Node, NodeKind, Relay
from estimator import LinkEstimator
from mobility import MobilityError, MobilityOracle, Vector


@dataclass(frozen=True)
class ChainNode:
    nid: int
    kind: NodeKind
    label: str
    position: Vector

    @property
    def x(self) -> float:
        return self.position[0]


@dataclass(frozen=True)
class Hop:
    left: ChainNode
    right: ChainNode
    distance: float     # euclidean, meters
    rssi: float         # one estimate per snapshot

    @property
    def dx(self) -> float:
        return self.right.x - self.left.x


class ChainView:
    """Snapshot of the chain taken at construction. Build a new one whenever positions change.

    Deployed relays the mobility backend cannot place are left out of the chain
    and listed in `unplaced`. Each hop's RSSI is estimated once, so every reader
    of the same snapshot sees the same value.
    """

    def __init__(self, mobility: MobilityOracle, estimator: LinkEstimator,
                 user: Node, ap: Node, relays: Sequence[Relay]):
        self.estimator = estimator
        self.unplaced: List[Relay] = []
        members = [ChainNode(user.nid, user.kind, user.label, mobility.position(user.nid))]
        for relay in relays:
            if not relay.deployed:
                continue
            try:
                position = mobility.position(relay.nid)
            except MobilityError:
                self.unplaced.append(relay)
                continue
            members.append(ChainNode(relay.nid, NodeKind.RELAY, relay.label, position))
        members.append(ChainNode(ap.nid, ap.kind, ap.label, mobility.position(ap.nid)))
        # stable sort: ties keep user, relays by index, AP
        self.nodes: List[ChainNode] = sorted(members, key=lambda n: n.x)
        self.hops: List[Hop] = []
        for a, b in zip(self.nodes, self.nodes[1:]):
            distance = math.dist(a.position, b.position)
            self.hops.append(Hop(a, b, distance, estimator.rssi(distance)))

    def __len__(self):
        return len(self.nodes)

    def iter_nodes(self) -> Iterator[ChainNode]:
        return iter(self.nodes)

    def iter_hops(self) -> Iterator[Hop]:
        return iter(self.hops)

    def relay_nodes(self) -> List[ChainNode]:
        return [n for n in self.nodes if n.kind is NodeKind.RELAY]

    def neighbours(self, nid: int) -> Tuple[Optional[ChainNode], Optional[ChainNode]]:
        for i, node in enumerate(self.nodes):
            if node.nid == nid:
                left = self.nodes[i - 1] if i > 0 else None
                right = self.nodes[i + 1] if i + 1 < len(self.nodes) else None
                return left, right
        raise KeyError(f"node {nid} is not in the chain")

    def adjacent_hops(self, nid: int) -> Tuple[Optional[Hop], Optional[Hop]]:
        """(hop to the left neighbour, hop to the right neighbour) of a chain member"""
        for i, node in enumerate(self.nodes):
            if node.nid == nid:
                left = self.hops[i - 1] if i > 0 else None
                right = self.hops[i] if i < len(self.hops) else None
                return left, right
        raise KeyError(f"node {nid} is not in the chain")

    def path(self, src: int, dst: int) -> List[ChainNode]:
        """Chain members from `src` to `dst` inclusive, in forwarding order"""
        ids = [n.nid for n in self.nodes]
        i, j = ids.index(src), ids.index(dst)
        if i <= j:
            return self.nodes[i:j + 1]
        return self.nodes[j:i + 1][::-1]

    def hop_rssi(self, hop: Hop) -> float:
        return hop.rssi

    def hop_rssis(self) -> List[float]:
        return [self.hop_rssi(h) for h in self.hops]

    def worst_hop_rssi(self) -> float:
        return min(self.hop_rssis())

    def max_hop_distance(self) -> float:
        return max(h.distance for h in self.hops)

    def largest_gap(self) -> Tuple[float, float]:
        """(left_x, right_x) of the widest x-gap; the leftmost one on ties"""
        best = max(self.hops, key=lambda h: h.dx)
        return best.left.x, best.right.x
