"""
Self-balancing: each deployed drone steps toward its farther neighbour until
both of its hops are about the same length
"""

import math
from dataclasses import dataclass
from typing import IO, List, Optional, Sequence, Tuple

from chain import ChainView
from config import ControllerConfig
from drone_node import NodeKind
from mobility import MobilityError, MobilityOracle


@dataclass
class BalanceDecision:
    nid: int
    label: str
    from_x: float
    to_x: float
    vx: float
    left_m: float
    right_m: float
    left_rssi: Optional[float] = None
    right_rssi: Optional[float] = None

    @property
    def delta(self) -> float:
        return self.left_m - self.right_m

    @property
    def moved(self) -> bool:
        return abs(self.to_x - self.from_x) > 1e-9


def enforce_min_separation(xs: Sequence[float], s_min: float) -> List[float]:
    """Closest positions to `xs` (sorted ascending) whose adjacent gaps are all >= s_min.

    Runs of violating neighbours are laid out exactly s_min apart about their
    common centre; a single violating pair is spread symmetrically about its midpoint.
    """
    blocks = []  # [count, sum of (x_k - k * s_min)] per run
    for x in xs:
        blocks.append([1, x])
        while len(blocks) > 1:
            c1, s1 = blocks[-2]
            c2, s2 = blocks[-1]
            if s2 / c2 >= s1 / c1 + c1 * s_min - 1e-12:
                break
            blocks[-2] = [c1 + c2, s1 + s2 - c2 * c1 * s_min]
            blocks.pop()

    out = []
    for count, total in blocks:
        base = total / count
        out.extend(base + k * s_min for k in range(count))
    return out


def clamp_spread(xs: Sequence[float], s_min: float, lo: float, hi: float) -> List[float]:
    """Clamp ascending, s_min-spaced `xs` into [lo, hi] keeping the spacing.

    Element k is held within [lo + k*s_min, hi - (n-1-k)*s_min]. When the span
    is too short to hold every drone that far apart, `xs` is returned unchanged.
    """
    n = len(xs)
    if n == 0 or hi - lo < (n - 1) * s_min:
        return list(xs)
    return [min(max(x, lo + k * s_min), hi - (n - 1 - k) * s_min) for k, x in enumerate(xs)]


def _fmt_hop(metres: float, rssi: Optional[float]) -> str:
    if rssi is None:
        return f"{metres:.2f} m/n/a"
    return f"{metres:.2f} m/{rssi:.2f} dBm"


class BalancingPolicy:

    def __init__(self, cfg: ControllerConfig, mobility: MobilityOracle, sink: IO[str]):
        self.cfg = cfg
        self.mobility = mobility
        self.sink = sink

    def _bounds(self, chain: ChainView) -> Tuple[float, float]:
        ends = [n.x for n in chain.iter_nodes() if n.kind is not NodeKind.RELAY]
        return min(ends) + self.cfg.containment_margin, max(ends) - self.cfg.containment_margin

    def _hold(self, chain: ChainView) -> List[BalanceDecision]:
        """One stationary decision per deployed drone in the snapshot"""
        decisions = []
        for node in chain.relay_nodes():
            left, right = chain.neighbours(node.nid)
            left_hop, right_hop = chain.adjacent_hops(node.nid)
            # a missing neighbour counts as a zero-length hop
            decisions.append(BalanceDecision(
                node.nid, node.label, node.x, node.x, 0.0,
                node.x - left.x if left is not None else 0.0,
                right.x - node.x if right is not None else 0.0,
                left_hop.rssi if left_hop is not None else None,
                right_hop.rssi if right_hop is not None else None,
            ))
        return decisions

    def _decide(self, chain: ChainView) -> List[BalanceDecision]:
        cfg = self.cfg
        max_step = cfg.relay_move_speed * cfg.balance_interval
        lo, hi = self._bounds(chain)

        decisions = self._hold(chain)
        for decision in decisions:
            delta = decision.delta
            if delta > cfg.hop_diff_metres:
                decision.vx = -cfg.relay_move_speed
            elif delta < -cfg.hop_diff_metres:
                decision.vx = cfg.relay_move_speed

            # never step past the balance point
            step = min(max_step, abs(delta) / 2.0)
            if decision.vx:
                decision.to_x = decision.from_x + math.copysign(step, decision.vx)

            if cfg.contain_relays and lo <= hi:
                decision.to_x = min(max(decision.to_x, lo), hi)
        return decisions

    def _separate(self, chain: ChainView, decisions: List[BalanceDecision]):
        """Spread tentative positions to S_min, then re-apply containment without breaking S_min"""
        ordered = sorted(decisions, key=lambda d: d.to_x)
        spread = enforce_min_separation([d.to_x for d in ordered], self.cfg.min_separation)
        if self.cfg.contain_relays:
            lo, hi = self._bounds(chain)
            spread = clamp_spread(spread, self.cfg.min_separation, lo, hi)
        for decision, x in zip(ordered, spread):
            decision.to_x = x

    def _apply(self, chain: ChainView, decisions: List[BalanceDecision]):
        for decision in decisions:
            if not decision.moved:
                continue
            try:
                _x, y, z = self.mobility.position(decision.nid)
                self.mobility.set_position(decision.nid, decision.to_x, y, z)
            except MobilityError as exc:
                print(f"[Mobility] Drone {decision.label} could not move: {exc}", file=self.sink)
                decision.to_x = decision.from_x
                continue
            if self.cfg.log_moves:
                print(f"[Move] Drone {decision.label} moved from X={decision.from_x:.2f} "
                      f"to X={decision.to_x:.2f} "
                      f"(L={_fmt_hop(decision.left_m, decision.left_rssi)}, "
                      f"R={_fmt_hop(decision.right_m, decision.right_rssi)})",
                      file=self.sink)

    def step(self, chain: ChainView) -> List[BalanceDecision]:
        """One balance tick: tentative moves, then the separation pass, then apply"""
        decisions = self._decide(chain)
        if not decisions:
            return decisions
        self._separate(chain, decisions)
        self._apply(chain, decisions)
        return decisions

    def spread(self, chain: ChainView) -> List[BalanceDecision]:
        """Separation pass alone, for drones that were just placed next to each other"""
        decisions = self._hold(chain)
        if not decisions:
            return decisions
        self._separate(chain, decisions)
        self._apply(chain, decisions)
        return decisions
