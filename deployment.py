"""
Deployment policy: when the chain degrades, fly the next staged drone into the widest gap
"""

from dataclasses import dataclass, field
from typing import IO, List, Optional, Sequence

from chain import ChainView
from config import ControllerConfig
from drone_node import Relay
from metrics import CounterSet, MetricAggregator
from mobility import MobilityError, MobilityOracle

REASON_LOSS = "loss"
REASON_RTT = "rtt"
REASON_RSSI = "rssi"
REASON_MAX_HOP = "max_hop"


@dataclass
class TriggerEvidence:
    loss_pct: float
    avg_rtt_ms: float
    rtt_samples: int
    worst_rssi_dbm: float
    max_hop_m: float
    reasons: List[str] = field(default_factory=list)

    @property
    def fired(self) -> bool:
        return bool(self.reasons)


@dataclass
class Deployment:
    relay_index: int
    time: float
    from_x: float
    target_x: float
    reasons: List[str]


def evaluate_trigger(window: CounterSet, chain: ChainView, cfg: ControllerConfig) -> TriggerEvidence:
    """OR of the four degradation predicates; `reasons` lists the ones that hold"""
    evidence = TriggerEvidence(
        loss_pct=window.loss_pct,
        avg_rtt_ms=window.avg_rtt_ms,
        rtt_samples=window.rtt_samples,
        worst_rssi_dbm=chain.worst_hop_rssi(),
        max_hop_m=chain.max_hop_distance(),
    )
    if evidence.loss_pct > cfg.loss_pct:
        evidence.reasons.append(REASON_LOSS)
    if evidence.rtt_samples > 0 and evidence.avg_rtt_ms > cfg.rtt_ms:
        evidence.reasons.append(REASON_RTT)
    if evidence.worst_rssi_dbm < cfg.rssi_dbm:
        evidence.reasons.append(REASON_RSSI)
    if evidence.max_hop_m > cfg.max_hop_metres:
        evidence.reasons.append(REASON_MAX_HOP)
    return evidence


def next_staged(relays: Sequence[Relay]) -> Optional[Relay]:
    for relay in sorted(relays, key=lambda r: r.index):
        if not relay.deployed:
            return relay
    return None


class DeploymentPolicy:
    """At most one deployment per call. A deployment is permanent and resets the window counters."""

    def __init__(self, cfg: ControllerConfig, mobility: MobilityOracle, metrics: MetricAggregator,
                 sink: IO[str]):
        self.cfg = cfg
        self.mobility = mobility
        self.metrics = metrics
        self.sink = sink

    def evaluate(self, chain: ChainView, relays: Sequence[Relay], now: float) -> Optional[Deployment]:
        relay = next_staged(relays)
        if relay is None:
            return None

        evidence = evaluate_trigger(self.metrics.window, chain, self.cfg)
        if not evidence.fired:
            return None

        left_x, right_x = chain.largest_gap()
        target_x = (left_x + right_x) / 2.0
        try:
            old_x, y, _z = self.mobility.position(relay.nid)
            self.mobility.set_position(relay.nid, target_x, y, self.cfg.relay_height)
            self.mobility.set_velocity(relay.nid, 0.0, 0.0, 0.0)
        except MobilityError as exc:
            print(f"[Mobility] Drone {relay.label} could not be deployed: {exc}", file=self.sink)
            return None

        relay.deploy(now)
        self.metrics.reset_window()

        print(f"[Deploy] Drone {relay.label} moved from X={old_x:.2f} to target X={target_x:.2f} "
              f"due to {', '.join(evidence.reasons)} "
              f"(loss={evidence.loss_pct:.2f}%, rtt={evidence.avg_rtt_ms:.2f} ms, "
              f"worst rssi={evidence.worst_rssi_dbm:.2f} dBm, max hop={evidence.max_hop_m:.2f} m)",
              file=self.sink)
        return Deployment(relay.index, now, old_x, target_x, list(evidence.reasons))
