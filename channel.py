"""
Wireless channel for the relay chain: per-hop frame loss, MAC retries and delay/jitter
"""

import math
import random
from typing import Any, Dict, Optional, Sequence

from mobility import MobilityOracle


class WirelessChannel:
    """In-memory 'air' between adjacent chain members.

    A frame is attempted up to 1 + mac_max_retries times. Each attempt succeeds
    with a probability that falls off logistically around the receiver
    sensitivity and costs one on-air duration.
    """

    def __init__(self, mobility: MobilityOracle, cfg: Dict[str, Any],
                 rng: Optional[random.Random] = None):
        self.mobility = mobility
        self.cfg = cfg
        self.rng = rng if rng is not None else random.Random(cfg["seed"])
        self.frames_sent = 0
        self.frames_lost = 0

    def rx_power_dbm(self, distance_m: float) -> float:
        d = max(distance_m, 1.0)
        return (self.cfg["phy_tx_power_dbm"] - self.cfg["phy_ref_loss_db"]
                - 10.0 * self.cfg["phy_path_loss_exp"] * math.log10(d))

    def attempt_success_prob(self, distance_m: float) -> float:
        margin = self.rx_power_dbm(distance_m) - self.cfg["phy_rx_sensitivity_dbm"]
        z = margin / self.cfg["phy_fade_slope_db"]
        # clamp to keep exp() in range for very long or very short hops
        z = min(max(z, -60.0), 60.0)
        return 1.0 / (1.0 + math.exp(-z))

    def hop_delay(self, tx_nid: int, rx_nid: int) -> Optional[float]:
        """Delay to get one frame across the hop, or None if every attempt failed"""
        self.frames_sent += 1
        dist = self.mobility.distance(tx_nid, rx_nid)
        p = self.attempt_success_prob(dist)
        for attempt in range(1, self.cfg["mac_max_retries"] + 2):
            if self.rng.random() < p:
                jitter = self.rng.uniform(*self.cfg["channel_jitter_s"])
                airtime = attempt * self.cfg["mac_tx_duration_s"]
                return self.cfg["channel_base_delay_s"] + jitter + airtime + dist / self.cfg["prop_speed_mps"]
        self.frames_lost += 1
        return None

    def path_delay(self, path: Sequence[int]) -> Optional[float]:
        """End-to-end delay along `path` (node ids in forwarding order), None if lost"""
        total = 0.0
        for tx_nid, rx_nid in zip(path, path[1:]):
            delay = self.hop_delay(tx_nid, rx_nid)
            if delay is None:
                return None
            total += delay
        return total
