"""
Echo traffic statistics: cumulative and windowed counters plus RTT tracking
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class CounterSet:
    tx_packets: int = 0
    rx_packets: int = 0
    rtt_samples: int = 0
    avg_rtt_ms: float = 0.0

    @property
    def loss_pct(self) -> float:
        if self.tx_packets == 0:
            return 0.0
        return 100.0 * (1.0 - self.rx_packets / self.tx_packets)

    def add_rtt(self, sample_ms: float):
        self.rtt_samples += 1
        self.avg_rtt_ms += (sample_ms - self.avg_rtt_ms) / self.rtt_samples

    def reset(self):
        self.tx_packets = 0
        self.rx_packets = 0
        self.rtt_samples = 0
        self.avg_rtt_ms = 0.0

    def summary(self) -> Dict[str, float]:
        return {
            "tx": self.tx_packets,
            "rx": self.rx_packets,
            "loss_pct": self.loss_pct,
            "rtt_samples": self.rtt_samples,
            "avg_rtt_ms": self.avg_rtt_ms,
        }


class MetricAggregator:
    """Consumes the echo app's trace events.

    Every request is remembered in `pending` (uid -> send time) until its reply
    comes back. Requests that never return are aged out after `horizon_s` and
    the map never holds more than `max_pending` entries.
    """

    def __init__(self, horizon_s: float = 30.0, max_pending: int = 4096):
        self.cumulative = CounterSet()
        self.window = CounterSet()
        self.pending: "OrderedDict[int, float]" = OrderedDict()
        self.horizon_s = horizon_s
        self.max_pending = max_pending
        self.last_rtt_ms: Optional[float] = None
        self.expired = 0

    def on_tx(self, uid: int, now: float):
        self.cumulative.tx_packets += 1
        self.window.tx_packets += 1
        self._expire(now)
        self.pending[uid] = now
        self.pending.move_to_end(uid)
        while len(self.pending) > self.max_pending:
            self.pending.popitem(last=False)
            self.expired += 1

    def on_server_rx(self, uid: int, now: float):
        self.cumulative.rx_packets += 1
        self.window.rx_packets += 1

    def on_client_rx(self, uid: int, now: float):
        sent_at = self.pending.pop(uid, None)
        if sent_at is None:
            return
        rtt_ms = (now - sent_at) * 1000.0
        self.last_rtt_ms = rtt_ms
        self.cumulative.add_rtt(rtt_ms)
        self.window.add_rtt(rtt_ms)

    def reset_window(self):
        self.window.reset()

    def _expire(self, now: float):
        # insertion order is send order
        while self.pending:
            uid, sent_at = next(iter(self.pending.items()))
            if now - sent_at <= self.horizon_s:
                break
            del self.pending[uid]
            self.expired += 1
