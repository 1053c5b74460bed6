"""
Per-tick textual telemetry and the 1-D ASCII map
"""

import math
from typing import IO, List, Sequence, Tuple

from chain import ChainView
from drone_node import Node, Relay
from metrics import CounterSet, MetricAggregator
from mobility import MobilityError, MobilityOracle

CELL_WIDTH = 4
MIN_COLUMNS = 10


def render_ascii_strip(entries: Sequence[Tuple[float, str]], step: float) -> Tuple[str, str]:
    """Bin (x, label) pairs into `step`-wide columns. Returns (map row, ruler row)."""
    entries = sorted(entries, key=lambda e: e[0])
    pad = step * 2.0
    min_x = entries[0][0] - pad
    max_x = entries[-1][0] + pad
    if max_x - min_x < step:
        max_x = min_x + step
    cols = max(MIN_COLUMNS, int(math.ceil((max_x - min_x) / step)))

    row = ["-"] * cols
    # on a shared cell the rightmost node wins
    for x, label in entries:
        idx = min(max(int(math.floor((x - min_x) / step)), 0), cols - 1)
        row[idx] = label

    ruler = []
    for c in range(cols):
        centre = f"{min_x + (c + 0.5) * step:.0f}"[:CELL_WIDTH]
        ruler.append(f"{centre:>{CELL_WIDTH}}")
    return "".join(f"{cell:>{CELL_WIDTH}}" for cell in row), "".join(ruler)


def _counters(c: CounterSet) -> str:
    return (f"Tx={c.tx_packets}, Rx={c.rx_packets}, loss={c.loss_pct:.2f}%, "
            f"RTT={c.avg_rtt_ms:.2f} ms ({c.rtt_samples} samples)")


class Telemetry:
    """Pure consumer: reads positions and counters, writes lines to the sink"""

    def __init__(self, mobility: MobilityOracle, metrics: MetricAggregator, sink: IO[str],
                 ascii_step: float = 10.0):
        self.mobility = mobility
        self.metrics = metrics
        self.sink = sink
        self.ascii_step = ascii_step

    def snapshot(self, now: float, chain: ChainView, user: Node, ap: Node,
                 relays: Sequence[Relay]) -> List[str]:
        hops = []
        for hop, rssi in zip(chain.iter_hops(), chain.hop_rssis()):
            hops.append(f"{hop.left.label}-{hop.right.label}={hop.distance:.2f}m/{rssi:.2f}dBm")
        lines = [
            f"{now:.2f}s: UserX={self.mobility.x(user.nid):.2f} m, "
            f"chain={' '.join(n.label for n in chain.iter_nodes())}, " + ", ".join(hops),
            f"  window {_counters(self.metrics.window)} | total {_counters(self.metrics.cumulative)}",
        ]

        entries = [(self.mobility.x(user.nid), user.label), (self.mobility.x(ap.nid), ap.label)]
        for relay in relays:
            try:
                x = self.mobility.x(relay.nid)
            except MobilityError:
                continue
            label = relay.label if relay.deployed else relay.label.lower()
            entries.append((x, label))
        strip, ruler = render_ascii_strip(entries, self.ascii_step)
        lines.append(f"[ASCII] {strip}")
        lines.append(f"[POS]   {ruler}")
        return lines

    def emit(self, now: float, chain: ChainView, user: Node, ap: Node,
             relays: Sequence[Relay]) -> List[str]:
        lines = self.snapshot(now, chain, user, ap, relays)
        for line in lines:
            print(line, file=self.sink)
        return lines
