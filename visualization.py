"""
Live visualization for the Drone Relay Chain
"""

import asyncio
import threading
from typing import List, Tuple

import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation
from matplotlib.collections import LineCollection

from mobility import MobilityError
from simulation import Simulation

Segment = Tuple[Tuple[float, float], Tuple[float, float]]


def _chain_segments(sim: Simulation) -> List[Segment]:
    """Hop segments of the current chain in the (x, height) plane"""
    segs = []
    for hop in sim.controller.chain().iter_hops():
        segs.append(((hop.left.x, hop.left.position[2]), (hop.right.x, hop.right.position[2])))
    return segs


def _node_points(sim: Simulation) -> Tuple[List[float], List[float], List[str]]:
    xs, zs, labels = [], [], []
    staged = {r.nid for r in sim.controller.staged()}
    for node in sim.nodes:
        try:
            x, _y, z = sim.mobility.position(node.nid)
        except MobilityError:
            continue
        xs.append(x)
        zs.append(z)
        labels.append(node.label.lower() if node.nid in staged else node.label)
    return xs, zs, labels


class LiveArtist:
    """Matplotlib side view of the chain: x along the walk, height up"""

    def __init__(self, sim: Simulation):
        self.sim = sim
        self.fig, self.ax = plt.subplots(figsize=(9.0, 3.6))
        self.ax.set_xlabel("X (m)")
        self.ax.set_ylabel("Height (m)")
        self.ax.set_title("Drone Relay Chain - Live View")
        self.ax.set_ylim(-2.0, sim.controller_cfg.relay_height * 1.8 + 2.0)

        xs, zs, labels = _node_points(sim)
        self.scatter = self.ax.scatter(xs, zs, s=46)
        self.labels = [self.ax.text(x, z + 1.0, lbl, ha="center", va="bottom", fontsize=8)
                       for x, z, lbl in zip(xs, zs, labels)]

        # Chain hops
        self.lines = LineCollection(_chain_segments(sim), linewidths=0.9, alpha=0.6)
        self.ax.add_collection(self.lines)

        # Stats banner
        self.stats_txt = self.ax.text(0.01, 0.97, "", transform=self.ax.transAxes, va="top",
                                      fontsize=8)
        self._rescale(xs)

    def _rescale(self, xs: List[float]):
        lo, hi = min(xs), max(xs)
        pad = max(5.0, 0.1 * (hi - lo))
        self.ax.set_xlim(lo - pad, hi + pad)

    def update(self, _frame):
        """Update animation frame"""
        xs, zs, labels = _node_points(self.sim)
        self.scatter.set_offsets(list(zip(xs, zs)))
        for txt, x, z, lbl in zip(self.labels, xs, zs, labels):
            txt.set_position((x, z + 1.0))
            txt.set_text(lbl)
        self.lines.set_segments(_chain_segments(self.sim))
        self._rescale(xs)

        window = self.sim.metrics.window
        total = self.sim.metrics.cumulative
        self.stats_txt.set_text(
            f"t={self.sim.clock.now():.1f}s  deployed={len(self.sim.controller.deployed())}"
            f"/{len(self.sim.controller.relays)}\n"
            f"window loss={window.loss_pct:.1f}% rtt={window.avg_rtt_ms:.1f}ms  "
            f"total Tx={total.tx_packets} Rx={total.rx_packets} loss={total.loss_pct:.1f}%"
        )
        return self.scatter, self.lines, *self.labels, self.stats_txt


def run_live_viz(sim: Simulation):
    """Run the paced simulation in a background thread and show a live Matplotlib view"""
    def _run():
        asyncio.run(sim.run())

    t = threading.Thread(target=_run, daemon=True)
    t.start()

    artist = LiveArtist(sim)
    anim = FuncAnimation(artist.fig, artist.update, interval=int(1000 / sim.cfg["fps"]), blit=False)

    # Show blocking window; after close, print final report
    plt.show()
    t.join(timeout=1.0)
    sim.report()
    return anim
