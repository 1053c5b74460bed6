"""
Simulation coordinator for the Drone Relay Chain
"""

import asyncio
import random
import sys
from typing import IO, Any, Dict, List, Optional

from channel import WirelessChannel
from clock import EventClock
from config import ControllerConfig
from controller import RelayController
from drone_node import Node, NodeKind
from estimator import LinkEstimator
from metrics import MetricAggregator
from mobility import MobilityError, MobilityOracle
from traffic import UdpEchoApp


class Simulation:
    """Owns the node arena and the collaborators, and runs the controller against them"""

    def __init__(self, cfg: Dict[str, Any], sink: Optional[IO[str]] = None):
        self.cfg = cfg
        self.controller_cfg = ControllerConfig.from_dict(cfg)
        self.sink = sink if sink is not None else sys.stdout
        self.clock = EventClock()
        self.mobility = MobilityOracle(self.clock)
        self.nodes: List[Node] = []
        self.user: Optional[Node] = None
        self.ap: Optional[Node] = None
        self.metrics: Optional[MetricAggregator] = None
        self.controller: Optional[RelayController] = None
        self.channel: Optional[WirelessChannel] = None
        self.app: Optional[UdpEchoApp] = None
        self._running = False

    def build(self):
        """Create the nodes, their mobility, the controller and the echo traffic"""
        ccfg = self.controller_cfg
        ap_x = self.cfg["ap_x"]

        # arena: [0]=user, [1..N]=drones, [N+1]=ap
        self.user = Node(0, NodeKind.USER, "U")
        relay_nodes = [Node(i, NodeKind.RELAY, f"D{i}") for i in range(1, ccfg.num_relays + 1)]
        self.ap = Node(ccfg.num_relays + 1, NodeKind.AP, "A")
        self.nodes = [self.user, *relay_nodes, self.ap]

        self.mobility.install(self.user, (ap_x + ccfg.total_distance, 0.0, 0.0),
                              (ccfg.user_speed, 0.0, 0.0))
        self.mobility.install(self.ap, (ap_x, 0.0, 0.0))
        for node in relay_nodes:
            self.mobility.install(node, (ap_x, 0.0, ccfg.relay_height))

        seed = self.cfg["seed"]
        self.metrics = MetricAggregator(ccfg.pending_horizon_s, ccfg.pending_max)
        estimator = LinkEstimator(ccfg.rssi_noise_db, random.Random(seed))
        self.controller = RelayController(ccfg, self.clock, self.mobility, estimator, self.metrics,
                                          self.user, self.ap, relay_nodes, self.sink)

        self.channel = WirelessChannel(self.mobility, self.cfg, random.Random(seed + 1))
        self.app = UdpEchoApp(self.clock, self.channel, self.route, self.cfg)
        self.app.connect(self.metrics)

    def route(self) -> List[int]:
        """Forwarding path user -> deployed drones -> AP along the current chain.

        Drones that sit beyond either end of the user-AP span are not on the path.
        """
        return [n.nid for n in self.controller.chain().path(self.user.nid, self.ap.nid)]

    def _start(self):
        self._running = True
        self.controller.start()
        self.app.start()

    def _finish(self):
        self.controller.stop()
        self.app.stop()
        self._running = False

    def run_blocking(self, until: Optional[float] = None):
        """Run to the stop time as fast as possible"""
        self._start()
        self.clock.run(self.cfg["sim_time_s"] if until is None else until)
        self._finish()

    async def run(self):
        """Run paced against wall time so a live view can follow along"""
        self._start()
        sim_time = self.cfg["sim_time_s"]
        frame_s = 1.0 / self.cfg["fps"]
        while self._running and self.clock.now() < sim_time:
            self.clock.run(min(self.clock.now() + frame_s * self.cfg["realtime_factor"], sim_time))
            await asyncio.sleep(frame_s)
        self._finish()

    def report(self):
        """Print simulation statistics and results"""
        out = self.sink
        total = self.metrics.cumulative
        print("\n=== Simulation Summary ===", file=out)
        print(f"Drones: {self.controller_cfg.num_relays}  Mode: {self.controller_cfg.init_mode}  "
              f"Duration: {self.clock.now():.1f} s", file=out)
        print(f"Total Tx: {total.tx_packets}  Total Rx: {total.rx_packets}  "
              f"Replies: {self.app.replies}", file=out)
        print(f"Loss: {total.loss_pct:.2f}%", file=out)
        if total.rtt_samples:
            print(f"Avg RTT: {total.avg_rtt_ms:.2f} ms over {total.rtt_samples} samples", file=out)
        if self.app.hops_used:
            print(f"Avg hops: {sum(self.app.hops_used) / len(self.app.hops_used):.3f}", file=out)

        print(f"\nDeployments: {len(self.controller.deployments)}", file=out)
        for d in self.controller.deployments:
            print(f"- D{d.relay_index} at {d.time:.2f}s -> X={d.target_x:.2f} ({', '.join(d.reasons)})",
                  file=out)
        print("\nFinal positions:", file=out)
        for relay in self.controller.relays:
            try:
                where = f"X={self.mobility.x(relay.nid):.2f} m"
            except MobilityError:
                where = "no position"
            print(f"- {relay.label}: {where} ({relay.state.value})", file=out)
        print(f"- U: X={self.mobility.x(self.user.nid):.2f} m, A: X={self.mobility.x(self.ap.nid):.2f} m",
              file=out)
