"""
Adaptive relay controller: owns the tick cadence and drives balancing,
telemetry and deployment in order
"""

from typing import IO, List, Optional, Sequence

from balancing import BalanceDecision, BalancingPolicy
from chain import ChainView
from clock import EventClock, EventHandle
from config import ControllerConfig
from deployment import Deployment, DeploymentPolicy
from drone_node import Node, Relay
from estimator import LinkEstimator
from metrics import MetricAggregator
from mobility import MobilityError, MobilityOracle
from telemetry import Telemetry

# same-instant ticks: balance settles the topology before deployment looks at it
BALANCE_PRIORITY = 0
MONITOR_PRIORITY = 1


class RelayController:
    """Single-threaded controller. Every callback runs to completion on the clock's loop."""

    def __init__(self, cfg: ControllerConfig, clock: EventClock, mobility: MobilityOracle,
                 estimator: LinkEstimator, metrics: MetricAggregator,
                 user: Node, ap: Node, relay_nodes: Sequence[Node], sink: IO[str]):
        if len(relay_nodes) != cfg.num_relays:
            raise ValueError(f"expected {cfg.num_relays} relay nodes, got {len(relay_nodes)}")
        self.cfg = cfg
        self.clock = clock
        self.mobility = mobility
        self.estimator = estimator
        self.metrics = metrics
        self.user = user
        self.ap = ap
        self.sink = sink
        self.relays: List[Relay] = [Relay(i + 1, node.nid) for i, node in enumerate(relay_nodes)]

        self.balancer = BalancingPolicy(cfg, mobility, sink)
        self.deployer = DeploymentPolicy(cfg, mobility, metrics, sink)
        self.telemetry = Telemetry(mobility, metrics, sink, cfg.ascii_step)

        self.deployments: List[Deployment] = []
        self.last_decisions: List[BalanceDecision] = []
        self.balance_ticks = 0
        self.monitor_ticks = 0
        self._balance_handle: Optional[EventHandle] = None
        self._monitor_handle: Optional[EventHandle] = None
        self._running = False

        self._initial_placement()

    # -------- Placement --------

    def _initial_targets(self) -> List[float]:
        cfg = self.cfg
        k = len(self.relays)
        ap_x = self.mobility.x(self.ap.nid)
        user_x = self.mobility.x(self.user.nid)
        if cfg.init_mode == "even":
            return [ap_x + (i / (k + 1)) * cfg.total_distance for i in range(1, k + 1)]
        if cfg.init_mode == "cluster":
            toward_ap = -1.0 if user_x > ap_x else 1.0
            return [user_x + toward_ap * (cfg.cluster_offset + i) for i in range(k)]
        return [ap_x - (cfg.stage_offset + i) for i in range(k)]

    def _initial_placement(self):
        now = self.clock.now()
        deploy_now = self.cfg.init_mode in ("even", "cluster")
        for relay, x in zip(self.relays, self._initial_targets()):
            try:
                _x, y, _z = self.mobility.position(relay.nid)
                self.mobility.set_position(relay.nid, x, y, self.cfg.relay_height)
                self.mobility.set_velocity(relay.nid, 0.0, 0.0, 0.0)
            except MobilityError as exc:
                print(f"[Mobility] Drone {relay.label} could not be placed: {exc}", file=self.sink)
                continue
            if deploy_now:
                relay.deploy(now)
            print(f"[Init] Drone {relay.label} {relay.state.value} at X={x:.2f}", file=self.sink)

    # -------- Scheduling --------

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            return
        self._running = True
        self._balance_handle = self.clock.schedule(
            self.cfg.balance_interval, self._balance_tick, BALANCE_PRIORITY)
        self._monitor_handle = self.clock.schedule(
            self.cfg.monitor_interval, self._monitor_tick, MONITOR_PRIORITY)

    def stop(self):
        """Cancel future ticks; a tick already executing completes normally"""
        self._running = False
        self.clock.cancel(self._balance_handle)
        self.clock.cancel(self._monitor_handle)
        self._balance_handle = None
        self._monitor_handle = None

    def chain(self) -> ChainView:
        return ChainView(self.mobility, self.estimator, self.user, self.ap, self.relays)

    def _balance_tick(self):
        if not self._running:
            return
        self.balance_ticks += 1
        self.last_decisions = self.balancer.step(self.chain())
        if self._running:
            self._balance_handle = self.clock.schedule(
                self.cfg.balance_interval, self._balance_tick, BALANCE_PRIORITY)

    def _monitor_tick(self):
        if not self._running:
            return
        self.monitor_ticks += 1
        now = self.clock.now()
        chain = self.chain()
        for relay in chain.unplaced:
            print(f"[Mobility] Drone {relay.label} has no position, left out of the chain",
                  file=self.sink)
        self.telemetry.emit(now, chain, self.user, self.ap, self.relays)
        deployment = self.deployer.evaluate(chain, self.relays, now)
        if deployment is not None:
            self.deployments.append(deployment)
            # the midpoint of a short gap can land within S_min of a neighbour
            self.balancer.spread(self.chain())
        if self._running:
            self._monitor_handle = self.clock.schedule(
                self.cfg.monitor_interval, self._monitor_tick, MONITOR_PRIORITY)

    # -------- Queries --------

    def deployed(self) -> List[Relay]:
        return [r for r in self.relays if r.deployed]

    def staged(self) -> List[Relay]:
        return [r for r in self.relays if not r.deployed]
