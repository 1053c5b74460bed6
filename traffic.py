"""
UDP echo client (on the user) and server (on the AP) with trace callbacks
"""

import itertools
from typing import Any, Callable, Dict, List, Optional

from channel import WirelessChannel
from clock import EventClock, EventHandle
from messages import EchoPacket

TraceFn = Callable[[int, float], None]

# sends due at the same instant as a controller tick go out after it
SEND_PRIORITY = 2


class UdpEchoApp:
    """Echo traffic over the current chain.

    Trace sources mirror the echo applications: client "Tx", server "Rx" and
    client "Rx", each called with (packet uid, now).
    """

    def __init__(self, clock: EventClock, channel: WirelessChannel,
                 route: Callable[[], List[int]], cfg: Dict[str, Any]):
        self.clock = clock
        self.channel = channel
        self.route = route       # node ids user -> ... -> AP, read per packet
        self.cfg = cfg
        self._uids = itertools.count(1)
        self._traces: Dict[str, List[TraceFn]] = {"client_tx": [], "server_rx": [], "client_rx": []}
        self._send_handle: Optional[EventHandle] = None
        self._running = False

        self.sent = 0
        self.echoed = 0
        self.replies = 0
        self.hops_used: List[int] = []

    def trace_connect(self, source: str, fn: TraceFn):
        if source not in self._traces:
            raise KeyError(f"unknown trace source {source!r}")
        self._traces[source].append(fn)

    def connect(self, metrics):
        """Wire the three trace sources into a MetricAggregator"""
        self.trace_connect("client_tx", metrics.on_tx)
        self.trace_connect("server_rx", metrics.on_server_rx)
        self.trace_connect("client_rx", metrics.on_client_rx)

    def _fire(self, source: str, uid: int):
        now = self.clock.now()
        for fn in self._traces[source]:
            fn(uid, now)

    def start(self):
        self._running = True
        delay = max(self.cfg["echo_start_s"] - self.clock.now(), 0.0)
        self._send_handle = self.clock.schedule(delay, self._send, SEND_PRIORITY)

    def stop(self):
        self._running = False
        self.clock.cancel(self._send_handle)
        self._send_handle = None

    # -------- Client --------

    def _send(self):
        if not self._running or self.sent >= self.cfg["echo_max_packets"]:
            return
        pkt = EchoPacket(next(self._uids), self.cfg["packet_size_bytes"], self.clock.now())
        self.sent += 1
        self._fire("client_tx", pkt.uid)
        self._forward(pkt, self.route())
        self._send_handle = self.clock.schedule(self.cfg["echo_interval_s"], self._send, SEND_PRIORITY)

    def _forward(self, pkt: EchoPacket, path: List[int]):
        delay = self.channel.path_delay(path)
        if delay is None:
            return
        pkt.hop_count = len(path) - 1
        handler = self._client_rx if pkt.is_reply else self._server_rx
        self.clock.schedule(delay, lambda: handler(pkt))

    def _client_rx(self, pkt: EchoPacket):
        self.replies += 1
        self.hops_used.append(pkt.hop_count)
        self._fire("client_rx", pkt.uid)

    # -------- Server --------

    def _server_rx(self, pkt: EchoPacket):
        if self.clock.now() < self.cfg["server_start_s"]:
            return
        self.echoed += 1
        self._fire("server_rx", pkt.uid)
        self._forward(pkt.reply(), list(reversed(self.route())))
