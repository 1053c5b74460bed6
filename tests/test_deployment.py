import pytest

from deployment import (REASON_LOSS, REASON_MAX_HOP, REASON_RSSI, REASON_RTT, evaluate_trigger,
                        next_staged)
from drone_node import RelayState
from metrics import CounterSet
from tests.testing_utils import build_harness


def healthy_harness(**overrides):
    """User 30 m from the AP, nothing degraded"""
    values = dict(num_relays=2, init_mode="deploy", total_distance=30.0, user_speed=0.0)
    values.update(overrides)
    return build_harness(**values)


class TestTrigger:

    def test_nothing_fires_on_a_healthy_chain(self):
        h = healthy_harness()
        evidence = evaluate_trigger(CounterSet(tx_packets=10, rx_packets=10), h.controller.chain(), h.cfg)
        assert evidence.reasons == []
        assert not evidence.fired

    def test_loss(self):
        h = healthy_harness()
        window = CounterSet(tx_packets=10, rx_packets=7)
        assert evaluate_trigger(window, h.controller.chain(), h.cfg).reasons == [REASON_LOSS]

    def test_loss_at_threshold_does_not_fire(self):
        h = healthy_harness()
        window = CounterSet(tx_packets=10, rx_packets=8)
        assert evaluate_trigger(window, h.controller.chain(), h.cfg).reasons == []

    def test_rtt_needs_samples(self):
        h = healthy_harness(rtt_ms=0.0)
        assert evaluate_trigger(CounterSet(), h.controller.chain(), h.cfg).reasons == []

        window = CounterSet(tx_packets=2, rx_packets=2, rtt_samples=2, avg_rtt_ms=150.0)
        h = healthy_harness()
        assert evaluate_trigger(window, h.controller.chain(), h.cfg).reasons == [REASON_RTT]

    def test_rssi(self):
        h = healthy_harness(rssi_dbm=-10.0)
        # 30 m hop: 20 - 25 * log10(30) = -16.9 dBm
        assert evaluate_trigger(CounterSet(), h.controller.chain(), h.cfg).reasons == [REASON_RSSI]

    def test_max_hop(self):
        h = healthy_harness(total_distance=41.0)
        assert evaluate_trigger(CounterSet(), h.controller.chain(), h.cfg).reasons == [REASON_MAX_HOP]

    def test_all_reasons(self):
        h = healthy_harness(total_distance=200.0, rssi_dbm=-20.0)
        window = CounterSet(tx_packets=4, rx_packets=1, rtt_samples=1, avg_rtt_ms=500.0)
        assert evaluate_trigger(window, h.controller.chain(), h.cfg).reasons == [
            REASON_LOSS, REASON_RTT, REASON_RSSI, REASON_MAX_HOP]


class TestDeploymentPolicy:

    def degrade(self, h, tx=10, rx=0):
        for uid in range(1, tx + 1):
            h.metrics.on_tx(uid, 0.1 * uid)
        for uid in range(1, rx + 1):
            h.metrics.on_server_rx(uid, 0.1 * uid + 0.01)

    def evaluate(self, h):
        return h.controller.deployer.evaluate(h.controller.chain(), h.controller.relays, h.clock.now())

    def test_deploys_lowest_index_to_largest_gap_midpoint(self):
        h = healthy_harness()
        self.degrade(h)

        deployment = self.evaluate(h)

        assert deployment.relay_index == 1
        assert deployment.target_x == pytest.approx(15.0)
        assert deployment.reasons == [REASON_LOSS]
        relay = h.controller.relays[0]
        assert relay.state is RelayState.DEPLOYED
        assert h.mobility.position(relay.nid) == pytest.approx((15.0, 0.0, h.cfg.relay_height))
        assert h.mobility.velocity(relay.nid) == (0.0, 0.0, 0.0)
        assert h.controller.relays[1].state is RelayState.STAGED
        assert "[Deploy] Drone D1" in h.sink.getvalue()

    def test_deployment_resets_window_only(self):
        h = healthy_harness()
        self.degrade(h, tx=10, rx=4)

        self.evaluate(h)

        assert h.metrics.window.tx_packets == 0
        assert h.metrics.window.rx_packets == 0
        assert h.metrics.cumulative.tx_packets == 10
        assert h.metrics.cumulative.rx_packets == 4

    def test_one_deployment_per_call(self):
        h = healthy_harness()
        self.degrade(h)
        self.evaluate(h)
        # window was reset, so the next call has no evidence
        assert self.evaluate(h) is None
        assert len(h.controller.deployed()) == 1

    def test_second_relay_goes_to_the_new_largest_gap(self):
        h = healthy_harness(total_distance=100.0, user_speed=0.0, max_hop_metres=1000.0)
        self.degrade(h)
        first = self.evaluate(h)
        self.degrade(h)
        second = self.evaluate(h)
        assert first.target_x == pytest.approx(50.0)
        # gaps are now [0, 50] and [50, 100]; the leftmost wins the tie
        assert second.relay_index == 2
        assert second.target_x == pytest.approx(25.0)

    def test_no_staged_relay_is_a_silent_noop(self):
        h = healthy_harness(num_relays=1, init_mode="even")
        self.degrade(h)
        assert self.evaluate(h) is None
        assert h.metrics.window.tx_packets == 10

    def test_no_relays_at_all(self):
        h = healthy_harness(num_relays=0)
        self.degrade(h)
        assert self.evaluate(h) is None

    def test_mobility_refusal_keeps_relay_staged(self):
        h = healthy_harness()
        h.mobility.remove(h.relay_nodes[0])
        self.degrade(h)

        assert self.evaluate(h) is None

        assert h.controller.relays[0].state is RelayState.STAGED
        assert h.metrics.window.tx_packets == 10
        assert "[Mobility] Drone D1" in h.sink.getvalue()

    def test_next_staged_uses_index_order(self):
        h = healthy_harness(num_relays=3)
        relays = h.controller.relays
        relays[0].deploy(0.0)
        assert next_staged(list(reversed(relays))).index == 2
