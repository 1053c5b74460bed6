import pytest

from balancing import clamp_spread, enforce_min_separation
from tests.testing_utils import build_harness


def single_relay(x, **overrides):
    """One deployed drone between the AP at 0 and a static user at 60"""
    values = dict(num_relays=1, init_mode="even", total_distance=60.0, user_speed=0.0)
    values.update(overrides)
    h = build_harness(**values)
    h.place(1, x)
    return h


def balance(h):
    return h.controller.balancer.step(h.controller.chain())


class TestMinSeparation:

    def test_already_spread(self):
        assert enforce_min_separation([0.0, 5.0, 10.0], 1.0) == [0.0, 5.0, 10.0]

    def test_pair_spread_about_midpoint(self):
        assert enforce_min_separation([10.1, 10.2], 0.5) == pytest.approx([9.9, 10.4])

    def test_coincident_triple(self):
        assert enforce_min_separation([0.0, 0.0, 0.0], 1.0) == pytest.approx([-1.0, 0.0, 1.0])

    def test_run_of_violations(self):
        assert enforce_min_separation([0.0, 0.6, 1.2], 1.0) == pytest.approx([-0.4, 0.6, 1.6])

    def test_only_the_crowded_part_moves(self):
        out = enforce_min_separation([0.0, 20.0, 20.2, 40.0], 1.0)
        assert out == pytest.approx([0.0, 19.6, 20.6, 40.0])

    def test_empty(self):
        assert enforce_min_separation([], 1.0) == []


class TestBalancingPolicy:

    def test_moves_toward_the_longer_hop(self):
        h = single_relay(20.0)
        decisions = balance(h)
        assert h.x(1) == pytest.approx(23.0)
        assert decisions[0].vx == pytest.approx(3.0)
        assert decisions[0].delta == pytest.approx(-20.0)
        assert "[Move] Drone D1 moved from X=20.00 to X=23.00" in h.sink.getvalue()

    def test_moves_back_toward_the_ap(self):
        h = single_relay(45.0)
        balance(h)
        assert h.x(1) == pytest.approx(42.0)

    def test_deadband(self):
        h = single_relay(31.0)
        decisions = balance(h)
        assert h.x(1) == pytest.approx(31.0)
        assert decisions[0].vx == 0.0
        assert not decisions[0].moved
        assert "[Move]" not in h.sink.getvalue()

    def test_step_never_passes_balance_point(self):
        h = single_relay(31.0, hop_diff_metres=0.5)
        balance(h)
        assert h.x(1) == pytest.approx(30.0)

    def test_move_logging_can_be_disabled(self):
        h = single_relay(20.0, log_moves=False)
        balance(h)
        assert h.x(1) == pytest.approx(23.0)
        assert "[Move]" not in h.sink.getvalue()

    def test_missing_neighbour_is_zero_length(self):
        h = single_relay(70.0)
        decisions = balance(h)
        assert decisions[0].left_m == pytest.approx(10.0)
        assert decisions[0].right_m == 0.0
        assert h.x(1) == pytest.approx(67.0)

    def test_containment_clamps_to_the_span(self):
        h = single_relay(70.0, contain_relays=True)
        balance(h)
        assert h.x(1) == pytest.approx(59.9)

    def test_staged_relays_are_left_alone(self):
        h = build_harness(num_relays=2, init_mode="deploy", total_distance=60.0, user_speed=0.0)
        assert balance(h) == []
        assert [h.x(1), h.x(2)] == pytest.approx([-1.0, -2.0])

    def test_zero_speed_still_separates(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=20.0, user_speed=0.0,
                          relay_move_speed=0.0, min_separation=0.5)
        h.place(1, 10.1)
        h.place(2, 10.2)
        balance(h)
        assert [h.x(1), h.x(2)] == pytest.approx([9.9, 10.4])

    def test_coincident_endpoints(self):
        h = build_harness(num_relays=3, init_mode="even", total_distance=0.0, user_speed=0.0)
        h.controller.start()
        h.clock.run(1.0)
        assert [h.x(1), h.x(2), h.x(3)] == pytest.approx([-1.0, 0.0, 1.0])

    def test_mobility_refusal_skips_that_drone(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=60.0, user_speed=0.0)
        h.place(1, 10.0)
        chain = h.controller.chain()
        h.mobility.remove(h.relay_nodes[0])

        decisions = h.controller.balancer.step(chain)

        assert decisions[0].to_x == decisions[0].from_x
        assert "[Mobility] Drone D1 could not move" in h.sink.getvalue()
        assert h.x(2) == pytest.approx(37.0)

    def test_converges_from_a_cluster(self):
        h = build_harness(num_relays=2, init_mode="cluster", total_distance=60.0, user_speed=0.0)
        assert [h.x(1), h.x(2)] == pytest.approx([55.0, 54.0])

        h.controller.start()
        h.clock.run(100.0)

        for decision in h.controller.last_decisions:
            assert abs(decision.delta) <= h.cfg.hop_diff_metres + 1e-6
        xs = sorted([h.x(1), h.x(2)])
        assert xs[0] == pytest.approx(20.0, abs=3.01)
        assert xs[1] == pytest.approx(40.0, abs=3.01)

    def test_move_line_reports_the_snapshot_rssi(self):
        h = single_relay(20.0, rssi_noise_db=3.0)
        chain = h.controller.chain()
        h.controller.balancer.step(chain)
        left, right = chain.hop_rssis()
        assert f"(L=20.00 m/{left:.2f} dBm, R=40.00 m/{right:.2f} dBm)" in h.sink.getvalue()

    def test_containment_holds_after_separation(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=60.0, user_speed=0.0,
                          relay_move_speed=0.0, contain_relays=True)
        h.place(1, 59.5)
        h.place(2, 59.8)
        balance(h)
        assert [h.x(1), h.x(2)] == pytest.approx([58.9, 59.9])

    def test_separation_wins_when_the_span_is_too_short(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=0.5, user_speed=0.0,
                          relay_move_speed=0.0, contain_relays=True)
        h.place(1, 0.2)
        h.place(2, 0.3)
        balance(h)
        assert h.x(2) - h.x(1) == pytest.approx(1.0)

    def test_spread_only_separates(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=60.0, user_speed=0.0)
        h.place(1, 10.0)
        h.place(2, 10.2)
        h.controller.balancer.spread(h.controller.chain())
        assert [h.x(1), h.x(2)] == pytest.approx([9.6, 10.6])

    def test_spread_leaves_a_spaced_chain_alone(self):
        h = build_harness(num_relays=2, init_mode="even", total_distance=60.0, user_speed=0.0)
        decisions = h.controller.balancer.spread(h.controller.chain())
        assert not any(d.moved for d in decisions)
        assert "[Move]" not in h.sink.getvalue()


class TestClampSpread:

    def test_keeps_spacing(self):
        assert clamp_spread([59.15, 60.15], 1.0, 0.1, 59.9) == pytest.approx([58.9, 59.9])
        assert clamp_spread([-0.5, 0.5, 1.5], 1.0, 0.1, 59.9) == pytest.approx([0.1, 1.1, 2.1])

    def test_too_short_span_is_left_alone(self):
        assert clamp_spread([0.0, 1.0, 2.0], 1.0, 0.1, 1.0) == [0.0, 1.0, 2.0]
