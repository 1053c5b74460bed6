"""
Mobility backend: constant-velocity models evaluated against the clock
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

from clock import EventClock
from drone_node import Node

Vector = Tuple[float, float, float]


class MobilityError(RuntimeError):
    """The backend refused a mobility request"""


@dataclass
class ConstantVelocityModel:
    """Position at `ref_time` plus velocity; the current position is extrapolated lazily"""
    position: Vector
    velocity: Vector = (0.0, 0.0, 0.0)
    ref_time: float = 0.0

    def position_at(self, t: float) -> Vector:
        dt = t - self.ref_time
        x, y, z = self.position
        vx, vy, vz = self.velocity
        return (x + vx * dt, y + vy * dt, z + vz * dt)


def _check_finite(values: Vector, what: str):
    if not all(math.isfinite(v) for v in values):
        raise MobilityError(f"{what} must be finite, got {values}")


class MobilityOracle:
    """Positions and velocities of every node in the arena"""

    def __init__(self, clock: EventClock):
        self.clock = clock
        self.models: Dict[int, ConstantVelocityModel] = {}

    def install(self, node: Node, position: Vector, velocity: Vector = (0.0, 0.0, 0.0)):
        _check_finite(position, "position")
        _check_finite(velocity, "velocity")
        self.models[node.nid] = ConstantVelocityModel(position, velocity, self.clock.now())

    def remove(self, node: Node):
        self.models.pop(node.nid, None)

    def _model(self, nid: int) -> ConstantVelocityModel:
        model = self.models.get(nid)
        if model is None:
            raise MobilityError(f"node {nid} has no mobility model")
        return model

    def position(self, nid: int) -> Vector:
        return self._model(nid).position_at(self.clock.now())

    def x(self, nid: int) -> float:
        return self.position(nid)[0]

    def velocity(self, nid: int) -> Vector:
        return self._model(nid).velocity

    def set_position(self, nid: int, x: float, y: float, z: float):
        model = self._model(nid)
        _check_finite((x, y, z), "position")
        model.position = (x, y, z)
        model.ref_time = self.clock.now()

    def set_velocity(self, nid: int, vx: float, vy: float, vz: float):
        model = self._model(nid)
        _check_finite((vx, vy, vz), "velocity")
        now = self.clock.now()
        model.position = model.position_at(now)
        model.ref_time = now
        model.velocity = (vx, vy, vz)

    def distance(self, a: int, b: int) -> float:
        return math.dist(self.position(a), self.position(b))
