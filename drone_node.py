"""
Node records for the Drone Relay Chain

Nodes carry identity only. Positions live in the MobilityOracle and are
always read and written through it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class NodeKind(Enum):
    USER = "user"
    RELAY = "relay"
    AP = "ap"


class RelayState(Enum):
    STAGED = "staged"
    DEPLOYED = "deployed"


@dataclass(frozen=True)
class Node:
    """Entry of the node arena; `nid` is its stable index"""
    nid: int
    kind: NodeKind
    label: str


@dataclass
class Relay:
    """A drone and its lifecycle: staged -> deployed, exactly once, never back"""
    index: int          # 1-based, staging order
    nid: int
    state: RelayState = RelayState.STAGED
    deployed_at: Optional[float] = field(default=None)

    @property
    def label(self) -> str:
        return f"D{self.index}"

    @property
    def deployed(self) -> bool:
        return self.state is RelayState.DEPLOYED

    def deploy(self, now: float):
        if self.deployed:
            raise RuntimeError(f"relay {self.label} is already deployed")
        self.state = RelayState.DEPLOYED
        self.deployed_at = now
