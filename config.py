"""
Configuration for the Drone Relay Chain experiments
"""

import math
import random
from dataclasses import dataclass, fields
from typing import Any, Dict

SIM_CONFIG = {
    # --- relay controller ---
    "num_relays": 2,                 # drones available to the chain
    "init_mode": "deploy",           # even | cluster | deploy
    "total_distance": 0.0,           # meters between AP and user at t=0
    "user_speed": 2.5,               # m/s, user walks +X
    "relay_height": 10.0,            # meters (z of every drone)
    "relay_move_speed": 3.0,         # m/s for balancing steps
    "balance_interval": 1.0,         # s between balance ticks
    "monitor_interval": 2.0,         # s between monitor/deploy ticks
    "loss_pct": 20.0,                # deploy if window loss above this (%)
    "rtt_ms": 100.0,                 # deploy if window avg RTT above this
    "rssi_dbm": -65.0,               # deploy if worst hop RSSI below this
    "max_hop_metres": 40.0,          # deploy if any hop longer than this
    "hop_diff_metres": 3.0,          # balancing deadband on L - R
    "min_separation": 1.0,           # S_min between adjacent drones
    "contain_relays": False,         # clamp drones to [user, AP] span
    "containment_margin": 0.1,       # epsilon for the clamp
    "cluster_offset": 5.0,           # first cluster drone this far from user
    "stage_offset": 1.0,             # first staged drone this far behind AP
    "ascii_step": 10.0,              # meters per ASCII column
    "rssi_noise_db": 1.0,            # estimator shadowing sigma
    "pending_horizon_s": 30.0,       # drop unanswered echo requests after this
    "pending_max": 4096,             # hard cap on unanswered echo requests
    "log_moves": True,               # print [Move] lines
    # --- experiment / collaborators ---
    "sim_time_s": 60.0,              # total simulation time
    "ap_x": 0.0,                     # AP position on the x-axis
    "server_start_s": 1.0,           # echo server start
    "echo_start_s": 2.0,             # echo client start
    "echo_interval_s": 0.5,          # echo request period
    "echo_max_packets": 1000,
    "packet_size_bytes": 1024,
    "phy_tx_power_dbm": 16.02,       # radio tx power
    "phy_ref_loss_db": 46.68,        # path loss at 1 m
    "phy_path_loss_exp": 3.0,
    "phy_rx_sensitivity_dbm": -82.0, # 50% frame success at this power
    "phy_fade_slope_db": 2.0,        # logistic width around sensitivity
    "mac_max_retries": 7,
    "mac_tx_duration_s": 0.003,      # on-air duration of one attempt
    "channel_base_delay_s": 0.001,   # added to every hop
    "channel_jitter_s": (0.0005, 0.004),
    "prop_speed_mps": 3e8,
    "realtime_factor": 4.0,          # live view: simulated seconds per wall second
    "fps": 10,                       # live view frames per second
    "seed": 42,
}

INIT_MODES = ("even", "cluster", "deploy")

# Initialize random seed
random.seed(SIM_CONFIG["seed"])


class ConfigError(ValueError):
    """Raised when a controller configuration cannot be used."""


@dataclass(frozen=True)
class ControllerConfig:
    num_relays: int = 2
    init_mode: str = "deploy"
    total_distance: float = 0.0
    user_speed: float = 2.5
    relay_height: float = 10.0
    relay_move_speed: float = 3.0
    balance_interval: float = 1.0
    monitor_interval: float = 2.0
    loss_pct: float = 20.0
    rtt_ms: float = 100.0
    rssi_dbm: float = -65.0
    max_hop_metres: float = 40.0
    hop_diff_metres: float = 3.0
    min_separation: float = 1.0
    contain_relays: bool = False
    containment_margin: float = 0.1
    cluster_offset: float = 5.0
    stage_offset: float = 1.0
    ascii_step: float = 10.0
    rssi_noise_db: float = 1.0
    pending_horizon_s: float = 30.0
    pending_max: int = 4096
    log_moves: bool = True

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "ControllerConfig":
        """Build from a SIM_CONFIG-style dict, ignoring experiment-only keys"""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in cfg.items() if k in names})

    def validate(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, float) and not math.isfinite(value):
                raise ConfigError(f"{f.name} must be finite, got {value!r}")

        if not isinstance(self.num_relays, int) or self.num_relays < 0:
            raise ConfigError(f"num_relays must be an integer >= 0, got {self.num_relays!r}")
        if self.init_mode not in INIT_MODES:
            raise ConfigError(f"init_mode must be one of {', '.join(INIT_MODES)}, got {self.init_mode!r}")

        for name in ("balance_interval", "monitor_interval", "ascii_step", "max_hop_metres",
                     "pending_horizon_s"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0, got {getattr(self, name)!r}")

        for name in ("total_distance", "relay_height", "relay_move_speed", "rtt_ms",
                     "hop_diff_metres", "min_separation", "containment_margin",
                     "cluster_offset", "stage_offset", "rssi_noise_db"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)!r}")

        if not 0.0 <= self.loss_pct <= 100.0:
            raise ConfigError(f"loss_pct must be within [0, 100], got {self.loss_pct!r}")
        if self.pending_max < 1:
            raise ConfigError(f"pending_max must be >= 1, got {self.pending_max!r}")
