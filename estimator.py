"""
Link quality estimator used as the controller's decision signal
"""

import math
import random
from typing import Optional

TX_POWER_DBM = 20.0
PATH_LOSS_EXP = 2.5   # urban/suburban
REF_DISTANCE_M = 1.0


class LinkEstimator:
    """Log-distance path loss with Gaussian shadowing.

    rssi(d) = P_tx - 10 * gamma * log10(max(d, d0) / d0) + N(0, sigma^2)
    """

    def __init__(self, noise_db: float = 1.0, rng: Optional[random.Random] = None,
                 tx_power_dbm: float = TX_POWER_DBM, path_loss_exp: float = PATH_LOSS_EXP,
                 ref_distance_m: float = REF_DISTANCE_M):
        self.noise_db = noise_db
        self.rng = rng if rng is not None else random.Random()
        self.tx_power_dbm = tx_power_dbm
        self.path_loss_exp = path_loss_exp
        self.ref_distance_m = ref_distance_m

    def mean_rssi(self, distance_m: float) -> float:
        # clamp to d0 so co-located nodes don't blow up the log
        d = max(distance_m, self.ref_distance_m)
        return self.tx_power_dbm - 10.0 * self.path_loss_exp * math.log10(d / self.ref_distance_m)

    def rssi(self, distance_m: float) -> float:
        rssi = self.mean_rssi(distance_m)
        if self.noise_db > 0:
            rssi += self.rng.gauss(0.0, self.noise_db)
        return rssi
