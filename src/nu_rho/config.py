from dataclasses import dataclass, field

import numpy as np

from nu_rho.state.basis import Basis
from nu_rho.utils.units import KM


@dataclass
class IntegratorSettings:
    rtol: float = 1.0e-9
    atol: float = 1.0e-12
    h_max_km: float = np.inf
    method: str = "DOP853"      # explicit Runge-Kutta: the buffer is complex

    def __post_init__(self):
        if self.rtol <= 0.0 or self.atol <= 0.0:
            raise ValueError("integrator tolerances must be positive")
        if self.h_max_km <= 0.0:
            raise ValueError("maximum step must be positive")

    @property
    def h_max(self) -> float:
        """Maximum step [eV^-1]."""
        return self.h_max_km * KM


@dataclass
class PropagatorConfig:
    basis: Basis = Basis.INTERACTION
    integrator: IntegratorSettings = field(default_factory=IntegratorSettings)
    tau_regeneration: bool = False
    tau_reg_scale_km: float = 300.0
    positivization: bool = False
    positivization_scale_km: float = 300.0
    fix_cross_sections: bool = True
    progress_bar: bool = False

    def __post_init__(self):
        if self.basis not in Basis.working_bases():
            raise ValueError(f"propagation basis must be MASS or INTERACTION, got {self.basis}")
        if self.tau_reg_scale_km <= 0.0 or self.positivization_scale_km <= 0.0:
            raise ValueError("regeneration and positivization scales must be positive")
