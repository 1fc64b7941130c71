from dataclasses import dataclass

import numpy as np

from nu_rho.matter.body import Body, Track


@dataclass
class SolarProfile:
    R_sun_km: float = 695_700.0

    # exponential falloff fit of the standard solar model
    def rho_gcm3(self, r_km) -> np.ndarray:
        r = np.asarray(r_km, float)
        x = r / self.R_sun_km
        return np.where(x <= 1.0, 150.0 * np.exp(-10.54 * x), 0.0)

    def Ye(self, r_km) -> np.ndarray:
        # nearly hydrogen/helium mix
        return np.full_like(np.asarray(r_km, float), 0.5)


class SunTrack(Track):
    """Radial path; the position is the distance to the solar center."""


class Sun(Body):
    name = "Sun"
    body_id = 5

    def __init__(self, profile: SolarProfile = None):
        self.profile = SolarProfile() if profile is None else profile

    def density(self, track):
        return float(self.profile.rho_gcm3(abs(track.x_km)))

    def ye(self, track):
        return float(self.profile.Ye(abs(track.x_km)))
