from dataclasses import dataclass

import numpy as np

from nu_rho.matter.body import Body, Track


@dataclass
class PREMModel:
    """
    Minimal PREM density model (Dziewonski & Anderson 1981).

    Densities are in g/cm^3. Electron fraction Ye defaults: mantle≈0.495, core≈0.467.
    """
    R_earth_km: float = 6371.0
    # PREM region boundaries in km (increasing radii)
    # 0–1221.5 (inner core), 1221.5–3480 (outer core), 3480–... mantle shells, crustal layers
    prem_boundaries_km: tuple = (0.0, 1221.5, 3480.0, 5701.0, 5771.0, 5971.0,
                                 6151.0, 6346.6, 6356.0, 6368.0, 6371.0)
    # Ye defaults
    Ye_mantle: float = 0.495
    Ye_core:   float = 0.467

    # --- PREM density polynomials ρ(r) in g/cm^3; x = r/R_earth ---
    def rho(self, r_km) -> np.ndarray:
        r = np.atleast_1d(np.asarray(r_km, float))
        x = r / self.R_earth_km
        b = self.prem_boundaries_km
        regions = [
            (13.0885 - 8.8381 * x**2),                                  # inner core
            (12.5815 - 1.2638 * x - 3.6426 * x**2 - 5.5281 * x**3),     # outer core
            (7.9565 - 6.4761 * x + 5.5283 * x**2 - 3.0807 * x**3),      # lower mantle
            (5.3197 - 1.4836 * x),                                      # transition zone 1
            (11.2494 - 8.0298 * x),                                     # transition zone 2
            (7.1089 - 3.8045 * x),                                      # upper mantle low
            (2.6910 + 0.6924 * x),                                      # upper mantle high
            np.full_like(x, 2.900),                                     # crust 1
            np.full_like(x, 2.600),                                     # crust 2
            np.full_like(x, 1.020),                                     # ocean
        ]
        conditions = [(r >= lo) & (r < hi) for lo, hi in zip(b[:-2], b[1:-1])]
        conditions.append((r >= b[-2]) & (r <= b[-1]))
        # outside the Earth: vacuum
        return np.select(conditions, regions, default=0.0)

    def Ye(self, r_km) -> np.ndarray:
        """Simple two-zone Ye: core vs mantle/crust."""
        r = np.asarray(r_km, float)
        return np.where(r <= self.prem_boundaries_km[2], self.Ye_core, self.Ye_mantle)


class EarthTrack(Track):
    """
    Chord through the Earth between two surface points separated by `baseline_km`.

    The position x runs along the chord from the entry point; the distance to the
    center is r(x)^2 = R^2 - x (L - x).
    """

    def __init__(self, baseline_km: float, start_km: float = 0.0, end_km: float = None):
        if baseline_km < 0.0:
            raise ValueError("baseline must be non-negative")
        self.baseline_km = float(baseline_km)
        super().__init__(start_km, self.baseline_km if end_km is None else end_km)

    @property
    def params(self):
        return np.append(super().params, self.baseline_km)


class Earth(Body):
    name = "Earth"
    body_id = 4

    def __init__(self, model: PREMModel = None):
        self.model = PREMModel() if model is None else model

    def radius_km(self, track: EarthTrack) -> float:
        R = self.model.R_earth_km
        x = track.x_km
        r2 = R * R - x * (track.baseline_km - x)
        return float(np.sqrt(max(r2, 0.0)))

    def density(self, track):
        return float(self.model.rho(self.radius_km(track))[0])

    def ye(self, track):
        return float(self.model.Ye(self.radius_km(track)))
