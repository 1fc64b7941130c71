from abc import ABC, abstractmethod

import numpy as np

from nu_rho.utils.units import KM


class Track:
    """
    Straight path through a body, from x_initial to x_final.

    Positions are kept in natural units [eV^-1]; constructors and `params`
    use km.
    """

    def __init__(self, start_km: float, end_km: float):
        if end_km < start_km:
            raise ValueError(f"track end ({end_km} km) before its start ({start_km} km)")
        self._x_initial = start_km * KM
        self._x_final = end_km * KM
        self._x = self._x_initial

    @property
    def x(self) -> float:
        return self._x

    @property
    def x_initial(self) -> float:
        return self._x_initial

    @property
    def x_final(self) -> float:
        return self._x_final

    @property
    def length(self) -> float:
        return self._x_final - self._x_initial

    def set_x(self, x: float):
        self._x = float(x)

    @property
    def x_km(self) -> float:
        return self._x / KM

    @property
    def params(self) -> np.ndarray:
        return np.array([self._x_initial / KM, self._x_final / KM])

    def __repr__(self):
        return (f"{type(self).__name__}(start={self._x_initial / KM:g} km, "
                f"end={self._x_final / KM:g} km, x={self.x_km:g} km)")


class Body(ABC):
    """Medium crossed by a track: density [g/cm^3] and electron fraction along it."""

    name = "body"
    body_id = 0

    @abstractmethod
    def density(self, track: Track) -> float:
        ...

    @abstractmethod
    def ye(self, track: Track) -> float:
        ...

    @property
    def params(self) -> np.ndarray:
        return np.zeros(0)

    def __repr__(self):
        return f"{type(self).__name__}(id={self.body_id})"


class Vacuum(Body):
    name = "Vacuum"
    body_id = 1

    def density(self, track):
        return 0.0

    def ye(self, track):
        return 0.0


class ConstantDensity(Body):
    name = "ConstantDensity"
    body_id = 2

    def __init__(self, density: float, ye: float):
        if density < 0.0:
            raise ValueError("density must be non-negative")
        self._density = float(density)
        self._ye = float(ye)

    def density(self, track):
        return self._density

    def ye(self, track):
        return self._ye

    @property
    def params(self):
        return np.array([self._density, self._ye])


class VariableDensity(Body):
    """Density and electron fraction tabulated along the track, linearly interpolated."""

    name = "VariableDensity"
    body_id = 3

    def __init__(self, x_km, density, ye):
        self._x_km = np.asarray(x_km, dtype=float)
        self._density = np.asarray(density, dtype=float)
        self._ye = np.asarray(ye, dtype=float)
        if not (self._x_km.shape == self._density.shape == self._ye.shape) or self._x_km.ndim != 1:
            raise ValueError("x, density and ye must be 1-D arrays of the same length")
        if self._x_km.size < 2 or np.any(np.diff(self._x_km) <= 0.0):
            raise ValueError("x must hold at least two strictly increasing positions")

    def density(self, track):
        return float(np.interp(track.x_km, self._x_km, self._density))

    def ye(self, track):
        return float(np.interp(track.x_km, self._x_km, self._ye))

    @property
    def params(self):
        return np.concatenate([self._x_km, self._density, self._ye])
