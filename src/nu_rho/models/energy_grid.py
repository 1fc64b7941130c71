from dataclasses import dataclass, field

import numpy as np

from nu_rho.utils.units import GEV_TO_EV

BRACKET_RTOL = 1.0e-12


@dataclass(frozen=True)
class EnergyGrid:
    """
    Ordered energy nodes shared by every channel of a propagation.

    Attributes
    ----------
    energies : np.ndarray
        Node energies [eV], strictly increasing, shape (nE,).
    log_scale : bool
        True if the nodes were log-spaced.
    widths : np.ndarray
        widths[i] = energies[i+1] - energies[i], shape (nE-1,).
    """
    energies: np.ndarray
    log_scale: bool = True
    widths: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        E = np.array(self.energies, dtype=float).reshape(-1)
        if E.size == 0:
            raise ValueError("Energy grid needs at least one node.")
        if np.any(E <= 0.0) or not np.all(np.isfinite(E)):
            raise ValueError("Energies must be finite and positive.")
        if E.size > 1 and np.any(np.diff(E) <= 0.0):
            raise ValueError("Energy nodes must be strictly increasing.")
        E.setflags(write=False)
        widths = np.diff(E)
        widths.setflags(write=False)
        object.__setattr__(self, "energies", E)
        object.__setattr__(self, "widths", widths)

    # ------------------------------------------------------------

    @classmethod
    def logspace(cls, E_min_GeV: float, E_max_GeV: float, n_energies: int) -> "EnergyGrid":
        cls._check_bounds(E_min_GeV, E_max_GeV, n_energies)
        if n_energies == 1:
            return cls.single(E_min_GeV)
        E = np.logspace(np.log10(E_min_GeV * GEV_TO_EV), np.log10(E_max_GeV * GEV_TO_EV), n_energies)
        # the end nodes are exactly the requested bounds
        E[0], E[-1] = E_min_GeV * GEV_TO_EV, E_max_GeV * GEV_TO_EV
        return cls(E, log_scale=True)

    @classmethod
    def linspace(cls, E_min_GeV: float, E_max_GeV: float, n_energies: int) -> "EnergyGrid":
        cls._check_bounds(E_min_GeV, E_max_GeV, n_energies)
        if n_energies == 1:
            return cls.single(E_min_GeV)
        E = np.linspace(E_min_GeV * GEV_TO_EV, E_max_GeV * GEV_TO_EV, n_energies)
        E[0], E[-1] = E_min_GeV * GEV_TO_EV, E_max_GeV * GEV_TO_EV
        return cls(E, log_scale=False)

    @classmethod
    def single(cls, E_GeV: float) -> "EnergyGrid":
        return cls(np.array([E_GeV * GEV_TO_EV]), log_scale=False)

    @staticmethod
    def _check_bounds(E_min_GeV, E_max_GeV, n_energies):
        if int(n_energies) != n_energies or n_energies <= 0:
            raise ValueError(f"Number of energies must be a positive integer, got {n_energies}.")
        if E_max_GeV < E_min_GeV:
            raise ValueError(f"E_max ({E_max_GeV}) < E_min ({E_min_GeV}).")
        if E_min_GeV <= 0.0:
            raise ValueError("Energies must be positive.")

    # ------------------------------------------------------------

    @property
    def n_energies(self) -> int:
        return self.energies.shape[0]

    @property
    def is_single_energy(self) -> bool:
        return self.n_energies == 1

    @property
    def energies_GeV(self) -> np.ndarray:
        return self.energies / GEV_TO_EV

    def node_weights(self) -> np.ndarray:
        """
        Width attached to each node, shape (nE,).

        The last node has no upper interval and reuses the width of the
        interval below it.
        """
        if self.is_single_energy:
            return np.zeros(1)
        return np.append(self.widths, self.widths[-1])

    def bracket(self, E: float):
        """Return (i, f) such that E = energies[i] + f * widths[i], with 0 <= f <= 1."""
        if self.is_single_energy:
            raise ValueError("Cannot bracket an energy on a single-node grid.")
        E_lo, E_hi = self.energies[0], self.energies[-1]
        # GeV <-> eV round-off at the edges
        if np.isclose(E, E_lo, rtol=BRACKET_RTOL, atol=0.0):
            E = E_lo
        elif np.isclose(E, E_hi, rtol=BRACKET_RTOL, atol=0.0):
            E = E_hi
        if E < E_lo or E > E_hi:
            raise ValueError(f"Energy {E / GEV_TO_EV:.6g} GeV outside grid "
                             f"[{E_lo / GEV_TO_EV:.6g}, {E_hi / GEV_TO_EV:.6g}] GeV.")
        i = int(np.searchsorted(self.energies, E, side="right")) - 1
        i = min(max(i, 0), self.n_energies - 2)
        f = (E - self.energies[i]) / self.widths[i]
        return i, f

    def __eq__(self, other):
        if not isinstance(other, EnergyGrid):
            return NotImplemented
        return self.log_scale == other.log_scale and np.array_equal(self.energies, other.energies)
