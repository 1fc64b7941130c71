import numpy as np

from nu_rho.hamiltonian.base import HamiltonianBase
from nu_rho.models.spectrum import Spectrum
from nu_rho.state.projectors import ProjectorSet
from nu_rho.state.su_vector import SUVector


class Hamiltonian(HamiltonianBase):
    """
    Vacuum term H0(E) = DM2 * 0.5 / E, with DM2 = Σ_i P_i^mass Δm²_i1.

    The same operator is used for neutrinos and antineutrinos.
    """

    def __init__(self, spectrum: Spectrum, projectors: ProjectorSet):
        super().__init__(spectrum=spectrum, projectors=projectors)

    @property
    def dm2(self) -> SUVector:
        """Mass-splitting operator, diagonal in the mass basis [eV²]."""
        weights = self._spectrum.splittings()                   # (n,) with weights[0] = 0
        return SUVector((self._projectors.mass.matrix * weights[:, None, None]).sum(axis=0))

    def h0(self, energies) -> SUVector:
        E = np.atleast_1d(np.asarray(energies, dtype=float))
        return self.dm2 * (0.5 / E)                              # (nE,)

    def operator(self, energies, channel: int = 0) -> SUVector:
        return self.h0(energies)
