import numpy as np

from nu_rho.hamiltonian import vacuum
from nu_rho.hamiltonian.base import HamiltonianBase
from nu_rho.models.spectrum import Spectrum
from nu_rho.state.basis import Basis
from nu_rho.state.projectors import ProjectorSet
from nu_rho.state.su_vector import SUVector
from nu_rho.utils.flavors import ACTIVE_FLAVORS, NeutrinoType, electron
from nu_rho.utils.units import VCOEFF_EV


class Hamiltonian(HamiltonianBase):
    """
    Matter potential HI for the medium at the current track position.

    The potential is built on the evolved flavor projectors so it is expressed
    in the working frame. In the mass basis the vacuum term is added back.
    Antineutrino channels see the opposite sign of the potential.
    """

    def __init__(self, spectrum: Spectrum, projectors: ProjectorSet, neutrino_type: NeutrinoType,
                 vacuum_hamiltonian: vacuum.Hamiltonian, basis: Basis = Basis.INTERACTION):
        super().__init__(spectrum=spectrum, projectors=projectors)
        self._neutrino_type = neutrino_type
        self._vacuum = vacuum_hamiltonian
        self._basis = basis
        self._density = 0.0
        self._ye = 0.0

    @property
    def basis(self):
        return self._basis

    @basis.setter
    def basis(self, basis: Basis):
        self._basis = basis

    def set_medium(self, density: float, ye: float):
        """Density [g/cm^3] and electron fraction at the current position."""
        self._density = float(density)
        self._ye = float(ye)

    @staticmethod
    def potentials(density: float, ye: float):
        """Return the (CC, NC) coherent potentials [eV]."""
        cc = VCOEFF_EV * density * ye
        if ye < 1.0e-10:
            nc = VCOEFF_EV * density
        else:
            nc = cc * (-0.5 * (1.0 - ye) / ye)
        return cc, nc

    def operator(self, energies, channel: int = 0) -> SUVector:
        antineutrino = self._neutrino_type.is_antineutrino_channel(channel)

        cc, nc = self.potentials(self._density, self._ye)
        n = self.n_flavors
        weights = np.zeros(n)
        # sterile states get no potential
        n_active = min(len(ACTIVE_FLAVORS), n)
        weights[:n_active] = nc
        weights[electron] += cc

        evolved = self._projectors.evolved.matrix[channel]      # (n, nE, n, n)
        potential = SUVector(np.einsum("f,f...->...", weights, evolved))
        if antineutrino:
            potential = -potential

        if self._basis is Basis.MASS:
            return potential + self._vacuum.h0(energies)
        return potential
