from abc import ABC, abstractmethod

from nu_rho.models.spectrum import Spectrum
from nu_rho.state.projectors import ProjectorSet
from nu_rho.state.su_vector import SUVector


class HamiltonianBase(ABC):
    def __init__(self, spectrum: Spectrum, projectors: ProjectorSet):
        self._spectrum = spectrum
        self._projectors = projectors
        self._check_parameters()

    @property
    def n_flavors(self):
        return self._projectors.n_flavors

    @property
    def spectrum(self):
        return self._spectrum

    @property
    def projectors(self):
        return self._projectors

    def set_spectrum(self, spectrum: Spectrum):
        self._spectrum = spectrum
        self._check_parameters()

    # Operator expressed in the mass basis, one per energy node
    @abstractmethod
    def operator(self, energies, channel: int = 0) -> SUVector:
        """Return the Hamiltonian term at `energies` [eV], shape (nE,) of n×n operators."""
        ...

    def _check_parameters(self):
        if self._spectrum.n_neutrinos != self._projectors.n_flavors:
            raise ValueError(f"spectrum has {self._spectrum.n_neutrinos} mass states, "
                             f"projectors have {self._projectors.n_flavors} flavors")
