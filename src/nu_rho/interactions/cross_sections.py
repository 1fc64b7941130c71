from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

from nu_rho.utils.flavors import NeutrinoType
from nu_rho.utils.units import CM, GEV


class Current(Enum):
    CC = "charged_current"
    NC = "neutral_current"


class CrossSectionProvider(ABC):
    """
    Neutrino-nucleon cross sections in natural units.

    Energies are in eV, total cross sections in eV^-2 and differential
    cross sections dσ/dE_out in eV^-3. Both methods broadcast over arrays.
    """

    @abstractmethod
    def total_cross_section(self, E, flavor: int, neutrino_type: NeutrinoType, current: Current):
        ...

    @abstractmethod
    def differential_cross_section(self, E_in, E_out, flavor: int, neutrino_type: NeutrinoType,
                                   current: Current):
        ...


class PowerLawCrossSections(CrossSectionProvider):
    """
    Deep-inelastic cross sections with a power-law energy dependence,
        σ(E) = σ0 * (E / GeV)^index,
    and the textbook inelasticity shapes for the outgoing lepton energy
    E_out = (1 - y) E_in:
        neutrino:      (1 + a (1-y)^2) / (1 + a/3)
        antineutrino:  (b + (1-y)^2)   / (b + 1/3)
    Flavor universal. Normalizations are isoscalar-target values per nucleon.
    """

    # σ0 [cm^2] at 1 GeV
    SIGMA0_CM2 = {
        (NeutrinoType.NEUTRINO, Current.CC): 0.677e-38,
        (NeutrinoType.ANTINEUTRINO, Current.CC): 0.334e-38,
        (NeutrinoType.NEUTRINO, Current.NC): 0.21e-38,
        (NeutrinoType.ANTINEUTRINO, Current.NC): 0.12e-38,
    }

    def __init__(self, index: float = 1.0, a: float = 0.2, b: float = 0.2):
        self.index = float(index)
        self.a = float(a)
        self.b = float(b)

    def _sigma0(self, neutrino_type, current):
        try:
            return self.SIGMA0_CM2[(neutrino_type, current)] * CM ** 2
        except KeyError:
            raise ValueError(f"no cross section for {neutrino_type} / {current}") from None

    def total_cross_section(self, E, flavor, neutrino_type, current):
        E = np.asarray(E, dtype=float)
        return self._sigma0(neutrino_type, current) * (E / GEV) ** self.index

    def y_shape(self, y, neutrino_type):
        """Normalized inelasticity distribution dN/dy on [0, 1]."""
        y = np.asarray(y, dtype=float)
        if neutrino_type is NeutrinoType.NEUTRINO:
            f = (1.0 + self.a * (1.0 - y) ** 2) / (1.0 + self.a / 3.0)
        else:
            f = (self.b + (1.0 - y) ** 2) / (self.b + 1.0 / 3.0)
        return np.where((y >= 0.0) & (y <= 1.0), f, 0.0)

    def differential_cross_section(self, E_in, E_out, flavor, neutrino_type, current):
        E_in = np.asarray(E_in, dtype=float)
        E_out = np.asarray(E_out, dtype=float)
        y = 1.0 - E_out / E_in
        sigma = self.total_cross_section(E_in, flavor, neutrino_type, current)
        return sigma * self.y_shape(y, neutrino_type) / E_in
