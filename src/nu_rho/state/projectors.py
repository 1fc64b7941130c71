import logging

import numpy as np

from nu_rho.models.mixing import Mixing
from nu_rho.state.su_vector import SUVector
from nu_rho.utils.flavors import NeutrinoType

logger = logging.getLogger(__name__)


class ProjectorSet:
    """
    Flavor and mass projectors of a propagation, expressed in the mass basis.

    mass     : (n,)               canonical projectors |i><i|
    flavor   : (n_rhos, n)        U† |α><α| U, CP-conjugated for antineutrino channels
    evolved  : (n_rhos, n, nE)    flavor projectors carried along the vacuum frame
    """

    def __init__(self, mixing: Mixing, neutrino_type: NeutrinoType, n_energies: int):
        self._mixing = mixing
        self._neutrino_type = neutrino_type
        self._n_energies = int(n_energies)

        n = mixing.n_neutrinos
        self.mass = SUVector.stack([SUVector.projector(n, i) for i in range(n)])
        self.flavor = None
        self.evolved = None
        self.rebuild()

    @property
    def n_flavors(self) -> int:
        return self._mixing.n_neutrinos

    @property
    def n_rhos(self) -> int:
        return self._neutrino_type.n_rhos

    @property
    def n_energies(self) -> int:
        return self._n_energies

    def rebuild(self, mixing: Mixing = None):
        """Recompute the static flavor projectors from the mixing parameters and reset the frame."""
        if mixing is not None:
            if mixing.n_neutrinos != self.n_flavors:
                raise ValueError(f"mixing has {mixing.n_neutrinos} states, projectors expect {self.n_flavors}")
            self._mixing = mixing

        per_channel = []
        for channel in range(self.n_rhos):
            antineutrino = self._neutrino_type.is_antineutrino_channel(channel)
            with self._mixing.cp_conjugated(active=antineutrino):
                U = self._mixing.build_mixing_matrix()
            per_channel.append(self.mass.rotate(U))
        self.flavor = SUVector.stack(per_channel)
        self.reset()

    def reset(self):
        """Evolved projectors back to the static flavor projectors (frame at the initial position)."""
        n = self.n_flavors
        m = np.broadcast_to(self.flavor.matrix[:, :, None],
                            (self.n_rhos, n, self._n_energies, n, n))
        self.evolved = SUVector(m.copy())

    def evolve(self, h0: SUVector, dx: float):
        """
        Carry the flavor projectors along the vacuum frame: e^{i H0 dx} P e^{-i H0 dx}.

        h0 holds one operator per energy node, shape (nE,).
        """
        if h0.shape != (self._n_energies,):
            raise ValueError(f"expected one vacuum Hamiltonian per node ({self._n_energies}), got {h0.shape}")
        self.evolved = self.flavor[:, :, None].evolve(h0, dx)

    def summed_flavor(self, channel: int, flavors=slice(None)) -> SUVector:
        """Σ_f evolved[channel][f] over the selected flavors, one operator per node."""
        return SUVector(self.evolved.matrix[channel, flavors].sum(axis=0))
