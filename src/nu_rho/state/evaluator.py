import numpy as np

from nu_rho.errors import PreconditionError
from nu_rho.hamiltonian import vacuum
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.state.basis import Basis
from nu_rho.state.projectors import ProjectorSet
from nu_rho.state.su_vector import SUVector, inner
from nu_rho.utils.flavors import NeutrinoType


class StateEvaluator:
    """
    Expectation values of flavor and mass projectors on a propagated state.

    `rho` is an SUVector of shape (nE, n_rhos) expressed in the working frame,
    `dx` the path length [eV^-1] since the initial state. In the interaction
    basis the projector is carried to the frame at `dx` before the product.
    """

    def __init__(self, energy_grid: EnergyGrid, neutrino_type: NeutrinoType,
                 projectors: ProjectorSet, vacuum_hamiltonian: vacuum.Hamiltonian,
                 basis: Basis = Basis.INTERACTION):
        self.energy_grid = energy_grid
        self.neutrino_type = neutrino_type
        self.projectors = projectors
        self.vacuum = vacuum_hamiltonian
        self.basis = basis

    # ---------- checks ----------
    def _check_flavor(self, flavor):
        if not 0 <= flavor < self.projectors.n_flavors:
            raise IndexError(f"flavor {flavor} out of range 0..{self.projectors.n_flavors - 1}")

    def _check_channel(self, channel):
        # raises IndexError for a channel the particle type does not have
        self.neutrino_type.is_antineutrino_channel(channel)

    def _check_node(self, node):
        if not 0 <= node < self.energy_grid.n_energies:
            raise IndexError(f"node {node} out of range 0..{self.energy_grid.n_energies - 1}")

    # ---------- frame ----------
    def _to_frame(self, op: SUVector, energies, dx) -> SUVector:
        if self.basis is Basis.MASS:
            return op
        return op.evolve(self.vacuum.h0(energies), dx)

    def _at_node(self, op, rho, node, channel, dx):
        self._check_node(node)
        E = self.energy_grid.energies[node]
        op = self._to_frame(op[None], [E], dx)[0]
        return float(op * rho[node, channel])

    def _interpolated(self, op, rho, E, channel, dx):
        if self.basis is Basis.MASS:
            raise PreconditionError("interpolation is not available in the mass basis, "
                                    "evaluate at the nodes instead")
        if self.energy_grid.is_single_energy:
            raise PreconditionError("interpolation needs a multi-energy grid")
        i, f = self.energy_grid.bracket(E)
        state = rho[i, channel] * (1.0 - f) + rho[i + 1, channel] * f
        op = self._to_frame(op[None], [E], dx)[0]
        return float(op * state)

    # ---------- public ----------
    def flavor_at_node(self, rho, flavor, node, channel, dx):
        self._check_flavor(flavor)
        self._check_channel(channel)
        return self._at_node(self.projectors.flavor[channel, flavor], rho, node, channel, dx)

    def mass_at_node(self, rho, flavor, node, channel, dx):
        self._check_flavor(flavor)
        self._check_channel(channel)
        return self._at_node(self.projectors.mass[flavor], rho, node, channel, dx)

    def flavor(self, rho, flavor, E, channel, dx):
        self._check_flavor(flavor)
        self._check_channel(channel)
        return self._interpolated(self.projectors.flavor[channel, flavor], rho, E, channel, dx)

    def mass(self, rho, flavor, E, channel, dx):
        self._check_flavor(flavor)
        self._check_channel(channel)
        return self._interpolated(self.projectors.mass[flavor], rho, E, channel, dx)

    def composition(self, rho, dx, kind: str = "flavor") -> np.ndarray:
        """All at-node expectation values, shape (nE, n_rhos, n)."""
        if kind == "flavor":
            ops = self.projectors.flavor                                        # (n_rhos, n)
        elif kind == "mass":
            n_rhos = self.neutrino_type.n_rhos
            ops = SUVector(np.broadcast_to(self.projectors.mass.matrix[None],
                                           (n_rhos,) + self.projectors.mass.matrix.shape))
        else:
            raise ValueError(f"unknown composition kind '{kind}'")
        ops = self._to_frame(ops[:, :, None], self.energy_grid.energies, dx)   # (n_rhos, n, nE)
        states = SUVector(np.swapaxes(rho.matrix, 0, 1)[:, None])               # (n_rhos, 1, nE)
        values = inner(ops, states)                                             # (n_rhos, n, nE)
        return np.transpose(values, (2, 0, 1))
