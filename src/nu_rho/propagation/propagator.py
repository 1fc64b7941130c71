import logging

import numpy as np
from tqdm import tqdm

from nu_rho.config import PropagatorConfig
from nu_rho.errors import PreconditionError
from nu_rho.hamiltonian import matter, vacuum
from nu_rho.interactions.cross_sections import CrossSectionProvider, PowerLawCrossSections
from nu_rho.interactions.tau_decay import TauDecaySpectra
from nu_rho.interactions.tensors import InteractionTensors
from nu_rho.matter.body import Body, Track
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.models.mixing import Mixing
from nu_rho.models.spectrum import Spectrum
from nu_rho.propagation.integrator import PathIntegrator
from nu_rho.propagation.lifecycle import Lifecycle, Ready
from nu_rho.state.basis import Basis
from nu_rho.state.evaluator import StateEvaluator
from nu_rho.state.projectors import ProjectorSet
from nu_rho.state.su_vector import SUVector, anticommutator, commutator, inner
from nu_rho.utils.flavors import ACTIVE_FLAVORS, MAX_FLAVORS, NeutrinoType, electron, muon, tau
from nu_rho.utils.units import GEV_TO_EV, KM

logger = logging.getLogger(__name__)


class Propagator:
    """
    Density-matrix propagation of a neutrino beam along a track.

    One density matrix per energy node and per channel (neutrino and/or
    antineutrino) is advanced under the vacuum and matter Hamiltonians and,
    when interactions are enabled, the CC/NC attenuation, NC regeneration and
    tau regeneration terms.

    Typical use:
        prop = Propagator(3, NeutrinoType.NEUTRINO, EnergyGrid.logspace(1e2, 1e6, 100))
        prop.set_body(ConstantDensity(5.0, 0.5))
        prop.set_track(Track(0.0, 1000.0))
        prop.set_initial_state(initial, Basis.FLAVOR)
        prop.evolve_state()
        prop.eval_flavor(muon, E_GeV=1e3)
    """

    def __init__(self, n_flavors: int, neutrino_type: NeutrinoType = NeutrinoType.NEUTRINO,
                 energy_grid: EnergyGrid = None, interactions: bool = False,
                 config: PropagatorConfig = None, cross_sections: CrossSectionProvider = None,
                 tau_decay: TauDecaySpectra = None):
        if not isinstance(neutrino_type, NeutrinoType):
            raise TypeError(f"neutrino_type must be a NeutrinoType, got {type(neutrino_type).__name__}")
        if int(n_flavors) != n_flavors or not 1 <= n_flavors <= MAX_FLAVORS:
            raise ValueError(f"number of flavors must be in 1..{MAX_FLAVORS}, got {n_flavors}")
        if interactions and n_flavors < len(ACTIVE_FLAVORS):
            raise ValueError("interactions need the three active flavors")

        self.n_flavors = int(n_flavors)
        self.neutrino_type = neutrino_type
        self.interactions = bool(interactions)
        self.config = PropagatorConfig() if config is None else config
        if self.config.tau_regeneration:
            self._check_tau_regeneration()

        self.mixing = Mixing.default(self.n_flavors)
        self.spectrum = Spectrum.default(self.n_flavors)
        self._cross_sections = cross_sections
        self._tau_decay = tau_decay

        self.lifecycle = Lifecycle()
        self.integrator = PathIntegrator(self.pre_derive, self.derive, self.config.integrator)
        self.body = None
        self.track = None
        self.energy_grid = None
        self.projectors = None
        self.tensors = None
        self.h_vacuum = None
        self.h_matter = None
        self.evaluator = None
        self._h0 = None
        self._widths = None
        self._x_initial = 0.0
        self._time_offset = 0.0
        self._progress = None

        if energy_grid is not None:
            self.set_energy_grid(energy_grid)

    # ------------------------------------------------------------
    # energies
    # ------------------------------------------------------------

    def set_energy(self, E_GeV: float):
        """Single-energy mode at E [GeV]."""
        self.set_energy_grid(EnergyGrid.single(E_GeV))

    def set_energy_grid(self, energy_grid: EnergyGrid):
        if not isinstance(energy_grid, EnergyGrid):
            raise TypeError("energy_grid must be an EnergyGrid")
        if energy_grid.is_single_energy and self.interactions:
            raise PreconditionError("interactions are not available in single-energy mode")

        self.energy_grid = energy_grid
        self._widths = energy_grid.node_weights()
        self.projectors = ProjectorSet(self.mixing, self.neutrino_type, energy_grid.n_energies)
        self.h_vacuum = vacuum.Hamiltonian(spectrum=self.spectrum, projectors=self.projectors)
        self.h_matter = matter.Hamiltonian(spectrum=self.spectrum, projectors=self.projectors,
                                           neutrino_type=self.neutrino_type,
                                           vacuum_hamiltonian=self.h_vacuum, basis=self.config.basis)
        self.evaluator = StateEvaluator(energy_grid, self.neutrino_type, self.projectors,
                                        self.h_vacuum, basis=self.config.basis)
        self._h0 = self.h_vacuum.h0(energy_grid.energies)

        if self.interactions:
            self.tensors = InteractionTensors.build(
                energy_grid, self.neutrino_type, self.n_flavors,
                cross_sections=self._cross_sections or PowerLawCrossSections(),
                tau_decay=self._tau_decay,
                fix_cross_sections=self.config.fix_cross_sections,
            )
        self.lifecycle.apply("set_energy")
        logger.debug("Energy grid set: %d nodes in [%.4g, %.4g] GeV.", energy_grid.n_energies,
                     energy_grid.energies_GeV[0], energy_grid.energies_GeV[-1])

    def get_energies_GeV(self) -> np.ndarray:
        if self.energy_grid is None:
            raise PreconditionError("energy not set")
        return self.energy_grid.energies_GeV

    # ------------------------------------------------------------
    # medium
    # ------------------------------------------------------------

    def set_body(self, body: Body):
        if not isinstance(body, Body):
            raise TypeError(f"expected a Body, got {type(body).__name__}")
        self.body = body
        self.lifecycle.apply("set_body")

    def set_track(self, track: Track):
        if not isinstance(track, Track):
            raise TypeError(f"expected a Track, got {type(track).__name__}")
        self._time_offset = self.integrator.position - track.x_initial
        track.set_x(track.x_initial)
        self.track = track
        self.lifecycle.apply("set_track")

    # ------------------------------------------------------------
    # oscillation parameters
    # ------------------------------------------------------------

    def _mixing_changed(self):
        self.lifecycle.apply("set_mixing")
        if self.projectors is not None:
            self.projectors.rebuild(self.mixing)
            self._h0 = self.h_vacuum.h0(self.energy_grid.energies)

    def set_mixing_angle(self, i: int, j: int, value: float):
        """θ_ij [rad], 1-based i < j. Invalidates the current state."""
        self.mixing.set_angle(i, j, value)
        self._mixing_changed()

    def get_mixing_angle(self, i: int, j: int) -> float:
        return self.mixing.get_angle(i, j)

    def set_cp_phase(self, i: int, j: int, value: float):
        """δ_ij [rad], 1-based i < j. Invalidates the current state."""
        self.mixing.set_phase(i, j, value)
        self._mixing_changed()

    def get_cp_phase(self, i: int, j: int) -> float:
        return self.mixing.get_phase(i, j)

    def set_square_mass_difference(self, k: int, value: float):
        """Δm²_k1 [eV²], 1-based k >= 2. Invalidates the current state."""
        self.spectrum.set_dm2(k, value)
        self._mixing_changed()

    def get_square_mass_difference(self, k: int) -> float:
        return self.spectrum.get_dm2(k)

    def set_mixing_parameters_to_default(self):
        self.mixing = Mixing.default(self.n_flavors)
        self.spectrum = Spectrum.default(self.n_flavors)
        if self.h_vacuum is not None:
            self.h_vacuum.set_spectrum(self.spectrum)
            self.h_matter.set_spectrum(self.spectrum)
        self._mixing_changed()

    # ------------------------------------------------------------
    # options
    # ------------------------------------------------------------

    def set_basis(self, basis: Basis):
        if basis not in Basis.working_bases():
            raise ValueError(f"propagation basis must be MASS or INTERACTION, got {basis}")
        self.config.basis = basis
        if self.h_matter is not None:
            self.h_matter.basis = basis
            self.evaluator.basis = basis
        self.lifecycle.apply("set_basis")

    def _check_tau_regeneration(self):
        if self.neutrino_type is not NeutrinoType.BOTH:
            raise PreconditionError("tau regeneration needs NeutrinoType.BOTH")
        if not self.interactions:
            raise PreconditionError("tau regeneration needs interactions")

    def set_tau_regeneration(self, opt: bool):
        if opt:
            self._check_tau_regeneration()
        self.config.tau_regeneration = bool(opt)

    def set_tau_regeneration_scale(self, scale_km: float):
        if scale_km <= 0.0:
            raise ValueError("tau regeneration scale must be positive")
        self.config.tau_reg_scale_km = float(scale_km)

    def set_positivity_constraint(self, opt: bool):
        self.config.positivization = bool(opt)

    def set_positivity_constraint_step(self, step_km: float):
        if step_km <= 0.0:
            raise ValueError("positivity step must be positive")
        self.config.positivization_scale_km = float(step_km)

    def set_progress_bar(self, opt: bool):
        self.config.progress_bar = bool(opt)

    # ------------------------------------------------------------
    # state buffer
    # ------------------------------------------------------------

    @property
    def _rho_shape(self):
        n = self.n_flavors
        return self.energy_grid.n_energies, self.neutrino_type.n_rhos, n, n

    @property
    def _rho_size(self):
        return int(np.prod(self._rho_shape))

    def _split(self, y):
        """Views (rho, scalars) into a flat buffer; scalars are empty without interactions."""
        rho = y[:self._rho_size].reshape(self._rho_shape)
        scalars = y[self._rho_size:].reshape(self.energy_grid.n_energies, -1)
        return rho, scalars

    @property
    def rho(self) -> SUVector:
        """Current density matrices in the working frame, shape (nE, n_rhos)."""
        return SUVector(self._split(self.integrator.state)[0])

    @property
    def scalars(self) -> np.ndarray:
        """Taus in flight per node and channel, shape (nE, n_rhos)."""
        return self._split(self.integrator.state)[1].real

    def set_initial_state(self, state, basis: Basis = Basis.FLAVOR):
        """
        Set the flux at the start of the track.

        `state` is (n,) in single-energy mode, (nE, n) for one channel or
        (nE, 2, n) for NeutrinoType.BOTH (nE = 1 included), with entries
        weighting the flavor or mass projectors.
        """
        if basis not in (Basis.FLAVOR, Basis.MASS):
            raise ValueError(f"initial state basis must be FLAVOR or MASS, got {basis}")
        self.lifecycle.require("set_initial_state")

        v = np.asarray(state, dtype=float)
        n, nE = self.n_flavors, self.energy_grid.n_energies
        if v.size == 0:
            raise ValueError("empty initial state")
        if v.ndim == 1:
            if not self.energy_grid.is_single_energy:
                raise ValueError("a (n,) initial state needs single-energy mode")
            if self.neutrino_type is NeutrinoType.BOTH:
                raise ValueError("NeutrinoType.BOTH needs a (1, 2, n) initial state")
            expected = (n,)
        elif v.ndim == 2:
            if self.neutrino_type is NeutrinoType.BOTH:
                raise ValueError("NeutrinoType.BOTH needs a (nE, 2, n) initial state")
            expected = (nE, n)
        elif v.ndim == 3:
            if self.neutrino_type is not NeutrinoType.BOTH:
                raise ValueError("a (nE, 2, n) initial state needs NeutrinoType.BOTH")
            expected = (nE, 2, n)
        else:
            raise ValueError(f"initial state must have 1 to 3 dimensions, got {v.ndim}")
        if v.shape != expected:
            raise ValueError(f"initial state shape {v.shape} does not match {expected}")
        if not np.all(np.isfinite(v)):
            raise ValueError("initial state must be finite")

        v = v.reshape(nE, self.neutrino_type.n_rhos, n)

        # restart the clock at the beginning of the track
        self.track.set_x(self.track.x_initial)
        self._x_initial = self.track.x_initial
        self._time_offset = 0.0
        self.projectors.rebuild(self.mixing)
        self._h0 = self.h_vacuum.h0(self.energy_grid.energies)

        if basis is Basis.FLAVOR:
            rho = np.einsum("erj,rjab->erab", v, self.projectors.flavor.matrix)
        else:
            rho = np.einsum("erj,jab->erab", v, self.projectors.mass.matrix)
        n_scalars = self.neutrino_type.n_rhos if self.interactions else 0
        y0 = np.concatenate([rho.reshape(-1), np.zeros(nE * n_scalars, dtype=np.complex128)])
        self.integrator.reset(self._x_initial, y0)
        self.lifecycle.apply("set_initial_state")
        logger.debug("Initial state set in the %s basis at x=%.6g km.", basis.value, self.track.x_km)

    def _restore(self, rho: SUVector, x: float, x_initial: float, track_x: float):
        """Install a persisted state; positions in eV^-1."""
        self.lifecycle.require("set_initial_state")
        if rho.shape != self._rho_shape[:2] or rho.dim != self.n_flavors:
            raise ValueError(f"state of shape {rho.shape} does not match {self._rho_shape[:2]}")
        self._x_initial = float(x_initial)
        self._time_offset = float(x) - float(track_x)
        n_scalars = self.neutrino_type.n_rhos if self.interactions else 0
        y0 = np.concatenate([rho.matrix.reshape(-1),
                             np.zeros(self.energy_grid.n_energies * n_scalars, dtype=np.complex128)])
        self.integrator.reset(x, y0)
        self.lifecycle.apply("set_initial_state")
        self.pre_derive(x)

    # ------------------------------------------------------------
    # right-hand side
    # ------------------------------------------------------------

    def pre_derive(self, x: float):
        """Bring the track, the frame and the interaction rates to position x [eV^-1]."""
        self.track.set_x(x - self._time_offset)
        if self.config.basis is not Basis.MASS:
            self.projectors.evolve(self._h0, x - self._x_initial)
        density = self.body.density(self.track)
        self.h_matter.set_medium(density, self.body.ye(self.track))
        if self.interactions:
            self.tensors.update(density)
        if self._progress is not None:
            length = self.track.length
            done = (self.track.x - self.track.x_initial) / length if length > 0.0 else 1.0
            self._progress.n = int(round(100.0 * min(max(done, 0.0), 1.0)))
            self._progress.refresh()

    def derive(self, x: float, y: np.ndarray) -> np.ndarray:
        """d(state)/dx for the flat buffer y."""
        rho, scalars = self._split(y)
        drho = np.empty_like(rho)
        dscalars = np.zeros_like(scalars)
        E = self.energy_grid.energies
        evolved = self.projectors.evolved.matrix                # (n_rhos, n, nE, n, n)
        active = slice(0, len(ACTIVE_FLAVORS))

        for r in range(self.neutrino_type.n_rhos):
            state = SUVector(rho[:, r])                         # (nE,)
            d = -1j * commutator(self.h_matter.operator(E, r), state)

            if self.interactions:
                t = self.tensors
                # attenuation -{Γ, ρ}
                gamma = SUVector(np.einsum("fe,feab->eab", 0.5 * t.invlen_int[r, active], evolved[r, active]))
                d -= anticommutator(gamma, state)

                # NC regeneration from higher nodes; flavor-universal cross sections.
                # width(e2) is the quadrature weight of the source node.
                flux = t.invlen_nc[r, 0] * self._widths
                feed = SUVector(np.einsum("ji,j,jab->iab", t.dNdE_nc[r, 0], flux, state.matrix))
                d += 0.5 * anticommutator(self.projectors.summed_flavor(r, active), feed)

                # CC production of taus held in the scalars
                nutau = inner(SUVector(evolved[r, tau]), state)
                source = nutau * t.invlen_cc[r, tau] * self._widths
                dscalars[:, r] = t.dNdE_cc[r, tau].T @ source

            drho[:, r] = d.matrix

        return np.concatenate([drho.reshape(-1), dscalars.reshape(-1)])

    # ------------------------------------------------------------
    # evolution
    # ------------------------------------------------------------

    def evolve_state(self):
        """Propagate from the current position to the end of the track."""
        self.lifecycle.require("evolve")
        if self.config.tau_regeneration:
            self._check_tau_regeneration()

        remaining = self.track.x_final - self.track.x
        if self.config.tau_regeneration:
            scale = self.config.tau_reg_scale_km * KM
            if self.config.positivization:
                scale = min(scale, self.config.positivization_scale_km * KM)
        elif self.config.positivization:
            scale = self.config.positivization_scale_km * KM
        else:
            scale = None

        if self.config.progress_bar:
            self._progress = tqdm(total=100, desc="propagating", unit="%", leave=False)
        n_before = self.integrator.n_evaluations
        try:
            if scale is None:
                self.integrator.advance(remaining)
            else:
                n_steps = int(remaining // scale)
                for _ in range(n_steps):
                    self.integrator.advance(scale)
                    self._post_step()
                self.integrator.advance(remaining - n_steps * scale)
                self._post_step()
        finally:
            if self._progress is not None:
                self._progress.close()
                self._progress = None

        self.lifecycle.apply("evolve")
        logger.info("Evolved %d node(s) over %.6g km (%d right-hand-side evaluations).",
                    self.energy_grid.n_energies, remaining / KM,
                    self.integrator.n_evaluations - n_before)

    def _post_step(self):
        if self.config.positivization:
            self.positivize_flavors()
        if self.config.tau_regeneration:
            self.convert_tau_into_nu_tau()

    def convert_tau_into_nu_tau(self):
        """
        Release the taus held in the scalars as neutrinos at lower energies.

        Every tau decay yields a ν_τ of the same particle type; the leptonic
        modes also yield ν̄_e and ν̄_μ, which feed the opposite channel.
        """
        if self.neutrino_type is not NeutrinoType.BOTH or not self.interactions:
            raise PreconditionError("tau conversion needs NeutrinoType.BOTH with interactions")
        self.lifecycle.require("evaluate")

        rho, scalars = self._split(self.integrator.state)
        t = self.tensors
        weighted = scalars.real * self._widths[:, None]                 # (nE, 2)
        tau_all = t.dNdE_tau_all.T @ weighted                           # (nE, 2)
        tau_lep = t.dNdE_tau_lep.T @ weighted
        evolved = self.projectors.evolved.matrix

        for r, other in ((0, 1), (1, 0)):
            leptons = evolved[r, electron] + evolved[r, muon]
            rho[:, r] += (tau_all[:, r, None, None] * evolved[r, tau]
                          + tau_lep[:, other, None, None] * leptons)
        scalars[:] = 0.0

    def positivize_flavors(self):
        """Remove negative flavor content left by truncation errors."""
        self.lifecycle.require("evaluate")
        rho, _ = self._split(self.integrator.state)
        evolved = self.projectors.evolved.matrix                        # (n_rhos, n, nE, n, n)
        values = inner(SUVector(evolved), SUVector(np.swapaxes(rho, 0, 1)[:, None]))  # (n_rhos, n, nE)
        negative = np.minimum(values, 0.0)
        if np.any(negative < 0.0):
            correction = np.einsum("rfe,rfeab->erab", negative, evolved)
            rho -= correction
            logger.debug("Positivized %d flavor value(s).", int(np.count_nonzero(negative)))

    # ------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------

    @property
    def _dx(self):
        return self.integrator.position - self._x_initial

    def _single_node(self):
        if not self.energy_grid.is_single_energy:
            raise PreconditionError("an energy is required outside single-energy mode")

    def eval_flavor(self, flavor: int, E_GeV: float = None, channel: int = 0) -> float:
        self.lifecycle.require("evaluate")
        if E_GeV is None:
            self._single_node()
            return self.eval_flavor_at_node(flavor, 0, channel)
        return self.evaluator.flavor(self.rho, flavor, E_GeV * GEV_TO_EV, channel, self._dx)

    def eval_mass(self, flavor: int, E_GeV: float = None, channel: int = 0) -> float:
        self.lifecycle.require("evaluate")
        if E_GeV is None:
            self._single_node()
            return self.eval_mass_at_node(flavor, 0, channel)
        return self.evaluator.mass(self.rho, flavor, E_GeV * GEV_TO_EV, channel, self._dx)

    def eval_flavor_at_node(self, flavor: int, node: int, channel: int = 0) -> float:
        self.lifecycle.require("evaluate")
        return self.evaluator.flavor_at_node(self.rho, flavor, node, channel, self._dx)

    def eval_mass_at_node(self, flavor: int, node: int, channel: int = 0) -> float:
        self.lifecycle.require("evaluate")
        return self.evaluator.mass_at_node(self.rho, flavor, node, channel, self._dx)

    def flavor_composition(self) -> np.ndarray:
        """Flavor content at every node, shape (nE, n_rhos, n)."""
        self.lifecycle.require("evaluate")
        return self.evaluator.composition(self.rho, self._dx, kind="flavor")

    def mass_composition(self) -> np.ndarray:
        self.lifecycle.require("evaluate")
        return self.evaluator.composition(self.rho, self._dx, kind="mass")

    def get_state(self, node: int, channel: int = 0) -> SUVector:
        self.lifecycle.require("evaluate")
        self.neutrino_type.is_antineutrino_channel(channel)
        if not 0 <= node < self.energy_grid.n_energies:
            raise IndexError(f"node {node} out of range")
        return self.rho[node, channel].copy()

    def get_flavor_projector(self, flavor: int, channel: int = 0) -> SUVector:
        if self.projectors is None:
            raise PreconditionError("energy not set")
        self.neutrino_type.is_antineutrino_channel(channel)
        if not 0 <= flavor < self.n_flavors:
            raise IndexError(f"flavor {flavor} out of range")
        return self.projectors.flavor[channel, flavor].copy()

    def get_mass_projector(self, flavor: int) -> SUVector:
        if self.projectors is None:
            raise PreconditionError("energy not set")
        if not 0 <= flavor < self.n_flavors:
            raise IndexError(f"flavor {flavor} out of range")
        return self.projectors.mass[flavor].copy()

    def get_hamiltonian(self, node: int, channel: int = 0) -> SUVector:
        """Full Hamiltonian H0 + HI at a node, in the working frame at the current position."""
        self.lifecycle.require("hamiltonian")
        if not 0 <= node < self.energy_grid.n_energies:
            raise IndexError(f"node {node} out of range")
        self.pre_derive(self.integrator.position)
        hi = self.h_matter.operator(self.energy_grid.energies, channel)[node]
        if self.config.basis is Basis.MASS:
            # the mass-basis matter term already carries H0
            return hi
        return self._h0[node] + hi

    # ------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------

    def write_state(self, path, group: str = "/", save_cross_sections: bool = True):
        from nu_rho.storage import hdf5
        hdf5.write_state(self, path, group=group, save_cross_sections=save_cross_sections)

    @classmethod
    def from_file(cls, path, group: str = "/", **kwargs) -> "Propagator":
        from nu_rho.storage import hdf5
        return hdf5.read_state(path, group=group, **kwargs)

    def __repr__(self):
        n_e = 0 if self.energy_grid is None else self.energy_grid.n_energies
        return (f"Propagator(n_flavors={self.n_flavors}, type={self.neutrino_type.name}, "
                f"nodes={n_e}, interactions={self.interactions}, stage={self.lifecycle.stage.value})")
