import logging

import numpy as np

from nu_rho.interactions.cross_sections import CrossSectionProvider, Current
from nu_rho.interactions.tau_decay import TauDecaySpectra
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.utils.flavors import NeutrinoType
from nu_rho.utils.units import (AVOGADRO, CM, GRAM, NEUTRON_MASS, PROTON_MASS,
                                TAU_BRANCHING_LEPTONIC, TAU_LIFETIME, TAU_MASS)

logger = logging.getLogger(__name__)

DIFFERENTIAL_FLOOR = 1.0e-50
TAU_FIX_THRESHOLD = 0.25


class InteractionTensors:
    """
    Cross-section tables and redistribution kernels on an energy grid.

    Shapes
    ------
    sigma_cc, sigma_nc         : (n_rhos, n_flavors, nE)          [eV^-2]
    dNdE_cc, dNdE_nc           : (n_rhos, n_flavors, nE, nE)      [eV^-1], [e_in, e_out], e_out < e_in
    invlen_cc, invlen_nc,
    invlen_int                 : (n_rhos, n_flavors, nE)          [eV]
    invlen_tau                 : (nE,)                            [eV]
    dNdE_tau_all, dNdE_tau_lep : (nE, nE)                         [eV^-1], [e_tau, e_nu]
    """

    def __init__(self, energy_grid: EnergyGrid, neutrino_type: NeutrinoType, n_flavors: int,
                 sigma_cc, sigma_nc, dNdE_cc, dNdE_nc, invlen_tau, dNdE_tau_all, dNdE_tau_lep):
        self.energy_grid = energy_grid
        self.neutrino_type = neutrino_type
        self.n_flavors = int(n_flavors)

        shape3 = (neutrino_type.n_rhos, self.n_flavors, energy_grid.n_energies)
        shape4 = shape3 + (energy_grid.n_energies,)
        nE = energy_grid.n_energies
        self.sigma_cc = _checked(sigma_cc, shape3, "sigma_cc")
        self.sigma_nc = _checked(sigma_nc, shape3, "sigma_nc")
        self.dNdE_cc = _checked(dNdE_cc, shape4, "dNdE_cc")
        self.dNdE_nc = _checked(dNdE_nc, shape4, "dNdE_nc")
        self.invlen_tau = _checked(invlen_tau, (nE,), "invlen_tau")
        self.dNdE_tau_all = _checked(dNdE_tau_all, (nE, nE), "dNdE_tau_all")
        self.dNdE_tau_lep = _checked(dNdE_tau_lep, (nE, nE), "dNdE_tau_lep")

        self.invlen_cc = np.zeros(shape3)
        self.invlen_nc = np.zeros(shape3)
        self.invlen_int = np.zeros(shape3)

    @classmethod
    def build(cls, energy_grid: EnergyGrid, neutrino_type: NeutrinoType, n_flavors: int,
              cross_sections: CrossSectionProvider, tau_decay: TauDecaySpectra = None,
              fix_cross_sections: bool = True) -> "InteractionTensors":
        if energy_grid.is_single_energy:
            raise ValueError("Interaction tensors need a multi-energy grid.")
        if tau_decay is None:
            tau_decay = TauDecaySpectra(energy_grid.energies)

        E = energy_grid.energies
        nE = energy_grid.n_energies
        lower = np.tril(np.ones((nE, nE), dtype=bool), k=-1)     # e_out < e_in
        E_in, E_out = np.meshgrid(E, E, indexing="ij")

        n_rhos = neutrino_type.n_rhos
        sigma = {c: np.zeros((n_rhos, n_flavors, nE)) for c in Current}
        dsigma = {c: np.zeros((n_rhos, n_flavors, nE, nE)) for c in Current}
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            for rho, channel_type in enumerate(neutrino_type.channel_types()):
                for flv in range(n_flavors):
                    for current in Current:
                        sigma[current][rho, flv] = cross_sections.total_cross_section(
                            E, flv, channel_type, current)
                        d = cross_sections.differential_cross_section(
                            E_in, E_out, flv, channel_type, current)
                        dsigma[current][rho, flv] = np.where(lower, d, 0.0)

        widths = energy_grid.node_weights()
        if fix_cross_sections:
            for current in Current:
                _fix_differential(sigma[current], dsigma[current], widths)

        dNdE = {c: _normalize(dsigma[c], sigma[c]) for c in Current}

        # boosted decay rate m_τ/(τ·E); stored only, the conversion is done per chunk
        invlen_tau = TAU_MASS / (TAU_LIFETIME * E)

        e1, e2 = np.meshgrid(np.arange(nE), np.arange(nE), indexing="ij")
        tau_all = np.where(lower, tau_decay.dNdE_all(e1, e2), 0.0)
        tau_lep = np.where(lower, tau_decay.dNdE_leptonic(e1, e2), 0.0)
        if fix_cross_sections:
            _fix_tau_kernels(tau_all, tau_lep, E, widths)

        logger.debug("Interaction tensors built on %d nodes for %s (fix=%s).",
                     nE, neutrino_type.name, fix_cross_sections)
        return cls(energy_grid, neutrino_type, n_flavors,
                   sigma_cc=sigma[Current.CC], sigma_nc=sigma[Current.NC],
                   dNdE_cc=dNdE[Current.CC], dNdE_nc=dNdE[Current.NC],
                   invlen_tau=invlen_tau, dNdE_tau_all=tau_all, dNdE_tau_lep=tau_lep)

    # ------------------------------------------------------------

    @staticmethod
    def nucleon_number_density(density: float) -> float:
        """Nucleon number density [eV^3] of an isoscalar medium of density [g/cm^3]."""
        num_nuc = GRAM * CM ** -3 * density * 2.0 / (PROTON_MASS + NEUTRON_MASS)
        if num_nuc < 1.0e-10:
            num_nuc = AVOGADRO * CM ** -3 * 1.0e-10
        return num_nuc

    def update(self, density: float) -> float:
        """Refresh the inverse interaction lengths in place for the local density."""
        num_nuc = self.nucleon_number_density(density)
        np.multiply(self.sigma_cc, num_nuc, out=self.invlen_cc)
        np.multiply(self.sigma_nc, num_nuc, out=self.invlen_nc)
        np.add(self.invlen_cc, self.invlen_nc, out=self.invlen_int)
        return num_nuc


def _checked(array, shape, name):
    a = np.array(array, dtype=float)
    if a.shape != shape:
        raise ValueError(f"{name}: expected shape {shape}, got {a.shape}")
    return a


def _fix_differential(sigma, dsigma, widths):
    """
    Rescale the rows e1 >= 1 so that Σ_{e2<e1} dσ(e1, e2) width(e2) = σ(e1) - σ(e0).

    Rows with a vanishing integral are left unchanged.
    """
    integral = np.einsum("...ij,j->...i", dsigma, widths)
    anchor = sigma[..., :1]
    with np.errstate(divide="ignore", invalid="ignore"):
        rescale = (sigma - anchor) / integral
    valid = (integral != 0.0) & np.isfinite(rescale)
    valid[..., 0] = False
    n_skipped = int(np.count_nonzero(integral[..., 1:] == 0.0))
    if n_skipped:
        logger.debug("Skipped %d differential rows with a zero integral.", n_skipped)
    dsigma *= np.where(valid, rescale, 1.0)[..., None]


def _normalize(dsigma, sigma):
    with np.errstate(divide="ignore", invalid="ignore"):
        dNdE = dsigma / sigma[..., None]
    clamp = ~np.isfinite(dsigma) | (dsigma < DIFFERENTIAL_FLOOR) | ~np.isfinite(dNdE)
    n_clamped = int(np.count_nonzero(clamp & np.tril(np.ones(dsigma.shape[-2:], dtype=bool), k=-1)))
    if n_clamped:
        logger.debug("Clamped %d differential entries to zero.", n_clamped)
    return np.where(clamp, 0.0, dNdE)


def _fix_tau_kernels(tau_all, tau_lep, E, widths):
    """
    Rescale tau decay rows e1 >= 1 to the total decay probability and the
    leptonic branching, keeping the part that falls below the lowest node.
    """
    for e1 in range(1, E.shape[0]):
        below_all = tau_all[e1, 0] * E[0]
        if below_all >= TAU_FIX_THRESHOLD:
            continue
        below_lep = tau_lep[e1, 0] * E[0]
        int_all = np.dot(tau_all[e1, :e1], widths[:e1])
        int_lep = np.dot(tau_lep[e1, :e1], widths[:e1])
        if int_all > 0.0:
            tau_all[e1, :e1] *= (1.0 - below_all) / int_all
        if int_lep > 0.0:
            tau_lep[e1, :e1] *= (TAU_BRANCHING_LEPTONIC - below_lep) / int_lep
