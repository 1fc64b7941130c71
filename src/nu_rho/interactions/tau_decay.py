import numpy as np

from nu_rho.utils.units import TAU_BRANCHING_LEPTONIC, TAU_MASS

PION_MASS = 139.57039e6         # [eV]
RHO_MASS = 775.26e6             # [eV]
A1_MASS = 1230.0e6              # [eV]


def _vector_factor(meson_mass):
    # vector mesons carry both helicities, which dilutes the polarization term
    r = (meson_mass / TAU_MASS) ** 2
    return (1.0 - 2.0 * r) / (1.0 + 2.0 * r)


class TauDecaySpectra:
    """
    Energy spectra of the neutrinos emitted in tau decays, on an energy grid.

    `dNdE_all(e1, e2)` is the ν_τ spectrum summed over every decay mode and
    `dNdE_leptonic(e1, e2)` the spectrum of the ν̄_e / ν̄_μ produced in the
    leptonic modes, for a tau of energy E[e1] producing a neutrino at E[e2].
    Both are in eV^-1, vanish for e2 >= e1, and use the polarized shapes in
    the collinear limit, with z = E_ν / E_τ:
        dN/dz = BR * (g0(z) + P g1(z))
    """

    BRANCHING = {
        "leptonic": 0.35,
        "pion": 0.12,
        "rho": 0.26,
        "a1": 0.13,
        "hadronic_other": 0.14,
    }

    def __init__(self, energies, polarization: float = -1.0,
                 leptonic_branching: float = TAU_BRANCHING_LEPTONIC):
        self.energies = np.asarray(energies, dtype=float)
        self.polarization = float(polarization)
        self.leptonic_branching = float(leptonic_branching)

    # ---------- shapes in z ----------
    def _nutau_leptonic(self, z):
        g0 = 5.0 / 3.0 - 3.0 * z ** 2 + 4.0 / 3.0 * z ** 3
        g1 = 1.0 / 3.0 - 3.0 * z ** 2 + 8.0 / 3.0 * z ** 3
        return g0 + self.polarization * g1

    def _antinu_lepton(self, z):
        g0 = 2.0 - 6.0 * z ** 2 + 4.0 * z ** 3
        g1 = -2.0 + 12.0 * z - 18.0 * z ** 2 + 8.0 * z ** 3
        return g0 + self.polarization * g1

    def _two_body(self, z, meson_mass, longitudinal=1.0):
        r = (meson_mass / TAU_MASS) ** 2
        inside = z <= 1.0 - r
        g0 = 1.0 / (1.0 - r)
        g1 = -longitudinal * (2.0 * z - 1.0 + r) / (1.0 - r) ** 2
        return np.where(inside, g0 + self.polarization * g1, 0.0)

    def dNdz_all(self, z):
        z = np.asarray(z, dtype=float)
        br = self.BRANCHING
        out = (br["leptonic"] * self._nutau_leptonic(z)
               + br["pion"] * self._two_body(z, PION_MASS)
               + br["rho"] * self._two_body(z, RHO_MASS, _vector_factor(RHO_MASS))
               + (br["a1"] + br["hadronic_other"]) * self._two_body(z, A1_MASS, _vector_factor(A1_MASS)))
        return np.where((z >= 0.0) & (z <= 1.0), np.clip(out, 0.0, None), 0.0)

    def dNdz_leptonic(self, z):
        z = np.asarray(z, dtype=float)
        out = self.leptonic_branching * self._antinu_lepton(z)
        return np.where((z >= 0.0) & (z <= 1.0), np.clip(out, 0.0, None), 0.0)

    # ---------- on the grid ----------
    def _on_grid(self, shape, e1, e2):
        e1 = np.asarray(e1)
        e2 = np.asarray(e2)
        E_tau = self.energies[e1]
        E_nu = self.energies[e2]
        z = E_nu / E_tau
        return np.where(e2 < e1, shape(z) / E_tau, 0.0)

    def dNdE_all(self, e1, e2):
        return self._on_grid(self.dNdz_all, e1, e2)

    def dNdE_leptonic(self, e1, e2):
        return self._on_grid(self.dNdz_leptonic, e1, e2)
