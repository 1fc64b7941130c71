import numpy as np
import matplotlib.pyplot as plt

from nu_rho import Basis, Earth, EarthTrack, EnergyGrid, NeutrinoType, Propagator, electron, muon
from nu_rho.utils.logging import setup_logging

setup_logging("INFO", format_type="plain")

# 3 flavors PMNS, PDG values (2025)
angles = {(1, 2): np.deg2rad(33.4), (1, 3): np.deg2rad(8.6), (2, 3): np.deg2rad(49)}
phases = {(1, 3): np.deg2rad(195)}

n_energies = 120
prop = Propagator(3, NeutrinoType.BOTH, EnergyGrid.logspace(1.0, 20.0, n_energies))
for (i, j), theta in angles.items():
    prop.set_mixing_angle(i, j, theta)
for (i, j), delta in phases.items():
    prop.set_cp_phase(i, j, delta)
prop.set_square_mass_difference(2, 7.42e-5)
prop.set_square_mass_difference(3, 7.42e-5 + 0.0024428)
prop.set_progress_bar(True)

# upgoing chord through the mantle, crossing the core
baseline_km = 11000.0
prop.set_body(Earth())
prop.set_track(EarthTrack(baseline_km))

initial = np.zeros((n_energies, 2, 3))
initial[:, :, muon] = 1.0
prop.set_initial_state(initial, Basis.FLAVOR)
prop.evolve_state()

E = prop.get_energies_GeV()
P = prop.flavor_composition()
print("P_mu->e max (ν):", P[:, 0, electron].max(), "  P_mu->e max (ν̄):", P[:, 1, electron].max())

plt.figure(figsize=(6, 4))
plt.plot(E, P[:, 0, electron], lw=2, label=r"$\nu_\mu \to \nu_e$")
plt.plot(E, P[:, 1, electron], lw=2, ls="--", label=r"$\bar\nu_\mu \to \bar\nu_e$")
plt.xscale("log")
plt.xlabel("Neutrino energy $E$ [GeV]")
plt.ylabel("Appearance probability")
plt.title(f"PREM, L = {baseline_km:.0f} km")
plt.legend()
plt.grid(True, ls="--", alpha=0.5)
plt.tight_layout()
plt.show()
