import numpy as np
import matplotlib.pyplot as plt

from nu_rho import Basis, EnergyGrid, NeutrinoType, Propagator, Track, Vacuum, electron, muon

# 3 flavors PMNS, PDG values (2025)
angles = {(1, 2): np.deg2rad(33.4), (1, 3): np.deg2rad(8.6), (2, 3): np.deg2rad(49.0)}
phases = {(1, 3): np.deg2rad(195)}

prop = Propagator(3, NeutrinoType.NEUTRINO, EnergyGrid.linspace(0.2, 3.0, 200))
for (i, j), theta in angles.items():
    prop.set_mixing_angle(i, j, theta)
for (i, j), delta in phases.items():
    prop.set_cp_phase(i, j, delta)
# Masses, normal ordering
prop.set_square_mass_difference(2, 7.42e-5)
prop.set_square_mass_difference(3, 7.42e-5 + 0.0024428)
prop.mixing.summary()
prop.spectrum.summary()

# T2K-like baseline
prop.set_body(Vacuum())
prop.set_track(Track(0.0, 295.0))

initial = np.zeros((200, 3))
initial[:, muon] = 1.0
prop.set_initial_state(initial, Basis.FLAVOR)
prop.evolve_state()

E = prop.get_energies_GeV()
P = prop.flavor_composition()[:, 0]

plt.figure(figsize=(6, 4))
plt.plot(E, P[:, muon], lw=2, label=r"$P(\nu_\mu \to \nu_\mu)$")
plt.plot(E, P[:, electron], lw=2, label=r"$P(\nu_\mu \to \nu_e)$")
plt.xlabel("Neutrino energy $E$ [GeV]")
plt.ylabel("Probability")
plt.title("Vacuum oscillation probability")
plt.legend()
plt.grid(True, ls="--", alpha=0.5)
plt.tight_layout()
plt.show()
