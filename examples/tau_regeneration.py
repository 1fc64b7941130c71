import numpy as np
import matplotlib.pyplot as plt

from nu_rho import (Basis, Earth, EarthTrack, EnergyGrid, NeutrinoType, Propagator, PropagatorConfig,
                    electron, muon, tau)
from nu_rho.utils.logging import setup_logging

setup_logging("INFO", format_type="plain")

n_energies = 60
grid = EnergyGrid.logspace(1.0e2, 1.0e7, n_energies)
E = grid.energies_GeV

# flat flux with a 1:1:1 flavor ratio, in units of the incoming flux
initial = np.ones((n_energies, 2, 3))

composition = {}
for tau_regeneration in (False, True):
    config = PropagatorConfig(tau_regeneration=tau_regeneration, tau_reg_scale_km=300.0,
                              positivization=True, progress_bar=True)
    prop = Propagator(3, NeutrinoType.BOTH, grid, interactions=True, config=config)
    prop.set_body(Earth())
    prop.set_track(EarthTrack(2.0 * 6371.0))
    prop.set_initial_state(initial, Basis.FLAVOR)
    prop.evolve_state()
    composition[tau_regeneration] = prop.flavor_composition()

prop.write_state("tau_regeneration.h5")

fig, ax = plt.subplots(figsize=(6, 4))
for flavor, name in ((electron, "e"), (muon, r"\mu"), (tau, r"\tau")):
    ax.plot(E, composition[True][:, 0, flavor], lw=2, label=rf"$\nu_{name}$ with regeneration")
    ax.plot(E, composition[False][:, 0, flavor], lw=1, ls="--", label=rf"$\nu_{name}$ absorption only")
ax.set_xscale("log")
ax.set_xlabel("Neutrino energy $E$ [GeV]")
ax.set_ylabel(r"$\phi / \phi_0$")
ax.set_title("Vertically upgoing flux through the Earth")
ax.legend(fontsize=8)
ax.grid(True, ls="--", alpha=0.5)
fig.tight_layout()
plt.show()
