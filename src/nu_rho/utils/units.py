"""
Natural units (hbar = c = 1) with the electron-volt as base unit.

Energies are in eV, lengths and times in eV^-1, cross sections in eV^-2.
"""
import numpy as np

# energies
EV = 1.0
MEV = 1.0e6
GEV = 1.0e9
GEV_TO_EV = GEV

# lengths: 1 / (hbar c) with hbar c = 197.3269804 MeV fm
KM_TO_EVINV = 5.067730716e9
CM_TO_EVINV = KM_TO_EVINV * 1.0e-5
KM = KM_TO_EVINV
CM = CM_TO_EVINV

# time: 1 / hbar with hbar = 6.582119569e-16 eV s
SEC = 1.519267447e15

# mass: 1 gram in eV
GRAM = 5.609588603e32

# physical constants
GF = 1.1663787e-23                  # Fermi constant [eV^-2]
AVOGADRO = 6.02214076e23
PROTON_MASS = 938.272088e6          # [eV]
NEUTRON_MASS = 939.565420e6         # [eV]

TAU_MASS = 1776.82 * MEV
TAU_LIFETIME = 2.906e-13 * SEC
TAU_BRANCHING_LEPTONIC = 0.14

# sqrt(2) G_F N_A / cm^3: coherent potential per (g/cm^3) of matter [eV]
VCOEFF_EV = np.sqrt(2.0) * GF * AVOGADRO * CM ** -3
