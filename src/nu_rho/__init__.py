import logging

__version__ = "0.1.0"

from nu_rho.config import IntegratorSettings, PropagatorConfig
from nu_rho.errors import IntegrationError, NuRhoError, PreconditionError, StateFormatError
from nu_rho.matter.body import ConstantDensity, Track, Vacuum, VariableDensity
from nu_rho.matter.prem import Earth, EarthTrack
from nu_rho.matter.solar import Sun, SunTrack
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.propagation.propagator import Propagator
from nu_rho.state.basis import Basis
from nu_rho.utils.flavors import NeutrinoType, electron, muon, tau

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Basis", "ConstantDensity", "Earth", "EarthTrack", "EnergyGrid", "IntegrationError",
    "IntegratorSettings", "NeutrinoType", "NuRhoError", "PreconditionError", "Propagator",
    "PropagatorConfig", "StateFormatError", "Sun", "SunTrack", "Track", "Vacuum",
    "VariableDensity", "electron", "muon", "tau",
]
