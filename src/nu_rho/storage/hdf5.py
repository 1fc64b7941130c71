"""
HDF5 persistence of a propagation.

Layout inside `group`:

    energies        (nE,) [eV]              attrs: elogscale
    basic           (1,)                    attrs: numneu, NT, interactions, basis, time,
                                                   time_initial, format_version, nu_rho_version
    mixingangles    (1,)                    attrs: th12, th13, ...
    CPphases        (1,)                    attrs: delta12, delta13, ...
    massdifferences (1,)                    attrs: dm21sq, dm31sq, ...
    neustate        (nE, n^2)               real components of the neutrino density matrices
    aneustate       (nE, n^2)               same for antineutrinos (zeros if absent)
    flavorcomp      (nE, n_rhos, n)
    masscomp        (nE, n_rhos, n)
    track           params [km]             attrs: XINI, XEND, X [eV^-1]
    body            params                  attrs: NAME, ID
    crosssections/  sigmacc, sigmanc, dNdEcc, dNdEnc, invlentau, dNdEtauall, dNdEtaulep
    user_parameters/

Positions and the evolution time are stored in natural units so that a
restored state continues on exactly the same path coordinate.
"""
import logging
from pathlib import Path

import h5py
import numpy as np

from nu_rho.config import PropagatorConfig
from nu_rho.errors import StateFormatError
from nu_rho.interactions.tensors import InteractionTensors
from nu_rho.matter.registry import make_body_track
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.state.basis import Basis
from nu_rho.state.su_vector import SUVector
from nu_rho.utils.flavors import NeutrinoType

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_CROSS_SECTIONS = {
    "sigmacc": "sigma_cc",
    "sigmanc": "sigma_nc",
    "dNdEcc": "dNdE_cc",
    "dNdEnc": "dNdE_nc",
    "invlentau": "invlen_tau",
    "dNdEtauall": "dNdE_tau_all",
    "dNdEtaulep": "dNdE_tau_lep",
}


def _flag(value: bool) -> str:
    return "True" if value else "False"


def _read_flag(value) -> bool:
    if isinstance(value, bytes):
        value = value.decode()
    return str(value) == "True"


def _read_str(value) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _open_group(f: h5py.File, group: str, create: bool):
    if group in ("", "/"):
        return f
    if create:
        return f.require_group(group)
    if group not in f:
        raise StateFormatError(f"group '{group}' not found")
    return f[group]


def write_state(propagator, path, group: str = "/", save_cross_sections: bool = True,
                user_parameters: dict = None):
    """
    Write the full propagation state of `propagator` to an HDF5 file.

    Writing to the root group replaces the file; named groups are added to
    an existing file.
    """
    from nu_rho import __version__

    prop = propagator
    prop.lifecycle.require("write")
    n = prop.n_flavors
    nE = prop.energy_grid.n_energies

    components = prop.rho.components()                          # (nE, n_rhos, n^2)
    neu = np.zeros((nE, n * n))
    aneu = np.zeros((nE, n * n))
    for r, channel_type in enumerate(prop.neutrino_type.channel_types()):
        if channel_type is NeutrinoType.NEUTRINO:
            neu = components[:, r]
        else:
            aneu = components[:, r]

    path = Path(path)
    mode = "a" if path.exists() and group not in ("", "/") else "w"
    with h5py.File(path, mode) as f:
        g = _open_group(f, group, create=True)

        energies = g.create_dataset("energies", data=prop.energy_grid.energies)
        energies.attrs["elogscale"] = _flag(prop.energy_grid.log_scale)
        energies.attrs["units"] = "eV"

        basic = g.create_dataset("basic", data=np.zeros(1))
        basic.attrs["numneu"] = n
        basic.attrs["NT"] = prop.neutrino_type.value
        basic.attrs["interactions"] = _flag(prop.interactions)
        basic.attrs["basis"] = prop.config.basis.value
        basic.attrs["time"] = prop.integrator.position
        basic.attrs["time_initial"] = prop._x_initial
        basic.attrs["format_version"] = FORMAT_VERSION
        basic.attrs["nu_rho_version"] = __version__

        angles = g.create_dataset("mixingangles", data=np.zeros(1))
        phases = g.create_dataset("CPphases", data=np.zeros(1))
        for i, j in prop.mixing.pairs():
            angles.attrs[f"th{i}{j}"] = prop.mixing.get_angle(i, j)
            phases.attrs[f"delta{i}{j}"] = prop.mixing.get_phase(i, j)
        masses = g.create_dataset("massdifferences", data=np.zeros(1))
        for k in range(2, n + 1):
            masses.attrs[f"dm{k}1sq"] = prop.spectrum.get_dm2(k)

        g.create_dataset("neustate", data=neu)
        g.create_dataset("aneustate", data=aneu)
        g.create_dataset("flavorcomp", data=prop.flavor_composition())
        g.create_dataset("masscomp", data=prop.mass_composition())

        track = g.create_dataset("track", data=prop.track.params)
        track.attrs["XINI"] = prop.track.x_initial
        track.attrs["XEND"] = prop.track.x_final
        track.attrs["X"] = prop.track.x
        track.attrs["TYPE"] = type(prop.track).__name__

        body = g.create_dataset("body", data=prop.body.params)
        body.attrs["NAME"] = prop.body.name
        body.attrs["ID"] = prop.body.body_id

        if save_cross_sections and prop.interactions:
            xs = g.create_group("crosssections")
            for key, attr in _CROSS_SECTIONS.items():
                xs.create_dataset(key, data=getattr(prop.tensors, attr))

        params = g.create_group("user_parameters")
        for key, value in (user_parameters or {}).items():
            params.attrs[key] = value

    logger.info("State written to %s:%s (%d node(s), %s).", path, group, nE, prop.neutrino_type.name)


def read_user_parameters(path, group: str = "/") -> dict:
    with h5py.File(path, "r") as f:
        g = _open_group(f, group, create=False)
        if "user_parameters" not in g:
            return {}
        return dict(g["user_parameters"].attrs)


def read_state(path, group: str = "/", config: PropagatorConfig = None, **kwargs):
    """
    Rebuild a Propagator from a file written by `write_state`.

    Extra keyword arguments (cross-section or tau-decay providers) are
    forwarded to the Propagator constructor; stored cross sections take
    precedence over the rebuilt ones.
    """
    from nu_rho.propagation.propagator import Propagator

    with h5py.File(path, "r") as f:
        g = _open_group(f, group, create=False)
        for key in ("energies", "basic", "neustate", "aneustate", "track", "body"):
            if key not in g:
                raise StateFormatError(f"missing '{key}' in {path}:{group}")

        basic = g["basic"].attrs
        version = int(basic.get("format_version", 0))
        if version > FORMAT_VERSION:
            raise StateFormatError(f"format version {version} is newer than the supported "
                                   f"version {FORMAT_VERSION}")

        n = int(basic["numneu"])
        neutrino_type = NeutrinoType(int(basic["NT"]))
        interactions = _read_flag(basic["interactions"])
        basis = Basis(_read_str(basic.get("basis", Basis.INTERACTION.value)))
        time = float(basic["time"])
        time_initial = float(basic["time_initial"])

        energies = g["energies"]
        grid = EnergyGrid(energies[()], log_scale=_read_flag(energies.attrs["elogscale"]))

        angles = dict(g["mixingangles"].attrs) if "mixingangles" in g else {}
        phases = dict(g["CPphases"].attrs) if "CPphases" in g else {}
        masses = dict(g["massdifferences"].attrs) if "massdifferences" in g else {}

        neu = g["neustate"][()]
        aneu = g["aneustate"][()]

        track_attrs = g["track"].attrs
        body_attrs = g["body"].attrs
        body, track = make_body_track(int(body_attrs["ID"]), g["body"][()], g["track"][()])
        track_x = float(track_attrs["X"])

        tables = None
        if interactions and "crosssections" in g:
            xs = g["crosssections"]
            tables = {attr: xs[key][()] for key, attr in _CROSS_SECTIONS.items() if key in xs}

    if config is None:
        config = PropagatorConfig(basis=basis)
    else:
        config.basis = basis
    prop = Propagator(n, neutrino_type, interactions=interactions, config=config, **kwargs)
    for i, j in prop.mixing.pairs():
        prop.set_mixing_angle(i, j, float(angles.get(f"th{i}{j}", 0.0)))
        prop.set_cp_phase(i, j, float(phases.get(f"delta{i}{j}", 0.0)))
    for k in range(2, n + 1):
        prop.set_square_mass_difference(k, float(masses.get(f"dm{k}1sq", 0.0)))

    prop.set_energy_grid(grid)
    if tables is not None and len(tables) == len(_CROSS_SECTIONS):
        prop.tensors = InteractionTensors(grid, neutrino_type, n, **tables)
    prop.set_body(body)
    prop.set_track(track)

    channels = []
    for channel_type in neutrino_type.channel_types():
        channels.append(neu if channel_type is NeutrinoType.NEUTRINO else aneu)
    rho = SUVector.from_components(np.stack(channels, axis=1))   # (nE, n_rhos)
    prop._restore(rho, x=time, x_initial=time_initial, track_x=track_x)

    logger.info("State read from %s:%s (%d node(s), %s).", path, group, grid.n_energies, neutrino_type.name)
    return prop
