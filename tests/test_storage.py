import h5py
import numpy as np
import pytest

from nu_rho.errors import PreconditionError, StateFormatError
from nu_rho.matter.body import ConstantDensity, Track
from nu_rho.matter.prem import Earth, EarthTrack
from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.propagation.propagator import Propagator
from nu_rho.state.basis import Basis
from nu_rho.storage import hdf5
from nu_rho.utils.flavors import NeutrinoType, electron, muon


def _evolved(neutrino_type=NeutrinoType.NEUTRINO, body=None, track=None):
    grid = EnergyGrid.logspace(1.0, 10.0, 5)
    prop = Propagator(3, neutrino_type, grid)
    prop.set_mixing_angle(1, 3, 0.2)
    prop.set_cp_phase(1, 3, 1.2)
    prop.set_square_mass_difference(3, 2.4e-3)
    prop.set_body(ConstantDensity(3.0, 0.5) if body is None else body)
    prop.set_track(Track(0.0, 500.0) if track is None else track)
    shape = (5, 2, 3) if neutrino_type is NeutrinoType.BOTH else (5, 3)
    initial = np.zeros(shape)
    initial[..., muon] = 1.0
    prop.set_initial_state(initial, Basis.FLAVOR)
    prop.evolve_state()
    return prop


def test_round_trip_is_exact(tmp_path):
    path = tmp_path / "state.h5"
    prop = _evolved()
    prop.write_state(path)

    read = Propagator.from_file(path)
    assert read.energy_grid == prop.energy_grid
    assert read.get_mixing_angle(1, 3) == prop.get_mixing_angle(1, 3)
    assert read.get_cp_phase(1, 3) == prop.get_cp_phase(1, 3)
    assert read.get_square_mass_difference(3) == prop.get_square_mass_difference(3)
    assert np.array_equal(read.rho.components(), prop.rho.components())
    assert read.integrator.position == prop.integrator.position
    assert read.track.x == prop.track.x
    assert read.body.params.tolist() == prop.body.params.tolist()
    assert np.allclose(read.flavor_composition(), prop.flavor_composition())


def test_round_trip_both_channels_and_earth(tmp_path):
    path = tmp_path / "earth.h5"
    prop = _evolved(NeutrinoType.BOTH, Earth(), EarthTrack(3000.0))
    prop.write_state(path)
    with h5py.File(path, "r") as f:
        assert f["basic"].attrs["NT"] == NeutrinoType.BOTH.value
        assert f["neustate"].shape == (5, 9)
        assert f["flavorcomp"].shape == (5, 2, 3)
        assert f["body"].attrs["NAME"] == "Earth"

    read = Propagator.from_file(path)
    assert isinstance(read.track, EarthTrack)
    assert np.array_equal(read.rho.components(), prop.rho.components())
    assert np.isclose(read.eval_flavor_at_node(electron, 2, channel=1),
                      prop.eval_flavor_at_node(electron, 2, channel=1))


def test_antineutrino_state_goes_to_aneustate(tmp_path):
    path = tmp_path / "anti.h5"
    prop = _evolved(NeutrinoType.ANTINEUTRINO)
    prop.write_state(path)
    with h5py.File(path, "r") as f:
        assert np.all(f["neustate"][()] == 0.0)
        assert np.any(f["aneustate"][()] != 0.0)
    read = Propagator.from_file(path)
    assert read.neutrino_type is NeutrinoType.ANTINEUTRINO
    assert np.array_equal(read.rho.components(), prop.rho.components())


def test_reader_continues_evolution(tmp_path):
    path = tmp_path / "half.h5"
    half = _evolved(track=Track(0.0, 500.0))
    full = _evolved(track=Track(0.0, 1000.0))

    half.write_state(path)
    read = Propagator.from_file(path)
    # a track starting at the current position continues the same path
    read.set_track(Track(500.0, 1000.0))
    read.evolve_state()
    assert np.isclose(read.integrator.position, full.integrator.position)
    assert np.allclose(read.flavor_composition(), full.flavor_composition(), atol=1e-6)


def test_named_groups_and_user_parameters(tmp_path):
    path = tmp_path / "groups.h5"
    prop = _evolved()
    hdf5.write_state(prop, path, group="first", user_parameters={"run": 3})
    hdf5.write_state(prop, path, group="second")
    with h5py.File(path, "r") as f:
        assert "first" in f and "second" in f
    assert hdf5.read_user_parameters(path, group="first")["run"] == 3
    read = Propagator.from_file(path, group="second")
    assert np.array_equal(read.rho.components(), prop.rho.components())
    with pytest.raises(StateFormatError):
        Propagator.from_file(path, group="third")


def test_cross_sections_are_stored(tmp_path):
    path = tmp_path / "xs.h5"
    grid = EnergyGrid.logspace(1.0e2, 1.0e5, 6)
    prop = Propagator(3, NeutrinoType.NEUTRINO, grid, interactions=True)
    prop.set_body(ConstantDensity(3.0, 0.5))
    prop.set_track(Track(0.0, 10.0))
    prop.set_initial_state(np.ones((6, 3)))
    prop.write_state(path)
    with h5py.File(path, "r") as f:
        assert f["crosssections/dNdEcc"].shape == (1, 3, 6, 6)
    read = Propagator.from_file(path)
    assert read.interactions
    assert np.array_equal(read.tensors.dNdE_cc, prop.tensors.dNdE_cc)


def test_newer_format_is_rejected(tmp_path):
    path = tmp_path / "future.h5"
    _evolved().write_state(path)
    with h5py.File(path, "a") as f:
        f["basic"].attrs["format_version"] = hdf5.FORMAT_VERSION + 1
    with pytest.raises(StateFormatError):
        Propagator.from_file(path)


def test_write_requires_a_state(tmp_path):
    prop = Propagator(3, NeutrinoType.NEUTRINO, EnergyGrid.logspace(1.0, 10.0, 3))
    with pytest.raises(PreconditionError):
        prop.write_state(tmp_path / "empty.h5")
