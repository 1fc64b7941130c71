import numpy as np
import pytest

from nu_rho.models.energy_grid import EnergyGrid
from nu_rho.utils.units import GEV


def test_logspace_nodes():
    grid = EnergyGrid.logspace(1.0e2, 1.0e6, 5)
    assert grid.n_energies == 5
    assert grid.log_scale
    assert not grid.is_single_energy
    assert np.allclose(grid.energies_GeV, [1e2, 1e3, 1e4, 1e5, 1e6])
    assert np.allclose(grid.energies, grid.energies_GeV * GEV)


def test_linspace_and_single():
    grid = EnergyGrid.linspace(1.0, 3.0, 3)
    assert not grid.log_scale
    assert np.allclose(grid.energies_GeV, [1.0, 2.0, 3.0])

    single = EnergyGrid.single(1.0)
    assert single.is_single_energy
    assert np.allclose(single.node_weights(), 0.0)
    # a one-node logspace is single-energy mode too
    assert EnergyGrid.logspace(5.0, 5.0, 1).is_single_energy


def test_node_weights_repeat_last_interval():
    grid = EnergyGrid.linspace(1.0, 4.0, 4)
    w = grid.node_weights()
    assert w.shape == (4,)
    assert np.allclose(w / GEV, [1.0, 1.0, 1.0, 1.0])

    grid = EnergyGrid.logspace(1.0, 100.0, 3)
    w = grid.node_weights() / GEV
    assert np.allclose(w, [9.0, 90.0, 90.0])


def test_bracket():
    grid = EnergyGrid.linspace(1.0, 3.0, 3)
    i, f = grid.bracket(1.5 * GEV)
    assert i == 0 and np.isclose(f, 0.5)
    i, f = grid.bracket(3.0 * GEV)
    assert i == 1 and np.isclose(f, 1.0)
    with pytest.raises(ValueError):
        grid.bracket(0.5 * GEV)
    with pytest.raises(ValueError):
        EnergyGrid.single(1.0).bracket(1.0 * GEV)


def test_invalid_grids():
    with pytest.raises(ValueError):
        EnergyGrid.logspace(10.0, 1.0, 5)
    with pytest.raises(ValueError):
        EnergyGrid.logspace(1.0, 10.0, 0)
    with pytest.raises(ValueError):
        EnergyGrid(np.array([1.0, 1.0]))
    with pytest.raises(ValueError):
        EnergyGrid(np.array([-1.0, 1.0]))


def test_grid_is_read_only():
    grid = EnergyGrid.logspace(1.0, 10.0, 3)
    with pytest.raises(ValueError):
        grid.energies[0] = 0.0


def test_bounds_are_exact_nodes():
    grid = EnergyGrid.logspace(0.2, 50.0, 20)
    assert grid.energies[0] == 0.2 * GEV
    assert grid.energies[-1] == 50.0 * GEV
    assert EnergyGrid.linspace(0.3, 2.9, 7).energies[-1] == 2.9 * GEV

    i, f = grid.bracket(0.2 * GEV)
    assert i == 0 and f == 0.0
    i, f = grid.bracket(50.0 * GEV)
    assert i == 18 and np.isclose(f, 1.0)
    # node energies read back in GeV bracket onto themselves
    for node, E in enumerate(grid.energies_GeV):
        i, f = grid.bracket(E * GEV)
        assert np.isclose(grid.energies[i] + f * grid.widths[i], grid.energies[node], rtol=1e-12)
