import numpy as np
import pytest

from nu_rho.matter.body import ConstantDensity, Track, Vacuum, VariableDensity
from nu_rho.matter.prem import Earth, EarthTrack
from nu_rho.matter.registry import make_body_track
from nu_rho.matter.solar import Sun, SunTrack
from nu_rho.utils.units import KM


def test_track_units():
    track = Track(10.0, 110.0)
    assert np.isclose(track.x_initial, 10.0 * KM)
    assert np.isclose(track.length, 100.0 * KM)
    assert np.isclose(track.x_km, 10.0)
    track.set_x(50.0 * KM)
    assert np.isclose(track.x_km, 50.0)
    assert np.allclose(track.params, [10.0, 110.0])
    with pytest.raises(ValueError):
        Track(10.0, 5.0)


def test_simple_bodies():
    track = Track(0.0, 100.0)
    assert Vacuum().density(track) == 0.0
    body = ConstantDensity(3.0, 0.5)
    assert body.density(track) == 3.0
    assert body.ye(track) == 0.5
    with pytest.raises(ValueError):
        ConstantDensity(-1.0, 0.5)


def test_variable_density_interpolates():
    body = VariableDensity([0.0, 100.0], [1.0, 3.0], [0.5, 0.4])
    track = Track(0.0, 100.0)
    track.set_x(25.0 * KM)
    assert np.isclose(body.density(track), 1.5)
    assert np.isclose(body.ye(track), 0.475)
    with pytest.raises(ValueError):
        VariableDensity([0.0, 0.0], [1.0, 3.0], [0.5, 0.4])


def test_earth_chord():
    earth = Earth()
    R = earth.model.R_earth_km
    track = EarthTrack(2.0 * R)
    # the middle of a diameter is the center of the Earth
    track.set_x(R * KM)
    assert np.isclose(earth.radius_km(track), 0.0, atol=1e-3)
    assert np.isclose(earth.density(track), 13.0885)
    assert np.isclose(earth.ye(track), earth.model.Ye_core)
    # entry point on the surface
    track.set_x(0.0)
    assert np.isclose(earth.radius_km(track), R)
    assert earth.density(track) > 0.0


def test_sun_profile():
    sun = Sun()
    track = SunTrack(0.0, 1.0e6)
    assert np.isclose(sun.density(track), 150.0)
    track.set_x(2.0 * sun.profile.R_sun_km * KM)
    assert sun.density(track) == 0.0


@pytest.mark.parametrize("body, track", [
    (Vacuum(), Track(0.0, 10.0)),
    (ConstantDensity(2.6, 0.49), Track(5.0, 10.0)),
    (VariableDensity([0.0, 5.0, 10.0], [1.0, 2.0, 3.0], [0.5, 0.5, 0.5]), Track(0.0, 10.0)),
    (Earth(), EarthTrack(1000.0)),
    (Sun(), SunTrack(0.0, 1000.0)),
])
def test_registry_rebuilds_bodies(body, track):
    rebuilt, rebuilt_track = make_body_track(body.body_id, body.params, track.params)
    assert type(rebuilt) is type(body)
    assert type(rebuilt_track) is type(track)
    assert np.allclose(rebuilt.params, body.params)
    assert np.allclose(rebuilt_track.params, track.params)
    assert np.isclose(rebuilt.density(rebuilt_track), body.density(track))


def test_registry_unknown_id():
    with pytest.raises(ValueError):
        make_body_track(42, [], [0.0, 1.0])
