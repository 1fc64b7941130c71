"""Rebuild a body and its track from the identifiers stored with a state."""
import numpy as np

from nu_rho.matter.body import ConstantDensity, Track, Vacuum, VariableDensity
from nu_rho.matter.prem import Earth, EarthTrack
from nu_rho.matter.solar import Sun, SunTrack


def make_body_track(body_id: int, body_params, track_params):
    body_params = np.asarray(body_params, dtype=float).reshape(-1)
    track_params = np.asarray(track_params, dtype=float).reshape(-1)
    body_id = int(body_id)

    if body_id == Vacuum.body_id:
        return Vacuum(), Track(track_params[0], track_params[1])
    if body_id == ConstantDensity.body_id:
        return ConstantDensity(body_params[0], body_params[1]), Track(track_params[0], track_params[1])
    if body_id == VariableDensity.body_id:
        n = body_params.size // 3
        body = VariableDensity(body_params[:n], body_params[n:2 * n], body_params[2 * n:3 * n])
        return body, Track(track_params[0], track_params[1])
    if body_id == Earth.body_id:
        return Earth(), EarthTrack(track_params[2], track_params[0], track_params[1])
    if body_id == Sun.body_id:
        return Sun(), SunTrack(track_params[0], track_params[1])
    raise ValueError(f"unknown body id {body_id}")
