"""Physics/math helpers for pair geometry and pair kinematics."""

from __future__ import annotations

import math
from typing import Iterable

from .models import LorentzVector, PairCuts, Track

# pt [GeV/c] = 0.3 * B [T] * R [m] for a unit charge
MOMENTUM_PER_TESLA_METRE = 0.3
TESLA_PER_KILOGAUSS = 0.1


def track_to_lorentz(track: Track, mass: float) -> LorentzVector:
    """Convert a track plus mass hypothesis into a Lorentz 4-vector."""
    px = track.px
    py = track.py
    pz = track.pz
    energy = (px * px + py * py + pz * pz + mass * mass) ** 0.5
    return LorentzVector(px=px, py=py, pz=pz, e=energy)


def sum_lorentz(vectors: Iterable[LorentzVector]) -> LorentzVector:
    """Sum an iterable of Lorentz vectors."""
    total = LorentzVector(0.0, 0.0, 0.0, 0.0)
    for vec in vectors:
        total = total + vec
    return total


def wrap_phi(dphi: float) -> float:
    """Map an azimuthal difference into `[-pi, pi)`."""
    return (dphi + math.pi) % (2.0 * math.pi) - math.pi


def phi_star(track: Track, mag_field: float, radius: float) -> float:
    """Azimuth of the track extrapolated to a transverse `radius` (m).

    `mag_field` is the signed solenoid field in kG. The bending term is
    clamped so that tracks curling up before `radius` stay finite.
    """
    if track.pt <= 0.0:
        return track.phi
    arg = (
        MOMENTUM_PER_TESLA_METRE
        * TESLA_PER_KILOGAUSS
        * mag_field
        * track.charge
        * radius
        / (2.0 * track.pt)
    )
    arg = max(-1.0, min(1.0, arg))
    return track.phi - math.asin(arg)


def pair_separation(
    first: Track,
    first_field: float,
    second: Track,
    second_field: float,
    radius: float,
) -> tuple[float, float]:
    """Return `(delta_eta, delta_phi_star)` of two tracks at `radius`."""
    deta = first.eta - second.eta
    dphi = wrap_phi(phi_star(first, first_field, radius) - phi_star(second, second_field, radius))
    return deta, dphi


def is_close_pair(
    first: Track,
    first_field: float,
    second: Track,
    second_field: float,
    cuts: PairCuts,
) -> bool:
    """True when the two tracks are closer than both minimum separations."""
    deta, dphi = pair_separation(first, first_field, second, second_field, cuts.radius)
    return abs(deta) < cuts.deta_min and abs(dphi) < cuts.dphi_star_min


def pair_observables(
    first: Track,
    first_mass: float,
    second: Track,
    second_mass: float,
    max_rapidity: float,
) -> tuple[float, float, float] | None:
    """Return `(mass, pt, rapidity)` of the pair, or `None` outside `max_rapidity`."""
    p4 = sum_lorentz((track_to_lorentz(first, first_mass), track_to_lorentz(second, second_mass)))
    rapidity = p4.rapidity
    if abs(rapidity) > max_rapidity:
        return None
    return p4.mass, p4.pt, rapidity
