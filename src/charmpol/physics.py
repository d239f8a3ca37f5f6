"""Physics/math helpers for rest-frame boosts, rotations and decay angles."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import LorentzVector, Vector3


def momentum_to_lorentz(p3: Vector3, mass: float) -> LorentzVector:
    """Convert a three-momentum plus mass hypothesis into a Lorentz 4-vector."""
    return LorentzVector.from_momentum_and_mass(p3, mass)


def sum_lorentz(vectors: Iterable[LorentzVector]) -> LorentzVector:
    """Sum an iterable of Lorentz vectors."""
    total = LorentzVector(0.0, 0.0, 0.0, 0.0)
    for vec in vectors:
        total = total + vec
    return total


def sum_momenta(vectors: Iterable[Vector3]) -> Vector3:
    """Vector sum of three-momenta."""
    px = py = pz = 0.0
    for v in vectors:
        px += v[0]
        py += v[1]
        pz += v[2]
    return px, py, pz


def invariant_mass(momenta: Sequence[Vector3], masses: Sequence[float]) -> float:
    """Invariant mass of an n-body system for one daughter mass assignment."""
    if len(momenta) != len(masses):
        raise ValueError("Mass list length must match daughter multiplicity.")
    total = sum_lorentz(
        momentum_to_lorentz(p3, mass) for p3, mass in zip(momenta, masses, strict=True)
    )
    return total.mass


def boost(p4: LorentzVector, beta: Vector3) -> LorentzVector:
    """Apply a pure Lorentz boost with velocity `beta` to a 4-vector.

    Same convention as `ROOT::Math::Boost`: boosting by `-p/E` of a system
    brings that system to rest. A velocity with `|beta| >= 1` (massless or
    unphysical system) gives NaN components.
    """
    bx, by, bz = beta
    b2 = bx * bx + by * by + bz * bz
    if b2 == 0.0:
        return p4
    gamma = 1.0 / math.sqrt(1.0 - b2) if b2 < 1.0 else math.nan
    bp = bx * p4.px + by * p4.py + bz * p4.pz
    gamma2 = (gamma - 1.0) / b2
    return LorentzVector(
        px=p4.px + gamma2 * bp * bx + gamma * bx * p4.e,
        py=p4.py + gamma2 * bp * by + gamma * by * p4.e,
        pz=p4.pz + gamma2 * bp * bz + gamma * bz * p4.e,
        e=gamma * (p4.e + bp),
    )


def boost_to_rest_frame(p4: LorentzVector, frame: LorentzVector) -> LorentzVector:
    """Express `p4` in the rest frame of the system described by `frame`."""
    bx, by, bz = frame.beta_vector
    return boost(p4, (-bx, -by, -bz))


def rotate_around_beam(p3: Vector3, angle: float) -> Vector3:
    """Rotate the transverse components of `p3` by `angle` around the z axis."""
    px, py, pz = p3
    c = math.cos(angle)
    s = math.sin(angle)
    return (px * c - py * s, px * s + py * c, pz)


def transverse_momentum(p3: Vector3) -> float:
    return math.sqrt(p3[0] * p3[0] + p3[1] * p3[1])


def rapidity(p3: Vector3, mass: float) -> float:
    """Rapidity of a particle with momentum `p3` under a given mass."""
    energy = math.sqrt(p3[0] * p3[0] + p3[1] * p3[1] + p3[2] * p3[2] + mass * mass)
    return 0.5 * math.log((energy + p3[2]) / (energy - p3[2]))


def dot3(a: Vector3, b: Vector3) -> float:
    """3D dot product."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def norm3(a: Vector3) -> float:
    """Euclidean norm of a 3D vector."""
    return math.sqrt(dot3(a, a))


def cos_angle(a: Vector3, b: Vector3) -> float:
    """Cosine of the angle between two vectors, NaN if either has zero length."""
    den = norm3(a) * norm3(b)
    if den == 0.0:
        return math.nan
    return dot3(a, b) / den


def cos_angle_to_unit(unit: Vector3, b: Vector3) -> float:
    """Cosine of the angle between a unit vector and `b`, normalising by `|b|` only."""
    nb = norm3(b)
    if nb == 0.0:
        return math.nan
    return dot3(unit, b) / nb


def spherical_direction(theta: float, phi: float) -> Vector3:
    """Unit vector with polar angle `theta` and azimuth `phi`."""
    sin_theta = math.sin(theta)
    return (sin_theta * math.cos(phi), sin_theta * math.sin(phi), math.cos(theta))
