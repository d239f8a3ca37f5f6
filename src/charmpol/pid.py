"""Particle-mass hypotheses used by the polarisation observables.

Daughter masses enter the rest-frame boost and the recomputed invariant mass
of rotated candidates; parent masses are the nominal values used for the
rapidity of the candidate.
"""

from __future__ import annotations

from .models import ParticleHypothesis

_PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=211)
_KAON = ParticleHypothesis(name="K", mass=0.493677, pdg_id=321)
_PROTON = ParticleHypothesis(name="p", mass=0.93827208816, pdg_id=2212)
_DSTAR = ParticleHypothesis(name="D*+", mass=2.01026, pdg_id=413)
_LAMBDA_C = ParticleHypothesis(name="Lc+", mass=2.28646, pdg_id=4122)


def make_pion() -> ParticleHypothesis:
    """Return the standard charged-pion mass hypothesis."""
    return _PION


def make_kaon() -> ParticleHypothesis:
    """Return the standard charged-kaon mass hypothesis."""
    return _KAON


def make_proton() -> ParticleHypothesis:
    """Return the proton mass hypothesis."""
    return _PROTON


def make_dstar() -> ParticleHypothesis:
    """Return the nominal D*+ hypothesis."""
    return _DSTAR


def make_lambda_c() -> ParticleHypothesis:
    """Return the nominal Lambda_c+ hypothesis."""
    return _LAMBDA_C
