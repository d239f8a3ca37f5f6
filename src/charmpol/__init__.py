"""Public package exports for the charm-hadron polarisation observables."""

from .config import AxisBinning, ConfigurationError, PolarisationConfig, ProcessingMode
from .histograms import HistogramAggregator, ReferenceAxis, SparseHistogram
from .hypotheses import HypothesisResult, MassHypothesisResolver, ResolvedHypothesis
from .models import (
    CandidateRecord,
    DecayChannel,
    LorentzVector,
    MassHypothesis,
    ObservableTuple,
    ParticleHypothesis,
)
from .observables import AngularObservableEngine, DecayAngles
from .pid import (
    make_dstar,
    make_kaon,
    make_lambda_c,
    make_pion,
    make_proton,
)
from .rotation import RotationalBackgroundGenerator, RotationVariant
from .task import PolarisationTask, TaskSummary

__all__ = [
    "AngularObservableEngine",
    "AxisBinning",
    "CandidateRecord",
    "ConfigurationError",
    "DecayAngles",
    "DecayChannel",
    "HistogramAggregator",
    "HypothesisResult",
    "LorentzVector",
    "MassHypothesis",
    "MassHypothesisResolver",
    "ObservableTuple",
    "ParticleHypothesis",
    "PolarisationConfig",
    "PolarisationTask",
    "ProcessingMode",
    "ReferenceAxis",
    "ResolvedHypothesis",
    "RotationVariant",
    "RotationalBackgroundGenerator",
    "SparseHistogram",
    "TaskSummary",
    "make_pion",
    "make_kaon",
    "make_proton",
    "make_dstar",
    "make_lambda_c",
]
