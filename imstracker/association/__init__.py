"""Data association: transition graph, tracks, hypotheses and trackers."""

from .parameters import (
    MAX_COMBINATORIAL_TRACKS,
    DataAssociationParameters,
    IonTrackingParameters,
)
from .transition import (
    DiffusionProfileDescriptor,
    DiffusionProfileDifference,
    IonTransition,
    TransitionModel,
)
from .graph import ObservationTransitionGraph
from .track import (
    AnalysisStatus,
    ArrivalTimeSnapshot,
    IdentifiedIsomerInfo,
    IsomerTrack,
    MobilityInfo,
)
from .hypothesis import AssociationHypothesis, AssociationHypothesisInfo
from .trackers import (
    CombinatorialIonTracker,
    IonTracker,
    MinCostFlowIonTracker,
    RansacIonTracker,
    TrackerStrategy,
    create_ion_tracker,
    tracks_from_paths,
)

__all__ = [
    'MAX_COMBINATORIAL_TRACKS',
    'AnalysisStatus',
    'ArrivalTimeSnapshot',
    'AssociationHypothesis',
    'AssociationHypothesisInfo',
    'CombinatorialIonTracker',
    'DataAssociationParameters',
    'DiffusionProfileDescriptor',
    'DiffusionProfileDifference',
    'IdentifiedIsomerInfo',
    'IonTracker',
    'IonTrackingParameters',
    'IonTransition',
    'IsomerTrack',
    'MinCostFlowIonTracker',
    'MobilityInfo',
    'ObservationTransitionGraph',
    'RansacIonTracker',
    'TrackerStrategy',
    'TransitionModel',
    'create_ion_tracker',
    'tracks_from_paths',
]
