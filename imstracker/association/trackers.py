"""
Ion trackers: find the most probable association of observations to tracks.

The combinatorial tracker:

1. Builds the observation transition graph
2. Takes the k shortest source->sink paths as candidate tracks
3. Drops tracks with too few points, non-positive mobility or low R²
4. Sorts the survivors by R² (best first) and keeps at most 20
5. Walks all subsets of the candidates in Gray code order, adding or
   removing one track per step, and yields every conflict-free hypothesis
6. Returns the hypothesis with the highest P(hypothesis | data)

Min-cost-flow and RANSAC strategies are declared but not implemented.

Example
-------
>>> from imstracker.association import create_ion_tracker, IonTrackingParameters
>>> tracker = create_ion_tracker(parameters=IonTrackingParameters(min_r2=0.95))
>>> best = tracker.find_optimum_hypothesis(observations, drift_tube_length_cm=78.0)
>>> if best is not None:
...     for track in best.tracks:
...         print(track.mobility_info.mobility)
"""

import logging
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence

from ..constants import DEFAULT_DRIFT_TUBE_LENGTH_IN_CM
from ..domain.observed_peak import ObservedPeak
from ..domain.target import ImsTarget
from ..scoring.score_util import LikelihoodFunction, intensity_only_likelihood
from ..stats.combinatorics import gray_code_to_index_of_ones, gray_sequence
from .graph import ObservationTransitionGraph, Path
from .hypothesis import AssociationHypothesis
from .parameters import DataAssociationParameters, IonTrackingParameters
from .track import IsomerTrack
from .transition import TransitionModel

logger = logging.getLogger(__name__)


class TrackerStrategy(Enum):
    """Available association strategies."""
    COMBINATORIAL = "combinatorial"
    MIN_COST_FLOW = "min_cost_flow"
    RANSAC = "ransac"


def tracks_from_paths(
    paths: Iterable[Path],
    drift_tube_length_cm: float = DEFAULT_DRIFT_TUBE_LENGTH_IN_CM,
    target: Optional[ImsTarget] = None,
    robust_fit_iterations: int = 0,
    parameters: Optional[DataAssociationParameters] = None,
) -> List[IsomerTrack]:
    """Convert graph paths into tracks.

    Every edge becomes a transition of the track; every real vertex an edge
    leads into becomes an observation.
    """
    tracks = []
    for path in paths:
        track = IsomerTrack(drift_tube_length_cm, target, robust_fit_iterations, parameters)
        for edge in path:
            track.add_transition(edge)
            if not edge.sink.is_virtual:
                track.add_observation(edge.sink)
        tracks.append(track)
    return tracks


class IonTracker:
    """Base class of the association strategies.

    Args:
        parameters: Track acceptance thresholds and search limits
        likelihood_function: Intrinsic likelihood of a single observation
    """

    strategy: Optional[TrackerStrategy] = None

    def __init__(self, parameters: Optional[IonTrackingParameters] = None,
                 likelihood_function: LikelihoodFunction = intensity_only_likelihood):
        self.parameters = parameters if parameters is not None else IonTrackingParameters()
        self.likelihood_function = likelihood_function

    def find_optimum_hypothesis(
        self,
        observations: Iterable[ObservedPeak],
        drift_tube_length_cm: float = DEFAULT_DRIFT_TUBE_LENGTH_IN_CM,
        target: Optional[ImsTarget] = None,
    ) -> Optional[AssociationHypothesis]:
        """Most probable hypothesis, or None if no track qualifies."""
        name = self.strategy.value if self.strategy is not None else type(self).__name__
        raise NotImplementedError(f"{name} ion tracking is not implemented")


class CombinatorialIonTracker(IonTracker):
    """Exhaustive search over subsets of the k best candidate tracks."""

    strategy = TrackerStrategy.COMBINATORIAL

    def find_optimum_hypothesis(self, observations, drift_tube_length_cm=DEFAULT_DRIFT_TUBE_LENGTH_IN_CM,
                                target=None):
        observations = tuple(observations)
        if not observations:
            logger.info("No observations, no hypothesis")
            return None

        candidates = self.build_candidate_tracks(observations, drift_tube_length_cm, target)
        tracks = self.filter_tracks(candidates)
        if not tracks:
            logger.info(f"None of {len(candidates)} candidate tracks passed the filters")
            return None

        tracks.sort(key=lambda t: t.mobility_info.r_squared, reverse=True)
        limit = self.parameters.combinatorial_track_limit
        if len(tracks) > limit:
            logger.info(f"Keeping the best {limit} of {len(tracks)} tracks by R²")
            tracks = tracks[:limit]

        best = None
        best_probability = -1.0
        hypothesis_count = 0
        for hypothesis in self.enumerate_hypotheses(tracks, observations):
            hypothesis_count += 1
            probability = hypothesis.probability_of_hypothesis_given_data
            if probability > best_probability:
                best = hypothesis
                best_probability = probability

        logger.info(
            f"✓ Best of {hypothesis_count} hypotheses: {len(best.tracks)} tracks, "
            f"P(H|D) = {best_probability:.4g}"
        )
        return best

    def build_candidate_tracks(self, observations: Sequence[ObservedPeak],
                               drift_tube_length_cm: float,
                               target: Optional[ImsTarget] = None) -> List[IsomerTrack]:
        """Tracks along the k most probable paths of the transition graph."""
        association = self.parameters.association
        model = TransitionModel(association, self.likelihood_function)
        graph = ObservationTransitionGraph(observations, model)
        paths = graph.k_shortest_paths(self.parameters.max_candidate_paths)
        return tracks_from_paths(
            paths,
            drift_tube_length_cm,
            target,
            self.parameters.robust_fit_iterations,
            association,
        )

    def filter_tracks(self, tracks: Iterable[IsomerTrack]) -> List[IsomerTrack]:
        """Keep tracks with enough points, positive mobility and sufficient R²."""
        params = self.parameters
        kept = []
        for track in tracks:
            if len(track) < params.min_fit_points:
                continue
            info = track.mobility_info
            if info.mobility <= 0:
                logger.debug(f"Dropping {track!r}: mobility {info.mobility:.4g}")
                continue
            if info.r_squared < params.min_r2:
                logger.debug(f"Dropping {track!r}: R² {info.r_squared:.4f}")
                continue
            kept.append(track)
        return kept

    def enumerate_hypotheses(self, tracks: Sequence[IsomerTrack],
                             observations: Sequence[ObservedPeak]) -> Iterator[AssociationHypothesis]:
        """Yield every conflict-free hypothesis reachable in Gray code order.

        Each step flips one track in or out of the working hypothesis. When
        the flip cannot be applied (adding a conflicting track, or any flip
        while the working hypothesis is incomplete), the hypothesis is rebuilt
        from the set bits of the new code, stopping at the first conflict.
        Only hypotheses that hold exactly the tracks of the current code are
        yielded, each as an independent copy.
        """
        observations = tuple(observations)
        association = self.parameters.association
        hypothesis = AssociationHypothesis(observations, association)
        consistent = True

        for gray, index, zero_to_one in gray_sequence(len(tracks)):
            track = tracks[index]

            if consistent and zero_to_one and not hypothesis.is_conflict(track):
                hypothesis.add_track(track)
            elif consistent and not zero_to_one:
                hypothesis.remove_track(track)
            else:
                hypothesis, consistent = self._rebuild(tracks, gray, observations, association)

            if consistent:
                yield hypothesis.clone()

    @staticmethod
    def _rebuild(tracks, gray, observations, association):
        hypothesis = AssociationHypothesis(observations, association)
        for index in gray_code_to_index_of_ones(gray):
            if hypothesis.is_conflict(tracks[index]):
                return hypothesis, False
            hypothesis.add_track(tracks[index])
        return hypothesis, True


class MinCostFlowIonTracker(IonTracker):
    """Association as a min-cost network flow over the transition graph."""

    strategy = TrackerStrategy.MIN_COST_FLOW


class RansacIonTracker(IonTracker):
    """Association by random sample consensus line fitting."""

    strategy = TrackerStrategy.RANSAC


_TRACKERS = {
    TrackerStrategy.COMBINATORIAL: CombinatorialIonTracker,
    TrackerStrategy.MIN_COST_FLOW: MinCostFlowIonTracker,
    TrackerStrategy.RANSAC: RansacIonTracker,
}


def create_ion_tracker(strategy: TrackerStrategy = TrackerStrategy.COMBINATORIAL,
                       parameters: Optional[IonTrackingParameters] = None,
                       likelihood_function: LikelihoodFunction = intensity_only_likelihood) -> IonTracker:
    """Create a tracker for the given strategy.

    Args:
        strategy: Association strategy
        parameters: Track acceptance thresholds and search limits
        likelihood_function: Intrinsic likelihood of a single observation

    Returns:
        Tracker instance
    """
    if strategy not in _TRACKERS:
        raise ValueError(f"Unknown tracker strategy: {strategy}")
    return _TRACKERS[strategy](parameters, likelihood_function)
