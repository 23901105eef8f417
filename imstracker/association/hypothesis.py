"""Association hypotheses: conflict-free sets of isomer tracks.

A hypothesis claims observations for tracks. No observation may belong to
two tracks of the same hypothesis; ``add_track`` refuses a conflicting track.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..domain.observed_peak import ObservedPeak
from ..scoring.score_util import map_difference_to_probability
from .parameters import DataAssociationParameters
from .track import IsomerTrack


@dataclass(frozen=True)
class AssociationHypothesisInfo:
    """Scores of a hypothesis, detached from its tracks."""

    probability_of_data_given_hypothesis: float
    probability_of_hypothesis_given_data: float
    track_count: int
    claimed_observation_count: int


class AssociationHypothesis:
    """Tracks explaining a subset of all observations.

    Args:
        all_observations: Every real observation of the target; shared,
            never modified
        parameters: Outlier probability and drift-time reference for the
            data likelihood
    """

    def __init__(self, all_observations: Iterable[ObservedPeak],
                 parameters: Optional[DataAssociationParameters] = None):
        if not isinstance(all_observations, tuple):
            all_observations = tuple(all_observations)
        self._all_observations = all_observations
        self.parameters = parameters if parameters is not None else DataAssociationParameters()
        self._tracks: List[IsomerTrack] = []
        self._on_track: Dict[ObservedPeak, IsomerTrack] = {}
        self._expected_voltage_group_count: Optional[int] = None

    @property
    def all_observations(self) -> tuple:
        return self._all_observations

    @property
    def tracks(self) -> List[IsomerTrack]:
        return list(self._tracks)

    # ----- membership -----

    def is_conflict(self, track: IsomerTrack) -> bool:
        """True if another track already claims one of the track's observations."""
        return bool(self.conflicting_tracks(track))

    def conflicting_tracks(self, track: IsomerTrack) -> List[IsomerTrack]:
        conflicts = []
        for observation in track.observations:
            owner = self._on_track.get(observation)
            if owner is not None and owner is not track and not any(c is owner for c in conflicts):
                conflicts.append(owner)
        return conflicts

    def add_track(self, track: IsomerTrack) -> None:
        if any(t is track for t in self._tracks):
            return
        if self.is_conflict(track):
            raise ValueError(f"{track!r} conflicts with a track already in the hypothesis")
        self._tracks.append(track)
        for observation in track.observations:
            self._on_track[observation] = track

    def remove_track(self, track: IsomerTrack) -> None:
        remaining = [t for t in self._tracks if t is not track]
        if len(remaining) == len(self._tracks):
            raise ValueError(f"{track!r} is not part of the hypothesis")
        self._tracks = remaining
        self._rebuild_claims()

    def _rebuild_claims(self) -> None:
        self._on_track = {}
        for track in self._tracks:
            for observation in track.observations:
                self._on_track[observation] = track

    def is_on_track(self, observation: ObservedPeak) -> bool:
        return observation in self._on_track

    def track_of(self, observation: ObservedPeak) -> Optional[IsomerTrack]:
        return self._on_track.get(observation)

    def clone(self) -> 'AssociationHypothesis':
        """Copy with its own track list and claims; observations and tracks are shared."""
        copy = AssociationHypothesis(self._all_observations, self.parameters)
        copy._tracks = list(self._tracks)
        copy._on_track = dict(self._on_track)
        copy._expected_voltage_group_count = self._expected_voltage_group_count
        return copy

    # ----- scoring -----

    @property
    def expected_voltage_group_count(self) -> int:
        """Number of distinct voltage groups among all observations."""
        if self._expected_voltage_group_count is None:
            self._expected_voltage_group_count = len({o.voltage_group for o in self._all_observations})
        return self._expected_voltage_group_count

    @property
    def probability_of_data_given_hypothesis(self) -> float:
        """Product over all observations of how well the hypothesis explains each.

        Claimed observations score their drift-time residual to their track;
        unclaimed ones score the outlier probability.
        """
        params = self.parameters
        probability = 1.0
        for observation in self._all_observations:
            track = self._on_track.get(observation)
            if track is None:
                probability *= params.outlier_probability
            else:
                residual_ms = track.drift_time_residual_ms(observation)
                probability *= map_difference_to_probability(
                    residual_ms, params.drift_time_difference_in_ms_09)
        return probability

    @property
    def probability_of_hypothesis_given_data(self) -> float:
        """P(D|H) times the track probability of every track."""
        probability = self.probability_of_data_given_hypothesis
        if self._tracks:
            expected = self.expected_voltage_group_count
            for track in self._tracks:
                probability *= track.track_probability(expected)
        return probability

    def to_info(self) -> AssociationHypothesisInfo:
        return AssociationHypothesisInfo(
            probability_of_data_given_hypothesis=self.probability_of_data_given_hypothesis,
            probability_of_hypothesis_given_data=self.probability_of_hypothesis_given_data,
            track_count=len(self._tracks),
            claimed_observation_count=len(self._on_track),
        )

    def __repr__(self):
        return f"AssociationHypothesis(tracks={len(self._tracks)}, claimed={len(self._on_track)})"
