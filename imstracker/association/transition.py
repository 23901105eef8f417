"""
Transition model: how likely two observations are the same ion.

Edges of the observation graph connect a peak in one voltage group to a peak
in the next. The transition probability of a real->real edge compares the
ion signatures of both peaks:

- intensity similarity: 1 - |Ia - Ib| / max(Ia, Ib)
- diffusion profile similarity: decay of the apex-location and peak-width
  differences in m/z
- m/z match: decay of the m/z difference in ppm

combined as a weighted geometric mean. Edges from the virtual source score
the sink's own likelihood and how early its voltage group starts; edges into
the virtual sink score how late the source's voltage group ends.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..domain.observed_peak import ObservedPeak
from ..physics import dalton_to_ppm
from ..scoring.score_util import (
    LikelihoodFunction,
    intensity_only_likelihood,
    map_difference_to_probability,
    relative_difference,
    weighted_geometric_mean,
)
from .parameters import DataAssociationParameters


@dataclass(frozen=True)
class DiffusionProfileDescriptor:
    """Shape of a peak's diffusion profile in drift time and m/z."""

    arrival_time_center_location: float
    arrival_time_diffusion_width_ms: float
    mz_center_location: float
    mz_diffusion_width_ppm: float

    @classmethod
    def from_observation(cls, observation: ObservedPeak) -> 'DiffusionProfileDescriptor':
        peak = observation.peak
        return cls(
            arrival_time_center_location=peak.peak_center_location_on_arrival_time(),
            arrival_time_diffusion_width_ms=peak.drift_time_fwhm_upper_ms - peak.drift_time_fwhm_lower_ms,
            mz_center_location=peak.peak_center_location_on_mz(),
            mz_diffusion_width_ppm=dalton_to_ppm(
                peak.mz_fwhm_upper_da - peak.mz_fwhm_lower_da, peak.mz_center_da),
        )


@dataclass(frozen=True)
class DiffusionProfileDifference:
    """Absolute differences between two diffusion profile descriptors."""

    arrival_time_center_location_difference: float
    arrival_time_diffusion_width_difference_ms: float
    mz_center_location_difference: float
    mz_diffusion_width_difference_ppm: float

    @classmethod
    def between(cls, a: DiffusionProfileDescriptor,
                b: DiffusionProfileDescriptor) -> 'DiffusionProfileDifference':
        return cls(
            arrival_time_center_location_difference=abs(
                a.arrival_time_center_location - b.arrival_time_center_location),
            arrival_time_diffusion_width_difference_ms=abs(
                a.arrival_time_diffusion_width_ms - b.arrival_time_diffusion_width_ms),
            mz_center_location_difference=abs(a.mz_center_location - b.mz_center_location),
            mz_diffusion_width_difference_ppm=abs(a.mz_diffusion_width_ppm - b.mz_diffusion_width_ppm),
        )

    def matching_probability(self, parameters: DataAssociationParameters) -> float:
        """Probability that both profiles belong to the same ion.

        Arrival-time shape is not compared: drift-time widths change with the
        drift voltage.
        """
        probability = map_difference_to_probability(
            self.mz_center_location_difference, parameters.mz_center_location_difference_09)
        probability *= map_difference_to_probability(
            self.mz_diffusion_width_difference_ppm, parameters.mz_width_difference_in_ppm_09)
        return probability


@dataclass(frozen=True, eq=False)
class IonTransition:
    """Directed edge of the observation transition graph.

    The descriptors are only set on real->real edges.
    """

    source: ObservedPeak
    sink: ObservedPeak
    probability: float
    mz_difference_in_ppm: float = 0.0
    intensity_difference: float = 0.0
    diffusion_profile_difference: Optional[DiffusionProfileDifference] = None

    @property
    def weight(self) -> float:
        """Edge cost -ln(p); infinite for impossible transitions."""
        if self.probability <= 0.0:
            return math.inf
        return -math.log(self.probability)

    def __repr__(self):
        return f"IonTransition({self.source.description} -> {self.sink.description}, p={self.probability:.4f})"


class TransitionModel:
    """Computes transitions between observations.

    Args:
        parameters: Association weights and reference differences
        likelihood_function: Intrinsic likelihood of a single observation,
            applied on edges leaving the virtual source
    """

    def __init__(self, parameters: Optional[DataAssociationParameters] = None,
                 likelihood_function: LikelihoodFunction = intensity_only_likelihood):
        self.parameters = parameters if parameters is not None else DataAssociationParameters()
        self.likelihood_function = likelihood_function

    def __call__(self, source: ObservedPeak, sink: ObservedPeak) -> IonTransition:
        if source.is_virtual and sink.is_virtual:
            raise ValueError("Cannot compute a transition between two virtual observations")

        if source.is_virtual:
            probability = (self.likelihood_function(sink.statistics)
                           * self.entering_probability(sink))
            return IonTransition(source, sink, probability)

        if sink.is_virtual:
            return IonTransition(source, sink, self.exiting_probability(source))

        return self._real_transition(source, sink)

    def probability(self, source: ObservedPeak, sink: ObservedPeak) -> float:
        return self(source, sink).probability

    def _real_transition(self, source: ObservedPeak, sink: ObservedPeak) -> IonTransition:
        a = source.peak
        b = sink.peak

        mz_difference_ppm = dalton_to_ppm(
            abs(a.mz_center_da - b.mz_center_da), (a.mz_center_da + b.mz_center_da) / 2)
        intensity_difference = relative_difference(a.summed_intensities, b.summed_intensities)
        diffusion_difference = DiffusionProfileDifference.between(
            DiffusionProfileDescriptor.from_observation(source),
            DiffusionProfileDescriptor.from_observation(sink),
        )

        params = self.parameters
        scores = [
            1.0 - intensity_difference,
            diffusion_difference.matching_probability(params),
            map_difference_to_probability(mz_difference_ppm, params.mz_difference_in_ppm_09),
        ]
        weights = [params.intensity_weight, params.diffusion_profile_weight, params.mz_match_weight]

        return IonTransition(
            source,
            sink,
            weighted_geometric_mean(scores, weights),
            mz_difference_in_ppm=mz_difference_ppm,
            intensity_difference=intensity_difference,
            diffusion_profile_difference=diffusion_difference,
        )

    @staticmethod
    def entering_probability(observation: ObservedPeak) -> float:
        """1 - first_frame / total_frames: tracks should start early."""
        group = observation.voltage_group
        return 1.0 - group.first_frame_index / _total_frames(observation)

    @staticmethod
    def exiting_probability(observation: ObservedPeak) -> float:
        """last_frame / total_frames: tracks should end late."""
        group = observation.voltage_group
        return group.last_frame_index / _total_frames(observation)


def _total_frames(observation: ObservedPeak) -> int:
    total = observation.voltage_group.total_frames_in_data
    if not total:
        raise ValueError(f"Voltage group of {observation.description} has no total frame count")
    return total
