"""
Isomer tracks: one ion followed across voltage groups.

A track holds at most one observation per voltage group. Its observations
give one point each on the drift-time line

    t_d = (L² / K0) · P / (V · T) + t0

with P and T nondimensionalized (fractions of 1 atm and 273.15 K), V the
drift voltage and L the drift tube length. The fitted slope gives the
reduced mobility K0 = L² / slope, the intercept the dead time t0, and the
mobility gives the collision cross section through Mason-Schamp.

Fit results are cached and recomputed after observations are added.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

import numpy as np

from ..constants import ABSOLUTE_ZERO_IN_KELVIN, DEFAULT_DRIFT_TUBE_LENGTH_IN_CM
from ..domain.observed_peak import ObservedPeak
from ..domain.target import ImsTarget
from ..domain.voltage_group import VoltageGroup
from ..physics import compute_cross_sectional_area, compute_reduced_mass, dalton_to_ppm
from ..scoring.score_util import map_magnitude_to_probability, weighted_geometric_mean
from ..stats.fitline import FitLine, FitPoint, IRLSFitLine, LeastSquaresFitLine
from .parameters import DataAssociationParameters
from .transition import IonTransition

logger = logging.getLogger(__name__)


class AnalysisStatus(Enum):
    """Outcome of a track."""
    POSITIVE = "positive"                            # Mobility calculated
    NEGATIVE = "negative"                            # Ion not found
    REJECTED = "rejected"                            # Fit quality below threshold
    NOT_SUFFICIENT_POINTS = "not_sufficient_points"  # Too few points for the fit line


@dataclass(frozen=True)
class MobilityInfo:
    """Fit-derived properties of a track.

    Attributes:
        mobility: Reduced mobility K0 in cm²/(V·s) (0 for a flat fit)
        r_squared: R² of the drift-time fit
        collision_cross_section: Mason-Schamp CCS in Å² (0 without a target)
        t0_seconds: Fitted dead time (intercept) in seconds
    """

    mobility: float
    r_squared: float
    collision_cross_section: float
    t0_seconds: float


@dataclass(frozen=True)
class ArrivalTimeSnapshot:
    """Drift conditions and measured arrival time of one observation."""

    measured_arrival_time_ms: float
    drift_tube_voltage_in_volts: float
    pressure_in_torr: float
    temperature_in_kelvin: float


@dataclass(frozen=True)
class IdentifiedIsomerInfo:
    """Report of an accepted or rejected isomer track."""

    number_of_feature_points_used: int
    mz_in_dalton: float
    mz_in_ppm: float
    r_squared: float
    mobility: float
    cross_sectional_area: float
    viper_compatible_mass: float
    analysis_status: AnalysisStatus
    arrival_time_snapshots: List[ArrivalTimeSnapshot] = field(default_factory=list)


class IsomerTrack:
    """Observations of one isomer across voltage groups.

    Args:
        drift_tube_length_cm: Drift tube length in cm
        target: Ion being tracked; needed for the cross section
        robust_fit_iterations: 0 for ordinary least squares, otherwise the
            number of IRLS reweightings
        parameters: Association parameters used by track_probability()
    """

    def __init__(
        self,
        drift_tube_length_cm: float = DEFAULT_DRIFT_TUBE_LENGTH_IN_CM,
        target: Optional[ImsTarget] = None,
        robust_fit_iterations: int = 0,
        parameters: Optional[DataAssociationParameters] = None,
    ):
        if drift_tube_length_cm <= 0:
            raise ValueError(f"drift_tube_length_cm must be positive, got {drift_tube_length_cm}")

        self.drift_tube_length_cm = drift_tube_length_cm
        self.target = target
        self.robust_fit_iterations = robust_fit_iterations
        self.parameters = parameters if parameters is not None else DataAssociationParameters()

        self._observations: List[ObservedPeak] = []
        self._voltage_groups: Set[VoltageGroup] = set()
        self._transitions: List[IonTransition] = []
        self._ion_signature_probability = 1.0

        self._observations_changed = True
        self._fit_line: Optional[FitLine] = None
        self._mobility_info: Optional[MobilityInfo] = None

        # Memoized scores, cleared whenever the track changes
        self._residuals_ms: Dict[ObservedPeak, float] = {}
        self._track_probabilities: Dict[int, float] = {}

    # ----- building -----

    def add_observation(self, observation: ObservedPeak) -> None:
        """Add a real observation from a voltage group not yet on the track."""
        if observation.is_virtual:
            raise ValueError("Virtual observations cannot be added to a track")
        if observation.voltage_group in self._voltage_groups:
            raise ValueError(
                f"Track already has an observation in {observation.voltage_group!r}")

        self._observations.append(observation)
        self._voltage_groups.add(observation.voltage_group)
        self._observations_changed = True
        self._residuals_ms.clear()
        self._track_probabilities.clear()

    def add_transition(self, transition: IonTransition) -> None:
        """Record a traversed edge; its probability joins the ion signature score."""
        self._transitions.append(transition)
        self._ion_signature_probability *= transition.probability
        self._track_probabilities.clear()

    @property
    def observations(self) -> List[ObservedPeak]:
        return list(self._observations)

    @property
    def voltage_groups(self) -> Set[VoltageGroup]:
        return set(self._voltage_groups)

    @property
    def transitions(self) -> List[IonTransition]:
        return list(self._transitions)

    @property
    def ion_signature_matching_probability(self) -> float:
        """Product of the probabilities of all recorded transitions."""
        return self._ion_signature_probability

    def __len__(self):
        return len(self._observations)

    def __repr__(self):
        return f"IsomerTrack({' -> '.join(o.description for o in self._observations)})"

    # ----- fit -----

    @staticmethod
    def to_fit_point(observation: ObservedPeak) -> FitPoint:
        """x = P / (V · T) (nondimensionalized P and T), y = drift time in seconds."""
        group = observation.voltage_group
        x = (group.mean_pressure_nondimensionalized
             / group.mean_voltage_in_volts
             / group.mean_temperature_nondimensionalized)
        y = observation.peak.drift_time_center_ms / 1000
        return FitPoint(x, y)

    @property
    def fit_line(self) -> FitLine:
        """Diagnosed fit over the current observations."""
        self._refresh()
        return self._fit_line

    @property
    def mobility_info(self) -> MobilityInfo:
        self._refresh()
        return self._mobility_info

    def _refresh(self) -> None:
        if not self._observations_changed:
            return

        points = [self.to_fit_point(o) for o in self._observations]
        if self.robust_fit_iterations > 0:
            line = IRLSFitLine(points, iterations=self.robust_fit_iterations)
        else:
            line = LeastSquaresFitLine(points)
        line.fit().diagnose()

        slope = line.slope
        mobility = self.drift_tube_length_cm ** 2 / slope if slope != 0.0 else 0.0

        ccs = 0.0
        if self.target is not None and mobility > 0:
            ccs = compute_cross_sectional_area(
                self.mean_temperature_kelvin(),
                mobility,
                self.target.charge_state,
                compute_reduced_mass(self.target.mass_with_adduct),
            )

        self._fit_line = line
        self._mobility_info = MobilityInfo(
            mobility=mobility,
            r_squared=line.r_squared,
            collision_cross_section=ccs,
            t0_seconds=line.intercept,
        )
        self._observations_changed = False

    def mean_temperature_kelvin(self) -> float:
        """Drift gas temperature averaged over the frames of all voltage groups."""
        total = 0.0
        frame_count = 0
        for observation in self._observations:
            group = observation.voltage_group
            total += ABSOLUTE_ZERO_IN_KELVIN * group.mean_temperature_nondimensionalized * group.frame_accumulation_count
            frame_count += group.frame_accumulation_count
        if frame_count == 0:
            raise ValueError("Track has no accumulated frames")
        return total / frame_count

    def drift_time_residual_ms(self, observation: ObservedPeak) -> float:
        """Signed distance (ms) from the fitted line to the observation's drift time."""
        residual = self._residuals_ms.get(observation)
        if residual is None:
            point = self.to_fit_point(observation)
            residual = (self.fit_line.predict_y_from_x(point.x) - point.y) * 1000
            self._residuals_ms[observation] = residual
        return residual

    # ----- scoring -----

    def track_probability(self, expected_voltage_group_count: int) -> float:
        """
        Prior-like score of the track itself.

        Weighted geometric mean of:
        - fit quality: -log10(1 - R²) mapped to [0, 1), so R² = 0.99 and
          R² = 0.999 score differently
        - ion signature matching probability of the traversed transitions
        - peak count against the number of voltage groups in the data

        Args:
            expected_voltage_group_count: Voltage groups a complete track spans

        Returns:
            Probability in [0, 1]
        """
        if expected_voltage_group_count <= 0:
            raise ValueError(
                f"expected_voltage_group_count must be positive, got {expected_voltage_group_count}")

        cached = self._track_probabilities.get(expected_voltage_group_count)
        if cached is not None:
            return cached

        params = self.parameters

        unexplained = 1.0 - self.mobility_info.r_squared
        if unexplained <= 0.0:
            r2_score = 1.0
        else:
            r2_score = map_magnitude_to_probability(-math.log10(unexplained), params.r2_log_reference)

        peak_count_score = map_magnitude_to_probability(
            len(self._observations), params.peak_count_reference_fraction * expected_voltage_group_count)

        probability = weighted_geometric_mean(
            [r2_score, self._ion_signature_probability, peak_count_score],
            [params.r2_weight, params.ion_signature_weight, params.peak_count_weight],
        )
        self._track_probabilities[expected_voltage_group_count] = probability
        return probability

    def conclude_status(self, min_fit_points: int, min_r2: float) -> AnalysisStatus:
        if len(self._observations) < min_fit_points:
            return AnalysisStatus.NOT_SUFFICIENT_POINTS
        if self.mobility_info.r_squared < min_r2:
            return AnalysisStatus.REJECTED
        return AnalysisStatus.POSITIVE

    # ----- reporting -----

    def arrival_time_snapshot(self, observation: ObservedPeak) -> ArrivalTimeSnapshot:
        group = observation.voltage_group
        return ArrivalTimeSnapshot(
            measured_arrival_time_ms=observation.peak.drift_time_center_ms,
            drift_tube_voltage_in_volts=group.mean_voltage_in_volts,
            pressure_in_torr=group.mean_pressure_torr,
            temperature_in_kelvin=group.mean_temperature_kelvin,
        )

    def export_identified_isomer_info(self, viper_compatible_mass: float,
                                      min_fit_points: int, min_r2: float) -> IdentifiedIsomerInfo:
        """Summarize the track for reporting."""
        info = self.mobility_info
        mz = float(np.mean([o.peak.mz_center_da for o in self._observations]))
        mz_ppm = 0.0
        if self.target is not None:
            mz_ppm = dalton_to_ppm(mz - self.target.target_mz, self.target.target_mz)

        return IdentifiedIsomerInfo(
            number_of_feature_points_used=len(self._observations),
            mz_in_dalton=mz,
            mz_in_ppm=mz_ppm,
            r_squared=info.r_squared,
            mobility=info.mobility,
            cross_sectional_area=info.collision_cross_section,
            viper_compatible_mass=viper_compatible_mass,
            analysis_status=self.conclude_status(min_fit_points, min_r2),
            arrival_time_snapshots=[self.arrival_time_snapshot(o) for o in self._observations],
        )
