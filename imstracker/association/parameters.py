"""
Configuration for data association and ion tracking.

Two parameter objects:
- DataAssociationParameters: weights and reference differences of the
  transition and hypothesis likelihood models
- IonTrackingParameters: track acceptance thresholds and search limits

Reference differences are the values mapped to a probability of 0.9 by the
exponential decay mapping (see imstracker.scoring.score_util).
"""

from dataclasses import dataclass, field

# Hard cap on tracks entering the subset enumeration (2^20 hypotheses)
MAX_COMBINATORIAL_TRACKS = 20


@dataclass(frozen=True)
class DataAssociationParameters:
    """Weights and reference values of the association likelihood model."""

    # Sub-score weights for real->real transitions (normalized before use)
    intensity_weight: float = 2.0
    diffusion_profile_weight: float = 1.0  # Feature detector widths are noisy
    mz_match_weight: float = 3.0

    # Differences mapped to probability 0.9
    mz_difference_in_ppm_09: float = 30.0
    drift_time_difference_in_ms_09: float = 0.1
    mz_center_location_difference_09: float = 0.1  # Fraction of the FWHM window
    mz_width_difference_in_ppm_09: float = 20.0

    # Likelihood of an observation no track explains
    outlier_probability: float = 0.8

    # Track probability: -log10(1 - R²) mapped to 0.9, and fraction of
    # voltage groups a track needs to score 0.9 on peak count
    r2_log_reference: float = 2.0
    peak_count_reference_fraction: float = 0.9

    # Sub-score weights for track probability (normalized before use)
    r2_weight: float = 1.0
    ion_signature_weight: float = 1.0
    peak_count_weight: float = 1.0

    def __post_init__(self):
        for name in ('intensity_weight', 'diffusion_profile_weight', 'mz_match_weight',
                     'r2_weight', 'ion_signature_weight', 'peak_count_weight'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ('mz_difference_in_ppm_09', 'drift_time_difference_in_ms_09',
                     'mz_center_location_difference_09', 'mz_width_difference_in_ppm_09',
                     'r2_log_reference', 'peak_count_reference_fraction'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0.0 < self.outlier_probability < 1.0:
            raise ValueError(f"outlier_probability must be in (0, 1), got {self.outlier_probability}")

    @classmethod
    def tuning(cls) -> 'DataAssociationParameters':
        """Parameters used while tuning the model against annotated runs.

        Differs from the defaults only in a lower outlier probability, which
        makes unexplained observations more expensive.
        """
        return cls(outlier_probability=0.75)


@dataclass(frozen=True)
class IonTrackingParameters:
    """Track acceptance and search limits for the ion trackers."""

    # Track acceptance
    min_fit_points: int = 3
    min_r2: float = 0.9

    # Search limits
    max_candidate_paths: int = 100
    max_combinatorial_tracks: int = MAX_COMBINATORIAL_TRACKS

    # 0 = ordinary least squares, > 0 = IRLS with this many reweightings
    robust_fit_iterations: int = 0

    association: DataAssociationParameters = field(default_factory=DataAssociationParameters)

    def __post_init__(self):
        if self.min_fit_points < 2:
            raise ValueError(f"min_fit_points must be >= 2, got {self.min_fit_points}")
        if not 0.0 <= self.min_r2 <= 1.0:
            raise ValueError(f"min_r2 must be in [0, 1], got {self.min_r2}")
        if self.max_candidate_paths < 1:
            raise ValueError(f"max_candidate_paths must be >= 1, got {self.max_candidate_paths}")
        if self.max_combinatorial_tracks < 1:
            raise ValueError(
                f"max_combinatorial_tracks must be >= 1, got {self.max_combinatorial_tracks}")
        if self.robust_fit_iterations < 0:
            raise ValueError(
                f"robust_fit_iterations must be >= 0, got {self.robust_fit_iterations}")

    @property
    def combinatorial_track_limit(self) -> int:
        """Tracks allowed into the enumeration, never above MAX_COMBINATORIAL_TRACKS."""
        return min(self.max_combinatorial_tracks, MAX_COMBINATORIAL_TRACKS)
