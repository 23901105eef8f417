"""Score mappings and likelihood combinators.

Every sub-score in the association model lives in [0, 1] and is combined as a
weighted geometric mean. Raw differences (ppm, ms, Da) are mapped to [0, 1]
with exponential curves calibrated by a single reference point: the reference
difference maps to the reference probability (typically 0.9).
"""

import math
from typing import Callable, Sequence

# Intrinsic likelihood of a single observation, used on source edges
LikelihoodFunction = Callable[['FeatureStatistics'], float]


def map_difference_to_probability(difference: float, reference_difference: float,
                                  reference_probability: float = 0.9) -> float:
    """Exponential decay of a non-negative difference into (0, 1].

    p(d) = p_ref ** (d / d_ref)

    p(0) = 1, p(d_ref) = p_ref, and p -> 0 as d grows.

    Args:
        difference: Non-negative difference (absolute value is taken)
        reference_difference: Difference that maps to reference_probability
        reference_probability: Probability at the reference difference, in (0, 1)

    Returns:
        Probability in (0, 1]
    """
    if reference_difference <= 0:
        raise ValueError(f"reference_difference must be positive, got {reference_difference}")
    if not 0.0 < reference_probability < 1.0:
        raise ValueError(f"reference_probability must be in (0, 1), got {reference_probability}")
    return reference_probability ** (abs(difference) / reference_difference)


def map_magnitude_to_probability(magnitude: float, reference_magnitude: float,
                                 reference_probability: float = 0.9) -> float:
    """Exponential saturation of a non-negative magnitude into [0, 1).

    p(x) = 1 - (1 - p_ref) ** (x / x_ref)

    p(0) = 0, p(x_ref) = p_ref, and p -> 1 as x grows.
    """
    if reference_magnitude <= 0:
        raise ValueError(f"reference_magnitude must be positive, got {reference_magnitude}")
    if not 0.0 < reference_probability < 1.0:
        raise ValueError(f"reference_probability must be in (0, 1), got {reference_probability}")
    if magnitude <= 0:
        return 0.0
    return 1.0 - (1.0 - reference_probability) ** (magnitude / reference_magnitude)


def normalize_weights(weights: Sequence[float]) -> list:
    """Scale weights so they sum to 1."""
    total = float(sum(weights))
    if total <= 0:
        raise ValueError(f"Weights must sum to a positive value, got {total}")
    return [w / total for w in weights]


def weighted_geometric_mean(scores: Sequence[float], weights: Sequence[float]) -> float:
    """exp(Σ w_i · ln s_i) with weights normalized to sum to 1.

    A score of 0 (with positive weight) gives 0: one impossible sub-score
    makes the combination impossible.
    """
    if len(scores) != len(weights):
        raise ValueError(f"Got {len(scores)} scores but {len(weights)} weights")

    log_sum = 0.0
    for score, weight in zip(scores, normalize_weights(weights)):
        if weight == 0:
            continue
        if score <= 0:
            return 0.0
        log_sum += weight * math.log(score)
    return math.exp(log_sum)


def relative_difference(a: float, b: float) -> float:
    """|a - b| / max(a, b), 0 when both are 0."""
    denominator = max(a, b)
    if denominator <= 0:
        return 0.0
    return abs(a - b) / denominator


# ========== Observation likelihoods ==========

def intensity_only_likelihood(statistics) -> float:
    """Likelihood of an observation from its intensity score alone."""
    return statistics.intensity_score


def isotopic_likelihood(statistics) -> float:
    """Intensity score weighted by the isotopic profile score."""
    return statistics.intensity_score * statistics.isotopic_score


def peak_shape_likelihood(statistics) -> float:
    """Intensity, isotopic and peak shape scores combined."""
    return statistics.intensity_score * statistics.isotopic_score * statistics.peak_shape_score
