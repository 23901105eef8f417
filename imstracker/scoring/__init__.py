"""Scoring utilities for observation and track likelihoods."""

from .score_util import (
    LikelihoodFunction,
    intensity_only_likelihood,
    isotopic_likelihood,
    map_difference_to_probability,
    map_magnitude_to_probability,
    normalize_weights,
    peak_shape_likelihood,
    relative_difference,
    weighted_geometric_mean,
)

__all__ = [
    'LikelihoodFunction',
    'intensity_only_likelihood',
    'isotopic_likelihood',
    'map_difference_to_probability',
    'map_magnitude_to_probability',
    'normalize_weights',
    'peak_shape_likelihood',
    'relative_difference',
    'weighted_geometric_mean',
]
