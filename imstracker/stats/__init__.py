"""Statistics: robust line fitting and combinatorial helpers."""

from .fitline import (
    FitLine,
    FitPoint,
    FitState,
    IRLSFitLine,
    LeastSquaresFitLine,
)
from .combinatorics import (
    binary_to_gray,
    gray_code_to_index_of_ones,
    gray_sequence,
    next_change_on_gray,
)

__all__ = [
    'FitLine',
    'FitPoint',
    'FitState',
    'IRLSFitLine',
    'LeastSquaresFitLine',
    'binary_to_gray',
    'gray_code_to_index_of_ones',
    'gray_sequence',
    'next_change_on_gray',
]
