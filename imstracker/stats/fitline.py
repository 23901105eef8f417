"""
Linear fit engine with Cook's distance diagnostics and robust reweighting.

This module provides the drift-time vs. normalized-field fit used to score
and calibrate isomer tracks:
- Ordinary least squares over a mutable point set
- Iteratively reweighted least squares (bisquare weights, MAD scale)
- Leverage and Cook's distance per point
- Outlier removal that never drops below a minimum point count

A fit line is a small state machine::

    OBSERVING -> MODEL_COMPLETE -> DIAGNOSTICS_COMPLETE

``fit()`` moves to MODEL_COMPLETE, ``diagnose()`` to DIAGNOSTICS_COMPLETE, and
adding points goes back to OBSERVING. Reading a result that needs a later
state raises ``RuntimeError`` instead of returning stale numbers.

All numeric kernels are Numba-compiled.

Example
-------
>>> from imstracker.stats.fitline import LeastSquaresFitLine
>>> line = LeastSquaresFitLine([(1.0, 3.0), (2.0, 5.0), (3.0, 7.0)])
>>> line.fit().diagnose()
>>> line.slope, line.intercept, line.r_squared
(2.0, 1.0, 1.0)
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
from numba import njit

logger = logging.getLogger(__name__)

# Number of parameters used in the Cook's distance denominator
COOKS_DISTANCE_P = 3.0

# Bisquare tuning constant (95% efficiency under normal errors)
BISQUARE_TUNING_CONSTANT = 4.685

# Relative tolerance below which a variance or scale counts as zero
_RELATIVE_ZERO = 1e-12


# ========== Numba utilities ==========

@njit
def _median(a):
    """Compute median (Numba-optimized)."""
    b = a.copy()
    b.sort()
    n = b.size
    mid = n // 2
    if n % 2 == 1:
        return b[mid]
    else:
        return 0.5 * (b[mid-1] + b[mid])


@njit
def _mad(a):
    """Median absolute deviation from the median."""
    med = _median(a)
    return _median(np.abs(a - med))


@njit
def _weighted_linear_fit(x, y, w):
    """
    Weighted least squares: y = slope*x + intercept

    Uses weighted means:
        slope = (E[xy] - E[x]E[y]) / (E[x²] - E[x]²)
        intercept = E[y] - slope*E[x]

    Falls back to a horizontal line through E[y] when x has no spread.
    """
    n = x.size
    sw = 0.0
    sx = 0.0
    sy = 0.0
    sxx = 0.0
    sxy = 0.0
    for i in range(n):
        wi = w[i]
        sw += wi
        sx += wi*x[i]
        sy += wi*y[i]
        sxx += wi*x[i]*x[i]
        sxy += wi*x[i]*y[i]

    mean_x = sx / sw
    mean_y = sy / sw
    mean_xx = sxx / sw
    mean_xy = sxy / sw

    den = mean_xx - mean_x*mean_x
    if den <= 1e-12 * mean_xx:
        return 0.0, mean_y

    slope = (mean_xy - mean_x*mean_y) / den
    intercept = mean_y - slope*mean_x
    return slope, intercept


@njit
def _residuals(x, y, slope, intercept):
    """Signed residuals y - (slope*x + intercept)."""
    out = np.empty(x.size, dtype=np.float64)
    for i in range(x.size):
        out[i] = y[i] - (slope*x[i] + intercept)
    return out


@njit
def _leverages(x):
    """
    Diagonal of the hat matrix for simple linear regression.

    h_ii = 1/n + (x_i - x̄)² / SSx
    """
    n = x.size
    mean_x = 0.0
    for i in range(n):
        mean_x += x[i]
    mean_x /= n

    ssx = 0.0
    for i in range(n):
        ssx += (x[i] - mean_x) * (x[i] - mean_x)

    h = np.empty(n, dtype=np.float64)
    for i in range(n):
        if ssx > 0.0:
            h[i] = 1.0/n + (x[i] - mean_x) * (x[i] - mean_x) / ssx
        else:
            h[i] = 1.0/n
    return h


@njit
def _r_squared(y, residuals):
    """
    Coefficient of determination: 1 - SSreg / SStot

    SSreg here is the residual sum of squares against the fitted line.
    Returns 0 when y has no variance.
    """
    n = y.size
    mean_y = 0.0
    for i in range(n):
        mean_y += y[i]
    mean_y /= n

    ss_reg = 0.0
    ss_tot = 0.0
    for i in range(n):
        ss_reg += residuals[i] * residuals[i]
        ss_tot += (mean_y - y[i]) * (mean_y - y[i])

    if ss_tot <= 0.0:
        return 0.0
    return 1.0 - ss_reg / ss_tot


@njit
def _cooks_distances(residuals, leverages, mse, mse_floor, p):
    """
    Cook's distance per point.

    D_i = r_i² / (p·MSE) · h_ii / (1 - h_ii)²

    Points with h_ii = 1 pin the line and get D = 0; so do all points of an
    exact fit (MSE at the floating point floor).
    """
    n = residuals.size
    d = np.zeros(n, dtype=np.float64)
    if mse <= mse_floor:
        return d
    for i in range(n):
        one_minus_h = 1.0 - leverages[i]
        if one_minus_h <= 1e-9:
            continue
        r = residuals[i]
        d[i] = r*r / (p*mse) * leverages[i] / (one_minus_h*one_minus_h)
    return d


@njit
def _bisquare_weights(residuals, leverages, scale, tuning_constant):
    """
    Tukey bisquare weights from leverage-adjusted residuals.

    u_i = r_i / sqrt(1 - h_ii) / (K·s),  w_i = (1 - u_i²)² if |u_i| < 1 else 0

    s is the median absolute deviation of the residuals.
    """
    n = residuals.size
    w = np.zeros(n, dtype=np.float64)
    for i in range(n):
        one_minus_h = 1.0 - leverages[i]
        if one_minus_h <= 1e-9:
            adjusted = 0.0
        else:
            adjusted = residuals[i] / np.sqrt(one_minus_h)
        u = adjusted / (tuning_constant * scale)
        if abs(u) < 1.0:
            w[i] = (1.0 - u*u) * (1.0 - u*u)
    return w


# ========== Fit points and state ==========

class FitState(IntEnum):
    """Stages of a fit line. Later stages imply the earlier ones."""
    OBSERVING = 0
    MODEL_COMPLETE = 1
    DIAGNOSTICS_COMPLETE = 2


@dataclass(eq=False)
class FitPoint:
    """An (x, y) pair with its regression diagnostics.

    Compared by identity so that two points with equal coordinates stay
    distinct members of a fit.
    """

    x: float
    y: float

    cooks_distance: float = 0.0
    leverage: float = 0.0
    weight: float = 1.0
    is_outlier: bool = False

    def __repr__(self) -> str:
        return f"FitPoint(x={self.x:.10g}, y={self.y:.6g}, w={self.weight:.2f})"


PointLike = Union[FitPoint, Tuple[float, float]]


# ========== Fit lines ==========

class FitLine:
    """Base class for straight-line fits over a mutable point set.

    Subclasses implement ``_solve`` to produce slope and intercept; the
    diagnostics (MSE, R², leverage, Cook's distance) are shared.

    Parameters
    ----------
    points : iterable of FitPoint or (x, y), optional
        Initial points
    outlier_threshold : float, default=3.0
        Cook's distance at or above which ``diagnose()`` flags a point
    """

    def __init__(self, points: Optional[Iterable[PointLike]] = None, outlier_threshold: float = 3.0):
        self.outlier_threshold = outlier_threshold
        self._points: List[FitPoint] = []
        self._outliers: List[FitPoint] = []
        self._state = FitState.OBSERVING
        self._slope = np.nan
        self._intercept = np.nan
        self._mse = np.nan
        self._r_squared = np.nan
        if points is not None:
            self.add_points(points)

    # ----- observation -----

    def add_point(self, x: float, y: float) -> FitPoint:
        """Add a point and return it. Invalidates any previous fit."""
        point = FitPoint(float(x), float(y))
        self._points.append(point)
        self._state = FitState.OBSERVING
        return point

    def add_points(self, points: Iterable[PointLike]) -> None:
        for point in points:
            if isinstance(point, FitPoint):
                self._points.append(point)
            else:
                x, y = point
                self._points.append(FitPoint(float(x), float(y)))
        self._state = FitState.OBSERVING

    @property
    def points(self) -> Tuple[FitPoint, ...]:
        return tuple(self._points)

    @property
    def outliers(self) -> Tuple[FitPoint, ...]:
        """Points removed by the outlier removal methods."""
        return tuple(self._outliers)

    @property
    def state(self) -> FitState:
        return self._state

    def __len__(self) -> int:
        return len(self._points)

    # ----- model -----

    def fit(self) -> 'FitLine':
        """Compute slope and intercept over the current points."""
        if not self._points:
            raise ValueError("Cannot fit a line without points")

        x, y = self._arrays()
        self._slope, self._intercept = self._solve(x, y)
        self._state = FitState.MODEL_COMPLETE
        return self

    def _solve(self, x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
        raise NotImplementedError

    def diagnose(self) -> 'FitLine':
        """Compute MSE, R², leverage and Cook's distance for every point."""
        self._require(FitState.MODEL_COMPLETE, "diagnose")

        x, y = self._arrays()
        residuals = _residuals(x, y, self._slope, self._intercept)
        leverages = _leverages(x)

        n = len(self._points)
        self._mse = float(np.sum(residuals * residuals) / n)
        self._r_squared = float(_r_squared(y, residuals))

        # Residual noise of an exact fit is at the rounding level of y
        mse_floor = 1e-24 * float(np.mean(y * y))
        cooks = _cooks_distances(residuals, leverages, self._mse, mse_floor, COOKS_DISTANCE_P)

        for i, point in enumerate(self._points):
            point.leverage = float(leverages[i])
            point.cooks_distance = float(cooks[i])
            point.is_outlier = point.cooks_distance >= self.outlier_threshold

        self._state = FitState.DIAGNOSTICS_COMPLETE
        return self

    def _require(self, state: FitState, operation: str) -> None:
        if self._state < state:
            raise RuntimeError(
                f"{operation} requires fit state {state.name}, "
                f"current state is {self._state.name}"
            )

    def _arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        x = np.array([p.x for p in self._points], dtype=np.float64)
        y = np.array([p.y for p in self._points], dtype=np.float64)
        return x, y

    # ----- results -----

    @property
    def slope(self) -> float:
        self._require(FitState.MODEL_COMPLETE, "slope")
        return float(self._slope)

    @property
    def intercept(self) -> float:
        self._require(FitState.MODEL_COMPLETE, "intercept")
        return float(self._intercept)

    @property
    def mse(self) -> float:
        self._require(FitState.DIAGNOSTICS_COMPLETE, "mse")
        return self._mse

    @property
    def r_squared(self) -> float:
        self._require(FitState.DIAGNOSTICS_COMPLETE, "r_squared")
        return self._r_squared

    def predict_y_from_x(self, x: float) -> float:
        self._require(FitState.MODEL_COMPLETE, "predict_y_from_x")
        return self._slope * x + self._intercept

    def predict_x_from_y(self, y: float) -> float:
        self._require(FitState.MODEL_COMPLETE, "predict_x_from_y")
        if self._slope == 0.0:
            raise ValueError("Cannot invert a horizontal fit line")
        return (y - self._intercept) / self._slope

    def residual(self, point: FitPoint) -> float:
        """Absolute residual of a point that belongs to this fit."""
        if not any(p is point for p in self._points):
            raise ValueError("Point given is not inside the fit line point list")
        return abs(self.predict_y_from_x(point.x) - point.y)

    # ----- outlier removal -----

    def remove_outliers_above_threshold(self, threshold: float, min_points: int) -> int:
        """Remove points with Cook's distance above ``threshold``.

        Worst points go first, and at most ``len(self) - min_points`` are
        removed. The line is re-fitted and re-diagnosed afterwards.

        Returns
        -------
        int
            Number of points left in the fit
        """
        self._require(FitState.DIAGNOSTICS_COMPLETE, "remove_outliers_above_threshold")

        discretion = len(self._points) - min_points
        if discretion < 1:
            return len(self._points)

        candidates = sorted(
            (p for p in self._points if p.cooks_distance > threshold),
            key=lambda p: p.cooks_distance,
            reverse=True,
        )
        removed = candidates[:discretion]
        if removed:
            self._discard(removed)
            self.fit().diagnose()
            logger.debug(f"Removed {len(removed)} points with Cook's distance > {threshold}")

        return len(self._points)

    def remove_worst_outlier(self, min_points: int) -> int:
        """Remove the single point with the highest Cook's distance.

        Nothing happens unless more than ``min_points`` points remain.

        Returns
        -------
        int
            Number of points left in the fit
        """
        self._require(FitState.DIAGNOSTICS_COMPLETE, "remove_worst_outlier")

        if len(self._points) <= min_points:
            return len(self._points)

        worst = max(self._points, key=lambda p: p.cooks_distance)
        self._discard([worst])
        self.fit().diagnose()
        return len(self._points)

    def _discard(self, points: List[FitPoint]) -> None:
        ids = {id(p) for p in points}
        self._points = [p for p in self._points if id(p) not in ids]
        for point in points:
            point.is_outlier = True
            self._outliers.append(point)


class LeastSquaresFitLine(FitLine):
    """Ordinary least squares fit line (all weights 1)."""

    def _solve(self, x, y):
        for point in self._points:
            point.weight = 1.0
        slope, intercept = _weighted_linear_fit(x, y, np.ones(x.size, dtype=np.float64))
        return float(slope), float(intercept)


class IRLSFitLine(FitLine):
    """Iteratively reweighted least squares with Tukey bisquare weights.

    Each iteration fits, takes residuals, scales the leverage-adjusted
    residuals by K times their median absolute deviation (MAD) and re-fits
    with bisquare weights. Points far from the line end up with zero weight. Reweighting
    stops early when the MAD is zero or every weight would vanish, keeping
    the last usable weights.

    Parameters
    ----------
    points : iterable of FitPoint or (x, y), optional
        Initial points
    iterations : int, default=10
        Number of reweighting iterations
    tuning_constant : float, default=4.685
        Bisquare tuning constant
    outlier_threshold : float, default=3.0
        Cook's distance flag threshold
    """

    def __init__(
        self,
        points: Optional[Iterable[PointLike]] = None,
        iterations: int = 10,
        tuning_constant: float = BISQUARE_TUNING_CONSTANT,
        outlier_threshold: float = 3.0,
    ):
        super().__init__(points, outlier_threshold)
        self.iterations = iterations
        self.tuning_constant = tuning_constant

    def _solve(self, x, y):
        weights = np.ones(x.size, dtype=np.float64)
        slope, intercept = _weighted_linear_fit(x, y, weights)
        leverages = _leverages(x)
        scale = float(np.mean(np.abs(y)))

        for iteration in range(self.iterations):
            residuals = _residuals(x, y, slope, intercept)
            mad = _mad(residuals)
            if mad <= _RELATIVE_ZERO * scale:
                logger.debug(f"IRLS stopped at iteration {iteration}: zero residual spread")
                break

            new_weights = _bisquare_weights(residuals, leverages, mad, self.tuning_constant)
            if np.sum(new_weights) <= 0.0:
                logger.debug(f"IRLS stopped at iteration {iteration}: all weights vanished")
                break

            weights = new_weights
            slope, intercept = _weighted_linear_fit(x, y, weights)

        for point, weight in zip(self._points, weights):
            point.weight = float(weight)

        return float(slope), float(intercept)
