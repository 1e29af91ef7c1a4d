"""
Gauss-Legendre integration points for NURBS shell elements.

Mid-surface points are a tensor product of ``degree + 1`` points per axis
mapped onto the element knot span. Through-thickness points are a fixed
1D rule on ``[-t/2, t/2]`` nested under every mid-surface point.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

#: Degree of the through-thickness rule, independent of the in-plane degree.
THICKNESS_INTEGRATION_DEGREE = 2


@dataclass(frozen=True)
class GaussPoint:
    """Mid-surface integration point with its span-scaled weight."""

    ksi: float
    heta: float
    weight: float


@dataclass(frozen=True)
class ThicknessPoint:
    """Through-thickness integration point; ``weight`` already includes ``t/2``."""

    zeta: float
    weight: float


def gauss_legendre(degree: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Legendre rule on ``[-1, 1]`` with ``degree + 1`` points.

    Parameters
    ----------
    degree : int
        Polynomial degree of the axis being integrated.

    Returns
    -------
    tuple of np.ndarray
        Abscissae and weights.
    """
    if degree < 0:
        raise ValueError(f"Integration degree must be non-negative: {degree}")
    return np.polynomial.legendre.leggauss(degree + 1)


def map_to_interval(start: float, end: float, degree: int) -> Tuple[np.ndarray, np.ndarray]:
    """Gauss rule mapped affinely from ``[-1, 1]`` to ``[start, end]``."""
    abscissae, weights = gauss_legendre(degree)
    half_length = 0.5 * (end - start)
    return half_length * abscissae + 0.5 * (end + start), half_length * weights


def element_gauss_points(
    degree_ksi: int,
    degree_heta: int,
    ksi_bounds: Tuple[float, float],
    heta_bounds: Tuple[float, float],
) -> List[GaussPoint]:
    """
    Tensor-product Gauss points of one knot span.

    Parameters
    ----------
    degree_ksi, degree_heta : int
        Polynomial degrees of the patch along each axis.
    ksi_bounds, heta_bounds : tuple of float
        Knot values bounding the element.

    Returns
    -------
    List[GaussPoint]
        ``(degree_ksi + 1) * (degree_heta + 1)`` points, ksi-major: point
        ``i * (degree_heta + 1) + j`` pairs ksi point ``i`` with heta point ``j``.
    """
    ksi, w_ksi = map_to_interval(*ksi_bounds, degree_ksi)
    heta, w_heta = map_to_interval(*heta_bounds, degree_heta)
    return [
        GaussPoint(float(ksi[i]), float(heta[j]), float(w_ksi[i] * w_heta[j]))
        for i in range(len(ksi))
        for j in range(len(heta))
    ]


def thickness_gauss_points(
    thickness: float, degree: int = THICKNESS_INTEGRATION_DEGREE
) -> List[ThicknessPoint]:
    """
    Through-thickness Gauss points on ``[-t/2, t/2]``.

    Parameters
    ----------
    thickness : float
        Shell thickness ``t``.
    degree : int, optional
        Degree of the rule, by default 2 (three points).

    Returns
    -------
    List[ThicknessPoint]
        Points whose weights sum to ``t``.
    """
    if thickness <= 0:
        raise ValueError(f"Shell thickness must be positive: {thickness}")
    zeta, weights = map_to_interval(-0.5 * thickness, 0.5 * thickness, degree)
    return [ThicknessPoint(float(z), float(w)) for z, w in zip(zeta, weights)]
