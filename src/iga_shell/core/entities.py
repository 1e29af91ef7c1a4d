"""
Geometry entities of a single NURBS patch.

Control points are numbered tensor-wise, ``id = index_ksi * n_heta + index_heta``,
so the axis indices of a control point are ``id // n_heta`` and ``id % n_heta``.
Elements are the non-empty knot spans of the patch.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Sequence, Tuple

import numpy as np

from iga_shell.nurbs.bsplines import BSplines1D, find_span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControlPoint:
    """
    Weighted control point of a NURBS patch.

    Parameters
    ----------
    id : int
        Tensor-numbered identifier inside the patch.
    x, y, z : float
        Cartesian position.
    weight : float
        Rational weight, must be positive.
    ksi, heta, zeta : float
        Parametric (Greville) coordinates, informative only.
    """

    id: int
    x: float
    y: float
    z: float
    weight: float = 1.0
    ksi: float = 0.0
    heta: float = 0.0
    zeta: float = 0.0

    @property
    def coordinates(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def displaced(self, displacement: Sequence[float]) -> "ControlPoint":
        """Copy of the point moved by a translation ``(ux, uy, uz)``."""
        ux, uy, uz = displacement
        return replace(self, x=self.x + ux, y=self.y + uy, z=self.z + uz)


@dataclass(frozen=True)
class Knot:
    """Point of the parametric domain at a knot-line intersection."""

    id: int
    ksi: float
    heta: float


@dataclass(frozen=True)
class KnotSpan:
    """
    Non-empty knot span of a patch, i.e. one element.

    ``knots`` holds the four corners in the order
    ``(ksi0, heta0), (ksi0, heta1), (ksi1, heta0), (ksi1, heta1)``.
    """

    id: int
    span_ksi: int
    span_heta: int
    ksi_bounds: Tuple[float, float]
    heta_bounds: Tuple[float, float]
    knots: Tuple[Knot, Knot, Knot, Knot]


class Patch:
    """
    Tensor-product NURBS surface patch.

    Parameters
    ----------
    degree_ksi, degree_heta : int
        Polynomial degrees along each parametric axis.
    knot_value_vector_ksi, knot_value_vector_heta : Sequence[float]
        Non-decreasing knot vectors.
    control_points : Sequence[ControlPoint]
        ``n_ksi * n_heta`` control points with ids ``0 .. n_ksi * n_heta - 1``.
    """

    def __init__(
        self,
        degree_ksi: int,
        degree_heta: int,
        knot_value_vector_ksi: Sequence[float],
        knot_value_vector_heta: Sequence[float],
        control_points: Sequence[ControlPoint],
    ):
        self.degree_ksi = int(degree_ksi)
        self.degree_heta = int(degree_heta)
        self.knot_value_vector_ksi = np.asarray(knot_value_vector_ksi, dtype=float)
        self.knot_value_vector_heta = np.asarray(knot_value_vector_heta, dtype=float)
        self.number_of_control_points_ksi = len(self.knot_value_vector_ksi) - self.degree_ksi - 1
        self.number_of_control_points_heta = (
            len(self.knot_value_vector_heta) - self.degree_heta - 1
        )
        if self.number_of_control_points_ksi < 1 or self.number_of_control_points_heta < 1:
            raise ValueError("Knot vectors are too short for the patch degrees")

        expected = self.number_of_control_points_ksi * self.number_of_control_points_heta
        self.control_points = sorted(control_points, key=lambda cp: cp.id)
        if [cp.id for cp in self.control_points] != list(range(expected)):
            raise ValueError(
                f"Patch needs control points with ids 0..{expected - 1}, "
                f"got {len(self.control_points)} points"
            )

    def axis_indices(self, control_point: ControlPoint) -> Tuple[int, int]:
        """``(index_ksi, index_heta)`` of a control point."""
        return divmod(control_point.id, self.number_of_control_points_heta)

    def knot_spans(self) -> List[KnotSpan]:
        """Non-empty knot spans, ksi-major, numbered from zero."""
        Uk = self.knot_value_vector_ksi
        Uh = self.knot_value_vector_heta
        spans_ksi = [
            i
            for i in range(self.degree_ksi, self.number_of_control_points_ksi)
            if Uk[i] < Uk[i + 1]
        ]
        spans_heta = [
            j
            for j in range(self.degree_heta, self.number_of_control_points_heta)
            if Uh[j] < Uh[j + 1]
        ]

        spans = []
        knot_id = 0
        for i in spans_ksi:
            for j in spans_heta:
                corners = []
                for ksi in (Uk[i], Uk[i + 1]):
                    for heta in (Uh[j], Uh[j + 1]):
                        corners.append(Knot(knot_id, float(ksi), float(heta)))
                        knot_id += 1
                spans.append(
                    KnotSpan(
                        id=len(spans),
                        span_ksi=i,
                        span_heta=j,
                        ksi_bounds=(float(Uk[i]), float(Uk[i + 1])),
                        heta_bounds=(float(Uh[j]), float(Uh[j + 1])),
                        knots=tuple(corners),
                    )
                )
        logger.debug("Patch has %d non-empty knot spans", len(spans))
        return spans

    def element_control_points(self, span: KnotSpan) -> List[ControlPoint]:
        """The ``(p + 1)(q + 1)`` control points supporting a knot span, ksi-major."""
        n_heta = self.number_of_control_points_heta
        return [
            self.control_points[a * n_heta + b]
            for a in range(span.span_ksi - self.degree_ksi, span.span_ksi + 1)
            for b in range(span.span_heta - self.degree_heta, span.span_heta + 1)
        ]

    def surface_point(self, ksi: float, heta: float) -> np.ndarray:
        """
        Cartesian point of the surface at ``(ksi, heta)``.

        Evaluated on projective coordinates ``(w x, w y, w z, w)`` of the
        control points supporting the span that contains the point.
        """
        span_ksi = find_span(self.degree_ksi, self.knot_value_vector_ksi, ksi)
        span_heta = find_span(self.degree_heta, self.knot_value_vector_heta, heta)
        basis_ksi = BSplines1D(self.degree_ksi, self.knot_value_vector_ksi, [ksi])
        basis_heta = BSplines1D(self.degree_heta, self.knot_value_vector_heta, [heta])
        support_ksi = basis_ksi.support(span_ksi)
        support_heta = basis_heta.support(span_heta)

        projective = np.zeros(4)
        for a in support_ksi:
            for b in support_heta:
                cp = self.control_points[a * self.number_of_control_points_heta + b]
                factor = basis_ksi.values[a, 0] * basis_heta.values[b, 0] * cp.weight
                projective[:3] += factor * cp.coordinates
                projective[3] += factor
        return projective[:3] / projective[3]

    def __repr__(self):
        return (
            f"<Patch degrees=({self.degree_ksi}, {self.degree_heta}) "
            f"control_points={self.number_of_control_points_ksi}"
            f"x{self.number_of_control_points_heta}>"
        )
