"""
Rational (NURBS) tensor-product basis functions of a surface patch.

For the local control points ``k`` of an element and a set of parametric
points, with ``B_k = N_a(ksi) M_b(heta)`` and weights ``w_k``::

    W    = sum_k B_k w_k
    R_k  = B_k w_k / W
    R_k' = w_k (B_k' W - B_k W') / W**2

and the second derivatives follow from applying the quotient rule twice.
A single evaluator covers every point set (Gauss points of an element,
a parametric grid, an element edge, a single collocation point) because
the points are always handled as paired ``(ksi, heta)`` coordinates.
"""

from typing import Iterable, Sequence

import numpy as np

from iga_shell.nurbs.bsplines import BSplines1D


class Nurbs2D:
    """
    NURBS values and parametric derivatives for a set of control points.

    Parameters
    ----------
    degree_ksi, degree_heta : int
        Polynomial degrees of the patch.
    knot_vector_ksi, knot_vector_heta : Sequence[float]
        Knot vectors of the patch.
    control_points : Sequence[ControlPoint]
        Local control points. Their ids follow the tensor numbering
        ``id = index_ksi * number_of_control_points_heta + index_heta``.
    number_of_control_points_heta : int
        Control points along the heta axis of the patch.
    ksi, heta : Sequence[float]
        Paired parametric coordinates of the evaluation points.

    Attributes
    ----------
    values : np.ndarray
        ``R_k``, shape ``(n_control_points, n_points)``.
    derivative_ksi, derivative_heta : np.ndarray
        First derivatives, same shape.
    second_derivative_ksi, second_derivative_heta : np.ndarray
        Pure second derivatives, same shape.
    second_derivative_ksi_heta : np.ndarray
        Mixed second derivative, same shape.
    """

    def __init__(
        self,
        degree_ksi: int,
        degree_heta: int,
        knot_vector_ksi: Sequence[float],
        knot_vector_heta: Sequence[float],
        control_points: Sequence,
        number_of_control_points_heta: int,
        ksi: Sequence[float],
        heta: Sequence[float],
    ):
        ksi = np.atleast_1d(np.asarray(ksi, dtype=float))
        heta = np.atleast_1d(np.asarray(heta, dtype=float))
        if ksi.shape != heta.shape:
            raise ValueError(
                f"ksi and heta must pair up point by point, got {ksi.shape} and {heta.shape}"
            )
        self.ksi = ksi
        self.heta = heta

        ids = np.array([cp.id for cp in control_points], dtype=int)
        self.weights = np.array([cp.weight for cp in control_points], dtype=float)
        index_ksi = ids // number_of_control_points_heta
        index_heta = ids % number_of_control_points_heta

        basis_ksi = BSplines1D(degree_ksi, knot_vector_ksi, ksi)
        basis_heta = BSplines1D(degree_heta, knot_vector_heta, heta)
        self._evaluate(basis_ksi.local(index_ksi), basis_heta.local(index_heta))

    def _evaluate(self, tables_ksi, tables_heta) -> None:
        N, dN, ddN = tables_ksi
        M, dM, ddM = tables_heta
        w = self.weights[:, None]

        B = N * M
        B1 = dN * M
        B2 = N * dM
        B11 = ddN * M
        B22 = N * ddM
        B12 = dN * dM

        W = np.sum(B * w, axis=0)
        W1 = np.sum(B1 * w, axis=0)
        W2 = np.sum(B2 * w, axis=0)
        W11 = np.sum(B11 * w, axis=0)
        W22 = np.sum(B22 * w, axis=0)
        W12 = np.sum(B12 * w, axis=0)

        self.values = B * w / W
        self.derivative_ksi = w * (B1 * W - B * W1) / W**2
        self.derivative_heta = w * (B2 * W - B * W2) / W**2
        self.second_derivative_ksi = w * (
            B11 / W - 2 * B1 * W1 / W**2 - B * W11 / W**2 + 2 * B * W1**2 / W**3
        )
        self.second_derivative_heta = w * (
            B22 / W - 2 * B2 * W2 / W**2 - B * W22 / W**2 + 2 * B * W2**2 / W**3
        )
        self.second_derivative_ksi_heta = w * (
            B12 / W
            - B1 * W2 / W**2
            - B2 * W1 / W**2
            - B * W12 / W**2
            + 2 * B * W1 * W2 / W**3
        )

    @property
    def second_derivative_heta_ksi(self) -> np.ndarray:
        return self.second_derivative_ksi_heta

    @property
    def number_of_points(self) -> int:
        return len(self.ksi)

    @property
    def number_of_control_points(self) -> int:
        return len(self.weights)

    def interpolate(self, nodal_values: np.ndarray) -> np.ndarray:
        """
        Interpolate per-control-point quantities at the evaluation points.

        Parameters
        ----------
        nodal_values : np.ndarray
            Array of shape ``(n_control_points, k)``.

        Returns
        -------
        np.ndarray
            Array of shape ``(n_points, k)``.
        """
        return self.values.T @ np.asarray(nodal_values, dtype=float)

    # =========================================================================
    # Point-set constructors
    # =========================================================================

    @classmethod
    def from_patch(cls, patch, control_points: Sequence, ksi, heta) -> "Nurbs2D":
        """Evaluate the patch basis of ``control_points`` at paired points."""
        return cls(
            patch.degree_ksi,
            patch.degree_heta,
            patch.knot_value_vector_ksi,
            patch.knot_value_vector_heta,
            control_points,
            patch.number_of_control_points_heta,
            ksi,
            heta,
        )

    @classmethod
    def at_gauss_points(cls, patch, control_points: Sequence, gauss_points: Iterable) -> "Nurbs2D":
        """Evaluate at an element's Gauss points, keeping their order."""
        gauss_points = list(gauss_points)
        return cls.from_patch(
            patch,
            control_points,
            [gp.ksi for gp in gauss_points],
            [gp.heta for gp in gauss_points],
        )

    @classmethod
    def at_knots(cls, patch, control_points: Sequence, knots: Iterable) -> "Nurbs2D":
        """Evaluate at knots (for example the corners of an element)."""
        knots = list(knots)
        return cls.from_patch(
            patch, control_points, [k.ksi for k in knots], [k.heta for k in knots]
        )

    @classmethod
    def on_grid(
        cls,
        patch,
        control_points: Sequence,
        ksi_values: Sequence[float],
        heta_values: Sequence[float],
    ) -> "Nurbs2D":
        """
        Evaluate on the tensor grid ``ksi_values x heta_values``.

        Points are ordered ksi-major, matching the Gauss point ordering.
        """
        ksi, heta = np.meshgrid(
            np.asarray(ksi_values, dtype=float), np.asarray(heta_values, dtype=float), indexing="ij"
        )
        return cls.from_patch(patch, control_points, ksi.ravel(), heta.ravel())

    @classmethod
    def on_edge(
        cls,
        patch,
        control_points: Sequence,
        fixed_axis: str,
        fixed_value: float,
        coordinates: Sequence[float],
    ) -> "Nurbs2D":
        """
        Evaluate along a boundary line of constant ksi or heta.

        Parameters
        ----------
        fixed_axis : str
            ``"ksi"`` or ``"heta"``, the coordinate held constant.
        fixed_value : float
            Value of the constant coordinate.
        coordinates : Sequence[float]
            Values of the running coordinate.
        """
        coordinates = np.asarray(coordinates, dtype=float)
        fixed = np.full_like(coordinates, float(fixed_value))
        if fixed_axis == "ksi":
            return cls.from_patch(patch, control_points, fixed, coordinates)
        if fixed_axis == "heta":
            return cls.from_patch(patch, control_points, coordinates, fixed)
        raise ValueError(f"Unknown parametric axis: {fixed_axis!r}")

    @classmethod
    def at_point(cls, patch, control_points: Sequence, ksi: float, heta: float) -> "Nurbs2D":
        """Evaluate at a single collocation point."""
        return cls.from_patch(patch, control_points, [ksi], [heta])

    def __repr__(self):
        return (
            f"<Nurbs2D control_points={self.number_of_control_points} "
            f"points={self.number_of_points}>"
        )
