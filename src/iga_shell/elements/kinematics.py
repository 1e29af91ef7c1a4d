"""
Kirchhoff-Love shell kinematics at a mid-surface point.

Notation
--------
- ``a1, a2``: covariant tangent vectors, ``a_alpha = sum_k R_k,alpha x_k``
- ``a11, a22, a12``: second parametric derivatives of the surface
- ``a3 = (a1 x a2) / J`` with ``J = |a1 x a2|``
- membrane strain ``e = (1/2 (a11 - A11), 1/2 (a22 - A22), a12 - A12)``
  on the metric ``a_alphabeta = a_alpha . a_beta``
- curvature change ``k = (b11 - B11, b22 - B22, 2 (b12 - B12))``
  with ``b_alphabeta = a_alphabeta . a3``

Capital letters are the reference configuration. Variations are taken with
respect to the control-point DOFs ordered ``I = 3 r + d`` (control point ``r``,
direction ``d``).

References
----------
- Kiendl, J. et al. (2009). Isogeometric shell analysis with Kirchhoff-Love
  elements. Computer Methods in Applied Mechanics and Engineering, 198, 3902-3914.
- Kiendl, J. (2011). Isogeometric Analysis and Shape Optimal Design of Shell
  Structures. PhD thesis, TU Munich.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

_I3 = np.eye(3)


@dataclass(frozen=True)
class SurfaceGeometry:
    """Covariant basis and surface derivatives at one point."""

    a1: np.ndarray
    a2: np.ndarray
    a3: np.ndarray
    a11: np.ndarray
    a22: np.ndarray
    a12: np.ndarray
    J: float

    @property
    def metric(self) -> np.ndarray:
        """``(a1.a1, a2.a2, a1.a2)``."""
        return np.array([self.a1 @ self.a1, self.a2 @ self.a2, self.a1 @ self.a2])

    @property
    def curvature(self) -> np.ndarray:
        """``(a11.a3, a22.a3, a12.a3)``."""
        return np.array([self.a11 @ self.a3, self.a22 @ self.a3, self.a12 @ self.a3])


def surface_geometry(coordinates: np.ndarray, nurbs, point: int) -> SurfaceGeometry:
    """
    Evaluate the surface basis at one evaluation point of a ``Nurbs2D``.

    Parameters
    ----------
    coordinates : np.ndarray
        Control-point positions, shape ``(n_control_points, 3)``.
    nurbs : Nurbs2D
        Basis evaluated for the same control points.
    point : int
        Evaluation point index.

    Returns
    -------
    SurfaceGeometry
    """
    x = np.asarray(coordinates, dtype=float)
    a1 = nurbs.derivative_ksi[:, point] @ x
    a2 = nurbs.derivative_heta[:, point] @ x
    a11 = nurbs.second_derivative_ksi[:, point] @ x
    a22 = nurbs.second_derivative_heta[:, point] @ x
    a12 = nurbs.second_derivative_ksi_heta[:, point] @ x

    normal = np.cross(a1, a2)
    J = float(np.linalg.norm(normal))
    return SurfaceGeometry(a1=a1, a2=a2, a3=normal / J, a11=a11, a22=a22, a12=a12, J=J)


@dataclass(frozen=True)
class ReferenceConfiguration:
    """
    Surface geometry of every Gauss point in the undeformed state.

    Captured once per element and never modified afterwards.
    """

    geometries: Tuple[SurfaceGeometry, ...]

    @classmethod
    def capture(cls, coordinates: np.ndarray, nurbs) -> "ReferenceConfiguration":
        return cls(
            tuple(surface_geometry(coordinates, nurbs, j) for j in range(nurbs.number_of_points))
        )

    def __getitem__(self, point: int) -> SurfaceGeometry:
        return self.geometries[point]

    def __len__(self) -> int:
        return len(self.geometries)

    def jacobian(self, point: int) -> float:
        return self.geometries[point].J


def membrane_strain(current: SurfaceGeometry, reference: SurfaceGeometry) -> np.ndarray:
    """Green-Lagrange membrane strain ``(E11, E22, 2 E12)``."""
    a = current.metric
    A = reference.metric
    return np.array([0.5 * (a[0] - A[0]), 0.5 * (a[1] - A[1]), a[2] - A[2]])


def bending_strain(current: SurfaceGeometry, reference: SurfaceGeometry) -> np.ndarray:
    """Curvature change ``(k11, k22, 2 k12)``."""
    b = current.curvature
    B = reference.curvature
    return np.array([b[0] - B[0], b[1] - B[1], 2.0 * (b[2] - B[2])])


def _skew_contraction(v: np.ndarray) -> np.ndarray:
    """``S[d, e] = v . (e_d x e_e)``."""
    return np.array(
        [
            [0.0, v[2], -v[1]],
            [-v[2], 0.0, v[0]],
            [v[1], -v[0], 0.0],
        ]
    )


class ShellKinematics:
    """
    First and second variations of the shell strains at one Gauss point.

    Parameters
    ----------
    geometry : SurfaceGeometry
        Current surface geometry at the point.
    nurbs : Nurbs2D
        Basis of the element control points.
    point : int
        Evaluation point index inside ``nurbs``.

    Notes
    -----
    With ``D_alpha[I] = R_r,alpha e_d`` and ``H_alphabeta[I] = R_r,alphabeta e_d``
    the variation of the unnormalised normal ``a~ = a1 x a2`` is
    ``a~_I = D1[I] x a2 + a1 x D2[I]``, and that of the unit normal is::

        a3_I = (a~_I - (a~_I . a3) a3) / J

    The second variation of ``a3`` contracted with a vector ``h`` is::

        h . a3_IJ = h . a~_IJ / J
                    - ((h . a~_I) p_J + (h . a~_J) p_I) / J**2
                    - (h . a3)(a~_I . a~_J) / J**2
                    - (h . a3)(a3 . a~_IJ) / J
                    + 3 (h . a3) p_I p_J / J**2

    with ``p_I = a~_I . a3`` and ``a~_IJ = D1[I] x D2[J] + D1[J] x D2[I]``.
    """

    def __init__(self, geometry: SurfaceGeometry, nurbs, point: int):
        self.geometry = geometry
        self.dR1 = nurbs.derivative_ksi[:, point]
        self.dR2 = nurbs.derivative_heta[:, point]
        self.dR11 = nurbs.second_derivative_ksi[:, point]
        self.dR22 = nurbs.second_derivative_heta[:, point]
        self.dR12 = nurbs.second_derivative_ksi_heta[:, point]
        self.dofs_count = 3 * len(self.dR1)

        g = geometry
        self._D1 = np.kron(self.dR1[:, None], _I3)
        self._D2 = np.kron(self.dR2[:, None], _I3)
        self._H = (
            np.kron(self.dR11[:, None], _I3),
            np.kron(self.dR22[:, None], _I3),
            np.kron(self.dR12[:, None], _I3),
        )

        # first variation of a1 x a2 and of its projection on a3
        self._normal_variation = np.cross(self._D1, g.a2) + np.cross(g.a1, self._D2)
        self._p = self._normal_variation @ g.a3
        self._a3_variation = (self._normal_variation - np.outer(self._p, g.a3)) / g.J

    @property
    def hessian_vectors(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.geometry.a11, self.geometry.a22, self.geometry.a12

    @property
    def normal_variation(self) -> np.ndarray:
        """``a3_I``, shape ``(3 n, 3)``."""
        return self._a3_variation

    def membrane_b_matrix(self) -> np.ndarray:
        """``B_membrane`` (3 x 3n): variation of ``(E11, E22, 2 E12)``."""
        g = self.geometry
        return np.vstack(
            [
                self._D1 @ g.a1,
                self._D2 @ g.a2,
                self._D1 @ g.a2 + self._D2 @ g.a1,
            ]
        )

    def bending_b_matrix(self) -> np.ndarray:
        """``B_bending`` (3 x 3n): variation of ``(k11, k22, 2 k12)``."""
        a3 = self.geometry.a3
        rows = [
            H @ a3 + self._a3_variation @ h for H, h in zip(self._H, self.hessian_vectors)
        ]
        rows[2] = 2.0 * rows[2]
        return np.vstack(rows)

    def membrane_geometric_stiffness(self, membrane_forces: np.ndarray) -> np.ndarray:
        """
        Second variation of the membrane strain under constant forces.

        Parameters
        ----------
        membrane_forces : np.ndarray
            ``(n11, n22, n12)``.

        Returns
        -------
        np.ndarray
            Symmetric ``(3n, 3n)`` matrix.
        """
        n11, n22, n12 = membrane_forces
        dR1, dR2 = self.dR1, self.dR2
        scalar = (
            n11 * np.outer(dR1, dR1)
            + n22 * np.outer(dR2, dR2)
            + n12 * (np.outer(dR1, dR2) + np.outer(dR2, dR1))
        )
        return np.kron(scalar, _I3)

    def _second_variation_curvature(self, H: np.ndarray, h: np.ndarray) -> np.ndarray:
        """Second variation of ``b = h . a3`` where ``h`` is one hessian vector."""
        g = self.geometry
        J = g.J
        p = self._p
        a_tilde = self._normal_variation
        ha3 = h @ g.a3

        # c[r, s] couples D1 of point r with D2 of point s in a~_IJ
        c = np.outer(self.dR1, self.dR2) - np.outer(self.dR2, self.dR1)
        h_tilde_IJ = np.kron(c, _skew_contraction(h))
        a3_tilde_IJ = np.kron(c, _skew_contraction(g.a3))
        h_tilde_I = a_tilde @ h

        h_a3_IJ = (
            h_tilde_IJ / J
            - (np.outer(h_tilde_I, p) + np.outer(p, h_tilde_I)) / J**2
            - ha3 * (a_tilde @ a_tilde.T) / J**2
            - ha3 * a3_tilde_IJ / J
            + 3.0 * ha3 * np.outer(p, p) / J**2
        )

        cross_terms = H @ self._a3_variation.T
        return cross_terms + cross_terms.T + h_a3_IJ

    def bending_geometric_stiffness(self, bending_moments: np.ndarray) -> np.ndarray:
        """
        Second variation of the curvature change under constant moments.

        Parameters
        ----------
        bending_moments : np.ndarray
            ``(m11, m22, m12)``; ``m12`` pairs with the engineering twist.

        Returns
        -------
        np.ndarray
            Symmetric ``(3n, 3n)`` matrix.
        """
        coefficients = (bending_moments[0], bending_moments[1], 2.0 * bending_moments[2])
        K = np.zeros((self.dofs_count, self.dofs_count))
        for coefficient, H, h in zip(coefficients, self._H, self.hessian_vectors):
            K += coefficient * self._second_variation_curvature(H, h)
        return K
