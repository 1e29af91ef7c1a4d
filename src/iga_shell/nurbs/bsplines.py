"""
B-spline basis functions along one parametric axis.

The basis is evaluated with the triangular Cox-de Boor recursion. Derivatives
use the differentiated form of the same recursion:

    N'_{i,p}  = p / (U_{i+p} - U_i) N_{i,p-1} - p / (U_{i+p+1} - U_{i+1}) N_{i+1,p-1}
    N''_{i,p} = p / (U_{i+p} - U_i) N'_{i,p-1} - p / (U_{i+p+1} - U_{i+1}) N'_{i+1,p-1}

Every quotient whose denominator vanishes (repeated knots) is taken as zero,
so a 0/0 at a span boundary never produces NaN.

References
----------
- Piegl, L. and Tiller, W. (1997). The NURBS Book, 2nd ed. Springer.
"""

from typing import Sequence, Tuple, Union

import numpy as np


def safe_divide(numerator: np.ndarray, denominator: Union[float, np.ndarray]) -> np.ndarray:
    """
    Divide element-wise, returning zero wherever the denominator is zero.

    Parameters
    ----------
    numerator : np.ndarray
        Dividend values.
    denominator : float or np.ndarray
        Divisor values, broadcastable against ``numerator``.

    Returns
    -------
    np.ndarray
        Quotient with ``x / 0 -> 0``.
    """
    numerator, denominator = np.broadcast_arrays(
        np.asarray(numerator, dtype=float), np.asarray(denominator, dtype=float)
    )
    result = np.zeros(numerator.shape)
    np.divide(numerator, denominator, out=result, where=denominator != 0.0)
    return result


def find_span(degree: int, knot_vector: np.ndarray, value: float) -> int:
    """
    Index of the knot span containing a parametric value.

    The last knot closes the final non-empty span, so ``value == U[-1]``
    returns the span ending at it rather than an empty trailing span.

    Parameters
    ----------
    degree : int
        Polynomial degree of the basis.
    knot_vector : np.ndarray
        Non-decreasing knot vector.
    value : float
        Parametric coordinate.

    Returns
    -------
    int
        Span index ``i`` with ``U_i <= value < U_{i+1}``.
    """
    knot_vector = np.asarray(knot_vector, dtype=float)
    n = len(knot_vector) - degree - 2
    if value >= knot_vector[n + 1]:
        return n
    if value <= knot_vector[degree]:
        return degree
    return int(np.searchsorted(knot_vector, value, side="right") - 1)


class BSplines1D:
    """
    Values, first and second derivatives of all B-spline functions of one axis.

    Parameters
    ----------
    degree : int
        Polynomial degree ``p``.
    knot_vector : Sequence[float]
        Non-decreasing knot vector of length ``n + p + 1``.
    parametric_coordinates : Sequence[float]
        Points where the basis is evaluated.

    Attributes
    ----------
    values : np.ndarray
        Basis values, shape ``(n, n_points)``.
    first_derivatives : np.ndarray
        First parametric derivatives, shape ``(n, n_points)``.
    second_derivatives : np.ndarray
        Second parametric derivatives, shape ``(n, n_points)``.

    Notes
    -----
    Row ``i`` of every table belongs to control point ``i`` along this axis,
    so the tables can be indexed directly with control-point axis indices.
    Points outside ``[U_0, U_{n+p}]`` give all-zero rows.
    """

    def __init__(
        self,
        degree: int,
        knot_vector: Sequence[float],
        parametric_coordinates: Sequence[float],
    ):
        if degree < 0:
            raise ValueError(f"Polynomial degree must be non-negative: {degree}")
        self.degree = int(degree)
        self.knot_vector = np.asarray(knot_vector, dtype=float)
        self.parametric_coordinates = np.atleast_1d(np.asarray(parametric_coordinates, dtype=float))
        self.number_of_functions = len(self.knot_vector) - self.degree - 1
        if self.number_of_functions < 1:
            raise ValueError(
                f"Knot vector of length {len(self.knot_vector)} "
                f"is too short for degree {self.degree}"
            )

        tables = self._value_tables()
        self.values = tables[self.degree]
        if self.degree >= 1:
            self.first_derivatives = self._differentiate(tables[self.degree - 1], self.degree)
        else:
            self.first_derivatives = np.zeros_like(self.values)
        if self.degree >= 2:
            lower_derivatives = self._differentiate(tables[self.degree - 2], self.degree - 1)
            self.second_derivatives = self._differentiate(lower_derivatives, self.degree)
        else:
            self.second_derivatives = np.zeros_like(self.values)

    @property
    def number_of_points(self) -> int:
        return len(self.parametric_coordinates)

    def _degree_zero(self) -> np.ndarray:
        U = self.knot_vector
        u = self.parametric_coordinates
        table = ((u[None, :] >= U[:-1, None]) & (u[None, :] < U[1:, None])).astype(float)

        # Closed right end: the last non-empty span owns u == U[-1]
        non_empty = np.nonzero(U[:-1] < U[1:])[0]
        if len(non_empty):
            last = non_empty[-1]
            at_end = u == U[-1]
            table[:, at_end] = 0.0
            table[last, at_end] = 1.0
        return table

    def _value_tables(self) -> list:
        """Cox-de Boor tables for degrees ``0..p``; table ``d`` has ``len(U) - d - 1`` rows."""
        U = self.knot_vector
        u = self.parametric_coordinates
        tables = [self._degree_zero()]
        for d in range(1, self.degree + 1):
            lower = tables[-1]
            count = len(U) - d - 1
            i = np.arange(count)
            left = safe_divide(
                (u[None, :] - U[i, None]) * lower[i], (U[i + d] - U[i])[:, None]
            )
            right = safe_divide(
                (U[i + d + 1, None] - u[None, :]) * lower[i + 1], (U[i + d + 1] - U[i + 1])[:, None]
            )
            tables.append(left + right)
        return tables

    def _differentiate(self, lower: np.ndarray, degree: int) -> np.ndarray:
        """Apply the derivative recursion to a degree ``degree - 1`` table."""
        U = self.knot_vector
        count = len(U) - degree - 1
        i = np.arange(count)
        left = safe_divide(lower[i], (U[i + degree] - U[i])[:, None])
        right = safe_divide(lower[i + 1], (U[i + degree + 1] - U[i + 1])[:, None])
        return degree * (left - right)

    def span(self, value: float) -> int:
        """Knot span index containing ``value``."""
        return find_span(self.degree, self.knot_vector, value)

    def support(self, span: int) -> np.ndarray:
        """Indices of the ``p + 1`` functions that are non-zero on a knot span."""
        return np.arange(span - self.degree, span + 1)

    def local(self, indices: Sequence[int]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Restrict the tables to a subset of functions.

        Parameters
        ----------
        indices : Sequence[int]
            Function (control-point axis) indices, repeats allowed.

        Returns
        -------
        tuple of np.ndarray
            Values, first and second derivatives, each ``(len(indices), n_points)``.
        """
        indices = np.asarray(indices, dtype=int)
        return (
            self.values[indices],
            self.first_derivatives[indices],
            self.second_derivatives[indices],
        )

    def __repr__(self):
        return (
            f"<BSplines1D degree={self.degree} functions={self.number_of_functions} "
            f"points={self.number_of_points}>"
        )
