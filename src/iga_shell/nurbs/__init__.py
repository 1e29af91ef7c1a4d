from .bsplines import BSplines1D, find_span
from .nurbs2d import Nurbs2D
from .quadrature import GaussPoint, ThicknessPoint, element_gauss_points, thickness_gauss_points

__all__ = [
    "BSplines1D",
    "find_span",
    "Nurbs2D",
    "GaussPoint",
    "ThicknessPoint",
    "element_gauss_points",
    "thickness_gauss_points",
]
