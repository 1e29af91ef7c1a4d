"""
Core module for iga-shell.

Provides patch geometry, degrees of freedom, materials, and configuration.
"""

from .config import ShellModelConfig
from .dofs import GlobalDofMap, StructuralDof
from .entities import ControlPoint, Knot, KnotSpan, Patch
from .material import IsotropicMaterial, ShellElasticMaterial2D, ShellMaterial

__all__ = [
    "ShellModelConfig",
    "GlobalDofMap",
    "StructuralDof",
    "ControlPoint",
    "Knot",
    "KnotSpan",
    "Patch",
    "IsotropicMaterial",
    "ShellElasticMaterial2D",
    "ShellMaterial",
]
