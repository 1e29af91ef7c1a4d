"""
Through-thickness integration of shell material response.

For one Gauss point, with thickness points ``(z_k, w_k)`` and the tangent
``C_k`` and stresses ``s_k`` of the material owned by each of them::

    A  = sum_k C_k w_k            (membrane)
    Bc = sum_k C_k w_k z_k        (coupling)
    D  = sum_k C_k w_k z_k**2     (bending)
    n  = sum_k s_k w_k            (membrane forces)
    m  = sum_k s_k w_k z_k        (bending moments)

The weights already carry the ``t/2`` factor of the mapping to
``[-t/2, t/2]``, so ``n`` and ``m`` are the resultants conjugate to the
membrane strain and the curvature change.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from iga_shell.core.material import ShellMaterial
from iga_shell.nurbs.quadrature import ThicknessPoint


def lever_arm(thickness_point: ThicknessPoint) -> float:
    """Distance from the mid-surface entering ``e + z k`` for a thickness point."""
    return -thickness_point.zeta


@dataclass(frozen=True)
class SectionStiffness:
    """Membrane, coupling and bending stiffness of a section."""

    membrane: np.ndarray
    coupling: np.ndarray
    bending: np.ndarray


@dataclass(frozen=True)
class StressResultants:
    """Membrane forces and bending moments of a section."""

    membrane_forces: np.ndarray
    bending_moments: np.ndarray


def integrate_constitutive(
    materials: Sequence[ShellMaterial], thickness_points: Sequence[ThicknessPoint]
) -> SectionStiffness:
    """
    Integrate the material tangents over the thickness.

    Parameters
    ----------
    materials : Sequence[ShellMaterial]
        Materials of the thickness points, in the same order.
    thickness_points : Sequence[ThicknessPoint]
        Through-thickness points of the Gauss point.

    Returns
    -------
    SectionStiffness
    """
    membrane = np.zeros((3, 3))
    coupling = np.zeros((3, 3))
    bending = np.zeros((3, 3))
    for material, tp in zip(materials, thickness_points):
        z = lever_arm(tp)
        C = material.constitutive_matrix
        membrane += C * tp.weight
        coupling += C * tp.weight * z
        bending += C * tp.weight * z**2
    return SectionStiffness(membrane, coupling, bending)


def integrate_stresses(
    materials: Sequence[ShellMaterial], thickness_points: Sequence[ThicknessPoint]
) -> StressResultants:
    """
    Integrate the material stresses over the thickness.

    Parameters
    ----------
    materials : Sequence[ShellMaterial]
        Materials of the thickness points, in the same order.
    thickness_points : Sequence[ThicknessPoint]
        Through-thickness points of the Gauss point.

    Returns
    -------
    StressResultants
    """
    forces = np.zeros(3)
    moments = np.zeros(3)
    for material, tp in zip(materials, thickness_points):
        z = lever_arm(tp)
        forces += material.stresses * tp.weight
        moments += material.stresses * tp.weight * z
    return StressResultants(forces, moments)


def update_materials(
    materials: Sequence[ShellMaterial],
    thickness_points: Sequence[ThicknessPoint],
    membrane_strain: np.ndarray,
    bending_strain: np.ndarray,
) -> None:
    """Push ``e + z k`` into the material of every thickness point."""
    for material, tp in zip(materials, thickness_points):
        material.update_material(membrane_strain + lever_arm(tp) * bending_strain)
