"""
Geometrically nonlinear NURBS Kirchhoff-Love shell element.

The element is one knot span of a NURBS patch. Its DOFs are the three
translations of every control point supporting the span; rotations never
appear because the Kirchhoff-Love hypothesis ties the director to the
surface normal, which the C1-continuous NURBS basis represents exactly.

The formulation is Total Lagrangian: strains are measured against the
reference configuration captured from the undeformed control points on the
first stiffness evaluation. Every Gauss point nests three through-thickness
points, each with its own material clone.

References
----------
- Kiendl, J. et al. (2009). Isogeometric shell analysis with Kirchhoff-Love
  elements. Computer Methods in Applied Mechanics and Engineering, 198, 3902-3914.
- Kiendl, J. et al. (2015). Isogeometric Kirchhoff-Love shell formulations for
  general hyperelastic materials. Computer Methods in Applied Mechanics and
  Engineering, 291, 280-303.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from iga_shell.core.dofs import GlobalDofMap, StructuralDof
from iga_shell.core.entities import ControlPoint, KnotSpan, Patch
from iga_shell.core.helpers import format_matrix
from iga_shell.core.material import ShellMaterial
from iga_shell.elements.constitutive import (
    integrate_constitutive,
    integrate_stresses,
    update_materials,
)
from iga_shell.elements.elements import ShellElement
from iga_shell.elements.kinematics import (
    ReferenceConfiguration,
    ShellKinematics,
    bending_strain,
    membrane_strain,
    surface_geometry,
)
from iga_shell.nurbs.nurbs2d import Nurbs2D
from iga_shell.nurbs.quadrature import (
    THICKNESS_INTEGRATION_DEGREE,
    GaussPoint,
    ThicknessPoint,
    element_gauss_points,
    thickness_gauss_points,
)

logger = logging.getLogger(__name__)

#: Corner order expected by visualisation (counter-clockwise) from the knot order of a span.
POSTPROCESSING_KNOT_RENUMBERING = (0, 3, 1, 2)


class ElementState(Enum):
    """Lifecycle of the reference configuration; the transition is one-way."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class NurbsKLShellNL(ShellElement):
    """
    Nonlinear Kirchhoff-Love shell element on one NURBS knot span.

    Parameters
    ----------
    material : ShellMaterial
        Prototype material, cloned once per through-thickness point.
    knot_span : KnotSpan
        Parametric extent of the element.
    control_points : Sequence[ControlPoint]
        The ``(p + 1)(q + 1)`` control points supporting the span.
    patch : Patch
        Patch providing degrees and knot vectors.
    thickness : float
        Shell thickness.
    thickness_integration_degree : int, optional
        Degree of the through-thickness Gauss rule, by default 2 (three
        points). Other degrees change the number of materials per Gauss
        point and depart from the three-point section rule the element is
        formulated with; ``ShellModelConfig.validate`` warns about them.

    Attributes
    ----------
    gauss_points : List[GaussPoint]
        Mid-surface points, ksi-major.
    thickness_points : List[Tuple[ThicknessPoint, ...]]
        Through-thickness points nested under each Gauss point.
    materials : List[ShellMaterial]
        One material per (Gauss point, thickness point) pair, stored flat at
        ``gauss_index * n_thickness + thickness_index``.
    state : ElementState
        Whether the reference configuration has been captured.

    Notes
    -----
    Displacements are always passed explicitly as a flat vector
    ``[u_x1, u_y1, u_z1, u_x2, ...]`` over the element control points.

    Preconditions that are not checked: positive control-point weights,
    non-degenerate geometry and non-decreasing knot vectors. Violating them
    yields NaN or infinite entries in the results.
    """

    def __init__(
        self,
        material: ShellMaterial,
        knot_span: KnotSpan,
        control_points: Sequence[ControlPoint],
        patch: Patch,
        thickness: float,
        thickness_integration_degree: int = THICKNESS_INTEGRATION_DEGREE,
    ):
        super().__init__(
            "NurbsKLShellNL",
            control_points=control_points,
            material=material,
            dofs_per_node=3,
            thickness=thickness,
        )
        self.patch = patch
        self.knot_span = knot_span

        self.gauss_points: List[GaussPoint] = element_gauss_points(
            patch.degree_ksi, patch.degree_heta, knot_span.ksi_bounds, knot_span.heta_bounds
        )
        thickness_points = tuple(thickness_gauss_points(thickness, thickness_integration_degree))
        self.thickness_points: List[Tuple[ThicknessPoint, ...]] = [
            thickness_points for _ in self.gauss_points
        ]
        self._thickness_count = len(thickness_points)
        self.materials: List[ShellMaterial] = [
            material.clone() for _ in range(len(self.gauss_points) * self._thickness_count)
        ]

        self._nurbs = Nurbs2D.at_gauss_points(patch, self.control_points, self.gauss_points)
        self.state = ElementState.UNINITIALIZED
        self.reference: Optional[ReferenceConfiguration] = None

    @property
    def knots(self):
        return self.knot_span.knots

    @property
    def nurbs(self) -> Nurbs2D:
        """Basis of the element control points at its Gauss points."""
        return self._nurbs

    @property
    def material_modified(self) -> bool:
        return False

    def materials_at(self, gauss_index: int) -> List[ShellMaterial]:
        start = gauss_index * self._thickness_count
        return self.materials[start : start + self._thickness_count]

    # =========================================================================
    # Configuration
    # =========================================================================

    def _ensure_reference(self) -> ReferenceConfiguration:
        """Capture the reference configuration once; later calls return it unchanged."""
        if self.state is ElementState.INITIALIZED:
            return self.reference

        self.reference = ReferenceConfiguration.capture(self.reference_coordinates, self._nurbs)
        for j, geometry in enumerate(self.reference.geometries):
            for material in self.materials_at(j):
                material.tangent_vector_v1 = geometry.a1
                material.tangent_vector_v2 = geometry.a2
                material.normal_vector_v3 = geometry.a3
        self.state = ElementState.INITIALIZED
        logger.debug(
            "Element %d: reference configuration captured at %d Gauss points",
            self.id,
            len(self.reference),
        )
        return self.reference

    def _check_displacements(self, displacements: Optional[np.ndarray]) -> np.ndarray:
        if displacements is None:
            return np.zeros(self.dofs_count)
        displacements = np.asarray(displacements, dtype=float).ravel()
        if displacements.shape != (self.dofs_count,):
            raise ValueError(
                f"Expected {self.dofs_count} displacement components, got {displacements.size}"
            )
        return displacements

    def current_control_points(
        self, displacements: Optional[np.ndarray] = None
    ) -> List[ControlPoint]:
        """Temporary displaced copies of the control points."""
        u = self._check_displacements(displacements).reshape(-1, 3)
        return [cp.displaced(du) for cp, du in zip(self.control_points, u)]

    def current_coordinates(self, displacements: Optional[np.ndarray] = None) -> np.ndarray:
        return np.array([cp.coordinates for cp in self.current_control_points(displacements)])

    # =========================================================================
    # Stiffness, forces and stresses
    # =========================================================================

    def stiffness_matrix(self, displacements: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Tangent stiffness matrix at a trial configuration.

        Material and geometric parts are integrated over the reference
        surface::

            K = sum_j [Bm^T A Bm + Bm^T Bc Bb + Bb^T Bc Bm + Bb^T D Bb
                       + Km_NL(n) + Kb_NL(m)] J0_j w_j

        Parameters
        ----------
        displacements : np.ndarray, optional
            Element displacement vector (3n,), zero if omitted.

        Returns
        -------
        np.ndarray
            Symmetric ``(3n, 3n)`` matrix.
        """
        reference = self._ensure_reference()
        x = self.current_coordinates(displacements)
        nurbs = self._nurbs

        K = np.zeros((self.dofs_count, self.dofs_count))
        for j, gp in enumerate(self.gauss_points):
            kinematics = ShellKinematics(surface_geometry(x, nurbs, j), nurbs, j)
            Bm = kinematics.membrane_b_matrix()
            Bb = kinematics.bending_b_matrix()

            materials = self.materials_at(j)
            section = integrate_constitutive(materials, self.thickness_points[j])
            resultants = integrate_stresses(materials, self.thickness_points[j])

            K_material = (
                Bm.T @ section.membrane @ Bm
                + Bm.T @ section.coupling @ Bb
                + Bb.T @ section.coupling @ Bm
                + Bb.T @ section.bending @ Bb
            )
            K_geometric = kinematics.membrane_geometric_stiffness(
                resultants.membrane_forces
            ) + kinematics.bending_geometric_stiffness(resultants.bending_moments)
            K += (K_material + K_geometric) * reference.jacobian(j) * gp.weight

        logger.debug("Element %d: stiffness norm %.6e", self.id, np.linalg.norm(K))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Element %d stiffness:\n%s", self.id, format_matrix(K))
        return K

    @property
    def K(self) -> np.ndarray:
        """Stiffness matrix at the undeformed configuration."""
        return self.stiffness_matrix()

    def calculate_forces(self, displacements: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Internal force vector ``sum_j (Bm^T n + Bb^T m) J0_j w_j``.

        The resultants come from the current material state, so the trial
        strains must have been pushed with ``calculate_stresses`` for the
        same displacements beforehand.

        Parameters
        ----------
        displacements : np.ndarray, optional
            Element displacement vector (3n,), zero if omitted.

        Returns
        -------
        np.ndarray
            Force vector (3n,).
        """
        reference = self._ensure_reference()
        x = self.current_coordinates(displacements)
        nurbs = self._nurbs

        forces = np.zeros(self.dofs_count)
        for j, gp in enumerate(self.gauss_points):
            kinematics = ShellKinematics(surface_geometry(x, nurbs, j), nurbs, j)
            resultants = integrate_stresses(self.materials_at(j), self.thickness_points[j])
            forces += (
                kinematics.membrane_b_matrix().T @ resultants.membrane_forces
                + kinematics.bending_b_matrix().T @ resultants.bending_moments
            ) * (reference.jacobian(j) * gp.weight)

        logger.debug("Element %d: internal force norm %.6e", self.id, np.linalg.norm(forces))
        return forces

    def calculate_strains(
        self, displacements: Optional[np.ndarray] = None
    ) -> List[Tuple[np.ndarray, np.ndarray]]:
        """Membrane strain and curvature change at every Gauss point."""
        reference = self._ensure_reference()
        x = self.current_coordinates(displacements)
        strains = []
        for j in range(len(self.gauss_points)):
            current = surface_geometry(x, self._nurbs, j)
            strains.append(
                (membrane_strain(current, reference[j]), bending_strain(current, reference[j]))
            )
        return strains

    def calculate_stresses(
        self, displacements: Optional[np.ndarray] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Push the trial strains into every thickness-point material.

        Returns
        -------
        tuple of np.ndarray
            Two empty arrays: strains and stresses are not reported by this
            element. Use ``calculate_strains`` or the materials directly.
        """
        for j, (e, k) in enumerate(self.calculate_strains(displacements)):
            update_materials(self.materials_at(j), self.thickness_points[j], e, k)
        return np.empty(0), np.empty(0)

    # =========================================================================
    # Loads
    # =========================================================================

    def calculate_surface_distributed_load(
        self, dof: StructuralDof, magnitude: float, dof_map: GlobalDofMap
    ) -> Dict[int, float]:
        """
        Equivalent nodal loads of a uniform load per unit reference area.

        Parameters
        ----------
        dof : StructuralDof
            Direction of the load.
        magnitude : float
            Load per unit area.
        dof_map : GlobalDofMap
            Free-DOF numbering; constrained DOFs receive no load.

        Returns
        -------
        Dict[int, float]
            Global DOF index to load value.
        """
        dof = StructuralDof(dof)
        x = self.reference_coordinates
        loads: Dict[int, float] = {}
        for j, gp in enumerate(self.gauss_points):
            scale = magnitude * surface_geometry(x, self._nurbs, j).J * gp.weight
            for r, cp in enumerate(self.control_points):
                if (cp.id, dof) not in dof_map:
                    continue
                index = dof_map[(cp.id, dof)]
                loads[index] = loads.get(index, 0.0) + self._nurbs.values[r, j] * scale
        return loads

    def calculate_surface_pressure(
        self,
        magnitude: float,
        dof_map: GlobalDofMap,
        displacements: Optional[np.ndarray] = None,
    ) -> Dict[int, float]:
        """
        Equivalent nodal loads of a pressure acting along the surface normal.

        Parameters
        ----------
        magnitude : float
            Pressure, positive along ``a3``.
        dof_map : GlobalDofMap
            Free-DOF numbering; constrained DOFs receive no load.
        displacements : np.ndarray, optional
            Configuration whose normal and area the pressure follows,
            the reference configuration if omitted.

        Returns
        -------
        Dict[int, float]
            Global DOF index to load value.
        """
        x = self.current_coordinates(displacements)
        loads: Dict[int, float] = {}
        for j, gp in enumerate(self.gauss_points):
            geometry = surface_geometry(x, self._nurbs, j)
            traction = magnitude * geometry.a3 * geometry.J * gp.weight
            for r, cp in enumerate(self.control_points):
                for dof in StructuralDof:
                    if (cp.id, dof) not in dof_map:
                        continue
                    index = dof_map[(cp.id, dof)]
                    loads[index] = (
                        loads.get(index, 0.0) + self._nurbs.values[r, j] * traction[dof.value]
                    )
        return loads

    # =========================================================================
    # Post-processing and bookkeeping
    # =========================================================================

    def calculate_displacements_for_postprocessing(self, displacements: np.ndarray) -> np.ndarray:
        """
        Displacements at the four corner knots of the element.

        Parameters
        ----------
        displacements : np.ndarray
            Element displacement vector (3n,) or array (n, 3).

        Returns
        -------
        np.ndarray
            ``(4, 3)`` array in counter-clockwise corner order.
        """
        u = self._check_displacements(displacements).reshape(-1, 3)
        corners = Nurbs2D.at_knots(self.patch, self.control_points, self.knots)
        interpolated = corners.interpolate(u)
        knot_displacements = np.zeros((4, 3))
        for j, slot in enumerate(POSTPROCESSING_KNOT_RENUMBERING):
            knot_displacements[slot] = interpolated[j]
        return knot_displacements

    def get_element_dof_types(self) -> List[List[StructuralDof]]:
        return [list(StructuralDof) for _ in self.control_points]

    def save_material_state(self) -> None:
        """Commit the trial state of every material as converged."""
        for material in self.materials:
            material.save_state()

    def clear_material_state(self) -> None:
        for material in self.materials:
            material.clear_state()

    # =========================================================================
    # Unsupported operations
    # =========================================================================

    def mass_matrix(self) -> np.ndarray:
        raise NotImplementedError("Mass matrix is not supported by NurbsKLShellNL")

    @property
    def M(self) -> np.ndarray:
        return self.mass_matrix()

    def damping_matrix(self) -> np.ndarray:
        raise NotImplementedError("Damping matrix is not supported by NurbsKLShellNL")

    def calculate_acceleration_forces(self, loads) -> np.ndarray:
        raise NotImplementedError("Acceleration forces are not supported by NurbsKLShellNL")

    def calculate_forces_for_logging(self, displacements: np.ndarray) -> np.ndarray:
        raise NotImplementedError("Forces for logging are not supported by NurbsKLShellNL")

    def calculate_edge_loading_condition(self, edge, condition) -> Dict[int, float]:
        raise NotImplementedError("Edge loading conditions are not supported by NurbsKLShellNL")

    def calculate_face_loading_condition(self, face, condition) -> Dict[int, float]:
        raise NotImplementedError("Face loading conditions are not supported by NurbsKLShellNL")

    def clear_material_stresses(self) -> None:
        raise NotImplementedError("Clearing material stresses is not supported by NurbsKLShellNL")

    def reset_material_modified(self) -> None:
        raise NotImplementedError(
            "Resetting material modification is not supported by NurbsKLShellNL"
        )

    def __repr__(self):
        return (
            f"<NurbsKLShellNL id={self.id} span={self.knot_span.id} "
            f"control_points={self.node_count} state={self.state.value}>"
        )
