from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from iga_shell.core.dofs import GlobalDofMap, StructuralDof
from iga_shell.core.entities import ControlPoint, Patch
from iga_shell.core.material import ShellMaterial


class IgaElement:
    _id_counter: int = 0

    def __init__(
        self,
        name: str,
        control_points: Sequence[ControlPoint],
        material: ShellMaterial,
        dofs_per_node: int,
    ):
        self.name = name
        self.control_points: List[ControlPoint] = list(control_points)
        self.material = material
        self.dofs_per_node = dofs_per_node
        self.node_count = len(self.control_points)
        self.dofs_count = self.node_count * self.dofs_per_node
        self.id = IgaElement._id_counter
        IgaElement._id_counter += 1

    @property
    def control_point_ids(self) -> List[int]:
        return [cp.id for cp in self.control_points]

    @property
    def reference_coordinates(self) -> np.ndarray:
        """Undeformed control-point positions, shape ``(n, 3)``."""
        return np.array([cp.coordinates for cp in self.control_points])

    def global_dof_indices(self, dof_map: GlobalDofMap) -> Dict[int, Tuple[Optional[int], ...]]:
        """
        Global indices of the DOFs of every control point of the element.

        Parameters
        ----------
        dof_map : GlobalDofMap
            Free-DOF numbering of the model.

        Returns
        -------
        Dict[int, Tuple[Optional[int], ...]]
            Control point id to global indices, ``None`` for constrained DOFs.
        """
        dofs = list(StructuralDof)[: self.dofs_per_node]
        return {
            cp.id: tuple(dof_map[(cp.id, dof)] if (cp.id, dof) in dof_map else None for dof in dofs)
            for cp in self.control_points
        }

    def __repr__(self):
        return f"<Element id={self.id} name={self.name}>"


class ShellElement(IgaElement):
    def __init__(
        self,
        name: str,
        control_points: Sequence[ControlPoint],
        material: ShellMaterial,
        dofs_per_node: int,
        thickness: float,
    ):
        if thickness <= 0:
            raise ValueError(f"Shell thickness must be positive: {thickness}")
        super().__init__(name, control_points, material, dofs_per_node)
        self.thickness = thickness

    def __repr__(self):
        return f"<ShellElement id={self.id} name={self.name} thickness={self.thickness}>"


class ElementFactory:
    @staticmethod
    def from_patch(
        patch: Patch, material: ShellMaterial, thickness: float, **kwargs
    ) -> List[ShellElement]:
        """One Kirchhoff-Love shell element per non-empty knot span of the patch."""
        from .KL_SHELL import NurbsKLShellNL

        return [
            NurbsKLShellNL(
                material=material,
                knot_span=span,
                control_points=patch.element_control_points(span),
                patch=patch,
                thickness=thickness,
                **kwargs,
            )
            for span in patch.knot_spans()
        ]
