"""
Structural degrees of freedom and the global free-DOF numbering.

Only free DOFs are numbered; constrained ``(control point, dof)`` pairs are
absent from the map, which is how element load integration recognises them.
"""

from enum import IntEnum
from typing import Dict, Iterable, Iterator, Set, Tuple

from iga_shell.core.entities import ControlPoint


class StructuralDof(IntEnum):
    """Translational DOFs carried by every shell control point."""

    TranslationX = 0
    TranslationY = 1
    TranslationZ = 2


DofKey = Tuple[int, StructuralDof]


class GlobalDofMap:
    """
    Read-only lookup ``(control_point_id, dof) -> global free index``.

    Parameters
    ----------
    mapping : Dict[Tuple[int, StructuralDof], int]
        Global indices of the free DOFs.
    """

    def __init__(self, mapping: Dict[DofKey, int]):
        self._mapping = {
            (int(cp_id), StructuralDof(dof)): int(index) for (cp_id, dof), index in mapping.items()
        }

    @classmethod
    def number(
        cls,
        control_points: Iterable[ControlPoint],
        constrained: Iterable[DofKey] = (),
    ) -> "GlobalDofMap":
        """
        Number the free DOFs consecutively in control-point order.

        Parameters
        ----------
        control_points : Iterable[ControlPoint]
            Control points of the model.
        constrained : Iterable[Tuple[int, StructuralDof]], optional
            Pairs excluded from the numbering.

        Returns
        -------
        GlobalDofMap
        """
        fixed: Set[DofKey] = {(int(cp_id), StructuralDof(dof)) for cp_id, dof in constrained}
        mapping = {}
        for cp in sorted(control_points, key=lambda c: c.id):
            for dof in StructuralDof:
                if (cp.id, dof) not in fixed:
                    mapping[(cp.id, dof)] = len(mapping)
        return cls(mapping)

    @property
    def number_of_free_dofs(self) -> int:
        return len(self._mapping)

    def is_constrained(self, control_point_id: int, dof: StructuralDof) -> bool:
        return (control_point_id, dof) not in self._mapping

    def __contains__(self, key: DofKey) -> bool:
        return key in self._mapping

    def __getitem__(self, key: DofKey) -> int:
        return self._mapping[key]

    def __iter__(self) -> Iterator[DofKey]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self):
        return f"<GlobalDofMap free_dofs={len(self._mapping)}>"
