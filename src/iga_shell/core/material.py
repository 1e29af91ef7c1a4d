"""
Materials for Kirchhoff-Love shells.

``IsotropicMaterial`` holds the elastic constants. ``ShellMaterial`` is the
contract an element relies on at each through-thickness integration point:
it consumes a Voigt strain ``(E11, E22, 2 E12)`` and exposes the resulting
stresses and tangent modulus. Every integration point owns its own clone
because the state it carries is point-local.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class IsotropicMaterial:
    """
    Class representing an isotropic material with uniform properties in all directions.

    Parameters
    ----------
    name : str
        The name of the material.
    E : float
        Young's Modulus of the material.
    nu : float
        Poisson's ratio of the material.
    rho : float
        Density of the material.
    """

    name: str
    E: float
    nu: float
    rho: float = 0.0

    @property
    def shear_modulus(self) -> float:
        return self.E / (2.0 * (1.0 + self.nu))


class ShellMaterial(ABC):
    """
    Strain-driven material law of a shell integration point.

    Subclasses implement ``update_material``; the frame vectors are set by
    the element from its reference configuration before the first update.
    """

    def __init__(self):
        self._tangent_vector_v1: Optional[np.ndarray] = None
        self._tangent_vector_v2: Optional[np.ndarray] = None
        self._normal_vector_v3: Optional[np.ndarray] = None

    def _frame_changed(self) -> None:
        """Hook for subclasses caching quantities derived from the frame vectors."""

    @property
    def tangent_vector_v1(self) -> Optional[np.ndarray]:
        return self._tangent_vector_v1

    @tangent_vector_v1.setter
    def tangent_vector_v1(self, value) -> None:
        self._tangent_vector_v1 = None if value is None else np.array(value, dtype=float)
        self._frame_changed()

    @property
    def tangent_vector_v2(self) -> Optional[np.ndarray]:
        return self._tangent_vector_v2

    @tangent_vector_v2.setter
    def tangent_vector_v2(self, value) -> None:
        self._tangent_vector_v2 = None if value is None else np.array(value, dtype=float)
        self._frame_changed()

    @property
    def normal_vector_v3(self) -> Optional[np.ndarray]:
        return self._normal_vector_v3

    @normal_vector_v3.setter
    def normal_vector_v3(self, value) -> None:
        self._normal_vector_v3 = None if value is None else np.array(value, dtype=float)
        self._frame_changed()

    @abstractmethod
    def update_material(self, strain: np.ndarray) -> None:
        """Compute trial stresses and tangent for a Voigt strain vector."""

    @property
    @abstractmethod
    def constitutive_matrix(self) -> np.ndarray:
        """Tangent modulus (3x3) of the last update."""

    @property
    @abstractmethod
    def stresses(self) -> np.ndarray:
        """Stresses (3,) of the last update."""

    @abstractmethod
    def save_state(self) -> None:
        """Commit the trial state as converged."""

    @abstractmethod
    def clear_state(self) -> None:
        """Discard all state."""

    def clone(self) -> "ShellMaterial":
        return copy.deepcopy(self)

    @property
    def modified(self) -> bool:
        return False


class ShellElasticMaterial2D(ShellMaterial):
    """
    St. Venant-Kirchhoff plane-stress law in curvilinear coordinates.

    With reference tangent vectors ``v1, v2`` the contravariant metric is
    ``A^{ab} = inv(v_a . v_b)`` and, in Voigt form for ``(E11, E22, 2 E12)``::

        C^{abcd} = mu (A^{ac} A^{bd} + A^{ad} A^{bc}) + lambda_bar A^{ab} A^{cd}
        lambda_bar = 2 mu nu / (1 - nu)

    Without tangent vectors it reduces to the Cartesian plane-stress matrix.

    Parameters
    ----------
    material : IsotropicMaterial
        Elastic constants.
    """

    def __init__(self, material: IsotropicMaterial):
        super().__init__()
        self.material = material
        self._strains = np.zeros(3)
        self._stresses = np.zeros(3)
        self._saved_strains = np.zeros(3)
        self._saved_stresses = np.zeros(3)
        self._constitutive_matrix: Optional[np.ndarray] = None

    @property
    def young_modulus(self) -> float:
        return self.material.E

    @property
    def poisson_ratio(self) -> float:
        return self.material.nu

    def _frame_changed(self) -> None:
        self._constitutive_matrix = None

    def _contravariant_metric(self) -> np.ndarray:
        if self.tangent_vector_v1 is None or self.tangent_vector_v2 is None:
            return np.eye(2)
        v1 = np.asarray(self.tangent_vector_v1, dtype=float)
        v2 = np.asarray(self.tangent_vector_v2, dtype=float)
        metric = np.array([[v1 @ v1, v1 @ v2], [v2 @ v1, v2 @ v2]])
        return np.linalg.inv(metric)

    def _build_constitutive_matrix(self) -> np.ndarray:
        E, nu = self.young_modulus, self.poisson_ratio
        mu = E / (2.0 * (1.0 + nu))
        lambda_bar = 2.0 * mu * nu / (1.0 - nu)
        G = self._contravariant_metric()

        def c(a, b, c_, d):
            return mu * (G[a, c_] * G[b, d] + G[a, d] * G[b, c_]) + lambda_bar * G[a, b] * G[c_, d]

        # C^{ab12} E_12 + C^{ab21} E_21 = C^{ab12} (2 E_12), so no shear factor
        voigt = [(0, 0), (1, 1), (0, 1)]
        return np.array([[c(*voigt[i], *voigt[j]) for j in range(3)] for i in range(3)])

    @property
    def constitutive_matrix(self) -> np.ndarray:
        if self._constitutive_matrix is None:
            self._constitutive_matrix = self._build_constitutive_matrix()
        return self._constitutive_matrix

    @property
    def stresses(self) -> np.ndarray:
        return self._stresses

    @property
    def strains(self) -> np.ndarray:
        return self._strains

    def update_material(self, strain: np.ndarray) -> None:
        strain = np.asarray(strain, dtype=float)
        if strain.shape != (3,):
            raise ValueError(f"Expected a 3-component strain vector, got shape {strain.shape}")
        self._strains = strain.copy()
        self._stresses = self.constitutive_matrix @ strain

    def save_state(self) -> None:
        self._saved_strains = self._strains.copy()
        self._saved_stresses = self._stresses.copy()

    def clear_state(self) -> None:
        self._strains = np.zeros(3)
        self._stresses = np.zeros(3)
        self._saved_strains = np.zeros(3)
        self._saved_stresses = np.zeros(3)

    @property
    def saved_stresses(self) -> np.ndarray:
        return self._saved_stresses

    def clone(self) -> "ShellElasticMaterial2D":
        cloned = ShellElasticMaterial2D(self.material)
        cloned.tangent_vector_v1 = self.tangent_vector_v1
        cloned.tangent_vector_v2 = self.tangent_vector_v2
        cloned.normal_vector_v3 = self.normal_vector_v3
        return cloned

    def __repr__(self):
        return f"<ShellElasticMaterial2D E={self.young_modulus} nu={self.poisson_ratio}>"
