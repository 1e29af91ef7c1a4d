"""
Shell Model Configuration Module.

This module provides a YAML-based configuration for NURBS Kirchhoff-Love
shell models, so a patch, its material and its section can be described
without writing Python code.

Example YAML configuration:
    material:
      type: "isotropic"
      name: "steel"
      E: 210.0e9
      nu: 0.3
      rho: 7850.0

    shell:
      thickness: 0.01
      thickness_integration_degree: 2

    patch:
      degree_ksi: 1
      degree_heta: 1
      knot_vector_ksi: [0.0, 0.0, 1.0, 1.0]
      knot_vector_heta: [0.0, 0.0, 1.0, 1.0]
      control_points:
        - [0.0, 0.0, 0.0, 1.0]
        - [0.0, 1.0, 0.0, 1.0]
        - [1.0, 0.0, 0.0, 1.0]
        - [1.0, 1.0, 0.0, 1.0]

Control points are listed ksi-major as ``[x, y, z, weight]`` rows; row ``k``
becomes the control point with id ``k``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from iga_shell.core.entities import ControlPoint, Patch
from iga_shell.core.material import IsotropicMaterial, ShellElasticMaterial2D
from iga_shell.nurbs.quadrature import THICKNESS_INTEGRATION_DEGREE

logger = logging.getLogger(__name__)


class MaterialType(str, Enum):
    """Type of material model."""

    ISOTROPIC = "isotropic"


# =============================================================================
# Configuration Data Classes
# =============================================================================


@dataclass
class MaterialConfig:
    """Configuration for an isotropic shell material."""

    type: str = MaterialType.ISOTROPIC.value
    name: str = "Material"
    E: float = None
    nu: float = None
    rho: float = 0.0

    def __post_init__(self):
        if self.type != MaterialType.ISOTROPIC.value:
            raise ValueError(f"Invalid material type: {self.type}")
        if self.E is None or self.E <= 0:
            raise ValueError(f"Young's modulus must be positive: {self.E}")
        if self.nu is None or not -1 < self.nu < 0.5:
            raise ValueError(f"Poisson's ratio must be in (-1, 0.5): {self.nu}")
        if self.rho < 0:
            raise ValueError(f"Density must be non-negative: {self.rho}")


@dataclass
class ShellConfig:
    """Configuration of the shell section."""

    thickness: float = None
    thickness_integration_degree: int = THICKNESS_INTEGRATION_DEGREE

    def __post_init__(self):
        if self.thickness is None or self.thickness <= 0:
            raise ValueError(f"Shell thickness must be positive: {self.thickness}")
        if self.thickness_integration_degree < 0:
            raise ValueError(
                "Thickness integration degree must be non-negative: "
                f"{self.thickness_integration_degree}"
            )


@dataclass
class PatchConfig:
    """Configuration of a single NURBS patch."""

    degree_ksi: int
    degree_heta: int
    knot_vector_ksi: List[float]
    knot_vector_heta: List[float]
    control_points: List[List[float]] = field(default_factory=list)

    def __post_init__(self):
        for name, knots in (
            ("knot_vector_ksi", self.knot_vector_ksi),
            ("knot_vector_heta", self.knot_vector_heta),
        ):
            if any(b < a for a, b in zip(knots, knots[1:])):
                raise ValueError(f"{name} must be non-decreasing: {knots}")

        n_ksi = len(self.knot_vector_ksi) - self.degree_ksi - 1
        n_heta = len(self.knot_vector_heta) - self.degree_heta - 1
        if n_ksi < 1 or n_heta < 1:
            raise ValueError("Knot vectors are too short for the patch degrees")
        if len(self.control_points) != n_ksi * n_heta:
            raise ValueError(
                f"Patch needs {n_ksi} x {n_heta} = {n_ksi * n_heta} control points, "
                f"got {len(self.control_points)}"
            )
        for row in self.control_points:
            if len(row) not in (3, 4):
                raise ValueError(f"Control point rows must be [x, y, z] or [x, y, z, w]: {row}")
            if len(row) == 4 and row[3] <= 0:
                raise ValueError(f"Control point weight must be positive: {row}")


# =============================================================================
# Main Configuration Class
# =============================================================================


@dataclass
class ShellModelConfig:
    """Complete configuration of a NURBS shell model."""

    material: MaterialConfig
    shell: ShellConfig
    patch: PatchConfig

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "ShellModelConfig":
        """Load configuration from YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        ShellModelConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ValueError
            If the configuration is invalid.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)

        config = cls.from_dict(data or {})
        logger.info("Loaded shell model configuration from %s", yaml_path)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellModelConfig":
        """Create configuration from dictionary.

        Parameters
        ----------
        data : dict
            Configuration dictionary.

        Returns
        -------
        ShellModelConfig
            Validated configuration object.
        """
        for section in ("material", "shell", "patch"):
            if section not in data:
                raise ValueError(f"Missing configuration section: {section}")

        mat_data = data["material"]
        material_config = MaterialConfig(
            type=mat_data.get("type", MaterialType.ISOTROPIC.value),
            name=mat_data.get("name", "Material"),
            E=mat_data.get("E"),
            nu=mat_data.get("nu"),
            rho=mat_data.get("rho", 0.0),
        )

        shell_data = data["shell"]
        shell_config = ShellConfig(
            thickness=shell_data.get("thickness"),
            thickness_integration_degree=shell_data.get(
                "thickness_integration_degree", THICKNESS_INTEGRATION_DEGREE
            ),
        )

        patch_data = data["patch"]
        for key in ("degree_ksi", "degree_heta", "knot_vector_ksi", "knot_vector_heta"):
            if key not in patch_data:
                raise ValueError(f"Missing patch parameter: {key}")
        rows = patch_data.get("control_points", [])
        patch_config = PatchConfig(
            degree_ksi=patch_data["degree_ksi"],
            degree_heta=patch_data["degree_heta"],
            knot_vector_ksi=[float(k) for k in patch_data["knot_vector_ksi"]],
            knot_vector_heta=[float(k) for k in patch_data["knot_vector_heta"]],
            control_points=[[float(v) for v in row] for row in rows],
        )

        return cls(material=material_config, shell=shell_config, patch=patch_config)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns
        -------
        dict
            Configuration as dictionary.
        """
        return {
            "material": {
                "type": self.material.type,
                "name": self.material.name,
                "E": self.material.E,
                "nu": self.material.nu,
                "rho": self.material.rho,
            },
            "shell": {
                "thickness": self.shell.thickness,
                "thickness_integration_degree": self.shell.thickness_integration_degree,
            },
            "patch": {
                "degree_ksi": self.patch.degree_ksi,
                "degree_heta": self.patch.degree_heta,
                "knot_vector_ksi": list(self.patch.knot_vector_ksi),
                "knot_vector_heta": list(self.patch.knot_vector_heta),
                "control_points": [list(row) for row in self.patch.control_points],
            },
        }

    def save_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the output YAML file.
        """
        with open(yaml_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate the complete configuration.

        Returns
        -------
        list of str
            List of validation warnings (empty if all OK).
        """
        warnings = []

        if self.shell.thickness_integration_degree != THICKNESS_INTEGRATION_DEGREE:
            warnings.append(
                "Thickness integration degree "
                f"{self.shell.thickness_integration_degree} differs from the default "
                f"{THICKNESS_INTEGRATION_DEGREE}"
            )
        if self.patch.degree_ksi < 2 or self.patch.degree_heta < 2:
            warnings.append(
                "Patch degree below 2 gives only C0 continuity across elements; "
                "bending is captured inside elements only"
            )

        for warning in warnings:
            logger.warning(warning)
        return warnings

    # =========================================================================
    # Builders
    # =========================================================================

    def build_material(self) -> ShellElasticMaterial2D:
        """Prototype shell material, cloned by every element integration point."""
        return ShellElasticMaterial2D(
            IsotropicMaterial(
                name=self.material.name,
                E=self.material.E,
                nu=self.material.nu,
                rho=self.material.rho,
            )
        )

    def build_patch(self) -> Patch:
        control_points = []
        for cp_id, row in enumerate(self.patch.control_points):
            weight = row[3] if len(row) == 4 else 1.0
            control_points.append(ControlPoint(cp_id, row[0], row[1], row[2], weight))
        return Patch(
            self.patch.degree_ksi,
            self.patch.degree_heta,
            self.patch.knot_vector_ksi,
            self.patch.knot_vector_heta,
            control_points,
        )

    def build_elements(self) -> list:
        """Shell elements of every non-empty knot span of the patch."""
        from iga_shell.elements.elements import ElementFactory

        elements = ElementFactory.from_patch(
            self.build_patch(),
            self.build_material(),
            self.shell.thickness,
            thickness_integration_degree=self.shell.thickness_integration_degree,
        )
        logger.info("Built %d shell elements", len(elements))
        return elements

    def __str__(self) -> str:
        """Human-readable string representation."""
        n_ksi = len(self.patch.knot_vector_ksi) - self.patch.degree_ksi - 1
        n_heta = len(self.patch.knot_vector_heta) - self.patch.degree_heta - 1
        lines = [
            "Shell Model Configuration",
            "=" * 40,
            f"Material: {self.material.type} ({self.material.name})",
            f"  E={self.material.E}, nu={self.material.nu}, rho={self.material.rho}",
            f"Shell: t={self.shell.thickness} "
            f"(thickness degree {self.shell.thickness_integration_degree})",
            f"Patch: degrees ({self.patch.degree_ksi}, {self.patch.degree_heta}), "
            f"{n_ksi} x {n_heta} control points",
        ]
        return "\n".join(lines)
