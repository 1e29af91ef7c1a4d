"""Test suite for the through-thickness integration of shell sections."""

import numpy as np
import pytest

from iga_shell.core.material import IsotropicMaterial, ShellElasticMaterial2D
from iga_shell.elements.constitutive import (
    integrate_constitutive,
    integrate_stresses,
    lever_arm,
    update_materials,
)
from iga_shell.nurbs.quadrature import thickness_gauss_points

THICKNESS = 0.2
NU = 0.3
# Young's moduli of the bottom (zeta < 0), middle and top thickness points
MODULI = (1.0, 2.0, 4.0)


def unit_plane_stress(nu=NU):
    return 1.0 / (1 - nu**2) * np.array([[1.0, nu, 0.0], [nu, 1.0, 0.0], [0.0, 0.0, (1 - nu) / 2]])


@pytest.fixture
def thickness_points():
    return thickness_gauss_points(THICKNESS)


@pytest.fixture
def layered_materials():
    """One material per thickness point with a different modulus each."""
    return [
        ShellElasticMaterial2D(IsotropicMaterial(name=f"layer{k}", E=E, nu=NU))
        for k, E in enumerate(MODULI)
    ]


class TestThicknessPoints:
    def test_three_point_rule_on_the_section(self, thickness_points):
        half = THICKNESS / 2
        zeta = [tp.zeta for tp in thickness_points]
        weights = [tp.weight for tp in thickness_points]

        assert np.allclose(zeta, [-half * np.sqrt(0.6), 0.0, half * np.sqrt(0.6)])
        assert np.allclose(weights, [half * 5 / 9, half * 8 / 9, half * 5 / 9])

    def test_lever_arm_is_opposite_to_zeta(self, thickness_points):
        assert [lever_arm(tp) for tp in thickness_points] == [-tp.zeta for tp in thickness_points]


class TestIntegrateConstitutive:
    def test_section_matrices_match_hand_sums(self, layered_materials, thickness_points):
        section = integrate_constitutive(layered_materials, thickness_points)

        half = THICKNESS / 2
        w_outer, w_middle = half * 5 / 9, half * 8 / 9
        z_outer = half * np.sqrt(0.6)
        C = unit_plane_stress()
        E_bottom, E_middle, E_top = MODULI

        expected_membrane = C * (w_outer * E_bottom + w_middle * E_middle + w_outer * E_top)
        # bottom point sits at z = +z_outer, top point at z = -z_outer
        expected_coupling = C * w_outer * z_outer * (E_bottom - E_top)
        expected_bending = C * w_outer * z_outer**2 * (E_bottom + E_top)

        assert np.allclose(section.membrane, expected_membrane)
        assert np.allclose(section.coupling, expected_coupling)
        assert np.allclose(section.bending, expected_bending)
        assert np.all(np.diag(section.coupling) < 0.0)

    def test_symmetric_section_has_no_coupling(self, thickness_points):
        material = ShellElasticMaterial2D(IsotropicMaterial(name="steel", E=210e9, nu=NU))
        materials = [material.clone() for _ in thickness_points]
        section = integrate_constitutive(materials, thickness_points)

        C = material.constitutive_matrix
        assert np.allclose(section.membrane, C * THICKNESS)
        assert np.allclose(section.coupling, 0.0, atol=1e-12 * np.max(np.abs(C)))
        assert np.allclose(section.bending, C * THICKNESS**3 / 12)


class TestUpdateMaterials:
    def test_strain_at_each_point_is_membrane_plus_lever_arm_times_curvature(
        self, layered_materials, thickness_points
    ):
        e = np.array([1e-3, -4e-4, 2e-4])
        k = np.array([0.5, 0.1, -0.3])
        update_materials(layered_materials, thickness_points, e, k)

        z_outer = THICKNESS / 2 * np.sqrt(0.6)
        assert np.allclose(layered_materials[0].strains, e + z_outer * k)
        assert np.allclose(layered_materials[1].strains, e)
        assert np.allclose(layered_materials[2].strains, e - z_outer * k)


class TestIntegrateStresses:
    def test_resultants_match_hand_sums(self, layered_materials, thickness_points):
        e = np.array([2e-3, 1e-3, -5e-4])
        k = np.array([-0.2, 0.4, 0.1])
        update_materials(layered_materials, thickness_points, e, k)
        resultants = integrate_stresses(layered_materials, thickness_points)

        forces = sum(m.stresses * tp.weight for m, tp in zip(layered_materials, thickness_points))
        moments = sum(
            m.stresses * tp.weight * -tp.zeta for m, tp in zip(layered_materials, thickness_points)
        )
        assert np.allclose(resultants.membrane_forces, forces)
        assert np.allclose(resultants.bending_moments, moments)

    def test_resultants_follow_section_stiffness(self, layered_materials, thickness_points):
        e = np.array([2e-3, 1e-3, -5e-4])
        k = np.array([-0.2, 0.4, 0.1])
        update_materials(layered_materials, thickness_points, e, k)
        section = integrate_constitutive(layered_materials, thickness_points)
        resultants = integrate_stresses(layered_materials, thickness_points)

        assert np.allclose(resultants.membrane_forces, section.membrane @ e + section.coupling @ k)
        assert np.allclose(resultants.bending_moments, section.coupling @ e + section.bending @ k)
