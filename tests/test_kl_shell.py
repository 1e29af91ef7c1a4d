"""Test suite for the nonlinear NURBS Kirchhoff-Love shell element."""

import numpy as np
import pytest

from iga_shell.core.dofs import GlobalDofMap, StructuralDof
from iga_shell.core.entities import ControlPoint, Patch
from iga_shell.core.material import IsotropicMaterial, ShellElasticMaterial2D, ShellMaterial
from iga_shell.elements import ElementFactory, ElementState, NurbsKLShellNL
from iga_shell.elements.constitutive import integrate_constitutive
from iga_shell.elements.kinematics import ShellKinematics, surface_geometry

E = 1.0e4
NU = 0.3
THICKNESS = 0.1


def check_stiffness_matrix(K, expected_size, tol=1e-8):
    """
    Verify shape and symmetry of an element stiffness matrix.

    Parameters
    ----------
    K : np.ndarray
        Stiffness matrix to check.
    expected_size : int
        Expected matrix size (n_dofs x n_dofs).
    tol : float, optional
        Relative tolerance for the symmetry check.
    """
    assert K.shape == (expected_size, expected_size), (
        f"Expected size {expected_size}x{expected_size}, got {K.shape}"
    )
    assert not np.any(np.isnan(K))
    scale = np.max(np.abs(K))
    assert np.allclose(K, K.T, atol=tol * scale), (
        f"Matrix not symmetric. Max asymmetry: {np.max(np.abs(K - K.T))}"
    )


class StiffeningMaterial(ShellMaterial):
    """
    Hyperelastic law stiffening in the first strain direction.

    Strain energy ``1/2 e.C0.e + alpha/3 e[0]**3``, so the tangent
    ``C0 + 2 alpha e[0] e_1 (x) e_1`` varies through the thickness of a bent
    section and the coupling stiffness does not vanish.
    """

    def __init__(self, C0, alpha):
        super().__init__()
        self.C0 = np.asarray(C0, dtype=float)
        self.alpha = alpha
        self._strains = np.zeros(3)

    def update_material(self, strain):
        self._strains = np.asarray(strain, dtype=float).copy()

    @property
    def constitutive_matrix(self):
        C = self.C0.copy()
        C[0, 0] += 2.0 * self.alpha * self._strains[0]
        return C

    @property
    def stresses(self):
        stresses = self.C0 @ self._strains
        stresses[0] += self.alpha * self._strains[0] ** 2
        return stresses

    def save_state(self):
        pass

    def clear_state(self):
        self._strains = np.zeros(3)


@pytest.fixture
def shell_material():
    return ShellElasticMaterial2D(IsotropicMaterial(name="test", E=E, nu=NU))


@pytest.fixture
def unit_square_patch():
    """
    Bilinear single-element unit square.

    Control point ids (ksi-major):
        1 --------- 3
        |           |
        0 --------- 2
    """
    control_points = [
        ControlPoint(0, 0.0, 0.0, 0.0),
        ControlPoint(1, 0.0, 1.0, 0.0),
        ControlPoint(2, 1.0, 0.0, 0.0),
        ControlPoint(3, 1.0, 1.0, 0.0),
    ]
    return Patch(1, 1, [0, 0, 1, 1], [0, 0, 1, 1], control_points)


@pytest.fixture
def curved_patch():
    """Biquadratic single-element doubly curved patch with a non-unit weight."""
    grid = [0.0, 0.5, 1.0]
    control_points = []
    for i, x in enumerate(grid):
        for j, y in enumerate(grid):
            z = 0.25 * x * (1.0 - x) - 0.15 * y * (1.0 - y) + 0.05 * x * y
            weight = 0.8 if (i, j) == (1, 1) else 1.0
            control_points.append(ControlPoint(i * 3 + j, x, y, z, weight))
    knots = [0, 0, 0, 1, 1, 1]
    return Patch(2, 2, knots, knots, control_points)


def single_element(patch, material, thickness=THICKNESS):
    elements = ElementFactory.from_patch(patch, material, thickness)
    assert len(elements) == 1
    return elements[0]


@pytest.fixture
def square_element(unit_square_patch, shell_material):
    return single_element(unit_square_patch, shell_material)


@pytest.fixture
def curved_element(curved_patch, shell_material):
    return single_element(curved_patch, shell_material, thickness=0.05)


@pytest.fixture
def trial_displacements():
    rng = np.random.default_rng(7)
    return 0.05 * rng.standard_normal(27)


def flat_square_stiffness(E, nu, t):
    """
    Closed-form stiffness of the bilinear unit-square plate.

    Membrane part: ``t * integral(B^T C B)`` with bilinear shape functions.
    Bending part: only the twist ``2 w,xy`` survives for a bilinear
    deflection, giving ``4 G t^3 / 12 * s s^T`` with ``s_r = +-1``.
    """
    xy = np.array([[0, 0], [0, 1], [1, 0], [1, 1]])
    sx = 2 * xy[:, 0] - 1
    sy = 2 * xy[:, 1] - 1

    def overlap(a, b):
        return 1.0 / 3.0 if a == b else 1.0 / 6.0

    Ixx = np.array(
        [[sx[r] * sx[s] * overlap(xy[r, 1], xy[s, 1]) for s in range(4)] for r in range(4)]
    )
    Iyy = np.array(
        [[sy[r] * sy[s] * overlap(xy[r, 0], xy[s, 0]) for s in range(4)] for r in range(4)]
    )
    Ixy = np.outer(sx, sy) / 4.0

    C = E / (1 - nu**2) * np.array([[1, nu, 0], [nu, 1, 0], [0, 0, (1 - nu) / 2]])
    K = np.zeros((12, 12))
    for r in range(4):
        for s in range(4):
            K[3 * r, 3 * s] = t * (C[0, 0] * Ixx[r, s] + C[2, 2] * Iyy[r, s])
            K[3 * r, 3 * s + 1] = t * (C[0, 1] * Ixy[r, s] + C[2, 2] * Ixy[s, r])
            K[3 * r + 1, 3 * s] = t * (C[0, 1] * Ixy[s, r] + C[2, 2] * Ixy[r, s])
            K[3 * r + 1, 3 * s + 1] = t * (C[1, 1] * Iyy[r, s] + C[2, 2] * Ixx[r, s])
            K[3 * r + 2, 3 * s + 2] = 4.0 * C[2, 2] * t**3 / 12.0 * sx[r] * sy[r] * sx[s] * sy[s]
    return K


# =============================================================================
# Construction and reference configuration
# =============================================================================


class TestConstruction:
    def test_integration_layout(self, curved_element):
        assert curved_element.dofs_count == 27
        assert len(curved_element.gauss_points) == 9
        assert all(len(tps) == 3 for tps in curved_element.thickness_points)
        assert len(curved_element.materials) == 27

    def test_every_thickness_point_owns_a_material(self, curved_element, shell_material):
        materials = curved_element.materials
        assert len({id(m) for m in materials}) == len(materials)
        assert all(m is not shell_material for m in materials)

    def test_elements_from_multi_span_patch(self, shell_material):
        knots = [0, 0, 0, 0.5, 1, 1, 1]
        control_points = [
            ControlPoint(i * 4 + j, x, y, 0.0)
            for i, x in enumerate([0, 0.25, 0.75, 1])
            for j, y in enumerate([0, 0.25, 0.75, 1])
        ]
        patch = Patch(2, 2, knots, knots, control_points)
        elements = ElementFactory.from_patch(patch, shell_material, THICKNESS)

        assert len(elements) == 4
        assert all(el.node_count == 9 for el in elements)
        assert elements[0].control_point_ids == [0, 1, 2, 4, 5, 6, 8, 9, 10]
        assert elements[3].knot_span.ksi_bounds == (0.5, 1.0)

    def test_custom_thickness_integration_degree(self, curved_patch, shell_material):
        element = ElementFactory.from_patch(
            curved_patch, shell_material, THICKNESS, thickness_integration_degree=3
        )[0]

        assert all(len(tps) == 4 for tps in element.thickness_points)
        assert len(element.materials) == 9 * 4
        assert len(element.materials_at(8)) == 4
        assert np.isclose(sum(tp.weight for tp in element.thickness_points[0]), THICKNESS)

    def test_rejects_non_positive_thickness(self, unit_square_patch, shell_material):
        with pytest.raises(ValueError):
            ElementFactory.from_patch(unit_square_patch, shell_material, 0.0)

    def test_rejects_wrong_displacement_size(self, square_element):
        with pytest.raises(ValueError):
            square_element.stiffness_matrix(np.zeros(11))


class TestReferenceConfiguration:
    def test_captured_lazily_on_first_stiffness(self, curved_element):
        assert curved_element.state is ElementState.UNINITIALIZED
        assert curved_element.reference is None

        curved_element.stiffness_matrix()

        assert curved_element.state is ElementState.INITIALIZED
        assert len(curved_element.reference) == 9

    def test_capture_is_idempotent(self, curved_element, trial_displacements):
        curved_element.stiffness_matrix()
        reference = curved_element.reference
        J0 = [reference.jacobian(j) for j in range(len(reference))]

        curved_element.calculate_stresses(trial_displacements)
        curved_element.stiffness_matrix(trial_displacements)

        assert curved_element.reference is reference
        assert [curved_element.reference.jacobian(j) for j in range(9)] == J0

    def test_materials_receive_reference_frame(self, curved_element):
        curved_element.stiffness_matrix()
        geometry = curved_element.reference[4]
        for material in curved_element.materials_at(4):
            assert np.allclose(material.tangent_vector_v1, geometry.a1)
            assert np.allclose(material.tangent_vector_v2, geometry.a2)
            assert np.allclose(material.normal_vector_v3, geometry.a3)

    def test_zero_strain_at_reference(self, curved_element):
        curved_element.stiffness_matrix()
        for membrane, bending in curved_element.calculate_strains():
            assert np.allclose(membrane, 0.0, atol=1e-14)
            assert np.allclose(bending, 0.0, atol=1e-14)

    def test_rigid_translation_gives_zero_strain(self, curved_element):
        u = np.tile([0.3, -0.2, 0.7], 9)
        for membrane, bending in curved_element.calculate_strains(u):
            assert np.allclose(membrane, 0.0, atol=1e-12)
            assert np.allclose(bending, 0.0, atol=1e-12)


# =============================================================================
# Stiffness and forces
# =============================================================================


class TestStiffness:
    def test_flat_square_matches_closed_form(self, square_element):
        K = square_element.stiffness_matrix()
        expected = flat_square_stiffness(E, NU, THICKNESS)

        check_stiffness_matrix(K, 12)
        assert np.allclose(K, expected, rtol=1e-10, atol=1e-10 * np.max(np.abs(expected)))

    def test_flat_square_bending_block(self, square_element):
        K = square_element.K
        w = slice(2, 12, 3)
        s = np.array([1.0, -1.0, -1.0, 1.0])
        D = E * THICKNESS**3 / (12 * (1 - NU**2))

        assert np.allclose(K[w, w], 4.0 * D * (1 - NU) / 2 * np.outer(s, s))

    def test_flat_square_has_six_zero_modes(self, square_element):
        eigvals = np.linalg.eigvalsh(square_element.stiffness_matrix())
        threshold = 1e-10 * np.max(np.abs(eigvals))
        # 3 in-plane rigid modes plus every deflection mode except the twist
        assert np.sum(np.abs(eigvals) < threshold) == 6
        assert np.all(eigvals > -threshold)

    def test_symmetric_in_deformed_configuration(self, curved_element, trial_displacements):
        curved_element.calculate_stresses(trial_displacements)
        K = curved_element.stiffness_matrix(trial_displacements)
        check_stiffness_matrix(K, 27)

    def test_tangent_is_consistent_with_internal_forces(self, curved_element, trial_displacements):
        u = trial_displacements
        h = 1e-6

        def internal_forces(v):
            curved_element.calculate_stresses(v)
            return curved_element.calculate_forces(v)

        curved_element.stiffness_matrix()
        columns = []
        for k in range(27):
            step = np.zeros(27)
            step[k] = h
            columns.append((internal_forces(u + step) - internal_forces(u - step)) / (2 * h))
        numerical = np.column_stack(columns)

        curved_element.calculate_stresses(u)
        K = curved_element.stiffness_matrix(u)

        scale = np.max(np.abs(K))
        assert np.allclose(K, numerical, rtol=1e-5, atol=1e-6 * scale)

    def test_tangent_is_consistent_with_through_thickness_coupling(
        self, curved_patch, trial_displacements
    ):
        C0 = E / (1 - NU**2) * np.array([[1.0, NU, 0.0], [NU, 1.0, 0.0], [0.0, 0.0, (1 - NU) / 2]])
        element = single_element(curved_patch, StiffeningMaterial(C0, alpha=5.0 * E))
        u = trial_displacements
        h = 1e-6

        def internal_forces(v):
            element.calculate_stresses(v)
            return element.calculate_forces(v)

        element.stiffness_matrix()
        columns = []
        for k in range(27):
            step = np.zeros(27)
            step[k] = h
            columns.append((internal_forces(u + step) - internal_forces(u - step)) / (2 * h))
        numerical = np.column_stack(columns)

        element.calculate_stresses(u)
        sections = [
            integrate_constitutive(element.materials_at(j), element.thickness_points[j])
            for j in range(len(element.gauss_points))
        ]
        largest_coupling = max(np.linalg.norm(s.coupling) for s in sections)
        assert largest_coupling > 1e-4 * np.linalg.norm(sections[0].membrane)

        K = element.stiffness_matrix(u)
        check_stiffness_matrix(K, 27)
        scale = np.max(np.abs(K))
        assert np.allclose(K, numerical, rtol=1e-5, atol=1e-6 * scale)

    def test_forces_vanish_without_stress(self, curved_element, trial_displacements):
        assert np.allclose(curved_element.calculate_forces(trial_displacements), 0.0)

    def test_forces_vanish_for_rigid_translation(self, curved_element):
        u = np.tile([0.1, 0.2, -0.3], 9)
        curved_element.calculate_stresses(u)
        assert np.allclose(curved_element.calculate_forces(u), 0.0, atol=1e-10)

    def test_calculate_stresses_returns_empty_result(self, curved_element, trial_displacements):
        strains, stresses = curved_element.calculate_stresses(trial_displacements)
        assert strains.size == 0
        assert stresses.size == 0
        assert any(np.any(m.stresses != 0.0) for m in curved_element.materials)


class TestKinematics:
    def test_b_matrices_match_strain_variation(self, curved_element, trial_displacements):
        curved_element.stiffness_matrix()
        nurbs = curved_element.nurbs
        x = curved_element.current_coordinates(trial_displacements)
        kinematics = ShellKinematics(surface_geometry(x, nurbs, 2), nurbs, 2)

        h = 1e-6
        direction = np.random.default_rng(3).standard_normal(27)

        def strains(v):
            return curved_element.calculate_strains(v)[2]

        plus = strains(trial_displacements + h * direction)
        minus = strains(trial_displacements - h * direction)
        assert np.allclose(
            kinematics.membrane_b_matrix() @ direction, (plus[0] - minus[0]) / (2 * h), atol=1e-6
        )
        assert np.allclose(
            kinematics.bending_b_matrix() @ direction, (plus[1] - minus[1]) / (2 * h), atol=1e-5
        )

    def test_normal_variation_is_tangential(self, curved_element, trial_displacements):
        nurbs = curved_element.nurbs
        x = curved_element.current_coordinates(trial_displacements)
        geometry = surface_geometry(x, nurbs, 0)
        kinematics = ShellKinematics(geometry, nurbs, 0)
        assert np.allclose(kinematics.normal_variation @ geometry.a3, 0.0, atol=1e-12)

    def test_geometric_stiffness_is_symmetric(self, curved_element, trial_displacements):
        nurbs = curved_element.nurbs
        x = curved_element.current_coordinates(trial_displacements)
        kinematics = ShellKinematics(surface_geometry(x, nurbs, 5), nurbs, 5)
        Km = kinematics.membrane_geometric_stiffness(np.array([1.0, -2.0, 0.5]))
        Kb = kinematics.bending_geometric_stiffness(np.array([0.3, 0.7, -0.4]))
        assert np.allclose(Km, Km.T)
        assert np.allclose(Kb, Kb.T, atol=1e-10 * np.max(np.abs(Kb)))


# =============================================================================
# Loads
# =============================================================================


@pytest.fixture
def free_dofs(unit_square_patch):
    return GlobalDofMap.number(unit_square_patch.control_points)


class TestLoads:
    def test_pressure_resultant_equals_pressure_times_area(self, square_element, free_dofs):
        pressure = 3.5
        loads = square_element.calculate_surface_pressure(pressure, free_dofs)

        z_dofs = [free_dofs[(cp_id, StructuralDof.TranslationZ)] for cp_id in range(4)]
        assert np.isclose(sum(loads.values()), pressure * 1.0)
        assert np.allclose([loads[i] for i in z_dofs], pressure / 4.0)

    def test_pressure_follows_deformed_normal(self, square_element, free_dofs):
        # rotate the square rigidly by 90 degrees about the x axis: normal becomes -y
        u = np.zeros(12)
        for r, (x, y) in enumerate([(0, 0), (0, 1), (1, 0), (1, 1)]):
            u[3 * r + 1] = -y
            u[3 * r + 2] = y
        loads = square_element.calculate_surface_pressure(2.0, free_dofs, displacements=u)

        y_total = sum(loads[free_dofs[(r, StructuralDof.TranslationY)]] for r in range(4))
        z_total = sum(loads[free_dofs[(r, StructuralDof.TranslationZ)]] for r in range(4))
        assert np.isclose(y_total, -2.0)
        assert np.isclose(z_total, 0.0)

    def test_distributed_load_skips_constrained_dofs(self, square_element, unit_square_patch):
        dof_map = GlobalDofMap.number(
            unit_square_patch.control_points, constrained=[(0, StructuralDof.TranslationZ)]
        )
        loads = square_element.calculate_surface_distributed_load(
            StructuralDof.TranslationZ, 2.0, dof_map
        )

        assert len(loads) == 3
        assert np.isclose(sum(loads.values()), 2.0 * 0.75)

    def test_distributed_load_on_curved_surface_scales_with_area(
        self, curved_element, curved_patch
    ):
        dof_map = GlobalDofMap.number(curved_patch.control_points)
        loads = curved_element.calculate_surface_distributed_load(
            StructuralDof.TranslationX, 1.0, dof_map
        )
        area = sum(
            surface_geometry(curved_element.reference_coordinates, curved_element.nurbs, j).J
            * gp.weight
            for j, gp in enumerate(curved_element.gauss_points)
        )
        assert area > 1.0
        assert np.isclose(sum(loads.values()), area)
        assert curved_element.state is ElementState.UNINITIALIZED


# =============================================================================
# Post-processing, material state and unsupported operations
# =============================================================================


class TestPostProcessing:
    def test_uniform_displacement_at_corners(self, curved_element):
        u = np.tile([1.0, 2.0, 3.0], 9)
        corners = curved_element.calculate_displacements_for_postprocessing(u)
        assert corners.shape == (4, 3)
        assert np.allclose(corners, [1.0, 2.0, 3.0])

    def test_corner_renumbering(self, square_element):
        u = np.zeros((4, 3))
        u[3] = [0.0, 0.0, 1.0]  # control point at (ksi1, heta1)
        u[1] = [0.0, 2.0, 0.0]  # control point at (ksi0, heta1)
        corners = square_element.calculate_displacements_for_postprocessing(u)

        assert np.allclose(corners[2], [0.0, 0.0, 1.0])
        assert np.allclose(corners[3], [0.0, 2.0, 0.0])
        assert np.allclose(corners[[0, 1]], 0.0)

    def test_element_dof_types(self, square_element):
        dof_types = square_element.get_element_dof_types()
        assert len(dof_types) == 4
        assert dof_types[0] == [
            StructuralDof.TranslationX,
            StructuralDof.TranslationY,
            StructuralDof.TranslationZ,
        ]
        assert square_element.material_modified is False


class TestMaterialState:
    def test_save_and_clear_forward_to_every_material(self, curved_element, trial_displacements):
        curved_element.calculate_stresses(trial_displacements)
        curved_element.save_material_state()
        assert all(
            np.array_equal(m.saved_stresses, m.stresses) for m in curved_element.materials
        )

        curved_element.clear_material_state()
        assert all(np.all(m.stresses == 0.0) for m in curved_element.materials)
        assert all(np.all(m.saved_stresses == 0.0) for m in curved_element.materials)


class TestUnsupportedOperations:
    @pytest.mark.parametrize(
        "operation, args",
        [
            ("mass_matrix", ()),
            ("damping_matrix", ()),
            ("calculate_acceleration_forces", ([],)),
            ("calculate_forces_for_logging", (np.zeros(12),)),
            ("calculate_edge_loading_condition", (None, None)),
            ("calculate_face_loading_condition", (None, None)),
            ("clear_material_stresses", ()),
            ("reset_material_modified", ()),
        ],
    )
    def test_raises_not_implemented(self, square_element, operation, args):
        with pytest.raises(NotImplementedError):
            getattr(square_element, operation)(*args)

    def test_mass_property(self, square_element):
        with pytest.raises(NotImplementedError):
            square_element.M


def test_repr(square_element):
    assert "NurbsKLShellNL" in repr(square_element)
    assert isinstance(square_element, NurbsKLShellNL)
