"""
Large-deflection analysis of a simply supported square plate under uniform pressure.

The element library only provides element quantities; this script does the
global work: DOF numbering, sparse assembly, load stepping with Newton
iterations, and export of the deformed knot mesh for ParaView.
"""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import meshio
import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.linalg import spsolve

from iga_shell.core import GlobalDofMap, ShellModelConfig, StructuralDof
from iga_shell.elements.KL_SHELL import POSTPROCESSING_KNOT_RENUMBERING
from iga_shell.nurbs import Nurbs2D

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("pressurized_plate")

HERE = Path(__file__).parent
PRESSURE = 2.0e4  # Pa
LOAD_STEPS = 10
MAX_ITERATIONS = 20
TOLERANCE = 1e-8

config = ShellModelConfig.from_yaml(HERE / "plate.yaml")
config.validate()
print(config)

elements = config.build_elements()
patch = elements[0].patch

# ------------------------------------------------------------------
# Boundary conditions: all translations fixed on the outer control-point ring.
# Without rotational DOFs this is a simple support with immovable edges.
n_ksi = patch.number_of_control_points_ksi
n_heta = patch.number_of_control_points_heta
constrained = []
for cp in patch.control_points:
    i, j = patch.axis_indices(cp)
    if i in (0, n_ksi - 1) or j in (0, n_heta - 1):
        constrained.extend((cp.id, dof) for dof in StructuralDof)

dof_map = GlobalDofMap.number(patch.control_points, constrained)
n_dofs = len(dof_map)
logger.info("%d free DOFs, %d elements", n_dofs, len(elements))

# Global index per element DOF, -1 where constrained
element_dofs = [
    np.array(
        [
            dof_map[(cp.id, dof)] if (cp.id, dof) in dof_map else -1
            for cp in element.control_points
            for dof in StructuralDof
        ]
    )
    for element in elements
]

# Dead pressure load on the reference configuration
reference_load = np.zeros(n_dofs)
for element in elements:
    for index, value in element.calculate_surface_pressure(PRESSURE, dof_map).items():
        reference_load[index] += value


def element_displacements(u, dofs):
    return np.where(dofs >= 0, u[np.maximum(dofs, 0)], 0.0)


def assemble(u):
    """Tangent stiffness and internal forces at the global state ``u``."""
    rows, cols, values = [], [], []
    internal = np.zeros(n_dofs)
    for element, dofs in zip(elements, element_dofs):
        u_el = element_displacements(u, dofs)
        element.calculate_stresses(u_el)
        f_el = element.calculate_forces(u_el)
        K_el = element.stiffness_matrix(u_el)

        free = dofs >= 0
        internal[dofs[free]] += f_el[free]
        r, c = np.meshgrid(dofs[free], dofs[free], indexing="ij")
        rows.append(r.ravel())
        cols.append(c.ravel())
        values.append(K_el[np.ix_(free, free)].ravel())

    K = coo_matrix(
        (np.concatenate(values), (np.concatenate(rows), np.concatenate(cols))),
        shape=(n_dofs, n_dofs),
    ).tocsr()
    return K, internal


def nodal_displacements(u):
    """Global displacement vector as ``(n_control_points, 3)``."""
    U = np.zeros((len(patch.control_points), 3))
    for cp_id, dof in dof_map:
        U[cp_id, dof.value] = u[dof_map[(cp_id, dof)]]
    return U


center = Nurbs2D.at_point(patch, patch.control_points, 0.5, 0.5)

# ------------------------------------------------------------------
# Load stepping with full Newton-Raphson iterations
u = np.zeros(n_dofs)
load_factors = [0.0]
center_deflections = [0.0]
for step in range(1, LOAD_STEPS + 1):
    load_factor = step / LOAD_STEPS
    for iteration in range(MAX_ITERATIONS):
        K, internal = assemble(u)
        residual = load_factor * reference_load - internal
        residual_norm = np.linalg.norm(residual) / np.linalg.norm(reference_load)
        logger.info("step %d iteration %d residual %.3e", step, iteration, residual_norm)
        if residual_norm < TOLERANCE:
            break
        u += spsolve(K, residual)
    else:
        raise RuntimeError(f"Newton iterations did not converge in load step {step}")

    for element in elements:
        element.save_material_state()

    w_center = center.interpolate(nodal_displacements(u))[0, 2]
    load_factors.append(load_factor)
    center_deflections.append(w_center)
    logger.info("load factor %.2f: center deflection %.6e m", load_factor, w_center)

# Linear (Kirchhoff plate) reference for a simply supported square plate: w = 0.00406 p a^4 / D
E, nu, t = config.material.E, config.material.nu, config.shell.thickness
D = E * t**3 / (12 * (1 - nu**2))
w_linear = 0.00406 * PRESSURE / D
print(f"Center deflection: {center_deflections[-1]:.6e} m (linear theory {w_linear:.6e} m)")

# ------------------------------------------------------------------
# Export deformed element corners for ParaView
points, cells, displacements = [], [], []
for element, dofs in zip(elements, element_dofs):
    corners = element.calculate_displacements_for_postprocessing(element_displacements(u, dofs))
    knots = [None] * 4
    for j, slot in enumerate(POSTPROCESSING_KNOT_RENUMBERING):
        knots[slot] = element.knots[j]
    start = len(points)
    for knot, corner in zip(knots, corners):
        points.append(patch.surface_point(knot.ksi, knot.heta))
        displacements.append(corner)
    cells.append([start, start + 1, start + 2, start + 3])

mesh = meshio.Mesh(
    np.array(points),
    [("quad", np.array(cells))],
    point_data={"displacement": np.array(displacements)},
)
meshio.write(HERE / "pressurized_plate.vtk", mesh)

plt.plot(np.array(center_deflections) * 1e3, np.array(load_factors) * PRESSURE / 1e3, "o-")
plt.axline((0.0, 0.0), (w_linear * 1e3, PRESSURE / 1e3), linestyle="--", color="gray")
plt.xlabel("Center deflection [mm]")
plt.ylabel("Pressure [kPa]")
plt.title("Simply supported square plate, geometrically nonlinear")
plt.grid(True)
plt.savefig(HERE / "pressurized_plate.png", dpi=150)
plt.show()
