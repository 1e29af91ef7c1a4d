"""
iga-shell: geometrically nonlinear NURBS Kirchhoff-Love shell elements.
"""

__version__ = "0.1.0"
