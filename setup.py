from setuptools import find_packages, setup

setup(
    name="iga-shell",
    version="0.1.0",
    description="NURBS Kirchhoff-Love shell elements for geometrically nonlinear analysis",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pyyaml",
    ],
    extras_require={
        "test": ["pytest"],
        "examples": ["scipy", "matplotlib", "meshio"],
    },
)
