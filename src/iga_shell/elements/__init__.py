from .elements import ElementFactory, IgaElement, ShellElement
from .KL_SHELL import ElementState, NurbsKLShellNL

__all__ = [
    "ElementFactory",
    "IgaElement",
    "ShellElement",
    "ElementState",
    "NurbsKLShellNL",
]
