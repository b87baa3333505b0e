from . import kernel, linsys, preconditioners, utils
from .__about__ import __version__
from ._convenience import minres
from .kernel import minres_kernel

__all__ = [
    "kernel",
    "linsys",
    "preconditioners",
    "utils",
    "minres",
    "minres_kernel",
    "__version__",
]
