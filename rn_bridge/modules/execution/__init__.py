"""
Execution Module

Remote-object rendering and the expression / introspection façade.
"""

from .renderer import RemoteObjectRenderer, UNRENDERABLE
from .executor import Executor

__all__ = [
    "RemoteObjectRenderer",
    "UNRENDERABLE",
    "Executor",
]
