"""
InnoConnect backend: social graph, project collaboration and chat coordination.
"""
from inoconnect.__version__ import __version__

__all__ = ["__version__"]
