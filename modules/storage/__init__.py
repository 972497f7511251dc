"""
Storage module for Folio.

Provides file operations and recursive directory operations.
"""

from .filesystem import Filesystem
from .directory import Directory, Traversal

__all__ = ['Filesystem', 'Directory', 'Traversal']
