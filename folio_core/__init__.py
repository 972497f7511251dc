# Folio - Core Module
"""
Core infrastructure for Folio.
Configuration and audit logging shared by the storage operations.
"""

from .config import Settings, load_settings
from .logger import AuditLogger, AuditEntry, Operation, OperationStatus

__all__ = [
    "Settings",
    "load_settings",
    "AuditLogger",
    "AuditEntry",
    "Operation",
    "OperationStatus",
]

__version__ = "0.1.0"
