"""Modification dispatcher."""

from .service import ConnectionCheck, ModificationService

__all__ = ["ConnectionCheck", "ModificationService"]
