"""Core services module."""

from taskflow_service.core.services.base import BaseService

__all__ = ["BaseService"]
