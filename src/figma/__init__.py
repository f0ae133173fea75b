"""Figma REST API client module."""

from .client import FigmaClient, FigmaAPIError
from .models import VersionDescriptor

__all__ = ["FigmaClient", "FigmaAPIError", "VersionDescriptor"]
