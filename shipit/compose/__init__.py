"""Compose overlay rendering."""

from shipit.compose.overlay import OVERLAY_FILENAME, ImageService, ServiceMetadata, render_overlay

__all__ = ["OVERLAY_FILENAME", "ImageService", "ServiceMetadata", "render_overlay"]
