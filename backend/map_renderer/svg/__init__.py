"""Projection, SVG composition and PNG fallback for decoded features."""
