"""API routers for the map renderer service.

Submodules:
    - render: Render a map request as an HTML figure with SVG or PNG images.
    - analyse: Check CSV data against a topology and suggest breaks.

Each module exposes its own APIRouter, included by the application factory
in ``map_renderer.main``.
"""
