"""Topology decoding and encoding.

Submodules:
    - geometry: decoded geometry variants, features and collections.
    - topology: the TopoJSON model and the arc-resolving decoder.
    - encode: features to topology, with optional quantization.
"""
