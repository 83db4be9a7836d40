"""Descriptor-based pooling, global average pooling and sampling operators on NumPy buffers."""

__version__ = "0.1.0"