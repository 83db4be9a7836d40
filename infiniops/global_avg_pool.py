"""Averaging every spatial position of each (batch, channel) pair."""

from __future__ import annotations

from math import prod
from typing import Optional

import numpy as np

from .common import (
    BadDeviceError,
    BadParamError,
    BadTensorDtypeError,
    BadTensorShapeError,
    BadTensorStridesError,
    DataType,
    Device,
    Handle,
    TensorDescriptor,
    flat_buffer,
)

_SUPPORTED = (DataType.F16, DataType.F32)


class GlobalAvgPoolDescriptor:
    """Reduces ``x`` of shape ``(N, C, ...)`` to ``y`` of shape ``(N, C, 1, ...)``."""

    def __init__(self, handle: Handle, y: TensorDescriptor, x: TensorDescriptor) -> None:
        if handle.device is not Device.CPU:
            raise BadDeviceError(f"global average pooling is not available on {handle.device.name}")
        ndim = y.ndim
        if ndim < 2 or ndim != x.ndim:
            raise BadTensorShapeError("y and x need the same number of dimensions, at least 2")
        if y.shape[:2] != x.shape[:2]:
            raise BadTensorShapeError("batch and channel dimensions of y and x differ")
        if any(dim != 1 for dim in y.shape[2:]):
            raise BadTensorShapeError("spatial dimensions of y must all be 1")
        if not y.is_contiguous() or not x.is_contiguous():
            raise BadTensorStridesError("y and x must be contiguous")
        if y.dtype not in _SUPPORTED:
            raise BadTensorDtypeError(f"global average pooling does not support {y.dtype.name}")
        if y.dtype != x.dtype:
            raise BadTensorDtypeError("y and x must share a data type")

        self.device = handle.device
        self.dtype = y.dtype
        self.y_data_size = prod(y.shape[:2])
        self.x_per_nc_data_size = prod(x.shape[2:])

    def workspace_size(self) -> int:
        """Bytes of scratch memory the operator needs."""
        return 0

    def global_avg_pool(
        self, workspace: Optional[np.ndarray], y: np.ndarray, x: np.ndarray
    ) -> np.ndarray:
        """Write the averages into the buffer ``y`` and return ``y``."""
        if self.dtype not in _SUPPORTED:
            raise BadTensorDtypeError(f"global average pooling does not support {self.dtype.name}")
        y_flat = flat_buffer(y, self.dtype)
        x_flat = flat_buffer(x, self.dtype)
        count = self.y_data_size
        size = self.x_per_nc_data_size
        if y_flat.size < count:
            raise BadParamError("output buffer is smaller than the output tensor")
        if x_flat.size < count * size:
            raise BadParamError("input buffer is smaller than the input tensor")

        values = x_flat[: count * size].reshape(count, size).astype(np.float32)
        with np.errstate(invalid="ignore", divide="ignore"):
            means = values.sum(axis=1, dtype=np.float32) / np.float32(size)
        y_flat[:count] = means.astype(self.dtype.numpy_dtype)
        return y