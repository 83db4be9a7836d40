"""Max and average pooling over the spatial dimensions of ``(N, C, ...)`` tensors."""

from __future__ import annotations

import enum
from math import prod
from typing import Iterable, Optional, Union

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .common import (
    BadDeviceError,
    BadParamError,
    BadTensorDtypeError,
    BadTensorShapeError,
    BadTensorStridesError,
    DataType,
    Device,
    Handle,
    MemoryNotAllocatedError,
    TensorDescriptor,
    flat_buffer,
)

_SUPPORTED = (DataType.F16, DataType.F32)


class PoolingMode(enum.IntEnum):
    """How each window is reduced."""

    MAX = 0
    AVERAGE = 1


class PoolingDescriptor:
    """Pools ``x`` into ``y`` with a given kernel, zero padding and stride per spatial axis."""

    def __init__(
        self,
        handle: Handle,
        y: TensorDescriptor,
        x: TensorDescriptor,
        kernel_shape: Iterable[int],
        pads: Iterable[int],
        strides: Iterable[int],
        pooling_type: Union[PoolingMode, int] = PoolingMode.MAX,
    ) -> None:
        if handle.device is not Device.CPU:
            raise BadDeviceError(f"pooling is not available on {handle.device.name}")
        kernel_shape = tuple(int(k) for k in kernel_shape)
        pads = tuple(int(p) for p in pads)
        strides = tuple(int(s) for s in strides)
        n = len(kernel_shape)
        ndim = y.ndim
        if ndim < 3 or ndim != x.ndim or ndim != n + 2:
            raise BadTensorShapeError(
                "y and x need n + 2 dimensions, at least 3, for an n-dimensional kernel"
            )
        if len(pads) != n or len(strides) != n:
            raise BadParamError("kernel shape, pads and strides must have the same length")
        if x.shape[:2] != y.shape[:2]:
            raise BadTensorShapeError("batch and channel dimensions of y and x differ")
        if not y.is_contiguous() or not x.is_contiguous():
            raise BadTensorStridesError("y and x must be contiguous")
        if int(pooling_type) > 1:
            raise BadParamError(f"unknown pooling type {int(pooling_type)}")
        if y.dtype not in _SUPPORTED:
            raise BadTensorDtypeError(f"pooling does not support {y.dtype.name}")
        if y.dtype != x.dtype:
            raise BadTensorDtypeError("y and x must share a data type")
        if any(k < 1 for k in kernel_shape):
            raise BadParamError("kernel dimensions must be positive")
        if any(p < 0 for p in pads):
            raise BadParamError("pads must not be negative")
        if any(s < 1 for s in strides):
            raise BadParamError("strides must be positive")

        padded_spatial = tuple(dim + 2 * pad for dim, pad in zip(x.shape[2:], pads))
        if any(dim < k for dim, k in zip(padded_spatial, kernel_shape)):
            raise BadTensorShapeError("kernel is larger than the padded input")
        steps = tuple(
            (dim - k) // s + 1 for dim, k, s in zip(padded_spatial, kernel_shape, strides)
        )
        if any(step > dim for step, dim in zip(steps, y.shape[2:])):
            raise BadTensorShapeError("output is too small for the pooled result")

        self.device = handle.device
        self.dtype = y.dtype
        self.ndim = ndim
        self.mode = PoolingMode.MAX if int(pooling_type) == 0 else PoolingMode.AVERAGE
        self.x_shape = x.shape
        self.y_shape = y.shape
        self.kernel_shape = kernel_shape
        self.pads = pads
        self.strides = strides
        self.steps = steps
        self.y_size = prod(y.shape)
        self.padded_x_size = (
            prod(x.shape[:2] + padded_spatial) if any(p > 0 for p in pads) else 0
        )

    def workspace_size(self) -> int:
        """Bytes of scratch memory the operator needs."""
        size = self.padded_x_size * self.dtype.size
        if self.dtype is DataType.F16:
            size += self.y_size * DataType.F32.size
        return size

    def pooling(
        self, workspace: Optional[np.ndarray], y: np.ndarray, x: np.ndarray
    ) -> np.ndarray:
        """Write the pooled values into the buffer ``y`` and return ``y``."""
        if self.dtype not in _SUPPORTED:
            raise BadTensorDtypeError(f"pooling does not support {self.dtype.name}")
        needed = self.workspace_size()
        available = 0 if workspace is None else workspace.nbytes
        if available < needed:
            raise MemoryNotAllocatedError(f"workspace of {available} bytes, {needed} needed")
        y_flat = flat_buffer(y, self.dtype)
        x_flat = flat_buffer(x, self.dtype)
        x_count = prod(self.x_shape)
        if y_flat.size < self.y_size:
            raise BadParamError("output buffer is smaller than the output tensor")
        if x_flat.size < x_count:
            raise BadParamError("input buffer is smaller than the input tensor")

        data = x_flat[:x_count].reshape(self.x_shape).astype(np.float32)
        if self.padded_x_size:
            data = np.pad(data, [(0, 0), (0, 0)] + [(p, p) for p in self.pads])

        spatial_axes = tuple(range(2, self.ndim))
        windows = sliding_window_view(data, self.kernel_shape, axis=spatial_axes)
        windows = windows[
            (slice(None), slice(None)) + tuple(slice(None, None, s) for s in self.strides)
        ]
        window_axes = tuple(range(self.ndim, windows.ndim))

        if self.mode is PoolingMode.MAX:
            reducer = np.fmax if self.dtype is DataType.F16 else np.maximum
            pooled = reducer(reducer.reduce(windows, axis=window_axes), np.float32(0))
        else:
            pooled = windows.sum(axis=window_axes, dtype=np.float32) / np.float32(
                prod(self.kernel_shape)
            )

        y_view = y_flat[: self.y_size].reshape(self.y_shape)
        y_view[...] = 0
        region = (slice(None), slice(None)) + tuple(slice(0, step) for step in self.steps)
        y_view[region] = pooled.astype(self.dtype.numpy_dtype)
        return y