"""Core types shared by the operators: data types, devices, tensor layouts and errors."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from math import prod
from typing import Iterable, Optional

import numpy as np


class InfiniOpError(Exception):
    """Base class for every error raised by an operator."""


class BadDeviceError(InfiniOpError):
    """The handle or descriptor targets a device with no implementation."""


class BadTensorShapeError(InfiniOpError):
    """Tensor shapes are inconsistent with the operator."""


class BadTensorStridesError(InfiniOpError):
    """Tensor strides describe a layout the operator cannot handle."""


class BadTensorDtypeError(InfiniOpError):
    """Tensor data types are unsupported or do not agree."""


class BadParamError(InfiniOpError):
    """A scalar parameter or buffer is invalid."""


class MemoryNotAllocatedError(InfiniOpError):
    """The workspace handed to an operator is too small."""


class DataType(enum.Enum):
    """Element types a tensor may hold."""

    F16 = "float16"
    F32 = "float32"
    F64 = "float64"
    I8 = "int8"
    I16 = "int16"
    I32 = "int32"
    I64 = "int64"
    U8 = "uint8"
    U16 = "uint16"
    U32 = "uint32"
    U64 = "uint64"

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def size(self) -> int:
        """Size of one element in bytes."""
        return self.numpy_dtype.itemsize


class Device(enum.Enum):
    """Kinds of device an operator can be created for."""

    CPU = "cpu"
    NV_GPU = "nv_gpu"
    CAMBRICON_MLU = "cambricon_mlu"
    ASCEND_NPU = "ascend_npu"
    METAX_GPU = "metax_gpu"
    MTHREADS_GPU = "mthreads_gpu"


@dataclass(frozen=True)
class Handle:
    """Selects the device operators run on."""

    device: Device = Device.CPU
    device_id: int = 0


def _contiguous_strides(shape: tuple[int, ...]) -> tuple[int, ...]:
    strides = []
    step = 1
    for dim in reversed(shape):
        strides.append(step)
        step *= dim
    return tuple(reversed(strides))


@dataclass(frozen=True, init=False)
class TensorDescriptor:
    """Shape, element strides and data type of a tensor."""

    shape: tuple[int, ...]
    strides: tuple[int, ...]
    dtype: DataType

    def __init__(
        self,
        shape: Iterable[int],
        dtype: DataType,
        strides: Optional[Iterable[int]] = None,
    ) -> None:
        shape = tuple(int(dim) for dim in shape)
        if any(dim < 0 for dim in shape):
            raise BadTensorShapeError(f"negative dimension in shape {shape}")
        strides = _contiguous_strides(shape) if strides is None else tuple(int(s) for s in strides)
        if len(strides) != len(shape):
            raise BadTensorStridesError(
                f"{len(strides)} strides given for a tensor of {len(shape)} dimensions"
            )
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "strides", strides)
        object.__setattr__(self, "dtype", dtype)

    @classmethod
    def contiguous(cls, shape: Iterable[int], dtype: DataType) -> "TensorDescriptor":
        """A row-major contiguous tensor of the given shape."""
        return cls(shape, dtype)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    def is_contiguous(self) -> bool:
        """Whether the layout is row-major contiguous (size-1 dimensions ignored)."""
        expected = 1
        for dim, stride in zip(reversed(self.shape), reversed(self.strides)):
            if dim == 1:
                continue
            if stride != expected:
                return False
            expected *= dim
        return True

    def permute(self, order: Iterable[int]) -> "TensorDescriptor":
        """The same data viewed with its dimensions reordered."""
        order = tuple(order)
        if sorted(order) != list(range(self.ndim)):
            raise BadParamError(f"{order} is not a permutation of {self.ndim} dimensions")
        return TensorDescriptor(
            (self.shape[axis] for axis in order),
            self.dtype,
            (self.strides[axis] for axis in order),
        )

    def num_elements(self) -> int:
        return prod(self.shape)

    def byte_size(self) -> int:
        return self.num_elements() * self.dtype.size


def is_valid_broadcast_shape(y: TensorDescriptor, x: TensorDescriptor) -> bool:
    """Whether ``x`` can be broadcast to the shape of ``y``."""
    if x.ndim > y.ndim:
        return False
    return all(
        x_dim in (y_dim, 1)
        for y_dim, x_dim in zip(reversed(y.shape), reversed(x.shape))
    )


def flat_buffer(array: np.ndarray, dtype: DataType) -> np.ndarray:
    """A one-dimensional view of a contiguous data buffer holding ``dtype`` elements."""
    if not isinstance(array, np.ndarray):
        raise BadParamError("data buffers must be numpy arrays")
    if array.dtype != dtype.numpy_dtype:
        raise BadTensorDtypeError(
            f"buffer holds {array.dtype}, expected {dtype.numpy_dtype}"
        )
    if not array.flags.c_contiguous:
        raise BadParamError("data buffers must be contiguous")
    return array.reshape(-1)