# infiniops

A small library of tensor operators built around *descriptors*. You describe
the tensors (shape, strides, data type) once, create a descriptor for an
operator, and then run that operator as often as you like on NumPy buffers of
matching layout. All computation runs on the CPU; a `Handle` for any other
device is refused with `BadDeviceError`.

## Operators

| Module | Descriptor | What it does |
| --- | --- | --- |
| `infiniops.global_avg_pool` | `GlobalAvgPoolDescriptor` | Averages every spatial position of an `N x C x ...` tensor into `N x C x 1 x ...` |
| `infiniops.pooling` | `PoolingDescriptor`, `PoolingMode` | N-dimensional max or average pooling with zero padding and strides |
| `infiniops.random_sample` | `RandomSampleDescriptor` | Top-k / top-p sampling with temperature over a `float16` score vector, writing a `uint64` index |

Each descriptor has a `workspace_size()` method giving the bytes of scratch
memory it needs, and one method that runs the operator on flat, contiguous
NumPy buffers (`global_avg_pool`, `pooling`, `random_sample`). Output buffers
are written in place and also returned.

Shared building blocks live in `infiniops.common`:

- `DataType` – element types (`F16`, `F32`, `F64`, integer types); each has
  `numpy_dtype` and `size` (bytes per element)
- `Device` and `Handle` – the target device (`Handle()` means the CPU)
- `TensorDescriptor(shape, dtype, strides=None)` – a tensor layout, with
  `contiguous`, `is_contiguous`, `permute`, `num_elements`, `byte_size` and
  `ndim`; strides are counted in elements and default to row-major
- `is_valid_broadcast_shape(y, x)` – whether `x` broadcasts to the shape of `y`
- the error classes listed below

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np

from infiniops.common import DataType, Handle, TensorDescriptor
from infiniops.pooling import PoolingDescriptor, PoolingMode

handle = Handle()
x_desc = TensorDescriptor.contiguous((1, 1, 4, 4), DataType.F32)
y_desc = TensorDescriptor.contiguous((1, 1, 2, 2), DataType.F32)

op = PoolingDescriptor(
    handle, y_desc, x_desc,
    kernel_shape=(2, 2), pads=(0, 0), strides=(2, 2),
    pooling_type=PoolingMode.AVERAGE,
)
workspace = np.zeros(op.workspace_size(), dtype=np.uint8)

x = np.arange(16, dtype=np.float32)
y = np.zeros(4, dtype=np.float32)
op.pooling(workspace, y, x)   # y == [2.5, 4.5, 10.5, 12.5]
```

## Behaviour worth knowing

- **Pooling.** Inputs and outputs must be contiguous `float16` or `float32`
  tensors with `n + 2` dimensions for an `n`-dimensional kernel. Padding is
  filled with zeros. Max pooling starts from zero, so its results are never
  below zero. Average pooling always divides by the full kernel size. Output
  positions past the last pooled window are set to zero. For `float16` the
  workspace also holds a `float32` copy of the output, so pass a buffer of at
  least `workspace_size()` bytes; a smaller one raises
  `MemoryNotAllocatedError`.
- **Global average pooling.** `y` must match `x` in its first two dimensions
  and be 1 in every other one. Sums are taken in `float32`. No workspace is
  needed.
- **Random sampling.** With `topp > 0` and `topk > 1` the scores are sorted
  for the top `topk` entries, turned into probabilities with `temperature`,
  cut to the smallest prefix whose cumulative probability reaches `topp`, and
  an index is picked with `random_val` in `[0, 1)`. Otherwise the index of
  the largest score is returned. If no candidate is selected, the result
  buffer is left unchanged.

## What this package does not do

It has no matrix multiplication or GEMM operator, no broadcasting (expand)
operator, and no operator that runs on a GPU or other accelerator.
`is_valid_broadcast_shape` only checks shapes; it does not copy data.

## Errors

Every failure raises a subclass of `InfiniOpError`:

- `BadDeviceError` – the handle's device has no implementation
- `BadTensorShapeError` – shapes do not fit together
- `BadTensorStridesError` – a layout the operator cannot use
- `BadTensorDtypeError` – an unsupported or mismatched data type
- `BadParamError` – an invalid scalar parameter or buffer
- `MemoryNotAllocatedError` – the workspace passed in is too small