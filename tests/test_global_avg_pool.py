import numpy as np
import pytest

from infiniops.common import (
    BadDeviceError,
    BadParamError,
    BadTensorDtypeError,
    BadTensorShapeError,
    BadTensorStridesError,
    DataType,
    Device,
    Handle,
    TensorDescriptor,
)
from infiniops.global_avg_pool import GlobalAvgPoolDescriptor

CPU = Handle()


def _desc(shape, dtype=DataType.F32, strides=None):
    return TensorDescriptor(shape, dtype, strides)


def test_averages_each_channel():
    op = GlobalAvgPoolDescriptor(CPU, _desc((1, 2, 1, 1)), _desc((1, 2, 2, 2)))
    x = np.arange(8, dtype=np.float32).reshape(1, 2, 2, 2)
    y = np.zeros((1, 2, 1, 1), dtype=np.float32)
    op.global_avg_pool(None, y, x)
    np.testing.assert_allclose(y.reshape(-1), [1.5, 5.5])


def test_constant_input_float16():
    op = GlobalAvgPoolDescriptor(
        CPU, _desc((2, 3, 1, 1), DataType.F16), _desc((2, 3, 4, 5), DataType.F16)
    )
    x = np.full((2, 3, 4, 5), 0.75, dtype=np.float16)
    y = np.zeros((2, 3, 1, 1), dtype=np.float16)
    result = op.global_avg_pool(None, y, x)
    assert result is y
    assert np.all(y == np.float16(0.75))


def test_two_dimensional_is_identity():
    op = GlobalAvgPoolDescriptor(CPU, _desc((2, 3)), _desc((2, 3)))
    x = np.array([[1.0, -2.0, 3.5], [4.0, 5.25, -6.0]], dtype=np.float32)
    y = np.zeros((2, 3), dtype=np.float32)
    op.global_avg_pool(None, y, x)
    np.testing.assert_array_equal(y, x)


def test_symmetric_offsets_average_to_channel_base():
    base = np.arange(12, dtype=np.float32).reshape(3, 4, 1, 1, 1)
    offsets = np.array([-0.5, 0.5], dtype=np.float32).reshape(1, 1, 1, 1, 2)
    x = np.ascontiguousarray(
        np.broadcast_to(base + offsets, (3, 4, 5, 6, 2)), dtype=np.float32
    )
    op = GlobalAvgPoolDescriptor(CPU, _desc((3, 4, 1, 1, 1)), _desc(x.shape))
    y = np.zeros((3, 4, 1, 1, 1), dtype=np.float32)
    result = op.global_avg_pool(None, y, x)
    assert result is y
    np.testing.assert_allclose(
        np.asarray(result).reshape(3, 4),
        np.arange(12, dtype=np.float32).reshape(3, 4),
        atol=1e-5,
    )


def test_workspace_is_empty():
    op = GlobalAvgPoolDescriptor(CPU, _desc((1, 1, 1)), _desc((1, 1, 7)))
    assert op.workspace_size() == 0


def test_rejects_other_devices():
    with pytest.raises(BadDeviceError):
        GlobalAvgPoolDescriptor(Handle(Device.NV_GPU), _desc((1, 1, 1)), _desc((1, 1, 4)))


@pytest.mark.parametrize(
    "y_shape, x_shape",
    [
        ((4,), (4,)),
        ((1, 2, 1), (1, 2, 3, 3)),
        ((1, 3, 1, 1), (1, 2, 3, 3)),
        ((1, 2, 2, 1), (1, 2, 3, 3)),
    ],
)
def test_rejects_bad_shapes(y_shape, x_shape):
    with pytest.raises(BadTensorShapeError):
        GlobalAvgPoolDescriptor(CPU, _desc(y_shape), _desc(x_shape))


def test_rejects_non_contiguous_input():
    x = _desc((1, 2, 2, 2), strides=(8, 1, 4, 2))
    with pytest.raises(BadTensorStridesError):
        GlobalAvgPoolDescriptor(CPU, _desc((1, 2, 1, 1)), x)


def test_rejects_unsupported_dtype():
    with pytest.raises(BadTensorDtypeError):
        GlobalAvgPoolDescriptor(
            CPU, _desc((1, 2, 1), DataType.I32), _desc((1, 2, 3), DataType.I32)
        )


def test_rejects_mixed_dtypes():
    with pytest.raises(BadTensorDtypeError):
        GlobalAvgPoolDescriptor(
            CPU, _desc((1, 2, 1), DataType.F32), _desc((1, 2, 3), DataType.F16)
        )


def test_rejects_short_input_buffer():
    op = GlobalAvgPoolDescriptor(CPU, _desc((1, 2, 1)), _desc((1, 2, 3)))
    with pytest.raises(BadParamError):
        op.global_avg_pool(None, np.zeros(2, dtype=np.float32), np.zeros(5, dtype=np.float32))