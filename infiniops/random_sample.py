"""Picking a token index from a vector of scores with top-k / top-p sampling."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .common import (
    BadDeviceError,
    BadParamError,
    BadTensorDtypeError,
    BadTensorShapeError,
    DataType,
    Device,
    Handle,
    TensorDescriptor,
    flat_buffer,
)


def _records(values: np.ndarray) -> np.ndarray:
    """Positions where a left-to-right scan with ``current < value`` takes a new value.

    Position 0 always starts the scan; NaN never replaces the current value and a
    NaN in front is never replaced.
    """
    if values.size == 0:
        return np.zeros(0, dtype=np.intp)
    if np.isnan(values[0]):
        return np.zeros(1, dtype=np.intp)
    cleaned = np.where(np.isnan(values), -np.inf, values)
    running = np.maximum.accumulate(cleaned)
    later = np.flatnonzero(cleaned[1:] > running[:-1]) + 1
    return np.concatenate((np.zeros(1, dtype=np.intp), later))


class RandomSampleDescriptor:
    """Samples one index from float16 scores into a uint64 result."""

    def __init__(self, handle: Handle, result: TensorDescriptor, probs: TensorDescriptor) -> None:
        if handle.device is not Device.CPU:
            raise BadDeviceError(f"random sampling is not available on {handle.device.name}")
        if probs.ndim != 1:
            raise BadTensorShapeError("probabilities must be one-dimensional")
        if probs.dtype is not DataType.F16:
            raise BadTensorDtypeError("probabilities must be float16")
        if result.dtype is not DataType.U64:
            raise BadTensorDtypeError("the result must be uint64")
        r_length = result.shape[0] if result.ndim else 1
        if result.ndim != 1 and r_length != 1:
            raise BadTensorShapeError("the result must hold a single index")
        if probs.shape[0] == 0:
            raise BadTensorShapeError("probabilities must not be empty")

        self.device = handle.device
        self.dtype = probs.dtype
        self.voc = probs.shape[0]
        self.result_dtype = result.dtype
        self.result_length = r_length

    def workspace_size(self) -> int:
        """Bytes of scratch memory the operator needs."""
        return self.voc * (DataType.U64.size + self.dtype.size)

    def random_sample(
        self,
        workspace: Optional[np.ndarray],
        result: np.ndarray,
        probs: np.ndarray,
        random_val: float,
        topp: float,
        topk: int,
        temperature: float,
    ) -> np.ndarray:
        """Write the chosen index into ``result[0]`` and return ``result``.

        With ``topp > 0`` and ``topk > 1`` the index is drawn from the top-k scores
        cut down by top-p, using ``random_val`` in ``[0, 1)``; otherwise the index
        of the largest score is taken. If no candidate is selected, ``result`` is
        left unchanged.
        """
        if self.dtype is not DataType.F16:
            raise BadTensorDtypeError(f"random sampling does not support {self.dtype.name}")
        result_flat = flat_buffer(result, DataType.U64)
        probs_flat = flat_buffer(probs, self.dtype)
        if result_flat.size < 1:
            raise BadParamError("result buffer is empty")
        if probs_flat.size < self.voc:
            raise BadParamError("probability buffer is smaller than the tensor")
        logits = probs_flat[: self.voc].copy()

        if topp > 0 and topk > 1:
            chosen = self._sample(logits, random_val, topp, topk, temperature)
        else:
            chosen = int(_records(logits.astype(np.float32))[-1])
        if chosen is not None:
            result_flat[0] = chosen
        return result

    def _sample(
        self,
        logits: np.ndarray,
        random_val: float,
        topp: float,
        topk: int,
        temperature: float,
    ) -> Optional[int]:
        voc = self.voc
        topk = min(topk, voc)
        indices = np.arange(voc, dtype=np.uint64)

        # Partial selection sort: the first topk slots end up in descending order.
        for i in range(topk):
            chain = _records(logits[i:].astype(np.float32)) + i
            if chain.size > 1:
                source = np.roll(chain, 1)
                logits[chain] = logits[source]
                indices[chain] = indices[source]

        values = logits.astype(np.float32)
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            exps = np.exp((values - values[0]) / np.float32(temperature))
            total = np.cumsum(exps, dtype=np.float32)[-1]
            weights = (exps / total).astype(np.float16)

        cumulative = np.cumsum(weights[:topk].astype(np.float32), dtype=np.float32)
        reached = np.flatnonzero(cumulative >= np.float32(topp))
        end = int(reached[0]) if reached.size else topk
        end = end + 1 if end < topk - 1 else topk

        threshold = np.float32(random_val) * cumulative[end - 1]
        hits = np.flatnonzero(threshold < cumulative[:end])
        if hits.size == 0:
            return None
        return int(indices[hits[0]])