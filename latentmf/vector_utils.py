#small numeric helpers for latent vectors (float32 numpy arrays)

import numpy as np

from .errors import VectorLengthMismatch


def check_lengths(a, b):
    if len(a) != len(b):
        raise VectorLengthMismatch(len(a), len(b))


#inner product, accumulate in float32 to match the stored factors
def dot(a, b):
    check_lengths(a, b)
    return float(np.dot(np.asarray(a, dtype=np.float32), np.asarray(b, dtype=np.float32)))


#target[i] += other[i], in place, returns target for chaining
def add_into(target, other):
    check_lengths(target, other)
    target += np.asarray(other, dtype=target.dtype)
    return target
