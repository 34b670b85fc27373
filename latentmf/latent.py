#latent factor data types + the seeded generator that fills in missing factors
#everything in here has to pickle cleanly since spark ships it to the executors

import hashlib
from collections import namedtuple

import numpy as np

from . import vector_utils

# =========================
# record types
# =========================

#externally supplied observation, never mutated
Rating = namedtuple("Rating", ["user", "item", "rating"])

#the two sides of the model, each side gets its own seed stream
USER_SIDE = "user"
ITEM_SIDE = "item"
SIDES = (USER_SIDE, ITEM_SIDE)

#nextValue draws ints in [0, 2^24) and scales them, so every float32 is exact and < 1.0
float_bits = 24
float_scale = np.float32(1.0 / (1 << float_bits))


class LatentFactor:
    """Bias scalar plus a fixed-length float32 vector for one user or item."""

    __slots__ = ("bias", "vector")

    def __init__(self, bias, vector):
        self.bias = np.float32(bias)
        self.vector = np.asarray(vector, dtype=np.float32)

    @property
    def rank(self):
        return len(self.vector)

    #adds biases and vectors in place (length has to match)
    def accumulate(self, other):
        vector_utils.add_into(self.vector, other.vector)
        self.bias = np.float32(self.bias + other.bias)
        return self

    def __iadd__(self, other):
        return self.accumulate(other)

    #fresh copy for anything that wants to mutate a factor handed in by someone else
    def copy(self):
        return LatentFactor(self.bias, self.vector.copy())

    def __eq__(self, other):
        if not isinstance(other, LatentFactor):
            return NotImplemented
        return self.bias == other.bias and np.array_equal(self.vector, other.vector)

    __hash__ = None

    #slots means no __dict__, so pickle needs these
    def __getstate__(self):
        return (self.bias, self.vector)

    def __setstate__(self, state):
        self.bias, self.vector = state

    def __repr__(self):
        return "LatentFactor(bias=%r, vector=%r)" % (float(self.bias), self.vector.tolist())


#one entry of the user side or the item side, identity is the id
class LatentID:
    __slots__ = ("id", "latent")

    def __init__(self, id, latent):
        self.id = int(id)
        self.latent = latent

    def __getstate__(self):
        return (self.id, self.latent)

    def __setstate__(self, state):
        self.id, self.latent = state

    def __eq__(self, other):
        if not isinstance(other, LatentID):
            return NotImplemented
        return self.id == other.id and self.latent == other.latent

    __hash__ = None

    def __repr__(self):
        return "LatentID(id=%d, latent=%r)" % (self.id, self.latent)


# =========================
# seeding
# =========================

#per partition seed, hashed so user/item sides and neighbouring partitions never share a stream
#blake2b over the text key (same idea as the crc32 partitioner, but 64 bits so collisions are not a concern)
#entity_id narrows it to one user/item, so ids filled in different batches never replay the same draws
def derive_seed(base_seed, side, partition_index, entity_id=None):
    if side not in SIDES:
        raise ValueError(f"side must be one of {SIDES}, got {side!r}")
    if partition_index < 0:
        raise ValueError(f"partition_index must be non-negative, got {partition_index}")

    key = f"{int(base_seed)}:{side}:{int(partition_index)}"
    if entity_id is not None:
        key += f":{int(entity_id)}"
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "little")


class LatentFactorGenerator:
    """Draws random LatentFactors from a reseedable numpy RandomState.

    Same seed and same number of next_value() calls gives the same factors,
    bit for bit, on any machine.
    """

    def __init__(self, rank):
        if rank < 1:
            raise ValueError(f"rank must be positive, got {rank}")
        self.rank = rank
        self.random = np.random.RandomState()

    #RandomState only takes 32 bit words, so split the 64 bit seed in two
    def set_seed(self, seed):
        seed = int(seed) & 0xFFFFFFFFFFFFFFFF
        self.random.seed(np.array([seed & 0xFFFFFFFF, seed >> 32], dtype=np.uint32))

    #rank + 1 values in [0, 1): first one is the bias, the rest is the vector
    def next_value(self):
        draws = self.random.randint(0, 1 << float_bits, size=self.rank + 1, dtype=np.int64)
        values = draws.astype(np.float32) * float_scale
        return LatentFactor(values[0], values[1:])
