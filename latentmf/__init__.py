from .errors import EmptyBatchBias, VectorLengthMismatch
from .initializer import initialize
from .latent import LatentFactor, LatentFactorGenerator, LatentID, Rating, derive_seed
from .model import LatentMatrixFactorizationModel, PredictedRating
from .params import LatentMatrixFactorizationParams
from .streaming import StreamingLatentMatrixFactorization

__all__ = [
    "EmptyBatchBias",
    "VectorLengthMismatch",
    "initialize",
    "LatentFactor",
    "LatentFactorGenerator",
    "LatentID",
    "Rating",
    "derive_seed",
    "LatentMatrixFactorizationModel",
    "PredictedRating",
    "LatentMatrixFactorizationParams",
    "StreamingLatentMatrixFactorization",
]
