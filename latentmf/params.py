#parameters for building a latent factor model
#only what initialize needs, the optimizer keeps its own knobs

from . import config


class LatentMatrixFactorizationParams:

    def __init__(self, rank=config.default_rank, seed=config.default_seed, num_partitions=None):
        #rank fixes the vector length of every factor in the model
        if int(rank) < 1:
            raise ValueError(f"rank must be a positive integer, got {rank}")
        #None means follow the ratings rdd
        if num_partitions is not None and int(num_partitions) < 1:
            raise ValueError(f"num_partitions must be a positive integer, got {num_partitions}")

        self.rank = int(rank)
        self.seed = int(seed)
        self.num_partitions = None if num_partitions is None else int(num_partitions)

    def get_rank(self):
        return self.rank

    def get_seed(self):
        return self.seed

    def partitions_for(self, ratings):
        if self.num_partitions is not None:
            return self.num_partitions
        return ratings.getNumPartitions()

    def __repr__(self):
        return "LatentMatrixFactorizationParams(rank=%d, seed=%d, num_partitions=%r)" % (
            self.rank, self.seed, self.num_partitions)
