#builds a model from a ratings batch, optionally on top of a prior model
#new ids get random factors from a per partition seeded generator, old ids keep theirs,
#and the global bias is a running weighted mean when the prior model is streaming

import logging

from .errors import EmptyBatchBias
from .latent import ITEM_SIDE, USER_SIDE, LatentFactorGenerator, LatentID, derive_seed
from .model import LatentMatrixFactorizationModel

logger = logging.getLogger(__name__)


#sum and count in one pass
#aggregate = (zero, seqop, combop), both ops are associative so partition order does not matter
def rating_sum_and_count(ratings):
    return ratings.aggregate(
        (0.0, 0),
        lambda acc, r: (acc[0] + float(r.rating), acc[1] + 1),
        lambda a, b: (a[0] + b[0], a[1] + b[1])
    )


#outer join of the batch ids against the existing factors of one side,
#fills the gaps with seeded random factors, keeps everything that already exists
def merge_factors(batch_ids, existing, rank, base_seed, side, num_partitions):
    keyed_ids = batch_ids.distinct().map(lambda id_: (id_, True))
    keyed_existing = existing.map(lambda entry: (entry.id, entry.latent))

    def fill_partition(partition_index, iterator):
        #generator lives inside the partition, nothing shared between workers
        generator = LatentFactorGenerator(rank)

        #reseed per missing id: shuffle order does not matter, and a later batch
        #landing new ids in this partition does not replay an earlier batch's draws
        for id_, (_, latent) in iterator:
            if latent is None:
                generator.set_seed(derive_seed(base_seed, side, partition_index, id_))
                latent = generator.next_value()
            yield LatentID(id_, latent)

    return (keyed_ids
        .fullOuterJoin(keyed_existing, num_partitions)
        .mapPartitionsWithIndex(fill_partition)
        .cache())


def empty_features(spark_context, num_partitions):
    return spark_context.parallelize([], num_partitions)


def initialize(ratings, params, prior_model=None, is_streaming=False):
    """Add random factors for unseen users/items and update the global bias.

    ratings is an RDD of Rating, params a LatentMatrixFactorizationParams.
    Returns (model, number of ratings in this batch). The model is a streaming
    one when is_streaming is set or prior_model is already streaming.
    prior_model is never modified, unchanged factors are shared with it.
    """
    rank = params.get_rank()
    seed = params.get_seed()
    num_partitions = params.partitions_for(ratings)
    spark_context = ratings.context

    if prior_model is not None and prior_model.rank != rank:
        raise ValueError(f"prior model rank {prior_model.rank} does not match params rank {rank}")

    #reduce first, an empty batch with nothing to fall back on should fail before any joins run
    rating_sum, num_ratings = rating_sum_and_count(ratings)

    if num_ratings == 0:
        if prior_model is None:
            raise EmptyBatchBias()
        logger.info("Empty ratings batch, keeping prior global bias %.6f", prior_model.global_bias)
        global_bias = prior_model.global_bias
        num_examples = prior_model.observed_examples or 0
    elif prior_model is not None and prior_model.is_streaming:
        #running weighted mean, same as the mean over everything seen so far
        num_examples = prior_model.observed_examples + num_ratings
        global_bias = (prior_model.global_bias * prior_model.observed_examples + rating_sum) / num_examples
    else:
        global_bias = rating_sum / num_ratings
        num_examples = num_ratings

    if prior_model is not None:
        user_existing = prior_model.user_features
        item_existing = prior_model.item_features
    else:
        user_existing = empty_features(spark_context, num_partitions)
        item_existing = empty_features(spark_context, num_partitions)

    user_features = merge_factors(ratings.map(lambda r: r.user), user_existing,
                                  rank, seed, USER_SIDE, num_partitions)
    item_features = merge_factors(ratings.map(lambda r: r.item), item_existing,
                                  rank, seed, ITEM_SIDE, num_partitions)

    if is_streaming or (prior_model is not None and prior_model.is_streaming):
        model = LatentMatrixFactorizationModel.streaming(
            rank, user_features, item_features, global_bias, num_examples)
    else:
        model = LatentMatrixFactorizationModel(rank, user_features, item_features, global_bias)

    logger.info("Initialized %s model: %d ratings in batch, global bias %.6f",
                "streaming" if model.is_streaming else "batch", num_ratings, model.global_bias)
    return model, num_ratings
