#the latent factor model: user side + item side factors, rank, global bias
#batch and streaming models are the same class, observed_examples is the variant tag

import logging
from collections import namedtuple

from . import vector_utils

logger = logging.getLogger(__name__)

#one output row of batch prediction
PredictedRating = namedtuple("PredictedRating", ["user", "item", "rating"])


class LatentMatrixFactorizationModel:
    """Latent factor model over two partitioned id -> LatentFactor collections.

    user_features / item_features are RDDs of LatentID. observed_examples is
    None for a batch model and the running count of ratings folded into
    global_bias for a streaming model.
    """

    def __init__(self, rank, user_features, item_features, global_bias, observed_examples=None):
        if observed_examples is not None and observed_examples < 0:
            raise ValueError(f"observed_examples must be non-negative, got {observed_examples}")
        self.rank = rank
        self.user_features = user_features
        self.item_features = item_features
        self.global_bias = float(global_bias)
        self.observed_examples = None if observed_examples is None else int(observed_examples)
        #broadcasts handed out by predict_all, released by unpersist()
        self.broadcasts = []

    @classmethod
    def streaming(cls, rank, user_features, item_features, global_bias, observed_examples):
        return cls(rank, user_features, item_features, global_bias, observed_examples=observed_examples)

    @property
    def is_streaming(self):
        return self.observed_examples is not None

    #(id, factor) pairs, what the joins want
    def keyed_user_features(self):
        return self.user_features.map(lambda entry: (entry.id, entry.latent))

    def keyed_item_features(self):
        return self.item_features.map(lambda entry: (entry.id, entry.latent))

    #single pair, goes through the cluster twice so use predict_all for anything bigger
    def predict(self, user, item):
        user_factor = first_or_none(self.keyed_user_features().lookup(user))
        item_factor = first_or_none(self.keyed_item_features().lookup(item))
        return predict_one(user, item, user_factor, item_factor, self.global_bias).rating

    def predict_all(self, users_items):
        """Predict every (user, item) pair in an RDD.

        Returns an RDD of PredictedRating with exactly one row per input pair,
        unseen users/items fall back to the global bias +- whatever side is known.
        Output order does not follow input order.
        """
        #first join on user: (user, (item, user_factor or None)) -> keyed by item
        by_item = (users_items
            .leftOuterJoin(self.keyed_user_features())
            .map(lambda kv: (kv[1][0], (kv[0], kv[1][1]))))

        #global bias goes out once, not per record
        global_bias_b = users_items.context.broadcast(self.global_bias)
        self.broadcasts.append(global_bias_b)

        #second join on item: (item, ((user, user_factor), item_factor or None))
        def to_prediction(kv):
            item, ((user, user_factor), item_factor) = kv
            return predict_one(user, item, user_factor, item_factor, global_bias_b.value)

        return by_item.leftOuterJoin(self.keyed_item_features()).map(to_prediction)

    #run both feature rdds once so their cached blocks exist before anything older is dropped
    def materialize(self):
        self.user_features.count()
        self.item_features.count()
        return self

    #drop cached factors and the bias broadcasts, the model still works afterwards (spark recomputes)
    def unpersist(self):
        self.user_features.unpersist()
        self.item_features.unpersist()
        for broadcast in self.broadcasts:
            broadcast.unpersist()
        self.broadcasts = []
        return self

    def __repr__(self):
        kind = "streaming" if self.is_streaming else "batch"
        return "LatentMatrixFactorizationModel(%s, rank=%d, global_bias=%r, observed_examples=%r)" % (
            kind, self.rank, self.global_bias, self.observed_examples)


def first_or_none(values):
    return values[0] if values else None


#both factors present -> full formula
def get_rating(user_factor, item_factor, global_bias):
    dot = vector_utils.dot(user_factor.vector, item_factor.vector)
    return dot + float(user_factor.bias) + float(item_factor.bias) + global_bias


#the fallback ladder for cold start:
#both known -> dot + biases, one known -> global + that side's bias, none -> global average
def predict_one(user, item, user_factor, item_factor, global_bias):
    if user_factor is not None and item_factor is not None:
        rating = get_rating(user_factor, item_factor, global_bias)
    elif user_factor is not None:
        logger.warning("Item data missing for item id %d. Will use user factors.", item)
        rating = global_bias + float(user_factor.bias)
    elif item_factor is not None:
        logger.warning("User data missing for user id %d. Will use item factors.", user)
        rating = global_bias + float(item_factor.bias)
    else:
        logger.warning("Both user and item factors missing for (%d, %d). Returning global average.",
                       user, item)
        rating = global_bias
    return PredictedRating(user, item, rating)
