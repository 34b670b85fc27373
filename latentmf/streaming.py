#streaming driver: push ratings batches one at a time through initialize (+ an optional update step)
#the update step is whatever optimizer the caller plugs in, it gets the initialized model and the batch

import logging

from .initializer import initialize

logger = logging.getLogger(__name__)


class StreamingLatentMatrixFactorization:

    def __init__(self, params, update_fn=None, initial_model=None):
        self.params = params
        self.update_fn = update_fn
        self.model = initial_model
        self.batches_seen = 0

    def latest_model(self):
        return self.model

    #one batch: merge new ids + fold the ratings into the running global bias, then optimize
    def train_on(self, ratings):
        if ratings.isEmpty():
            logger.info("Skipping empty ratings batch")
            return self.model

        previous = self.model
        initialized, num_ratings = initialize(ratings, self.params, previous, is_streaming=True)

        model = initialized
        if self.update_fn is not None:
            updated = self.update_fn(initialized, ratings)
            #the optimizer has to hand back the same kind of model it got
            if updated.rank != initialized.rank:
                raise ValueError(f"update changed model rank from {initialized.rank} to {updated.rank}")
            if not updated.is_streaming:
                raise ValueError("update must return a streaming model")
            model = updated

        #fill the new cache before dropping the old one, otherwise the next batch recomputes the whole history
        model.materialize()
        release_stale(model, previous, initialized)

        self.model = model
        self.batches_seen += 1
        logger.info("Batch %d: %d ratings, %d observed in total",
                    self.batches_seen, num_ratings, model.observed_examples)
        return model

    def train_on_batches(self, batches):
        for ratings in batches:
            self.train_on(ratings)
        return self.model


#unpersist feature rdds of superseded models, skipping any the live model still uses
def release_stale(model, *stale_models):
    live = (model.user_features, model.item_features)
    for stale in stale_models:
        if stale is None or stale is model:
            continue
        for features in (stale.user_features, stale.item_features):
            if not any(features is rdd for rdd in live):
                features.unpersist()
        for broadcast in stale.broadcasts:
            broadcast.unpersist()
        stale.broadcasts = []
