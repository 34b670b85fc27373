import logging

import numpy as np
import pytest

from latentmf.errors import VectorLengthMismatch
from latentmf.initializer import initialize
from latentmf.latent import LatentFactor, LatentID
from latentmf.model import LatentMatrixFactorizationModel, get_rating, predict_one
from latentmf.params import LatentMatrixFactorizationParams

from .conftest import factors_by_id


@pytest.fixture
def user_factor():
    return LatentFactor(0.5, [1.0, 2.0])


@pytest.fixture
def item_factor():
    return LatentFactor(0.25, [3.0, -1.0])


@pytest.fixture
def fixed_model(sc, user_factor, item_factor):
    users = sc.parallelize([LatentID(1, user_factor), LatentID(2, LatentFactor(-0.5, [0.0, 1.0]))], 2)
    items = sc.parallelize([LatentID(10, item_factor)], 2)
    return LatentMatrixFactorizationModel(2, users, items, 3.0)


class TestPredictOne:
    def test_both_present(self, user_factor, item_factor, caplog):
        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            result = predict_one(1, 10, user_factor, item_factor, 3.0)
        assert result.user == 1 and result.item == 10
        assert result.rating == pytest.approx(1.0 + 0.5 + 0.25 + 3.0)
        assert caplog.records == []

    def test_user_only_uses_user_bias(self, user_factor, caplog):
        #fallback returns global + user bias, not a flat 0.0
        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            result = predict_one(1, 99, user_factor, None, 3.0)
        assert result.rating == pytest.approx(3.5)
        assert result.rating != 0.0
        assert "Item data missing for item id 99" in caplog.text

    def test_item_only_uses_item_bias(self, item_factor, caplog):
        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            result = predict_one(42, 10, None, item_factor, 3.0)
        assert result.rating == pytest.approx(3.25)
        assert "User data missing for user id 42" in caplog.text

    def test_neither_returns_global_bias(self, caplog):
        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            result = predict_one(42, 99, None, None, 3.0)
        assert result.rating == 3.0
        assert "Both user and item factors missing for (42, 99)" in caplog.text
        assert caplog.records[0].levelno == logging.WARNING

    def test_get_rating_length_mismatch(self, user_factor):
        with pytest.raises(VectorLengthMismatch):
            get_rating(user_factor, LatentFactor(0.0, [1.0]), 0.0)


class TestModel:
    def test_variant_tag(self, fixed_model, sc):
        assert not fixed_model.is_streaming
        streaming = LatentMatrixFactorizationModel.streaming(
            2, fixed_model.user_features, fixed_model.item_features, 3.0, 10)
        assert streaming.is_streaming
        assert streaming.observed_examples == 10

    def test_negative_observed_examples(self, fixed_model):
        with pytest.raises(ValueError):
            LatentMatrixFactorizationModel(2, fixed_model.user_features, fixed_model.item_features, 3.0, -1)

    def test_predict_single(self, fixed_model):
        assert fixed_model.predict(1, 10) == pytest.approx(4.75)
        assert fixed_model.predict(2, 10) == pytest.approx(-1.0 - 0.5 + 0.25 + 3.0)

    def test_predict_single_unseen(self, fixed_model, caplog):
        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            assert fixed_model.predict(7, 10) == pytest.approx(3.25)
            assert fixed_model.predict(1, 70) == pytest.approx(3.5)
            assert fixed_model.predict(7, 70) == pytest.approx(3.0)
        assert len(caplog.records) == 3

    def test_predict_all_completeness(self, fixed_model, sc):
        pairs = [(1, 10), (2, 10), (7, 10), (1, 70), (7, 70), (2, 10)]
        results = fixed_model.predict_all(sc.parallelize(pairs, 3)).collect()
        assert len(results) == len(pairs)
        assert sorted((r.user, r.item) for r in results) == sorted(pairs)

        by_pair = dict(((r.user, r.item), r.rating) for r in results)
        assert by_pair[(1, 10)] == pytest.approx(4.75)
        assert by_pair[(7, 10)] == pytest.approx(3.25)
        assert by_pair[(1, 70)] == pytest.approx(3.5)
        assert by_pair[(7, 70)] == pytest.approx(3.0)

    def test_predict_all_ignores_input_order(self, fixed_model, sc):
        pairs = [(1, 10), (2, 10), (7, 70)]
        forward = fixed_model.predict_all(sc.parallelize(pairs, 2)).collect()
        backward = fixed_model.predict_all(sc.parallelize(list(reversed(pairs)), 2)).collect()
        assert sorted(forward) == sorted(backward)


class TestInitializedModelPrediction:
    def test_small_scenario(self, small_ratings, caplog):
        params = LatentMatrixFactorizationParams(rank=2, seed=7)
        model, _ = initialize(small_ratings, params)
        users = factors_by_id(model.user_features)
        items = factors_by_id(model.item_features)

        u, i = users[1], items[1]
        expected = float(np.dot(u.vector, i.vector)) + float(u.bias) + float(i.bias) + 11.0 / 3.0
        assert model.predict(1, 1) == pytest.approx(expected, rel=1e-6)

        #same seed on a rerun gives the same prediction
        again, _ = initialize(small_ratings, params)
        assert again.predict(1, 1) == pytest.approx(model.predict(1, 1), rel=1e-6)

        with caplog.at_level(logging.WARNING, logger="latentmf.model"):
            unseen = model.predict(3, 1)
        assert "User data missing for user id 3" in caplog.text
        assert unseen == pytest.approx(11.0 / 3.0 + float(i.bias), rel=1e-6)

    def test_predict_all_after_initialize(self, small_ratings, sc):
        model, _ = initialize(small_ratings, LatentMatrixFactorizationParams(rank=2, seed=7))
        pairs = [(1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 3)]
        results = model.predict_all(sc.parallelize(pairs, 2)).collect()
        assert sorted((r.user, r.item) for r in results) == sorted(pairs)
        by_pair = dict(((r.user, r.item), r.rating) for r in results)
        assert by_pair[(1, 1)] == pytest.approx(model.predict(1, 1), rel=1e-6)
        assert by_pair[(3, 3)] == pytest.approx(model.global_bias)


class TestRelease:
    def test_unpersist_drops_cache_and_broadcasts(self, small_ratings, sc):
        model, _ = initialize(small_ratings, LatentMatrixFactorizationParams(rank=2, seed=7))
        model.materialize()
        assert model.user_features.is_cached
        assert model.item_features.is_cached

        predictions = model.predict_all(sc.parallelize([(1, 1), (3, 3)], 2))
        expected = sorted(predictions.collect())
        assert len(model.broadcasts) == 1

        model.unpersist()
        assert model.broadcasts == []
        assert not model.user_features.is_cached
        assert not model.item_features.is_cached
        #still usable, spark recomputes
        assert sorted(predictions.collect()) == expected
        assert model.predict(1, 1) == pytest.approx(dict(((r.user, r.item), r.rating) for r in expected)[(1, 1)])
