import pytest
from pyspark import SparkConf, SparkContext

from latentmf.latent import Rating


@pytest.fixture(scope="session")
def sc():
    spark_conf = SparkConf().setAppName("latentmf-tests").setMaster("local[2]")
    spark_context = SparkContext.getOrCreate(conf=spark_conf)
    spark_context.setLogLevel("ERROR")
    yield spark_context
    spark_context.stop()


@pytest.fixture
def small_ratings(sc):
    return sc.parallelize([
        Rating(1, 1, 4.0),
        Rating(1, 2, 2.0),
        Rating(2, 1, 5.0),
    ], 2)


def factors_by_id(features):
    return dict((entry.id, entry.latent) for entry in features.collect())
