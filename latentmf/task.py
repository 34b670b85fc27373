#latentmf task
#usage: spark-submit task.py <train_files> <test_file> <output_file> [rank] [seed]
#train_files is comma separated, every file is one streaming batch (oldest first)
#csv rows are user_id, item_id, rating (test file rating column optional)
#output format is: user_id, item_id, prediction

import sys
import os
import csv
import math
import time

from latentmf import config
from latentmf.latent import Rating
from latentmf.params import LatentMatrixFactorizationParams
from latentmf.streaming import StreamingLatentMatrixFactorization

usage = "Usage: spark-submit task.py <train_files> <test_file> <output_file> [rank] [seed]"


#taken from past assignments, rank/seed are optional here
def check_inputs(argv=None):
    argv = sys.argv if argv is None else argv
    if len(argv) not in (4, 6):
        print(usage, file=sys.stderr)
        sys.exit(1)

    train_paths = [path for path in argv[1].split(",") if path.strip()]
    if not train_paths:
        print(usage, file=sys.stderr)
        sys.exit(1)

    rank, seed = config.default_rank, config.default_seed
    if len(argv) == 6:
        try:
            rank = int(argv[4])
            seed = int(argv[5])
            if rank < 1:
                raise ValueError
        except ValueError:
            print("rank must be a positive integer and seed an integer", file=sys.stderr)
            sys.exit(1)

    return train_paths, argv[2], argv[3], rank, seed


def to_file_path(path):
    path = os.path.abspath(path).replace("\\", "/")
    if not path.startswith("file:/"):
        path = "file:///" + path
    return path


def parse_id(value):
    try:
        return int(value.strip())
    except ValueError:
        return None


#skip headers, blanks and anything that does not parse
def read_train_rows(lines_iterator):
    for row in csv.reader(lines_iterator):
        if not row or len(row) < 3:
            continue
        user_id = parse_id(row[0])
        item_id = parse_id(row[1])
        if user_id is None or item_id is None:
            continue
        try:
            rating = float(row[2].strip())
        except ValueError:
            continue
        yield Rating(user_id, item_id, rating)


#test rows may or may not carry a rating, None when missing
def read_test_rows(lines_iterator):
    for row in csv.reader(lines_iterator):
        if not row or len(row) < 2:
            continue
        user_id = parse_id(row[0])
        item_id = parse_id(row[1])
        if user_id is None or item_id is None:
            continue
        rating = None
        if len(row) >= 3:
            try:
                rating = float(row[2].strip())
            except ValueError:
                rating = None
        yield (user_id, item_id, rating)


def load_ratings_rdd(spark_context, path):
    #cached, every batch is read by isEmpty, the sum/count fold and both factor joins
    rdd = spark_context.textFile(to_file_path(path))
    return rdd.mapPartitions(read_train_rows).cache()


def load_test_rdd(spark_context, path):
    return spark_context.textFile(to_file_path(path)).mapPartitions(read_test_rows)


def write_output(path, predictions):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["user_id", "item_id", "prediction"])
        for user_id, item_id, prediction in predictions:
            writer.writerow([user_id, item_id, prediction])


#rmse over the pairs that have a known rating, None if there are none
def compute_rmse(predictions, truth):
    squared_error = 0.0
    count = 0
    for user_id, item_id, prediction in predictions:
        actual = truth.get((user_id, item_id))
        if actual is None:
            continue
        squared_error += (prediction - actual) ** 2
        count += 1
    if count == 0:
        return None
    return math.sqrt(squared_error / count)


#spark_context is for callers that already run spark (tests), they keep ownership of it
def main(argv=None, spark_context=None):
    start_time = time.time()
    train_paths, test_path, out_path, rank, seed = check_inputs(argv)

    config.configure_logging()
    owns_context = spark_context is None
    if owns_context:
        spark_context = config.make_spark_context()

    try:
        params = LatentMatrixFactorizationParams(rank=rank, seed=seed)
        trainer = StreamingLatentMatrixFactorization(params)
        for train_path in train_paths:
            ratings_rdd = load_ratings_rdd(spark_context, train_path)
            trainer.train_on(ratings_rdd)
            #train_on already materialized the merged factors
            ratings_rdd.unpersist()

        model = trainer.latest_model()
        if model is None:
            print("No ratings found in the training files", file=sys.stderr)
            sys.exit(1)

        #(user, item, rating or None)
        test_rdd = load_test_rdd(spark_context, test_path).cache()
        predictions = model.predict_all(test_rdd.map(lambda t: (t[0], t[1]))).collect()
        write_output(out_path, predictions)

        truth = dict(((u, i), r) for u, i, r in test_rdd.collect() if r is not None)
        rmse = compute_rmse(predictions, truth)
        if rmse is not None:
            print(f"RMSE: {rmse:.6f}")
        test_rdd.unpersist()
        model.unpersist()
    finally:
        if owns_context:
            spark_context.stop()

    elapsed = time.time() - start_time
    print(f"Total elapsed time: {elapsed:.2f} seconds")


if __name__ == "__main__":
    main()
