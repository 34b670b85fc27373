#run time settings and spark/log wiring

import logging

from pyspark import SparkConf, SparkContext

# =========================
# adjustables
# =========================

#latent vector length when nothing is passed on the command line
default_rank = 10

#base seed for the per partition factor generators
default_seed = 42

app_name = "latentmf"

#spark is very chatty, keep it quiet like the homework runs
spark_log_level = "ERROR"

log_level = logging.INFO
log_format = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# =========================
# wiring
# =========================

def configure_logging(level=log_level):
    logging.basicConfig(level=level, format=log_format)


#master=None leaves it to spark-submit
def make_spark_context(name=app_name, master=None):
    spark_conf = SparkConf().setAppName(name)
    if master is not None:
        spark_conf = spark_conf.setMaster(master)
    spark_context = SparkContext.getOrCreate(conf=spark_conf)
    spark_context.setLogLevel(spark_log_level)
    return spark_context
