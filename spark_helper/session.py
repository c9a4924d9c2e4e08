from __future__ import annotations

from typing import Any, Dict, Optional

from pyspark.sql import SparkSession


def spark_session_from_config(runtime: Optional[Dict[str, Any]] = None) -> SparkSession:
    """Build (or reuse) the driver's SparkSession from the ``runtime`` config section."""
    runtime = runtime or {}
    active = SparkSession.getActiveSession()
    if active is not None:
        return active
    builder = SparkSession.builder.appName(runtime.get("app_name", "spark_helper"))
    if runtime.get("master"):
        builder = builder.master(runtime["master"])
    if runtime.get("timezone"):
        builder = builder.config("spark.sql.session.timeZone", runtime["timezone"])
    extra_conf: Dict[str, Any] = runtime.get("spark_conf", {})
    for key, value in extra_conf.items():
        builder = builder.config(key, value)
    if runtime.get("enable_hive_support", False):
        builder = builder.enableHiveSupport()
    return builder.getOrCreate()
