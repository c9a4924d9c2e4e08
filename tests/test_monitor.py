"""Monitor tests: report building, success tracking, KPI gating and log folder persistence."""

import json
import os
import tempfile
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from spark_helper.common import PrintLogger
from spark_helper.config import MonitorConfig
from spark_helper.monitoring import KpiTest, KpiType, Monitor, ThresholdType
from spark_helper.storage import Filesystem


class FakeClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingLogger(PrintLogger):
    def __init__(self):
        super().__init__(job_name="test_job", level="DEBUG")
        self.records = []

    def _write_line(self, line):
        self.records.append(json.loads(line))

    def events(self):
        return [r["msg"] for r in self.records]


class MonitorReportTest(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(datetime(2017, 3, 10, 10, 23))
        self.logger = RecordingLogger()
        self.monitor = Monitor(
            title="My Spark Job Title",
            contacts=["x@y.com"],
            description="Input data location: hdfs://my/input/data",
            logger=self.logger,
            clock=self.clock,
        )

    def test_full_report(self):
        self.monitor.add_contacts(["z@y.com"])
        self.monitor.success("Load input")
        self.clock.advance(minutes=18)
        valid = self.monitor.update_by_kpis_validation(
            [
                KpiTest("Nbr of output records", 14669071, ThresholdType.SUPERIOR_THAN, 10e6),
                KpiTest("Some pct of invalid output", 0.06, ThresholdType.INFERIOR_THAN, 3, KpiType.PCT),
            ],
            "Output checks",
        )
        self.clock.advance(seconds=47)
        self.assertTrue(valid)
        self.assertTrue(self.monitor.is_success)
        self.assertEqual(
            self.monitor.report(final=True),
            "\t\t\t\t\tMy Spark Job Title\n"
            "\n"
            "Point of contact: x@y.com, z@y.com\n"
            "Input data location: hdfs://my/input/data\n"
            "[10:23] Beginning\n"
            "[10:23-10:23] Load input: success\n"
            "[10:23-10:41] Output checks: success\n"
            "  KPI: Nbr of output records\n"
            "    Value: 14669071.0\n"
            "    Must be superior than 10000000.0\n"
            "    Validated: true\n"
            "  KPI: Some pct of invalid output\n"
            "    Value: 0.06%\n"
            "    Must be inferior than 3.0%\n"
            "    Validated: true\n"
            "[10:41] Duration: 00:18:47\n",
        )

    def test_bare_report(self):
        monitor = Monitor(logger=self.logger, clock=self.clock)
        monitor.log("Some free text")
        self.assertEqual(monitor.report(), "[10:23] Beginning\n[10:23-10:23] Some free text\n")

    def test_header_setters(self):
        self.monitor.set_title("Renamed")
        self.monitor.add_description("Output data location: hdfs://my/output/data")
        report = self.monitor.report()
        self.assertTrue(report.startswith("\t\t\t\t\tRenamed\n\n"))
        self.assertIn("Input data location: hdfs://my/input/data\nOutput data location: hdfs://my/output/data\n", report)

    def test_error_with_exception_and_diagnostic(self):
        try:
            raise ValueError("boom")
        except ValueError as exc:
            result = self.monitor.error("Parse input", exc, diagnostic="No input data!")
        self.assertFalse(result)
        self.assertFalse(self.monitor.is_success)
        report = self.monitor.report()
        self.assertIn("[10:23-10:23] Parse input: failed\n  Diagnostic: No input data!\n  Traceback (most recent call last):\n", report)
        self.assertIn("\n  ValueError: boom\n", report)
        failed = [r for r in self.logger.records if r["msg"] == "monitor_task_failed"]
        self.assertEqual(failed[0]["error_type"], "ValueError")
        self.assertEqual(failed[0]["level"], "ERROR")

    def test_error_without_exception(self):
        self.monitor.error("Check partitions")
        self.assertTrue(self.monitor.report().endswith("[10:23-10:23] Check partitions: failed\n"))

    def test_success_flag_never_recovers(self):
        self.monitor.error("Step 1")
        self.monitor.success("Step 2")
        self.assertTrue(self.monitor.update_by_kpis_validation([], "Nothing to check"))
        self.assertFalse(self.monitor.is_success)

    def test_failed_kpi_flips_success(self):
        valid = self.monitor.update_by_kpi_validation(
            KpiTest("Nbr of output records", 12, ThresholdType.SUPERIOR_THAN, 1000),
            "Output checks",
        )
        self.assertFalse(valid)
        self.assertFalse(self.monitor.is_success)
        self.assertIn("Output checks: failed\n  KPI: Nbr of output records\n", self.monitor.report())
        self.assertIn("    Validated: false\n", self.monitor.report())
        kpi_events = [r for r in self.logger.records if r["msg"] == "monitor_kpi_failed"]
        self.assertEqual(kpi_events[0]["kpi"], "Nbr of output records")
        self.assertEqual(kpi_events[0]["threshold_type"], "SUPERIOR_THAN")

    def test_task_context_manager(self):
        with self.monitor.task("Aggregate"):
            self.clock.advance(minutes=2)
        with self.assertRaises(KeyError):
            with self.monitor.task("Join", diagnostic="Missing key"):
                raise KeyError("id")
        with self.monitor.task("Optional step", swallow=True):
            raise RuntimeError("ignored")
        report = self.monitor.report()
        self.assertIn("[10:23-10:25] Aggregate: success\n", report)
        self.assertIn("[10:25-10:25] Join: failed\n  Diagnostic: Missing key\n", report)
        self.assertIn("Optional step: failed\n", report)
        self.assertFalse(self.monitor.is_success)

    def test_single_contact_string(self):
        monitor = Monitor(contacts="ops@example.com", clock=self.clock, logger=self.logger)
        monitor.add_contacts("oncall@example.com")
        self.assertEqual(
            monitor.report(),
            "Point of contact: ops@example.com, oncall@example.com\n[10:23] Beginning\n",
        )

    def test_log_records_carry_title(self):
        self.monitor.success("Load input")
        self.monitor.set_title("Renamed job")
        self.monitor.error("Write output")
        self.assertEqual(self.logger.records[0]["monitor"], "My Spark Job Title")
        self.assertEqual(self.logger.records[0]["msg"], "monitor_task_success")
        self.assertEqual(self.logger.records[-1]["monitor"], "Renamed job")
        self.assertEqual(self.logger.records[-1]["msg"], "monitor_task_failed")

    def test_store_requires_log_folder(self):
        with self.assertRaises(ValueError):
            self.monitor.store()
        with self.assertRaises(ValueError):
            self.monitor.purge_logs(3)


class MonitorPersistenceTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.folder = os.path.join(self._tmp.name, "logs")
        self.clock = FakeClock(datetime(2017, 3, 10, 10, 23))
        self.logger = RecordingLogger()

    def tearDown(self):
        self._tmp.cleanup()

    def _monitor(self, **kwargs):
        return Monitor(title="Job", logger=self.logger, clock=self.clock, log_folder=self.folder, **kwargs)

    def _read(self, name, folder=None):
        with open(os.path.join(folder or self.folder, name), "r", encoding="utf-8") as handle:
            return handle.read()

    def test_ongoing_file_follows_updates(self):
        monitor = self._monitor()
        self.assertEqual(self._read("current.ongoing"), "\t\t\t\t\tJob\n\n[10:23] Beginning\n")
        self.clock.advance(minutes=5)
        monitor.success("Load")
        self.assertEqual(self._read("current.ongoing"), monitor.report())
        self.assertIn("[10:23-10:28] Load: success\n", self._read("current.ongoing"))

    def test_store_success_report(self):
        monitor = self._monitor()
        monitor.success("Load")
        self.clock.advance(minutes=18, seconds=3)
        path = monitor.store()
        self.assertEqual(path, os.path.join(self.folder, "20170310_1041.success"))
        self.assertFalse(os.path.exists(os.path.join(self.folder, "current.ongoing")))
        content = self._read("20170310_1041.success")
        self.assertTrue(content.endswith("[10:41] Duration: 00:18:03\n"))
        self.assertIn("monitor_report_stored", self.logger.events())

    def test_store_failed_report(self):
        monitor = self._monitor()
        monitor.error("Load")
        path = monitor.store()
        self.assertTrue(path.endswith("20170310_1023.failed"))

    def test_store_to_other_folder(self):
        monitor = self._monitor()
        other = os.path.join(self._tmp.name, "archive")
        path = monitor.store(other)
        self.assertEqual(path, os.path.join(other, "20170310_1023.success"))
        self.assertFalse(os.path.exists(os.path.join(self.folder, "current.ongoing")))

    def test_ongoing_failure_is_logged_not_raised(self):
        monitor = self._monitor()
        with patch.object(Filesystem, "write_text", side_effect=OSError("disk full")):
            monitor.success("Load")
        self.assertIn("monitor_ongoing_store_failed", self.logger.events())
        self.assertTrue(monitor.is_success)

    def test_purge_logs(self):
        os.makedirs(self.folder)
        old = os.path.join(self.folder, "20170201_1000.success")
        with open(old, "w", encoding="utf-8") as handle:
            handle.write("old report")
        stamp = (self.clock() - timedelta(days=30)).timestamp()
        os.utime(old, (stamp, stamp))
        monitor = self._monitor()
        deleted = monitor.purge_logs(7)
        self.assertEqual(deleted, [old])
        self.assertTrue(os.path.exists(os.path.join(self.folder, "current.ongoing")))
        with self.assertRaises(ValueError):
            monitor.purge_logs(-2)

    def test_store_reads_clock_once(self):
        ticks = iter([datetime(2017, 3, 10, 10, 41, 59), datetime(2017, 3, 10, 10, 42, 1)])
        monitor = self._monitor()
        with patch.object(monitor, "clock", side_effect=lambda: next(ticks)):
            path = monitor.store()
        self.assertTrue(path.endswith("20170310_1041.success"))
        self.assertTrue(self._read("20170310_1041.success").endswith("[10:41] Duration: 00:18:59\n"))

    def test_stored_event(self):
        monitor = self._monitor()
        monitor.store()
        stored = [r for r in self.logger.records if r["msg"] == "monitor_report_stored"]
        self.assertEqual(stored[0]["event"], "monitor_report_stored")
        self.assertEqual(stored[0]["monitor"], "Job")
        self.assertTrue(stored[0]["success"])

    def test_from_config_purges_and_applies_formats(self):
        os.makedirs(self.folder)
        old = os.path.join(self.folder, "170201.failed")
        with open(old, "w", encoding="utf-8") as handle:
            handle.write("old report")
        stamp = (self.clock() - timedelta(days=10)).timestamp()
        os.utime(old, (stamp, stamp))
        cfg = MonitorConfig(
            title="Configured job",
            contacts=["ops@example.com"],
            log_folder=self.folder,
            purge_window_days=5,
            time_format="HH'h'mm",
            file_date_format="yyMMdd",
        )
        monitor = Monitor.from_config(cfg, logger=self.logger, clock=self.clock)
        self.assertFalse(os.path.exists(old))
        monitor.success("Load")
        self.assertIn("[10h23-10h23] Load: success\n", monitor.report())
        self.assertTrue(monitor.store().endswith("170310.success"))


class MonitorHdfsTest(unittest.TestCase):
    def setUp(self):
        self.spark = MagicMock()
        fs_pkg = self.spark.sparkContext._jvm.org.apache.hadoop.fs
        self.Path = fs_pkg.Path
        self.hfs = fs_pkg.FileSystem.get.return_value
        self.stream = self.hfs.create.return_value
        self.clock = FakeClock(datetime(2017, 3, 10, 10, 23))
        self.monitor = Monitor(
            title="Job",
            log_folder="hdfs:///logs/job",
            logger=RecordingLogger(),
            spark=self.spark,
            clock=self.clock,
        )

    def _written(self):
        return [bytes(c.args[0]).decode("utf-8") for c in self.stream.write.call_args_list]

    def test_ongoing_report_written_to_hdfs(self):
        self.Path.assert_any_call("hdfs:///logs/job/current.ongoing")
        self.hfs.create.assert_called_with(self.Path.return_value, True)
        self.assertEqual(self._written()[-1], "\t\t\t\t\tJob\n\n[10:23] Beginning\n")
        self.monitor.success("Load")
        self.assertIn("[10:23-10:23] Load: success\n", self._written()[-1])

    def test_store_writes_report_and_removes_ongoing(self):
        self.hfs.exists.return_value = True
        self.clock.advance(minutes=5)
        path = self.monitor.store()
        self.assertEqual(path, "hdfs:///logs/job/20170310_1028.success")
        self.Path.assert_any_call("hdfs:///logs/job/20170310_1028.success")
        self.assertTrue(self._written()[-1].endswith("[10:28] Duration: 00:05:00\n"))
        self.assertEqual(self.Path.call_args_list[-1].args, ("hdfs:///logs/job/current.ongoing",))
        self.hfs.delete.assert_called_once_with(self.Path.return_value, False)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
