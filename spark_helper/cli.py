from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .common import PrintLogger
from .config import MonitorConfig, load_config
from .dates import DEFAULT_NOW_FORMAT, DateHelper
from .monitoring import list_reports, ongoing_report
from .session import spark_session_from_config
from .storage import Filesystem, is_hdfs_path, purge_folder


class _Context:
    """Resolved log folder, its filesystem and the optional Spark session behind it."""

    def __init__(self, args: argparse.Namespace) -> None:
        cfg: Optional[MonitorConfig] = load_config(args.config) if args.config else None
        self.folder = args.log_folder or (cfg.log_folder if cfg else None)
        if not self.folder:
            raise ValueError("A log folder is required (--log-folder or monitor.log_folder in --config)")
        self.file_date_format = cfg.file_date_format if cfg else DEFAULT_NOW_FORMAT
        self.logger = PrintLogger(
            job_name=cfg.job_name if cfg else "spark_helper_cli",
            file_path=cfg.log_file if cfg else None,
            level=args.log_level,
        )
        self.spark = None
        if is_hdfs_path(self.folder):
            self.spark = spark_session_from_config(cfg.runtime if cfg else None)
        self.fs = Filesystem.for_root(self.folder, self.spark)
        self.dates = DateHelper()

    def close(self) -> None:
        if self.spark is not None:
            self.spark.stop()


def cmd_status(ctx: _Context, args: argparse.Namespace) -> int:
    print(f"Log folder: {ctx.folder}")
    ongoing = ongoing_report(ctx.fs)
    if ongoing is None:
        print("Ongoing run: no")
    else:
        last = ongoing.rstrip("\n").splitlines()[-1] if ongoing.strip() else ""
        print(f"Ongoing run: yes  {last}")
    reports = list_reports(ctx.fs, dates=ctx.dates, file_date_format=ctx.file_date_format)
    if args.limit:
        reports = reports[: args.limit]
    if not reports:
        print("No stored reports.")
        return 0
    print("{:<8} {:<17} {}".format("Status", "Finished at", "Report"))
    for report in reports:
        print(
            "{:<8} {:<17} {}".format(
                report.status,
                report.finished_at.strftime("%Y-%m-%d %H:%M"),
                report.name,
            )
        )
    return 0


def cmd_show(ctx: _Context, args: argparse.Namespace) -> int:
    if args.ongoing:
        text = ongoing_report(ctx.fs)
        if text is None:
            sys.stderr.write(f"No ongoing report in {ctx.folder}\n")
            return 1
        sys.stdout.write(text)
        return 0
    reports = list_reports(ctx.fs, dates=ctx.dates, file_date_format=ctx.file_date_format)
    if args.name:
        reports = [r for r in reports if r.name == args.name]
    if not reports:
        sys.stderr.write(f"No matching report in {ctx.folder}\n")
        return 1
    sys.stdout.write(ctx.fs.read_text(reports[0].path))
    return 0


def cmd_purge(ctx: _Context, args: argparse.Namespace) -> int:
    if args.days < 0:
        sys.stderr.write(f"--days must be non-negative, got {args.days}\n")
        return 2
    deleted = purge_folder(ctx.fs, "", args.days, ctx.dates, ctx.logger)
    for path in deleted:
        print(f"deleted {path}")
    print(f"Purged {len(deleted)} file(s) older than {args.days} day(s) from {ctx.folder}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    # Accepted before or after the subcommand; SUPPRESS keeps a subparser from
    # resetting a value given at the top level.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="Job JSON config holding a monitor section")
    common.add_argument(
        "--log-folder", default=argparse.SUPPRESS, help="Monitor log folder (local path or hdfs://)"
    )
    common.add_argument("--log-level", default=argparse.SUPPRESS, help="Structured log level for this tool")

    parser = argparse.ArgumentParser(
        description="Inspect and maintain job monitor log folders", parents=[common]
    )
    parser.set_defaults(config=None, log_folder=None, log_level="INFO")
    sub = parser.add_subparsers(dest="command")

    status = sub.add_parser(
        "status", parents=[common], help="Show whether a run is ongoing and list stored reports"
    )
    status.add_argument("--limit", type=int, default=0, help="Only list the N most recent reports")
    status.set_defaults(func=cmd_status)

    show = sub.add_parser("show", parents=[common], help="Print a stored report (latest by default)")
    show.add_argument("--name", help="Report file name, e.g. 20170310_1047.success")
    show.add_argument("--ongoing", action="store_true", help="Print the report of the running job")
    show.set_defaults(func=cmd_show)

    purge = sub.add_parser("purge", parents=[common], help="Delete reports older than N days")
    purge.add_argument("--days", type=int, required=True)
    purge.set_defaults(func=cmd_purge)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    try:
        ctx = _Context(args)
    except (ValueError, OSError) as exc:
        parser.error(str(exc))
    try:
        return args.func(ctx, args)
    finally:
        ctx.close()


def run_cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run_cli()
