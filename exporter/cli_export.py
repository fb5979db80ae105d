from __future__ import annotations

import argparse
from pathlib import Path

from common.config import load_yaml_config, settings, yaml_config
from common.logger import get_logger
from exporter.dedup import build_deduplicator
from exporter.errors import ExportError, IndexReadError
from exporter.export_pipeline import run_export
from exporter.filters import DECODE_POLICIES
from indexstore.base import IndexStoreError
from indexstore.jsonl_store import JsonlIndex

log = get_logger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Export text inscriptions to a timestamped CSV file."
    )
    parser.add_argument(
        "--config", type=str, default="", help="YAML config overriding the default"
    )
    parser.add_argument(
        "--index",
        type=str,
        default="",
        help="Index snapshot (JSONL); defaults to EXPORT_INDEX_PATH or config",
    )
    parser.add_argument(
        "--output-dir", type=str, default="", help="Where to create the CSV file"
    )
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument(
        "--decode-errors",
        type=str,
        default=None,
        choices=list(DECODE_POLICIES),
        help="What to do with text bodies that are not valid UTF-8",
    )
    parser.add_argument("--dedup", type=str, default=None, choices=["exact", "bloom"])
    parser.add_argument("--no-progress", action="store_true")
    args = parser.parse_args(argv)

    if args.page_size is not None and args.page_size < 1:
        parser.error("--page-size must be positive")

    cfg = yaml_config
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            log.error("Config file does not exist: %s", config_path)
            raise SystemExit(1)
        cfg = load_yaml_config(config_path)

    index_path = Path(args.index or settings.index_path or cfg.index.path)
    dedup = build_deduplicator(
        args.dedup or cfg.dedup.mode,
        capacity=cfg.dedup.capacity,
        error_rate=cfg.dedup.error_rate,
    )

    try:
        try:
            index = JsonlIndex(index_path)
        except IndexStoreError as e:
            raise IndexReadError(str(e)) from e

        summary = run_export(
            index,
            output_dir=Path(args.output_dir or cfg.export.output_dir),
            page_size=args.page_size or cfg.export.page_size,
            decode_errors=args.decode_errors or cfg.export.decode_errors,
            dedup=dedup,
            link_template=cfg.export.link_template,
            show_progress=False if args.no_progress else cfg.export.show_progress,
            filename_format=cfg.export.filename_format,
        )
    except ExportError as e:
        log.error("Export failed: %s", e)
        raise SystemExit(1)

    log.info("Wrote %d rows to %s", summary.exported, summary.path)


if __name__ == "__main__":
    main()
