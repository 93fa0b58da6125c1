from __future__ import annotations

import argparse
import dataclasses
import logging
from typing import Optional

from airport_importer.config import get_settings

from .base import CrawlError, canonical_json
from .page import Page
from .pipeline import write_json, write_jsonl
from .spiders.world_airport_codes_spider import WorldAirportCodesSpider

logger = logging.getLogger(__name__)


def run_import(*, out_dir: str, fmt: str = "json", verbose: bool = True, **overrides) -> str:
    settings = get_settings()
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings = dataclasses.replace(settings, **overrides)
    spider = WorldAirportCodesSpider(settings=settings, verbose=verbose)
    records = spider.fetch()
    writer = write_jsonl if fmt == "jsonl" else write_json
    return writer(records, out_dir=out_dir, filename_prefix="airports")


def main(argv: Optional[list] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Import airports from World Airport Codes")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    # Also accepted after the subcommand; SUPPRESS keeps a leading --quiet from being reset
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--quiet", action="store_true", default=argparse.SUPPRESS, help="Only log warnings and errors")
    sub = parser.add_subparsers(dest="cmd", required=True)

    crawl = sub.add_parser("crawl", parents=[common], help="Crawl all index and detail pages and export the airports")
    crawl.add_argument("--out-dir", default=settings.output_dir, help="Output directory for exports")
    crawl.add_argument("--format", dest="fmt", choices=("json", "jsonl"), default="json")
    crawl.add_argument("--base-url", default=None, help="Site root (default: WAC_BASE_URL)")
    crawl.add_argument("--concurrency", type=int, default=None, help="Max requests in flight")

    detail = sub.add_parser("detail", parents=[common], help="Parse a saved airport detail page")
    detail.add_argument("file", help="Local HTML file path")
    detail.add_argument("--url", help="URL the page was saved from")

    index = sub.add_parser("index", parents=[common], help="List the airport links of a saved index page")
    index.add_argument("file", help="Local HTML file path")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "crawl":
        try:
            path = run_import(
                out_dir=args.out_dir,
                fmt=args.fmt,
                verbose=not args.quiet,
                base_url=args.base_url,
                concurrency=args.concurrency,
            )
        except CrawlError as exc:
            logger.error("Import aborted: %s", exc)
            return 1
        print(path)
        return 0

    if args.cmd == "detail":
        page = Page.from_file(args.file, url=args.url)
        try:
            record = WorldAirportCodesSpider(settings=settings).parse_airport_page(page)
        except CrawlError as exc:
            logger.error("Cannot parse %s: %s", args.file, exc)
            return 1
        print(canonical_json(record.to_dict()))
        return 0

    if args.cmd == "index":
        page = Page.from_file(args.file)
        for uri in WorldAirportCodesSpider.extract_detail_links(page):
            print(uri)
        return 0

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
