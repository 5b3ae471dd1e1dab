# backend/cma_engine/cli/__main__.py
from __future__ import annotations

import argparse
from pathlib import Path

from cma_engine.cli.commands import cmd_generate, cmd_import_sales, cmd_reap_stale
from cma_engine.logging_config import configure_logging


def main() -> None:
    p = argparse.ArgumentParser(prog="cma_engine")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import-sales", help="load a sold-properties CSV into property_sales")
    imp.add_argument("csv_path", type=Path)
    imp.add_argument("--source", default="csv")

    reap = sub.add_parser("reap-stale", help="mark reports stuck in processing as error")
    reap.add_argument("--older-than-minutes", type=int, default=None)

    gen = sub.add_parser("generate", help="generate a CMA report")
    gen.add_argument("--user-id", type=int, default=1)
    gen.add_argument("--zip", dest="zip_code", required=True)
    gen.add_argument("--property-type", required=True)
    gen.add_argument("--bedrooms", type=int, required=True)
    gen.add_argument("--bathrooms", type=float, required=True)
    gen.add_argument("--sqft", type=int, required=True)
    gen.add_argument("--year-built", type=int, default=None)
    gen.add_argument("--lot-size", type=int, default=None)
    gen.add_argument("--pricing-tier", default="basic", choices=["basic", "premium", "enterprise"])
    gen.add_argument("--max-comparables", type=int, default=None)

    args = p.parse_args()
    configure_logging()

    if args.command == "import-sales":
        out = cmd_import_sales(args.csv_path, source=args.source)
    elif args.command == "reap-stale":
        out = cmd_reap_stale(older_than_minutes=args.older_than_minutes)
    else:
        out = cmd_generate(args)

    print(out)


if __name__ == "__main__":
    main()
