# imposition_solver/cli.py
# Command-line front end:
# - loads a job JSON (request + catalog), or the built-in example
# - prints the ranked options and the recommendation
# - optional JSON / CSV / PNG exports
#
# Run:
#   python -m imposition_solver --job job.json --out result.json --csv options.csv --png best.png
#   python -m imposition_solver --example --verbose

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .debug import print_result
from .engine import calculate
from .errors import EngineError, NoFeasibleLayout
from .io_csv import export_options_csv
from .io_json import load_job_json
from .logger import get_logger, set_enabled
from .sample_data import example_catalog, example_request
from .utils import result_to_dict, save_result_json, timer


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Print imposition and job pricing (digital vs offset)")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--job", type=str, help="Path to job JSON ({'request': ..., 'catalog': ...})")
    src.add_argument("--example", action="store_true", help="Run the built-in example job")
    p.add_argument("--catalog", type=str, default="", help="Separate catalog JSON (job file then holds the request)")
    p.add_argument("--out", type=str, default="", help="Write the full result as JSON")
    p.add_argument("--csv", type=str, default="", help="Write one CSV row per option")
    p.add_argument("--png", type=str, default="", help="Save a layout preview of one option")
    p.add_argument("--option", type=int, default=1, help="Option rank to draw with --png (default: best)")
    p.add_argument("--workers", type=int, default=None, help="Worker threads for candidate evaluation")
    p.add_argument("--json", action="store_true", help="Print the result JSON instead of the text summary")
    p.add_argument("--verbose", action="store_true", help="Log engine phases and timings")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    set_enabled(args.verbose)
    log = get_logger()

    try:
        if args.example:
            request, catalog = example_request(), example_catalog()
        else:
            request, catalog = load_job_json(args.job, catalog_path=args.catalog or None)

        with timer("calculate") as t:
            result = calculate(request, catalog, max_workers=args.workers)
    except NoFeasibleLayout as e:
        log.error(f"{e} (tried: {', '.join(e.attempted_sheet_sizes)})")
        return 2
    except EngineError as e:
        log.error(str(e))
        return 1

    log.info(f"calculate() took {t['seconds'] * 1000:.1f} ms")

    if args.json:
        json.dump(result_to_dict(result), sys.stdout, ensure_ascii=False, indent=2)
        print()
    else:
        print_result(result)

    if args.out:
        save_result_json(result, args.out)
        log.info(f"Saved {args.out}")
    if args.csv:
        export_options_csv(result, args.csv)
        log.info(f"Saved {args.csv}")
    if args.png:
        if not 1 <= args.option <= len(result.options):
            log.error(f"--option must be between 1 and {len(result.options)}")
            return 1
        from .plotting import save_option_png

        Path(args.png).parent.mkdir(parents=True, exist_ok=True)
        save_option_png(result.options[args.option - 1], args.png)
        log.info(f"Saved {args.png}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
