# imposition_solver/__main__.py
# Package entrypoint so you can run:
#   python -m imposition_solver --help
# and it will delegate to the CLI.
#
# Examples:
#   python -m imposition_solver --example
#   python -m imposition_solver --job job.json --out result.json --png best.png

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
