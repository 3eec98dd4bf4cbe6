"""Entry point for ``python -m tflsctl.cli``."""

from tflsctl.cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
