"""Allow ``python -m weave`` to launch the host."""

from __future__ import annotations

from weave.app.host import run


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
