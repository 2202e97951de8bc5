from __future__ import annotations

from treesum.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
