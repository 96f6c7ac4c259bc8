"""Allow ``python -m alu_shims``."""

from alu_shims.main import main

if __name__ == "__main__":
    raise SystemExit(main())
