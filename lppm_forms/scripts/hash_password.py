"""Print a bcrypt hash for a new `admin` row.

    python -m lppm_forms.scripts.hash_password            # prompts
    python -m lppm_forms.scripts.hash_password secret123
"""

from __future__ import annotations

import getpass
import sys

from lppm_forms.core.security import hash_password


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    password = args[0] if args else getpass.getpass("Password: ")
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
