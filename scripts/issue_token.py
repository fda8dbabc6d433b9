"""Print a bearer token for local testing.

Usage: python scripts/issue_token.py <user_id> <role>
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.section_attendance.section_attendance.auth.identity import Identity, TokenDecoder
from src.section_attendance.section_attendance.core.enums import Role


def main(argv: list[str]) -> int:
    if len(argv) != 3:
        print(__doc__.strip())
        return 2
    settings = importlib.import_module(get_settings_module())
    decoder = TokenDecoder(settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    print(decoder.encode(Identity(user_id=argv[1], role=Role(argv[2]))))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
