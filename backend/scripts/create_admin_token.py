#!/usr/bin/env python3
"""
Mint an admin JWT for the admin API.

Usage:
    python scripts/create_admin_token.py --sub ops@clinic --hours 8

The token is signed with SECRET_KEY from the environment / .env, so it is
only accepted by deployments sharing that key.
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.security import ADMIN_ROLE, create_access_token  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Create an admin bearer token")
    parser.add_argument("--sub", default="admin", help="Token subject (admin username)")
    parser.add_argument("--hours", type=float, default=8.0, help="Token lifetime in hours")
    args = parser.parse_args()

    token = create_access_token(
        {"sub": args.sub, "role": ADMIN_ROLE},
        expires_delta=timedelta(hours=args.hours),
    )
    print(token)


if __name__ == "__main__":
    main()
