#!/usr/bin/env python3
"""
Issue a development access token signed with the local JWT settings.

Production tokens come from the identity provider. This is only for local
testing of the booking API.

Usage:
    python scripts/issue_dev_token.py --user-id <UUID> [--minutes 60]
"""

import argparse
import sys
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from jose import jwt  # noqa: E402

from app.config import settings  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("--user-id", default=None, help="Subject UUID (random if omitted)")
    parser.add_argument("--minutes", type=int, default=60, help="Lifetime in minutes")
    args = parser.parse_args()

    subject = args.user_id or str(uuid.uuid4())
    claims = {
        "sub": subject,
        "exp": datetime.now(UTC) + timedelta(minutes=args.minutes),
    }
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer

    if settings.environment == "production":
        print("ERROR: refusing to issue tokens in production")
        sys.exit(1)

    print(f"sub: {subject}")
    print(jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm))


if __name__ == "__main__":
    main()
