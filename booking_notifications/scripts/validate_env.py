"""Validate .env file completeness against configuration requirements.

Checks that all required configuration variables are present in the
environment (after loading .env). SMTP credentials are only required when
EMAIL_DEBUG_MODE is off.

Author: Odiseo
Created: 2025-10-18
"""

import os
import sys
from pathlib import Path

import dotenv

# Required configuration variables
REQUIRED_VARS = {
    # Database
    "DATABASE_URL",
    "SCHEMA_NAME",
    # Front-end links
    "APP_URL",
}

# Required unless EMAIL_DEBUG_MODE is enabled
SMTP_VARS = {
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASSWORD",
    "SMTP_FROM_EMAIL",
}

_TRUTHY = {"1", "true", "yes", "on"}


def validate_env() -> tuple[bool, list[str]]:
    """Validate the environment has all required variables.

    Returns:
        Tuple of (is_valid, missing_vars).
    """
    required = set(REQUIRED_VARS)
    if os.getenv("EMAIL_DEBUG_MODE", "").strip().lower() not in _TRUTHY:
        required |= SMTP_VARS

    missing = [var for var in required if not os.getenv(var)]
    return len(missing) == 0, missing


def main() -> int:
    """Main entry point for validation script.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        dotenv.load_dotenv(env_file)

    is_valid, missing_vars = validate_env()

    if is_valid:
        print("✅ .env file is valid - all required variables present")
        return 0

    print("❌ .env file is missing required variables:")
    for var in sorted(missing_vars):
        print(f"   - {var}")
    print("\n📝 Please copy .env.example to .env and fill in the values")
    return 1


if __name__ == "__main__":
    sys.exit(main())
