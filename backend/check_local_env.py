"""Validate the local OBDscribe backend environment.

Usage:
  set -a
  source backend/.env
  set +a
  python3 backend/check_local_env.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


DEFAULT_AUTH_SECRET = "dev_secret_change_me"
ENV_PATH = Path(__file__).resolve().parent / ".env"


def load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def check_database(errors: list[str], warnings: list[str]) -> None:
    if os.getenv("OBDSCRIBE_DATABASE_URL", "").strip() or os.getenv("DATABASE_URL", "").strip():
        return
    for name in ("DB_USER", "DB_NAME"):
        if not os.getenv(name, "").strip():
            errors.append(f"{name} is missing (or set DATABASE_URL)")
    if os.getenv("CLOUDSQL_INSTANCE_CONNECTION_NAME", "").strip():
        warnings.append(
            "CLOUDSQL_INSTANCE_CONNECTION_NAME is set. For local TCP testing, leave it blank and use DB_HOST/DB_PORT."
        )


def check_google_oauth(warnings: list[str]) -> None:
    missing = [
        name
        for name in ("OBDSCRIBE_GOOGLE_CLIENT_ID", "OBDSCRIBE_GOOGLE_CLIENT_SECRET")
        if not os.getenv(name, "").strip()
    ]
    if missing:
        warnings.append(f"Google sign-in is disabled until {', '.join(missing)} is set")


def main() -> int:
    load_env_file(ENV_PATH)

    py_version = sys.version_info
    if py_version < (3, 10):
        print(
            "Unsupported Python version: "
            f"{py_version.major}.{py_version.minor}. "
            "Use Python 3.10 or newer for this repo."
        )
        return 1

    errors: list[str] = []
    warnings: list[str] = []

    environment = os.getenv("OBDSCRIBE_ENVIRONMENT", "").strip()
    auth_secret = os.getenv("OBDSCRIBE_AUTH_SECRET", "").strip()
    if not auth_secret or auth_secret == DEFAULT_AUTH_SECRET:
        if environment not in ("development", "test"):
            errors.append(
                "OBDSCRIBE_AUTH_SECRET must be set unless OBDSCRIBE_ENVIRONMENT is development or test"
            )
        else:
            warnings.append("OBDSCRIBE_AUTH_SECRET is using the development default")

    if environment == "production" and (
        os.getenv("OBDSCRIBE_DEV_USER_ID", "").strip() or os.getenv("OBDSCRIBE_DEV_SHOP_ID", "").strip()
    ):
        errors.append("OBDSCRIBE_DEV_USER_ID/OBDSCRIBE_DEV_SHOP_ID must not be set in production")

    check_database(errors, warnings)
    check_google_oauth(warnings)

    if not (
        os.getenv("OBDSCRIBE_PROJECT_ID", "").strip() or os.getenv("GOOGLE_CLOUD_PROJECT", "").strip()
    ):
        warnings.append("No Google Cloud project set; Vertex AI will use the ADC default project")

    if "GOOGLE_APPLICATION_CREDENTIALS" in os.environ and not os.environ[
        "GOOGLE_APPLICATION_CREDENTIALS"
    ].strip():
        errors.append(
            "GOOGLE_APPLICATION_CREDENTIALS is explicitly set to an empty value. "
            "Remove it or comment it out to use gcloud ADC."
        )
    elif not os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "").strip():
        warnings.append(
            "Vertex AI will rely on gcloud ADC. Run: gcloud auth application-default login"
        )
    elif not Path(os.environ["GOOGLE_APPLICATION_CREDENTIALS"]).expanduser().exists():
        errors.append(
            f"GOOGLE_APPLICATION_CREDENTIALS points to a missing file: {os.environ['GOOGLE_APPLICATION_CREDENTIALS']}"
        )

    print(f"Loaded env file: {ENV_PATH}")
    if errors:
        print("\nErrors:")
        for item in errors:
            print(f"  - {item}")
    if warnings:
        print("\nWarnings:")
        for item in warnings:
            print(f"  - {item}")

    if errors:
        print("\nLocal environment is not ready.")
        return 1

    print("\nLocal environment looks ready.")
    print("Next:")
    print("  1. cd backend")
    print("  2. uvicorn obdscribe.main:app --reload")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
