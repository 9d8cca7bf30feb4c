
"""Check that a RouterOS device answers on the API port.

Purpose:
    Quick developer sanity check that the device is reachable, accepts the
    configured credentials, and answers a lightweight identity query.

When to use:
    - Before pointing the CLI at a new device
    - During local development to verify settings and networking

Usage:
    python scripts/test_connectivity.py [--config config/lab.yaml] [--host 192.168.88.1]

Exit codes:
    0 on success; non-zero if the device is unreachable or on errors.
"""

import argparse
import sys

from routeros_api import RouterOSError, command
from routeros_api.config import Settings, load_settings_from_file


def check_device(settings: Settings) -> None:
    """Log in, read the identity, and run the /quit handshake."""
    print(f"Checking API connectivity for {settings.address}...")
    replies = command(settings.host, "/system/identity/print", settings=settings, strict=True)
    rows = [r for r in replies[0] if r.get("name") is not None]
    print("Reachable: True")
    print(f"Identity: {rows[0]['name'] if rows else 'unknown'}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Check RouterOS API connectivity")
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--host", help="Device host (overrides config)")
    args = parser.parse_args()

    try:
        settings = load_settings_from_file(args.config) if args.config else Settings()
        if args.host:
            settings = Settings(**{**settings.model_dump(), "host": args.host})
        if not settings.host:
            print("Error: no host configured")
            return 2
        check_device(settings)
        return 0
    except (RouterOSError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
