import sys

import requests

from .client import NetSuiteClient
from .config import Settings, credentials_from_env
from .errors import NetSuiteError
from .log import configure_logging
from .response import error_message


def check_connection(client: NetSuiteClient) -> bool:
    """
    Call the metadata catalog and print a short confirmation.
    Returns True when NetSuite accepted the credentials.
    """
    print("📡 Calling NetSuite metadata catalog...")
    response = client.get_metadata_catalog()

    if not response.ok:
        print(f"❌ NetSuite returned {response.status_code}: {error_message(response)}")
        return False

    # Print a small, readable confirmation
    items = response.body.get("items", []) if isinstance(response.body, dict) else []
    print(f"✅ Connected successfully! Found {len(items)} record types.")

    # Show a few record names as proof
    for item in items[:5]:
        print(" -", item.get("name"))
    return True


def main() -> int:
    """
    Entry point for the `netsuite-check` script.
    """
    settings = Settings.from_env()
    configure_logging(settings)

    print("🔐 Initializing NetSuite client...")
    try:
        client = NetSuiteClient(credentials_from_env(), settings=settings)
    except NetSuiteError as exc:
        print(f"❌ {exc}")
        return 1

    try:
        ok = check_connection(client)
    except (NetSuiteError, requests.RequestException) as exc:
        print(f"❌ {exc}")
        return 1
    finally:
        client.close()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
