from __future__ import annotations

import ee


def authenticate_and_initialize(project: str | None = None) -> None:
    """
    Authenticate and initialize Google Earth Engine.

    On first run, this will open a browser for authentication.
    Subsequent runs will use cached credentials. There is no retry loop:
    a second failure after authenticating propagates to the caller.
    """
    try:
        ee.Initialize(project=project)
        print("[OK] GEE already authenticated")
    except Exception:
        print("Authenticating GEE...")
        ee.Authenticate()
        ee.Initialize(project=project)
        print("[OK] GEE authenticated successfully")
