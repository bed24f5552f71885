"""Read-only macOS Keychain lookup for grafana-toolkit credentials.

Entries live under the ``grafana-toolkit`` service and are created outside
this package, e.g.::

    security add-generic-password -s grafana-toolkit -a grafana-token -w <token>
"""
from __future__ import annotations

import subprocess
from typing import Optional
import structlog

log = structlog.get_logger(__name__)
_SERVICE = "grafana-toolkit"
_SECURITY = "/usr/bin/security"


def retrieve_secret(account: str) -> Optional[str]:
    """Return the stored value for ``account``, or None when unavailable."""
    try:
        result = subprocess.run(
            [_SECURITY, "find-generic-password", "-s", _SERVICE, "-a", account, "-w"],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        # not macOS
        log.debug("keychain.unavailable", account=account)
        return None
    if result.returncode != 0:
        log.debug("keychain.not_found", account=account, returncode=result.returncode)
        return None
    return result.stdout.strip() or None
