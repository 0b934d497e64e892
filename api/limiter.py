"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted as middleware, attached to app.state) and by
api/routes/v1/users.py (per-route limits on login and refresh-token).

One shared instance means every route counts against the same in-memory
store; a per-module Limiter would give each module its own counters.
Tests switch it off with `limiter.enabled = False`.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

CREDENTIAL_RATE_LIMIT = "10/minute"

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
