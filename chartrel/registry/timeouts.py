from __future__ import annotations

# Upper bound for a single registry HTTP call (lookup, create or upload).
# Exceeding it fails the call; there is no automatic retry.
REGISTRY_TIMEOUT_SECONDS = 30.0
