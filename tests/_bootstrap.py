"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# Settings fall back to the environment for anything a test leaves unset, so
# keep a developer's real credentials out of the suite.
_ISOLATED_ENV_VARS = (
    "PENS_OAUTH_CLIENT_ID",
    "PENS_OAUTH_TENANT_ID",
    "PENS_OAUTH_SCOPE",
    "PENS_OAUTH_TOKEN_FILE",
    "PENS_OAUTH_CERTIFICATE_PATH",
    "PENS_OAUTH_PRIVATE_KEY_PATH",
    "PENS_OAUTH_CLIENT_SECRET",
)

for key in _ISOLATED_ENV_VARS:
    os.environ.pop(key, None)
