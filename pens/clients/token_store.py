"""File-backed persistence for the OAuth token record."""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from pens.core.errors import MalformedStoreError, TokenNotFoundError
from pens.models.oauth import NON_EXPIRING, TokenRecord

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600
# Epoch values above this are milliseconds (1e12 s is ~33,000 years out).
_MILLISECONDS_THRESHOLD = 1_000_000_000_000


def _normalize_epoch(value: float) -> float:
    if value > _MILLISECONDS_THRESHOLD:
        return value / 1000
    return value


def _read_number(payload: Dict[str, Any], key: str) -> Optional[float]:
    """Return a numeric field, ``None`` when absent, or raise when not a number."""
    if key not in payload or payload[key] is None:
        return None
    value = payload[key]
    if isinstance(value, bool):
        raise MalformedStoreError(f"Token file field '{key}' must be a number.")
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        raise MalformedStoreError(f"Token file field '{key}' must be a number.")
    try:
        number = float(value)
    except (ValueError, OverflowError) as exc:
        raise MalformedStoreError(f"Token file field '{key}' must be a number.") from exc
    # nan or inf would make the expiry comparisons meaningless.
    if math.isfinite(number):
        return number
    raise MalformedStoreError(f"Token file field '{key}' must be a number.")


def parse_token_payload(payload: Any) -> TokenRecord:
    """Build a :class:`TokenRecord` from a decoded token file object."""
    if not isinstance(payload, dict):
        raise MalformedStoreError("Token file must contain a JSON object.")

    access_token = payload.get("access_token")
    if not isinstance(access_token, str):
        raise MalformedStoreError("access_token not found in token file.")

    refresh_token = payload.get("refresh_token")
    if refresh_token is None:
        refresh_token = ""
    elif not isinstance(refresh_token, str):
        raise MalformedStoreError("refresh_token in token file must be a string.")

    expires_in_value = _read_number(payload, "expires_in")
    expires_in = int(expires_in_value) if expires_in_value is not None else DEFAULT_EXPIRES_IN

    # expires_at is the exact expiry written by save(); acquired_at alone comes
    # from helper scripts that only record when they ran.
    expires_at = _read_number(payload, "expires_at")
    acquired_at = _read_number(payload, "acquired_at")
    if expires_at is not None:
        resolved_expiry = _normalize_epoch(expires_at)
    elif acquired_at is not None:
        resolved_expiry = _normalize_epoch(acquired_at) + expires_in
    else:
        resolved_expiry = NON_EXPIRING

    try:
        return TokenRecord(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            expires_at=resolved_expiry,
        )
    except ValidationError as exc:  # pragma: no cover - guarded by the checks above
        raise MalformedStoreError("Token file contents are invalid.") from exc


class TokenStore:
    """Read and atomically replace the JSON token file."""

    def __init__(self, path: str | os.PathLike[str], *, clock: Callable[[], float] = time.time) -> None:
        self._path = Path(path)
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TokenRecord:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TokenNotFoundError(f"Token file not found: {self._path}") from exc
        except OSError as exc:
            raise TokenNotFoundError(f"Could not open token file {self._path}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedStoreError(f"Token file {self._path} is not valid JSON.") from exc

        record = parse_token_payload(payload)
        if record.is_non_expiring:
            logger.info("OAuth token loaded from %s; no expiry recorded", self._path)
        else:
            logger.info("OAuth token loaded from %s; expires at %d", self._path, record.expires_at)
        return record

    def save(self, record: TokenRecord) -> None:
        """Write ``record`` to a sibling temp file, fsync it, then swap it into place."""
        payload = {
            "access_token": record.access_token,
            "refresh_token": record.refresh_token,
            "expires_in": record.expires_in,
            "expires_at": int(record.expires_at),
            "acquired_at": int(self._clock()),
        }
        serialized = json.dumps(payload, indent=2) + "\n"

        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
        except OSError as exc:
            raise MalformedStoreError(f"Failed to write OAuth token file {self._path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.warning("Could not remove temporary token file %s", tmp_name)
            raise MalformedStoreError(f"Failed to write OAuth token file {self._path}: {exc}") from exc

        logger.info("OAuth token updated and saved to %s", self._path)


__all__ = ["DEFAULT_EXPIRES_IN", "TokenStore", "parse_token_payload"]
