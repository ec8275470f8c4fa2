"""SASL helpers for handing the bearer token to IMAP and SMTP."""

from __future__ import annotations

import base64


def build_xoauth2_string(user: str, access_token: str) -> str:
    r"""
    Build the base64 XOAUTH2 initial client response.

    Format before encoding: ``user={user}\x01auth=Bearer {token}\x01\x01``.
    Used with ``AUTHENTICATE XOAUTH2`` (IMAP) and ``AUTH XOAUTH2`` (SMTP).
    """
    if not user:
        raise ValueError("A mailbox user is required for XOAUTH2.")
    if not access_token:
        raise ValueError("An access token is required for XOAUTH2.")
    raw = f"user={user}\x01auth=Bearer {access_token}\x01\x01"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


__all__ = ["build_xoauth2_string"]
