"""Service layer exports."""

from .assertion_signer import AssertionSigner
from .credentials import CertificateCredential, SecretCredential, select_credential
from .error_classifier import ErrorCategory, ErrorClassification, ErrorClassifier
from .sasl import build_xoauth2_string
from .token_lifecycle import TokenFailure, TokenLifecycleManager, TokenState

__all__ = [
    "AssertionSigner",
    "CertificateCredential",
    "ErrorCategory",
    "ErrorClassification",
    "ErrorClassifier",
    "SecretCredential",
    "TokenFailure",
    "TokenLifecycleManager",
    "TokenState",
    "build_xoauth2_string",
    "select_credential",
]
