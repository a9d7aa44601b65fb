"""
Anonymous identity issuance and validation.

- fingerprint.py: FingerprintAuth (fingerprinting, issuance cap, bearer tokens)
"""

from classification_proxy.auth.fingerprint import BEARER_PREFIX, FingerprintAuth

__all__ = ["BEARER_PREFIX", "FingerprintAuth"]
