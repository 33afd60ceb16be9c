"""Credential management: hashing, password policy, sessions, tokens and
route-level authorization for SecureShop."""
