"""Security tests for SecureShop

This module contains security-focused tests including:
- Authentication bypass and privilege escalation attempts
- Insecure direct object references on orders
- Session fixation
- Information leakage through errors, headers and redirects
"""
