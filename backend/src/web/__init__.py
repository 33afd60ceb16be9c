"""HTTP hardening: safe redirects and security response headers."""
