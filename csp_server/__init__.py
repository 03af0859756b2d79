# csp_server/__init__.py
# Flask service that stamps a per-request CSP nonce and security headers on every response.
