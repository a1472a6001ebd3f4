"""Global configuration for SigSync.

Every value can be overridden through an environment variable; values are
read once at import time.
"""

import os

# ---------- Server network ----------
SERVER_HOST = os.environ.get("SIGSYNC_HOST", "0.0.0.0")
SERVER_PORT = int(os.environ.get("SIGSYNC_PORT", "8080"))

# Where the client looks for the server.
SERVER_URL = os.environ.get("SIGSYNC_SERVER_URL", f"http://localhost:{SERVER_PORT}")

# Browser front-ends talk to the server cross-origin.
CORS_ORIGINS = [
    o.strip() for o in os.environ.get("SIGSYNC_CORS_ORIGINS", "*").split(",") if o.strip()
]

HTTP_TIMEOUT = float(os.environ.get("SIGSYNC_HTTP_TIMEOUT", "10.0"))

# ---------- Shared state ----------
INITIAL_MESSAGE = os.environ.get("SIGSYNC_INITIAL_MESSAGE", "Hello World")

# ---------- Signature scheme ----------
# Both parties must agree on this.  Supported:
#   "rsa-pkcs1v15-sha256"  RSASSA-PKCS1-v1_5 with SHA-256
#   "ed25519"              pure Ed25519
RSA_PKCS1V15_SHA256 = "rsa-pkcs1v15-sha256"
ED25519 = "ed25519"
SUPPORTED_ALGORITHMS = (RSA_PKCS1V15_SHA256, ED25519)

SIGNATURE_ALGORITHM = os.environ.get("SIGSYNC_ALGORITHM", RSA_PKCS1V15_SHA256)

RSA_KEY_SIZE = int(os.environ.get("SIGSYNC_RSA_KEY_SIZE", "2048"))
RSA_PUBLIC_EXPONENT = 65537

# ---------- Logging ----------
LOG_LEVEL = os.environ.get("SIGSYNC_LOG_LEVEL", "INFO").upper()

# ---------- Audit trail ----------
# Oldest entries are dropped beyond this many.
AUDIT_MAX_ENTRIES = int(os.environ.get("SIGSYNC_AUDIT_MAX_ENTRIES", "1000"))
