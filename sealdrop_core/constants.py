"""
sealdrop_core.constants
-----------------------
Fixed names shared by the envelope archive, the key text format and the
durable key storage schema.
"""

# Envelope archive entries (case-sensitive)
MANIFEST_ENTRY = "manifest.json"
CIPHERTEXT_ENTRY = "encrypted_file.enc"
WRAPPED_KEY_ENTRY = "encrypted_key.bin"
INSTRUCTIONS_ENTRY = "README.txt"

ENVELOPE_ENTRIES = (MANIFEST_ENTRY, CIPHERTEXT_ENTRY, WRAPPED_KEY_ENTRY, INSTRUCTIONS_ENTRY)

# ZIP timestamps are pinned so identical inputs give identical archives
ARCHIVE_DATE_TIME = (1980, 1, 1, 0, 0, 0)

# Key text framing
PEM_LINE_WIDTH = 64
PUBLIC_LABEL = "PUBLIC KEY"
PRIVATE_LABEL = "PRIVATE KEY"

# Durable storage names
CURRENT_PUBLIC_KEY_NAME = "myPublicKey"
CURRENT_PRIVATE_KEY_NAME = "myPrivateKey"
LEGACY_PRIVATE_KEY_NAME = "user_private_key"

# Algorithms
DEFAULT_KEY_ALGORITHM = "RSA-OAEP"
DEFAULT_RSA_BITS = 2048
DEFAULT_HASH_ALGORITHM = "SHA-256"
DEFAULT_CIPHER = "AES-256-GCM"

# Remote service
DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_HTTP_TIMEOUT = 30.0
CONTENT_HASH_HEADER = "X-Content-SHA256"

PACKAGE_STATUSES = ("active", "expired", "downloaded", "deleted")
