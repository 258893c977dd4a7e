"""Hash receipts.

A receipt records which digest was produced, under which rules, for how many
records. Signing it with Ed25519 lets a verifier prove the digest came from
the producer without ever seeing the records.

Security notes
- Receipts hold digests and caller metadata only; keep personal data out of
  metadata.
- A valid signature proves origin, not that the records are unchanged; pass
  the records to verify_receipt for that.
"""

from .receipt import (  # noqa: F401
    RECEIPT_SCHEMA,
    ReceiptVerification,
    build_hash_receipt,
    sign_receipt,
    verify_receipt,
)
from .signing import (  # noqa: F401
    KeyPairPaths,
    generate_ed25519_keypair,
    load_public_key_pem,
    maybe_load_public_key_pem,
)
