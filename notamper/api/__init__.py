"""NoTamper verification API.

An optional FastAPI service that exposes the hashing engine to verifiers:
recompute a digest from records and compare it to a claimed one.
"""

from .server import create_app  # noqa: F401
