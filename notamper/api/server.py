from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from notamper.api.auth import API_KEY_HEADER, Actor, authenticate, load_auth_config, requires_auth
from notamper.api.middleware import RequestContextMiddleware
from notamper.api.models import (
    ApiError,
    CanonicalizeIn,
    CanonicalizeOut,
    HashOut,
    PolicyIn,
    RecordsIn,
    StandardizeOut,
    VerifyIn,
    VerifyOut,
)
from notamper.config import ADDON_VERSION
from notamper.core.canonical import (
    CANONICALIZATION_ID,
    DIGEST_ALGORITHM,
    canonical_encode,
    digests_equal,
    is_digest_hex,
    sha256_hex,
)
from notamper.core.engine import HashingPolicy, hash_payload
from notamper.core.errors import CanonicalizationError, EncodingError
from notamper.core.records import standardize

log = logging.getLogger("notamper.api")


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the verification API.

    Security notes:
    - Request bodies carry form responses; they are capped and never stored.

    """

    max_body_bytes: int = 5 * 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _policy(p: Optional[PolicyIn]) -> HashingPolicy:
    if p is None:
        return HashingPolicy()
    return HashingPolicy.from_mapping(p.model_dump())


def create_app() -> FastAPI:
    """Create the FastAPI app."""

    cfg = ServiceConfig(max_body_bytes=_env_int("NOTAMPER_MAX_BODY_BYTES", 5 * 1024 * 1024))
    mapping = load_auth_config()
    must_auth = requires_auth(mapping)

    log.setLevel(os.environ.get("NOTAMPER_LOG_LEVEL", "INFO").upper())

    app = FastAPI(title="NoTamper Verification API", version=ADDON_VERSION)
    app.state.cfg = cfg
    app.state.must_auth = must_auth

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(CanonicalizationError)
    async def _engine_error(request: Request, exc: CanonicalizationError) -> JSONResponse:
        kind = "encoding_error" if isinstance(exc, EncodingError) else "input_shape_error"
        log.warning(
            "engine_error",
            extra={"request_id": getattr(request.state, "request_id", None), "error": kind},
        )
        return JSONResponse(status_code=422, content=ApiError(error=kind, detail=str(exc)).model_dump())

    def get_actor(
        request: Request,
        api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER),
    ) -> Actor:
        """Authenticate request and enforce the body cap.

        Security notes:
        - If auth is required and missing/invalid, fail closed (401).

        """

        if not must_auth:
            actor = Actor(actor_id="anonymous")
        else:
            actor = authenticate(api_key, mapping)
            if actor is None:
                raise HTTPException(status_code=401, detail="unauthorized")
        request.state.actor_id = actor.actor_id

        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > cfg.max_body_bytes:
            raise HTTPException(status_code=413, detail="body_too_large")
        return actor

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "auth_required": must_auth,
            "algorithm": DIGEST_ALGORITHM,
            "canonicalization": CANONICALIZATION_ID,
        }

    @app.post("/canonicalize", response_model=CanonicalizeOut)
    def canonicalize_endpoint(body: CanonicalizeIn, actor: Actor = Depends(get_actor)) -> CanonicalizeOut:
        """Canonical text and digest of any JSON value, no record processing."""

        text = canonical_encode(body.data)
        return CanonicalizeOut(canonical=text, digest=sha256_hex(text.encode("utf-8")))

    @app.post("/standardize", response_model=StandardizeOut)
    def standardize_endpoint(body: RecordsIn, actor: Actor = Depends(get_actor)) -> StandardizeOut:
        return StandardizeOut(standardized=standardize(body.data))

    @app.post("/hash", response_model=HashOut)
    def hash_endpoint(body: RecordsIn, actor: Actor = Depends(get_actor)) -> HashOut:
        result = hash_payload(body.data, _policy(body.policy))
        log.info("records_hashed", extra={"actor_id": actor.actor_id, "record_count": result.record_count})
        return HashOut(
            digest=result.digest,
            algorithm=DIGEST_ALGORITHM,
            canonicalization=CANONICALIZATION_ID,
            record_count=result.record_count,
        )

    @app.post("/verify", response_model=VerifyOut)
    def verify_endpoint(body: VerifyIn, actor: Actor = Depends(get_actor)) -> VerifyOut:
        """Recompute a digest from records and compare it to the claimed one."""

        if not is_digest_hex(body.digest):
            raise HTTPException(status_code=400, detail="digest must be 64 lowercase hex characters")
        actual = hash_payload(body.data, _policy(body.policy)).digest
        ok = digests_equal(actual, body.digest)
        log.info("digest_verified", extra={"actor_id": actor.actor_id, "match": ok})
        return VerifyOut(ok=ok, expected=body.digest, actual=actual)

    return app
