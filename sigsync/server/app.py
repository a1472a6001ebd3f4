"""SigSync server FastAPI application.

The server owns the single shared message and its own signing key pair.

Endpoints:
- GET  /       – current message, signed fresh with the server key
- POST /       – replace the message if the client's signature verifies
- GET  /audit  – bounded, hash-chained audit trail of exchange events

Keys are generated during application startup; no request is served with
a half-initialized server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from sigsync import config
from sigsync.crypto import encoding, keys, signatures
from sigsync.crypto.keys import KeyPair
from sigsync.errors import DecodingError, SigningError
from sigsync.server.audit import ExchangeAudit
from sigsync.server.store import MessageStore

logger = logging.getLogger(__name__)

UNAUTHORIZED_BODY = "Unauthorized: Signature verification failed."

# ------ request / response models ------


class SentData(BaseModel):
    message: str
    signature: str   # base64
    public_key: str  # base64 SPKI DER (PEM also accepted)


class SubmitRequest(BaseModel):
    sent_data: SentData


class SubmitResponse(BaseModel):
    status: str
    version: int


class SignedStateResponse(BaseModel):
    message: str
    signature: str  # base64
    publicKey: str  # PEM


class AuditResponse(BaseModel):
    entries: List[Dict[str, Any]]
    chain_valid: bool
    anchor: str  # hash the oldest retained entry links back to
    total: int   # entries ever recorded


class ServerState:
    """Per-server mutable state: key pair, message store, audit log."""

    def __init__(
        self,
        key_pair: Optional[KeyPair] = None,
        initial_message: str = config.INITIAL_MESSAGE,
        algorithm: Optional[str] = None,
    ) -> None:
        self.algorithm = algorithm or (key_pair.algorithm if key_pair else config.SIGNATURE_ALGORITHM)
        self.key_pair = key_pair
        self.store = MessageStore(initial_message)
        self.audit = ExchangeAudit()
        self._public_key_pem: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.key_pair is not None

    def ensure_keys(self) -> KeyPair:
        """Generate the server key pair if it does not exist yet.

        Raises ``KeyGenerationError``, which aborts startup.
        """
        if self.key_pair is None:
            self.key_pair = keys.generate(self.algorithm)
        fp = keys.fingerprint(self.key_pair.public_key)
        logger.info("Server keys ready (algorithm=%s, fingerprint=%s)", self.algorithm, fp)
        self.audit.record_startup(self.algorithm, fp)
        return self.key_pair

    @property
    def public_key_pem(self) -> str:
        if self._public_key_pem is None:
            self._public_key_pem = keys.export_public(self.key_pair, armored=True).decode("ascii")
        return self._public_key_pem


def _submitted_fingerprint(public_key: str) -> str:
    try:
        return keys.fingerprint(encoding.decode_public_key(public_key))
    except DecodingError:
        return "undecodable"


def create_app(state: ServerState | None = None) -> FastAPI:
    """Factory that creates a server app.

    If *state* is not provided a fresh ``ServerState`` is created; its key
    pair is generated when the app starts.
    """
    if state is None:
        state = ServerState()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not state.ready:
            await run_in_threadpool(state.ensure_keys)
        yield

    app = FastAPI(title="SigSync Server", lifespan=lifespan)
    app.state.sigsync = state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def _require_keys() -> KeyPair:
        if state.key_pair is None:
            raise HTTPException(503, "Server keys not initialized")
        return state.key_pair

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        logger.warning("Rejected malformed %s %s: %d validation error(s)",
                       request.method, request.url.path, len(exc.errors()))
        state.audit.record_invalid(len(exc.errors()))
        return await request_validation_exception_handler(request, exc)

    @app.get("/", response_model=SignedStateResponse)
    async def fetch():
        """Return the current message with a fresh server signature."""
        key_pair = _require_keys()
        current = state.store.get()
        try:
            sig = await run_in_threadpool(
                signatures.sign, current.message, key_pair.private_key, state.algorithm
            )
        except SigningError:
            logger.exception("Server failed to sign current message")
            raise HTTPException(500, "Signing failed")
        state.store.record_signature(current.version, sig)
        state.audit.record_fetch(current.version, current.message, sig)
        return SignedStateResponse(
            message=current.message,
            signature=encoding.b64encode(sig),
            publicKey=state.public_key_pem,
        )

    @app.post("/", response_model=SubmitResponse)
    async def submit(req: SubmitRequest):
        """Replace the message if the submitted signature verifies.

        The digest is always recomputed here from the received message.
        """
        _require_keys()
        sent = req.sent_data
        fp = _submitted_fingerprint(sent.public_key)
        verified = await run_in_threadpool(
            signatures.verify, sent.message, sent.signature, sent.public_key, state.algorithm
        )
        if not verified:
            logger.warning("Signature verification failed (key=%s), message unchanged", fp)
            state.audit.record_write(False, fp, sent.message, state.store.get().version)
            return PlainTextResponse(UNAUTHORIZED_BODY, status_code=401)

        new_state = state.store.set(sent.message)
        logger.info("Signature verified (key=%s), message now at version %d", fp, new_state.version)
        state.audit.record_write(True, fp, sent.message, new_state.version)
        return SubmitResponse(status="accepted", version=new_state.version)

    @app.get("/audit", response_model=AuditResponse)
    async def audit():
        """Return the retained audit entries."""
        return AuditResponse(
            entries=state.audit.entries(),
            chain_valid=state.audit.verify_chain(),
            anchor=state.audit.anchor,
            total=state.audit.total,
        )

    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Server running on %s:%d", config.SERVER_HOST, config.SERVER_PORT)
    uvicorn.run(app, host=config.SERVER_HOST, port=config.SERVER_PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
