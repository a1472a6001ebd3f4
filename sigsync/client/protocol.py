"""Client side of the signed exchange.

``ExchangeClient`` runs one exchange at a time against a SigSync server:

Read:   IDLE → FETCHING → VERIFYING → TRUSTED | REJECTED → IDLE
Write:  IDLE → SIGNING → SUBMITTING → ACCEPTED | DENIED → IDLE

The client's key pair is generated by an awaited ``start()``; until then
every exchange raises ``ProtocolNotReady``.  A fetched message becomes the
client's ``trusted_value`` only after its signature verifies under the key
the server sent along with it.  A write counts as accepted only on a 200
response.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from sigsync import config
from sigsync.crypto import encoding, keys, signatures
from sigsync.crypto.keys import KeyPair
from sigsync.errors import ProtocolNotReady, SigningError, VerificationFailure

logger = logging.getLogger(__name__)


class ExchangeState(str, enum.Enum):
    NEW = "new"
    IDLE = "idle"
    FETCHING = "fetching"
    VERIFYING = "verifying"
    TRUSTED = "trusted"
    REJECTED = "rejected"
    SIGNING = "signing"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    DENIED = "denied"


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of one read or write.

    ``message`` is only set for a TRUSTED read or an ACCEPTED write; a
    rejected payload is never handed back.
    """

    state: ExchangeState
    message: Optional[str] = None
    status_code: Optional[int] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.state in (ExchangeState.TRUSTED, ExchangeState.ACCEPTED)

    def raise_for_trust(self) -> "ExchangeResult":
        if not self.ok:
            raise VerificationFailure(f"{self.state.value}: {self.reason}")
        return self


class ExchangeClient:
    """Signed read/write client for a single shared message."""

    def __init__(
        self,
        base_url: str = config.SERVER_URL,
        algorithm: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = config.HTTP_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.algorithm = algorithm or config.SIGNATURE_ALGORITHM
        self._transport = transport
        self._timeout = timeout
        self._key_pair: Optional[KeyPair] = None
        self._public_key_b64: Optional[str] = None
        self._lock = asyncio.Lock()
        self.state = ExchangeState.NEW
        self.last_state = ExchangeState.NEW
        self.trusted_value: Optional[str] = None

    # ---- lifecycle ----

    @property
    def ready(self) -> bool:
        return self._key_pair is not None

    @property
    def public_key(self) -> bytes:
        """Own public key, SPKI DER."""
        self._require_ready()
        return self._key_pair.public_key

    async def start(self, key_pair: Optional[KeyPair] = None) -> "ExchangeClient":
        """Provision the client key pair; raises ``KeyGenerationError``."""
        if key_pair is None:
            key_pair = await asyncio.to_thread(keys.generate, self.algorithm)
        self._key_pair = key_pair
        self._public_key_b64 = encoding.b64encode(key_pair.public_key)
        self.state = ExchangeState.IDLE
        logger.info("Client ready (fingerprint=%s)", keys.fingerprint(key_pair.public_key))
        return self

    def _require_ready(self) -> None:
        if self._key_pair is None:
            raise ProtocolNotReady("call start() before exchanging messages")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self._transport, timeout=self._timeout)

    def _finish(self, result: ExchangeResult) -> ExchangeResult:
        self.last_state = result.state
        self.state = ExchangeState.IDLE
        return result

    # ---- read path ----

    async def fetch(self) -> ExchangeResult:
        """Fetch the server's message and adopt it only if its signature verifies."""
        self._require_ready()
        async with self._lock:
            self.state = ExchangeState.FETCHING
            try:
                async with self._client() as client:
                    resp = await client.get("/")
                resp.raise_for_status()
                body = resp.json()
                message = body["message"]
                signature = body["signature"]
                public_key = body["publicKey"]
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Fetch failed: %s", exc)
                return self._finish(ExchangeResult(ExchangeState.REJECTED, reason=f"fetch failed: {exc}"))

            self.state = ExchangeState.VERIFYING
            verified = await asyncio.to_thread(
                signatures.verify, message, signature, public_key, self.algorithm
            )
            logger.info("Signature verification result: %s", verified)
            if not verified:
                return self._finish(ExchangeResult(
                    ExchangeState.REJECTED,
                    status_code=resp.status_code,
                    reason="server signature did not verify",
                ))

            self.trusted_value = message
            return self._finish(ExchangeResult(
                ExchangeState.TRUSTED, message=message, status_code=resp.status_code
            ))

    # ---- write path ----

    async def submit(self, message: str) -> ExchangeResult:
        """Sign *message* with the client key and submit it.

        Raises ``SigningError`` if the message cannot be signed.
        """
        self._require_ready()
        async with self._lock:
            self.state = ExchangeState.SIGNING
            try:
                sig = await asyncio.to_thread(
                    signatures.sign, message, self._key_pair.private_key, self.algorithm
                )
            except SigningError:
                self._finish(ExchangeResult(ExchangeState.DENIED, reason="signing failed"))
                raise

            self.state = ExchangeState.SUBMITTING
            sent_data = {
                "message": message,
                "signature": encoding.b64encode(sig),
                "public_key": self._public_key_b64,
            }
            try:
                async with self._client() as client:
                    resp = await client.post("/", json={"sent_data": sent_data})
            except httpx.HTTPError as exc:
                logger.warning("Submit failed: %s", exc)
                return self._finish(ExchangeResult(ExchangeState.DENIED, reason=f"submit failed: {exc}"))

            if resp.status_code != 200:
                logger.warning("Server denied write (HTTP %d)", resp.status_code)
                return self._finish(ExchangeResult(
                    ExchangeState.DENIED, status_code=resp.status_code, reason=resp.text
                ))
            return self._finish(ExchangeResult(
                ExchangeState.ACCEPTED, message=message, status_code=resp.status_code
            ))

    async def sync(self, message: str) -> ExchangeResult:
        """Submit *message*, then fetch and verify the server's copy."""
        written = await self.submit(message)
        if not written.ok:
            return written
        return await self.fetch()
