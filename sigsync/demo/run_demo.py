#!/usr/bin/env python3
"""SigSync end-to-end demo.

Usage (with a server running, e.g. ``sigsync-server``):
    python -m sigsync.demo.run_demo

The script:
1. Starts a client and provisions its key pair.
2. Fetches and verifies the server's current message.
3. Signs and submits "hello", then verifies the server's copy.
4. Submits a forged write (signature over "hello", payload "hello!").
5. Writes "a" then "b" and checks the final value.
6. Dumps the audit log.
"""

from __future__ import annotations

import asyncio

import httpx

from sigsync import config
from sigsync.client.protocol import ExchangeClient
from sigsync.crypto import encoding, keys, signatures

SERVER = config.SERVER_URL


def banner(msg: str) -> None:
    print(f"\n{'='*60}")
    print(f"  {msg}")
    print(f"{'='*60}")


async def main() -> None:
    banner("1) Provision client keys")
    client = await ExchangeClient(base_url=SERVER).start()
    print(f"   ready = {client.ready}")

    banner("2) Fetch + verify current message")
    result = await client.fetch()
    print(f"   {result.state.value}: {result.message!r}")

    banner("3) Signed write of 'hello'")
    result = await client.submit("hello")
    print(f"   write: {result.state.value} (HTTP {result.status_code})")
    result = await client.fetch()
    print(f"   read:  {result.state.value}: {result.message!r}")

    banner("4) Forged write: signed 'hello', sent 'hello!'")
    forger = keys.generate()
    sig = signatures.sign("hello", forger.private_key)
    async with httpx.AsyncClient(base_url=SERVER) as http:
        resp = await http.post("/", json={"sent_data": {
            "message": "hello!",
            "signature": encoding.b64encode(sig),
            "public_key": encoding.b64encode(forger.public_key),
        }})
    print(f"   HTTP {resp.status_code}: {resp.text}")
    result = await client.fetch()
    print(f"   server still holds: {result.message!r}")

    banner("5) Sequential writes 'a' then 'b'")
    for msg in ("a", "b"):
        result = await client.submit(msg)
        print(f"   {msg!r}: {result.state.value}")
    result = await client.fetch()
    print(f"   final: {result.state.value}: {result.message!r}")

    banner("6) Audit log")
    async with httpx.AsyncClient(base_url=SERVER) as http:
        audit = (await http.get("/audit")).json()
    print(f"   Entries: {len(audit['entries'])}")
    print(f"   Chain valid: {audit['chain_valid']}")
    for e in audit["entries"][-5:]:
        print(f"     [{e['event']}] {e['entry_hash'][:12]}… ← {e['prev_hash'][:12]}…")

    banner("DEMO COMPLETE")


if __name__ == "__main__":
    asyncio.run(main())
