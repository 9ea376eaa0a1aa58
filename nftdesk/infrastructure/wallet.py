"""
Infrastructure Layer: Tezos Wallet Session
Signs and injects operations with pytezos. pytezos is blocking, so every
call runs in a worker thread to keep the event loop free.
"""
import asyncio
from typing import Any, Optional

import structlog
from pydantic import SecretStr

logger = structlog.get_logger()


class TezosOperation:
    """An injected operation group, identified by its hash"""

    def __init__(self, client: Any, opg_hash: str) -> None:
        self._client = client
        self.hash = opg_hash

    async def confirmation(self, count: int) -> None:
        logger.debug("waiting_for_confirmation", op_hash=self.hash, confirmations=count)
        await asyncio.to_thread(self._client.wait, self.hash, min_confirmations=count)


class TezosWalletSession:
    """In-memory signer built from a secret key (edsk...)"""

    def __init__(self, rpc_url: str, secret_key: SecretStr) -> None:
        self._rpc_url = rpc_url
        self._secret_key = secret_key
        self._client: Optional[Any] = None
        self._address: Optional[str] = None

    def _get_client(self) -> Any:
        if self._client is None:
            # Optional dependency: only needed for write operations
            from pytezos import pytezos

            self._client = pytezos.using(shell=self._rpc_url, key=self._secret_key.get_secret_value())
        return self._client

    async def get_address(self) -> str:
        if self._address is None:
            client = await asyncio.to_thread(self._get_client)
            self._address = client.key.public_key_hash()
        return self._address

    async def submit(self, contract: str, entrypoint: str, params: Any) -> TezosOperation:
        def _send() -> TezosOperation:
            client = self._get_client()
            call = getattr(client.contract(contract), entrypoint)(params)
            opg = call.send()
            return TezosOperation(client, opg.opg_hash)

        operation = await asyncio.to_thread(_send)
        logger.info("operation_injected", contract=contract, entrypoint=entrypoint, op_hash=operation.hash)
        return operation
