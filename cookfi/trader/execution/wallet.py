"""
Solana wallet: Jupiter swaps, transfers and jupSOL staking.

Quotes and swap transactions come from the Jupiter v6 API; signing is
done locally with solders and transactions are submitted through a
solana-py AsyncClient. Amounts on this interface are UI amounts
(e.g. 0.05 SOL); conversion to base units uses the mint's decimals.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams as SolTransferParams
from solders.system_program import transfer as sol_transfer
from solders.transaction import VersionedTransaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    get_associated_token_address,
    transfer_checked,
)

from cookfi.trader.config import config, WalletConfig
from cookfi.trader.utils.logger import get_logger

logger = get_logger(__name__)

JUPITER_QUOTE_URL = "https://quote-api.jup.ag/v6/quote"
JUPITER_SWAP_URL = "https://quote-api.jup.ag/v6/swap"

SOL_MINT = "So11111111111111111111111111111111111111112"
JUPSOL_MINT = "jupSoLaHXQiZZTSfEWMTRRgpnyFm8f6sZdosWBjx93v"
SOL_DECIMALS = 9
MIN_STAKE_AMOUNT = 0.1          # SOL
STAKE_SLIPPAGE_BPS = 50


class WalletError(Exception):
    """A single wallet operation failed (quote, build, send or confirm)."""


def resolve_mint(token: str) -> str:
    """Map the 'SOL' shorthand to the wrapped SOL mint."""
    return SOL_MINT if token.upper() == "SOL" else token


def to_base_units(amount: float, decimals: int) -> int:
    return int(round(amount * (10 ** decimals)))


class SolanaWallet:
    """Signs with the configured keypair and talks to Jupiter and the RPC node."""

    def __init__(self, settings: WalletConfig | None = None):
        self.settings = settings or config.wallet
        if not self.settings.private_key:
            raise ValueError("COOKFI_SOLANA_PRIVATE_KEY is required")
        if not self.settings.rpc_url:
            raise ValueError("COOKFI_SOLANA_RPC_URL is required")

        self.keypair = Keypair.from_base58_string(self.settings.private_key)
        self.pubkey: Pubkey = self.keypair.pubkey()
        self.rpc = AsyncClient(self.settings.rpc_url)

    async def close(self) -> None:
        await self.rpc.close()

    # -- helpers -----------------------------------------------------------

    async def get_decimals(self, mint: str) -> int:
        if mint == SOL_MINT:
            return SOL_DECIMALS
        resp = await self.rpc.get_token_supply(Pubkey.from_string(mint))
        return resp.value.decimals

    async def get_balance(self, mint: str | None = None) -> float:
        """UI balance of SOL (``mint`` None) or of an SPL token."""
        if mint is None or resolve_mint(mint) == SOL_MINT:
            resp = await self.rpc.get_balance(self.pubkey)
            return resp.value / 10 ** SOL_DECIMALS

        ata = get_associated_token_address(self.pubkey, Pubkey.from_string(mint))
        try:
            resp = await self.rpc.get_token_account_balance(ata)
        except RPCException:
            # No associated token account yet
            return 0.0
        return float(resp.value.ui_amount_string or 0)

    async def _send(self, tx: VersionedTransaction) -> str:
        resp = await self.rpc.send_raw_transaction(
            bytes(tx), opts=TxOpts(skip_preflight=False, max_retries=3)
        )
        signature = resp.value
        confirmation = await self.rpc.confirm_transaction(signature, commitment=Confirmed)
        status = confirmation.value[0] if confirmation.value else None
        if status is not None and status.err is not None:
            raise WalletError(f"Transaction {signature} failed on-chain: {status.err}")
        return str(signature)

    async def _send_instructions(self, instructions: list[Instruction]) -> str:
        blockhash = (await self.rpc.get_latest_blockhash()).value.blockhash
        message = MessageV0.try_compile(self.pubkey, instructions, [], blockhash)
        return await self._send(VersionedTransaction(message, [self.keypair]))

    async def _fetch_quote(self, params: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.get(JUPITER_QUOTE_URL, params=params)
            resp.raise_for_status()
            quote = resp.json()
        if "error" in quote:
            raise WalletError(f"Jupiter quote error: {quote['error']}")
        return quote

    async def _fetch_swap_transaction(self, quote: dict[str, Any]) -> str:
        body = {
            "quoteResponse": quote,
            "userPublicKey": str(self.pubkey),
            "wrapAndUnwrapSol": True,
            "prioritizationFeeLamports": self.settings.priority_fee_lamports,
        }
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(JUPITER_SWAP_URL, json=body)
            resp.raise_for_status()
            data = resp.json()
        swap_tx = data.get("swapTransaction")
        if not swap_tx:
            raise WalletError("Jupiter returned no swap transaction")
        return swap_tx

    # -- operations --------------------------------------------------------

    async def swap(
        self,
        output_mint: str,
        amount: float,
        input_mint: str = "SOL",
        slippage_bps: int = 300,
    ) -> str:
        """
        Swap ``amount`` of ``input_mint`` into ``output_mint`` via Jupiter.

        Returns the confirmed transaction signature.
        """
        input_mint = resolve_mint(input_mint)
        output_mint = resolve_mint(output_mint)
        decimals = await self.get_decimals(input_mint)

        try:
            quote = await self._fetch_quote(
                {
                    "inputMint": input_mint,
                    "outputMint": output_mint,
                    "amount": str(to_base_units(amount, decimals)),
                    "slippageBps": str(slippage_bps),
                }
            )
            raw_tx = base64.b64decode(await self._fetch_swap_transaction(quote))
        except httpx.HTTPError as e:
            raise WalletError(f"Jupiter request failed: {e}") from e

        unsigned = VersionedTransaction.from_bytes(raw_tx)
        signed = VersionedTransaction(unsigned.message, [self.keypair])
        signature = await self._send(signed)

        logger.info(
            "Jupiter swap confirmed",
            extra={
                "data": {
                    "signature": signature,
                    "input_mint": input_mint,
                    "output_mint": output_mint,
                    "amount": amount,
                    "slippage_bps": slippage_bps,
                }
            },
        )
        return signature

    async def transfer(self, recipient: str, amount: float, mint: str | None = None) -> str:
        """Send SOL (``mint`` None) or an SPL token to ``recipient``."""
        to_pubkey = Pubkey.from_string(recipient)

        if mint is None or resolve_mint(mint) == SOL_MINT:
            ix = sol_transfer(
                SolTransferParams(
                    from_pubkey=self.pubkey,
                    to_pubkey=to_pubkey,
                    lamports=to_base_units(amount, SOL_DECIMALS),
                )
            )
            return await self._send_instructions([ix])

        mint_pubkey = Pubkey.from_string(mint)
        decimals = await self.get_decimals(mint)
        ix = transfer_checked(
            TransferCheckedParams(
                program_id=TOKEN_PROGRAM_ID,
                source=get_associated_token_address(self.pubkey, mint_pubkey),
                mint=mint_pubkey,
                dest=get_associated_token_address(to_pubkey, mint_pubkey),
                owner=self.pubkey,
                amount=to_base_units(amount, decimals),
                decimals=decimals,
            )
        )
        return await self._send_instructions([ix])

    async def stake(self, amount: float) -> tuple[str, float]:
        """
        Stake SOL into jupSOL.

        Returns the signature and the wallet's jupSOL balance afterwards.
        """
        if amount < MIN_STAKE_AMOUNT:
            raise WalletError(f"Minimum staking amount is {MIN_STAKE_AMOUNT} SOL")
        signature = await self.swap(JUPSOL_MINT, amount, SOL_MINT, STAKE_SLIPPAGE_BPS)
        return signature, await self.get_balance(JUPSOL_MINT)
