#!/usr/bin/env python3
# clients/cli/veilpay_cli.py
# CLI for VeilPay private transfers.
# *** LOCALNET / DEVNET ***

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from solders.pubkey import Pubkey

from veilpay.api.logging_config import setup_logging
from veilpay.config import PROGRAM_ID, SOLANA_RPC_URL, VEILPAY_KEYFILE
from veilpay.crypto_core.amount_codec import ciphertext_halves, encode
from veilpay.errors import VeilPayError
from veilpay.ledger.accounts import balance_address, vault_address
from veilpay.ledger.rpc import SolanaRpcClient
from veilpay.transfer.orchestrator import TransferPlan, build_orchestrator
from veilpay.transfer.validation import format_sol, parse_amount
from veilpay.wallet.identity import KeyfileIdentity


# ======== Color accents (no deps) ========
class C:
    OK   = "\033[92m"
    WARN = "\033[93m"
    ERR  = "\033[91m"
    DIM  = "\033[2m"
    BOLD = "\033[1m"
    RST  = "\033[0m"


def _short(pk: str) -> str:
    return f"{pk[:4]}…{pk[-5:]}" if pk and len(pk) > 10 else pk


def _print_plan(plan: TransferPlan) -> None:
    print(f"{C.BOLD}Amount:{C.RST}    {format_sol(plan.amount)} SOL ({plan.amount} lamports)")
    print(f"{C.BOLD}Sender:{C.RST}    {plan.sender}  balance={_short(str(plan.sender_account))}"
          f"{'  (init)' if plan.sender_needs_init else ''}")
    print(f"{C.BOLD}Recipient:{C.RST} {plan.recipient}  balance={_short(str(plan.receiver_account))}"
          f"{'  (init)' if plan.receiver_needs_init else ''}")
    print(f"{C.BOLD}Nonce:{C.RST}     {plan.nonce}")
    print(f"{C.DIM}ciphertext  {plan.ciphertext.hex()}{C.RST}")
    print(f"{C.DIM}commitment  {plan.commitment.hex()}{C.RST}")
    print(f"{C.DIM}tag         {plan.tag.hex()}{C.RST}")
    print(f"{C.BOLD}Operations:{C.RST} {' -> '.join(plan.batch.kinds)}")


# ======== Commands ========
async def _run_transfer(args: argparse.Namespace, dry_run: bool) -> int:
    identity = KeyfileIdentity.from_file(args.keyfile)
    async with SolanaRpcClient(args.rpc_url) as rpc:
        orch = build_orchestrator(identity, rpc, Pubkey.from_string(args.program_id))
        try:
            if dry_run:
                _print_plan(await orch.dry_run(args.to, args.amount))
                return 0
            signature = await orch.attempt(args.to, args.amount)
        except VeilPayError as e:
            print(f"{C.ERR}{e.kind}{C.RST}: {e.message}", file=sys.stderr)
            for line in e.logs:
                print(f"{C.DIM}  {line}{C.RST}", file=sys.stderr)
            return 1
    print(f"{C.OK}✅ Private transfer confirmed{C.RST}: {signature}")
    return 0


def cmd_transfer(args: argparse.Namespace) -> int:
    return asyncio.run(_run_transfer(args, dry_run=False))


def cmd_dry_run(args: argparse.Namespace) -> int:
    return asyncio.run(_run_transfer(args, dry_run=True))


def cmd_address(args: argparse.Namespace) -> int:
    program_id = Pubkey.from_string(args.program_id)
    owner = Pubkey.from_string(args.owner)
    print(f"balance  {balance_address(owner, program_id)}")
    print(f"vault    {vault_address(program_id)}")
    return 0


def cmd_encode(args: argparse.Namespace) -> int:
    try:
        lamports = parse_amount(args.amount)
    except VeilPayError as e:
        print(f"{C.ERR}{e.kind}{C.RST}: {e.message}", file=sys.stderr)
        return 1
    c1, c2 = ciphertext_halves(encode(lamports))
    print(f"lamports {lamports}")
    print(f"c1       {c1.hex()}")
    print(f"c2       {c2.hex()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="veilpay", description="VeilPay private transfers")
    p.add_argument("--rpc-url", default=SOLANA_RPC_URL)
    p.add_argument("--program-id", default=PROGRAM_ID)
    p.add_argument("--log-level", default=None)
    sub = p.add_subparsers(dest="command", required=True)

    for name, func, help_ in (
        ("transfer", cmd_transfer, "send a private transfer"),
        ("dry-run", cmd_dry_run, "build the transfer batch without sending it"),
    ):
        sp = sub.add_parser(name, help=help_)
        sp.add_argument("--keyfile", default=VEILPAY_KEYFILE, help="sender keypair (JSON list[64] or base58)")
        sp.add_argument("--to", required=True, help="recipient public key (base58)")
        sp.add_argument("--amount", required=True, help="amount in SOL, e.g. 1.5")
        sp.set_defaults(func=func)

    sp = sub.add_parser("address", help="derive balance and vault PDAs")
    sp.add_argument("--owner", required=True)
    sp.set_defaults(func=cmd_address)

    sp = sub.add_parser("encode", help="show the encrypted form of an amount")
    sp.add_argument("amount")
    sp.set_defaults(func=cmd_encode)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
