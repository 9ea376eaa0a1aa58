"""
Main Entry Point (Composition Root)
"""
import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

import structlog

from nftdesk.application.manager import NFTManager
from nftdesk.application.ports import IChainAdapter
from nftdesk.application.ui import ReportView
from nftdesk.domain import NFT, NFTId, ChainType, ConfigError, DomainError, MarketData
from nftdesk.infrastructure.config import Settings, settings
from nftdesk.infrastructure.stargaze import StargazeAdapter
from nftdesk.infrastructure.tezos import TezosAdapter
from nftdesk.infrastructure.wallet import TezosWalletSession

logger = structlog.get_logger()


def configure_logging(level: str, json_output: bool) -> None:
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        # Keep stdout clean for reports
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def build_manager(config: Settings) -> NFTManager:
    """Wires adapters; a Tezos signer is attached only when a secret key is configured"""
    tezos_wallet = None
    if config.tezos_secret_key is not None:
        tezos_wallet = TezosWalletSession(config.tezos_rpc_url, config.tezos_secret_key)

    adapters: Dict[ChainType, IChainAdapter] = {
        ChainType.TEZOS: TezosAdapter(config, wallet=tezos_wallet),
        ChainType.STARGAZE: StargazeAdapter(config),
    }
    return NFTManager(adapters)


def token_ref(chain: str, contract: str, token_id: str) -> NFT:
    """Minimal token record for commands addressed by contract/token id"""
    return NFT(
        id=NFTId(f"{contract}-{token_id}"),
        chain_type=ChainType(chain),
        name=f"{contract} #{token_id}",
        contract_address=contract,
        token_id=token_id,
    )


def default_wallet(config: Settings, chain: str) -> Optional[str]:
    if chain == ChainType.TEZOS.value:
        return config.tezos_wallet_address
    return config.stargaze_wallet_address


async def cmd_nfts(manager: NFTManager, view: ReportView, args: argparse.Namespace, config: Settings) -> None:
    wallet = args.wallet or default_wallet(config, args.chain)
    if not wallet:
        raise ConfigError("Wallet address not provided and not configured")

    nfts = await manager.get_nfts(args.chain, wallet)

    market: Optional[Dict[str, MarketData]] = None
    if args.market:
        market = {}
        # Sequential on purpose: one pricing lookup at a time
        for nft in nfts:
            if nft.is_listable:
                market[nft.id] = await manager.get_market_data(nft)

    if args.json:
        rows: List[dict] = []
        for nft in nfts:
            row = nft.to_dict()
            if market is not None and nft.id in market:
                row["marketData"] = market[nft.id].to_dict()
            rows.append(row)
        print(json.dumps(rows, indent=2))
    else:
        view.render_nfts(wallet, nfts, market)


async def cmd_market(manager: NFTManager, view: ReportView, args: argparse.Namespace) -> None:
    nft = token_ref(args.chain, args.contract, args.token_id)
    data = await manager.get_market_data(nft)
    if args.json:
        print(json.dumps(data.to_dict(), indent=2))
    else:
        view.render_market_data(nft.name, data)


async def cmd_list(manager: NFTManager, view: ReportView, args: argparse.Namespace) -> None:
    nft = token_ref(args.chain, args.contract, args.token_id)
    await manager.list_nft(nft, args.price)
    view.render_success(f"Listed {nft.name} for {args.price}")


async def cmd_burn(manager: NFTManager, view: ReportView, args: argparse.Namespace) -> None:
    nft = token_ref(args.chain, args.contract, args.token_id)
    await manager.burn_nft(nft)
    view.render_success(f"Burned {nft.name}")


def _price(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid price: {value}")


def build_parser() -> argparse.ArgumentParser:
    chains = [c.value for c in ChainType]
    parser = argparse.ArgumentParser(prog="nftdesk", description="Browse, price, list and burn your NFTs")
    parser.add_argument("--json", action="store_true", help="JSON output (reports and logs)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_nfts = sub.add_parser("nfts", help="List NFTs owned by a wallet")
    p_nfts.add_argument("chain", choices=chains)
    p_nfts.add_argument("wallet", nargs="?", help="Defaults to the configured wallet address")
    p_nfts.add_argument("--market", action="store_true", help="Fetch market data for each NFT")

    for name, help_text in (("market", "Show market data for a token"), ("burn", "Burn a token")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("chain", choices=chains)
        p.add_argument("contract")
        p.add_argument("token_id")

    p_list = sub.add_parser("list", help="List a token for sale")
    p_list.add_argument("chain", choices=chains)
    p_list.add_argument("contract")
    p_list.add_argument("token_id")
    p_list.add_argument("price", type=_price, help="Price in display units (e.g. 1.5 XTZ)")

    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, args.json)
    logger.debug("startup", **settings.model_dump(exclude={"tezos_secret_key"}))

    manager = build_manager(settings)
    view = ReportView()
    try:
        if args.command == "nfts":
            await cmd_nfts(manager, view, args, settings)
        elif args.command == "market":
            await cmd_market(manager, view, args)
        elif args.command == "list":
            await cmd_list(manager, view, args)
        elif args.command == "burn":
            await cmd_burn(manager, view, args)
    except DomainError as e:
        logger.error("command_failed", command=args.command, error=str(e), kind=e.code)
        view.render_error(e)
        return 1
    finally:
        await manager.close()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
