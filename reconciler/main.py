#!/usr/bin/env python3
"""Price Source Reconciler.

Replays decoded lending-protocol oracle events against a live RPC node and
prints the resulting price records (one price per asset, with its source
and fallback state).

Configure via CLI args or env vars. See --help for details.
"""

import argparse
import logging
import os
import sys

from .src.Addresses import MOCK_USD_ADDRESS
from .src.ContractUtility import NETWORKS, ContractUtility
from .src.EngineConfig import EngineConfig
from .src.EventReplay import ReplayError, dump_snapshot, replay
from .src.PriceSourceGateway import Web3PriceSourceGateway
from .src.RecordStore import InMemoryRecordStore
from .src.ReconciliationEngine import ReconciliationEngine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the reconciler CLI."""
    parser = argparse.ArgumentParser(
        description="Price Source Reconciler: replay oracle events into price records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available networks:
  {', '.join(NETWORKS)}

Examples:
  # Replay events of a v2 deployment on mainnet
  python -m reconciler.main --events events.jsonl --network mainnet

  # Legacy (version 1) oracle with a custom node, pinned block
  python -m reconciler.main --events events.jsonl --network mainnet-v1 \\
      --rpc-url http://localhost:8545 --block 11363000 --output records.json

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, ORACLE_VERSION, USD_BASE_ADDRESS
""",
    )

    parser.add_argument(
        "--events",
        type=str,
        help="JSON-lines file of decoded events ('-' for stdin)",
        default="-",
    )

    parser.add_argument(
        "--network",
        type=str,
        help=f"Network to connect to ({', '.join(NETWORKS)})",
        default=os.environ.get("NETWORK") or "mainnet",
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC URL overriding the network default",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--oracle-version",
        dest="oracle_version",
        type=int,
        help="Oracle deployment version (default: per network)",
        default=int(os.environ["ORACLE_VERSION"]) if os.environ.get("ORACLE_VERSION") else None,
    )

    parser.add_argument(
        "--usd-base-address",
        dest="usd_base_address",
        type=str,
        help=f"USD base unit asset address (default: {MOCK_USD_ADDRESS})",
        default=os.environ.get("USD_BASE_ADDRESS") or MOCK_USD_ADDRESS,
    )

    parser.add_argument(
        "--block",
        type=int,
        help="Block number to pin contract reads to (default: latest)",
        default=None,
    )

    parser.add_argument(
        "--output",
        type=str,
        help="File to write the record snapshot to (default: stdout)",
        default=None,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.oracle_version is not None and args.oracle_version < 1:
        parser.error("--oracle-version must be at least 1")

    try:
        config = EngineConfig.for_network(
            args.network,
            oracle_version=args.oracle_version,
            usd_base_unit_address=args.usd_base_address,
        )
    except ValueError as e:
        parser.error(str(e))

    contract_utility = ContractUtility(args.network, rpc_url=args.rpc_url)

    # Log configuration
    logger.info("=" * 60)
    logger.info("Price Source Reconciler")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"RPC:               {contract_utility.network}")
    logger.info(f"Oracle Version:    {config.oracle_version}")
    logger.info(f"USD Base Unit:     {config.usd_base_unit_address}")
    logger.info(f"Block:             {args.block if args.block is not None else 'latest'}")
    logger.info("=" * 60)

    gateway = Web3PriceSourceGateway(
        contract_utility.w3,
        block_identifier=args.block if args.block is not None else "latest",
    )
    store = InMemoryRecordStore()
    engine = ReconciliationEngine(store, gateway, config)

    try:
        if args.events == "-":
            replay(engine, sys.stdin)
        else:
            with open(args.events, "r") as events_file:
                replay(engine, events_file)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except (OSError, ReplayError) as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)

    output = dump_snapshot(store)
    if args.output:
        with open(args.output, "w") as output_file:
            output_file.write(output)
        logger.info(f"Wrote records to {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
