#!/usr/bin/env python3
"""Entry point for the drip claimer.

Runs either the continuous distribution watcher (default) or a single
claim attempt (``--once``).
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from drip_claimer.claimer import DripClaimer
from drip_claimer.errors import NoReachableEndpointError


async def main() -> int:
    """Main entry point for the drip claimer.

    Returns:
        Process exit code
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Drip Claimer - watch for distributions and blast signed claims",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  PRIVATE_KEY        - Wallet private key
  API_BASE           - Issuance API base URL
  CLIENT_ID          - Issuance API client id
  RECIPIENT          - Mint recipient address
  RELAYER            - Relayer granted the token allowance
  TOKEN              - Payment token address
  SCTG_KEY           - Captcha service key
  TURNSTILE_SITEKEY  - Turnstile site key
  RPC / RPC_FALLBACKS - RPC endpoints tried before the built-in list
  WATCH_ADDRESSES    - Distributor addresses to watch
  WATCH_WINDOW       - Max block age in seconds (default: 15)
  MINT_COUNT         - Authorizations per claim (default: 500)
  PROXY              - Optional outbound proxy
  LOG_LEVEL          - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single claim immediately instead of watching for distributions"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info(f"=== Drip Claimer Starting ({'SINGLE-SHOT' if args.once else 'WATCH'} MODE) ===")

    claimer: DripClaimer | None = None
    try:
        claimer = DripClaimer.from_env()
        if args.once:
            outcomes = await claimer.run_once()
            return 0 if any(o.success for o in outcomes) else 1
        await claimer.run_watch()
        return 0

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - PRIVATE_KEY, SCTG_KEY, TURNSTILE_SITEKEY")
        logger.error("  - API_BASE, CLIENT_ID")
        logger.error("  - RECIPIENT, RELAYER, TOKEN")
        return 1

    except NoReachableEndpointError as e:
        logger.error(f"Connectivity Error: {e}")
        return 1

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        return 0

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        return 1

    finally:
        if claimer is not None:
            await claimer.shutdown()


if __name__ == "__main__":
    load_dotenv()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
