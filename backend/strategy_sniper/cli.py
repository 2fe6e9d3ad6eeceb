"""
Command-line entry point.

    strategy-sniper [run] [--mode fast|safe] [--env-file PATH] [--log-level LEVEL]
    strategy-sniper decode-deploy [0x...]

Exit codes: 0 on graceful shutdown, 1 on bad configuration, transport loss,
or any uncaught failure.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import find_dotenv, load_dotenv

from .chain import ChainClient
from .config import FAST_MODE_WARN_ETH, Settings, load_settings
from .context import SniperContext
from .deploy_data import decode_factory_deploy_data
from .errors import ConfigError, TransportClosedError
from .events import LaunchSource
from .handler import LaunchHandler
from .log_setup import configure_logging
from .models import ExecutionMode
from .subscriber import EventSubscriber

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strategy-sniper",
        description="Snipe newly launched strategy tokens with native ETH.",
    )
    parser.add_argument("command", nargs="?", default="run", choices=["run", "decode-deploy"])
    parser.add_argument("data", nargs="?", help="deployment calldata for decode-deploy")
    parser.add_argument("--mode", choices=[m.value for m in ExecutionMode], help="overrides SNIPE_MODE")
    parser.add_argument("--env-file", help="path to a .env file")
    parser.add_argument("--log-level", help="overrides LOG_LEVEL")
    parser.add_argument("--plain-logs", action="store_true", help="human-readable instead of JSON logs")
    return parser


def build_sources(settings: Settings) -> list[LaunchSource]:
    sources = [LaunchSource("standard", settings.factory_address)]
    if settings.range_factory_address:
        sources.append(LaunchSource("ranged", settings.range_factory_address, ranged=True))
    return sources


async def check_factory(client, settings: Settings) -> None:
    """Startup reads: the hook address and whether our router is whitelisted."""
    try:
        hook = await client.hook_address(settings.factory_address)
        logger.info("Hook address: %s", hook)
    except Exception:
        logger.error("Error reading factory hook address", exc_info=True)
        return

    try:
        whitelisted = await client.is_router_whitelisted(settings.factory_address, settings.router_address)
        logger.info("Router whitelisted in factory? %s", whitelisted)
    except Exception:
        logger.warning("Could not read listOfRouters (maybe ABI mismatch). Continuing anyway.")


async def run(settings: Settings) -> None:
    """Connect, subscribe, and process launches until the transport dies."""
    client = await ChainClient.connect(
        settings.rpc_wss,
        settings.private_key,
        settings.router_address,
        settings.state_view_address,
    )
    logger.info("Connected to chain id %d", client.chain_id)
    logger.info("Wallet: %s", client.address)
    try:
        await check_factory(client, settings)

        handler = LaunchHandler(SniperContext.from_settings(client, settings))
        subscriber = EventSubscriber(client, handler, build_sources(settings))
        await subscriber.start()
        await subscriber.run()
    finally:
        try:
            await client.disconnect()
        except Exception:
            logger.debug("Disconnect after shutdown failed", exc_info=True)


def log_launch_parameters(settings: Settings) -> None:
    logger.info("=== Script Launch Parameters ===")
    for name, value in settings.masked().items():
        logger.info("%s: %s", name, value)

    if settings.mode is ExecutionMode.FAST and settings.eth_amount_in > FAST_MODE_WARN_ETH:
        logger.warning(
            "Using %s ETH in FAST mode (no slippage protection). "
            "Consider smaller amounts or SAFE mode.",
            settings.eth_amount_in,
        )


def decode_deploy(data: str | None) -> int:
    data = data or os.getenv("FACTORY_DEPLOY_DATA")
    if not data:
        logger.error("Missing deploy data: pass it as an argument or set FACTORY_DEPLOY_DATA")
        return 1
    try:
        deployment = decode_factory_deploy_data(data)
    except ValueError as e:
        logger.error("Could not decode deploy data: %s", e)
        return 1
    print(json.dumps(deployment.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or os.getenv("LOG_LEVEL") or "INFO", structured=not args.plain_logs)

    if args.command == "decode-deploy":
        load_dotenv(args.env_file or find_dotenv(usecwd=True))
        return decode_deploy(args.data)

    try:
        settings = load_settings(args.env_file, args.mode)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    if not args.log_level:
        logging.getLogger().setLevel(getattr(logging, settings.log_level, logging.INFO))
    log_launch_parameters(settings)

    try:
        asyncio.run(run(settings))
    except TransportClosedError as e:
        logger.error(
            "WebSocket closed, code: %s, exiting. Use a process manager to restart. (%s)", e.code, e
        )
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0
    except Exception:
        logger.exception("Fatal error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
