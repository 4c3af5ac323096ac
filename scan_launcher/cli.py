import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError
from scan_launcher.cancellation import cancel_running_scan, describe_cancellation
from scan_launcher.launcher import launch_scan, outcome_guidance
from scan_launcher.models import PollingConfig
from scan_launcher.scan_client import ScanClient
from scan_launcher.settings import ScanSettings


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scan-launcher",
        description="Start a scan and wait for it to settle, or cancel a running one.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    launch = subparsers.add_parser("launch", help="start a scan and poll it until it settles")
    launch.add_argument("--max-attempts", type=int, help="overrides MAX_POLL_ATTEMPTS")
    launch.add_argument(
        "--poll-interval", type=float, help="seconds between polls, overrides POLL_INTERVAL_MS"
    )
    launch.add_argument(
        "--initialization-timeout",
        type=float,
        help="seconds a scan may stay unconfirmed, overrides INITIALIZATION_TIMEOUT_MS",
    )

    cancel = subparsers.add_parser("cancel", help="cancel the scan that is currently running")
    cancel.add_argument("--scan-id", help="scan to cancel; prompted for when omitted")
    return parser


def resolve_polling_config(settings: ScanSettings, args: argparse.Namespace) -> PollingConfig:
    values = settings.polling_values()
    overrides = {
        "max_attempts": args.max_attempts,
        "poll_interval": args.poll_interval,
        "initialization_timeout": args.initialization_timeout,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return PollingConfig(**values)


async def run_launch(settings: ScanSettings, config: PollingConfig) -> int:
    async with ScanClient(settings.GRAPHQL_ENDPOINT, settings.api_key) as client:
        try:
            result = await launch_scan(client, config)
        except Exception as e:
            logger.error(f"Error in scanning process: {e}")
            return 1

    if not result.started:
        print("Cannot start a new scan because a scan is already in progress.")
        return 0

    polling = result.polling
    if polling.success:
        print(f"Process completed successfully with status: {polling.outcome.value}")
    else:
        print(f"Process did not complete successfully. Status: {polling.outcome.value}")
    print(f"Scan ID: {polling.scan_id} ({polling.attempts} poll attempts)")
    print(outcome_guidance(polling.outcome))
    return 0


async def run_cancel(settings: ScanSettings, scan_id: Optional[str]) -> int:
    print("=== Scan Cancellation Tool ===")
    async with ScanClient(settings.GRAPHQL_ENDPOINT, settings.api_key) as client:
        try:
            result = await cancel_running_scan(client, scan_id)
        except Exception as e:
            logger.error(f"An error occurred: {e}")
            return 1

    if result is None:
        print("No scan is currently in progress. Nothing to cancel.")
        return 0

    for line in describe_cancellation(result):
        print(line)
    return 0


def main(argv: Optional[List[str]] = None, settings: Optional[ScanSettings] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings or ScanSettings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.LOG_LEVEL)

    if args.command == "cancel":
        return asyncio.run(run_cancel(settings, args.scan_id))

    try:
        config = resolve_polling_config(settings, args)
    except ValidationError as e:
        logger.error(f"Invalid polling configuration: {e}")
        return 1
    return asyncio.run(run_launch(settings, config))


if __name__ == "__main__":
    sys.exit(main())
