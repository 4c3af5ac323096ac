import asyncio

from scan_launcher.launcher import launch_scan, outcome_guidance
from scan_launcher.models import PollingConfig
from scan_launcher.scan_client import ScanClient
from scan_server import ScanServer


async def status_changed(update):
    print(f"Status changed to: {update.observation.value} (attempt {update.attempt})")
    print(f"Elapsed time: {update.elapsed_time:.6f}s")


async def main():
    PORT = 8000
    # Two null readings while the scan spins up, a few running ones, then done
    server = ScanServer(status_script=[None, None, True, True, True, False])
    await server.start(port=PORT)
    print(f"Server started on http://localhost:{PORT}")

    config = PollingConfig(max_attempts=20, poll_interval=1.0, initialization_timeout=5.0)

    try:
        async with ScanClient(f"http://localhost:{PORT}/graphql", api_key="demo-key") as client:
            result = await launch_scan(client, config, on_status_change=status_changed)

        if not result.started:
            print("A scan is already in progress")
        else:
            print(f"Final status: {result.polling.outcome.value}")
            print(f"Attempts: {result.polling.attempts}")
            print(outcome_guidance(result.polling.outcome))
    except Exception as e:
        print(f"Error occurred: {e}")
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
