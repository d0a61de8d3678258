# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Main lingocue application.
Starts the practice server and keeps it running until interrupted.
"""

import argparse
import asyncio
import contextlib
import logging
import signal
from collections.abc import Callable

from . import debug_log
from .config import Config, get_config_path, load_config, save_config
from .recording import RecordingCapture
from .server import WebServer

logger = logging.getLogger(__name__)


class LingocueApp:
    """
    Main lingocue application that owns the web server.
    """

    def __init__(
        self,
        config: Config,
        host: str = "127.0.0.1",
        port: int = 8000,
        recorder_factory: Callable[[], RecordingCapture] | None = None
    ) -> None:
        self.config: Config = config
        self.host: str = host
        self.port: int = port
        self.recorder_factory = recorder_factory

        self.server: WebServer | None = None
        self.running: bool = False
        self._stopped: asyncio.Event = asyncio.Event()

    async def start(self) -> None:
        """Start the server and wait until shutdown is requested."""
        print("Starting lingocue...")
        self.server = WebServer(
            host=self.host,
            port=self.port,
            config=self.config,
            recorder_factory=self.recorder_factory
        )
        await self.server.start()
        self.running = True

        print("\n✓ lingocue ready!")
        print(f"  Connect a player to ws://{self.host}:{self.port}/ws")
        print("  Press Ctrl+C to stop\n")

        await self._stopped.wait()

    def request_stop(self) -> None:
        """Ask start() to return."""
        self.running = False
        self._stopped.set()

    async def stop(self) -> None:
        """Stop the lingocue application."""
        print("\nStopping lingocue...")
        self.running = False

        if self.server:
            await self.server.stop()

        print("lingocue stopped.")


def main() -> None:
    """Main entry point."""
    # Configure logging - minimal console output
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    # Load config first to use as defaults
    config: Config = load_config()

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="lingocue - Subtitle-synchronised listening, dictation and shadowing practice"
    )

    parser.add_argument(
        "--host",
        default=config.get("host", "127.0.0.1"),
        help="Web server host (default: from config or 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=config.get("port", 8000),
        help="Web server port (default: from config or 8000)"
    )

    parser.add_argument(
        "--device", "-d",
        type=int,
        default=config.get("audio_device"),
        help="Audio input device index for --microphone (default: from config or system default)"
    )

    parser.add_argument(
        "--microphone",
        action="store_true",
        help="Record shadowing on this machine's microphone instead of in the browser"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio input devices and exit"
    )

    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Save current options to config file and exit"
    )

    parser.add_argument(
        "--debug-log",
        action="store_true",
        help="Enable debug logging to ./logs/"
    )

    args: argparse.Namespace = parser.parse_args()

    # Handle special commands
    if args.list_devices:
        from .audio import list_devices  # pylint: disable=import-outside-toplevel
        list_devices()
        return

    if args.save_config:
        config["host"] = args.host
        config["port"] = args.port
        config["audio_device"] = args.device

        if save_config(config):
            print(f"Configuration saved to {get_config_path()}")
        return

    # Enable debug logging if requested
    if args.debug_log:
        debug_log.enable()
        debug_log.clear_logs()
        print("Debug logging enabled (logs will be saved to ./logs/)")

    recorder_factory: Callable[[], RecordingCapture] | None = None
    if args.microphone:
        from .audio import MicrophoneRecorder  # pylint: disable=import-outside-toplevel
        sample_rate: int = config.get("sample_rate", 16000)
        device: int | None = args.device

        def make_microphone() -> RecordingCapture:
            return MicrophoneRecorder(sample_rate=sample_rate, device=device)

        recorder_factory = make_microphone

    # Handle shutdown gracefully
    loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    app: LingocueApp = LingocueApp(
        config=config,
        host=args.host,
        port=args.port,
        recorder_factory=recorder_factory
    )

    def shutdown(sig: int, frame: object) -> None:
        """Handle shutdown signals (SIGINT, SIGTERM) gracefully."""
        print("\nReceived shutdown signal...")
        loop.call_soon_threadsafe(app.request_stop)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        app.running = False
    finally:
        # Ensure clean shutdown
        with contextlib.suppress(OSError, RuntimeError):
            loop.run_until_complete(app.stop())
        # Cancel any remaining tasks
        pending: set[asyncio.Task[object]] = asyncio.all_tasks(loop)
        for task in pending:
            task.cancel()
        # Allow cancelled tasks to complete
        if pending:
            loop.run_until_complete(asyncio.gather(
                *pending, return_exceptions=True))
        loop.close()


if __name__ == "__main__":
    main()
