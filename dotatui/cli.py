"""Command-line interface for dotatui."""

import sys
import logging
import argparse
import asyncio
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

from dotatui import __version__
from dotatui.config import paths
from dotatui.config.loader import load_config, ConfigError
from dotatui.config.validator import validate_config, ValidationError
from dotatui.api.account import AccountIdError, parse_account_id
from dotatui.api.client import OpenDotaClient, REQUEST_LOGGER_NAME, create_http_client
from dotatui.media.image_cache import DiskImageCache, MemoryImageCache
from dotatui.media.pipeline import ImagePipeline
from dotatui.media.terminal_image import ImageSupport
from dotatui.ui.event_bus import EventBus
from dotatui.workflow.orchestrator import TaskOrchestrator
from dotatui.workflow.persistence import Persistence
from dotatui.workflow.reducer import Reducer
from dotatui.workflow.state import AppState


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog='dotatui',
        description='Terminal dashboard for OpenDota player and match data',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the dashboard
  dotatui

  # Open the dashboard on a player (account_id or SteamID64)
  dotatui --account 135664392

  # Print a player's recent matches without the dashboard
  dotatui --headless --account 76561198095930120

  # Disable inline images
  dotatui --no-images
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='PATH',
        help='Path to config.yaml (default: ~/.config/dotatui/config.yaml)'
    )

    parser.add_argument(
        '--account',
        metavar='ID',
        help='account_id or SteamID64 to load on startup'
    )

    parser.add_argument(
        '--headless',
        action='store_true',
        help='Print profile and recent matches for --account and exit'
    )

    parser.add_argument(
        '--no-images',
        action='store_true',
        help='Disable inline terminal images. Overrides config.'
    )

    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Remove the on-disk image cache before starting'
    )

    return parser


def _setup_logging(config: dict, ui_active: bool = False) -> None:
    """
    Setup logging configuration from config.

    Args:
        config: Configuration dictionary
        ui_active: True when the Textual UI owns the terminal
    """
    logging_config = config.get('logging', {})

    level_str = str(logging_config.get('level', 'INFO')).upper()
    level = getattr(logging, level_str, logging.INFO)

    handlers = []

    # Console output only when nothing else is drawing on the terminal
    if not ui_active:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        handlers.append(console_handler)

    log_file = logging_config.get('file')
    if log_file:
        try:
            log_path = Path(log_file).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            )
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not create log file '{log_file}': {e}", file=sys.stderr)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )

    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.INFO)

    _setup_request_log(config)


def _setup_request_log(config: dict, log_path: Optional[Path] = None) -> None:
    """
    Route per-request lines to tui.log.

    The request logger stops propagating so these lines never reach the
    console or the general log file.
    """
    request_logger = logging.getLogger(REQUEST_LOGGER_NAME)
    for handler in list(request_logger.handlers):
        request_logger.removeHandler(handler)
        handler.close()

    if not config.get('api', {}).get('log_requests', True):
        request_logger.propagate = False
        request_logger.addHandler(logging.NullHandler())
        return

    path = log_path or paths.request_log_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding='utf-8')
    except OSError as e:
        logger.warning(f"Request log disabled, cannot open {path}: {e}")
        request_logger.propagate = False
        request_logger.addHandler(logging.NullHandler())
        return

    handler.setFormatter(logging.Formatter('%(message)s'))
    request_logger.setLevel(logging.INFO)
    request_logger.addHandler(handler)
    request_logger.propagate = False


def build_orchestrator(config: dict, api_client: OpenDotaClient, with_images: bool = True) -> TaskOrchestrator:
    """
    Wire state, reducer, event bus and image pipeline around an API client.

    Args:
        config: Configuration dictionary
        api_client: OpenDotaClient shared by all tasks
        with_images: Build an image pipeline (False for headless mode)

    Returns:
        TaskOrchestrator with persisted state loaded
    """
    images_config = config.get('images', {})
    ui_config = config.get('ui', {})

    state = AppState(image_cache=MemoryImageCache(images_config.get('memory_cache_entries', 256)))
    reducer = Reducer(state, Persistence(), recent_limit=ui_config.get('recent_limit', 5))
    reducer.load_persisted()

    pipeline = None
    if with_images:
        support = ImageSupport.from_config(images_config)
        pipeline = ImagePipeline(support, DiskImageCache(paths.image_cache_dir()))

    return TaskOrchestrator(api_client, EventBus(), reducer, pipeline)


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for dotatui CLI.

    Args:
        argv: Command-line arguments (default: sys.argv)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
        validate_config(config)
    except (ConfigError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.no_images:
        config['images']['enabled'] = False

    account_id = None
    if args.account is not None:
        try:
            account_id = parse_account_id(args.account)
        except AccountIdError as e:
            print(f"Invalid account: {e}. Use account_id or SteamID64", file=sys.stderr)
            return 1

    _setup_logging(config, ui_active=not args.headless)

    if args.clear_cache:
        removed = DiskImageCache(paths.image_cache_dir()).clear()
        if args.headless:
            print(f"Removed {removed} cached images")

    if args.headless:
        if account_id is None:
            print("--headless requires --account", file=sys.stderr)
            return 2
        try:
            return asyncio.run(run_headless(config, account_id))
        except KeyboardInterrupt:
            print("\nInterrupted by user.", file=sys.stderr)
            return 130

    return run_dashboard(config, account_id)


async def run_headless(config: dict, account_id: int, console=None) -> int:
    """
    Load one player through the fetch pipeline and print it.

    Returns:
        0 if the profile loaded, 1 otherwise
    """
    from dotatui.ui.console_ui import print_report

    http_client = create_http_client(config)
    api_client = OpenDotaClient(config, http_client)
    orchestrator = build_orchestrator(config, api_client, with_images=False)
    bus = orchestrator.event_bus

    consumer = asyncio.create_task(bus.process_events(orchestrator.handle_event))
    try:
        # Search resets the progress counters, so it goes first
        orchestrator.start_search(account_id)
        orchestrator.start_heroes()

        # Reducer follow-ups may spawn more tasks, so settle until both are empty
        while orchestrator.pending_tasks or bus.pending():
            await orchestrator.wait_idle()
            await bus.drain()
    finally:
        consumer.cancel()
        try:
            await consumer
        except asyncio.CancelledError:
            pass
        await http_client.aclose()

    state = orchestrator.state
    print_report(state, console)
    return 0 if state.profile is not None else 1


def run_dashboard(config: dict, account_id: Optional[int]) -> int:
    """Run the Textual dashboard until the user quits."""
    from dotatui.ui.textual_ui import DotaDashboard

    http_client = create_http_client(config)
    api_client = OpenDotaClient(config, http_client)
    orchestrator = build_orchestrator(config, api_client, with_images=True)

    # The app closes the HTTP client on unmount, inside its own event loop
    app = DotaDashboard(config, orchestrator, initial_account=account_id)
    app.run()

    logger.info("dotatui exited")
    return 0


if __name__ == '__main__':
    sys.exit(main())
