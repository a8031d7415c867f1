"""CLI entry point for SimAction."""

import argparse
import socket
import sys

from SimAction import __version__
from SimAction.config_manager import RefreshPolicy


def find_available_port(
    start_port: int = 8000, max_attempts: int = 100, host: str = "127.0.0.1"
) -> int:
    """Find an available port starting from start_port.

    Args:
        start_port: Port to start searching from
        max_attempts: Maximum number of ports to try
        host: Host to bind to (default: 127.0.0.1)

    Returns:
        An available port number

    Raises:
        RuntimeError: If no available port found within max_attempts
    """
    for port in range(start_port, start_port + max_attempts):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind((host, port))
                return port
        except OSError:
            continue

    raise RuntimeError(
        f"Could not find available port in range {start_port}-{start_port + max_attempts - 1}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SimAction - open URLs, share clipboards and take screenshots across iOS simulators"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: auto-find starting from 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--xcrun",
        default=None,
        help="Path to the xcrun executable (default: xcrun, or from config file)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline in seconds for each simctl/xctrace call (default: 30)",
    )
    parser.add_argument(
        "--refresh-policy",
        choices=[p.value for p in RefreshPolicy],
        default=None,
        help="What to publish when the simulator query fails (default: fail_fast)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default="logs/simaction_{time:YYYY-MM-DD}.log",
        help="Log file path (default: logs/simaction_{time:YYYY-MM-DD}.log)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Disable file logging",
    )
    return parser


def main() -> None:
    """Start the SimAction server."""
    args = build_parser().parse_args()

    if args.port is None:
        try:
            args.port = find_available_port(start_port=8000, host=args.host)
            print(f"\nAuto-detected available port: {args.port}\n")
        except RuntimeError as e:
            print(f"\nError: {e}", file=sys.stderr)
            sys.exit(1)

    import uvicorn

    from SimAction.config_manager import config_manager
    from SimAction.logger import configure_logger

    configure_logger(
        console_level=args.log_level,
        log_file=None if args.no_log_file else args.log_file,
    )

    # CLI > ENV > FILE > DEFAULT
    config_manager.set_cli_config(
        xcrun_path=args.xcrun,
        command_timeout=args.timeout,
        refresh_policy=args.refresh_policy,
    )
    config_manager.load_env_config()
    config_manager.load_file_config()
    effective_config = config_manager.get_effective_config()

    # reload mode starts a fresh process that only inherits the environment
    config_manager.sync_to_env()

    print()
    print("=" * 50)
    print("  SimAction - Simulator Fleet Actions")
    print("=" * 50)
    print(f"  Version:    {__version__}")
    print()
    print(f"  Server:     http://{args.host}:{args.port}")
    print()
    print("  Configuration:")
    print(f"    Source:   {config_manager.get_config_source().value}")
    print(f"    xcrun:    {effective_config.xcrun_path}")
    print(f"    Timeout:  {effective_config.command_timeout:.0f}s")
    print(f"    Policy:   {effective_config.refresh_policy.value}")
    print()
    print("=" * 50)
    print("  Press Ctrl+C to stop")
    print("=" * 50)
    print()

    from SimAction import server

    uvicorn.run(
        server.app if not args.reload else "SimAction.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
