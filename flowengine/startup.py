"""Application startup script and CLI interface."""

import sys
import argparse
from typing import List, Optional

from .config import (
    AppConfig,
    LogLevel,
    load_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    validate_config
)
from .core.logging import get_logger


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="flowengine",
        description="Flow Engine - executes visually designed API workflows"
    )

    # Server configuration
    parser.add_argument("--host", help="Host to bind the server to")
    parser.add_argument("--port", type=int, help="Port to bind the server to")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    # Environment configuration
    parser.add_argument(
        "--env",
        choices=["development", "production", "testing"],
        help="Environment configuration preset"
    )
    parser.add_argument("--config", help="Path to a .env configuration file")

    parser.add_argument("--database-url", help="Database connection URL")

    # Logging configuration
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        help="Logging level"
    )
    parser.add_argument("--log-file", help="Path to log file")

    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    # Execution configuration
    parser.add_argument(
        "--node-timeout",
        type=float,
        help="Seconds a single node may run before it is marked failed"
    )

    # Commands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the workflow engine server")
    run_parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)"
    )

    db_parser = subparsers.add_parser("db", help="Database management commands")
    db_subparsers = db_parser.add_subparsers(dest="db_command", help="Database commands")
    db_subparsers.add_parser("init", help="Initialize database tables")
    db_subparsers.add_parser("reset", help="Reset database (drop and recreate tables)")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("validate", help="Validate configuration")

    return parser


def load_configuration(args: argparse.Namespace) -> AppConfig:
    """Load configuration based on command line arguments."""
    if args.env == "development":
        config = get_development_config()
    elif args.env == "production":
        config = get_production_config()
    elif args.env == "testing":
        config = get_testing_config()
    else:
        config = load_config(args.config)

    # Command line arguments win over presets and environment
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.reload:
        config.reload = args.reload
    if args.database_url:
        config.database_url = args.database_url
    if args.log_level:
        config.log_level = LogLevel(args.log_level)
    if args.log_file:
        config.log_file = args.log_file
    if args.debug:
        config.debug = args.debug
    if args.node_timeout:
        config.node_timeout = args.node_timeout

    return config


def run_server(config: AppConfig, workers: int = 1):
    """Run the workflow engine server."""
    import uvicorn
    from .factory import create_app

    logger = get_logger(__name__)
    logger.info(f"Starting server with {workers} worker(s)")

    uvicorn_config = config.get_uvicorn_config()

    if workers > 1:
        # Worker processes rebuild their configuration from the environment
        uvicorn.run("flowengine.main:app", workers=workers, **uvicorn_config)
    else:
        app = create_app(config)
        uvicorn.run(app, **uvicorn_config)


def run_database_command(command: str, config: AppConfig):
    """Run database management commands."""
    from .storage.database import configure_database, create_tables, drop_tables

    logger = get_logger(__name__)
    configure_database(config.database_url, echo=config.database_echo)

    if command == "init":
        logger.info("Initializing database tables...")
        create_tables()
        print("Database tables created successfully")

    elif command == "reset":
        logger.info("Resetting database...")
        drop_tables()
        create_tables()
        print("Database reset completed successfully")


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "not set"
    return f"{secret[:4]}..." if len(secret) > 8 else "****"


def show_configuration(config: AppConfig):
    """Show current configuration."""
    print("Current Configuration:")
    print(f"  App Name: {config.app_name}")
    print(f"  Version: {config.app_version}")
    print(f"  Debug: {config.debug}")
    print(f"  Host: {config.host}")
    print(f"  Port: {config.port}")
    print(f"  Database URL: {config.database_url}")
    print(f"  Log Level: {config.log_level.value}")
    print(f"  Node Timeout: {config.node_timeout}")
    print(f"  HTTP Timeout: {config.http_timeout}")
    print(f"  Execution Log Limit: {config.execution_log_limit}")
    print(f"  OpenAI Model: {config.openai_model}")
    print(f"  OpenAI API Key: {_mask(config.openai_api_key)}")
    print(f"  Stripe Secret Key: {_mask(config.stripe_secret_key)}")


def validate_configuration_command(config: AppConfig):
    """Validate configuration and show results."""
    try:
        validate_config(config)
        print("Configuration validation: PASSED")
        print("All configuration settings are valid.")
    except ValueError as e:
        print("Configuration validation: FAILED")
        print(f"Error: {e}")
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = load_configuration(args)

        if args.command == "config":
            if args.config_command == "show":
                show_configuration(config)
            elif args.config_command == "validate":
                validate_configuration_command(config)
            else:
                print("Configuration command required. Use --help for options.")
                sys.exit(1)
            return

        validate_config(config)

        if args.command == "run" or args.command is None:
            workers = getattr(args, 'workers', 1)
            run_server(config, workers)

        elif args.command == "db":
            if args.db_command:
                run_database_command(args.db_command, config)
            else:
                print("Database command required. Use --help for options.")
                sys.exit(1)

        else:
            parser.print_help()

    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
