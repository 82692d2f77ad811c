"""Main entry point for the BI dashboard server."""
import argparse
import logging
import sys

from pydantic import ValidationError

from .api.fastapi_app import create_app
from .config.settings import Settings
from .llm.providers.base import LLMConfigurationError


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(description="BI Dashboard Server")
    parser.add_argument("--port", type=int, default=8000, help="Port for server")
    parser.add_argument("--host", default="0.0.0.0", help="Host for server")
    args = parser.parse_args()

    try:
        settings = Settings.from_env()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    configure_logging(settings.log_level)

    try:
        app = create_app(settings)
    except LLMConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    logging.getLogger(__name__).info(f"Starting server on {args.host}:{args.port}...")
    import uvicorn
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
