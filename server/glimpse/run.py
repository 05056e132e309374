import argparse
import logging

import uvicorn

from glimpse.config import ANALYSIS_DEBOUNCE_MS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the CLI.

    - Configures logging for the analysis services.
    - Starts the FastAPI server that editor hosts send documents to.
    """
    parser = argparse.ArgumentParser(
        prog="glimpse-server",
        description=(
            "Analysis server for Vue single-file components. "
            "Hosts should debounce edits before requesting analysis."
        ),
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface to bind the server to (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level for the analysis services (default: INFO).",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    url = f"http://{args.host}:{args.port}"
    print(f"🚀 Starting server at {url}")
    print(f"   Recommended client debounce: {ANALYSIS_DEBOUNCE_MS} ms")
    print("   Press Ctrl+C to stop.")

    uvicorn.run(
        "glimpse.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
