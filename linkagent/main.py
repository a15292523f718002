"""CLI argument parsing and asyncio entry point."""

import asyncio
import logging
import os


def main():
    import argparse

    parser = argparse.ArgumentParser(description="linkagent - automated agent for a linked messaging device")
    parser.add_argument("--config", default=os.getenv("LINKAGENT_CONFIG", "config.yaml"))
    parser.add_argument(
        "--log-level",
        default=os.getenv("LINKAGENT_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s: %(name)s - %(message)s",
    )

    from .app import LinkAgent
    app = LinkAgent(args.config)

    async def _run():
        try:
            await app.run_forever()
        finally:
            await app.shutdown()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
