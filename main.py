"""
Docs Templates MCP server entrypoint.

Usage:
    python main.py                                # stdio transport
    python main.py --transport streamable-http    # HTTP transport on TEMPLATE_PORT
"""
import argparse
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before importing anything that reads config
dotenv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env')
load_dotenv(dotenv_path=dotenv_path)

from core.config import LOG_LEVEL, TEMPLATE_PORT, get_transport_mode  # noqa: E402

# Suppress googleapiclient discovery cache warning
logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.ERROR)

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Google Docs template MCP server")
    parser.add_argument(
        '--transport',
        choices=['stdio', 'streamable-http'],
        default=get_transport_mode(),
        help='Transport mode (default: TEMPLATE_TRANSPORT or stdio)'
    )
    args = parser.parse_args()

    from core.server import server, set_transport_mode

    set_transport_mode(args.transport)

    # Import tool modules to register them (side-effect imports)
    import gtemplates.template_tools  # noqa: F401

    try:
        if args.transport == 'streamable-http':
            logger.info(f"Starting server on port {TEMPLATE_PORT}")
            server.run(transport='streamable-http', host='0.0.0.0', port=TEMPLATE_PORT)
        else:
            server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)


if __name__ == '__main__':
    main()
