"""
ShaderLoop command line entry point.

    python -m shaderloop shader.frag [--vsync] [--log-level DEBUG]
"""

import argparse
import logging
import sys
from typing import List, Optional

from shaderloop.app import ShaderLoopApp
from shaderloop.config import PreviewConfig
from shaderloop.utils.logging import configure_logging

LOG = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live preview of an annotated GLSL fragment shader")
    parser.add_argument("file", nargs="?", help="fragment shader source to preview and watch")
    parser.add_argument("--vsync", action="store_true", help="synchronize buffer swaps with the display")
    parser.add_argument("--log-level", default="INFO", help="logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--title", default=None, help="window title")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = PreviewConfig.from_args(args)
    configure_logging(config.logging_level)

    try:
        app = ShaderLoopApp.create(config)
    except Exception as error:
        LOG.error("Could not start the preview: %s", error)
        return 1

    try:
        app.run()
    except KeyboardInterrupt:
        LOG.info("Interrupted by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
