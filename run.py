"""
Cellcrafter — run.py
Main entry point for the Cellcrafter interactive application.
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure we can import cellcrafter packages when run from a checkout
project_root = Path(__file__).parent.resolve()
sys.path.insert(0, str(project_root))

from engine.data_loader import get_gameplay_config, load_gameplay_config
from engine.logging_config import setup_logging
from ui.renderer import Renderer
from ui.states import Engine
from ui.screens import MainMenuState

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Explore the grid, collect tokens and craft them together.")
    parser.add_argument("--debug", action="store_true", help="log recompute and movement details")
    parser.add_argument("--log-file", default=None, help="also write the log to this file")
    parser.add_argument("--check-config", type=Path, metavar="TOML",
                        help="validate a gameplay TOML file and exit")
    return parser.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)
    logger = setup_logging(logging.DEBUG if args.debug else logging.INFO, args.log_file)

    if args.check_config is not None:
        if not args.check_config.is_file():
            logger.error("%s does not exist", args.check_config)
            return 2
        config = load_gameplay_config(args.check_config)
        logger.info("%s is valid: seed=%r radius=%d padding=%d", args.check_config,
                    config.world.seed, config.interaction.radius, config.cache.padding)
        return 0

    display = get_gameplay_config().display
    renderer = Renderer(width=display.width, height=display.height, title=display.title)
    engine = Engine(renderer=renderer, initial_state_cls=MainMenuState)
    engine.run()
    return 0

if __name__ == "__main__":
    sys.exit(main())
