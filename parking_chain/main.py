# File: parking_chain/main.py
"""
Main application entry point for the Parking Chain engine

Loads the record file, runs the interactive console over it and writes the
final state back to the same file.
"""

from typing import List, Optional
import argparse
import logging
import os
import sys

from .application.parking_service import ParkingChainService
from .domain.exceptions import ParkingChainError
from .infrastructure.repositories import FileChainRepository
from .presentation.console import ConsoleIO, ParkingConsole


def setup_logging(log_dir: str = "logs") -> logging.Logger:
    """Setup application logging configuration"""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(log_dir, 'parking_chain.log')),
            # stdout belongs to the menu
            logging.StreamHandler(sys.stderr)
        ]
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='parking-chain',
        description='Interactive parking chain manager backed by a record file'
    )
    parser.add_argument(
        'file',
        help='Record file to load at start and overwrite at exit'
    )
    return parser


def main(argv: Optional[List[str]] = None, io: Optional[ConsoleIO] = None) -> int:
    """Main entry point for the application"""
    args = build_parser().parse_args(argv)
    logger = setup_logging()
    logger.info("Starting Parking Chain...")

    repository = FileChainRepository(args.file)

    try:
        chain = repository.load()
    except (ParkingChainError, OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to load {args.file}: {e}", exc_info=True)
        return 1

    service = ParkingChainService(chain)
    ParkingConsole(service, io).run()

    try:
        repository.save(service.chain)
    except OSError as e:
        logger.error(f"Failed to save {args.file}: {e}", exc_info=True)
        return 1

    logger.info("Parking Chain shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
