# utils.py
"""
Utility functions for the scene framework.

This module provides helper functions, such as logging setup and config
loading, that are used across different parts of the application but do
not belong to a specific domain like geometry or rendering.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, Tuple

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys. All keys are optional.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler (skipped when "log_file" is null).
#
# load_config(path: str) -> Dict[str, Any]:
#   - Raises FileNotFoundError / json.JSONDecodeError after logging them.
#
# grid_bounds(grid: Dict[str, Any]) -> Tuple[float, float, float]:
#   - Outputs: (width, height, depth) of the volume the galaxy fills.
#   - Raises ValueError if any extent is not strictly positive.

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/scene.log')

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        # Rotates when the log reaches 1MB, keeps 5 backup logs.
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def grid_bounds(grid: Dict[str, Any]) -> Tuple[float, float, float]:
    """
    Derives the galaxy volume from the cube grid configuration.

    The grid is `per_side` cubes wide and deep and `layers` cubes high;
    `depth` may be given explicitly to stretch the volume along z.
    """
    per_side = grid.get('per_side', 10)
    width = float(grid.get('width', per_side))
    height = float(grid.get('height', grid.get('layers', 4)))
    depth = float(grid.get('depth', per_side))

    if min(width, height, depth) <= 0:
        msg = (
            f"Configuration error: grid extents must be positive, "
            f"got width={width}, height={height}, depth={depth}."
        )
        logging.critical(msg)
        raise ValueError(msg)
    return width, height, depth
