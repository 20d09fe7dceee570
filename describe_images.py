from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from describe_media.checkpoint import CheckpointStore
from describe_media.commit import commit
from describe_media.config import DEFAULT_CACHE_FILE, DEFAULT_IMAGE_SIZE, DescribeConfig
from describe_media.errors import DescribeMediaError, ModelUnavailableError
from describe_media.logging_utils import setup_logging, get_logger
from describe_media.ollama_client import OllamaClient
from describe_media.runner import generate_descriptions
from describe_media.types import KIND_ORDER
from describe_media.wordpress import WordPressMediaLibrary

log = get_logger(__name__)

OLLAMA_HINT = (
    "Make sure Ollama is running on this machine, e.g. open the app or run "
    "`ollama pull llava` and `ollama serve`, then run this command again."
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Describe images in a WordPress media library with a local Ollama model"
    )
    parser.add_argument("--write_to_db", action="store_true",
                        help="Save the reviewed CSV to the site instead of generating descriptions")
    for kind in KIND_ORDER:
        parser.add_argument(f"--{kind.value}", nargs="?", const=True, default=None,
                            help=f"Prompt for {kind.value}; pass the flag with no value to skip it")
    parser.add_argument("--image_size", type=str, default=DEFAULT_IMAGE_SIZE,
                        help="Registered image size sent to the model (default: medium)")
    parser.add_argument("--cache_file", type=str, default=DEFAULT_CACHE_FILE,
                        help="CSV file name inside the output directory")
    parser.add_argument("--output_dir", type=str, default=None,
                        help="Writable directory for the CSV (default: $OUTPUT_DIR or the current directory)")
    parser.add_argument("--wp_url", type=str, default=None, help="WordPress site URL (default: $WP_URL)")
    parser.add_argument("--wp_user", type=str, default=None, help="WordPress user (default: $WP_USER)")
    parser.add_argument("--wp_password", type=str, default=None,
                        help="WordPress application password (default: $WP_APP_PASSWORD)")
    parser.add_argument("--ollama_url", type=str, default=None,
                        help="Ollama server URL (default: $OLLAMA_URL or http://127.0.0.1:11434)")
    parser.add_argument("--model", type=str, default=None, help="Ollama model (default: $OLLAMA_MODEL or llava)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds (default: 1200)")
    parser.add_argument("--limit", type=int, default=0, help="Stop after this many images (0 = all)")
    parser.add_argument("--summary", action="store_true", help="Show checkpoint statistics only")
    parser.add_argument("--log_level", type=str, default=None, help="Log level (e.g., INFO, DEBUG)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point.

    # Generate descriptions into image-descriptions.csv
    python3 describe_images.py --wp_url https://example.test --wp_user admin --wp_password '...'

    # Alt text and title only
    python3 describe_images.py --description --caption

    # Save the reviewed CSV to the site
    python3 describe_images.py --write_to_db
    """
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = DescribeConfig.from_args(args)
    store = CheckpointStore(config.checkpoint_path)

    if args.summary:
        counts = store.summary()
        log.info("checkpoint summary", extra={"path": str(store.path), **counts})
        return 0

    try:
        library = WordPressMediaLibrary.from_config(config)
        if args.write_to_db:
            result = commit(store, library)
            return 1 if result.failures else 0

        generate_descriptions(config, library, OllamaClient.from_config(config), store=store)
        return 0
    except ModelUnavailableError as e:
        log.error(str(e))
        log.error(OLLAMA_HINT)
        return 1
    except DescribeMediaError as e:
        log.error(str(e))
        return 1
    except KeyboardInterrupt:
        log.warning(f"Interrupted. Progress is saved in {store.path}; run again to resume.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
