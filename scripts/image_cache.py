from __future__ import annotations

import argparse
import logging
from pathlib import Path

from image_gin.cache import ImageCache
from image_gin.config import load_config
from image_gin.errors import ImageGinError
from image_gin.vault import FileVault


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect or clean the vault image cache.")
    parser.add_argument("action", choices=["stats", "clear", "prune"])
    parser.add_argument("--verbose", action="store_true", help="Show log output.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    repo_root = Path(__file__).resolve().parents[1]

    try:
        config = load_config(repo_root)
        cache = ImageCache(FileVault(config.vault_path), config)
        if args.action == "clear":
            print(f"Image cache cleared ({cache.clear()} file(s) removed).")
        elif args.action == "prune":
            removed = cache.prune()
            print(f"Removed {removed} file(s) older than {config.cache_duration_days} day(s).")
        else:
            stats = cache.stats()
            print(f"{stats.total_images} cached image(s), {stats.size_label}")
    except ImageGinError as exc:
        print(f"Error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
