from __future__ import annotations

import argparse
import logging
from pathlib import Path

from image_gin.cache import ImageCache
from image_gin.config import load_config
from image_gin.errors import ImageGinError
from image_gin.freepik import FreepikClient
from image_gin.generate import insert_search_result
from image_gin.vault import FileVault


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Search Freepik stock images and optionally insert one into a note."
    )
    parser.add_argument("term", type=str, help="Search term.")
    parser.add_argument("--limit", type=int, help="Number of results.")
    parser.add_argument("--page", type=int, default=1, help="Result page.")
    parser.add_argument("--note", type=str, help="Note to insert the chosen image into.")
    parser.add_argument("--insert", type=int, help="Index of the result to insert.")
    parser.add_argument("--line", type=int, help="Line to insert before (default: append).")
    parser.add_argument(
        "--cache",
        action="store_true",
        help="Cache the thumbnails (and the inserted image) inside the vault.",
    )
    parser.add_argument("--verbose", action="store_true", help="Show log output.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    repo_root = Path(__file__).resolve().parents[1]

    try:
        config = load_config(repo_root)
        vault = FileVault(config.vault_path, config.backup_dir)
        result = FreepikClient(config).search(args.term, args.limit, args.page)
        if not result.images:
            print(f"No images found for '{args.term}'.")
            return 0

        cache = ImageCache(vault, config) if args.cache else None
        if cache is not None:
            cache.cache_images([image.source_url for image in result.images if image.source_url])

        meta = result.meta
        print(f"Page {meta.current_page}/{meta.last_page} ({meta.total} total):")
        for index, image in enumerate(result.images):
            cached = cache.get(image.source_url) if cache is not None else None
            location = cached.local_path if cached and cached.cached else image.source_url
            print(f"{index:>4}  {image.title} by {image.author_name or 'unknown'}  {location}")

        if args.insert is None:
            return 0
        if not args.note:
            print("--insert needs --note.")
            return 1
        if not 0 <= args.insert < len(result.images):
            print(f"No result with index {args.insert}.")
            return 1

        chosen = result.images[args.insert]
        url = None
        if cache is not None:
            cached = cache.cache_image(chosen.source_url or chosen.url)
            if cached.cached:
                url = cached.local_path
        snippet = insert_search_result(vault, args.note, chosen, args.line, url)
    except ImageGinError as exc:
        print(f"Search failed: {exc}")
        return 1

    print(f"Inserted into {args.note}: {snippet}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
