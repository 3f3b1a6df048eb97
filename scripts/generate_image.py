from __future__ import annotations

import argparse
import logging
from pathlib import Path

from image_gin.config import load_config
from image_gin.errors import ImageGinError
from image_gin.generate import existing_prompt, generate_for_document
from image_gin.recraft import RecraftClient
from image_gin.vault import FileVault


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate Recraft images for a note and record them in its frontmatter."
    )
    parser.add_argument("note", type=str, help="Relative path to the note inside the vault.")
    parser.add_argument(
        "--prompt",
        type=str,
        help="Image prompt (default: the prompt stored in the note's frontmatter).",
    )
    parser.add_argument(
        "--size",
        action="append",
        dest="sizes",
        help="Image size id to generate; repeat for several (default: all sizes).",
    )
    parser.add_argument(
        "--no-write-prompt",
        action="store_true",
        help="Do not save the prompt to the note's frontmatter.",
    )
    parser.add_argument("--verbose", action="store_true", help="Show log output.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    repo_root = Path(__file__).resolve().parents[1]

    try:
        config = load_config(repo_root)
        vault = FileVault(config.vault_path, config.backup_dir)
        prompt = args.prompt or existing_prompt(vault, config, args.note)
        if not prompt:
            print(f"No prompt given and no '{config.image_prompt_key}' in {args.note}.")
            return 1

        sizes = args.sizes or [size.id for size in config.image_sizes]
        generated = generate_for_document(
            vault,
            config,
            RecraftClient(config),
            args.note,
            prompt,
            sizes,
            write_prompt=not args.no_write_prompt,
        )
    except ImageGinError as exc:
        print(f"Error: {exc}")
        return 1

    for item in generated:
        print(f"{item.yaml_key}: {item.path}")
    print("Image generation completed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
