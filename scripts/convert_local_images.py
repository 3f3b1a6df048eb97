from __future__ import annotations

import argparse
import logging
from pathlib import Path

from image_gin.config import load_config
from image_gin.convert import BatchConverter, analyze_document, convert_document
from image_gin.errors import ImageGinError
from image_gin.imagekit import ImageKitClient
from image_gin.scanner import scan_documents
from image_gin.vault import FileVault


def confirm(prompt: str) -> bool:
    response = input(f"{prompt} [y/N]: ").strip().lower()
    return response in {"y", "yes"}


def print_summary(summary) -> None:
    for error in summary.errors:
        print(f"Failed: {error.item}: {error.message}")
    print(summary.message)


def convert_note(args, config, vault: FileVault) -> int:
    analysis = analyze_document(vault.read_document(args.note), config.imagekit.url_endpoint)
    if analysis.local_count == 0:
        print(f"No local images found in {args.note}.")
        return 0

    print(f"Local images in {args.note}:")
    for prop in analysis.properties:
        status = "local" if prop.is_local else "skip"
        print(f"- [{status}] {prop.key}: {prop.value}")
    for image in analysis.body_images:
        print(f"- [local] {image.match}")

    if not args.apply:
        print("Dry-run: no files written.")
        return 0
    if config.confirm_writes and not args.yes and not confirm("Upload these images?"):
        return 0

    summary = convert_document(vault, config, ImageKitClient(config.imagekit), args.note)
    print_summary(summary)
    return 1 if summary.failed else 0


def convert_scope(args, config, vault: FileVault) -> int:
    selection = scan_documents(vault, config, args.scope)
    if len(selection) == 0:
        print("No local images found in the specified directory.")
        return 0

    print(f"Found {len(selection)} local image reference(s):")
    for index, reference in enumerate(selection):
        print(
            f"{index:>4}  {reference.source_document_path}:{reference.line_number}"
            f"  {reference.image_name}"
        )

    for index in args.skip:
        if 0 <= index < len(selection):
            selection.toggle(index, False)
    print(f"Selected {len(selection.selected())} of {len(selection)} ({selection.state.value}).")

    if not args.apply:
        print("Dry-run: no files written.")
        return 0
    if not selection.selected():
        print("Please select at least one image to convert.")
        return 0
    if config.confirm_writes and not args.yes and not confirm("Convert selected images?"):
        return 0

    converter = BatchConverter(vault, config, ImageKitClient(config.imagekit))
    summary = converter.convert(
        selection.references,
        progress=lambda i, total, ref: print(f"Converting {i + 1}/{total}: {ref.image_name}"),
    )
    print_summary(summary)
    return 1 if summary.failed else 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Upload local images referenced by notes to ImageKit and rewrite the links."
    )
    parser.add_argument(
        "--scope",
        type=str,
        default="",
        help="Vault folder to scan (default: whole vault).",
    )
    parser.add_argument(
        "--note",
        type=str,
        help="Relative path to a single note; converts frontmatter and body images.",
    )
    parser.add_argument(
        "--skip",
        type=int,
        nargs="*",
        default=[],
        help="Indexes of found references to leave unselected.",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Upload and write changes (otherwise dry-run).",
    )
    parser.add_argument("--yes", action="store_true", help="Skip confirmation prompt.")
    parser.add_argument("--verbose", action="store_true", help="Show log output.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    repo_root = Path(__file__).resolve().parents[1]

    try:
        config = load_config(repo_root)
        if not config.imagekit.enabled:
            print("Please enable ImageKit in secrets.json before converting images.")
            return 1
        vault = FileVault(config.vault_path, config.backup_dir)
        if args.note:
            return convert_note(args, config, vault)
        return convert_scope(args, config, vault)
    except ImageGinError as exc:
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
