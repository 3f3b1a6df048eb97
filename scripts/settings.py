from __future__ import annotations

import argparse
import json
from pathlib import Path

from image_gin.config import config_to_dict, load_config, save_config, update_setting
from image_gin.errors import ImageGinError

SECRET_FIELDS = {"api_key", "private_key"}


def redact(data):
    if isinstance(data, dict):
        return {
            k: ("***" if k in SECRET_FIELDS and v else redact(v)) for k, v in data.items()
        }
    if isinstance(data, list):
        return [redact(v) for v in data]
    return data


def main() -> int:
    parser = argparse.ArgumentParser(description="Show or change image-gin settings.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="Print the settings with keys redacted.")
    set_parser = sub.add_parser("set", help="Change one setting, e.g. imagekit.enabled true")
    set_parser.add_argument("key", type=str)
    set_parser.add_argument("value", type=str)
    args = parser.parse_args()

    repo_root = Path(__file__).resolve().parents[1]
    try:
        config = load_config(repo_root)
        if args.command == "set":
            config = update_setting(config, args.key, args.value)
            path = save_config(repo_root, config)
            print(f"Saved {args.key} to {path}")
            return 0
    except (ImageGinError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    print(json.dumps(redact(config_to_dict(config)), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
