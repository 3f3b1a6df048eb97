from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from image_gin.errors import ConfigError

SECRETS_FILE = "secrets.json"

RECRAFT_URL = "https://external.api.recraft.ai/v1/images/generations"
DEFAULT_CACHE_FOLDER = ".obsidian/plugins/image-gin/cache"


@dataclass(frozen=True)
class ImageSize:
    id: str
    yaml_key: str
    width: int
    height: int
    label: str


DEFAULT_IMAGE_SIZES = (
    ImageSize("banner", "banner_image", 1200, 630, "Banner (1200x630)"),
    ImageSize("portrait", "portrait_image", 800, 1200, "Portrait (800x1200)"),
    ImageSize("square", "square_image", 1024, 1024, "Square (1024x1024)"),
)


@dataclass(frozen=True)
class RecraftSettings:
    api_key: str = ""
    base_url: str = RECRAFT_URL
    model: str = "recraftv3"


@dataclass(frozen=True)
class FreepikSettings:
    api_key: str = ""
    default_image_count: int = 10


@dataclass(frozen=True)
class ImageKitSettings:
    enabled: bool = False
    private_key: str = ""
    public_key: str = ""
    url_endpoint: str = ""
    upload_folder: str = ""
    remove_local_files: bool = False
    convert_to_webp: bool = False


@dataclass(frozen=True)
class StyleSettings:
    use_custom_style: bool = False
    custom_style_id: str = ""
    base: str = "digital_illustration"
    substyle: str = ""


@dataclass(frozen=True)
class Config:
    vault_path: Path
    recraft: RecraftSettings = field(default_factory=RecraftSettings)
    freepik: FreepikSettings = field(default_factory=FreepikSettings)
    imagekit: ImageKitSettings = field(default_factory=ImageKitSettings)
    style: StyleSettings = field(default_factory=StyleSettings)
    image_sizes: tuple[ImageSize, ...] = DEFAULT_IMAGE_SIZES
    image_styles_json: tuple[Dict[str, Any], ...] = ()
    image_prompt_key: str = "image_prompt"
    image_output_folder: str = "attachments"
    cache_folder: str = DEFAULT_CACHE_FOLDER
    cache_duration_days: int = 7
    retries: int = 3
    backoff_delay: float = 1.0
    rate_limit: int = 60
    backup_dir: str = ".vault_backups"
    confirm_writes: bool = True

    def size(self, size_id: str) -> ImageSize:
        for size in self.image_sizes:
            if size.id == size_id:
                return size
        raise ConfigError(f"Unknown image size: {size_id}")


def _section(cls, data: Any):
    if not isinstance(data, dict):
        return cls()
    names = {f.name for f in dataclasses.fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


def _image_sizes(data: Any) -> tuple[ImageSize, ...]:
    if not data:
        return DEFAULT_IMAGE_SIZES
    sizes: List[ImageSize] = []
    for item in data:
        try:
            sizes.append(
                ImageSize(
                    id=str(item["id"]),
                    yaml_key=str(item.get("yaml_key") or item.get("yamlKey")),
                    width=int(item["width"]),
                    height=int(item["height"]),
                    label=str(item.get("label") or item["id"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid image size entry {item!r}: {exc}") from exc
    return tuple(sizes)


def config_from_dict(data: Dict[str, Any]) -> Config:
    vault_path = Path(data.get("vault_path", "")).expanduser()
    styles = data.get("image_styles_json") or []
    if isinstance(styles, str):
        try:
            styles = json.loads(styles)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"image_styles_json is not valid JSON: {exc}") from exc
    if not isinstance(styles, list):
        raise ConfigError("image_styles_json must be a list of styles.")

    try:
        return Config(
            vault_path=vault_path,
            recraft=_section(RecraftSettings, data.get("recraft")),
            freepik=_section(FreepikSettings, data.get("freepik")),
            imagekit=_section(ImageKitSettings, data.get("imagekit")),
            style=_section(StyleSettings, data.get("style")),
            image_sizes=_image_sizes(data.get("image_sizes")),
            image_styles_json=tuple(styles),
            image_prompt_key=data.get("image_prompt_key", "image_prompt"),
            image_output_folder=data.get("image_output_folder", "attachments"),
            cache_folder=data.get("cache_folder", DEFAULT_CACHE_FOLDER),
            cache_duration_days=int(data.get("cache_duration_days", 7)),
            retries=int(data.get("retries", 3)),
            backoff_delay=float(data.get("backoff_delay", 1.0)),
            rate_limit=int(data.get("rate_limit", 60)),
            backup_dir=data.get("backup_dir", ".vault_backups"),
            confirm_writes=bool(data.get("confirm_writes", True)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


def config_to_dict(config: Config) -> Dict[str, Any]:
    data = dataclasses.asdict(config)
    data["vault_path"] = str(config.vault_path)
    data["image_sizes"] = [dataclasses.asdict(s) for s in config.image_sizes]
    data["image_styles_json"] = list(config.image_styles_json)
    return data


def load_config(repo_root: Path) -> Config:
    secrets_path = repo_root / SECRETS_FILE
    if not secrets_path.exists():
        raise ConfigError(
            "Missing secrets.json. Copy secrets.example.json and fill it in first."
        )

    try:
        data = json.loads(secrets_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"secrets.json is not valid JSON: {exc}") from exc

    config = config_from_dict(data)
    if not config.vault_path.exists():
        raise ConfigError(
            f"Vault path not found: {config.vault_path}. Update secrets.json."
        )
    return config


def save_config(repo_root: Path, config: Config) -> Path:
    secrets_path = repo_root / SECRETS_FILE
    secrets_path.write_text(
        json.dumps(config_to_dict(config), indent=2) + "\n", encoding="utf-8"
    )
    return secrets_path


def _coerce(current: Any, value: str) -> Any:
    if isinstance(current, bool):
        lowered = value.strip().lower()
        if lowered not in {"true", "false", "1", "0", "yes", "no"}:
            raise ConfigError(f"Expected a boolean, got {value!r}")
        return lowered in {"true", "1", "yes"}
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, Path):
        return Path(value).expanduser()
    return value


def update_setting(config: Config, dotted_key: str, value: str) -> Config:
    """Return a copy of ``config`` with one scalar setting replaced."""
    head, _, rest = dotted_key.partition(".")
    names = {f.name for f in dataclasses.fields(config)}
    if head not in names:
        raise ConfigError(f"Unknown setting: {dotted_key}")

    current = getattr(config, head)
    if rest:
        if not dataclasses.is_dataclass(current):
            raise ConfigError(f"Setting {head} has no field {rest}")
        return dataclasses.replace(config, **{head: update_setting(current, rest, value)})

    if dataclasses.is_dataclass(current) or isinstance(current, tuple):
        raise ConfigError(f"Setting {dotted_key} cannot be set from the command line")
    try:
        return dataclasses.replace(config, **{head: _coerce(current, value)})
    except ValueError as exc:
        raise ConfigError(f"Invalid value for {dotted_key}: {value!r}") from exc
