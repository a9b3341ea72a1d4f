from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from meminspect.core.accessor import U32_MAX, AddressSpace, Region

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class RegionSpec:
    name: str
    base: int
    size: int
    image: Path | None = None
    read_only: bool = False

    @property
    def end(self) -> int:
        return self.base + self.size

    def build(self) -> Region:
        data = self.image.read_bytes() if self.image is not None else None
        return Region(self.name, self.base, self.size, data=data, read_only=self.read_only)


@dataclass(frozen=True)
class Config:
    regions: dict[str, RegionSpec]
    spaces: dict[str, list[str]]
    default_space: str

    def build_space(self, name: str | None = None) -> AddressSpace:
        space = name or self.default_space
        if space not in self.spaces:
            raise ConfigError([f"unknown address space: {space}"])
        regions = [self.regions[r].build() for r in self.spaces[space]]
        logger.debug("built address space %s from %d region(s)", space, len(regions))
        return AddressSpace(space, regions)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            return None
    return None


def _load_region(raw: Any, index: int, root: Path, errors: list[str]) -> RegionSpec | None:
    where = f"regions[{index}]"
    if not isinstance(raw, dict):
        errors.append(f"{where} must be a mapping")
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        errors.append(f"{where}.name must be a non-empty string")
        return None
    where = f"region {name}"

    base = _as_int(raw.get("base"))
    if base is None or not 0 <= base <= U32_MAX:
        errors.append(f"{where}: base must be an integer in 0..0xFFFFFFFF")
        return None

    image: Path | None = None
    image_size: int | None = None
    if raw.get("image") is not None:
        image = Path(str(raw["image"]))
        if not image.is_absolute():
            image = root / image
        if not image.is_file():
            errors.append(f"{where}: image not found: {image}")
            return None
        image_size = image.stat().st_size

    if "size" in raw:
        size = _as_int(raw["size"])
        if size is None or size <= 0:
            errors.append(f"{where}: size must be a positive integer")
            return None
    elif image_size:
        size = image_size
    else:
        errors.append(f"{where}: size is required without a non-empty image")
        return None

    if image_size is not None and image_size > size:
        errors.append(f"{where}: image is {image_size} bytes, larger than size {size}")
        return None
    if base + size - 1 > U32_MAX:
        errors.append(f"{where}: extends past 0xFFFFFFFF")
        return None

    read_only = raw.get("read_only", False)
    if not isinstance(read_only, bool):
        errors.append(f"{where}: read_only must be true or false")
        return None
    return RegionSpec(name, base, size, image, read_only)


def load_config(text: str, root: Path | None = None) -> Config:
    """Parse a region/address-space YAML document.

    Relative image paths resolve against `root` (the config file's directory).
    All problems are reported together in a single ConfigError.
    """
    root = root or Path.cwd()
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError([f"YAML parse error: {e}"]) from None

    if not isinstance(data, dict):
        raise ConfigError(["Top-level YAML must be a mapping (use 'regions' and 'spaces')."])

    errors: list[str] = []
    raw_regions = data.get("regions")
    if not isinstance(raw_regions, list) or not raw_regions:
        raise ConfigError(["regions must be a non-empty list"])

    regions: dict[str, RegionSpec] = {}
    for i, raw in enumerate(raw_regions):
        spec = _load_region(raw, i, root, errors)
        if spec is None:
            continue
        if spec.name in regions:
            errors.append(f"duplicate region name: {spec.name}")
            continue
        regions[spec.name] = spec

    raw_spaces = data.get("spaces")
    if raw_spaces is None:
        # One space per region when none are declared
        raw_spaces = {name: [name] for name in regions}
    if not isinstance(raw_spaces, dict) or not raw_spaces:
        errors.append("spaces must be a non-empty mapping of name -> region list")
        raise ConfigError(errors)

    spaces: dict[str, list[str]] = {}
    for space, members in raw_spaces.items():
        if not isinstance(members, list) or not members:
            errors.append(f"space {space}: must list at least one region")
            continue
        unknown = [m for m in members if m not in regions]
        if unknown:
            errors.append(f"space {space}: unknown region(s): {', '.join(map(str, unknown))}")
            continue
        ordered = sorted((regions[m] for m in members), key=lambda r: r.base)
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.base < prev.end:
                errors.append(f"space {space}: regions {prev.name} and {cur.name} overlap")
        spaces[str(space)] = [str(m) for m in members]

    default_space = data.get("default_space")
    if default_space is None:
        default_space = next(iter(raw_spaces), None)
    if default_space not in raw_spaces:
        errors.append(f"default_space {default_space!r} is not a declared space")

    if errors:
        raise ConfigError(errors)
    return Config(regions, spaces, str(default_space))


def load_config_file(path: str | Path) -> Config:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError([f"config not found: {path}"]) from None
    return load_config(text, path.parent)
