"""Configuration loading for jarkit (.jarkit.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .digest import DEFAULT_ALGORITHM, Digester
from .errors import ConfigError
from .products import DEFAULT_PRODUCTS, ProductCatalog

CONFIG_FILENAME = ".jarkit.yml"


@dataclass
class DigestConfig:
    """Fingerprint algorithm settings."""

    algorithm: str = DEFAULT_ALGORITHM


@dataclass
class ScanConfig:
    """Deep reference scanning via ``javap``."""

    deep: bool = False
    javap: Optional[str] = None


@dataclass
class DecompilerConfig:
    """Location of the CFR decompiler and the java launcher running it."""

    java: Optional[str] = None
    cfr_jar: Optional[Path] = None


@dataclass
class ClasspathConfig:
    workers: Optional[int] = None


@dataclass
class JarKitConfig:
    """Represents the settings defined in .jarkit.yml."""

    root: Path
    digest: DigestConfig = field(default_factory=DigestConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    decompiler: DecompilerConfig = field(default_factory=DecompilerConfig)
    classpath: ClasspathConfig = field(default_factory=ClasspathConfig)
    products: Dict[str, List[str]] = field(
        default_factory=lambda: {name: list(packages) for name, packages in DEFAULT_PRODUCTS.items()}
    )
    log_file: Optional[Path] = None

    def product_catalog(self) -> ProductCatalog:
        return ProductCatalog.from_mapping(self.products)

    def digester(self) -> Digester:
        return Digester(self.digest.algorithm)


def load_config(config_path: Path) -> JarKitConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return JarKitConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root", path=config_file)

    config = JarKitConfig(root=root)

    digest_data = _as_dict(data.get("digest"))
    algorithm = _as_str(digest_data.get("algorithm"))
    if algorithm:
        try:
            Digester(algorithm)
        except ValueError as exc:
            raise ConfigError(f"Unsupported digest algorithm: {algorithm}", path=config_file) from exc
        config.digest.algorithm = algorithm

    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        config.scan.deep = _as_bool(scan_data.get("deep")) or False
        config.scan.javap = _as_str(scan_data.get("javap"))

    decompiler_data = _as_dict(data.get("decompiler"))
    if decompiler_data:
        config.decompiler.java = _as_str(decompiler_data.get("java"))
        cfr_jar = _as_str(decompiler_data.get("cfr_jar"))
        config.decompiler.cfr_jar = (root / cfr_jar).resolve() if cfr_jar else None

    classpath_data = _as_dict(data.get("classpath"))
    workers = _as_int(classpath_data.get("workers")) if classpath_data else None
    if workers is not None and workers < 1:
        raise ConfigError("classpath.workers must be a positive integer", path=config_file)
    config.classpath.workers = workers

    if "products" in data:
        products = data.get("products")
        if not isinstance(products, dict):
            raise ConfigError("products must map product names to package lists", path=config_file)
        config.products = {str(name): _as_str_list(packages) for name, packages in products.items()}

    log_file = _as_str(data.get("log_file"))
    config.log_file = root / log_file if log_file else None
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}", path=path) from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ClasspathConfig",
    "DecompilerConfig",
    "DigestConfig",
    "JarKitConfig",
    "ScanConfig",
    "load_config",
]
