"""Configuration loading from environment variables and convstore.toml."""

from __future__ import annotations

import hashlib
import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from convstore.address import parse_address
from convstore.state import DEFAULT_CAPACITY

_DEFAULT_DATA_DIR = Path.home() / ".convstore" / "ledger"
_CONFIG_FILENAME = "convstore.toml"
DEFAULT_PROGRAM_ID = hashlib.sha256(b"convstore").digest()


@dataclass
class StoreConfig:
    """Slot store policy."""

    capacity: int = DEFAULT_CAPACITY


@dataclass
class ProgramConfig:
    """Identity of the program that owns every storage account."""

    id: bytes = DEFAULT_PROGRAM_ID


@dataclass
class ConvStoreConfig:
    """Top-level configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    program: ProgramConfig = field(default_factory=ProgramConfig)
    data_dir: Path = _DEFAULT_DATA_DIR
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ConvStoreConfig:
    """Load configuration from environment variables and optional convstore.toml.

    Priority: environment variables > convstore.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".convstore" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})
    program_data = file_data.get("program", {})

    capacity = int(os.getenv("CONVSTORE_CAPACITY", store_data.get("capacity", DEFAULT_CAPACITY)))
    if capacity < 0:
        raise ValueError(f"store capacity must be non-negative, got {capacity}")

    program_id = os.getenv("CONVSTORE_PROGRAM_ID", program_data.get("id"))

    config = ConvStoreConfig(
        store=StoreConfig(capacity=capacity),
        program=ProgramConfig(
            id=parse_address(program_id) if program_id else DEFAULT_PROGRAM_ID,
        ),
        data_dir=Path(os.getenv("CONVSTORE_DATA_DIR", file_data.get("data_dir", str(_DEFAULT_DATA_DIR)))),
        log_level=os.getenv("CONVSTORE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
