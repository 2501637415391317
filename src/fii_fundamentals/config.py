"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings`, which
reads the data paths, archive URL template and HTTP options from the
environment (a `.env` file at the project root is loaded first).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import os

from dotenv import load_dotenv

from fii_fundamentals.errors import ConfigurationError

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

CVM_ZIP_URL_TEMPLATE = (
    "https://dados.cvm.gov.br/dados/FII/DOC/INF_MENSAL/DADOS/inf_mensal_fii_{year}.zip"
)
DEFAULT_USER_AGENT = "fii-fundamentals/0.1"
MAP_FILENAME = "fii_cnpj_map.json"
OUTPUT_FILENAME = "fiis_fundamentals.json"


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        data_dir: Base directory for the ticker map and the snapshot.
        map_path: Ticker → CNPJ mapping file (`fii_cnpj_map.json`).
        output_path: Snapshot destination (`fiis_fundamentals.json`).
        zip_url_template: Archive URL with a `{year}` placeholder.
        user_agent: User-Agent header sent to the CVM portal.
        http_timeout: Download timeout in seconds.
        scratch_dir: Parent for per-run extraction directories, or None for
            the system temp directory.
    """
    data_dir: Path
    map_path: Path
    output_path: Path
    zip_url_template: str
    user_agent: str
    http_timeout: float
    scratch_dir: Path | None

    def with_paths(self, map_path: Path | None = None, output_path: Path | None = None) -> "Settings":
        """Return a copy with CLI-provided path overrides applied."""
        return replace(
            self,
            map_path=map_path or self.map_path,
            output_path=output_path or self.output_path,
        )


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        ConfigurationError: if `CVM_HTTP_TIMEOUT` is not a positive number or
            `CVM_ZIP_URL_TEMPLATE` has no `{year}` placeholder.
    """
    data_dir = Path(os.getenv("FII_DATA_DIR", "data"))
    map_path = Path(os.getenv("FII_MAP_PATH", str(data_dir / MAP_FILENAME)))
    output_path = Path(os.getenv("FII_OUTPUT_PATH", str(data_dir / OUTPUT_FILENAME)))
    zip_url_template = os.getenv("CVM_ZIP_URL_TEMPLATE", CVM_ZIP_URL_TEMPLATE).strip()
    user_agent = os.getenv("CVM_USER_AGENT", "").strip() or DEFAULT_USER_AGENT
    scratch = os.getenv("FII_SCRATCH_DIR", "").strip()

    if "{year}" not in zip_url_template:
        raise ConfigurationError(
            f"CVM_ZIP_URL_TEMPLATE must contain a '{{year}}' placeholder: {zip_url_template!r}"
        )

    raw_timeout = os.getenv("CVM_HTTP_TIMEOUT", "60")
    try:
        http_timeout = float(raw_timeout)
    except ValueError as e:
        raise ConfigurationError(f"CVM_HTTP_TIMEOUT is not a number: {raw_timeout!r}") from e
    if http_timeout <= 0:
        raise ConfigurationError(f"CVM_HTTP_TIMEOUT must be positive, got {http_timeout}")

    return Settings(
        data_dir=data_dir,
        map_path=map_path,
        output_path=output_path,
        zip_url_template=zip_url_template,
        user_agent=user_agent,
        http_timeout=http_timeout,
        scratch_dir=Path(scratch) if scratch else None,
    )
