"""Download, unpack and pick files from the yearly CVM FII archive.

The monthly report for a year is published as one ZIP
(`inf_mensal_fii_<year>.zip`) holding a "geral" table and, in the newer
layout, "complemento" and "ativo_passivo" tables. `fetch_latest_archive`
tries candidate years in order and returns the first one that downloads,
unpacks and contains the files the chosen layout needs.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

import requests

from fii_fundamentals.errors import MissingRequiredFile, SourceUnavailable

log = logging.getLogger(__name__)

TABULAR_SUFFIXES = (".csv", ".txt")

# filename markers, matched case-insensitively
GENERAL_MARKER = "geral"
COMPLEMENT_MARKER = "complemento"
ASSETS_LIABILITIES_MARKER = "ativo_passivo"

LAYOUT_SINGLE = "single"
LAYOUT_SPLIT = "split"
LAYOUTS = (LAYOUT_SPLIT, LAYOUT_SINGLE)


@dataclass(frozen=True)
class ArchiveFiles:
    """Tables selected from an extracted archive.

    Attributes:
        general: Table with CNPJ, reference date and share count (and, in the
            single-file layout, net assets too).
        complement: Preferred net-asset-value table, if present.
        assets_liabilities: Fallback net-asset-value table, if present.
    """
    general: Path
    complement: Path | None = None
    assets_liabilities: Path | None = None

    def supplementary(self) -> list[tuple[str, Path]]:
        """Return the present net-asset-value candidates in preference order."""
        out: list[tuple[str, Path]] = []
        if self.complement is not None:
            out.append((COMPLEMENT_MARKER, self.complement))
        if self.assets_liabilities is not None:
            out.append((ASSETS_LIABILITIES_MARKER, self.assets_liabilities))
        return out


@dataclass(frozen=True)
class FetchedArchive:
    """Result of a successful fetch: the year used and its selected tables."""
    year: int
    url: str
    files: ArchiveFiles


def archive_url(year: int, template: str) -> str:
    """Return the archive URL for a given year.

    Args:
        year: Four-digit year (e.g. 2024).
        template: URL containing a `{year}` placeholder.
    """
    return template.format(year=year)


def candidate_years(today: date | None = None) -> list[int]:
    """Return the years to try, most recent first: current, then previous."""
    y = (today or date.today()).year
    return [y, y - 1]


def download_archive(url: str, dest: Path, user_agent: str, timeout: float = 60.0) -> Path:
    """Download the archive at `url` to `dest`.

    Raises:
        requests.HTTPError if the remote request fails (non-2xx status).
    """
    dest.parent.mkdir(parents=True, exist_ok=True)

    log.info("Downloading %s", url)
    r = requests.get(url, headers={"User-Agent": user_agent}, timeout=timeout)
    r.raise_for_status()
    dest.write_bytes(r.content)
    log.info("Saved: %s (%d bytes)", dest, dest.stat().st_size)
    return dest


def extract_archive(zip_path: Path, dest: Path) -> Path:
    """Extract `zip_path` into `dest` and return `dest`.

    Raises:
        zipfile.BadZipFile if the download is not a ZIP archive.
    """
    dest.mkdir(parents=True, exist_ok=True)
    log.info("Extracting %s", zip_path.name)
    with zipfile.ZipFile(zip_path) as zf:
        zf.extractall(dest)
    return dest


def list_tabular_files(directory: Path) -> list[Path]:
    """Return `.csv`/`.txt` files under `directory`, sorted by path."""
    return sorted(
        p for p in directory.rglob("*")
        if p.is_file() and p.suffix.lower() in TABULAR_SUFFIXES
    )


def _find_by_marker(files: Iterable[Path], marker: str) -> Path | None:
    for p in files:
        if marker in p.name.lower():
            return p
    return None


def select_archive_files(files: Sequence[Path], layout: str = LAYOUT_SPLIT) -> ArchiveFiles:
    """Pick the general and supplementary tables by filename keyword.

    Args:
        files: Tabular files found in the extracted archive.
        layout: `"split"` (general + complement/assets-liabilities) or
            `"single"` (everything in one table).

    Returns:
        `ArchiveFiles` for the layout.

    Raises:
        MissingRequiredFile: if the general table is missing (split layout),
            no tabular file exists (single layout), or neither supplementary
            table is present (split layout).
    """
    if layout not in LAYOUTS:
        raise ValueError(f"Unknown layout: {layout!r}")

    names = [p.name for p in files]
    general = _find_by_marker(files, GENERAL_MARKER)

    if layout == LAYOUT_SINGLE:
        if general is None:
            if not files:
                raise MissingRequiredFile("No CSV/TXT file found in the archive.")
            general = files[0]
        return ArchiveFiles(general=general)

    if general is None:
        raise MissingRequiredFile(f"No '{GENERAL_MARKER}' table in the archive: {names}")

    complement = _find_by_marker(files, COMPLEMENT_MARKER)
    assets_liabilities = _find_by_marker(files, ASSETS_LIABILITIES_MARKER)
    if complement is None and assets_liabilities is None:
        raise MissingRequiredFile(
            f"Neither a '{COMPLEMENT_MARKER}' nor an '{ASSETS_LIABILITIES_MARKER}' "
            f"table in the archive: {names}"
        )

    return ArchiveFiles(general=general, complement=complement, assets_liabilities=assets_liabilities)


def fetch_archive(
    year: int,
    work_dir: Path,
    url_template: str,
    user_agent: str,
    layout: str = LAYOUT_SPLIT,
    timeout: float = 60.0,
) -> FetchedArchive:
    """Download, extract and select the tables for a single year."""
    url = archive_url(year, url_template)
    zip_path = download_archive(url, work_dir / f"inf_mensal_fii_{year}.zip", user_agent, timeout)
    extracted = extract_archive(zip_path, work_dir / "extracted")
    files = select_archive_files(list_tabular_files(extracted), layout)
    return FetchedArchive(year=year, url=url, files=files)


def fetch_latest_archive(
    years: Sequence[int],
    scratch_root: Path,
    url_template: str,
    user_agent: str,
    layout: str = LAYOUT_SPLIT,
    timeout: float = 60.0,
) -> FetchedArchive:
    """Try each candidate year in order and return the first full success.

    Every attempt works in its own `scratch_root/<year>` directory so files
    from a failed year never reach the next attempt.

    Raises:
        SourceUnavailable: if every year fails; chained from the last error.
    """

    last_err: Exception | None = None
    for y in years:
        try:
            fetched = fetch_archive(y, scratch_root / str(y), url_template, user_agent, layout, timeout)
        except (requests.RequestException, zipfile.BadZipFile, OSError, MissingRequiredFile) as e:
            last_err = e
            log.warning("Failed to download/read year %d: %s", y, e)
            continue

        log.info("Using %d archive: %s", y, fetched.files.general.name)
        return fetched

    raise SourceUnavailable(
        f"Could not obtain the CVM archive for years {list(years)}: {last_err}"
    ) from last_err
