"""Shared fixtures: synthetic CVM tables, archives and a fake HTTP layer."""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Callable

import pytest
import requests

GENERAL_HEADER = ["CNPJ_Fundo_Classe", "Data_Referencia", "Nome_Fundo_Classe", "Cotas_Emitidas"]
COMPLEMENT_HEADER = ["CNPJ_Fundo_Classe", "Data_Referencia", "Valor_Ativo", "Patrimonio_Liquido"]


def table_text(header: list[str], rows: list[list[str]]) -> str:
    """Render rows the way CVM publishes them: ';'-separated, CRLF lines."""
    lines = [";".join(header)] + [";".join(r) for r in rows]
    return "\r\n".join(lines) + "\r\n"


def write_table(path: Path, header: list[str], rows: list[list[str]]) -> Path:
    path.write_text(table_text(header, rows), encoding="latin-1")
    return path


def zip_bytes(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text.encode("latin-1"))
    return buf.getvalue()


class FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch) -> Callable[[dict[str, FakeResponse]], list[str]]:
    """Route `requests.get` to canned responses keyed by URL; unknown URLs 404.

    Returns the list of requested URLs, in order.
    """
    def install(responses: dict[str, FakeResponse]) -> list[str]:
        calls: list[str] = []

        def fake_get(url: str, **kwargs: object) -> FakeResponse:
            calls.append(url)
            return responses.get(url, FakeResponse(status_code=404))

        monkeypatch.setattr(requests, "get", fake_get)
        return calls

    return install


@pytest.fixture
def cvm_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every setting at `tmp_path` and write a one-fund ticker map."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "fii_cnpj_map.json").write_text(
        json.dumps({"items": [{"ticker": "abcd11", "cnpj": "11.111.111/0001-11"}]}),
        encoding="utf-8",
    )
    monkeypatch.setenv("FII_DATA_DIR", str(data_dir))
    monkeypatch.delenv("FII_MAP_PATH", raising=False)
    monkeypatch.delenv("FII_OUTPUT_PATH", raising=False)
    monkeypatch.setenv("FII_SCRATCH_DIR", str(tmp_path / "scratch"))
    monkeypatch.setenv("CVM_ZIP_URL_TEMPLATE", "https://example.test/inf_mensal_fii_{year}.zip")
    monkeypatch.delenv("CVM_HTTP_TIMEOUT", raising=False)
    return data_dir
