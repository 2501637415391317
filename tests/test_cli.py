from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from conftest import COMPLEMENT_HEADER, GENERAL_HEADER, FakeResponse, table_text, zip_bytes
from fii_fundamentals.cli import build_parser, cmd_columns, main

URL_2024 = "https://example.test/inf_mensal_fii_2024.zip"
CNPJ_A = "11.111.111/0001-11"

HttpInstaller = Callable[[dict[str, FakeResponse]], list[str]]


def _archive(general_rows: list[list[str]], complement_rows: list[list[str]]) -> FakeResponse:
    return FakeResponse(zip_bytes({
        "inf_mensal_fii_geral_2024.csv": table_text(GENERAL_HEADER, general_rows),
        "inf_mensal_fii_complemento_2024.csv": table_text(COMPLEMENT_HEADER, complement_rows),
    }))


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_update_writes_value_per_share(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "1000"]],
        [[CNPJ_A, "2024-05-31", "120000", "100000"]],
    )})

    main(["update", "--year", "2024"])

    doc = _read(cvm_env / "fiis_fundamentals.json")
    assert doc["referenceDate"] == "2024-05-31"
    assert doc["source"].startswith("CVM")
    assert doc["items"] == [{"ticker": "ABCD11", "vp": 100.0, "dy12m": None, "pl": None}]


def test_update_zero_shares_gives_null(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "0"]],
        [[CNPJ_A, "2024-05-31", "120000", "100000"]],
    )})

    main(["update", "--year", "2024"])

    assert _read(cvm_env / "fiis_fundamentals.json")["items"][0]["vp"] is None


def test_update_picks_latest_reference_date(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-04-30", "FII Alpha", "1000"], [CNPJ_A, "2024-05-31", "FII Alpha", "2000"]],
        [[CNPJ_A, "2024-04-30", "1", "100000"], [CNPJ_A, "2024-05-31", "1", "100000"]],
    )})

    main(["update", "--year", "2024"])

    doc = _read(cvm_env / "fiis_fundamentals.json")
    assert doc["referenceDate"] == "2024-05-31"
    assert doc["items"][0]["vp"] == 50.0


def test_update_single_layout(cvm_env: Path, fake_http: HttpInstaller) -> None:
    text = table_text(
        ["CNPJ_FUNDO", "DT_COMPTC", "VL_PATRIM_LIQ", "QT_COTAS"],
        [[CNPJ_A, "2019-12-31", "250.000,00", "1.000"]],
    )
    fake_http({URL_2024: FakeResponse(zip_bytes({"inf_mensal_fii_2024.csv": text}))})

    main(["update", "--year", "2024", "--layout", "single"])

    doc = _read(cvm_env / "fiis_fundamentals.json")
    assert doc["competence"] == "2019-12-31"
    assert doc["items"][0]["vp"] == 250.0


def test_update_is_idempotent(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "1000"]],
        [[CNPJ_A, "2024-05-31", "120000", "100000"]],
    )})
    out = cvm_env / "fiis_fundamentals.json"

    main(["update", "--year", "2024"])
    first = _read(out)
    main(["update", "--year", "2024"])
    second = _read(out)

    first.pop("updatedAt")
    second.pop("updatedAt")
    assert first == second


def test_update_removes_scratch_unless_kept(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "1000"]],
        [[CNPJ_A, "2024-05-31", "120000", "100000"]],
    )})
    scratch = cvm_env.parent / "scratch"

    main(["update", "--year", "2024"])
    assert list(scratch.iterdir()) == []

    main(["update", "--year", "2024", "--keep-scratch"])
    assert len(list(scratch.iterdir())) == 1


def test_update_empty_map_fails_before_network(cvm_env: Path, fake_http: HttpInstaller) -> None:
    (cvm_env / "fii_cnpj_map.json").write_text(json.dumps({"items": [{"ticker": "ABCD11"}]}))
    calls = fake_http({})

    with pytest.raises(SystemExit) as exc:
        main(["update"])

    assert exc.value.code == 1
    assert calls == []
    assert not (cvm_env / "fiis_fundamentals.json").exists()


def test_update_without_matching_rows_writes_nothing(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [["99.999.999/0001-99", "2024-05-31", "Other", "1000"]],
        [["99.999.999/0001-99", "2024-05-31", "1", "100"]],
    )})

    with pytest.raises(SystemExit) as exc:
        main(["update", "--year", "2024"])

    assert exc.value.code == 1
    assert not (cvm_env / "fiis_fundamentals.json").exists()


def test_update_source_unavailable(cvm_env: Path, fake_http: HttpInstaller) -> None:
    calls = fake_http({})
    with pytest.raises(SystemExit):
        main(["update"])
    assert len(calls) == 2


def test_update_explicit_paths(cvm_env: Path, fake_http: HttpInstaller, tmp_path: Path) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "1000"]],
        [[CNPJ_A, "2024-05-31", "120000", "100000"]],
    )})
    out = tmp_path / "elsewhere" / "snapshot.json"

    main(["update", "--year", "2024", "--map", str(cvm_env / "fii_cnpj_map.json"), "--out", str(out)])

    assert _read(out)["items"][0]["ticker"] == "ABCD11"


def test_fetch_keeps_files_in_dest(cvm_env: Path, fake_http: HttpInstaller, tmp_path: Path) -> None:
    fake_http({URL_2024: _archive([], [])})
    dest = tmp_path / "download"

    main(["fetch", "--year", "2024", "--dest", str(dest)])

    assert (dest / "2024" / "extracted" / "inf_mensal_fii_geral_2024.csv").exists()


def test_columns_command(tmp_path: Path) -> None:
    p = tmp_path / "geral.csv"
    p.write_text(table_text(GENERAL_HEADER, []), encoding="latin-1")
    args = build_parser().parse_args(["columns", str(p), "--roles", "cnpj", "shares"])
    assert cmd_columns(args) == {"cnpj": 0, "shares": 3}


def test_columns_command_reports_failure(tmp_path: Path) -> None:
    p = tmp_path / "x.csv"
    p.write_text("FOO;BAR\n", encoding="latin-1")
    with pytest.raises(SystemExit) as exc:
        main(["columns", str(p)])
    assert exc.value.code == 1


def test_update_zero_net_assets_gives_null(cvm_env: Path, fake_http: HttpInstaller) -> None:
    fake_http({URL_2024: _archive(
        [[CNPJ_A, "2024-05-31", "FII Alpha", "1000"]],
        [[CNPJ_A, "2024-05-31", "1", "0"]],
    )})

    main(["update", "--year", "2024"])

    assert _read(cvm_env / "fiis_fundamentals.json")["items"][0]["vp"] is None
