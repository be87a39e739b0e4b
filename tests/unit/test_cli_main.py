from __future__ import annotations
import argparse
from pathlib import Path

import pytest

from tag_import.cli.__main__ import _apply_overrides, _load_env_file, _parse_args, main as cli_main
from tag_import.config.loader import ConfigError
from tag_import.models.config_models import ImportConfig


def test_parse_args_defaults():
    args = _parse_args(["in.csv"])
    assert args.csv_path == Path("in.csv")
    assert args.config == Path("config/import.yml")
    assert args.report is None
    assert args.trace is False and args.debug is False


def test_apply_overrides():
    args = argparse.Namespace(delimiter=";", separator="||", relationship_field=" cross_sells ", trace=True)
    cfg = _apply_overrides(ImportConfig(), args)
    assert (cfg.delimiter, cfg.separator, cfg.relationship_field, cfg.trace) == (";", "||", "cross_sells", True)


def test_apply_overrides_without_flags_keeps_config():
    cfg = ImportConfig(relationship_field="related_products")
    args = argparse.Namespace(delimiter=None, separator=None, relationship_field=None, trace=False)
    assert _apply_overrides(cfg, args) is cfg


@pytest.mark.parametrize(
    "delimiter,separator,match",
    [
        (";;", None, "--delimiter"),
        ("", None, "--delimiter"),
        (None, "", "--separator"),
        (None, "||||||", "--separator"),
    ],
)
def test_apply_overrides_rejects_out_of_range_values(delimiter, separator, match):
    args = argparse.Namespace(delimiter=delimiter, separator=separator, relationship_field=None, trace=False)
    with pytest.raises(ConfigError, match=match):
        _apply_overrides(ImportConfig(), args)


def test_multi_char_delimiter_flag_is_config_error(write_config, catalog_json, csv_file, capsys):
    path = csv_file("ID,Title,Product Tags\n101,A,x\n")
    assert cli_main([str(path), "--delimiter", ";;"]) == 1
    out = capsys.readouterr().out
    assert "ERROR config:" in out
    assert "--delimiter must be exactly one character" in out


def test_relationship_field_flag_enables_related_column(temp_workdir: Path, catalog_json: Path, csv_file, capsys):
    (temp_workdir / "config" / "import.yml").write_text(f"catalog:\n  fixture: {catalog_json}\n", encoding="utf-8")
    path = csv_file("ID,Title,Recommended Products\n101,A,Red Shoes\n")

    assert cli_main([str(path)]) == 1
    assert "no relationship field name was configured" in capsys.readouterr().out

    assert cli_main([str(path), "--relationship-field", "related_products"]) == 0


def test_custom_config_path(temp_workdir: Path, catalog_json: Path, csv_file, capsys):
    cfg = temp_workdir / "alt.yml"
    cfg.write_text(f"catalog:\n  fixture: {catalog_json}\n", encoding="utf-8")
    path = csv_file("ID,Title,Product Tags\n101,A,x\n")
    assert cli_main([str(path), "--config", str(cfg)]) == 0


def test_env_file_is_loaded(temp_workdir: Path, catalog_json: Path, csv_file, monkeypatch, capsys):
    # .env (override=True) が空の値を上書きする; 終了時に monkeypatch が元へ戻す
    monkeypatch.setenv("CATALOG_FIXTURE", "")
    (temp_workdir / "config" / "import.yml").write_text("trace: false\n", encoding="utf-8")
    (temp_workdir / ".env").write_text(f"CATALOG_FIXTURE={catalog_json}\n", encoding="utf-8")
    path = csv_file("ID,Title,Product Tags\n101,A,x\n")
    assert cli_main([str(path)]) == 0


def test_load_env_file_missing_is_ignored(temp_workdir: Path):
    _load_env_file(temp_workdir / ".env")


@pytest.mark.parametrize("name", ["upload.txt", "upload.csv.bak"])
def test_non_csv_extension_is_fatal(write_config, catalog_json, csv_file, capsys, name):
    path = csv_file("ID,Title,Product Tags\n101,A,x\n", name=name)
    assert cli_main([str(path)]) == 1
    assert "ERROR rejected: the file must be a CSV (.csv)" in capsys.readouterr().out
