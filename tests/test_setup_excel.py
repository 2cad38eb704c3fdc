"""Tests for the workbook bootstrap script."""

from __future__ import annotations

from pathlib import Path

import openpyxl
import pytest

from pharma_ledger import data_manager, setup_excel


def test_create_master_workbook_writes_bold_headers(tmp_path: Path):
    """Every collection sheet gets a bold header row and nothing else."""

    destination = setup_excel.create_master_workbook(tmp_path / "data" / "pharmacy_data.xlsx")

    workbook = openpyxl.load_workbook(destination)
    expected = data_manager.sheet_headers()
    assert workbook.sheetnames == list(expected)
    for sheet_name, headers in expected.items():
        sheet = workbook[sheet_name]
        assert [cell.value for cell in sheet[1]] == headers
        assert all(cell.font.bold for cell in sheet[1])
        assert sheet.max_row == 1


def test_create_master_workbook_accepts_custom_layout(tmp_path: Path):
    destination = setup_excel.create_master_workbook(tmp_path / "custom.xlsx", sheet_columns={"Notes": ["Id", "Text"]})

    workbook = openpyxl.load_workbook(destination)
    assert workbook.sheetnames == ["Notes"]


def test_create_master_workbook_refuses_overwrite(master_workbook_path: Path):
    with pytest.raises(FileExistsError):
        setup_excel.create_master_workbook(master_workbook_path)

    setup_excel.create_master_workbook(master_workbook_path, overwrite=True)


def test_run_from_config_targets_configured_data_file(config_factory):
    bundle = config_factory(make_relative=True)
    bundle.workbook_path.unlink()

    created = setup_excel.run_from_config(bundle.config_path)

    assert created == bundle.workbook_path.resolve()
    assert created.exists()


def test_main_reports_success(config_factory, capsys):
    bundle = config_factory()

    exit_code = setup_excel.main(["--config", str(bundle.config_path), "--force"])

    assert exit_code == 0
    assert "[SUCCESS]" in capsys.readouterr().out


def test_main_refuses_existing_workbook_without_force(config_factory, capsys):
    bundle = config_factory()

    exit_code = setup_excel.main(["--config", str(bundle.config_path)])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert "--force" in output


def test_main_reports_missing_config(tmp_path: Path, capsys):
    exit_code = setup_excel.main(["--config", str(tmp_path / "absent.ini")])

    assert exit_code == 1
    assert "[ERROR]" in capsys.readouterr().out
