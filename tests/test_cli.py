"""
Command Line Tests
==================
Subcommands, JSON output and exit codes.

Test Categories:
1. Catalog browsing (list, search, info)
2. Evaluation and conversion
3. Validation
4. Error exits
"""

import json

import pytest

from nephrocalc.cli import main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NEPHROCALC_STRICT_UNITS", "NEPHROCALC_ENFORCE_BOUNDS", "NEPHROCALC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ============================================================
# TEST: BROWSING
# ============================================================

class TestBrowsing:

    def test_list(self, capsys):
        assert main(["list"]) == 0
        out = capsys.readouterr().out
        assert "ckd-epi-creatinine" in out
        assert "Critical Care (" in out

    def test_list_category_json(self, capsys):
        assert main(["--json", "list", "--category", "Critical Care"]) == 0
        rows = json.loads(capsys.readouterr().out)
        assert {r["id"] for r in rows} >= {"qsofa", "news2", "sofa"}

    def test_list_unknown_category(self, capsys):
        assert main(["list", "--category", "Astrology"]) == 1

    def test_search(self, capsys):
        assert main(["search", "sodium", "--limit", "2"]) == 0
        assert len(capsys.readouterr().out.strip().splitlines()) == 2

    def test_info(self, capsys):
        assert main(["info", "fena"]) == 0
        assert "urineNa*" in capsys.readouterr().out


# ============================================================
# TEST: EVALUATION
# ============================================================

class TestEval:

    def test_eval_text(self, capsys):
        code = main(["eval", "fena", "urineNa=20", "plasmaCr=2.0", "plasmaNa=140", "urineCr=80"])
        out = capsys.readouterr().out
        assert code == 0
        assert "FENa: 0.36 %" in out
        assert "Interpretation: Prerenal azotemia" in out

    def test_eval_json_with_units(self, capsys):
        code = main(["--json", "eval", "ckd-epi-creatinine", "creatinine=88.4", "age=45", "sex=M",
                     "--unit", "creatinine=si"])
        payload = json.loads(capsys.readouterr().out)
        assert code == 0
        assert payload["outputs"]["result"] == 95

    def test_eval_prints_recommendation(self, capsys):
        code = main(["eval", "ckd-epi-creatinine", "creatinine=1.0", "age=45", "sex=M"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Recommendation [routine]: Normal kidney function" in out
        assert "  - Assess for albuminuria or imaging abnormalities" in out

    def test_eval_missing_field(self, capsys):
        assert main(["eval", "fena", "urineNa=20"]) == 1
        assert "Missing required field: plasmaCr" in capsys.readouterr().err

    def test_eval_lenient_units(self, capsys):
        code = main(["--lenient-units", "eval", "anion-gap", "sodium=140", "chloride=105", "bicarbonate=20",
                     "--unit", "sodium=furlongs"])
        assert code == 0
        assert "warning:" in capsys.readouterr().out

    def test_compare_egfr(self, capsys):
        assert main(["compare-egfr", "--creatinine", "1.0", "--age", "45", "--sex", "M"]) == 0
        out = capsys.readouterr().out
        assert "CKD-EPI 2021" in out
        assert "Not applicable below age 70" in out

    def test_convert(self, capsys):
        assert main(["convert", "1.2", "creatinine", "--from", "conventional", "--to", "si"]) == 0
        assert capsys.readouterr().out.strip() == "1.2 mg/dL = 106.1 μmol/L"

    def test_convert_json(self, capsys):
        assert main(["--json", "convert", "1.2", "creatinine", "--from", "mg/dL", "--to", "umol/L"]) == 0
        assert json.loads(capsys.readouterr().out)["result"] == pytest.approx(106.08)


# ============================================================
# TEST: VALIDATION
# ============================================================

class TestValidate:

    def test_single_suite(self, capsys):
        assert main(["validate", "anion-gap"]) == 0
        assert "TEST REPORT: anion-gap" in capsys.readouterr().out

    def test_all(self, capsys):
        assert main(["validate"]) == 0
        assert "OVERALL" in capsys.readouterr().out


# ============================================================
# TEST: ERROR EXITS
# ============================================================

class TestErrors:

    def test_unknown_calculator(self, capsys):
        assert main(["info", "nope"]) == 1
        assert "Unknown calculator: nope" in capsys.readouterr().err

    def test_unknown_unit(self, capsys):
        assert main(["convert", "1.2", "creatinine", "--from", "furlongs", "--to", "si"]) == 1

    def test_bad_log_level(self, capsys):
        assert main(["--log-level", "LOUD", "list"]) == 2

    def test_bad_env_flag(self, monkeypatch, capsys):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "sometimes")
        assert main(["list"]) == 2
        assert "error:" in capsys.readouterr().err

    def test_env_lenient_units(self, monkeypatch, capsys):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "false")
        code = main(["eval", "anion-gap", "sodium=140", "chloride=105", "bicarbonate=20",
                     "--unit", "sodium=furlongs"])
        assert code == 0
        assert "warning:" in capsys.readouterr().out

    def test_bad_pair(self):
        with pytest.raises(SystemExit):
            main(["eval", "fena", "urineNa"])
