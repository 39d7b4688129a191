"""
Unit Normalization Tests
========================
Conversion factor pairs, analyte-keyed conversion and the literal-unit shim.

Test Categories:
1. Conversion table integrity
2. Factor-pair round trips
3. Analyte-keyed conversion
4. Literal-unit shim and magnitude inference
5. Display helpers
"""

import warnings

import pytest

from nephrocalc import units
from nephrocalc.errors import AmbiguousUnitInference, UnknownAnalyte, UnsupportedUnitConversion
from nephrocalc.models import AnalyteConversion, UnitSystem


# ============================================================
# TEST: CONVERSION TABLE
# ============================================================

class TestConversionTable:
    """Factor pairs are reciprocal and keyed by name."""

    def test_every_factor_pair_multiplies_to_one(self):
        for name, conv in units.CONVERSIONS.items():
            assert conv.name == name
            assert conv.to_si_factor * conv.to_conventional_factor == pytest.approx(1.0, rel=1e-9)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            units.CONVERSIONS["creatinine"] = None

    def test_mismatched_factor_pair_rejected(self):
        with pytest.raises(ValueError):
            AnalyteConversion(name="bad", conventional_unit="mg/dL", si_unit="mmol/L",
                              to_si_factor=2.0, to_conventional_factor=2.0)

    def test_unknown_analyte(self):
        with pytest.raises(UnknownAnalyte) as exc:
            units.get_analyte("unobtainium")
        assert exc.value.code == "unknown_analyte"
        assert isinstance(exc.value, UnsupportedUnitConversion)

    def test_creatinine_units(self):
        conv = units.get_analyte("creatinine")
        assert conv.unit_for(UnitSystem.CONVENTIONAL) == "mg/dL"
        assert conv.unit_for(UnitSystem.SI) == "μmol/L"


# ============================================================
# TEST: ROUND TRIPS
# ============================================================

class TestRoundTrip:
    """toConventional(toSI(x)) returns x for every analyte."""

    @pytest.mark.parametrize("analyte", sorted(units.CONVERSIONS))
    @pytest.mark.parametrize("x", [1.0, 100.0, 0.357])
    def test_round_trip(self, analyte, x):
        back = units.to_conventional(units.to_si(x, analyte), analyte)
        assert back == pytest.approx(x, rel=1e-6)

    def test_creatinine_seed(self):
        si = units.to_si(1.2, "creatinine")
        assert si == pytest.approx(106.08)
        assert units.to_conventional(106.08, "creatinine") == pytest.approx(1.2)

    def test_normalize_is_identity_in_own_system(self):
        assert units.normalize_to_si(106.08, "creatinine", "si") == 106.08
        assert units.normalize_to_conventional(1.2, "creatinine", UnitSystem.CONVENTIONAL) == 1.2

    def test_normalize_converts_across_systems(self):
        assert units.normalize_to_si(1.2, "creatinine", "conventional") == pytest.approx(106.08)
        assert units.normalize_to_conventional(106.08, "creatinine", "SI") == pytest.approx(1.2)


# ============================================================
# TEST: ANALYTE-KEYED CONVERSION
# ============================================================

class TestConvert:
    """convert() between any two units an analyte knows."""

    def test_flags_and_literals_agree(self):
        by_flag = units.convert(1.2, "creatinine", "conventional", "si")
        by_unit = units.convert(1.2, "creatinine", "mg/dL", "μmol/L")
        assert by_flag == pytest.approx(by_unit)
        assert by_unit == pytest.approx(106.08)

    def test_ascii_micro_spelling(self):
        assert units.resolve_unit("creatinine", "umol/L") == "μmol/L"
        assert units.resolve_unit("creatinine", "UMOL/L") == "μmol/L"

    def test_same_unit_is_identity(self):
        assert units.convert(7.5, "calcium", "mg/dL", "conventional") == 7.5

    def test_alternate_units(self):
        # Urea in mg/dL expressed as BUN mg/dL
        assert units.convert(100, "bun", units.UREA_MG_DL, "mg/dL") == pytest.approx(46.7)
        assert units.to_bun_mg_dl(10, units.BUN_MMOL_L) == pytest.approx(28.01, abs=0.01)

    def test_alternate_to_si(self):
        # 1 mg/mg PCR is 1 g/g, which is 113 mg/mmol
        assert units.convert(1.0, "pcr", "mg/mg", "si") == pytest.approx(113)

    def test_weight_pounds(self):
        assert units.convert(154.32, "weight", "lbs", "kg") == pytest.approx(70.0, abs=0.01)

    def test_unknown_unit_raises(self):
        with pytest.raises(UnsupportedUnitConversion) as exc:
            units.convert(1.0, "creatinine", "furlongs", "mg/dL")
        assert exc.value.analyte == "creatinine"
        assert exc.value.to_dict()["code"] == "unsupported_unit_conversion"


# ============================================================
# TEST: LITERAL-UNIT SHIM
# ============================================================

class TestConvertValue:
    """convert_value() keyed by literal unit strings."""

    def test_with_analyte_delegates(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert units.convert_value(1.2, "mg/dL", "μmol/L", analyte="creatinine") == pytest.approx(106.08)

    def test_same_unit_passthrough(self):
        assert units.convert_value(42.0, "mg/dL", "mg/dL") == 42.0

    def test_small_value_read_as_creatinine(self):
        with pytest.warns(AmbiguousUnitInference):
            assert units.convert_value(1.2, "mg/dL", "μmol/L") == pytest.approx(106.08)

    def test_magnitude_picks_bun_then_glucose(self):
        with pytest.warns(AmbiguousUnitInference):
            assert units.convert_value(20, "mg/dL", "mmol/L") == pytest.approx(20 * 0.357)
        with pytest.warns(AmbiguousUnitInference):
            assert units.convert_value(300, "mg/dL", "mmol/L") == pytest.approx(300 * 0.0555)

    def test_shared_factor_is_not_ambiguous(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert units.convert_value(4.0, "g/dL", "g/L") == pytest.approx(40.0)

    def test_unknown_pair_passes_through(self):
        assert units.convert_value(5.0, "furlongs", "mg/dL") == 5.0

    def test_unknown_pair_strict(self):
        with pytest.raises(UnsupportedUnitConversion):
            units.convert_value(5.0, "furlongs", "mg/dL", strict=True)

    def test_guess_analyte_reports_ambiguity(self):
        analyte, message = units.guess_analyte(20, "mg/dL", "mmol/L")
        assert analyte == "bun"
        assert "magnitude" in message
        assert units.guess_analyte(1.0, "mmHg", "kPa") == (None, None)


# ============================================================
# TEST: DISPLAY HELPERS
# ============================================================

class TestDisplay:

    def test_format_uses_system_decimals(self):
        assert units.format_value(106.08, "creatinine", "si") == "106"
        assert units.format_value(1.2, "creatinine", "conventional") == "1.20"

    def test_convert_and_format(self):
        assert units.convert_and_format(1.2, "creatinine", "conventional", "si") == "106"

    def test_unit_options_lead_with_systems(self):
        options = units.unit_options("bun")
        assert [o["value"] for o in options[:2]] == ["conventional", "si"]
        assert units.UREA_MG_DL in [o["value"] for o in options]

    def test_unit_label(self):
        assert units.unit_label("glucose", "si") == "mmol/L"
