from types import MappingProxyType

import pytest

from configurator.core.catalog import Setting, SettingCatalog, SettingId, SettingValue
from configurator.core.exceptions import ConfigurationError
from configurator.core.register import RegisterId


def _setting(setting_id=SettingId.FPLLODIV, default="div_2"):
    values = {
        "div_2": SettingValue("div_2", 1, magnitude=2),
        "div_4": SettingValue("div_4", 2, magnitude=4),
        "odd": SettingValue("odd", 7),
    }
    return Setting(
        id=setting_id,
        title="System PLL Output Clock Divider",
        register=RegisterId.DEVCFG2,
        values=MappingProxyType(values),
        default=default,
    )


class TestSettingId:
    def test_every_setting_enumerated(self):
        assert len(SettingId) == 40

    def test_from_name(self):
        assert SettingId.from_name("FNOSC") is SettingId.FNOSC

    def test_from_name_unknown(self):
        with pytest.raises(ConfigurationError, match="unknown setting"):
            SettingId.from_name("FPLLMUL")

    def test_user_id_is_not_a_setting(self):
        assert "USERID" not in SettingId.__members__


class TestSetting:
    def test_default_must_be_legal(self):
        with pytest.raises(ConfigurationError, match="default"):
            _setting(default="div_3")

    def test_value_lookup(self):
        setting = _setting()

        assert setting.value("div_4").code == 2
        assert setting.tokens == ("div_2", "div_4", "odd")

    def test_value_unknown(self):
        with pytest.raises(ConfigurationError, match="not a legal value"):
            _setting().value("div_3")

    def test_magnitude(self):
        assert _setting().magnitude("div_4") == 4

    def test_magnitude_missing(self):
        """A symbolic value never silently turns into a number."""
        with pytest.raises(ConfigurationError, match="magnitude"):
            _setting().magnitude("odd")

    def test_values_are_read_only(self):
        with pytest.raises(TypeError):
            _setting().values["div_8"] = SettingValue("div_8", 3, magnitude=8)


class TestSettingCatalog:
    def test_lookup_and_order(self):
        catalog = SettingCatalog([_setting(SettingId.FPLLODIV), _setting(SettingId.FPLLIDIV)])

        assert len(catalog) == 2
        assert catalog.ids() == [SettingId.FPLLODIV, SettingId.FPLLIDIV]
        assert SettingId.FPLLIDIV in catalog
        assert SettingId.FNOSC not in catalog

    def test_duplicate_rejected(self):
        with pytest.raises(ConfigurationError, match="more than once"):
            SettingCatalog([_setting(), _setting()])

    def test_missing_setting(self):
        with pytest.raises(ConfigurationError, match="FNOSC"):
            SettingCatalog([_setting()])[SettingId.FNOSC]

    def test_default_selection(self):
        catalog = SettingCatalog([_setting()])

        assert catalog.default_selection() == {SettingId.FPLLODIV: "div_2"}

    def test_resolve_fills_defaults(self):
        catalog = SettingCatalog([_setting(SettingId.FPLLODIV), _setting(SettingId.FPLLIDIV)])

        resolved = catalog.resolve({SettingId.FPLLIDIV: "div_4"})

        assert resolved == {SettingId.FPLLODIV: "div_2", SettingId.FPLLIDIV: "div_4"}

    def test_resolve_rejects_illegal_value(self):
        catalog = SettingCatalog([_setting()])

        with pytest.raises(ConfigurationError):
            catalog.resolve({SettingId.FPLLODIV: "div_3"})


class TestBundledCatalog:
    def test_catalog_covers_every_setting(self, catalog):
        assert set(catalog.ids()) == set(SettingId)

    def test_catalog_in_register_order(self, catalog):
        assert catalog.ids() == list(SettingId)

    def test_numeric_settings_carry_magnitudes(self, catalog):
        assert catalog[SettingId.FPLLMULT].magnitude("mul_50") == 50
        assert catalog[SettingId.FPLLIDIV].magnitude("div_3") == 3
        assert catalog[SettingId.FPLLODIV].magnitude("div_32") == 32
        assert catalog[SettingId.WDTPS].magnitude("ps1048576") == 1048576

    def test_range_generated_codes(self, catalog):
        assert catalog[SettingId.FPLLMULT].value("mul_1").code == 0
        assert catalog[SettingId.FPLLMULT].value("mul_128").code == 127
        assert catalog[SettingId.WDTPS].value("ps1").code == 0
        assert catalog[SettingId.WDTPS].value("ps1024").code == 10
        assert catalog[SettingId.DMTCNT].value("dmt8").code == 0
        assert catalog[SettingId.DMTCNT].value("dmt31").code == 23

    def test_on_off_tokens_are_strings(self, catalog):
        assert catalog[SettingId.FWDTEN].tokens == ("off", "on")
