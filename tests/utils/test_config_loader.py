import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import yaml

from configurator.core.exceptions import ConfigurationError
from configurator.utils.config_loader import (
    FamilyConfig,
    FieldConfig,
    ValueConfig,
    _get_config_path,
    _load_yaml_file,
    _parse_family_cfg_from_dict,
    _range_items,
    clear_config_cache,
    get_config,
    load_config,
)


class TestGetConfigPath:
    def test_get_config_path_default(self):
        path = _get_config_path("pic32mz")
        assert "pic32mz" in path
        assert "config.yaml" in path

    def test_get_config_path_custom(self):
        custom_path = "/path/to/custom/config.yaml"
        path = _get_config_path("pic32mz", custom_path)
        assert path == custom_path


class TestLoadYamlFile:
    def test_load_valid_yaml(self):
        yaml_content = {"registers": {"DEVCFG0": {"address": 0x1FC0FFCC}}}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(yaml_content, f)
            f.flush()
            path = Path(f.name)
        try:
            result = _load_yaml_file(path)
            assert result == yaml_content
        finally:
            path.unlink()

    def test_load_invalid_yaml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("{ invalid: yaml: content")
            f.flush()
            path = Path(f.name)
        try:
            with pytest.raises(ConfigurationError):
                _load_yaml_file(path)
        finally:
            path.unlink()

    def test_root_must_be_mapping(self, temp_yaml_file):
        temp_yaml_file.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            _load_yaml_file(temp_yaml_file)

    def test_missing_file(self):
        with pytest.raises(ConfigurationError):
            _load_yaml_file(Path("/nonexistent/config.yaml"))


class TestRangeItems:
    def test_linear_range(self):
        assert _range_items({"first": 1, "last": 3}) == [(1, 1), (2, 2), (3, 3)]

    def test_log2_range(self):
        assert _range_items({"first": 0, "last": 3, "log2": True}) == [
            (1, 0),
            (2, 1),
            (4, 2),
            (8, 3),
        ]

    def test_reversed_range(self):
        with pytest.raises(ConfigurationError):
            _range_items({"first": 3, "last": 1})


class TestParseFamilyCfgFromDict:
    def test_parse_bundled_tables(self, bundled_config_dict):
        cfg = _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

        assert isinstance(cfg, FamilyConfig)
        assert cfg.name == "pic32mz"
        assert len(cfg.settings) == 40
        assert len(cfg.directives) == 40
        assert cfg.user_id == FieldConfig(register="DEVCFG3", bit_start=0, bit_width=16)
        assert cfg.registers["DEVCFG2"].reserved_mask == 0xBFF88008

    def test_structured_values(self, bundled_config_dict):
        cfg = _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)
        settings = {setting.name: setting for setting in cfg.settings}

        assert ValueConfig("mul_50", 49, 50, "PLL multiply by 50") in settings["FPLLMULT"].values
        assert ValueConfig("ps1024", 10, 1024, "1:1024") in settings["WDTPS"].values
        fnosc = {value.token: value for value in settings["FNOSC"].values}
        assert fnosc["spll"].code == 1
        assert fnosc["spll"].magnitude is None

    def test_tables_are_read_only(self, bundled_config_dict):
        cfg = _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

        with pytest.raises(TypeError):
            cfg.clock.oscillators["frc"] = 4_000_000
        with pytest.raises(TypeError):
            cfg.directives["FNOSC"]["frc"] = "FRCDIV"

    def test_devices(self, bundled_config_dict):
        cfg = _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

        assert cfg.device("P32MZ2048EFH144").flash_kb == 2048
        with pytest.raises(ConfigurationError):
            cfg.device("P32MX795F512L")

    def test_unquoted_boolean_token_rejected(self, bundled_config_dict):
        bundled_config_dict["settings"]["IESO"]["values"] = {False: 0, True: 1}

        with pytest.raises(ConfigurationError, match="quoted"):
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

    def test_default_must_be_a_value(self, bundled_config_dict):
        bundled_config_dict["settings"]["FNOSC"]["default"] = "pll"

        with pytest.raises(ConfigurationError, match="default"):
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

    def test_duplicate_tokens_rejected(self, bundled_config_dict):
        bundled_config_dict["settings"]["FPLLIDIV"]["values"] = {"div_1": 0}

        with pytest.raises(ConfigurationError, match="duplicate"):
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

    def test_missing_section(self, bundled_config_dict):
        del bundled_config_dict["clock"]

        with pytest.raises(ConfigurationError, match="Missing required config key"):
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

    def test_bad_value_type(self, bundled_config_dict):
        bundled_config_dict["settings"]["FNOSC"]["bit_start"] = "low"

        with pytest.raises(ConfigurationError, match="Invalid config schema"):
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

    @pytest.mark.parametrize(
        "mutate, key",
        [
            (lambda raw: raw["settings"]["FNOSC"].update(register="DEVCFG9"), "FNOSC"),
            (lambda raw: raw["user_id"].update(register="DEVCFG9"), "user_id"),
            (lambda raw: raw["clock"]["buses"][2].update(divider=0), "PBCLK2"),
            (lambda raw: raw["clock"]["system_sources"].update(posc="xtal"), "clock"),
            (lambda raw: raw["clock"]["peripheral_buses"].update(uart=9), "clock.peripheral_buses"),
            (lambda raw: raw["timers"]["type_b"].update(width=24), "type_b"),
            (lambda raw: raw["timers"]["type_b"].update(pairs=[[1, 2]]), "type_b"),
            (lambda raw: raw["pps"]["input_signals"]["U1RX"].update(group=7), "U1RX"),
            (lambda raw: raw["pps"]["output_pins"].update(RPD3=7), "RPD3"),
        ],
    )
    def test_structural_validation(self, bundled_config_dict, mutate, key):
        mutate(bundled_config_dict)

        with pytest.raises(ConfigurationError) as excinfo:
            _parse_family_cfg_from_dict("pic32mz", bundled_config_dict)

        assert excinfo.value.config_key == key


class TestLoadConfig:
    def test_load_config_success(self, temp_config_yaml_file):
        path = temp_config_yaml_file()

        cfg = load_config("pic32mz", path=str(path))

        assert isinstance(cfg, FamilyConfig)
        assert cfg.uart.max_error_percent == 2.0

    def test_family_key_overrides_name(self, temp_config_yaml_file, bundled_config_dict):
        bundled_config_dict["family"] = "pic32mz_custom"
        path = temp_config_yaml_file(bundled_config_dict)

        assert load_config("pic32mz", path=str(path)).name == "pic32mz_custom"

    def test_load_bundled(self):
        cfg = load_config("pic32mz")

        assert cfg.clock.oscillators["frc"] == 8_000_000
        assert cfg.timers["type_a"].prescalers == {1: 0, 8: 1, 64: 2, 256: 3}


class TestGetConfig:
    def test_get_config_loads_default_when_none(self):
        with patch("configurator.utils.config_loader._LOADER_CACHE", {}):
            with patch("configurator.utils.config_loader.load_config") as mock_load:
                mock_config = Mock(spec=FamilyConfig)
                mock_load.return_value = mock_config
                result = get_config("pic32mz")
                mock_load.assert_called_once_with(family_name="pic32mz")
                assert result == mock_config

    def test_get_config_caches(self):
        with patch("configurator.utils.config_loader._LOADER_CACHE", {}):
            with patch("configurator.utils.config_loader.load_config") as mock_load:
                mock_load.return_value = Mock(spec=FamilyConfig)
                first = get_config("pic32mz")
                second = get_config("pic32mz")
                assert first is second
                mock_load.assert_called_once()

    def test_clear_config_cache(self):
        cache = {"pic32mz": Mock(spec=FamilyConfig)}
        with patch("configurator.utils.config_loader._LOADER_CACHE", cache):
            clear_config_cache()
            assert cache == {}
