"""Helpers for loading and validating device family configuration."""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional
import threading

import yaml  # type: ignore[import-untyped]

from configurator.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class RegisterConfig:
    name: str
    address: int
    reserved_mask: int = 0
    reserved_value: int = 0


@dataclass(frozen=True)
class FieldConfig:
    register: str
    bit_start: int
    bit_width: int


@dataclass(frozen=True)
class ValueConfig:
    token: str
    code: int
    magnitude: Optional[int] = None
    label: str = ""


@dataclass(frozen=True)
class SettingConfig:
    name: str
    title: str
    field: FieldConfig
    default: str
    values: tuple[ValueConfig, ...]


@dataclass(frozen=True)
class BusConfig:
    bus: int
    divider: int = 1
    enabled: bool = True


@dataclass(frozen=True)
class ClockConfig:
    oscillators: Mapping[str, int]
    pll_inputs: Mapping[str, str]
    system_sources: Mapping[str, str]
    buses: Mapping[int, BusConfig]
    peripheral_buses: Mapping[str, int]


@dataclass(frozen=True)
class TimerClassConfig:
    name: str
    timers: tuple[int, ...]
    width: int
    prescalers: Mapping[int, int]
    pairs: tuple[tuple[int, int], ...] = ()


@dataclass(frozen=True)
class UartConfig:
    instances: int
    max_error_percent: float = 2.0
    enforce_error: bool = False


@dataclass(frozen=True)
class PpsInputSignal:
    name: str
    register: str
    group: int


@dataclass(frozen=True)
class PpsConfig:
    input_groups: Mapping[int, Mapping[str, int]]
    input_signals: Mapping[str, PpsInputSignal]
    output_groups: Mapping[int, Mapping[str, int]]
    output_pins: Mapping[str, int]
    descriptions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class DeviceConfig:
    name: str
    flash_kb: int
    ram_kb: int
    pins: int


@dataclass(frozen=True)
class FamilyConfig:
    name: str
    registers: Mapping[str, RegisterConfig]
    settings: tuple[SettingConfig, ...]
    directives: Mapping[str, Mapping[str, str]]
    clock: ClockConfig
    timers: Mapping[str, TimerClassConfig]
    uart: UartConfig
    ports: Mapping[str, tuple[int, ...]]
    pps: PpsConfig
    devices: tuple[DeviceConfig, ...]
    user_id: Optional[FieldConfig] = None

    def device(self, name: str) -> DeviceConfig:
        for device in self.devices:
            if device.name == name:
                return device
        raise ConfigurationError("devices", f"unknown device '{name}'")


# Configuration cache with thread safety
_LOADER_CACHE: dict[str, FamilyConfig] = {}
_CACHE_LOCK = threading.RLock()


def _get_config_path(family_name: str, path: Optional[str] = None) -> str:
    if path is None:
        # Config files are in configurator/{family_name}/config.yaml
        base = Path(__file__).parent.parent / family_name / "config.yaml"
        path = str(base)

    return path


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except Exception as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config root of {path} must be a mapping")
    return raw


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


def _token(value: Any, where: str) -> str:
    # Unquoted on/off/yes/no load as booleans
    if not isinstance(value, str):
        raise ConfigurationError(where, f"value token {value!r} must be a quoted string")
    return value


def _range_items(range_cfg: dict[str, Any]) -> list[tuple[int, int]]:
    """(n, k) pairs of a range: k runs first..last, n is k or 2**k."""
    first = int(range_cfg["first"])
    last = int(range_cfg["last"])
    if last < first:
        raise ConfigurationError("range", f"last {last} is below first {first}")
    log2 = bool(range_cfg.get("log2", False))
    return [((1 << k) if log2 else k, k) for k in range(first, last + 1)]


def _build_values(setting_name: str, raw: dict[str, Any]) -> tuple[ValueConfig, ...]:
    values: list[ValueConfig] = []
    if "range" in raw:
        range_cfg = raw["range"]
        offset = int(range_cfg.get("code_offset", 0))
        for n, k in _range_items(range_cfg):
            values.append(
                ValueConfig(
                    token=range_cfg["token"].format(n=n),
                    code=k + offset,
                    magnitude=n if range_cfg.get("magnitude", True) else None,
                    label=range_cfg.get("label", "").format(n=n),
                )
            )
    for token, value_raw in raw.get("values", {}).items():
        if isinstance(value_raw, dict):
            values.append(
                ValueConfig(
                    token=_token(token, setting_name),
                    code=int(value_raw["code"]),
                    magnitude=(
                        None if value_raw.get("magnitude") is None else int(value_raw["magnitude"])
                    ),
                    label=str(value_raw.get("label", "")),
                )
            )
        else:
            values.append(ValueConfig(token=_token(token, setting_name), code=int(value_raw)))

    if not values:
        raise ConfigurationError(setting_name, "setting has no values")
    tokens = [value.token for value in values]
    if len(set(tokens)) != len(tokens):
        raise ConfigurationError(setting_name, "duplicate value tokens")
    return tuple(values)


def _build_setting(name: str, raw: dict[str, Any]) -> SettingConfig:
    values = _build_values(name, raw)
    default = _token(raw["default"], name)
    if default not in {value.token for value in values}:
        raise ConfigurationError(name, f"default '{default}' is not one of its values")
    return SettingConfig(
        name=name,
        title=str(raw.get("title", name)),
        field=FieldConfig(
            register=str(raw["register"]),
            bit_start=int(raw["bit_start"]),
            bit_width=int(raw["bit_width"]),
        ),
        default=default,
        values=values,
    )


def _build_directives(raw: dict[str, Any]) -> Mapping[str, Mapping[str, str]]:
    directives: dict[str, Mapping[str, str]] = {}
    for setting_name, table_raw in raw.items():
        table: dict[str, str] = {}
        if "range" in table_raw:
            range_cfg = table_raw["range"]
            for n, _ in _range_items(range_cfg):
                table[range_cfg["value"].format(n=n)] = range_cfg["token"].format(n=n)
        for value, token in table_raw.get("values", {}).items():
            table[_token(value, setting_name)] = _token(token, setting_name)
        directives[setting_name] = _frozen(table)
    return _frozen(directives)


def _build_clock_cfg(clock_raw: dict[str, Any]) -> ClockConfig:
    buses = {}
    for bus_raw, bus_cfg in clock_raw["buses"].items():
        bus = int(bus_raw)
        buses[bus] = BusConfig(
            bus=bus,
            divider=int(bus_cfg.get("divider", 1)),
            enabled=bool(bus_cfg.get("enabled", True)),
        )
    return ClockConfig(
        oscillators=_frozen({k: int(v) for k, v in clock_raw["oscillators"].items()}),
        pll_inputs=_frozen({_token(k, "pll_inputs"): str(v) for k, v in clock_raw["pll_inputs"].items()}),
        system_sources=_frozen(
            {_token(k, "system_sources"): str(v) for k, v in clock_raw["system_sources"].items()}
        ),
        buses=_frozen(buses),
        peripheral_buses=_frozen({k: int(v) for k, v in clock_raw["peripheral_buses"].items()}),
    )


def _build_timer_cfgs(timers_raw: dict[str, Any]) -> Mapping[str, TimerClassConfig]:
    timers = {}
    for name, raw in timers_raw.items():
        timers[name] = TimerClassConfig(
            name=name,
            timers=tuple(int(t) for t in raw["timers"]),
            width=int(raw["width"]),
            prescalers=_frozen({int(k): int(v) for k, v in raw["prescalers"].items()}),
            pairs=tuple((int(a), int(b)) for a, b in raw.get("pairs", [])),
        )
    return _frozen(timers)


def _build_pps_cfg(pps_raw: dict[str, Any]) -> PpsConfig:
    input_signals = {
        name: PpsInputSignal(name=name, register=str(raw["register"]), group=int(raw["group"]))
        for name, raw in pps_raw["input_signals"].items()
    }
    return PpsConfig(
        input_groups=_frozen(
            {
                int(group): _frozen({pin: int(code) for pin, code in pins.items()})
                for group, pins in pps_raw["input_groups"].items()
            }
        ),
        input_signals=_frozen(input_signals),
        output_groups=_frozen(
            {
                int(group): _frozen({signal: int(code) for signal, code in signals.items()})
                for group, signals in pps_raw["output_groups"].items()
            }
        ),
        output_pins=_frozen({pin: int(group) for pin, group in pps_raw["output_pins"].items()}),
        descriptions=_frozen({k: str(v) for k, v in pps_raw.get("descriptions", {}).items()}),
    )


def _parse_family_cfg_from_dict(name: str, raw: dict[str, Any]) -> FamilyConfig:
    try:
        registers = {
            reg_name: RegisterConfig(
                name=reg_name,
                address=int(reg_raw["address"]),
                reserved_mask=int(reg_raw.get("reserved_mask", 0)),
                reserved_value=int(reg_raw.get("reserved_value", 0)),
            )
            for reg_name, reg_raw in raw["registers"].items()
        }
        user_id_raw = raw.get("user_id")
        uart_raw = raw.get("uart", {})

        cfg = FamilyConfig(
            name=str(raw.get("family", name)),
            registers=_frozen(registers),
            settings=tuple(
                _build_setting(setting_name, setting_raw)
                for setting_name, setting_raw in raw["settings"].items()
            ),
            directives=_build_directives(raw["directives"]),
            clock=_build_clock_cfg(raw["clock"]),
            timers=_build_timer_cfgs(raw["timers"]),
            uart=UartConfig(
                instances=int(uart_raw.get("instances", 1)),
                max_error_percent=float(uart_raw.get("max_error_percent", 2.0)),
                enforce_error=bool(uart_raw.get("enforce_error", False)),
            ),
            ports=_frozen(
                {port: tuple(int(bit) for bit in bits) for port, bits in raw["ports"].items()}
            ),
            pps=_build_pps_cfg(raw["pps"]),
            devices=tuple(
                DeviceConfig(
                    name=device_name,
                    flash_kb=int(device_raw["flash_kb"]),
                    ram_kb=int(device_raw["ram_kb"]),
                    pins=int(device_raw["pins"]),
                )
                for device_name, device_raw in raw.get("devices", {}).items()
            ),
            user_id=(
                None
                if user_id_raw is None
                else FieldConfig(
                    register=str(user_id_raw["register"]),
                    bit_start=int(user_id_raw["bit_start"]),
                    bit_width=int(user_id_raw["bit_width"]),
                )
            ),
        )
    except KeyError as exc:
        raise ConfigurationError(f"Missing required config key: {exc}") from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid config schema: {exc}") from exc

    _validate_family_config(cfg)
    return cfg


def _validate_family_config(cfg: FamilyConfig) -> None:
    """Structural checks that do not need the core register model."""
    for setting in cfg.settings:
        if setting.field.register not in cfg.registers:
            raise ConfigurationError(
                setting.name, f"unknown register '{setting.field.register}'"
            )
    if cfg.user_id is not None and cfg.user_id.register not in cfg.registers:
        raise ConfigurationError("user_id", f"unknown register '{cfg.user_id.register}'")

    for bus in cfg.clock.buses.values():
        if not 1 <= bus.divider <= 128:
            raise ConfigurationError(f"PBCLK{bus.bus}", "divider must be in 1..128")
    for source in list(cfg.clock.pll_inputs.values()) + list(cfg.clock.system_sources.values()):
        if source != "pll" and source not in cfg.clock.oscillators:
            raise ConfigurationError("clock", f"unknown oscillator '{source}'")
    for peripheral, bus in cfg.clock.peripheral_buses.items():
        if bus not in cfg.clock.buses:
            raise ConfigurationError("clock.peripheral_buses", f"{peripheral} uses unknown bus {bus}")

    for timer_cfg in cfg.timers.values():
        if timer_cfg.width not in (16, 32):
            raise ConfigurationError(timer_cfg.name, "timer width must be 16 or 32")
        for first, second in timer_cfg.pairs:
            if first not in timer_cfg.timers or second not in timer_cfg.timers:
                raise ConfigurationError(timer_cfg.name, f"pair {first}/{second} is not in the class")

    for signal in cfg.pps.input_signals.values():
        if signal.group not in cfg.pps.input_groups:
            raise ConfigurationError(signal.name, f"unknown input group {signal.group}")
    for pin, group in cfg.pps.output_pins.items():
        if group not in cfg.pps.output_groups:
            raise ConfigurationError(pin, f"unknown output group {group}")


def load_config(family_name: str, path: Optional[str] = None) -> FamilyConfig:
    """Load and validate configuration from a YAML file.

    Args:
        family_name: Family identifier (e.g., 'pic32mz') for config lookup.
        path: Optional path to YAML config. If None, load bundled
            configurator/{family_name}/config.yaml.

    Returns:
        FamilyConfig instance

    Raises:
        ConfigurationError: on parse or validation errors
    """

    p = Path(_get_config_path(family_name=family_name, path=path))
    raw = _load_yaml_file(p)

    return _parse_family_cfg_from_dict(name=family_name, raw=raw)


def get_config(family_name: str) -> FamilyConfig:
    """Return the loaded config for family_name, loading and caching if necessary.

    Configs are cached per family_name; repeated calls for the same family
    return the cached instance without re-reading the YAML file.

    THREAD SAFETY: This function is thread-safe. Multiple threads can
    safely call this concurrently.
    """
    with _CACHE_LOCK:
        if family_name not in _LOADER_CACHE:
            _LOADER_CACHE[family_name] = load_config(family_name=family_name)
        return _LOADER_CACHE[family_name]


def clear_config_cache() -> None:
    """Clear all cached configurations.

    Useful for testing with substitute tables.
    All subsequent calls to get_config() will reload from disk.
    """
    with _CACHE_LOCK:
        _LOADER_CACHE.clear()
