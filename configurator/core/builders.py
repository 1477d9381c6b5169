"""Factories that turn a loaded FamilyConfig into compiler components.

The loader only checks structure. Everything that needs the register model
(setting names, field overlaps, reserved bits, directive drift) is checked
here, while the components are built.
"""

from types import MappingProxyType

from configurator.core.catalog import Setting, SettingCatalog, SettingId, SettingValue
from configurator.core.directives import DirectiveMapper, DirectiveTable, check_consistency
from configurator.core.exceptions import ConfigurationError
from configurator.core.register import (
    BitField,
    BitFieldDescriptor,
    BitFieldMap,
    RegisterId,
    RegisterLayout,
)
from configurator.core.timer import TimerCalculator, TimerClass
from configurator.utils.config_loader import FamilyConfig, FieldConfig, SettingConfig


def _register_id(name: str) -> RegisterId:
    try:
        return RegisterId[name]
    except KeyError as exc:
        raise ConfigurationError("registers", f"unknown register '{name}'") from exc


def _setting_values(cfg: SettingConfig):
    return MappingProxyType(
        {
            value.token: SettingValue(
                token=value.token,
                code=value.code,
                magnitude=value.magnitude,
                label=value.label,
            )
            for value in cfg.values
        }
    )


def _bit_field(cfg: FieldConfig) -> BitField:
    return BitField(
        register=_register_id(cfg.register),
        bit_start=cfg.bit_start,
        bit_width=cfg.bit_width,
    )


def create_catalog_from_config(family_cfg: FamilyConfig) -> SettingCatalog:
    """Build the setting catalog, in the order the family lists its settings."""
    return SettingCatalog(
        [
            Setting(
                id=SettingId.from_name(cfg.name),
                title=cfg.title,
                register=_register_id(cfg.field.register),
                values=_setting_values(cfg),
                default=cfg.default,
            )
            for cfg in family_cfg.settings
        ]
    )


def create_bit_field_map_from_config(
    family_cfg: FamilyConfig, catalog: SettingCatalog
) -> BitFieldMap:
    """Build and validate the bit field map.

    Raises:
        ConfigurationError: overlapping fields, fields on reserved bits,
            or codes wider than their field
    """
    descriptors = []
    for cfg in family_cfg.settings:
        setting = catalog[SettingId.from_name(cfg.name)]
        field = _bit_field(cfg.field)
        descriptors.append(
            BitFieldDescriptor(
                register=field.register,
                bit_start=field.bit_start,
                bit_width=field.bit_width,
                setting=setting.id,
                encoding=setting.values,
            )
        )

    layouts = [
        RegisterLayout(
            register=_register_id(reg.name),
            address=reg.address,
            reserved_mask=reg.reserved_mask,
            reserved_value=reg.reserved_value,
        )
        for reg in family_cfg.registers.values()
    ]
    user_id_field = None if family_cfg.user_id is None else _bit_field(family_cfg.user_id)
    return BitFieldMap(descriptors, layouts, user_id_field=user_id_field)


def create_directive_table_from_config(family_cfg: FamilyConfig) -> DirectiveTable:
    return MappingProxyType(
        {
            SettingId.from_name(name): tokens
            for name, tokens in family_cfg.directives.items()
        }
    )


def create_directive_mapper(
    bit_field_map: BitFieldMap, directive_table: DirectiveTable
) -> DirectiveMapper:
    """Build the directive mapper, refusing tables that drifted from the bit fields."""
    problems = check_consistency(bit_field_map, directive_table)
    if problems:
        raise ConfigurationError(
            "directives",
            f"{len(problems)} entries disagree with the bit field map",
            details={"problems": problems},
        )
    user_field = bit_field_map.user_id_field
    if user_field is None:
        return DirectiveMapper(directive_table)
    return DirectiveMapper(directive_table, user_id_width=user_field.bit_width)


def create_timer_calculator_from_config(family_cfg: FamilyConfig) -> TimerCalculator:
    classes = {}
    for name, cfg in family_cfg.timers.items():
        try:
            classes[TimerClass(name)] = cfg
        except ValueError as exc:
            raise ConfigurationError("timers", f"unknown timer class '{name}'") from exc
    return TimerCalculator(classes)
