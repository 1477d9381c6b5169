"""Setting catalog: the named configuration settings of a device family.

Each setting has an ordered set of legal logical values and a default. Values
are structured: numeric settings carry their magnitude, so nothing after the
loader ever parses text to recover a divider or multiplier.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from configurator.core.exceptions import ConfigurationError
from configurator.core.register import RegisterId


class SettingId(Enum):
    """Every enumerated DEVCFG setting, in register order."""

    # DEVCFG3
    FMIIEN = "FMIIEN"
    FETHIO = "FETHIO"
    PGL1WAY = "PGL1WAY"
    PMDL1WAY = "PMDL1WAY"
    IOL1WAY = "IOL1WAY"
    FUSBIDIO = "FUSBIDIO"
    # DEVCFG2
    FPLLIDIV = "FPLLIDIV"
    FPLLRNG = "FPLLRNG"
    FPLLICLK = "FPLLICLK"
    FPLLMULT = "FPLLMULT"
    FPLLODIV = "FPLLODIV"
    UPLLFSEL = "UPLLFSEL"
    # DEVCFG1
    FNOSC = "FNOSC"
    DMTINTV = "DMTINTV"
    FSOSCEN = "FSOSCEN"
    IESO = "IESO"
    POSCMOD = "POSCMOD"
    OSCIOFNC = "OSCIOFNC"
    FCKSM = "FCKSM"
    WDTPS = "WDTPS"
    WDTSPGM = "WDTSPGM"
    WINDIS = "WINDIS"
    FWDTEN = "FWDTEN"
    FWDTWINSZ = "FWDTWINSZ"
    DMTCNT = "DMTCNT"
    FDMTEN = "FDMTEN"
    # DEVCFG0
    DEBUG = "DEBUG"
    JTAGEN = "JTAGEN"
    ICESEL = "ICESEL"
    TRCEN = "TRCEN"
    BOOTISA = "BOOTISA"
    FECCCON = "FECCCON"
    FSLEEP = "FSLEEP"
    DBGPER = "DBGPER"
    SMCLR = "SMCLR"
    SOSCGAIN = "SOSCGAIN"
    SOSCBOOST = "SOSCBOOST"
    POSCGAIN = "POSCGAIN"
    POSCBOOST = "POSCBOOST"
    EJTAGBEN = "EJTAGBEN"

    @classmethod
    def from_name(cls, name: str) -> SettingId:
        try:
            return cls[name]
        except KeyError as exc:
            raise ConfigurationError(name, "unknown setting") from exc


@dataclass(frozen=True)
class SettingValue:
    """One legal value of a setting.

    Attributes:
        token: Logical value identifier (e.g. 'spll', 'mul_50')
        code: Integer programmed into the setting's bit field
        magnitude: Numeric meaning of the value for dividers, multipliers
            and postscalers; None for purely symbolic values
        label: Human readable description
    """

    token: str
    code: int
    magnitude: Optional[int] = None
    label: str = ""


@dataclass(frozen=True)
class Setting:
    """A named setting with its legal values and default."""

    id: SettingId
    title: str
    register: RegisterId
    values: Mapping[str, SettingValue]
    default: str

    def __post_init__(self):
        if self.default not in self.values:
            raise ConfigurationError(
                self.id.name, f"default '{self.default}' is not a legal value"
            )

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(self.values)

    def value(self, token: str) -> SettingValue:
        try:
            return self.values[token]
        except KeyError as exc:
            raise ConfigurationError(
                self.id.name, f"'{token}' is not a legal value"
            ) from exc

    def magnitude(self, token: str) -> int:
        """Numeric magnitude of a value; raises when the value has none."""
        magnitude = self.value(token).magnitude
        if magnitude is None:
            raise ConfigurationError(
                self.id.name, f"'{token}' does not carry a numeric magnitude"
            )
        return magnitude


class SettingCatalog:
    """Read-only catalog of settings, kept in register order."""

    def __init__(self, settings: list[Setting]):
        by_id: dict[SettingId, Setting] = {}
        for setting in settings:
            if setting.id in by_id:
                raise ConfigurationError(setting.id.name, "setting defined more than once")
            by_id[setting.id] = setting
        self._settings = MappingProxyType(by_id)

    def __getitem__(self, setting_id: SettingId) -> Setting:
        try:
            return self._settings[setting_id]
        except KeyError as exc:
            raise ConfigurationError(setting_id.name, "setting is not in the catalog") from exc

    def __contains__(self, setting_id: object) -> bool:
        return setting_id in self._settings

    def __iter__(self) -> Iterator[Setting]:
        return iter(self._settings.values())

    def __len__(self) -> int:
        return len(self._settings)

    def ids(self) -> list[SettingId]:
        return list(self._settings)

    def default_selection(self) -> dict[SettingId, str]:
        return {setting.id: setting.default for setting in self}

    def resolve(self, selection: Mapping[SettingId, str]) -> dict[SettingId, str]:
        """Complete a selection with catalog defaults and reject illegal values."""
        resolved = self.default_selection()
        for setting_id, token in selection.items():
            self[setting_id].value(token)
            resolved[setting_id] = token
        return resolved
