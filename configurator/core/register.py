"""Configuration register abstraction layer.

DEVCFG words are the unit the compiler produces. This module describes where
every named setting lives inside those words and provides the immutable word
set the compiler hands back to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterator, Mapping, Optional

from configurator.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from configurator.core.catalog import SettingId, SettingValue

WORD_MASK = 0xFFFFFFFF
ERASED_WORD = WORD_MASK


class RegisterId(IntEnum):
    """Configuration words of the device, indexed as in the word set."""

    DEVCFG0 = 0
    """Debug, boot ISA, ECC and oscillator gain settings."""

    DEVCFG1 = 1
    """Oscillator selection, watchdog and deadman timer settings."""

    DEVCFG2 = 2
    """System PLL and USB PLL settings."""

    DEVCFG3 = 3
    """Ethernet, one-way lock and user ID settings."""


@dataclass(frozen=True)
class BitField:
    """A contiguous bit range inside one configuration word."""

    register: RegisterId
    bit_start: int
    bit_width: int

    @property
    def mask(self) -> int:
        return ((1 << self.bit_width) - 1) << self.bit_start

    @property
    def bit_end(self) -> int:
        """One past the highest bit of the field."""
        return self.bit_start + self.bit_width

    def extract(self, word: int) -> int:
        return (word & self.mask) >> self.bit_start

    def insert(self, word: int, code: int) -> int:
        """Return word with this field replaced by code."""
        return ((word & ~self.mask) | ((code << self.bit_start) & self.mask)) & WORD_MASK

    def overlaps(self, other: BitField) -> bool:
        return self.register == other.register and bool(self.mask & other.mask)


@dataclass(frozen=True)
class BitFieldDescriptor(BitField):
    """Location and encoding of one named setting.

    The encoding maps logical value tokens to SettingValue entries carrying
    the integer code programmed into the field.
    """

    setting: SettingId
    encoding: Mapping[str, SettingValue]

    def code_for(self, token: str) -> Optional[int]:
        value = self.encoding.get(token)
        return None if value is None else value.code

    def token_for(self, code: int) -> Optional[str]:
        for token, value in self.encoding.items():
            if value.code == code:
                return token
        return None


@dataclass(frozen=True)
class RegisterLayout:
    """Address and reserved-bit pattern of one configuration word."""

    register: RegisterId
    address: int
    reserved_mask: int = 0
    reserved_value: int = 0

    def apply_reserved(self, word: int) -> int:
        return (word & ~self.reserved_mask) | (self.reserved_value & self.reserved_mask)


@dataclass(frozen=True)
class RegisterWordSet:
    """The four compiled configuration words. Immutable once built."""

    devcfg0: int = ERASED_WORD
    devcfg1: int = ERASED_WORD
    devcfg2: int = ERASED_WORD
    devcfg3: int = ERASED_WORD

    def __post_init__(self):
        for register in RegisterId:
            value = self[register]
            if not 0 <= value <= WORD_MASK:
                raise ValueError(f"{register.name} value 0x{value:X} does not fit 32 bits")

    def __getitem__(self, register: RegisterId) -> int:
        return getattr(self, register.name.lower())

    def __iter__(self) -> Iterator[tuple[RegisterId, int]]:
        for register in RegisterId:
            yield register, self[register]

    @classmethod
    def from_words(cls, words: Mapping[RegisterId, int]) -> RegisterWordSet:
        return cls(**{register.name.lower(): words[register] for register in RegisterId})

    def field_value(self, field: BitField) -> int:
        return field.extract(self[field.register])

    def as_hex(self) -> dict[str, str]:
        """Words rendered the way toolchain files spell them (0xXXXXXXXX)."""
        return {register.name: f"0x{value:08X}" for register, value in self}

    def with_addresses(self, layouts: Mapping[RegisterId, RegisterLayout]) -> list[tuple[int, int]]:
        """(address, value) pairs in descending register order (DEVCFG3 first)."""
        return [
            (layouts[register].address, self[register])
            for register in sorted(RegisterId, reverse=True)
        ]


class BitFieldMap:
    """Validated, read-only collection of bit field descriptors.

    Every invariant the compiler relies on is checked here once, at
    construction, so compile() itself never has to re-check layout.
    """

    def __init__(
        self,
        descriptors: list[BitFieldDescriptor],
        layouts: list[RegisterLayout],
        user_id_field: Optional[BitField] = None,
    ):
        self._layouts = MappingProxyType({layout.register: layout for layout in layouts})
        missing = [register.name for register in RegisterId if register not in self._layouts]
        if missing:
            raise ConfigurationError("registers", f"missing layout for {', '.join(missing)}")

        fields: dict[SettingId, BitFieldDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.setting in fields:
                raise ConfigurationError(
                    descriptor.setting.name, "setting described more than once"
                )
            self._validate_field(descriptor, descriptor.setting.name)
            self._validate_encoding(descriptor)
            fields[descriptor.setting] = descriptor

        if user_id_field is not None:
            self._validate_field(user_id_field, "USERID")

        placed: list[tuple[str, BitField]] = [(d.setting.name, d) for d in descriptors]
        if user_id_field is not None:
            placed.append(("USERID", user_id_field))
        for index, (name, field) in enumerate(placed):
            for other_name, other in placed[index + 1:]:
                if field.overlaps(other):
                    raise ConfigurationError(
                        name,
                        f"bits overlap {other_name} in {field.register.name}",
                    )

        self._fields = MappingProxyType(fields)
        self._user_id_field = user_id_field

    def _validate_field(self, field: BitField, name: str) -> None:
        if field.bit_width < 1 or field.bit_start < 0 or field.bit_end > 32:
            raise ConfigurationError(
                name,
                f"bit range [{field.bit_start}, {field.bit_end}) does not fit a 32-bit word",
            )
        reserved = self._layouts[field.register].reserved_mask
        if field.mask & reserved:
            raise ConfigurationError(
                name, f"bits overlap reserved positions of {field.register.name}"
            )

    def _validate_encoding(self, descriptor: BitFieldDescriptor) -> None:
        limit = (1 << descriptor.bit_width) - 1
        for token, value in descriptor.encoding.items():
            if not 0 <= value.code <= limit:
                raise ConfigurationError(
                    descriptor.setting.name,
                    f"code {value.code} for '{token}' does not fit {descriptor.bit_width} bits",
                )

    def __getitem__(self, setting: SettingId) -> BitFieldDescriptor:
        try:
            return self._fields[setting]
        except KeyError as exc:
            raise ConfigurationError(setting.name, "no bit field describes this setting") from exc

    def __contains__(self, setting: object) -> bool:
        return setting in self._fields

    def __iter__(self) -> Iterator[BitFieldDescriptor]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def get(self, setting: SettingId) -> Optional[BitFieldDescriptor]:
        return self._fields.get(setting)

    def fields_of(self, register: RegisterId) -> list[BitFieldDescriptor]:
        """Descriptors of one register, lowest bit first."""
        return sorted(
            (d for d in self._fields.values() if d.register == register),
            key=lambda d: d.bit_start,
        )

    @property
    def layouts(self) -> Mapping[RegisterId, RegisterLayout]:
        return self._layouts

    @property
    def user_id_field(self) -> Optional[BitField]:
        return self._user_id_field
