"""Reverse directive mapper: logical values to toolchain config directives.

The directive table is independent of the bit field encodings. The two
must describe the same (setting, value) pairs; check_consistency reports
any drift and the family loader refuses tables that drifted.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from configurator.core.catalog import SettingId
from configurator.core.exceptions import ValidationError
from configurator.core.register import BitFieldMap

logger = logging.getLogger(__name__)

USERID_DIRECTIVE = "USERID"
USERID_WIDTH = 16

DirectiveTable = Mapping[SettingId, Mapping[str, str]]


class DirectiveMapper:
    """Maps a selection set to ordered (directive, token) pairs."""

    def __init__(self, directive_table: DirectiveTable, user_id_width: int = USERID_WIDTH):
        self._user_id_width = user_id_width
        self._table = MappingProxyType(
            {setting: MappingProxyType(dict(tokens)) for setting, tokens in directive_table.items()}
        )

    @property
    def table(self) -> DirectiveTable:
        return self._table

    def token_for(self, setting: SettingId, value: str) -> Optional[str]:
        return self._table.get(setting, {}).get(value)

    def to_directives(
        self,
        selection: Mapping[SettingId, str],
        user_id: Optional[int] = None,
    ) -> list[tuple[str, str]]:
        """Directive pairs in register order (DEVCFG3 first).

        Values with no directive token are skipped.

        Raises:
            ValidationError: user_id outside the user ID field
        """
        directives: list[tuple[str, str]] = []
        if user_id is not None:
            if not 0 <= user_id <= (1 << self._user_id_width) - 1:
                raise ValidationError(
                    "user_id", f"0x{user_id:X} does not fit {self._user_id_width} bits"
                )
            digits = (self._user_id_width + 3) // 4
            directives.append((USERID_DIRECTIVE, f"0x{user_id:0{digits}X}"))
        for setting in SettingId:
            if setting not in selection:
                continue
            value = selection[setting]
            token = self.token_for(setting, value)
            if token is None:
                logger.debug("No directive for %s = '%s', skipped", setting.name, value)
                continue
            directives.append((setting.name, token))
        return directives


def check_consistency(bit_field_map: BitFieldMap, directive_table: DirectiveTable) -> list[str]:
    """List every (setting, value) present in one table but not the other."""
    problems: list[str] = []
    for descriptor in bit_field_map:
        tokens = directive_table.get(descriptor.setting)
        if tokens is None:
            problems.append(f"{descriptor.setting.name}: no directive table")
            continue
        for value in descriptor.encoding:
            if value not in tokens:
                problems.append(f"{descriptor.setting.name}={value}: no directive token")
        for value in tokens:
            if value not in descriptor.encoding:
                problems.append(f"{descriptor.setting.name}={value}: no bit field encoding")

    for setting in directive_table:
        if setting not in bit_field_map:
            problems.append(f"{setting.name}: directive table without bit field")
    return problems
