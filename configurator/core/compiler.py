"""Register compiler: packs setting selections into DEVCFG words."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from configurator.core.catalog import SettingCatalog, SettingId
from configurator.core.exceptions import ConfigurationError, ValidationError
from configurator.core.register import (
    ERASED_WORD,
    BitFieldMap,
    RegisterId,
    RegisterWordSet,
)

logger = logging.getLogger(__name__)


class RegisterCompiler:
    """Compiles a selection set into a RegisterWordSet.

    Words start in the erased state (all ones). Reserved positions are then
    programmed to their fixed value and every selected setting replaces its
    own field. Fields never overlap, so the result does not depend on the
    order of the selection.

    THREAD SAFETY: The compiler holds only read-only tables and may be shared
    between threads.
    """

    def __init__(self, bit_field_map: BitFieldMap, catalog: Optional[SettingCatalog] = None):
        self._map = bit_field_map
        self._catalog = catalog

    @property
    def bit_field_map(self) -> BitFieldMap:
        return self._map

    def default_selection(self) -> dict[SettingId, str]:
        if self._catalog is None:
            raise ConfigurationError("catalog", "compiler was built without a setting catalog")
        return self._catalog.default_selection()

    def compile(
        self,
        selection: Mapping[SettingId, str],
        user_id: int = 0,
        strict: bool = True,
    ) -> RegisterWordSet:
        """Compile selection into the four configuration words.

        Args:
            selection: Setting id -> logical value token. Settings that are
                absent keep the erased (all ones) field.
            user_id: 16-bit number programmed into the user ID field
            strict: When True an unknown setting or value raises. When False
                the field is left erased and a warning is logged.

        Raises:
            ConfigurationError: unknown setting or value in strict mode
            ValidationError: user_id outside the user ID field
        """
        words = {register: ERASED_WORD for register in RegisterId}
        for register, layout in self._map.layouts.items():
            words[register] = layout.apply_reserved(words[register])

        user_field = self._map.user_id_field
        if user_field is not None:
            if not 0 <= user_id <= (1 << user_field.bit_width) - 1:
                raise ValidationError(
                    "user_id", f"0x{user_id:X} does not fit {user_field.bit_width} bits"
                )
            words[user_field.register] = user_field.insert(words[user_field.register], user_id)

        for setting, token in selection.items():
            descriptor = self._map.get(setting)
            code = None if descriptor is None else descriptor.code_for(token)
            if code is None:
                if strict:
                    if descriptor is None:
                        raise ConfigurationError(setting.name, "no bit field describes this setting")
                    raise ConfigurationError(
                        setting.name,
                        f"'{token}' has no encoding",
                        details={"legal": list(descriptor.encoding)},
                    )
                logger.warning("Leaving %s erased: no encoding for '%s'", setting.name, token)
                continue
            words[descriptor.register] = descriptor.insert(words[descriptor.register], code)

        return RegisterWordSet.from_words(words)

    def compile_defaults(self, user_id: int = 0) -> RegisterWordSet:
        return self.compile(self.default_selection(), user_id=user_id)

    def decode(self, words: RegisterWordSet) -> dict[SettingId, str]:
        """Recover the selection encoded in words.

        Fields holding a code with no value in the encoding table are left out.
        """
        selection: dict[SettingId, str] = {}
        for descriptor in self._map:
            token = descriptor.token_for(words.field_value(descriptor))
            if token is None:
                logger.debug("%s holds an unlisted code", descriptor.setting.name)
                continue
            selection[descriptor.setting] = token
        return selection

    def decode_user_id(self, words: RegisterWordSet) -> Optional[int]:
        user_field = self._map.user_id_field
        return None if user_field is None else words.field_value(user_field)
