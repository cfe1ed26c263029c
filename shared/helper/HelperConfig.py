"""Central configuration helper for docchat_bridge."""

import logging
import os
from collections.abc import Mapping


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    A mapping can be passed instead of the process environment, which is how
    the test-suite and embedded callers configure the pipelines.
    """

    def __init__(self, logger: logging.Logger, environ: Mapping[str, str] | None = None) -> None:
        self._logger = logger
        self._environ = environ if environ is not None else os.environ

    def _read(self, key: str) -> str | None:
        # empty string → None
        return self._environ.get(key.upper()) or None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Args:
            key (str): Setting name (case-insensitive).
            default (str | None): Fallback value if the setting is absent.

        Returns:
            str: The resolved value, stripped of surrounding whitespace.

        Raises:
            ValueError: If the setting is absent and no default is provided.
        """
        val = self._read(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric setting.

        Args:
            key (str): Setting name (case-insensitive).
            default (float | int | None): Fallback value if the setting is absent.

        Returns:
            float | int: An int unless the raw value contains a decimal point.

        Raises:
            ValueError: If the setting is absent and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_positive_int_val(self, key: str, default: int) -> int:
        """Read a setting that must be a whole number greater than zero.

        Raises:
            ValueError: If the value is not a positive integer.
        """
        val = self.get_number_val(key, default=default)
        if int(val) != val or val <= 0:
            raise ValueError(f"Environment variable '{key.upper()}' must be a positive integer, got '{val}'.")
        return int(val)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean setting ("true", "1" and "yes" are truthy).

        Raises:
            ValueError: If the setting is absent and no default is provided.
        """
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list setting written as "[elem1,elem2,...]".

        Args:
            key (str): Setting name (case-insensitive).
            default (list[str] | None): Fallback value if the setting is absent.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The parsed elements, empty entries removed.

        Raises:
            ValueError: If the setting is absent without default, not bracketed, or an element cannot be cast.
        """
        raw_val = self._read(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements for type {element_type.__name__}: {e}")

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
