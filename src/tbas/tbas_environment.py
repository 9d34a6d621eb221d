"""Variable table for TBAS global variables and constants."""

import math
from typing import Dict, List

from tbas.tbas_ast import TBASASTArgRef
from tbas.tbas_error import TBASAssignmentToConstantError
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASArray, TBASClosure, NULL, TRUE, FALSE
)


def value_footprint(value: TBASValue) -> int:
    """Estimate the scratch memory a value occupies."""
    if isinstance(value, TBASNumber):
        return 8

    if isinstance(value, TBASString):
        return len(value.value)

    if isinstance(value, TBASArray):
        return 8 * len(value.elements)

    return 1


class TBASVariableTable:
    """
    Global variables plus the immutable constant set.

    Names are stored upper-cased. Constants can be read but never reassigned.
    """

    def __init__(self) -> None:
        """Initialize an empty table with the standard constants."""
        self._constants: Dict[str, TBASValue] = {
            "NIL": TBASArray([]),
            "PI": TBASNumber(math.pi),
            "TAU": TBASNumber(2 * math.pi),
            "EULER": TBASNumber(math.e),
            "ID": TBASClosure(1, TBASASTArgRef(0, 0), name="ID"),
            "UNDEFINED": NULL,
            "TRUE": TRUE,
            "FALSE": FALSE,
        }
        self._variables: Dict[str, TBASValue] = {}

    def is_constant(self, name: str) -> bool:
        """Check whether a name is one of the built-in constants."""
        return name.upper() in self._constants

    def lookup(self, name: str) -> TBASValue | None:
        """
        Look up a constant or variable.

        Args:
            name: Name to look up (case-insensitive)

        Returns:
            The bound value, or None if the name is unbound
        """
        key = name.upper()
        if key in self._constants:
            return self._constants[key]

        return self._variables.get(key)

    def define(self, name: str, value: TBASValue) -> None:
        """
        Bind a variable.

        Args:
            name: Variable name (case-insensitive)
            value: Value to bind

        Raises:
            TBASAssignmentToConstantError: If the name is a constant
        """
        key = name.upper()
        if key in self._constants:
            raise TBASAssignmentToConstantError(f'Trying to modify constant "{key}"')

        self._variables[key] = value

    def clear(self) -> None:
        """Remove every variable; constants stay."""
        self._variables.clear()

    def names(self) -> List[str]:
        """Return the names of all constants and variables."""
        return list(self._constants) + list(self._variables)

    def footprint(self) -> int:
        """Estimate the scratch memory used by variables."""
        return sum(value_footprint(value) for value in self._variables.values())

    def footprint_with(self, name: str, value: TBASValue) -> int:
        """Estimate the footprint after binding name to value."""
        key = name.upper()
        current = self._variables.get(key)
        total = self.footprint() + value_footprint(value)
        if current is not None:
            total -= value_footprint(current)

        return total

    def __repr__(self) -> str:
        return f"TBASVariableTable(variables={len(self._variables)})"
