"""
Unified builtin function registry for TBAS.

This module provides the single frozen table of builtin names, arities and access flags, and
binds each entry to its implementation from the function groups.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List

from tbas.tbas_collections import TBASCollectionFunctions
from tbas.tbas_math import TBASMathFunctions
from tbas.tbas_statements import TBASStatementFunctions

if TYPE_CHECKING:
    from tbas.tbas_interpreter import TBASInterpreter


@dataclass(frozen=True)
class TBASBuiltin:
    """One builtin: its implementation and how the evaluator must call it."""
    name: str
    impl: Callable
    arity: int | None
    raw_args: bool = False
    debug_only: bool = False
    not_production: bool = False


class TBASBuiltinRegistry:
    """
    Central registry for all builtin functions.

    This class aggregates builtin implementations from the function groups and checks that every
    name in BUILTIN_TABLE has exactly one.
    """

    # Authoritative table of builtin names and arities; None marks a variadic builtin
    BUILTIN_TABLE: Dict[str, int | None] = {
        # Operators
        '+': 2, '-': 2, '*': 2, '/': 2, '\\': 2, 'MOD': 2, '^': 2,
        '==': 2, '<>': 2, '><': 2, '<': 2, '>': 2, '<=': 2, '=<': 2, '>=': 2, '=>': 2,
        '<<': 2, '>>': 2, 'BAND': 2, 'BOR': 2, 'BXOR': 2,
        'AND': 2, 'OR': 2, 'MIN': 2, 'MAX': 2, 'TO': 2, 'STEP': 2,
        '!': 2, '~': 2, '#': 2, '.': 2, '$': 2, '~<': 2, '>>=': 2, '>>~': 2, '=': 2, 'IN': 2,
        'UNARYMINUS': 1, 'UNARYPLUS': 1, 'UNARYLOGICNOT': 1, 'UNARYBNOT': 1, 'MRET': 1, 'MJOIN': 1,

        # Mathematics
        'ABS': 1, 'SGN': 1, 'INT': 1, 'FLOOR': 1, 'FIX': 1, 'CEIL': 1, 'ROUND': 1,
        'SQR': 1, 'CBR': 1, 'EXP': 1, 'LOG': 1,
        'SIN': 1, 'COS': 1, 'TAN': 1, 'ASN': 1, 'ACO': 1, 'ATN': 1, 'SINH': 1, 'COSH': 1, 'TANH': 1,
        'RND': 1,

        # Strings and arrays
        'LEFT': 2, 'RIGHT': 2, 'MID': 3, 'SPC': 1, 'CHR': 1,
        'DIM': None, 'LEN': 1, 'HEAD': 1, 'TAIL': 1, 'INIT': 1, 'LAST': 1,

        # Higher-order and monads
        'MAP': 2, 'FOLD': 3, 'FILTER': 2, 'REDUCE': 1, 'MLIST': 1, 'TYPEOF': 1,

        # Control flow
        'FOR': 1, 'FOREACH': 1, 'NEXT': None, 'GOTO': 1, 'GOSUB': 1, 'RETURN': 0, 'END': 0,
        'DO': None, 'TEST': 1,

        # Program data and options
        'DATA': None, 'READ': 1, 'DGET': 0, 'RESTORE': 0, 'LABEL': 1, 'CLEAR': 0,
        'OPTIONBASE': 1, 'OPTIONDEBUG': 1, 'OPTIONTRACE': 1,

        # Console and memory bus
        'PRINT': None, 'EMIT': None, 'INPUT': 1, 'CIN': 0, 'CLS': 0,
        'GOTOYX': 2, 'TEXTFORE': 1, 'TEXTBACK': 1,
        'POKE': 2, 'PEEK': 1, 'PLOT': 3, 'GETKEYSDOWN': 0,

        # Debugging
        'PRINTMONAD': 1, 'RESOLVE': 1, 'RESOLVEVAR': 1,
    }

    # Builtins that receive unresolved operands (variable references, array handles, assignments)
    RAW_ARGUMENT_BUILTINS = frozenset({
        '=', 'IN', 'FOR', 'FOREACH', 'NEXT', 'GOTO', 'GOSUB', 'READ', 'INPUT', 'LABEL', 'RESOLVEVAR'
    })

    DEBUG_ONLY_BUILTINS = frozenset({'PRINTMONAD', 'RESOLVE', 'RESOLVEVAR'})

    NOT_PRODUCTION_BUILTINS = frozenset({'REDUCE'})

    def __init__(self, interpreter: "TBASInterpreter") -> None:
        """
        Initialize the builtin registry.

        Args:
            interpreter: Interpreter handed to the groups that need its state
        """
        self.math_functions = TBASMathFunctions()
        self.collection_functions = TBASCollectionFunctions(interpreter)
        self.statement_functions = TBASStatementFunctions(interpreter)

        self._builtins: Dict[str, TBASBuiltin] = self._build_builtins()

    def _build_builtins(self) -> Dict[str, TBASBuiltin]:
        """
        Bind every BUILTIN_TABLE entry to its implementation.

        Returns:
            Builtins keyed by upper-case name

        Raises:
            RuntimeError: If a table entry has no implementation
        """
        functions_dict: Dict[str, Callable] = {}
        functions_dict.update(self.math_functions.get_functions())
        functions_dict.update(self.collection_functions.get_functions())
        functions_dict.update(self.statement_functions.get_functions())

        builtins: Dict[str, TBASBuiltin] = {}
        for name, arity in self.BUILTIN_TABLE.items():
            if name not in functions_dict:
                raise RuntimeError(f"Builtin function '{name}' in BUILTIN_TABLE but not implemented")

            builtins[name] = TBASBuiltin(
                name=name,
                impl=functions_dict[name],
                arity=arity,
                raw_args=name in self.RAW_ARGUMENT_BUILTINS,
                debug_only=name in self.DEBUG_ONLY_BUILTINS,
                not_production=name in self.NOT_PRODUCTION_BUILTINS
            )

        return builtins

    def lookup(self, name: str) -> TBASBuiltin | None:
        """
        Find a builtin by name.

        Args:
            name: Builtin name (case-insensitive)

        Returns:
            The builtin, or None if there is no such builtin
        """
        return self._builtins.get(name.upper())

    def names(self) -> FrozenSet[str]:
        """Return every builtin name."""
        return frozenset(self._builtins)

    def keyword_names(self) -> List[str]:
        """Return the builtin names spelled as words, for suggestions and the parser."""
        return sorted(name for name in self._builtins if name[0].isalpha())
