"""TBAS (Terran BASIC) package: a line-numbered BASIC with closures, currying and monads."""

# Main API
from tbas.tbas import TBAS
from tbas.tbas_config import TBASConfig

# Exceptions
from tbas.tbas_error import (
    TBASError, TBASSyntaxError, TBASNumberFormatError, TBASTypeMismatchError, TBASDivisionByZeroError,
    TBASUnresolvedReferenceError, TBASSubscriptOutOfRangeError, TBASOutOfDataError, TBASNextWithoutForError,
    TBASNoGosubToReturnError, TBASDuplicateDefinitionError, TBASAssignmentToConstantError, TBASOutOfMemoryError,
    TBASBadFunctionCallError, TBASRecursionLimitError, TBASNoSuchFileError, TBASMissingOperandError,
    ErrorMessageBuilder
)

# Value types
from tbas.tbas_value import (
    TBASValue, TBASNumber, TBASString, TBASBoolean, TBASNull, TBASArray, TBASGenerator, TBASClosure,
    TBASMonad, TBASListMonad, TBASMemoMonad, TBASFunSeq
)

# Host collaborators
from tbas.tbas_console import (
    TBASConsole, TBASStdioConsole, TBASBufferedConsole, TBASFileStore, TBASDirectoryFileStore,
    TBASMemoryFileStore, TBASMemoryBus, TBASUnavailableMemoryBus, TBASSparseMemoryBus
)

# Lower-level components (for advanced usage)
from tbas.tbas_token import TBASToken, TBASTokenState
from tbas.tbas_lexer import TBASLexer
from tbas.tbas_elaborator import TBASElaborator
from tbas.tbas_parser import TBASParser
from tbas.tbas_closure_converter import TBASClosureConverter
from tbas.tbas_evaluator import TBASEvaluator
from tbas.tbas_interpreter import TBASInterpreter
from tbas.tbas_program import TBASProgramStore


__all__ = [
    # Main API
    "TBAS", "TBASConfig",

    # Exceptions
    "TBASError", "TBASSyntaxError", "TBASNumberFormatError", "TBASTypeMismatchError", "TBASDivisionByZeroError",
    "TBASUnresolvedReferenceError", "TBASSubscriptOutOfRangeError", "TBASOutOfDataError", "TBASNextWithoutForError",
    "TBASNoGosubToReturnError", "TBASDuplicateDefinitionError", "TBASAssignmentToConstantError",
    "TBASOutOfMemoryError", "TBASBadFunctionCallError", "TBASRecursionLimitError", "TBASNoSuchFileError",
    "TBASMissingOperandError", "ErrorMessageBuilder",

    # Value types
    "TBASValue", "TBASNumber", "TBASString", "TBASBoolean", "TBASNull", "TBASArray", "TBASGenerator",
    "TBASClosure", "TBASMonad", "TBASListMonad", "TBASMemoMonad", "TBASFunSeq",

    # Host collaborators
    "TBASConsole", "TBASStdioConsole", "TBASBufferedConsole", "TBASFileStore", "TBASDirectoryFileStore",
    "TBASMemoryFileStore", "TBASMemoryBus", "TBASUnavailableMemoryBus", "TBASSparseMemoryBus",

    # Lower-level components
    "TBASToken", "TBASTokenState", "TBASLexer", "TBASElaborator", "TBASParser", "TBASClosureConverter",
    "TBASEvaluator", "TBASInterpreter", "TBASProgramStore"
]
