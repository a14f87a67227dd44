"""
RGB Schemata - contract schema definitions and their consistency checks.

This package provides:
- types, stl: strict type library and the standard RGB contract types
- builder: SchemaBuilder, which validates and freezes schemas
- schema: the frozen, content-addressed Schema
- script, vm: validation script assembler and reference interpreter
- catalog: the NIA, UDA, CFA, PFA and IFA schemas
"""

from .builder import BuilderState, SchemaBuilder
from .catalog import (
    catalog,
    get_schema,
    IfaState,
    cfa_schema,
    ifa_schema,
    nia_schema,
    pfa_schema,
    uda_schema,
)
from .errors import (
    SchemaError,
    UnresolvedType,
    DuplicateStateName,
    InvalidGenesisCardinality,
    OrphanTransition,
    MissingValidation,
    WitnessArityMismatch,
    DuplicateTypeName,
    UnknownStateName,
    DuplicateTransitionName,
    DuplicateBinding,
    BuilderStateError,
    UnknownTransition,
    ValueEncodingError,
    DecodeError,
    ScriptCompileError,
    DescriptionError,
    MissingGlobalState,
    MultipleValues,
)
from .schema import Schema
from .script import CompiledScript, compile_script
from .state import MetaType, Multiplicity, OwnedKind, StateType, Visibility
from .stl import standard_types
from .transitions import GlobalAccess, Occurrences, TransitionKind
from .types import TypeLibrary, TypeRef
from .validate import ValidationResult
from .validation import ValidationScript
from .vm import ReferenceVM, ScriptVM, Verdict, VmConfig
from .witness import SlotSection, Witness, WitnessSlot

__version__ = "0.1.0"

__all__ = [
    # Builder
    "BuilderState",
    "SchemaBuilder",
    "Schema",
    "ValidationResult",
    # Catalog
    "catalog",
    "get_schema",
    "IfaState",
    "cfa_schema",
    "ifa_schema",
    "nia_schema",
    "pfa_schema",
    "uda_schema",
    # Errors
    "SchemaError",
    "UnresolvedType",
    "DuplicateStateName",
    "InvalidGenesisCardinality",
    "OrphanTransition",
    "MissingValidation",
    "WitnessArityMismatch",
    "DuplicateTypeName",
    "UnknownStateName",
    "DuplicateTransitionName",
    "DuplicateBinding",
    "BuilderStateError",
    "UnknownTransition",
    "ValueEncodingError",
    "DecodeError",
    "ScriptCompileError",
    "DescriptionError",
    "MissingGlobalState",
    "MultipleValues",
    # Types and state
    "TypeLibrary",
    "TypeRef",
    "standard_types",
    "MetaType",
    "Multiplicity",
    "OwnedKind",
    "StateType",
    "Visibility",
    "GlobalAccess",
    "Occurrences",
    "TransitionKind",
    # Scripts
    "CompiledScript",
    "compile_script",
    "ValidationScript",
    "ReferenceVM",
    "ScriptVM",
    "Verdict",
    "VmConfig",
    "SlotSection",
    "Witness",
    "WitnessSlot",
]
