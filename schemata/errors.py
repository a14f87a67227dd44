"""
Exceptions raised while building, encoding and scripting schemas.

Every build-time failure carries the offending name (type, state or
transition) so schema authors can locate the problem.
"""

from typing import Optional


class SchemaError(Exception):
    """Base class for all schema construction failures."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or name)


# =============================================================================
# Build-time taxonomy
# =============================================================================

class UnresolvedType(SchemaError):
    """A TypeRef is referenced but not registered in the type library."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Unresolved type '{name}'")


class DuplicateStateName(SchemaError):
    """A global, owned or metadata name is declared twice."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"State name '{name}' is already declared")


class InvalidGenesisCardinality(SchemaError):
    """The transition catalog has zero or several genesis kinds."""


class OrphanTransition(SchemaError):
    """A transition kind cannot be reached from the genesis outputs."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            name, message or f"Transition '{name}' is unreachable from genesis outputs"
        )


class MissingValidation(SchemaError):
    """A transition kind has no validation script bound."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Transition '{name}' has no validation script")


class WitnessArityMismatch(SchemaError):
    """A witness order disagrees with the transition's declared slots."""


# =============================================================================
# Supplementary errors
# =============================================================================

class DuplicateTypeName(SchemaError):
    """A type name is registered twice in one library."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Type '{name}' is already registered")


class UnknownStateName(SchemaError):
    """A transition references a state or metadata name never declared."""


class DuplicateTransitionName(SchemaError):
    """A transition kind name is declared twice."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Transition '{name}' is already declared")


class DuplicateBinding(SchemaError):
    """A second validation script is bound to the same transition."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            name, message or f"Transition '{name}' already has a validation script"
        )


class BuilderStateError(SchemaError):
    """An operation is not allowed in the builder's current state."""


class UnknownTransition(SchemaError, KeyError):
    """Lookup of a transition kind the schema does not declare."""

    def __init__(self, name: str, message: Optional[str] = None):
        SchemaError.__init__(self, name, message or f"Unknown transition '{name}'")

    def __str__(self):
        return self.args[0]


class ValueEncodingError(SchemaError):
    """A value does not fit the strict layout of its type."""


class DecodeError(SchemaError):
    """Binary data is truncated, malformed or has trailing bytes."""


class ScriptCompileError(SchemaError):
    """Validation script source failed to assemble."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        loc = f"line {line}, column {column}: " if line else ""
        super().__init__("<script>", f"{loc}{message}")


class DescriptionError(SchemaError):
    """A declarative schema description is malformed."""


class MultipleValues(SchemaError):
    """A single-valued link global holds more than one value."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Global state '{name}' holds more than one value")


class MissingGlobalState(SchemaError):
    """Contract state lacks a global the schema requires at genesis."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(name, message or f"Global state '{name}' has no value")
