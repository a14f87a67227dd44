"""
Consistency checks run over a schema draft before it is frozen.

Each pass returns a ValidationResult. `freeze()` runs the passes in order
and raises the first error found; `validate_draft()` runs all of them and
reports every issue, which is what authoring tools want.

A draft is any object exposing `name`, `types`, `global_types`,
`owned_types`, `meta_types`, `transitions` and `bindings` (see
SchemaBuilder).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import (
    InvalidGenesisCardinality, MissingValidation, OrphanTransition,
    SchemaError, UnresolvedType, WitnessArityMismatch,
)
from .transitions import TransitionGraph, TransitionKind
from .types import TypeRef
from .validation import check_references, check_witness_order

logger = logging.getLogger(__name__)


@dataclass
class ValidationIssue:
    """A problem found in a draft, naming the offending type, state or transition."""
    message: str
    name: str = ""
    severity: str = "error"  # "error" or "warning"
    error: Optional[SchemaError] = None

    def __str__(self):
        return f"[{self.severity}] {self.name or 'schema'}: {self.message}"


@dataclass
class ValidationResult:
    """Result of validation."""
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def add_error(self, error: SchemaError):
        self.errors.append(ValidationIssue(str(error), error.name, "error", error))

    def add_warning(self, message: str, name: str = ""):
        self.warnings.append(ValidationIssue(message, name, "warning"))

    def merge(self, other: "ValidationResult"):
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    @property
    def first_error(self) -> Optional[SchemaError]:
        return self.errors[0].error if self.errors else None

    def __str__(self):
        lines = []
        for err in self.errors:
            lines.append(str(err))
        for warn in self.warnings:
            lines.append(str(warn))
        return "\n".join(lines)


# =============================================================================
# Helpers
# =============================================================================

def type_of(draft) -> Dict[str, TypeRef]:
    """State and metadata name -> declared TypeRef."""
    mapping = {name: st.type_ref for name, st in draft.global_types.items()}
    mapping.update({name: st.type_ref for name, st in draft.owned_types.items()})
    mapping.update({name: mt.type_ref for name, mt in draft.meta_types.items()})
    return mapping


def expected_witness(draft, kind: TransitionKind) -> tuple:
    return kind.witness_slots(type_of(draft))


def genesis_candidates(draft) -> List[TransitionKind]:
    return [kind for kind in draft.transitions.values() if kind.is_genesis_like]


# =============================================================================
# Passes
# =============================================================================

def check_types(draft) -> ValidationResult:
    """Every state and metadata type resolves, components included."""
    result = ValidationResult()
    declared = list(draft.global_types.values()) + list(draft.owned_types.values())
    declared += list(draft.meta_types.values())
    for decl in declared:
        try:
            draft.types.check(decl.type_ref)
        except UnresolvedType as exc:
            result.add_error(UnresolvedType(
                exc.name, f"{exc} (used by '{decl.name}')"
            ))
    return result


def check_genesis(draft) -> ValidationResult:
    """Exactly one genesis-like kind, and it consumes nothing."""
    result = ValidationResult()
    candidates = genesis_candidates(draft)

    if not candidates:
        result.add_error(InvalidGenesisCardinality(
            draft.name, f"Schema '{draft.name}' declares no genesis transition"
        ))
    elif len(candidates) > 1:
        names = ", ".join(kind.name for kind in candidates)
        result.add_error(InvalidGenesisCardinality(
            candidates[1].name,
            f"Schema '{draft.name}' has {len(candidates)} genesis-like transitions: {names}",
        ))

    for kind in candidates:
        if kind.genesis and kind.inputs:
            result.add_error(InvalidGenesisCardinality(
                kind.name, f"Genesis transition '{kind.name}' must not consume owned state"
            ))
    return result


def check_reachability(draft) -> ValidationResult:
    """Every kind is reachable from the genesis outputs or an input-free kind."""
    result = ValidationResult()
    candidates = genesis_candidates(draft)
    if len(candidates) != 1:
        return result

    kinds = list(draft.transitions.values())
    roots = [candidates[0].name] + [kind.name for kind in kinds if kind.input_free]
    graph = TransitionGraph(kinds)
    for name in graph.unreachable(roots):
        result.add_error(OrphanTransition(name))

    produced = set()
    for kind in kinds:
        produced |= kind.produces
    for name in draft.owned_types:
        if name not in produced:
            result.add_warning(f"Owned state '{name}' is never produced by any transition", name)
    return result


def check_bindings(draft) -> ValidationResult:
    """Every kind has a script whose witness matches the canonical layout."""
    result = ValidationResult()
    for kind in draft.transitions.values():
        binding = draft.bindings.get(kind.name)
        if binding is None:
            result.add_error(MissingValidation(kind.name))
            continue
        layout = expected_witness(draft, kind)
        try:
            check_witness_order(kind.name, binding.witness_order, layout)
            check_references(kind.name, binding.script, layout, draft.types)
        except (WitnessArityMismatch, UnresolvedType) as exc:
            result.add_error(exc)
    return result


PASSES = (check_types, check_genesis, check_reachability, check_bindings)


def first_failure(draft) -> Optional[SchemaError]:
    """Run the passes in order and return the first error, if any."""
    for check in PASSES:
        result = check(draft)
        if result.has_errors:
            logger.debug("%s failed in %s: %s", draft.name, check.__name__, result.first_error)
            return result.first_error
    return None


def validate_draft(draft) -> ValidationResult:
    """Run every pass and collect all issues."""
    result = ValidationResult()
    for check in PASSES:
        result.merge(check(draft))
    return result
