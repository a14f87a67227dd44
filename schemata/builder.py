"""
Schema builder: a mutable construction phase followed by an irreversible
validate-and-freeze step.

    OPEN --freeze()--> VALIDATING --ok--> FROZEN
                                  --err-> REJECTED

Declarations and script bindings are accepted only while OPEN. freeze() runs
the consistency passes of `schemata.validate` in order and either returns a
content-addressed Schema or raises the first violated invariant. No partial
schema is ever produced.
"""

import difflib
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from .errors import (
    BuilderStateError, DuplicateBinding, DuplicateStateName,
    DuplicateTransitionName, SchemaError, UnknownStateName, UnknownTransition,
)
from .schema import Schema
from .script import CompiledScript, compile_script
from .state import ONCE, UNBOUNDED, MetaType, Multiplicity, OwnedKind, StateType, Visibility
from .stl import AMOUNT, VOID, standard_types
from .transitions import GlobalAccess, GlobalSlot, Occurrences, OwnedSlot, TransitionKind
from .types import TypeLibrary, TypeLike, as_type_ref
from .validate import ValidationResult, expected_witness, first_failure, genesis_candidates, validate_draft
from .validation import ValidationScript
from .witness import coerce_slots

logger = logging.getLogger(__name__)


class BuilderState(Enum):
    OPEN = "open"
    VALIDATING = "validating"
    FROZEN = "frozen"
    REJECTED = "rejected"


def _occurrences(value: Union[Occurrences, str, None], default: Occurrences) -> Occurrences:
    if value is None:
        return default
    if isinstance(value, Occurrences):
        return value
    return Occurrences.parse(value)


def _multiplicity(value: Union[Multiplicity, str]) -> Multiplicity:
    return value if isinstance(value, Multiplicity) else Multiplicity.parse(value)


def _visibility(value: Union[Visibility, str]) -> Visibility:
    return value if isinstance(value, Visibility) else Visibility(value)


def _pairs(items: Any) -> List[tuple]:
    """Normalize a dict, names, or tuples into a list of tuples keyed by name."""
    if isinstance(items, dict):
        return [(name,) + (value if isinstance(value, tuple) else (value,))
                for name, value in items.items()]
    pairs = []
    for item in items:
        if isinstance(item, str):
            pairs.append((item,))
        elif isinstance(item, (OwnedSlot, GlobalSlot)):
            pairs.append((item,))
        else:
            pairs.append(tuple(item))
    return pairs


class SchemaBuilder:
    """Collects state, transition and script declarations for one schema."""

    def __init__(self, name: str, version: int = 0, types: Optional[TypeLibrary] = None):
        self.name = name
        self.version = version
        self.types = types if types is not None else standard_types()
        self.state = BuilderState.OPEN
        self.global_types: Dict[str, StateType] = {}
        self.owned_types: Dict[str, StateType] = {}
        self.meta_types: Dict[str, MetaType] = {}
        self.transitions: Dict[str, TransitionKind] = {}
        self.bindings: Dict[str, ValidationScript] = {}
        self.default_assignment: Optional[str] = None
        self._schema: Optional[Schema] = None
        self._error: Optional[SchemaError] = None

    def __repr__(self):
        return f"SchemaBuilder({self.name!r}, {self.state.value})"

    # -- guards ---------------------------------------------------------------

    def _require_open(self, operation: str):
        if self.state is not BuilderState.OPEN:
            raise BuilderStateError(
                self.name,
                f"Cannot {operation} on schema '{self.name}': builder is {self.state.value}",
            )

    def _require_new_state(self, name: str):
        if name in self.global_types or name in self.owned_types or name in self.meta_types:
            raise DuplicateStateName(name)

    def _unknown(self, name: str, what: str, known: Iterable[str], transition: str):
        message = f"Transition '{transition}' references unknown {what} '{name}'"
        similar = difflib.get_close_matches(name, list(known), n=3)
        if similar:
            message += f" (did you mean {', '.join(repr(s) for s in similar)}?)"
        raise UnknownStateName(name, message)

    # -- state ----------------------------------------------------------------

    def declare_global(
        self,
        name: str,
        type_ref: TypeLike,
        visibility: Union[Visibility, str] = Visibility.PUBLIC,
        multiplicity: Union[Multiplicity, str] = ONCE,
    ) -> StateType:
        self._require_open("declare global state")
        self._require_new_state(name)
        ref = as_type_ref(type_ref)
        self.types.resolve(ref)
        st = StateType(name, ref, _visibility(visibility), _multiplicity(multiplicity))
        self.global_types[name] = st
        logger.debug("%s: global %s: %s", self.name, name, ref)
        return st

    def declare_owned(
        self,
        name: str,
        type_ref: TypeLike,
        visibility: Union[Visibility, str] = Visibility.PUBLIC,
        multiplicity: Union[Multiplicity, str] = UNBOUNDED,
        kind: Union[OwnedKind, str, None] = None,
    ) -> StateType:
        self._require_open("declare owned state")
        self._require_new_state(name)
        ref = as_type_ref(type_ref)
        self.types.resolve(ref)

        if kind is None:
            kind = {AMOUNT: OwnedKind.FUNGIBLE, VOID: OwnedKind.DECLARATIVE}.get(
                ref, OwnedKind.STRUCTURED
            )
        elif not isinstance(kind, OwnedKind):
            kind = OwnedKind(kind)
        if kind is OwnedKind.FUNGIBLE and ref != AMOUNT:
            raise ValueError(f"Fungible state '{name}' must use {AMOUNT}, not {ref}")
        if kind is OwnedKind.DECLARATIVE and ref != VOID:
            raise ValueError(f"Declarative state '{name}' must use {VOID}, not {ref}")

        st = StateType(name, ref, _visibility(visibility), _multiplicity(multiplicity), True, kind)
        self.owned_types[name] = st
        logger.debug("%s: owned %s: %s (%s)", self.name, name, ref, kind.value)
        return st

    def declare_metadata(self, name: str, type_ref: TypeLike) -> MetaType:
        self._require_open("declare metadata")
        self._require_new_state(name)
        ref = as_type_ref(type_ref)
        self.types.resolve(ref)
        mt = MetaType(name, ref)
        self.meta_types[name] = mt
        logger.debug("%s: metadata %s: %s", self.name, name, ref)
        return mt

    def set_default_assignment(self, name: str) -> None:
        """Owned state that wallets allocate when no other is requested."""
        self._require_open("set default assignment")
        if name not in self.owned_types:
            raise UnknownStateName(name, f"Default assignment '{name}' is not declared owned state")
        self.default_assignment = name

    # -- transitions ----------------------------------------------------------

    def declare_transition(
        self,
        name: str,
        inputs: Any = (),
        outputs: Any = (),
        global_rw: Any = (),
        metadata_fields: Iterable[str] = (),
        genesis: bool = False,
        input_free: bool = False,
    ) -> TransitionKind:
        """
        Register a transition kind.

        inputs/outputs name owned state, optionally with occurrences:
        `["assetOwner"]`, `[("assetOwner", "once")]` or
        `{"assetOwner": Occurrences.once_or_more()}`. global_rw names global
        state with optional occurrences and access (default once, write).
        """
        self._require_open("declare transition")
        if name in self.transitions:
            raise DuplicateTransitionName(name)

        owned_in = self._owned_slots(name, inputs, "inputs")
        owned_out = self._owned_slots(name, outputs, "outputs")
        globals_ = self._global_slots(name, global_rw)

        metadata = tuple(metadata_fields)
        for field_name in metadata:
            if field_name not in self.meta_types:
                self._unknown(field_name, "metadata", self.meta_types, name)
        if len(set(metadata)) != len(metadata):
            raise DuplicateStateName(name, f"Transition '{name}' lists a metadata field twice")

        kind = TransitionKind(name, owned_in, owned_out, globals_, metadata, genesis, input_free)
        self.transitions[name] = kind
        logger.debug(
            "%s: transition %s (%d in, %d out, %d global)",
            self.name, name, len(owned_in), len(owned_out), len(globals_),
        )
        return kind

    def _owned_slots(self, transition: str, items: Any, section: str) -> tuple:
        slots = []
        for entry in _pairs(items):
            if isinstance(entry[0], OwnedSlot):
                slot = entry[0]
            else:
                occ = entry[1] if len(entry) > 1 else None
                slot = OwnedSlot(entry[0], _occurrences(occ, Occurrences.once_or_more()))
            if slot.state not in self.owned_types:
                self._unknown(slot.state, "owned state", self.owned_types, transition)
            slots.append(slot)
        names = [slot.state for slot in slots]
        if len(set(names)) != len(names):
            raise DuplicateStateName(transition, f"Transition '{transition}' lists owned state twice in {section}")
        return tuple(slots)

    def _global_slots(self, transition: str, items: Any) -> tuple:
        slots = []
        for entry in _pairs(items):
            if isinstance(entry[0], GlobalSlot):
                slot = entry[0]
            else:
                occ = entry[1] if len(entry) > 1 else None
                access = entry[2] if len(entry) > 2 else GlobalAccess.WRITE
                if not isinstance(access, GlobalAccess):
                    access = GlobalAccess(access)
                slot = GlobalSlot(entry[0], _occurrences(occ, Occurrences.once()), access)
            if slot.state not in self.global_types:
                self._unknown(slot.state, "global state", self.global_types, transition)
            slots.append(slot)
        names = [slot.state for slot in slots]
        if len(set(names)) != len(names):
            raise DuplicateStateName(transition, f"Transition '{transition}' lists global state twice")
        return tuple(slots)

    # -- validation binding ---------------------------------------------------

    def bind_script(
        self,
        transition_name: str,
        compiled_script: Union[CompiledScript, str],
        witness_order: Iterable[Any],
    ) -> ValidationScript:
        """
        Attach the validation script of a transition kind. `witness_order`
        lists WitnessSlots or their text form (`"in.assetOwner"`); it is
        checked against the kind's canonical layout at freeze time.
        """
        self._require_open("bind script")
        if transition_name not in self.transitions:
            raise UnknownTransition(transition_name)
        if transition_name in self.bindings:
            raise DuplicateBinding(transition_name)
        if isinstance(compiled_script, str):
            compiled_script = compile_script(compiled_script)
        binding = ValidationScript(transition_name, compiled_script, coerce_slots(witness_order))
        self.bindings[transition_name] = binding
        logger.debug("%s: bound %r to %s", self.name, compiled_script, transition_name)
        return binding

    # -- freezing -------------------------------------------------------------

    def check(self) -> ValidationResult:
        """Run every consistency pass and report all issues without freezing."""
        return validate_draft(self)

    def freeze(self) -> Schema:
        if self.state is BuilderState.FROZEN:
            return self._schema
        if self.state is BuilderState.REJECTED:
            raise self._error
        if self.state is not BuilderState.OPEN:
            raise BuilderStateError(self.name, f"Schema '{self.name}' is already being validated")

        self.state = BuilderState.VALIDATING
        error = first_failure(self)
        if error is not None:
            self.state = BuilderState.REJECTED
            self._error = error
            logger.info("Schema '%s' rejected: %s", self.name, error)
            raise error

        refs = [st.type_ref for st in self.global_types.values()]
        refs += [st.type_ref for st in self.owned_types.values()]
        refs += [mt.type_ref for mt in self.meta_types.values()]
        scripts = {
            name: ValidationScript(name, binding.script, expected_witness(self, self.transitions[name]))
            for name, binding in self.bindings.items()
        }
        schema = Schema(
            name=self.name,
            version=self.version,
            types=self.types.subset(refs),
            global_types=self.global_types,
            owned_types=self.owned_types,
            meta_types=self.meta_types,
            transitions=self.transitions,
            scripts=scripts,
            genesis=genesis_candidates(self)[0].name,
            default_assignment=self.default_assignment,
        )
        self._schema = schema
        self.state = BuilderState.FROZEN
        logger.debug("Schema '%s' frozen as %s", self.name, schema.schema_id)
        return schema
