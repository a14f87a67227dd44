"""
Frozen, content-addressed schema.

A Schema is produced by SchemaBuilder.freeze() or by decoding the canonical
encoding of one; the constructor re-runs the build checks, so an
inconsistent schema cannot exist. Every field is immutable: tuples, frozen
dataclasses and read-only mapping proxies. The schema id is the tagged
sha256 of the canonical encoding, which orders every collection by name so
that declaration order does not affect identity.
"""

from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .constants import SCHEMA_FORMAT_VERSION, SCHEMA_ID_TAG
from .encoding import StrictReader, StrictWriter, tagged_hash
from .errors import DecodeError, InvalidGenesisCardinality, SchemaError, UnknownTransition
from .script import CompiledScript
from .state import MetaType, Multiplicity, OwnedKind, StateType, Visibility
from .transitions import GlobalAccess, GlobalSlot, Occurrences, OwnedSlot, TransitionKind
from .types import TypeLibrary, TypeRef, layout_to_dict
from .validation import ValidationScript
from .validate import first_failure
from .witness import SECTION_CODES, SECTIONS_BY_CODE, WitnessSlot

VISIBILITY_CODES = {Visibility.PUBLIC: 0, Visibility.CONCEALED: 1}
KIND_CODES = {OwnedKind.FUNGIBLE: 0, OwnedKind.DECLARATIVE: 1, OwnedKind.STRUCTURED: 2}
ACCESS_CODES = {GlobalAccess.READ: 0, GlobalAccess.WRITE: 1}

KindLike = Union[TransitionKind, str]


def _by_code(table: Dict[Any, int], code: int, what: str):
    for value, value_code in table.items():
        if value_code == code:
            return value
    raise DecodeError("schema", f"unknown {what} code {code}")


def _sorted_proxy(items: Dict[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType({name: items[name] for name in sorted(items)})


class Schema:
    """Immutable schema value shared read-only by verification engines."""

    def __init__(
        self,
        name: str,
        version: int,
        types: TypeLibrary,
        global_types: Dict[str, StateType],
        owned_types: Dict[str, StateType],
        meta_types: Dict[str, MetaType],
        transitions: Dict[str, TransitionKind],
        scripts: Dict[str, ValidationScript],
        genesis: str,
        default_assignment: Optional[str] = None,
    ):
        if not types.frozen:
            raise ValueError("schema type library must be frozen")
        self.name = name
        self.version = version
        self.types = types
        self.global_types = _sorted_proxy(global_types)
        self.owned_types = _sorted_proxy(owned_types)
        self.meta_types = _sorted_proxy(meta_types)
        self.transitions = _sorted_proxy(transitions)
        self.scripts = _sorted_proxy(scripts)
        self.genesis = genesis
        self.default_assignment = default_assignment
        self._check()
        self._sealed = True

    def __setattr__(self, key, value):
        if getattr(self, "_sealed", False):
            raise AttributeError(f"Schema is immutable, cannot set '{key}'")
        object.__setattr__(self, key, value)

    def _check(self) -> None:
        for name in self.scripts:
            if name not in self.transitions:
                raise UnknownTransition(name, f"Script bound to undeclared transition '{name}'")
        error = first_failure(self)
        if error is not None:
            raise error
        if self.genesis not in self.transitions or not self.genesis_kind.is_genesis_like:
            raise InvalidGenesisCardinality(
                self.genesis, f"'{self.genesis}' is not the genesis transition of '{self.name}'"
            )

    # -- engine interface -----------------------------------------------------

    def lookup_transition(self, name: str) -> TransitionKind:
        try:
            return self.transitions[name]
        except KeyError:
            raise UnknownTransition(name) from None

    def _name_of(self, kind: KindLike) -> str:
        name = kind.name if isinstance(kind, TransitionKind) else kind
        self.lookup_transition(name)
        return name

    def validation_script_for(self, kind: KindLike) -> CompiledScript:
        return self.scripts[self._name_of(kind)].script

    def witness_layout(self, kind: KindLike) -> Tuple[WitnessSlot, ...]:
        return self.scripts[self._name_of(kind)].witness_order

    def state_types(self) -> Mapping[str, StateType]:
        """Global and owned state types by name."""
        merged = dict(self.global_types)
        merged.update(self.owned_types)
        return _sorted_proxy(merged)

    def is_genesis(self, kind: KindLike) -> bool:
        return self._name_of(kind) == self.genesis

    @property
    def genesis_kind(self) -> TransitionKind:
        return self.transitions[self.genesis]

    @property
    def bindings(self) -> Mapping[str, ValidationScript]:
        return self.scripts

    # -- identity -------------------------------------------------------------

    @cached_property
    def _encoded(self) -> bytes:
        w = StrictWriter()
        w.u8(SCHEMA_FORMAT_VERSION)
        w.text(self.name).varint(self.version)
        self.types.encode(w)

        w.varint(len(self.global_types))
        for st in self.global_types.values():
            _write_state(w, st)
        w.varint(len(self.owned_types))
        for st in self.owned_types.values():
            _write_state(w, st)
            w.u8(KIND_CODES[st.kind])
        w.varint(len(self.meta_types))
        for mt in self.meta_types.values():
            w.text(mt.name).text(mt.type_ref.name)

        w.varint(len(self.transitions))
        for kind in self.transitions.values():
            _write_kind(w, kind)
        w.varint(len(self.scripts))
        for binding in self.scripts.values():
            w.text(binding.transition).blob(binding.script.bytecode)
            w.varint(len(binding.witness_order))
            for slot in binding.witness_order:
                w.u8(SECTION_CODES[slot.section]).text(slot.name).text(slot.type_ref.name)

        w.text(self.genesis)
        w.boolean(self.default_assignment is not None)
        if self.default_assignment is not None:
            w.text(self.default_assignment)
        return w.getvalue()

    def encode(self) -> bytes:
        return self._encoded

    def content_hash(self) -> bytes:
        return tagged_hash(SCHEMA_ID_TAG, self._encoded)

    @property
    def schema_id(self) -> str:
        return self.content_hash().hex()

    def __eq__(self, other):
        if not isinstance(other, Schema):
            return NotImplemented
        return self._encoded == other._encoded

    def __hash__(self):
        return hash(self.content_hash())

    def __repr__(self):
        return f"Schema({self.name!r}, v{self.version}, id={self.schema_id[:16]})"

    # -- interchange ----------------------------------------------------------

    @classmethod
    def decode(cls, data: bytes) -> "Schema":
        """Inverse of encode(); only the canonical encoding of a consistent schema decodes."""
        r = StrictReader(data)
        fmt = r.u8()
        if fmt != SCHEMA_FORMAT_VERSION:
            raise DecodeError("schema", f"unsupported schema format version {fmt}")
        name = r.text()
        version = r.varint()
        types = TypeLibrary.decode(r)

        global_types = {}
        for _ in range(r.varint()):
            st = _read_state(r, owned=False)
            global_types[st.name] = st
        owned_types = {}
        for _ in range(r.varint()):
            st = _read_state(r, owned=True)
            owned_types[st.name] = StateType(
                st.name, st.type_ref, st.visibility, st.multiplicity, True,
                _by_code(KIND_CODES, r.u8(), "owned kind"),
            )
        meta_types = {}
        for _ in range(r.varint()):
            mt = MetaType(r.text(), TypeRef(r.text()))
            meta_types[mt.name] = mt

        transitions = {}
        for _ in range(r.varint()):
            kind = _read_kind(r)
            transitions[kind.name] = kind
        scripts = {}
        for _ in range(r.varint()):
            transition = r.text()
            script = CompiledScript(r.blob())
            order = []
            for _ in range(r.varint()):
                code = r.u8()
                if code not in SECTIONS_BY_CODE:
                    raise DecodeError("schema", f"unknown slot section {code}")
                order.append(WitnessSlot(SECTIONS_BY_CODE[code], r.text(), TypeRef(r.text())))
            scripts[transition] = ValidationScript(transition, script, tuple(order))

        genesis = r.text()
        default_assignment = r.text() if r.boolean() else None
        r.done()

        try:
            schema = cls(
                name, version, types, global_types, owned_types, meta_types,
                transitions, scripts, genesis, default_assignment,
            )
        except SchemaError as exc:
            raise DecodeError(name, f"decoded schema is inconsistent: {exc}") from exc
        if schema.encode() != bytes(data):
            raise DecodeError(name, "encoding is not canonical")
        return schema

    def to_dict(self) -> Dict[str, Any]:
        """Readable projection, loadable again as a schema description."""
        return {
            "name": self.name,
            "version": self.version,
            "schema_id": self.schema_id,
            "genesis": self.genesis,
            "default_assignment": self.default_assignment,
            "types": {ref.name: layout_to_dict(layout) for ref, layout in self.types.items()},
            "globals": {name: _state_to_dict(st) for name, st in self.global_types.items()},
            "owned": {name: _state_to_dict(st) for name, st in self.owned_types.items()},
            "metadata": {name: mt.type_ref.name for name, mt in self.meta_types.items()},
            "transitions": {
                name: _kind_to_dict(kind, self.scripts[name])
                for name, kind in self.transitions.items()
            },
        }


# =============================================================================
# Encoding helpers
# =============================================================================

def _write_occurrences(w: StrictWriter, occ: Occurrences) -> None:
    w.varint(occ.min).varint(0 if occ.max is None else occ.max)


def _read_occurrences(r: StrictReader) -> Occurrences:
    low = r.varint()
    high = r.varint()
    try:
        return Occurrences(low, high or None)
    except ValueError as exc:
        raise DecodeError("schema", str(exc)) from exc


def _write_state(w: StrictWriter, st: StateType) -> None:
    w.text(st.name).text(st.type_ref.name)
    w.u8(VISIBILITY_CODES[st.visibility])
    w.varint(st.multiplicity.max_items or 0)


def _read_state(r: StrictReader, owned: bool) -> StateType:
    name = r.text()
    type_ref = TypeRef(r.text())
    visibility = _by_code(VISIBILITY_CODES, r.u8(), "visibility")
    max_items = r.varint()
    return StateType(name, type_ref, visibility, Multiplicity(max_items or None), owned)


def _write_kind(w: StrictWriter, kind: TransitionKind) -> None:
    w.text(kind.name).boolean(kind.genesis).boolean(kind.input_free)
    for slots in (kind.inputs, kind.outputs):
        w.varint(len(slots))
        for slot in slots:
            w.text(slot.state)
            _write_occurrences(w, slot.occurrences)
    w.varint(len(kind.globals))
    for slot in kind.globals:
        w.text(slot.state)
        _write_occurrences(w, slot.occurrences)
        w.u8(ACCESS_CODES[slot.access])
    w.varint(len(kind.metadata))
    for name in kind.metadata:
        w.text(name)


def _read_kind(r: StrictReader) -> TransitionKind:
    name = r.text()
    genesis = r.boolean()
    input_free = r.boolean()
    inputs = tuple(OwnedSlot(r.text(), _read_occurrences(r)) for _ in range(r.varint()))
    outputs = tuple(OwnedSlot(r.text(), _read_occurrences(r)) for _ in range(r.varint()))
    globals_ = []
    for _ in range(r.varint()):
        state = r.text()
        occ = _read_occurrences(r)
        globals_.append(GlobalSlot(state, occ, _by_code(ACCESS_CODES, r.u8(), "global access")))
    metadata = tuple(r.text() for _ in range(r.varint()))
    return TransitionKind(name, inputs, outputs, tuple(globals_), metadata, genesis, input_free)


# =============================================================================
# Dict projection
# =============================================================================

def _state_to_dict(st: StateType) -> Dict[str, Any]:
    data = {
        "type": st.type_ref.name,
        "visibility": st.visibility.value,
        "multiplicity": st.multiplicity.name,
    }
    if st.owned:
        data["kind"] = st.kind.value
    return data


def _kind_to_dict(kind: TransitionKind, binding: ValidationScript) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if kind.genesis:
        data["genesis"] = True
    if kind.input_free:
        data["input_free"] = True
    data["inputs"] = {slot.state: slot.occurrences.name for slot in kind.inputs}
    data["outputs"] = {slot.state: slot.occurrences.name for slot in kind.outputs}
    data["globals"] = {
        slot.state: {"occurrences": slot.occurrences.name, "access": slot.access.value}
        for slot in kind.globals
    }
    data["metadata"] = list(kind.metadata)
    data["witness"] = [str(slot) for slot in binding.witness_order]
    data["script_id"] = binding.script.script_id
    data["script"] = binding.script.to_source()
    return data

