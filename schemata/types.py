"""
Strict type library.

A TypeLibrary maps fully-qualified type names to layouts. Layouts are
non-recursive and refer to their components by TypeRef, so resolution of a
composite type walks the library and fails with UnresolvedType on the first
missing component. Values of a registered type have exactly one binary
encoding, which is what content addressing hashes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .encoding import StrictReader, StrictWriter, sha256, tagged_hash
from .errors import DecodeError, DuplicateTypeName, UnresolvedType, ValueEncodingError

logger = logging.getLogger(__name__)

TYPE_ID_TAG = "urn:lnp-bp:rgb:schemata:type#2025"


@dataclass(frozen=True, order=True)
class TypeRef:
    """Reference to a type by its fully-qualified name."""
    name: str

    def __str__(self):
        return self.name


TypeLike = Union[TypeRef, str]


def as_type_ref(value: TypeLike) -> TypeRef:
    if isinstance(value, TypeRef):
        return value
    if isinstance(value, str) and value:
        return TypeRef(value)
    raise TypeError(f"expected a type name, got {value!r}")


# =============================================================================
# Layouts
# =============================================================================

PRIMITIVE_WIDTHS = {"u8": 1, "u16": 2, "u32": 4, "u64": 8}
PRIMITIVES = ("u8", "u16", "u32", "u64", "bool", "unit")


@dataclass(frozen=True)
class Prim:
    """Unsigned integer, boolean or unit."""
    kind: str

    def __post_init__(self):
        if self.kind not in PRIMITIVES:
            raise ValueError(f"unknown primitive '{self.kind}'")

    def components(self) -> Tuple[TypeRef, ...]:
        return ()


@dataclass(frozen=True)
class FixedBytes:
    """Byte array of exact length."""
    length: int

    def components(self) -> Tuple[TypeRef, ...]:
        return ()


@dataclass(frozen=True)
class Blob:
    """Byte string with bounded length."""
    min_len: int
    max_len: int

    def components(self) -> Tuple[TypeRef, ...]:
        return ()


@dataclass(frozen=True)
class AsciiString:
    """Printable ASCII string with bounded length."""
    min_len: int
    max_len: int

    def components(self) -> Tuple[TypeRef, ...]:
        return ()


@dataclass(frozen=True)
class Struct:
    """Ordered named fields."""
    fields: Tuple[Tuple[str, TypeRef], ...]

    def components(self) -> Tuple[TypeRef, ...]:
        return tuple(ref for _, ref in self.fields)

    def field_type(self, name: str) -> Optional[TypeRef]:
        for field_name, ref in self.fields:
            if field_name == name:
                return ref
        return None


@dataclass(frozen=True)
class Enumeration:
    """One of a fixed set of named variants, encoded by index."""
    variants: Tuple[str, ...]

    def components(self) -> Tuple[TypeRef, ...]:
        return ()


@dataclass(frozen=True)
class Option:
    inner: TypeRef

    def components(self) -> Tuple[TypeRef, ...]:
        return (self.inner,)


@dataclass(frozen=True)
class ListOf:
    """Sequence with bounded cardinality."""
    inner: TypeRef
    max_len: int
    min_len: int = 0

    def components(self) -> Tuple[TypeRef, ...]:
        return (self.inner,)


@dataclass(frozen=True)
class MapOf:
    """Key/value mapping with bounded cardinality, encoded in key order."""
    key: TypeRef
    value: TypeRef
    max_len: int

    def components(self) -> Tuple[TypeRef, ...]:
        return (self.key, self.value)


Layout = Union[Prim, FixedBytes, Blob, AsciiString, Struct, Enumeration, Option, ListOf, MapOf]

_LAYOUT_TAGS = {
    Prim: 0, FixedBytes: 1, Blob: 2, AsciiString: 3, Struct: 4,
    Enumeration: 5, Option: 6, ListOf: 7, MapOf: 8,
}


def encode_layout(layout: Layout, w: StrictWriter) -> None:
    """Write the canonical form of a layout (component names, not contents)."""
    tag = _LAYOUT_TAGS[type(layout)]
    w.u8(tag)
    if isinstance(layout, Prim):
        w.u8(PRIMITIVES.index(layout.kind))
    elif isinstance(layout, FixedBytes):
        w.varint(layout.length)
    elif isinstance(layout, (Blob, AsciiString)):
        w.varint(layout.min_len).varint(layout.max_len)
    elif isinstance(layout, Struct):
        w.varint(len(layout.fields))
        for name, ref in layout.fields:
            w.text(name).text(ref.name)
    elif isinstance(layout, Enumeration):
        w.varint(len(layout.variants))
        for variant in layout.variants:
            w.text(variant)
    elif isinstance(layout, Option):
        w.text(layout.inner.name)
    elif isinstance(layout, ListOf):
        w.text(layout.inner.name).varint(layout.min_len).varint(layout.max_len)
    elif isinstance(layout, MapOf):
        w.text(layout.key.name).text(layout.value.name).varint(layout.max_len)


def decode_layout(r: StrictReader) -> Layout:
    tag = r.u8()
    if tag == 0:
        index = r.u8()
        if index >= len(PRIMITIVES):
            raise DecodeError("layout", f"unknown primitive index {index}")
        return Prim(PRIMITIVES[index])
    if tag == 1:
        return FixedBytes(r.varint())
    if tag == 2:
        return Blob(r.varint(), r.varint())
    if tag == 3:
        return AsciiString(r.varint(), r.varint())
    if tag == 4:
        return Struct(tuple((r.text(), TypeRef(r.text())) for _ in range(r.varint())))
    if tag == 5:
        return Enumeration(tuple(r.text() for _ in range(r.varint())))
    if tag == 6:
        return Option(TypeRef(r.text()))
    if tag == 7:
        inner = TypeRef(r.text())
        min_len = r.varint()
        return ListOf(inner, r.varint(), min_len)
    if tag == 8:
        return MapOf(TypeRef(r.text()), TypeRef(r.text()), r.varint())
    raise DecodeError("layout", f"unknown layout tag {tag}")


def layout_to_dict(layout: Layout) -> Dict[str, Any]:
    """Readable projection of a layout, the form used by YAML descriptions."""
    if isinstance(layout, Prim):
        return {"prim": layout.kind}
    if isinstance(layout, FixedBytes):
        return {"bytes": layout.length}
    if isinstance(layout, Blob):
        return {"blob": [layout.min_len, layout.max_len]}
    if isinstance(layout, AsciiString):
        return {"ascii": [layout.min_len, layout.max_len]}
    if isinstance(layout, Struct):
        return {"struct": {name: ref.name for name, ref in layout.fields}}
    if isinstance(layout, Enumeration):
        return {"enum": list(layout.variants)}
    if isinstance(layout, Option):
        return {"option": layout.inner.name}
    if isinstance(layout, ListOf):
        return {"list": layout.inner.name, "min": layout.min_len, "max": layout.max_len}
    return {"map": [layout.key.name, layout.value.name], "max": layout.max_len}


def layout_from_dict(data: Dict[str, Any]) -> Layout:
    if not isinstance(data, dict):
        raise ValueError(f"layout must be a mapping, got {data!r}")
    if "prim" in data:
        return Prim(data["prim"])
    if "bytes" in data:
        return FixedBytes(int(data["bytes"]))
    if "blob" in data:
        return Blob(*(int(n) for n in data["blob"]))
    if "ascii" in data:
        return AsciiString(*(int(n) for n in data["ascii"]))
    if "struct" in data:
        return Struct(tuple((name, TypeRef(ref)) for name, ref in data["struct"].items()))
    if "enum" in data:
        return Enumeration(tuple(data["enum"]))
    if "option" in data:
        return Option(TypeRef(data["option"]))
    if "list" in data:
        return ListOf(TypeRef(data["list"]), int(data["max"]), int(data.get("min", 0)))
    if "map" in data:
        key, value = data["map"]
        return MapOf(TypeRef(key), TypeRef(value), int(data["max"]))
    raise ValueError(f"unknown layout {data!r}")


# =============================================================================
# Library
# =============================================================================

class TypeLibrary:
    """Named collection of strict type layouts."""

    def __init__(self, types: Optional[Dict[str, Layout]] = None):
        self._types: Dict[str, Layout] = {}
        self._frozen = False
        for name, layout in (types or {}).items():
            self.register(name, layout)

    # -- registration ---------------------------------------------------------

    def register(self, name: str, layout: Layout) -> TypeRef:
        if self._frozen:
            raise ValueError("type library is frozen")
        if name in self._types:
            raise DuplicateTypeName(name)
        if type(layout) not in _LAYOUT_TAGS:
            raise TypeError(f"not a layout: {layout!r}")
        self._types[name] = layout
        return TypeRef(name)

    def freeze(self) -> "TypeLibrary":
        if not self._frozen:
            logger.debug("Type library frozen with %d types", len(self._types))
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- lookup -----------------------------------------------------------------

    def __contains__(self, ref: TypeLike) -> bool:
        return as_type_ref(ref).name in self._types

    def __iter__(self) -> Iterator[TypeRef]:
        return iter(TypeRef(name) for name in sorted(self._types))

    def __len__(self) -> int:
        return len(self._types)

    def __eq__(self, other):
        if not isinstance(other, TypeLibrary):
            return NotImplemented
        return self._types == other._types

    def __hash__(self):
        return hash(self.library_id())

    def items(self) -> List[Tuple[TypeRef, Layout]]:
        return [(TypeRef(name), self._types[name]) for name in sorted(self._types)]

    def get(self, name: str) -> TypeRef:
        """Checked TypeRef constructor: the name must be registered."""
        self.resolve(name)
        return TypeRef(name)

    def resolve(self, ref: TypeLike) -> Layout:
        ref = as_type_ref(ref)
        try:
            return self._types[ref.name]
        except KeyError:
            raise UnresolvedType(ref.name) from None

    def check(self, ref: TypeLike) -> None:
        """Resolve a type and every type it is composed of."""
        self._walk(as_type_ref(ref), [])

    def closure(self, refs: Iterable[TypeLike]) -> List[TypeRef]:
        seen: List[TypeRef] = []
        for ref in refs:
            for found in self._walk(as_type_ref(ref), []):
                if found not in seen:
                    seen.append(found)
        return sorted(seen)

    def _walk(self, ref: TypeRef, stack: List[str]) -> List[TypeRef]:
        if ref.name in stack:
            raise UnresolvedType(ref.name, f"Recursive type '{ref.name}' via {' -> '.join(stack)}")
        layout = self.resolve(ref)
        found = [ref]
        for component in layout.components():
            found.extend(self._walk(component, stack + [ref.name]))
        return found

    def subset(self, refs: Iterable[TypeLike]) -> "TypeLibrary":
        """Frozen library holding only the closure of the given refs."""
        lib = TypeLibrary({ref.name: self._types[ref.name] for ref in self.closure(refs)})
        return lib.freeze()

    # -- identity ---------------------------------------------------------------

    def sem_id(self, ref: TypeLike) -> bytes:
        """Content hash of a fully resolved type."""
        ref = as_type_ref(ref)
        self.check(ref)
        return self._sem_id(ref)

    def _sem_id(self, ref: TypeRef) -> bytes:
        layout = self._types[ref.name]
        w = StrictWriter().text(ref.name)
        encode_layout(layout, w)
        for component in layout.components():
            w.fixed(self._sem_id(component), 32)
        return tagged_hash(TYPE_ID_TAG, w.getvalue())

    def library_id(self) -> bytes:
        w = StrictWriter()
        self.encode(w)
        return sha256(w.getvalue())

    def encode(self, w: StrictWriter) -> None:
        w.varint(len(self._types))
        for name in sorted(self._types):
            w.text(name)
            encode_layout(self._types[name], w)

    @classmethod
    def decode(cls, r: StrictReader) -> "TypeLibrary":
        lib = cls()
        for _ in range(r.varint()):
            name = r.text()
            lib.register(name, decode_layout(r))
        return lib.freeze()

    # -- values -----------------------------------------------------------------

    def encode_value(self, ref: TypeLike, value: Any) -> bytes:
        w = StrictWriter()
        self._encode(as_type_ref(ref), value, w)
        return w.getvalue()

    def decode_value(self, ref: TypeLike, data: bytes) -> Any:
        r = StrictReader(data)
        value = self._decode(as_type_ref(ref), r)
        r.done()
        return value

    def value_hash(self, ref: TypeLike, value: Any) -> bytes:
        return sha256(self.encode_value(ref, value))

    def _encode(self, ref: TypeRef, value: Any, w: StrictWriter) -> None:
        layout = self.resolve(ref)
        name = ref.name

        def fail(reason: str):
            raise ValueEncodingError(name, f"Value {value!r} is not a valid '{name}': {reason}")

        if isinstance(layout, Prim):
            if layout.kind == "unit":
                if value is not None:
                    fail("unit type takes no value")
            elif layout.kind == "bool":
                if not isinstance(value, bool):
                    fail("expected a boolean")
                w.boolean(value)
            else:
                width = PRIMITIVE_WIDTHS[layout.kind]
                if not isinstance(value, int) or isinstance(value, bool):
                    fail("expected an integer")
                if value < 0 or value >= 1 << (8 * width):
                    fail(f"out of range for {layout.kind}")
                w.uint(value, width)
        elif isinstance(layout, FixedBytes):
            if not isinstance(value, (bytes, bytearray)) or len(value) != layout.length:
                fail(f"expected {layout.length} bytes")
            w.fixed(bytes(value), layout.length)
        elif isinstance(layout, Blob):
            if not isinstance(value, (bytes, bytearray)):
                fail("expected bytes")
            if not layout.min_len <= len(value) <= layout.max_len:
                fail(f"length must be within {layout.min_len}..{layout.max_len}")
            w.blob(bytes(value))
        elif isinstance(layout, AsciiString):
            if not isinstance(value, str):
                fail("expected a string")
            if not all(0x20 <= ord(c) < 0x7F for c in value):
                fail("only printable ASCII is allowed")
            if not layout.min_len <= len(value) <= layout.max_len:
                fail(f"length must be within {layout.min_len}..{layout.max_len}")
            w.text(value)
        elif isinstance(layout, Struct):
            if not isinstance(value, dict):
                fail("expected a mapping of fields")
            expected = [field for field, _ in layout.fields]
            extra = sorted(set(value) - set(expected))
            missing = [field for field in expected if field not in value]
            if extra or missing:
                fail(f"missing fields {missing}, unexpected fields {extra}")
            for field, field_ref in layout.fields:
                self._encode(field_ref, value[field], w)
        elif isinstance(layout, Enumeration):
            if value not in layout.variants:
                fail(f"expected one of {list(layout.variants)}")
            w.u8(layout.variants.index(value))
        elif isinstance(layout, Option):
            if value is None:
                w.u8(0)
            else:
                w.u8(1)
                self._encode(layout.inner, value, w)
        elif isinstance(layout, ListOf):
            if not isinstance(value, (list, tuple)):
                fail("expected a sequence")
            if not layout.min_len <= len(value) <= layout.max_len:
                fail(f"cardinality must be within {layout.min_len}..{layout.max_len}")
            w.varint(len(value))
            for item in value:
                self._encode(layout.inner, item, w)
        elif isinstance(layout, MapOf):
            if not isinstance(value, dict):
                fail("expected a mapping")
            if len(value) > layout.max_len:
                fail(f"cardinality must not exceed {layout.max_len}")
            entries = sorted(
                (self.encode_value(layout.key, k), self.encode_value(layout.value, v))
                for k, v in value.items()
            )
            w.varint(len(entries))
            for key_bytes, value_bytes in entries:
                w.raw(key_bytes).raw(value_bytes)

    def _decode(self, ref: TypeRef, r: StrictReader) -> Any:
        layout = self.resolve(ref)
        if isinstance(layout, Prim):
            if layout.kind == "unit":
                return None
            if layout.kind == "bool":
                return r.boolean()
            return r.uint(PRIMITIVE_WIDTHS[layout.kind])
        if isinstance(layout, FixedBytes):
            return r.fixed(layout.length)
        if isinstance(layout, Blob):
            data = r.blob()
            if not layout.min_len <= len(data) <= layout.max_len:
                raise DecodeError(ref.name, f"blob length {len(data)} out of bounds")
            return data
        if isinstance(layout, AsciiString):
            text = r.text()
            if not layout.min_len <= len(text) <= layout.max_len:
                raise DecodeError(ref.name, f"string length {len(text)} out of bounds")
            return text
        if isinstance(layout, Struct):
            return {field: self._decode(field_ref, r) for field, field_ref in layout.fields}
        if isinstance(layout, Enumeration):
            index = r.u8()
            if index >= len(layout.variants):
                raise DecodeError(ref.name, f"unknown variant index {index}")
            return layout.variants[index]
        if isinstance(layout, Option):
            tag = r.u8()
            if tag == 0:
                return None
            if tag != 1:
                raise DecodeError(ref.name, f"invalid option tag {tag}")
            return self._decode(layout.inner, r)
        if isinstance(layout, ListOf):
            count = r.varint()
            if not layout.min_len <= count <= layout.max_len:
                raise DecodeError(ref.name, f"list cardinality {count} out of bounds")
            return [self._decode(layout.inner, r) for _ in range(count)]
        if isinstance(layout, MapOf):
            count = r.varint()
            if count > layout.max_len:
                raise DecodeError(ref.name, f"map cardinality {count} out of bounds")
            result = {}
            for _ in range(count):
                key = self._decode(layout.key, r)
                result[key] = self._decode(layout.value, r)
            return result
        raise DecodeError(ref.name, f"unsupported layout {layout!r}")
