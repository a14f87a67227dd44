"""Tests for the strict type library and the standard contract types."""

import pytest

from schemata.encoding import StrictReader, StrictWriter
from schemata.errors import DecodeError, DuplicateTypeName, UnresolvedType, ValueEncodingError
from schemata.stl import (
    AMOUNT, ASSET_SPEC, PRECISION, PRECISION_VARIANTS, TICKER, TOKEN_DATA,
    precision_decimals,
)
from schemata.types import (
    AsciiString, Blob, Enumeration, FixedBytes, ListOf, MapOf, Option, Prim,
    Struct, TypeLibrary, TypeRef, layout_from_dict, layout_to_dict,
)


@pytest.fixture
def lib():
    lib = TypeLibrary()
    lib.register("T.U8", Prim("u8"))
    lib.register("T.U64", Prim("u64"))
    lib.register("T.Flag", Prim("bool"))
    lib.register("T.Tag", AsciiString(1, 4))
    lib.register("T.Color", Enumeration(("red", "green")))
    lib.register("T.Point", Struct((("x", TypeRef("T.U8")), ("y", TypeRef("T.U8")))))
    lib.register("T.Tags", ListOf(TypeRef("T.Tag"), 2))
    lib.register("T.Index", MapOf(TypeRef("T.U8"), TypeRef("T.Tag"), 3))
    lib.register("T.MaybeTag", Option(TypeRef("T.Tag")))
    return lib


class TestRegistration:

    def test_duplicate_name(self, lib):
        with pytest.raises(DuplicateTypeName) as exc:
            lib.register("T.U8", Prim("u16"))
        assert exc.value.name == "T.U8"

    def test_frozen_rejects_registration(self, lib):
        lib.freeze()
        with pytest.raises(ValueError):
            lib.register("T.New", Prim("u8"))

    def test_not_a_layout(self, lib):
        with pytest.raises(TypeError):
            lib.register("T.Bad", "u8")

    def test_unknown_primitive(self):
        with pytest.raises(ValueError):
            Prim("u128")


class TestResolution:

    def test_resolve(self, lib):
        assert lib.resolve("T.U8") == Prim("u8")
        assert lib.resolve(TypeRef("T.Tag")) == AsciiString(1, 4)

    def test_unresolved(self, lib):
        with pytest.raises(UnresolvedType) as exc:
            lib.resolve("T.Missing")
        assert exc.value.name == "T.Missing"

    def test_missing_component(self, lib):
        lib.register("T.Pair", Struct((("a", TypeRef("T.U8")), ("b", TypeRef("T.Nope")))))
        lib.resolve("T.Pair")
        with pytest.raises(UnresolvedType) as exc:
            lib.check("T.Pair")
        assert exc.value.name == "T.Nope"

    def test_recursive_type(self):
        lib = TypeLibrary({"T.Loop": Option(TypeRef("T.Loop"))})
        with pytest.raises(UnresolvedType):
            lib.check("T.Loop")

    def test_closure_and_subset(self, lib):
        closure = lib.closure(["T.Index"])
        assert closure == [TypeRef("T.Index"), TypeRef("T.Tag"), TypeRef("T.U8")]
        subset = lib.subset(["T.Index"])
        assert subset.frozen
        assert len(subset) == 3
        assert "T.Point" not in subset


class TestSemanticIds:

    def test_equal_layouts_equal_ids(self):
        a = TypeLibrary({"T.A": Prim("u8"), "T.Box": Option(TypeRef("T.A"))})
        b = TypeLibrary({"T.A": Prim("u8"), "T.Box": Option(TypeRef("T.A")), "T.X": Prim("bool")})
        assert a.sem_id("T.Box") == b.sem_id("T.Box")

    def test_component_change_changes_id(self):
        a = TypeLibrary({"T.A": Prim("u8"), "T.Box": Option(TypeRef("T.A"))})
        b = TypeLibrary({"T.A": Prim("u16"), "T.Box": Option(TypeRef("T.A"))})
        assert a.sem_id("T.Box") != b.sem_id("T.Box")

    def test_name_is_part_of_id(self):
        lib = TypeLibrary({"T.A": Prim("u8"), "T.B": Prim("u8")})
        assert lib.sem_id("T.A") != lib.sem_id("T.B")


class TestValueEncoding:
    """Deterministic encoding with enforced bounds."""

    def test_integers_little_endian(self, lib):
        assert lib.encode_value("T.U64", 1) == b"\x01" + b"\x00" * 7

    def test_integer_range(self, lib):
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.U8", 256)
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.U8", -1)

    def test_bool_is_not_an_integer(self, lib):
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.U8", True)
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Flag", 1)

    def test_ascii_bounds(self, lib):
        assert lib.encode_value("T.Tag", "ab") == b"\x02ab"
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Tag", "")
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Tag", "toolong")
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Tag", "é")

    def test_enum_membership(self, lib):
        assert lib.encode_value("T.Color", "green") == b"\x01"
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Color", "blue")

    def test_struct_fields_exact(self, lib):
        assert lib.encode_value("T.Point", {"y": 2, "x": 1}) == b"\x01\x02"
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Point", {"x": 1})
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Point", {"x": 1, "y": 2, "z": 3})

    def test_list_cardinality(self, lib):
        lib.encode_value("T.Tags", ["a", "b"])
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Tags", ["a", "b", "c"])

    def test_map_order_independent(self, lib):
        first = lib.encode_value("T.Index", {2: "b", 1: "a"})
        second = lib.encode_value("T.Index", {1: "a", 2: "b"})
        assert first == second
        assert lib.value_hash("T.Index", {2: "b", 1: "a"}) == lib.value_hash("T.Index", {1: "a", 2: "b"})

    def test_option(self, lib):
        assert lib.encode_value("T.MaybeTag", None) == b"\x00"
        assert lib.encode_value("T.MaybeTag", "x") == b"\x01\x01x"

    def test_fixed_and_blob(self):
        lib = TypeLibrary({"T.Id": FixedBytes(2), "T.Data": Blob(0, 3)})
        assert lib.encode_value("T.Id", b"\x01\x02") == b"\x01\x02"
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Id", b"\x01")
        with pytest.raises(ValueEncodingError):
            lib.encode_value("T.Data", b"\x00" * 4)

    def test_decode_inverse(self, lib):
        value = {1: "a", 3: "c"}
        assert lib.decode_value("T.Index", lib.encode_value("T.Index", value)) == value
        assert lib.decode_value("T.Point", b"\x05\x06") == {"x": 5, "y": 6}

    def test_decode_rejects_trailing_bytes(self, lib):
        with pytest.raises(DecodeError):
            lib.decode_value("T.U8", b"\x01\x02")

    def test_decode_rejects_truncation(self, lib):
        with pytest.raises(DecodeError):
            lib.decode_value("T.U64", b"\x01")

    def test_decode_rejects_bad_variant(self, lib):
        with pytest.raises(DecodeError):
            lib.decode_value("T.Color", b"\x07")


class TestLibraryEncoding:

    def test_encode_decode(self, lib):
        w = StrictWriter()
        lib.encode(w)
        decoded = TypeLibrary.decode(StrictReader(w.getvalue()))
        assert decoded == lib
        assert decoded.frozen
        assert decoded.library_id() == lib.library_id()

    def test_layout_dict_projection(self, lib):
        for ref, layout in lib.items():
            assert layout_from_dict(layout_to_dict(layout)) == layout

    def test_layout_dict_unknown(self):
        with pytest.raises(ValueError):
            layout_from_dict({"float": 32})


class TestStandardTypes:

    def test_precision_variants(self, types):
        assert len(PRECISION_VARIANTS) == 19
        assert precision_decimals("indivisible") == 0
        assert precision_decimals("centiMicro") == 8
        assert precision_decimals("atto") == 18
        assert types.resolve(PRECISION) == Enumeration(PRECISION_VARIANTS)

    def test_amount_is_u64(self, types):
        assert types.resolve(AMOUNT) == Prim("u64")

    def test_frozen_and_complete(self, types):
        assert types.frozen
        for ref in types:
            types.check(ref)

    def test_asset_spec(self, types):
        spec = {"ticker": "TEST", "name": "Test asset", "details": None, "precision": "centiMicro"}
        data = types.encode_value(ASSET_SPEC, spec)
        assert types.decode_value(ASSET_SPEC, data) == spec

    def test_ticker_bounds(self, types):
        with pytest.raises(ValueEncodingError):
            types.encode_value(TICKER, "TOOLONGTICKER")

    def test_token_data(self, types):
        token = {
            "index": 0,
            "ticker": None,
            "name": "Token",
            "details": None,
            "preview": None,
            "media": {
                "type": {"type": "image", "subtype": "png", "charset": None},
                "digest": b"\x11" * 32,
            },
            "attachments": {},
        }
        assert types.decode_value(TOKEN_DATA, types.encode_value(TOKEN_DATA, token)) == token
