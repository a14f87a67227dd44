"""
Standard RGB contract types shared by the schema catalog.

Names follow the `Library.Type` convention so that a schema's bundled type
snapshot identifies where each type comes from.
"""

from functools import lru_cache

from .types import (
    AsciiString, Blob, Enumeration, FixedBytes, MapOf, Option, Prim,
    Struct, TypeLibrary, TypeRef,
)

# Decimal places of an asset, indivisible (0) up to 18.
PRECISION_VARIANTS = (
    "indivisible", "deci", "centi", "milli", "deciMilli", "centiMilli",
    "micro", "deciMicro", "centiMicro", "nano", "deciNano", "centiNano",
    "pico", "deciPico", "centiPico", "femto", "deciFemto", "centiFemto",
    "atto",
)

AMOUNT = TypeRef("RGBContract.Amount")
PRECISION = TypeRef("RGBContract.Precision")
TICKER = TypeRef("RGBContract.Ticker")
NAME = TypeRef("RGBContract.Name")
DETAILS = TypeRef("RGBContract.Details")
ASSET_SPEC = TypeRef("RGBContract.AssetSpec")
RICARDIAN_CONTRACT = TypeRef("RGBContract.RicardianContract")
MEDIA_TYPE = TypeRef("RGBContract.MediaType")
ATTACHMENT = TypeRef("RGBContract.Attachment")
CONTRACT_TERMS = TypeRef("RGBContract.ContractTerms")
EMBEDDED_MEDIA = TypeRef("RGBContract.EmbeddedMedia")
TOKEN_INDEX = TypeRef("RGBContract.TokenIndex")
TOKEN_DATA = TypeRef("RGBContract.TokenData")
ALLOCATION = TypeRef("RGBContract.Allocation")
REJECT_LIST_URL = TypeRef("RGBContract.RejectListUrl")
CONTRACT_ID = TypeRef("RGBCommit.ContractId")
PUBLIC_KEY = TypeRef("RGBContract.PublicKey")
SIGNATURE = TypeRef("RGBContract.Signature")
VOID = TypeRef("RGBContract.Void")


def precision_decimals(precision: str) -> int:
    """Number of decimal places encoded by a Precision variant."""
    return PRECISION_VARIANTS.index(precision)


def build_standard_types() -> TypeLibrary:
    """Build a fresh, unfrozen library with the standard contract types."""
    lib = TypeLibrary()

    lib.register("Std.U8", Prim("u8"))
    lib.register("Std.U64", Prim("u64"))
    lib.register("Std.Bytes32", FixedBytes(32))
    lib.register("Std.Blob", Blob(0, 0xFFFF))

    lib.register(AMOUNT.name, Prim("u64"))
    lib.register(VOID.name, Prim("unit"))
    lib.register(PRECISION.name, Enumeration(PRECISION_VARIANTS))
    lib.register(TICKER.name, AsciiString(1, 8))
    lib.register(NAME.name, AsciiString(1, 40))
    lib.register(DETAILS.name, AsciiString(1, 255))
    lib.register("RGBContract.DetailsOpt", Option(DETAILS))
    lib.register(ASSET_SPEC.name, Struct((
        ("ticker", TICKER),
        ("name", NAME),
        ("details", TypeRef("RGBContract.DetailsOpt")),
        ("precision", PRECISION),
    )))

    lib.register(RICARDIAN_CONTRACT.name, AsciiString(0, 0xFFFF))
    lib.register("RGBContract.MediaTypePart", AsciiString(1, 64))
    lib.register("RGBContract.MediaTypePartOpt", Option(TypeRef("RGBContract.MediaTypePart")))
    lib.register(MEDIA_TYPE.name, Struct((
        ("type", TypeRef("RGBContract.MediaTypePart")),
        ("subtype", TypeRef("RGBContract.MediaTypePartOpt")),
        ("charset", TypeRef("RGBContract.MediaTypePartOpt")),
    )))
    lib.register(ATTACHMENT.name, Struct((
        ("type", MEDIA_TYPE),
        ("digest", TypeRef("Std.Bytes32")),
    )))
    lib.register("RGBContract.AttachmentOpt", Option(ATTACHMENT))
    lib.register(CONTRACT_TERMS.name, Struct((
        ("text", RICARDIAN_CONTRACT),
        ("media", TypeRef("RGBContract.AttachmentOpt")),
    )))

    lib.register(EMBEDDED_MEDIA.name, Struct((
        ("type", MEDIA_TYPE),
        ("data", TypeRef("Std.Blob")),
    )))
    lib.register("RGBContract.EmbeddedMediaOpt", Option(EMBEDDED_MEDIA))
    lib.register(TOKEN_INDEX.name, Prim("u32"))
    lib.register("RGBContract.TickerOpt", Option(TICKER))
    lib.register("RGBContract.NameOpt", Option(NAME))
    lib.register("RGBContract.Attachments", MapOf(TypeRef("Std.U8"), ATTACHMENT, 20))
    lib.register(TOKEN_DATA.name, Struct((
        ("index", TOKEN_INDEX),
        ("ticker", TypeRef("RGBContract.TickerOpt")),
        ("name", TypeRef("RGBContract.NameOpt")),
        ("details", TypeRef("RGBContract.DetailsOpt")),
        ("preview", TypeRef("RGBContract.EmbeddedMediaOpt")),
        ("media", TypeRef("RGBContract.AttachmentOpt")),
        ("attachments", TypeRef("RGBContract.Attachments")),
    )))
    lib.register(ALLOCATION.name, Struct((
        ("index", TOKEN_INDEX),
        ("amount", TypeRef("Std.U64")),
    )))

    lib.register(REJECT_LIST_URL.name, AsciiString(1, 255))
    lib.register(CONTRACT_ID.name, FixedBytes(32))
    lib.register(PUBLIC_KEY.name, FixedBytes(32))
    lib.register(SIGNATURE.name, FixedBytes(64))
    return lib


@lru_cache(maxsize=1)
def standard_types() -> TypeLibrary:
    """Frozen, process-wide standard type library."""
    return build_standard_types().freeze()
