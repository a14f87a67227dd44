"""
Inflatable Fungible Asset (IFA): supply may grow up to a cap through
inflation rights issued at genesis, can be burned, and the contract can be
linked to a successor contract.
"""

from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..builder import SchemaBuilder
from ..errors import MissingGlobalState, MultipleValues, SchemaError, UnknownStateName
from ..schema import Schema
from ..state import UNBOUNDED
from ..stl import AMOUNT, ASSET_SPEC, CONTRACT_ID, CONTRACT_TERMS, REJECT_LIST_URL, VOID
from ..transitions import Occurrences
from .common import freeze

NAME = "InflatableFungibleAsset"

# Published identifier; a change here means the canonical encoding changed.
IFA_SCHEMA_ID = "5406e6555fbbb3113bf997562b8f0e4253aa88adb0e86dbd57b536b9f575e0ee"

GENESIS_SCRIPT = """\
errno ERRNO_ISSUED_MISMATCH
load global.issuedSupply
sum out.assetOwner
eq
test
; inflation rights cover exactly what is left under the cap
errno ERRNO_INFLATION_MISMATCH
load global.maxSupply
load global.issuedSupply
sub
sum out.inflationAllowance
eq
test
ret
"""

TRANSFER_SCRIPT = """\
errno ERRNO_NON_EQUAL_IN_OUT
sum in.assetOwner
sum out.assetOwner
eq
test
sum in.inflationAllowance
sum out.inflationAllowance
eq
test
count in.linkRight
count out.linkRight
eq
test
ret
"""

INFLATE_SCRIPT = """\
errno ERRNO_ISSUED_MISMATCH
load global.issuedSupply
sum out.assetOwner
eq
test
errno ERRNO_INFLATION_MISMATCH
load meta.allowedInflation
sum out.inflationAllowance
eq
test
; spent rights must equal newly issued plus remaining rights
errno ERRNO_INFLATION_EXCEEDS_ALLOWANCE
load global.issuedSupply
load meta.allowedInflation
add
sum in.inflationAllowance
eq
test
ret
"""

BURN_SCRIPT = """\
errno ERRNO_BURN_MISMATCH
load global.burnedSupply
sum in.assetOwner
eq
test
ret
"""

LINK_SCRIPT = """\
errno ERRNO_LINK_MISMATCH
count in.linkRight
push 1
eq
test
ret
"""


def ifa_builder() -> SchemaBuilder:
    builder = SchemaBuilder(NAME)

    builder.declare_global("spec", ASSET_SPEC)
    builder.declare_global("terms", CONTRACT_TERMS)
    builder.declare_global("issuedSupply", AMOUNT, multiplicity=UNBOUNDED)
    builder.declare_global("maxSupply", AMOUNT)
    builder.declare_global("burnedSupply", AMOUNT, multiplicity=UNBOUNDED)
    builder.declare_global("rejectListUrl", REJECT_LIST_URL)
    builder.declare_global("linkedFromContract", CONTRACT_ID)
    builder.declare_global("linkedToContract", CONTRACT_ID)
    builder.declare_owned("assetOwner", AMOUNT)
    builder.declare_owned("inflationAllowance", AMOUNT)
    builder.declare_owned("linkRight", VOID)
    builder.declare_metadata("allowedInflation", AMOUNT)
    builder.set_default_assignment("assetOwner")

    every_right = {
        "assetOwner": Occurrences.none_or_more(),
        "inflationAllowance": Occurrences.none_or_more(),
        "linkRight": Occurrences.none_or_once(),
    }

    builder.declare_transition(
        "genesis",
        outputs=every_right,
        global_rw={
            "spec": Occurrences.once(),
            "terms": Occurrences.once(),
            "issuedSupply": Occurrences.once(),
            "maxSupply": Occurrences.once(),
            "rejectListUrl": Occurrences.none_or_once(),
            "linkedFromContract": Occurrences.none_or_once(),
        },
        genesis=True,
    )
    builder.declare_transition("transfer", inputs=every_right, outputs=every_right)
    builder.declare_transition(
        "inflate",
        inputs={"inflationAllowance": Occurrences.once_or_more()},
        outputs={
            "assetOwner": Occurrences.once_or_more(),
            "inflationAllowance": Occurrences.none_or_more(),
        },
        global_rw={"issuedSupply": Occurrences.once()},
        metadata_fields=["allowedInflation"],
    )
    builder.declare_transition(
        "burn",
        inputs=every_right,
        global_rw={"burnedSupply": Occurrences.once()},
    )
    builder.declare_transition(
        "link",
        inputs={"linkRight": Occurrences.once()},
        global_rw={"linkedToContract": Occurrences.once()},
    )

    rights_in = ["in.assetOwner", "in.inflationAllowance", "in.linkRight"]
    rights_out = ["out.assetOwner", "out.inflationAllowance", "out.linkRight"]

    builder.bind_script("genesis", GENESIS_SCRIPT, rights_out + [
        "global.spec", "global.terms", "global.issuedSupply", "global.maxSupply",
        "global.rejectListUrl", "global.linkedFromContract",
    ])
    builder.bind_script("transfer", TRANSFER_SCRIPT, rights_in + rights_out)
    builder.bind_script("inflate", INFLATE_SCRIPT, [
        "in.inflationAllowance", "out.assetOwner", "out.inflationAllowance",
        "global.issuedSupply", "meta.allowedInflation",
    ])
    builder.bind_script("burn", BURN_SCRIPT, rights_in + ["global.burnedSupply"])
    builder.bind_script("link", LINK_SCRIPT, ["in.linkRight", "global.linkedToContract"])
    return builder


@lru_cache(maxsize=1)
def ifa_schema() -> Schema:
    return freeze(ifa_builder(), IFA_SCHEMA_ID)


# =============================================================================
# Contract state reader
# =============================================================================

class IfaState:
    """
    Typed view over the global state of an IFA contract.

    `globals_` maps global state names to their decoded values in the order
    the contract recorded them. Supply logs (`issuedSupply`, `burnedSupply`)
    hold one entry per issuance or burn and are summed; link targets hold at
    most one value.
    """

    def __init__(self, schema: Schema, globals_: Mapping[str, Iterable[Any]]):
        if schema.schema_id != IFA_SCHEMA_ID:
            raise SchemaError(schema.name, f"Schema {schema.schema_id} is not {NAME}")
        for name in globals_:
            if name not in schema.global_types:
                raise UnknownStateName(name, f"'{name}' is not global state of {NAME}")
        self.schema = schema
        self._globals: Dict[str, List[Any]] = {name: list(values) for name, values in globals_.items()}

    @classmethod
    def from_encoded(cls, schema: Schema, encoded: Mapping[str, Iterable[bytes]]) -> "IfaState":
        """Decode strict-encoded global values with the schema's type library."""
        values = {}
        for name, items in encoded.items():
            st = schema.global_types.get(name)
            if st is None:
                raise UnknownStateName(name, f"'{name}' is not global state of {NAME}")
            values[name] = [schema.types.decode_value(st.type_ref, data) for data in items]
        return cls(schema, values)

    def values(self, name: str) -> List[Any]:
        return list(self._globals.get(name, ()))

    def _required(self, name: str) -> Any:
        values = self._globals.get(name)
        if not values:
            raise MissingGlobalState(name, f"{NAME} requires global state '{name}' to have a value")
        return values[0]

    def _single(self, name: str) -> Optional[Any]:
        values = self._globals.get(name) or []
        if len(values) > 1:
            raise MultipleValues(name, f"'{name}' holds {len(values)} values, expected at most one")
        return values[0] if values else None

    def spec(self) -> Dict[str, Any]:
        return self._required("spec")

    def contract_terms(self) -> Dict[str, Any]:
        return self._required("terms")

    def reject_list_url(self) -> Optional[str]:
        values = self._globals.get("rejectListUrl")
        return values[0] if values else None

    def issuance_amounts(self) -> List[int]:
        return self.values("issuedSupply")

    def total_issued_supply(self) -> int:
        return sum(self.issuance_amounts())

    def max_supply(self) -> int:
        return sum(self.values("maxSupply"))

    def total_burned_supply(self) -> int:
        return sum(self.values("burnedSupply"))

    def link_to(self) -> Optional[bytes]:
        """Contract this one was linked to, if any."""
        return self._single("linkedToContract")

    def link_from(self) -> Optional[bytes]:
        """Contract this one was linked from, if any."""
        return self._single("linkedFromContract")
