"""
Witness slots: the ordered state values a validation script receives.

A witness layout lists inputs, then outputs, then globals, then metadata, in
the order the transition declares them. Scripts address slots by section
and state name (`in.assetOwner`, `global.issuedSupply`), optionally
followed by a struct field path (`out.assetOwner.amount`).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .types import TypeRef


class SlotSection(Enum):
    INPUT = "in"
    OUTPUT = "out"
    GLOBAL = "global"
    META = "meta"


SECTION_CODES = {
    SlotSection.INPUT: 0,
    SlotSection.OUTPUT: 1,
    SlotSection.GLOBAL: 2,
    SlotSection.META: 3,
}
SECTIONS_BY_CODE = {code: section for section, code in SECTION_CODES.items()}


@dataclass(frozen=True)
class SlotRef:
    """Script-side reference to a witness slot and an optional field path."""
    section: SlotSection
    name: str
    path: Tuple[str, ...] = ()

    @property
    def key(self) -> Tuple[SlotSection, str]:
        return (self.section, self.name)

    @classmethod
    def parse(cls, text: str) -> "SlotRef":
        parts = text.strip().split(".")
        if len(parts) < 2 or not all(parts):
            raise ValueError(f"invalid slot reference '{text}'")
        try:
            section = SlotSection(parts[0])
        except ValueError:
            raise ValueError(f"unknown slot section '{parts[0]}' in '{text}'") from None
        return cls(section, parts[1], tuple(parts[2:]))

    def __str__(self):
        return ".".join((self.section.value, self.name) + self.path)


@dataclass(frozen=True)
class WitnessSlot:
    """One position in a transition's witness layout."""
    section: SlotSection
    name: str
    type_ref: Optional[TypeRef] = None

    @property
    def key(self) -> Tuple[SlotSection, str]:
        return (self.section, self.name)

    @classmethod
    def parse(cls, text: str) -> "WitnessSlot":
        ref = SlotRef.parse(text)
        if ref.path:
            raise ValueError(f"witness slot '{text}' cannot carry a field path")
        return cls(ref.section, ref.name)

    def __str__(self):
        return f"{self.section.value}.{self.name}"


def coerce_slots(slots: Iterable[Any]) -> Tuple[WitnessSlot, ...]:
    """Accept WitnessSlot objects or their `section.name` text form."""
    result = []
    for slot in slots:
        if isinstance(slot, WitnessSlot):
            result.append(slot)
        elif isinstance(slot, str):
            result.append(WitnessSlot.parse(slot))
        else:
            raise TypeError(f"not a witness slot: {slot!r}")
    return tuple(result)


# =============================================================================
# Witness values
# =============================================================================

@dataclass(frozen=True)
class Witness:
    """
    Concrete values for one transition instance, arranged in slot order.

    Each slot holds a list of values: one per assignment for owned slots,
    one per item for globals, a single value for metadata. `message` is the
    transition commitment that signatures are checked against.
    """
    slots: Tuple[WitnessSlot, ...]
    values: Tuple[Tuple[Any, ...], ...]
    message: bytes = b""

    def __post_init__(self):
        if len(self.slots) != len(self.values):
            raise ValueError("witness values do not match the slot layout")

    def index_of(self, section: SlotSection, name: str) -> Optional[int]:
        for i, slot in enumerate(self.slots):
            if slot.section is section and slot.name == name:
                return i
        return None

    def get(self, section: SlotSection, name: str) -> Optional[Tuple[Any, ...]]:
        i = self.index_of(section, name)
        return None if i is None else self.values[i]

    @classmethod
    def arrange(
        cls,
        layout: Sequence[WitnessSlot],
        named: Dict[str, Any],
        message: bytes = b"",
    ) -> "Witness":
        """
        Arrange values given by slot text (`"out.assetOwner": [600, 400]`)
        into layout order. Scalars are wrapped, absent slots are empty.
        Names outside the layout are rejected.
        """
        known = {str(slot) for slot in layout}
        unknown = sorted(set(named) - known)
        if unknown:
            raise KeyError(f"slots not in witness layout: {unknown}")
        values: List[Tuple[Any, ...]] = []
        for slot in layout:
            value = named.get(str(slot), ())
            if not isinstance(value, (list, tuple)):
                value = (value,)
            values.append(tuple(value))
        return cls(tuple(layout), tuple(values), message)

    @classmethod
    def build(cls, schema, kind, named: Dict[str, Any], message: bytes = b"") -> "Witness":
        """Arrange named values into the witness layout a schema binds to `kind`."""
        return cls.arrange(schema.witness_layout(kind), named, message)
