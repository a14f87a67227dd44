"""
Binding of validation scripts to transition kinds.

The schema treats script bytecode as opaque. What it does check, at freeze
time, is structure: the witness order handed to a script must be exactly the
transition's canonical slot layout, and every slot (and struct field) the
script reads must exist in that witness.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from .errors import WitnessArityMismatch
from .script import CompiledScript
from .types import Struct, TypeLibrary
from .witness import WitnessSlot


@dataclass(frozen=True)
class ValidationScript:
    """Compiled script bound to a transition, with the witness it expects."""
    transition: str
    script: CompiledScript
    witness_order: Tuple[WitnessSlot, ...]


def slot_matches(given: WitnessSlot, expected: WitnessSlot) -> bool:
    """Same section and state name; an untyped slot takes the declared type."""
    if given.section is not expected.section or given.name != expected.name:
        return False
    return given.type_ref is None or given.type_ref == expected.type_ref


def check_witness_order(
    transition: str,
    order: Sequence[WitnessSlot],
    expected: Sequence[WitnessSlot],
) -> None:
    """Compare a witness order with the canonical layout slot by slot."""
    for i, (given, want) in enumerate(zip(order, expected)):
        if not slot_matches(given, want):
            raise WitnessArityMismatch(
                transition,
                f"Transition '{transition}' witness slot {i} is '{given}'"
                f"{_typed(given)}, expected '{want}'{_typed(want)}",
            )
    if len(order) != len(expected):
        i = min(len(order), len(expected))
        raise WitnessArityMismatch(
            transition,
            f"Transition '{transition}' witness has {len(order)} slots, expected "
            f"{len(expected)} (first mismatch at slot {i})",
        )


def check_references(
    transition: str,
    script: CompiledScript,
    layout: Sequence[WitnessSlot],
    types: TypeLibrary,
) -> None:
    """Every slot and field path the script reads must exist in the witness."""
    by_key = {slot.key: slot for slot in layout}
    for ref in script.references:
        slot = by_key.get(ref.key)
        if slot is None:
            raise WitnessArityMismatch(
                transition,
                f"Transition '{transition}' script reads '{ref}' which is not in its witness",
            )
        current = slot.type_ref
        for part in ref.path:
            layout_of = types.resolve(current)
            field_ref = layout_of.field_type(part) if isinstance(layout_of, Struct) else None
            if field_ref is None:
                raise WitnessArityMismatch(
                    transition,
                    f"Transition '{transition}' script reads '{ref}' but type "
                    f"'{current}' has no field '{part}'",
                )
            current = field_ref


def _typed(slot: WitnessSlot) -> str:
    return f" ({slot.type_ref})" if slot.type_ref is not None else ""
