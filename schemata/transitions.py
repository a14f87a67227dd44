"""
Transition kinds and the state-transition graph they form.

A kind consumes owned state (inputs), produces owned state (outputs), may
read or write global state and may require metadata fields. Viewed as a
graph, an edge runs from K to K' whenever K produces an owned type that K'
consumes; every kind must be reachable from the genesis outputs.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .types import TypeRef
from .witness import SlotSection, WitnessSlot


# =============================================================================
# Arity
# =============================================================================

_NAMED_OCCURRENCES = {
    "once": (1, 1),
    "none_or_once": (0, 1),
    "none_or_more": (0, None),
    "once_or_more": (1, None),
}
_UP_TO_RE = re.compile(r"^(none|once)_or_up_to\((\d+)\)$")


@dataclass(frozen=True)
class Occurrences:
    """How many items of a slot a single transition may carry."""
    min: int
    max: Optional[int]

    def __post_init__(self):
        if self.min < 0:
            raise ValueError("minimum occurrences must be non-negative")
        if self.max is not None and self.max < max(self.min, 1):
            raise ValueError(f"invalid occurrence bounds {self.min}..{self.max}")

    @classmethod
    def once(cls) -> "Occurrences":
        return cls(1, 1)

    @classmethod
    def none_or_once(cls) -> "Occurrences":
        return cls(0, 1)

    @classmethod
    def none_or_more(cls) -> "Occurrences":
        return cls(0, None)

    @classmethod
    def once_or_more(cls) -> "Occurrences":
        return cls(1, None)

    @classmethod
    def up_to(cls, n: int, required: bool = False) -> "Occurrences":
        return cls(1 if required else 0, n)

    def allows(self, count: int) -> bool:
        return count >= self.min and (self.max is None or count <= self.max)

    @property
    def name(self) -> str:
        for name, bounds in _NAMED_OCCURRENCES.items():
            if bounds == (self.min, self.max):
                return name
        prefix = "once" if self.min == 1 else "none"
        return f"{prefix}_or_up_to({self.max})"

    @classmethod
    def parse(cls, text: str) -> "Occurrences":
        text = text.strip().lower()
        if text in _NAMED_OCCURRENCES:
            return cls(*_NAMED_OCCURRENCES[text])
        match = _UP_TO_RE.match(text)
        if match:
            return cls.up_to(int(match.group(2)), required=match.group(1) == "once")
        raise ValueError(f"unknown occurrences '{text}'")

    def __str__(self):
        return self.name


class GlobalAccess(Enum):
    READ = "read"
    WRITE = "write"


# =============================================================================
# Slots and kinds
# =============================================================================

@dataclass(frozen=True)
class OwnedSlot:
    """An owned state type consumed or produced by a transition."""
    state: str
    occurrences: Occurrences = field(default_factory=Occurrences.once_or_more)


@dataclass(frozen=True)
class GlobalSlot:
    """A global state type read or appended by a transition."""
    state: str
    occurrences: Occurrences = field(default_factory=Occurrences.once)
    access: GlobalAccess = GlobalAccess.WRITE


@dataclass(frozen=True)
class TransitionKind:
    """A named kind of state-changing operation."""
    name: str
    inputs: Tuple[OwnedSlot, ...] = ()
    outputs: Tuple[OwnedSlot, ...] = ()
    globals: Tuple[GlobalSlot, ...] = ()
    metadata: Tuple[str, ...] = ()
    genesis: bool = False
    input_free: bool = False

    @property
    def consumes(self) -> Set[str]:
        return {slot.state for slot in self.inputs}

    @property
    def produces(self) -> Set[str]:
        return {slot.state for slot in self.outputs}

    @property
    def is_genesis_like(self) -> bool:
        """Flagged genesis, or input-less without being marked input-free."""
        return self.genesis or (not self.inputs and not self.input_free)

    def global_slot(self, name: str) -> Optional[GlobalSlot]:
        for slot in self.globals:
            if slot.state == name:
                return slot
        return None

    def witness_slots(self, type_of: Mapping[str, TypeRef]) -> Tuple[WitnessSlot, ...]:
        """Canonical witness layout: inputs, outputs, globals, then metadata."""
        slots = [WitnessSlot(SlotSection.INPUT, s.state, type_of.get(s.state)) for s in self.inputs]
        slots += [WitnessSlot(SlotSection.OUTPUT, s.state, type_of.get(s.state)) for s in self.outputs]
        slots += [WitnessSlot(SlotSection.GLOBAL, s.state, type_of.get(s.state)) for s in self.globals]
        slots += [WitnessSlot(SlotSection.META, name, type_of.get(name)) for name in self.metadata]
        return tuple(slots)


# =============================================================================
# Graph
# =============================================================================

class TransitionGraph:
    """Producer/consumer graph over a set of transition kinds."""

    def __init__(self, kinds: Iterable[TransitionKind]):
        self.kinds: List[TransitionKind] = list(kinds)
        self.consumers: Dict[str, List[str]] = {}
        for kind in self.kinds:
            for state in sorted(kind.consumes):
                self.consumers.setdefault(state, []).append(kind.name)
        self._by_name = {kind.name: kind for kind in self.kinds}

    def successors(self, name: str) -> List[str]:
        found: List[str] = []
        for state in sorted(self._by_name[name].produces):
            for consumer in self.consumers.get(state, []):
                if consumer not in found:
                    found.append(consumer)
        return found

    def reachable(self, roots: Iterable[str]) -> Set[str]:
        reachable: Set[str] = set()
        to_visit = list(roots)

        while to_visit:
            name = to_visit.pop()
            if name in reachable:
                continue
            reachable.add(name)
            for succ in self.successors(name):
                if succ not in reachable:
                    to_visit.append(succ)

        return reachable

    def unreachable(self, roots: Iterable[str]) -> List[str]:
        """Kinds not reachable from the roots, in declaration order."""
        reachable = self.reachable(roots)
        return [kind.name for kind in self.kinds if kind.name not in reachable]
