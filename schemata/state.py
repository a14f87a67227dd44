"""
State type declarations: global state, owned state and transition metadata.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .types import TypeRef


class Visibility(Enum):
    """Whether state values are published or kept client-side and concealed."""
    PUBLIC = "public"
    CONCEALED = "concealed"


class OwnedKind(Enum):
    """Shape of state attached to an ownership right."""
    FUNGIBLE = "fungible"          # amounts, summed by validation scripts
    DECLARATIVE = "declarative"    # a bare right without data
    STRUCTURED = "structured"      # arbitrary strict-typed data


_BOUNDED_RE = re.compile(r"^bounded\((\d+)\)$")


@dataclass(frozen=True)
class Multiplicity:
    """Maximum number of items a contract may hold for a state type."""
    max_items: Optional[int]

    def __post_init__(self):
        if self.max_items is not None and self.max_items < 1:
            raise ValueError("multiplicity bound must be at least 1")

    @classmethod
    def bounded(cls, n: int) -> "Multiplicity":
        return cls(n)

    @property
    def is_once(self) -> bool:
        return self.max_items == 1

    @property
    def is_unbounded(self) -> bool:
        return self.max_items is None

    @property
    def name(self) -> str:
        if self.max_items is None:
            return "unbounded"
        if self.max_items == 1:
            return "once"
        return f"bounded({self.max_items})"

    @classmethod
    def parse(cls, text: str) -> "Multiplicity":
        text = text.strip().lower()
        if text == "once":
            return ONCE
        if text in ("unbounded", "many"):
            return UNBOUNDED
        match = _BOUNDED_RE.match(text)
        if match:
            return cls(int(match.group(1)))
        raise ValueError(f"unknown multiplicity '{text}'")

    def __str__(self):
        return self.name


ONCE = Multiplicity(1)
UNBOUNDED = Multiplicity(None)


@dataclass(frozen=True)
class StateType:
    """A named global or owned state slot and the type of its values."""
    name: str
    type_ref: TypeRef
    visibility: Visibility = Visibility.PUBLIC
    multiplicity: Multiplicity = ONCE
    owned: bool = False
    kind: Optional[OwnedKind] = None

    @property
    def is_fungible(self) -> bool:
        return self.kind is OwnedKind.FUNGIBLE


@dataclass(frozen=True)
class MetaType:
    """A metadata field a transition may carry."""
    name: str
    type_ref: TypeRef
