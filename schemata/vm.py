"""
Script execution interface and a reference interpreter.

Verification engines execute a transition's bound script against the
transition's witness through the ScriptVM interface. ReferenceVM interprets
the instruction set produced by `schemata.script`; it is what the catalog
scripts are authored and tested against.

Arithmetic is unsigned with a configurable width. Overflow, underflow,
stack underflow and malformed witness values all reject the transition.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .script import CompiledScript, Op
from .witness import SlotRef, Witness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VmConfig:
    amount_bits: int = 64
    max_steps: int = 10_000

    @property
    def max_value(self) -> int:
        return (1 << self.amount_bits) - 1


@dataclass(frozen=True)
class Verdict:
    """Outcome of executing a script: accepted, or rejected with an errno."""
    accepted: bool
    errno: Optional[int] = None
    reason: str = ""

    def __bool__(self):
        return self.accepted


ACCEPT = Verdict(True)


def reject(errno: Optional[int], reason: str) -> Verdict:
    return Verdict(False, errno, reason)


class ScriptVM(ABC):
    """Executes compiled validation scripts against witnesses."""

    @abstractmethod
    def execute(self, script: CompiledScript, witness: Witness) -> Verdict:
        ...


class _Failure(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ReferenceVM(ScriptVM):
    """Stack interpreter for the schemata instruction set."""

    def __init__(self, config: Optional[VmConfig] = None):
        self.config = config or VmConfig()

    def execute(self, script: CompiledScript, witness: Witness) -> Verdict:
        errno: Optional[int] = None
        stack: List[int] = []
        steps = 0

        try:
            for instr in script.instructions():
                steps += 1
                if steps > self.config.max_steps:
                    raise _Failure("step limit exceeded")

                op = instr.op
                if op is Op.ERRNO:
                    errno = instr.operand
                elif op is Op.PUSH:
                    stack.append(self._checked(instr.operand))
                elif op is Op.SUM:
                    values = self._numbers(witness, instr.slots[0])
                    stack.append(self._checked(sum(values)))
                elif op is Op.COUNT:
                    stack.append(len(self._values(witness, instr.slots[0])))
                elif op is Op.LOAD:
                    values = self._numbers(witness, instr.slots[0])
                    if len(values) != 1:
                        raise _Failure(f"{instr.slots[0]} holds {len(values)} values, expected one")
                    stack.append(values[0])
                elif op in (Op.ADD, Op.SUB, Op.EQ, Op.LT, Op.LE):
                    b = self._pop(stack)
                    a = self._pop(stack)
                    stack.append(self._binary(op, a, b))
                elif op is Op.TEST:
                    if self._pop(stack) == 0:
                        logger.debug("script %s failed test with errno %s", script.script_id[:16], errno)
                        return reject(errno, "test failed")
                elif op is Op.VSIG:
                    stack.append(1 if self._verify(witness, *instr.slots) else 0)
                elif op is Op.RET:
                    return ACCEPT
        except _Failure as exc:
            return reject(errno, exc.reason)

        return ACCEPT

    # -- helpers ----------------------------------------------------------------

    def _checked(self, value: int) -> int:
        if value < 0:
            raise _Failure("arithmetic underflow")
        if value > self.config.max_value:
            raise _Failure(f"arithmetic overflow beyond {self.config.amount_bits} bits")
        return value

    def _binary(self, op: Op, a: int, b: int) -> int:
        if op is Op.ADD:
            return self._checked(a + b)
        if op is Op.SUB:
            return self._checked(a - b)
        if op is Op.EQ:
            return 1 if a == b else 0
        if op is Op.LT:
            return 1 if a < b else 0
        return 1 if a <= b else 0

    @staticmethod
    def _pop(stack: List[int]) -> int:
        if not stack:
            raise _Failure("stack underflow")
        return stack.pop()

    @staticmethod
    def _values(witness: Witness, ref: SlotRef) -> List[Any]:
        values = witness.get(ref.section, ref.name)
        if values is None:
            raise _Failure(f"witness has no slot {ref.section.value}.{ref.name}")
        result = []
        for value in values:
            for part in ref.path:
                if not isinstance(value, dict) or part not in value:
                    raise _Failure(f"value in {ref} has no field '{part}'")
                value = value[part]
            result.append(value)
        return result

    def _numbers(self, witness: Witness, ref: SlotRef) -> List[int]:
        values = self._values(witness, ref)
        for value in values:
            if not isinstance(value, int) or isinstance(value, bool):
                raise _Failure(f"non-numeric value in {ref}")
            self._checked(value)
        return values

    def _verify(self, witness: Witness, key_ref: SlotRef, sig_ref: SlotRef) -> bool:
        keys = self._values(witness, key_ref)
        sigs = self._values(witness, sig_ref)
        if len(keys) != 1 or len(sigs) != 1:
            return False
        key, sig = keys[0], sigs[0]
        if not isinstance(key, bytes) or not isinstance(sig, bytes):
            return False
        try:
            Ed25519PublicKey.from_public_bytes(key).verify(sig, witness.message)
        except (InvalidSignature, ValueError):
            return False
        return True
