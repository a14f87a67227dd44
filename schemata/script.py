"""
Validation script assembler.

Uses a formal grammar definition (asm.lark) and Lark's LALR parser to turn
assembly source into instructions, then packs them into bytecode. Compiled
scripts are opaque and content-addressed: the schema only inspects which
witness slots a script reads, never what it computes.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from .constants import ERRNO_CODES, SCRIPT_ID_TAG
from .encoding import StrictReader, StrictWriter, tagged_hash
from .errors import DecodeError, ScriptCompileError
from .witness import SECTION_CODES, SECTIONS_BY_CODE, SlotRef, SlotSection

GRAMMAR_PATH = Path(__file__).parent / "asm.lark"


class Op(Enum):
    """Instruction opcodes."""
    ERRNO = 0x01    # set the error code reported by a failing test
    PUSH = 0x02     # push an integer literal
    SUM = 0x10      # push the sum of a slot's values
    COUNT = 0x11    # push the number of values in a slot
    LOAD = 0x12     # push the single value of a slot
    ADD = 0x20
    SUB = 0x21
    EQ = 0x30
    LT = 0x31
    LE = 0x32
    TEST = 0x40     # pop; fail with the current errno when zero
    VSIG = 0x50     # push 1 if the signature slot verifies under the key slot
    RET = 0xFF

    @property
    def mnemonic(self) -> str:
        return self.name.lower()


IMMEDIATE_OPS = {Op.ERRNO, Op.PUSH}
SLOT_OPS = {Op.SUM: 1, Op.COUNT: 1, Op.LOAD: 1, Op.VSIG: 2}
# Ops that address a whole slot and cannot descend into fields.
WHOLE_SLOT_OPS = {Op.COUNT, Op.VSIG}


@dataclass(frozen=True)
class Instruction:
    op: Op
    operand: Optional[int] = None
    slots: Tuple[SlotRef, ...] = ()
    line: int = field(default=0, compare=False)

    def __str__(self):
        parts = [self.op.mnemonic]
        if self.operand is not None:
            parts.append(str(self.operand))
        parts.extend(str(slot) for slot in self.slots)
        return " ".join(parts)


# =============================================================================
# Bytecode
# =============================================================================

def _write_slot(w: StrictWriter, slot: SlotRef) -> None:
    w.u8(SECTION_CODES[slot.section]).text(slot.name).varint(len(slot.path))
    for part in slot.path:
        w.text(part)


def _read_slot(r: StrictReader) -> SlotRef:
    code = r.u8()
    if code not in SECTIONS_BY_CODE:
        raise DecodeError("bytecode", f"unknown slot section {code}")
    name = r.text()
    path = tuple(r.text() for _ in range(r.varint()))
    return SlotRef(SECTIONS_BY_CODE[code], name, path)


def assemble(instructions: List[Instruction]) -> bytes:
    w = StrictWriter()
    for instr in instructions:
        w.u8(instr.op.value)
        if instr.op in IMMEDIATE_OPS:
            w.varint(instr.operand)
        for slot in instr.slots:
            _write_slot(w, slot)
    return w.getvalue()


def disassemble(bytecode: bytes) -> List[Instruction]:
    r = StrictReader(bytecode)
    instructions = []
    while r.remaining():
        code = r.u8()
        try:
            op = Op(code)
        except ValueError:
            raise DecodeError("bytecode", f"unknown opcode 0x{code:02x}") from None
        operand = r.varint() if op in IMMEDIATE_OPS else None
        slots = tuple(_read_slot(r) for _ in range(SLOT_OPS.get(op, 0)))
        instructions.append(Instruction(op, operand, slots))
    r.done()
    return instructions


@dataclass(frozen=True)
class CompiledScript:
    """Opaque compiled validation logic, identified by its bytecode hash."""
    bytecode: bytes

    @property
    def script_id(self) -> str:
        return tagged_hash(SCRIPT_ID_TAG, self.bytecode).hex()

    def instructions(self) -> List[Instruction]:
        return disassemble(self.bytecode)

    @property
    def references(self) -> Tuple[SlotRef, ...]:
        """Witness slots (with field paths) read by the script, first use first."""
        seen: List[SlotRef] = []
        for instr in self.instructions():
            for slot in instr.slots:
                if slot not in seen:
                    seen.append(slot)
        return tuple(seen)

    def to_source(self) -> str:
        return "\n".join(str(instr) for instr in self.instructions()) + "\n"

    def __repr__(self):
        return f"CompiledScript({self.script_id[:16]}…, {len(self.bytecode)} bytes)"


# =============================================================================
# Parser
# =============================================================================

def _line(meta) -> int:
    return getattr(meta, "line", 0)


def _int(token) -> int:
    text = str(token)
    return int(text, 16) if text.startswith("0x") else int(text)


@v_args(inline=True, meta=True)
class AsmTransformer(Transformer):
    """Transform the Lark parse tree into Instructions."""

    def start(self, meta, *instrs):
        return list(instrs)

    def slot(self, meta, section, *names):
        return SlotRef(SlotSection(str(section)), str(names[0]), tuple(str(n) for n in names[1:]))

    def errno(self, meta, code):
        if code.type == "CONST":
            if str(code) not in ERRNO_CODES:
                raise ScriptCompileError(
                    f"unknown error code '{code}'", _line(meta), getattr(meta, "column", 0)
                )
            return Instruction(Op.ERRNO, ERRNO_CODES[str(code)], line=_line(meta))
        return Instruction(Op.ERRNO, _int(code), line=_line(meta))

    def push(self, meta, value):
        return Instruction(Op.PUSH, _int(value), line=_line(meta))

    def _slot_op(self, op, meta, *slots):
        if op in WHOLE_SLOT_OPS and any(slot.path for slot in slots):
            raise ScriptCompileError(
                f"'{op.mnemonic}' addresses whole slots, field paths are not allowed",
                _line(meta), getattr(meta, "column", 0),
            )
        return Instruction(op, None, tuple(slots), line=_line(meta))

    def sum(self, meta, slot):
        return self._slot_op(Op.SUM, meta, slot)

    def count(self, meta, slot):
        return self._slot_op(Op.COUNT, meta, slot)

    def load(self, meta, slot):
        return self._slot_op(Op.LOAD, meta, slot)

    def vsig(self, meta, key, sig):
        return self._slot_op(Op.VSIG, meta, key, sig)

    def add(self, meta):
        return Instruction(Op.ADD, line=_line(meta))

    def sub(self, meta):
        return Instruction(Op.SUB, line=_line(meta))

    def eq(self, meta):
        return Instruction(Op.EQ, line=_line(meta))

    def lt(self, meta):
        return Instruction(Op.LT, line=_line(meta))

    def le(self, meta):
        return Instruction(Op.LE, line=_line(meta))

    def test(self, meta):
        return Instruction(Op.TEST, line=_line(meta))

    def ret(self, meta):
        return Instruction(Op.RET, line=_line(meta))


_parser = None


def get_parser() -> Lark:
    """Get or create the Lark parser instance."""
    global _parser
    if _parser is None:
        _parser = Lark(
            GRAMMAR_PATH.read_text(),
            parser="lalr",
            propagate_positions=True,
        )
    return _parser


def parse(source: str) -> List[Instruction]:
    """Parse assembly source into instructions."""
    if not source.endswith("\n"):
        source += "\n"
    try:
        tree = get_parser().parse(source)
        return AsmTransformer().transform(tree)
    except UnexpectedInput as exc:
        raise ScriptCompileError(
            f"syntax error: {exc.__class__.__name__}",
            max(getattr(exc, "line", 0), 0),
            max(getattr(exc, "column", 0), 0),
        ) from exc
    except VisitError as exc:
        if isinstance(exc.orig_exc, ScriptCompileError):
            raise exc.orig_exc from None
        raise


def compile_script(source: str) -> CompiledScript:
    """Assemble source into a content-addressed CompiledScript."""
    return CompiledScript(assemble(parse(source)))
