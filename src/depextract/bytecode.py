"""Just enough of a class-file reader to pull string literals out of a method.

Only the constant pool, the method table and the ``Code`` attribute are
decoded.  Instructions are walked with their proper lengths so operand bytes
are never mistaken for opcodes.
"""

from __future__ import annotations

import struct

_MAGIC = 0xCAFEBABE

_CONSTANT_UTF8 = 1
_CONSTANT_LONG = 5
_CONSTANT_DOUBLE = 6
_CONSTANT_STRING = 8

# Payload size (after the tag byte) of every fixed-size constant pool entry
_CONSTANT_SIZES = {
    3: 4,  # Integer
    4: 4,  # Float
    5: 8,  # Long
    6: 8,  # Double
    7: 2,  # Class
    8: 2,  # String
    9: 4,  # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}

_LDC = 0x12
_LDC_W = 0x13
_TABLESWITCH = 0xAA
_LOOKUPSWITCH = 0xAB
_WIDE = 0xC4
_IINC = 0x84

# Total instruction length (opcode included) for every opcode longer than 1
_INSN_LENGTHS: dict[int, int] = {
    0x10: 2,  # bipush
    0x11: 3,  # sipush
    0x12: 2,  # ldc
    0x13: 3,  # ldc_w
    0x14: 3,  # ldc2_w
    0x84: 3,  # iinc
    0xA9: 2,  # ret
    0xB9: 5,  # invokeinterface
    0xBA: 5,  # invokedynamic
    0xBB: 3,  # new
    0xBC: 2,  # newarray
    0xBD: 3,  # anewarray
    0xC0: 3,  # checkcast
    0xC1: 3,  # instanceof
    0xC5: 4,  # multianewarray
    0xC6: 3,  # ifnull
    0xC7: 3,  # ifnonnull
    0xC8: 5,  # goto_w
    0xC9: 5,  # jsr_w
}
_INSN_LENGTHS.update({op: 2 for op in range(0x15, 0x1A)})  # xload
_INSN_LENGTHS.update({op: 2 for op in range(0x36, 0x3B)})  # xstore
_INSN_LENGTHS.update({op: 3 for op in range(0x99, 0xA9)})  # if*/goto/jsr
_INSN_LENGTHS.update({op: 3 for op in range(0xB2, 0xB9)})  # field and invoke


class ClassFormatError(ValueError):
    """Raised when class-file bytes cannot be decoded."""


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.data):
            raise ClassFormatError("Truncated class file")
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def u1(self) -> int:
        return self.take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self.take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self.take(4))[0]

    def skip(self, size: int) -> None:
        self.take(size)


def _read_constant_pool(reader: _Reader) -> dict[int, tuple[int, object]]:
    count = reader.u2()
    pool: dict[int, tuple[int, object]] = {}
    index = 1
    while index < count:
        tag = reader.u1()
        if tag == _CONSTANT_UTF8:
            raw = reader.take(reader.u2())
            # Modified UTF-8 only differs for NUL and supplementary characters
            pool[index] = (tag, raw.decode("utf-8", errors="replace"))
        elif tag == _CONSTANT_STRING:
            pool[index] = (tag, reader.u2())
        elif tag in _CONSTANT_SIZES:
            pool[index] = (tag, reader.take(_CONSTANT_SIZES[tag]))
        else:
            raise ClassFormatError(f"Unknown constant pool tag {tag} at index {index}")
        # Long and double constants occupy two slots
        index += 2 if tag in (_CONSTANT_LONG, _CONSTANT_DOUBLE) else 1
    return pool


def _utf8(pool: dict[int, tuple[int, object]], index: int) -> str:
    tag, value = pool.get(index, (None, None))
    if tag != _CONSTANT_UTF8:
        raise ClassFormatError(f"Constant {index} is not a UTF-8 entry")
    return value  # type: ignore[return-value]


def _read_attributes(reader: _Reader, pool: dict[int, tuple[int, object]]) -> dict[str, bytes]:
    attributes: dict[str, bytes] = {}
    for _ in range(reader.u2()):
        name = _utf8(pool, reader.u2())
        attributes[name] = reader.take(reader.u4())
    return attributes


def _iter_string_literals(code: bytes, pool: dict[int, tuple[int, object]]):
    pos = 0
    while pos < len(code):
        opcode = code[pos]
        if opcode in (_LDC, _LDC_W):
            if opcode == _LDC:
                index = code[pos + 1] if pos + 1 < len(code) else 0
            else:
                index = int.from_bytes(code[pos + 1 : pos + 3], "big")
            tag, value = pool.get(index, (None, None))
            if tag == _CONSTANT_STRING:
                yield _utf8(pool, value)  # type: ignore[arg-type]

        if opcode in (_TABLESWITCH, _LOOKUPSWITCH):
            base = pos + 1 + (-(pos + 1) % 4)
            if opcode == _TABLESWITCH:
                low, high = struct.unpack(">ii", code[base + 4 : base + 12])
                pos = base + 12 + 4 * (high - low + 1)
            else:
                (npairs,) = struct.unpack(">i", code[base + 4 : base + 8])
                pos = base + 8 + 8 * npairs
        elif opcode == _WIDE:
            pos += 6 if pos + 1 < len(code) and code[pos + 1] == _IINC else 4
        else:
            pos += _INSN_LENGTHS.get(opcode, 1)


def find_returned_string(class_bytes: bytes, method_name: str, descriptor: str) -> str | None:
    """Return the first string literal loaded by the named method.

    Returns None if the method does not exist, has no code, or loads no
    string constant.  Raises :class:`ClassFormatError` for undecodable bytes.
    """
    reader = _Reader(class_bytes)
    if reader.u4() != _MAGIC:
        raise ClassFormatError("Bad magic number")
    reader.skip(4)  # minor, major
    pool = _read_constant_pool(reader)

    reader.skip(6)  # access flags, this class, super class
    reader.skip(2 * reader.u2())  # interfaces

    for _ in range(reader.u2()):  # fields
        reader.skip(6)
        _read_attributes(reader, pool)

    for _ in range(reader.u2()):
        reader.skip(2)
        name = _utf8(pool, reader.u2())
        desc = _utf8(pool, reader.u2())
        attributes = _read_attributes(reader, pool)
        if name != method_name or desc != descriptor:
            continue

        code_attr = attributes.get("Code")
        if code_attr is None or len(code_attr) < 8:
            return None
        (code_length,) = struct.unpack(">I", code_attr[4:8])
        code = code_attr[8 : 8 + code_length]
        try:
            return next(_iter_string_literals(code, pool), None)
        except struct.error as e:
            raise ClassFormatError(f"Truncated bytecode in {method_name}{descriptor}") from e

    return None
