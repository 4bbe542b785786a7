"""LZW stream compression with 8-bit literals and LSB-first code packing.

The encoding is fixed so archives stay portable:

- literal width 8, so code 256 is CLEAR and 257 is EOF
- codes start 9 bits wide and grow to at most 12 bits
- codes are packed least significant bit first
- a CLEAR code starts every stream and is emitted again whenever the
  table reaches code 4095, after which the table is reset
- the stream ends with an EOF code and is padded to a whole byte

This is the layout produced by Go's ``compress/lzw`` writer in LSB mode
with a literal width of 8.
"""

import io

from ..__util__ import CompressionError

LIT_WIDTH = 8
CLEAR = 1 << LIT_WIDTH
EOF = CLEAR + 1
MAX_WIDTH = 12
MAX_CODE = (1 << MAX_WIDTH) - 1


class LzwWriter:
    """File-like compressor forwarding LZW codes to an underlying writer.

    ``close`` must be called to emit the trailing code and the EOF marker.
    Closing does not close the underlying writer.
    """

    def __init__(self, sink) -> None:
        self._sink = sink
        self._bits = 0
        self._nbits = 0
        self._out = bytearray()
        self._table: dict[int, int] = {}
        self._saved = None
        self._closed = False
        self.bytes_in = 0
        self.bytes_out = 0
        self._reset()

    def _reset(self) -> None:
        self._width = LIT_WIDTH + 1
        self._hi = EOF
        self._overflow = 1 << (LIT_WIDTH + 1)
        self._table.clear()

    def _emit(self, code: int) -> None:
        self._bits |= code << self._nbits
        self._nbits += self._width
        while self._nbits >= 8:
            self._out.append(self._bits & 0xFF)
            self._bits >>= 8
            self._nbits -= 8

    def _inc_hi(self) -> bool:
        """Advance the next free code; False when the table was reset."""
        self._hi += 1
        if self._hi == self._overflow:
            self._width += 1
            self._overflow <<= 1
        if self._hi == MAX_CODE:
            self._emit(CLEAR)
            self._reset()
            return False
        return True

    def _flush(self) -> None:
        if not self._out:
            return
        data = bytes(self._out)
        self._out.clear()
        try:
            self._sink.write(data)
        except Exception as e:
            raise CompressionError(f"Writing compressed data failed: {e}") from e
        self.bytes_out += len(data)

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self._closed:
            raise CompressionError("write to closed compressor")
        if not data:
            return 0
        data = memoryview(data).cast("B")
        start = 0
        code = self._saved
        if code is None:
            self._emit(CLEAR)
            code = data[0]
            start = 1

        table = self._table
        for i in range(start, len(data)):
            literal = data[i]
            key = (code << 8) | literal
            hit = table.get(key)
            if hit is not None:
                code = hit
                continue
            self._emit(code)
            code = literal
            if self._inc_hi():
                table[key] = self._hi

        self._saved = code
        self.bytes_in += len(data)
        self._flush()
        return len(data)

    def close(self) -> None:
        """Write the pending code, the EOF code and the final partial byte."""
        if self._closed:
            return
        self._closed = True
        if self._saved is not None:
            self._emit(self._saved)
            self._inc_hi()
        else:
            self._emit(CLEAR)
        self._emit(EOF)
        if self._nbits > 0:
            self._out.append(self._bits & 0xFF)
            self._bits = 0
            self._nbits = 0
        self._flush()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None:
            self.close()


def compress(data: bytes) -> bytes:
    """Compress ``data`` in one call."""
    buffer = io.BytesIO()
    with LzwWriter(buffer) as writer:
        writer.write(data)
    return buffer.getvalue()


def decompress(data: bytes) -> bytes:
    """Decode a complete LZW stream produced by ``LzwWriter``."""
    out = bytearray()
    table: dict[int, bytes] = {}
    width = LIT_WIDTH + 1
    hi = EOF
    overflow = 1 << width
    last = None
    bits = 0
    nbits = 0

    for byte in data:
        bits |= byte << nbits
        nbits += 8
        while nbits >= width:
            code = bits & ((1 << width) - 1)
            bits >>= width
            nbits -= width

            if code == CLEAR:
                width = LIT_WIDTH + 1
                hi = EOF
                overflow = 1 << width
                last = None
                table.clear()
                continue
            if code == EOF:
                return bytes(out)

            if code < CLEAR:
                entry = bytes((code,))
            elif code in table:
                entry = table[code]
            elif code == hi and last is not None:
                entry = last + last[:1]
            else:
                raise CompressionError(f"invalid LZW code {code}")

            out += entry
            if last is not None:
                table[hi] = last + entry[:1]
            last = entry
            hi += 1
            if hi >= overflow:
                if width == MAX_WIDTH:
                    last = None
                    hi -= 1
                else:
                    width += 1
                    overflow <<= 1

    raise CompressionError("LZW stream ended without EOF code")
