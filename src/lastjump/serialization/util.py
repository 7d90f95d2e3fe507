""" Low level helpers for the binary save file layout.

Everything is big endian. Strings and byte blobs are length prefixed.
"""

import io
import json
from typing import Any

import numpy as np
import msgpack # type: ignore

def int_to_f(x:int, f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    return f.write(x.to_bytes(blen, byteorder="big", signed=signed))

def int_from_f(f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    b = f.read(blen)
    if len(b) < blen:
        raise ValueError(f'expected {blen} bytes, got {len(b)}')
    return int.from_bytes(b, byteorder="big", signed=signed)

def bytes_to_f(b:bytes, f:io.IOBase, blen:int=4) -> int:
    prefix = len(b).to_bytes(blen, byteorder="big")
    i = f.write(prefix)
    i += f.write(b)
    return i

def bytes_from_f(f:io.IOBase, blen:int=4) -> bytes:
    l = int_from_f(f, blen=blen)
    b = f.read(l)
    if len(b) < l:
        raise ValueError(f'truncated, expected {l} bytes, got {len(b)}')
    return b

def to_len_pre_f(s:str, f:io.IOBase, blen:int=2) -> int:
    return bytes_to_f(s.encode("utf8"), f, blen=blen)

def from_len_pre_f(f:io.IOBase, blen:int=2) -> str:
    return bytes_from_f(f, blen=blen).decode("utf8")

def random_state_to_str(r:np.random.Generator) -> str:
    # PCG64 state holds 128 bit ints, which msgpack can't, so we go via json
    return json.dumps(r.bit_generator.state)

def random_state_from_str(s:str) -> np.random.Generator:
    state = json.loads(s)
    r = np.random.default_rng()
    r.bit_generator.state = state
    return r

def msgpack_to_f(obj:Any, f:io.IOBase) -> int:
    return bytes_to_f(msgpack.packb(obj, use_bin_type=True), f)

def msgpack_from_f(f:io.IOBase) -> Any:
    return msgpack.unpackb(bytes_from_f(f), raw=False, strict_map_key=False)
