"""
Weight tables for the n-tuple network, with binary save/load.

File format (little-endian):
    uint32 table count
    per table: uint64 length, then `length` float32 weights
"""

import logging
import os
import sys
from typing import List

import numpy as np

logger = logging.getLogger(__name__)

NUM_TABLES = 8
TABLE_SIZE = 15 ** 4  # 50625: four cells, ranks 0..14 each


def _read_array(f, dtype: str, count: int, path: str) -> np.ndarray:
    """Read `count` items of `dtype`; a short read means the file is truncated, which is fatal."""
    itemsize = np.dtype(dtype).itemsize
    buf = f.read(itemsize * count)
    if len(buf) != itemsize * count:
        logger.error(f"Truncated weight file: {path} (expected {itemsize * count} bytes, got {len(buf)})")
        sys.exit(-1)
    return np.frombuffer(buf, dtype=dtype)


class WeightStore:
    """Fixed collection of float32 weight tables addressed by tuple-index."""

    def __init__(self, tables: List[np.ndarray] = None):
        self.tables: List[np.ndarray] = list(tables) if tables is not None else []

    @classmethod
    def init_tables(cls, count: int = NUM_TABLES, size: int = TABLE_SIZE) -> "WeightStore":
        store = cls([np.zeros(size, dtype=np.float32) for _ in range(count)])
        logger.info(f"Initialized {count} weight tables of size {size}")
        return store

    def __len__(self) -> int:
        return len(self.tables)

    def __getitem__(self, table: int) -> np.ndarray:
        return self.tables[table]

    def get(self, table: int, index: int) -> float:
        return float(self.tables[table][index])

    def set(self, table: int, index: int, value: float) -> None:
        self.tables[table][index] = value

    def add(self, table: int, index: int, delta: float) -> None:
        self.tables[table][index] += delta

    def save(self, path: str) -> None:
        """Write all tables to `path`. An unopenable file is fatal."""
        try:
            out = open(path, "wb")
        except OSError as e:
            logger.error(f"Cannot open weight file for writing: {path} ({e})")
            sys.exit(-1)

        with out:
            out.write(np.array([len(self.tables)], dtype="<u4").tobytes())
            for table in self.tables:
                out.write(np.array([table.size], dtype="<u8").tobytes())
                out.write(table.astype("<f4").tobytes())
        logger.info(f"Saved {len(self.tables)} weight tables to {path}")

    @classmethod
    def load(cls, path: str) -> "WeightStore":
        """Read tables written by save(). An unopenable or truncated file is fatal."""
        try:
            f = open(path, "rb")
        except OSError as e:
            logger.error(f"Cannot open weight file for reading: {path} ({e})")
            sys.exit(-1)

        tables = []
        with f:
            count = int(_read_array(f, "<u4", 1, path)[0])
            for _ in range(count):
                size = int(_read_array(f, "<u8", 1, path)[0])
                tables.append(_read_array(f, "<f4", size, path).astype(np.float32))
        logger.info(f"Loaded {count} weight tables from {path} ({os.path.getsize(path)} bytes)")
        return cls(tables)
