# runtime/rng.py
from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from zlib import crc32

import numpy as np


def _u32(x: int) -> int:
    return int(x & 0xFFFFFFFF)


def _crc32_u32(s: str) -> int:
    return _u32(crc32(s.encode("utf-8")))


@dataclass(frozen=True)
class RNGKey:
    """Stream name plus optional vehicle ids/tags, normalised to u32 words."""

    stream: str
    parts: tuple[int, ...]

    @classmethod
    def from_parts(cls, stream: str, *parts: object) -> RNGKey:
        words: list[int] = [_crc32_u32(stream)]
        for p in parts:
            if isinstance(p, (int, np.integer)):
                words.append(_u32(int(p)))
            else:
                # vehicle ids are usually strings; anything else by repr
                words.append(_crc32_u32(p if isinstance(p, str) else repr(p)))
        return cls(stream=stream, parts=tuple(words))


class RNGRegistry:
    """
    Deterministic numpy Generators keyed by stream, so each vehicle's
    filter draws from its own source regardless of arrival interleaving.
    Seed path: [master_seed, scenario, *key.parts]
    """

    def __init__(self, master_seed: int, *, scenario: str | int = 0):
        self.master_seed = _u32(master_seed)
        self.scenario_tag = _crc32_u32(str(scenario))

    @cache
    def generator(self, key: RNGKey) -> np.random.Generator:
        ss = np.random.SeedSequence(entropy=[self.master_seed, self.scenario_tag, *key.parts])
        return np.random.Generator(np.random.PCG64(ss))

    def stream(self, name: str) -> np.random.Generator:
        return self.generator(RNGKey.from_parts(name))

    def vehicle(self, vehicle_id: str | int) -> np.random.Generator:
        return self.generator(RNGKey.from_parts("vehicle", vehicle_id))
