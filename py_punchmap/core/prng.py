"""
Seeded pseudo-random numbers for stable marker placement.

Marker positions must come out identical on every run for the same marker
id, so placement never touches Python's ``random`` or NumPy's generators.
The id is hashed with 32-bit FNV-1a and fed to a Mulberry32 generator.
"""

FNV_OFFSET = 0x811C9DC5
FNV_PRIME = 0x01000193


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


def _imul(a, b):
    """32-bit integer multiply with wrap-around."""
    return _uint32(a * b)


def hash_string(text: str) -> int:
    """32-bit FNV-1a hash of the UTF-8 bytes of ``text``. Order sensitive."""
    h = FNV_OFFSET
    for byte in str(text).encode("utf-8"):
        h ^= byte
        h = _imul(h, FNV_PRIME)
    return h


class Mulberry32:
    """
    Mulberry32 generator.

    Small-state generator with good enough distribution for rejection
    sampling; fully reproducible from its 32-bit seed.
    """

    def __init__(self, seed):
        if isinstance(seed, str):
            seed = hash_string(seed)
        self.state = _uint32(seed)
        self.call_count = 0

    def next_uint32(self) -> int:
        self.call_count += 1
        self.state = _uint32(self.state + 0x6D2B79F5)
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= _uint32(t + _imul(t ^ (t >> 7), t | 61))
        return _uint32(t ^ (t >> 14))

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        return self.next_uint32() / 4294967296.0

    def uniform(self, low: float, high: float) -> float:
        return low + self.random() * (high - low)
