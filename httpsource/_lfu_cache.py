from collections import OrderedDict, defaultdict
from typing import DefaultDict, Dict, Generic, Iterator, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")

__all__ = ["LFUCache"]


class LFUCache(Generic[K, V]):
    """
    Fixed-capacity mapping that evicts the least frequently used key,
    oldest first among equally used keys.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")

        self.capacity = capacity
        self.cache: Dict[K, Tuple[V, int]] = {}
        self.freq_count: DefaultDict[int, "OrderedDict[K, V]"] = defaultdict(OrderedDict)
        self.min_freq = 0

    def _touch(self, key: K, value: V) -> None:
        _, freq = self.cache[key]
        self.freq_count[freq].pop(key)
        if not self.freq_count[freq]:
            del self.freq_count[freq]
            if freq == self.min_freq:
                self.min_freq += 1
        freq += 1
        self.freq_count[freq][key] = value
        self.cache[key] = (value, freq)

    def get(self, key: K) -> V:
        if key not in self.cache:
            raise KeyError(f"Key {key} not found")
        value, _ = self.cache[key]
        self._touch(key, value)
        return value

    def put(self, key: K, value: V) -> None:
        if key in self.cache:
            self._touch(key, value)
            return

        if len(self.cache) == self.capacity:
            evicted_key, _ = self.freq_count[self.min_freq].popitem(last=False)
            if not self.freq_count[self.min_freq]:
                del self.freq_count[self.min_freq]
            del self.cache[evicted_key]

        self.cache[key] = (value, 1)
        self.freq_count[1][key] = value
        self.min_freq = 1

    def remove_key(self, key: K) -> None:
        if key not in self.cache:
            return
        _, freq = self.cache.pop(key)
        self.freq_count[freq].pop(key)
        if not self.freq_count[freq]:
            del self.freq_count[freq]
            if freq == self.min_freq:
                self.min_freq += 1

    def __contains__(self, key: object) -> bool:
        return key in self.cache

    def __len__(self) -> int:
        return len(self.cache)

    def __iter__(self) -> Iterator[K]:
        yield from list(self.cache)
