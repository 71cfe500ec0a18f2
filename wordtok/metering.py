import numpy as np
from abc import (
    ABC,
    abstractmethod
)


class Meter(ABC):
    @abstractmethod
    def reset(self) -> None:
        pass

    @abstractmethod
    def add(self, value: float, n: int = 1) -> None:
        pass

    @abstractmethod
    def value(self) -> float | tuple[float, float]:
        pass


class AverageValueMeter(Meter):
    """Running mean and sample standard deviation of the added values."""

    def __init__(self) -> None:
        super().__init__()
        self.reset()

    def add(self, value: float, n: int = 1) -> None:
        # n repeats the same value n times
        for _ in range(n):
            self.n += 1
            delta = value - self.mean
            self.mean += delta / self.n
            self.m_s += delta * (value - self.mean)

    def value(self) -> tuple[float, float]:
        if self.n == 0:
            return np.nan, np.nan
        if self.n == 1:
            return self.mean, np.inf
        return self.mean, float(np.sqrt(self.m_s / (self.n - 1.0)))

    def reset(self) -> None:
        self.n: int = 0
        self.mean: float = 0.0
        self.m_s: float = 0.0


class RatioMeter(Meter):
    """Share of hits among everything counted, e.g. unknown tokens among all tokens."""

    def __init__(self) -> None:
        super().__init__()
        self.reset()

    def add(self, value: float, n: int = 1) -> None:
        self.hits += value
        self.total += n

    def value(self) -> float:
        if self.total == 0:
            return np.nan
        return self.hits / self.total

    def reset(self) -> None:
        self.hits: float = 0.0
        self.total: int = 0
