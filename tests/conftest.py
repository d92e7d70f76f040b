import pytest


class FixedRandom:
    """Returns the same value on every call."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class ScriptedRandom:
    """Returns the given values in order, then repeats the last one."""

    def __init__(self, *values: float):
        self.values = list(values)
        self.calls = 0

    def random(self) -> float:
        index = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[index]


@pytest.fixture
def fixed_rng():
    return FixedRandom


@pytest.fixture
def scripted_rng():
    return ScriptedRandom
