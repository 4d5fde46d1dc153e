"""Per-segment and per-host generator wrappers.

Cluster commands are built either once per content id or once per host.
Callers say which by wrapping their callback in ``PerSegment`` or
``PerHost``; the same wrappers are used for argv generators, command
string generators and failure-message generators.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PerSegment(Generic[T]):
    """Generator called with a content id."""

    fn: Callable[[int], T]

    def __call__(self, content_id: int) -> T:
        return self.fn(content_id)


@dataclass(frozen=True)
class PerHost(Generic[T]):
    """Generator called with a hostname."""

    fn: Callable[[str], T]

    def __call__(self, hostname: str) -> T:
        return self.fn(hostname)


TargetGenerator = PerSegment[T] | PerHost[T]


def ensure_generator(generator: object, what: str = "generator") -> None:
    """Reject anything that is not a PerSegment or PerHost.

    Raises:
        TypeError: If a bare callable or other object was passed.
    """
    if not isinstance(generator, (PerSegment, PerHost)):
        raise TypeError(
            f"{what} must be wrapped in PerSegment or PerHost, "
            f"got {type(generator).__name__}"
        )
