from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from ..core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class Option(Generic[T]):
    value: T
    label: str


@dataclass
class Select(Generic[T]):
    """A dropdown value holder.

    The caller passes ``on_change``; it runs whenever ``choose`` switches to a
    different value (e.g. to submit the surrounding form).
    """

    options: List[Option[T]]
    value: Optional[T] = None
    on_change: Optional[Callable[[T], None]] = None
    placeholder: str = ""

    def __post_init__(self) -> None:
        if self.value is not None and self.value not in self.values:
            raise ValueError(f"Initial value {self.value!r} is not one of the options")

    @property
    def values(self) -> List[T]:
        return [o.value for o in self.options]

    @property
    def selected(self) -> Optional[Option[T]]:
        for option in self.options:
            if option.value == self.value:
                return option
        return None

    @property
    def label(self) -> str:
        selected = self.selected
        return selected.label if selected else self.placeholder

    def choose(self, value: T) -> bool:
        """Select ``value``. Returns True if the selection changed."""
        if value not in self.values:
            raise ValueError(f"{value!r} is not one of the options")
        if value == self.value:
            return False
        self.value = value
        logger.debug(f"Select changed to {value!r}")
        if self.on_change is not None:
            self.on_change(value)
        return True
