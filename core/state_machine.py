"""Explicit ``(state, event) -> state`` transition tables."""

from enum import Enum
from typing import Dict, List, Tuple

from core.errors import InvalidTransitionException


def _label(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class TransitionTable:
    """Lookup is by label, so plain strings read back from the store match enum members."""

    def __init__(self, name: str, transitions: Dict[Tuple[Enum, Enum], Enum]):
        self.name = name
        self._transitions = {(_label(state), _label(event)): target for (state, event), target in transitions.items()}

    def can(self, state, event) -> bool:
        return (_label(state), _label(event)) in self._transitions

    def apply(self, state, event):
        """Return the next state or raise ``InvalidTransitionException``."""
        try:
            return self._transitions[(_label(state), _label(event))]
        except KeyError:
            raise InvalidTransitionException(
                f"{self.name}: cannot apply '{_label(event)}' in status '{_label(state)}'"
            ) from None

    def advance(self, state, event):
        """Return the next state, or ``state`` unchanged when the event does not apply."""
        return self._transitions.get((_label(state), _label(event)), state)

    def events_from(self, state) -> List[str]:
        return [event for (source, event) in self._transitions if source == _label(state)]
