"""
Registry of named remote-invocable actions.

Connectors register actions under ``<Name>::<Group>::<Verb>`` keys, e.g.
``VLC::Endpoint::Set``.  The host exposes them (POST /action/{name}) so a
remote control or script can reconfigure a connector without the UI.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Action:
    name: str
    handler: Callable[..., Any]
    label: str = ""
    description: str = ""


class ActionRegistry:

    def __init__(self):
        self._actions: dict[str, Action] = {}

    def register(self, name: str, handler: Callable[..., Any], *,
                 label: str = "", description: str = "") -> Action:
        if name in self._actions:
            raise ValueError(f"Action '{name}' is already registered")
        action = Action(name, handler, label, description)
        self._actions[name] = action
        logger.debug("Registered action %s", name)
        return action

    def unregister(self, name: str) -> None:
        self._actions.pop(name, None)

    def get(self, name: str) -> Action | None:
        return self._actions.get(name)

    def names(self) -> list[str]:
        return sorted(self._actions)

    def invoke(self, name: str, *args):
        """Run action *name*.  Raises KeyError for an unknown action."""
        action = self._actions.get(name)
        if action is None:
            raise KeyError(name)
        logger.info("Invoking action %s%s", name, args)
        return action.handler(*args)
