from typing import Callable, Dict, Hashable


class EdgeDetector:
    """
    Tracks released -> pressed transitions so a held key counts once.
    """
    def __init__(self) -> None:
        self._prev: Dict[Hashable, bool] = {}

    def rising(self, key: Hashable, current: bool) -> bool:
        prev = self._prev.get(key, False)
        self._prev[key] = current
        return (not prev) and current

    def reset(self) -> None:
        self._prev.clear()


class ActionBindings:
    """
    Bind key names to actions.
    Actions are callables that take no args.
    """
    def __init__(self) -> None:
        self._bindings: Dict[str, Callable[[], None]] = {}

    def bind(self, name: str, action: Callable[[], None]) -> None:
        self._bindings[name] = action

    def run(self, name: str) -> bool:
        action = self._bindings.get(name)
        if action:
            action()
            return True
        return False

