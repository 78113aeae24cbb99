"""
Hook set supplied by the caller: the transport mechanics the core drives.

`create` and `destroy` are required; `on_open`, `on_close` and `on_fail` are
optional. All of them are called synchronously from the core:

    create(core, first_open) -> handle
    destroy(handle)
    on_open(handle, first_open)
    on_close(handle)
    on_fail(err)

`create` must not block. The handle it returns reports back through
`core.did_open()`, `core.did_close()` and `core.did_error(err)`.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

from reconnecting_socket.exceptions import HookContractError

REQUIRED_HOOKS = ("create", "destroy")
OPTIONAL_HOOKS = ("on_open", "on_close", "on_fail")


@dataclass(frozen=True)
class HookSet:
    create: Callable[[Any, bool], Any]
    destroy: Callable[[Any], None]
    on_open: Optional[Callable[[Any, bool], None]] = None
    on_close: Optional[Callable[[Any], None]] = None
    on_fail: Optional[Callable[[BaseException], None]] = None

    def __post_init__(self):
        for name in REQUIRED_HOOKS:
            if not callable(getattr(self, name)):
                raise HookContractError(f"hook {name!r} is required and must be callable")
        for name in OPTIONAL_HOOKS:
            hook = getattr(self, name)
            if hook is not None and not callable(hook):
                raise HookContractError(f"hook {name!r} must be callable or None")

    @classmethod
    def from_object(cls, obj: Any) -> "HookSet":
        """Collect hooks from any object exposing them as methods or attributes."""
        missing = [name for name in REQUIRED_HOOKS if getattr(obj, name, None) is None]
        if missing:
            raise HookContractError(
                f"{type(obj).__name__} does not implement required hooks: {', '.join(missing)}",
                context={"missing": missing},
            )
        hooks = {name: getattr(obj, name, None) for name in REQUIRED_HOOKS + OPTIONAL_HOOKS}
        return cls(**hooks)
