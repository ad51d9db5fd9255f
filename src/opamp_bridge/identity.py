from __future__ import annotations
import uuid

from uuid6 import uuid7


class IdentityError(RuntimeError):
    """Raised when no instance id could be generated. The bridge cannot run without one."""


def new_instance_id() -> uuid.UUID:
    try:
        u = uuid7()
    except Exception as e:
        raise IdentityError(f"failed to generate instance id: {e}") from e
    if u.int == 0:
        raise IdentityError("generated instance id is the nil UUID")
    return u


class InstanceId:
    """Time-ordered agent instance id.

    The value is only ever the one generated at construction or a freshly
    regenerated one; it cannot be assigned from outside.
    """

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value = new_instance_id()

    def current(self) -> uuid.UUID:
        return self._value

    def regenerate(self) -> uuid.UUID:
        self._value = new_instance_id()
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"InstanceId({self._value})"
