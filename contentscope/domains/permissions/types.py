"""Permission-checker actions and field permission sets."""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from contentscope.domains.schemas.types import PRIMARY_KEY

ACTION_PREFIX = "plugin::content-manager.explorer."


class Action(str, Enum):
    """Actions the permission checker is asked about."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"

    @property
    def ability_action(self) -> str:
        """The grant action that authorises this action.

        Unpublishing is authorised by the publish grant.
        """
        name = Action.PUBLISH.value if self is Action.UNPUBLISH else self.value
        return f"{ACTION_PREFIX}{name}"


@dataclass(frozen=True)
class FieldPermissions:
    """Dotted field paths a caller may touch for one action on one content type.

    ``allowed`` of None means every field. A path is allowed when it or one of
    its prefixes is granted. A path is visible when it is allowed or when some
    granted path lies beneath it (a partially permitted component).
    The primary key is always allowed where its parent is visible.
    """

    allowed: Optional[FrozenSet[str]]

    @classmethod
    def everything(cls) -> "FieldPermissions":
        return cls(None)

    def allows(self, path: str) -> bool:
        if self.allowed is None:
            return True
        parts = path.split(".")
        if parts[-1] == PRIMARY_KEY and (len(parts) == 1 or self.visible(".".join(parts[:-1]))):
            return True
        return any(".".join(parts[:i]) in self.allowed for i in range(1, len(parts) + 1))

    def allows_below(self, path: str) -> bool:
        if self.allowed is None:
            return True
        return any(f.startswith(f"{path}.") for f in self.allowed)

    def visible(self, path: str) -> bool:
        return self.allows(path) or self.allows_below(path)
