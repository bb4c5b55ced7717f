"""
Endpoint registry: logical roles bound to discovered control points.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .core import AXIS_ROLES, Role
from .errors import EndpointMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """Resolved control point tagged with its role."""

    role: Role
    uuid: str
    handle: Any


class EndpointRegistry:
    """Role -> Endpoint mapping for one connection session."""

    def __init__(self) -> None:
        self._endpoints: Dict[Role, Endpoint] = {}

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, role: Role) -> bool:
        return role in self._endpoints

    @property
    def roles(self) -> frozenset:
        return frozenset(self._endpoints)

    def bind(self, role: Role, handle: Any) -> Endpoint:
        """Store a resolved control point under its role.

        A late rebind replaces the earlier handle.
        """
        endpoint = Endpoint(role=role, uuid=role.uuid, handle=handle)
        if role in self._endpoints:
            logger.debug(f"Rebinding endpoint {role.name}")
        self._endpoints[role] = endpoint
        return endpoint

    def match(self, uuid: str, handle: Any) -> Optional[Endpoint]:
        """Bind a discovered characteristic if its UUID is a known role.

        Returns:
            The new Endpoint, or None for unknown characteristics
        """
        role = Role.from_uuid(uuid)
        if role is None:
            logger.debug(f"Ignoring unknown characteristic {uuid}")
            return None
        return self.bind(role, handle)

    def get(self, role: Role) -> Optional[Endpoint]:
        return self._endpoints.get(role)

    def require(self, role: Role) -> Endpoint:
        """Get the endpoint for a role.

        Raises:
            EndpointMissing: If the role was never resolved
        """
        endpoint = self._endpoints.get(role)
        if endpoint is None:
            raise EndpointMissing(role)
        return endpoint

    def has_all(self, roles: Iterable[Role] = AXIS_ROLES) -> bool:
        return all(role in self._endpoints for role in roles)

    def clear(self) -> None:
        self._endpoints.clear()
