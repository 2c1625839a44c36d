"""Authorization policies for the marketplace."""
from dataclasses import dataclass
from enum import Enum

from agrimarket.domain.common.errors import AuthorizationError


class ActorRole(str, Enum):
    """Roles an authenticated actor may hold."""
    FARMER = "farmer"
    BUYER = "buyer"
    EXPERT = "expert"
    ADMIN = "admin"


class Capability(str, Enum):
    """Operations gated by role rather than ownership."""
    LIST_PRODUCE = "list_produce"
    MAKE_OFFER = "make_offer"
    MODERATE = "moderate"  # act on listings the actor does not own


ROLE_CAPABILITIES: dict[ActorRole, frozenset[Capability]] = {
    ActorRole.FARMER: frozenset({Capability.LIST_PRODUCE, Capability.MAKE_OFFER}),
    ActorRole.BUYER: frozenset({Capability.MAKE_OFFER}),
    ActorRole.EXPERT: frozenset({Capability.MAKE_OFFER}),
    ActorRole.ADMIN: frozenset({Capability.LIST_PRODUCE, Capability.MODERATE}),
}


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the authentication layer."""
    id: str
    role: ActorRole

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())


def require_capability(actor: Actor, capability: Capability, message: str) -> None:
    """Raise AuthorizationError unless the actor's role grants the capability."""
    if not actor.can(capability):
        raise AuthorizationError(message)


def require_owner(actor: Actor, owner_id: str, message: str) -> None:
    """Only the owner may proceed."""
    if actor.id != owner_id:
        raise AuthorizationError(message)


def require_owner_or_moderator(actor: Actor, owner_id: str, message: str) -> None:
    """The owner, or an actor allowed to moderate, may proceed."""
    if actor.id != owner_id and not actor.can(Capability.MODERATE):
        raise AuthorizationError(message)
