"""Registry of resource functions.

Resource functions register themselves by Terraform type when their category
module is imported:

    @register_resource("network")
    def aws_vpc(synth, name, attributes=None):
        ...

Importing ``resource_classes.aws`` loads every AWS category.
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from modules.exceptions import UnknownResourceError

logger = logging.getLogger(__name__)


class RegistryEntry(NamedTuple):
    resource_type: str
    function: Callable
    provider: str
    category: str


class ResourceRegistry:
    """Explicit map of Terraform resource type to resource function."""

    def __init__(self):
        self._entries: Dict[str, RegistryEntry] = {}

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def register(
        self,
        resource_type: str,
        function: Callable,
        provider: str = "aws",
        category: str = "general",
    ) -> Callable:
        """Register a resource function.

        Registering the same type again with a different function replaces the
        earlier entry and logs a warning.
        """
        existing = self._entries.get(resource_type)
        if existing is not None and existing.function is not function:
            logger.warning(
                "Resource type %s re-registered, replacing %s.%s",
                resource_type,
                existing.function.__module__,
                existing.function.__name__,
            )
        self._entries[resource_type] = RegistryEntry(
            resource_type, function, provider, category
        )
        return function

    def get(self, resource_type: str) -> Callable:
        """Return the function for a resource type.

        Raises:
            UnknownResourceError: If the type has not been registered
        """
        entry = self._entries.get(resource_type)
        if entry is None:
            raise UnknownResourceError(
                f"Unknown resource type: {resource_type}",
                context={"resource_type": resource_type},
            )
        return entry.function

    def entry(self, resource_type: str) -> RegistryEntry:
        self.get(resource_type)
        return self._entries[resource_type]

    def is_registered(self, resource_type: str) -> bool:
        return resource_type in self._entries

    def resource_types(
        self, provider: Optional[str] = None, category: Optional[str] = None
    ) -> List[str]:
        """Sorted registered types, optionally filtered by provider and category."""
        return sorted(
            entry.resource_type
            for entry in self._entries.values()
            if (provider is None or entry.provider == provider)
            and (category is None or entry.category == category)
        )

    def categories(self, provider: Optional[str] = None) -> List[str]:
        return sorted(
            {
                entry.category
                for entry in self._entries.values()
                if provider is None or entry.provider == provider
            }
        )

    def declare(self, synth, resource_type: str, name: str, attributes=None):
        """Call the registered function for ``resource_type``."""
        return self.get(resource_type)(synth, name, attributes)


registry = ResourceRegistry()


def register_resource(
    category: str, provider: str = "aws", target: Optional[ResourceRegistry] = None
):
    """Decorator registering a resource function under its own name."""

    def decorator(function: Callable) -> Callable:
        destination = registry if target is None else target
        destination.register(function.__name__, function, provider, category)
        return function

    return decorator
