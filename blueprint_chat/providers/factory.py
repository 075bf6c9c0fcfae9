"""Provider factory with decorator-based registry.

Store and retriever implementations are registered with
``@register_provider("component", "provider_name")`` and discovered when
the factory creates instances.

Example::

    @register_provider("store", "file")
    class FileBlueprintStore(BaseBlueprintStore):
        ...

    store = ProviderFactory.create("store", "file", config=store_config)
"""

from __future__ import annotations

from typing import Any

# Global registry: (component, provider) → implementation class
_REGISTRY: dict[tuple[str, str], type] = {}


def register_provider(component: str, provider: str):
    """Class decorator that registers a provider implementation.

    Args:
        component: Component type, ``"store"`` or ``"retriever"``.
        provider: Provider name, e.g. ``"supabase"``, ``"file"``, ``"local"``.
    """

    def wrapper(cls: type) -> type:
        _REGISTRY[(component, provider)] = cls
        return cls

    return wrapper


class ProviderFactory:
    """Creates provider instances from config using the registry."""

    @staticmethod
    def create(component: str, provider: str, **kwargs: Any) -> Any:
        """Instantiate a registered provider, forwarding *kwargs*.

        Raises:
            ValueError: If no implementation is registered for the
                *(component, provider)* combination.
        """
        ensure_providers_imported()
        key = (component, provider)
        if key not in _REGISTRY:
            available = [k[1] for k in _REGISTRY if k[0] == component]
            raise ValueError(
                f"No provider registered for ({component}, {provider}). "
                f"Available {component} providers: {available}"
            )
        return _REGISTRY[key](**kwargs)

    @staticmethod
    def available(component: str | None = None) -> list[tuple[str, str]]:
        """List registered (component, provider) pairs."""
        ensure_providers_imported()
        if component:
            return [k for k in _REGISTRY if k[0] == component]
        return list(_REGISTRY)


def ensure_providers_imported() -> None:
    """Import concrete providers to trigger ``@register_provider``."""
    import blueprint_chat.providers.retriever.local_retriever  # noqa: F401
    import blueprint_chat.providers.retriever.supabase_retriever  # noqa: F401
    import blueprint_chat.providers.store.file_store  # noqa: F401
    import blueprint_chat.providers.store.supabase_store  # noqa: F401
