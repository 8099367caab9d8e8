"""
Dependency Injection Container.
"""

from dependency_injector import containers, providers

from src.core.di.modules.core import CoreContainer
from src.core.di.modules.entitlements import EntitlementsContainer


class Container(containers.DeclarativeContainer):
    """
    Dependency Injection Container.

    This container manages the lifecycle of all application components
    (services, repositories, database connections, etc).
    """

    # Wiring configuration
    wiring_config = containers.WiringConfiguration(
        modules=[
            "src.modules.entitlements.api.v1.entitlements",
            "src.modules.entitlements.api.v1.tiers",
        ]
    )

    core = providers.Container(CoreContainer)

    entitlements = providers.Container(EntitlementsContainer, core=core)

