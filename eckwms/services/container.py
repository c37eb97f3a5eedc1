"""Service container for dependency injection."""

import logging
from typing import Dict, Any

from flask import current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'eckwms_container'


class ServiceContainer:
    """Container for application services, built lazily per app."""

    def __init__(self, config):
        """Initialize the service container.

        Args:
            config: Application config mapping handed to services
        """
        self.config = config
        self._services: Dict[str, Any] = {}

    def register(self, name: str, service: Any) -> None:
        """Register a service in the container.

        Args:
            name: Name of the service
            service: The service instance
        """
        self._services[name] = service

    def get(self, name: str) -> Any:
        """Get a service from the container by name.

        Args:
            name: Name of the service

        Returns:
            The service instance

        Raises:
            KeyError: if no such service is known
        """
        if name in self._services:
            return self._services[name]

        init_method = getattr(self, f"_init_{name}", None)
        if init_method is None:
            raise KeyError(f"Unknown service: {name}")

        service = init_method()
        self._services[name] = service
        return service

    def _init_instance_repository(self):
        from eckwms.models.instance_repository import SqlAlchemyInstanceRepository
        return SqlAlchemyInstanceRepository()

    def _init_scan_repository(self):
        from eckwms.models.scan_repository import SqlAlchemyScanRepository
        return SqlAlchemyScanRepository()

    def _init_instance_service(self):
        from eckwms.services.instance_service import InstanceService
        return InstanceService(
            self.get('instance_repository'),
            self.get('scan_repository'),
            self.config
        )

    def _init_retention_service(self):
        from eckwms.services.retention_service import RetentionService
        return RetentionService(self.get('scan_repository'), self.config)

    def _init_scan_service(self):
        from eckwms.services.scan_service import ScanService
        return ScanService(
            self.get('scan_repository'),
            self.config,
            retention_service=self.get('retention_service')
        )


def init_container(app):
    """Attach a fresh service container to the app."""
    app.extensions[EXTENSION_KEY] = ServiceContainer(app.config)
    logger.debug("Service container initialized")


def container():
    """Get the service container of the current app.

    Returns:
        ServiceContainer: The service container instance
    """
    return current_app.extensions[EXTENSION_KEY]
