"""Database models for the application."""

# Import models in the correct order to avoid circular dependencies
from eckwms.models.instance import Instance
from eckwms.models.scan import Scan
