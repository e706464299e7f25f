"""Service layer - business rules on top of the repositories."""

from src.taskcore.services.authorization import Authorizer, Operation
from src.taskcore.services.container import CoreServices, open_services

__all__ = ["Authorizer", "CoreServices", "Operation", "open_services"]
