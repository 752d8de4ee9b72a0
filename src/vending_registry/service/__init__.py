"""Registration service and its typed outcomes."""

from vending_registry.service.outcomes import RegistrationOutcome, StatusOutcome
from vending_registry.service.registration import RegistrationService

__all__ = ["RegistrationOutcome", "RegistrationService", "StatusOutcome"]
