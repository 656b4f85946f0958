"""
Base Service Interface

Services inherit from BaseService. Errors raised inside the service layer
derive from ServiceError.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from tradeplan.schemas.strategy import FailureKind

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Validated input conforming to InputT schema

        Returns:
            Output conforming to OutputT schema
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class TierError(ServiceError):
    """A strategy tier could not produce a strategy."""

    kind: FailureKind = FailureKind.INTERNAL_EXCEPTION


class TransportFailure(TierError):
    """Network error, auth error or timeout talking to the model provider."""

    kind = FailureKind.TRANSPORT_FAILURE


class MalformedResponse(TierError):
    """Provider answered, but the body is not a JSON object."""

    kind = FailureKind.MALFORMED_RESPONSE


class SchemaViolation(TierError):
    """Body is JSON but stays invalid after the repair pass."""

    kind = FailureKind.SCHEMA_VIOLATION
