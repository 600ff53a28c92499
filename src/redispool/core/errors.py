"""
Error Registry for redispool

Structured error definitions for the pool engine and the Redis facades.
Every error carries a stable code, a catalog definition with a resolution
hint, free-form context and the underlying cause.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional, Any
from datetime import datetime


class ErrorCode(Enum):
    """Error codes for redispool"""

    # Factory Errors (1000-1999)
    FACTORY_CREATE_FAILED = "RP1001"
    CIRCUIT_BREAKER_OPEN = "RP1002"
    FACTORY_DESTROY_FAILED = "RP1003"

    # Pool Errors (2000-2999)
    INVALID_RESOURCE = "RP2001"
    ACQUIRE_TIMEOUT = "RP2002"
    POOL_DRAINING = "RP2003"
    POOL_SHUTDOWN = "RP2004"
    POOL_EXHAUSTED = "RP2005"
    RESOURCE_VALIDATION_FAILED = "RP2006"

    # Configuration Errors (3000-3999)
    CONFIG_VALIDATION_FAILED = "RP3001"


@dataclass
class ErrorDefinition:
    """Catalog entry for one error code"""
    code: ErrorCode
    message: str
    retryable: bool = False
    resolution_hint: Optional[str] = None


ERROR_CATALOG: Dict[ErrorCode, ErrorDefinition] = {
    ErrorCode.FACTORY_CREATE_FAILED: ErrorDefinition(
        code=ErrorCode.FACTORY_CREATE_FAILED,
        message="Resource factory failed to create a resource",
        retryable=True,
        resolution_hint="Check that the backend is reachable and the credentials are valid",
    ),
    ErrorCode.CIRCUIT_BREAKER_OPEN: ErrorDefinition(
        code=ErrorCode.CIRCUIT_BREAKER_OPEN,
        message="Resource creation suspended after repeated factory failures",
        retryable=True,
        resolution_hint="Wait for the circuit recovery timeout or fix the backend",
    ),
    ErrorCode.FACTORY_DESTROY_FAILED: ErrorDefinition(
        code=ErrorCode.FACTORY_DESTROY_FAILED,
        message="Resource factory failed to destroy a resource",
    ),
    ErrorCode.INVALID_RESOURCE: ErrorDefinition(
        code=ErrorCode.INVALID_RESOURCE,
        message="Resource is not currently borrowed from this pool",
        resolution_hint="Only release or destroy resources obtained from acquire(), and only once",
    ),
    ErrorCode.ACQUIRE_TIMEOUT: ErrorDefinition(
        code=ErrorCode.ACQUIRE_TIMEOUT,
        message="Timed out waiting for a pooled resource",
        retryable=True,
        resolution_hint="Raise max_size or acquire_timeout, or release resources sooner",
    ),
    ErrorCode.POOL_DRAINING: ErrorDefinition(
        code=ErrorCode.POOL_DRAINING,
        message="Pool is draining and no longer accepts acquire calls",
    ),
    ErrorCode.POOL_SHUTDOWN: ErrorDefinition(
        code=ErrorCode.POOL_SHUTDOWN,
        message="Pool has been shut down",
    ),
    ErrorCode.POOL_EXHAUSTED: ErrorDefinition(
        code=ErrorCode.POOL_EXHAUSTED,
        message="Too many callers are already waiting for a resource",
        retryable=True,
        resolution_hint="Raise max_waiting or max_size",
    ),
    ErrorCode.RESOURCE_VALIDATION_FAILED: ErrorDefinition(
        code=ErrorCode.RESOURCE_VALIDATION_FAILED,
        message="No resource passed validation within the allowed attempts",
        retryable=True,
        resolution_hint="Check backend health; resources keep failing validation",
    ),
    ErrorCode.CONFIG_VALIDATION_FAILED: ErrorDefinition(
        code=ErrorCode.CONFIG_VALIDATION_FAILED,
        message="Invalid pool configuration",
    ),
}


class PoolError(Exception):
    """Base exception for redispool with structured error information"""

    error_code: ErrorCode = ErrorCode.FACTORY_CREATE_FAILED

    def __init__(self,
                 custom_message: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None,
                 error_code: Optional[ErrorCode] = None):
        """
        Initialize pool error

        Args:
            custom_message: Optional message overriding the catalog message
            context: Additional context information (pool name, priority, ...)
            cause: The underlying exception that caused this error
            error_code: Overrides the class-level error code
        """
        if error_code is not None:
            self.error_code = error_code
        self.definition = ERROR_CATALOG[self.error_code]
        self.context = context or {}
        self.cause = cause
        self.custom_message = custom_message
        self.timestamp = datetime.utcnow()
        super().__init__(custom_message or self.definition.message)

    @property
    def message(self) -> str:
        return self.custom_message or self.definition.message

    @property
    def retryable(self) -> bool:
        return self.definition.retryable

    @property
    def resolution_hint(self) -> Optional[str]:
        return self.definition.resolution_hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "resolution_hint": self.resolution_hint,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        base_msg = f"[{self.error_code.value}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (context: {context_str})"
        return base_msg


class FactoryCreateError(PoolError):
    """Raised to the waiter whose resource creation failed"""
    error_code = ErrorCode.FACTORY_CREATE_FAILED


class CircuitOpenError(FactoryCreateError):
    """Raised when creation is suspended by the circuit breaker"""
    error_code = ErrorCode.CIRCUIT_BREAKER_OPEN


class FactoryDestroyError(PoolError):
    """Reported (never raised to callers) when destroying a resource fails"""
    error_code = ErrorCode.FACTORY_DESTROY_FAILED


class InvalidResourceError(PoolError):
    """Raised when releasing or destroying a resource the pool has not lent out"""
    error_code = ErrorCode.INVALID_RESOURCE


class AcquireTimeoutError(PoolError):
    """Raised when a waiter exceeds its maximum wait"""
    error_code = ErrorCode.ACQUIRE_TIMEOUT


class PoolDrainingError(PoolError):
    """Raised by acquire once drain() has been called"""
    error_code = ErrorCode.POOL_DRAINING


class PoolShutdownError(PoolError):
    """Raised by operations attempted after clear()/end()"""
    error_code = ErrorCode.POOL_SHUTDOWN


class PoolExhaustedError(PoolError):
    """Raised when the waiter queue is full"""
    error_code = ErrorCode.POOL_EXHAUSTED


class ResourceValidationError(PoolError):
    """Raised when a waiter exhausts its validation attempts"""
    error_code = ErrorCode.RESOURCE_VALIDATION_FAILED


class ConfigurationError(PoolError):
    """Raised for invalid facade or pool configuration"""
    error_code = ErrorCode.CONFIG_VALIDATION_FAILED
