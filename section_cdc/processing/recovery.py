from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Protocol, Type

from section_cdc.rows import ChangeKind, ChangeRow
from section_cdc.utils.exceptions import UnsupportedTypeError
from section_cdc.utils.logger import Logger

logger = Logger.child("recovery")


@dataclass
class RecoveryContext:
    """
    Snapshot of the handler at the moment a failure surfaced.

    ``rows`` is the handler's pending buffer itself, not a copy: it holds the
    rows of the failing run and everything not yet dispatched.
    """

    exception: BaseException
    schema: Optional[str]
    table: Optional[str]
    kind: Optional[ChangeKind]
    rows: List[ChangeRow]

    def describe(self) -> str:
        kind = self.kind.value if self.kind else None
        return (
            f"{type(self.exception).__name__} on {self.schema}.{self.table} "
            f"({kind}) with {len(self.rows)} pending rows: {self.exception}"
        )


class RecoveryPolicy(Protocol):
    """Decides whether the handler ignores a failure or lets it propagate."""

    def should_ignore(
        self,
        exception: BaseException,
        during_end_of_stream: bool,
        context: RecoveryContext,
    ) -> bool:
        """Return True to ignore the failure and keep processing."""
        ...


class PropagatePolicy:
    """Never ignore: every failure stops the stream."""

    def should_ignore(
        self,
        exception: BaseException,
        during_end_of_stream: bool,
        context: RecoveryContext,
    ) -> bool:
        logger.error(f"Propagating failure: {context.describe()}")
        return False


class IgnorePolicy:
    """Always ignore, leaving a warning with the recovery context."""

    def should_ignore(
        self,
        exception: BaseException,
        during_end_of_stream: bool,
        context: RecoveryContext,
    ) -> bool:
        where = " during end of stream" if during_end_of_stream else ""
        logger.warning(f"Ignoring failure{where}: {context.describe()}")
        return True


class MaxFailuresPolicy:
    """Ignore up to ``max_failures`` failures, then propagate."""

    def __init__(self, max_failures: int = 3):
        if max_failures < 0:
            raise ValueError("max_failures must not be negative")
        self.max_failures = max_failures
        self.failures = 0

    def should_ignore(
        self,
        exception: BaseException,
        during_end_of_stream: bool,
        context: RecoveryContext,
    ) -> bool:
        self.failures += 1
        if self.failures > self.max_failures:
            logger.error(
                f"Failure {self.failures} exceeds limit of {self.max_failures}, "
                f"propagating: {context.describe()}"
            )
            return False
        logger.warning(
            f"Ignoring failure {self.failures}/{self.max_failures}: {context.describe()}"
        )
        return True


class RecoveryPolicyFactory:
    """Registry-based factory for recovery policies."""

    REGISTRY: ClassVar[Dict[str, Type[Any]]] = {
        "propagate": PropagatePolicy,
        "ignore": IgnorePolicy,
        "max_failures": MaxFailuresPolicy,
    }

    @classmethod
    def register_policy(cls, name: str, policy_class: Type[Any]) -> None:
        cls.REGISTRY[name.lower()] = policy_class

    @classmethod
    def create(cls, policy_type: str, **kwargs: Any) -> RecoveryPolicy:
        """
        Create a recovery policy by name.

        Raises:
            UnsupportedTypeError: If the requested policy is not registered.
        """
        normalized_type = policy_type.lower()
        if normalized_type not in cls.REGISTRY:
            supported = list(cls.REGISTRY.keys())
            raise UnsupportedTypeError(
                f"Unsupported recovery policy: {policy_type}. Supported types: {supported}"
            )
        return cls.REGISTRY[normalized_type](**kwargs)
