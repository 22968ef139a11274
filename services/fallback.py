"""
Fallback Chain Module

Runs a storage operation against an ordered list of backends until one
succeeds. Each run is recorded as a small state machine:

    IDLE -> ATTEMPT_PRIMARY -> SUCCESS
                            -> ATTEMPT_FALLBACK -> SUCCESS | FAIL
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from config import settings
from data.protocols import PostStorage
from utils.exceptions import NetworkError, StorageError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class AttemptState(str, Enum):
    IDLE = "idle"
    ATTEMPT_PRIMARY = "attempt_primary"
    ATTEMPT_FALLBACK = "attempt_fallback"
    SUCCESS = "success"
    FAIL = "fail"


@dataclass
class ChainOutcome:
    """Record of one run through the chain."""
    operation: str
    state: AttemptState = AttemptState.IDLE
    backend: Optional[str] = None      # Name of the backend that succeeded
    transitions: List[AttemptState] = field(default_factory=lambda: [AttemptState.IDLE])
    errors: Dict[str, str] = field(default_factory=dict)

    def move_to(self, state: AttemptState) -> None:
        self.state = state
        self.transitions.append(state)


class FallbackChain:
    """Ordered backends tried in turn; failures are logged, not surfaced."""

    def __init__(self, backends: Sequence[Tuple[str, PostStorage]]):
        """
        Initialize the chain.

        Args:
            backends: ``(name, backend)`` pairs, primary first

        Raises:
            ValueError: If no backend is given
        """
        if not backends:
            raise ValueError("FallbackChain needs at least one backend")
        self.backends = list(backends)
        self.last_outcome: Optional[ChainOutcome] = None

    @classmethod
    def from_order(cls, available: Dict[str, PostStorage], order: Optional[List[str]] = None) -> "FallbackChain":
        """
        Build a chain from named backends in the configured order.

        Args:
            available: Backends by name
            order: Names to use, defaults to settings.BACKEND_ORDER; names
                without a backend are skipped

        Returns:
            FallbackChain: The ordered chain
        """
        order = order if order is not None else settings.BACKEND_ORDER
        backends = [(name, available[name]) for name in order if name in available]
        skipped = [name for name in order if name not in available]
        if skipped:
            logger.warning(f"Backends not available, skipping: {', '.join(skipped)}")
        return cls(backends)

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.backends]

    def run(self, operation: str, call: Callable[[PostStorage], T]) -> T:
        """
        Run ``call`` against each backend until one returns.

        Args:
            operation: Name used in logs and errors, e.g. ``create_post``
            call: Function taking a backend and performing the operation

        Returns:
            Whatever the first successful backend returned

        Raises:
            StorageError: If every backend failed
        """
        outcome = ChainOutcome(operation=operation)
        self.last_outcome = outcome

        for index, (name, backend) in enumerate(self.backends):
            outcome.move_to(AttemptState.ATTEMPT_PRIMARY if index == 0 else AttemptState.ATTEMPT_FALLBACK)
            try:
                result = call(backend)
            except (StorageError, NetworkError) as e:
                outcome.errors[name] = str(e)
                logger.warning(f"{operation} failed on {name} backend: {e}")
                continue

            outcome.backend = name
            outcome.move_to(AttemptState.SUCCESS)
            if index > 0:
                logger.info(f"{operation} succeeded on fallback backend {name}")
            return result

        outcome.move_to(AttemptState.FAIL)
        details = "; ".join(f"{name}: {error}" for name, error in outcome.errors.items())
        logger.error(f"{operation} failed on every backend ({details})")
        raise StorageError(f"{operation} failed on every backend: {details}")
