"""
Capability interface for session validation modules.
"""
from abc import ABC, abstractmethod

from ...chain import Contract


class SessionValidationModule(Contract, ABC):
    """
    Checks a proposed call against the opaque scope stored in a session leaf.

    One implementation exists per asset class. Implementations are pure:
    they keep no state and evaluate each call independently.
    """

    @abstractmethod
    def validate_session_params(
        self,
        destination: str,
        value: int,
        call_payload: bytes,
        scope_data: bytes
    ) -> bool:
        """
        Args:
            destination: Contract the account is about to call
            value: Native value attached to the call
            call_payload: Data of the inner call
            scope_data: Scope blob from the session leaf

        Returns:
            True if the call is within scope
        """
        ...
