"""
Escrow Store

Holds the owner's encrypted secret inside their will record. The ciphertext
is opaque: it is stored and returned byte for byte, never inspected.
"""

from typing import Optional

from .errors import NotFoundError
from .identity import Principal
from .logging_config import audit_log
from .registry import WillRegistry
from .validation import validate_secret


class EscrowStore:

    def __init__(self, registry: WillRegistry):
        self.registry = registry

    def update_secret(self, caller: Principal, ciphertext: bytes) -> None:
        """
        Replace the caller's own escrowed secret.

        The record is looked up by the caller's identity, so only an owner can
        ever reach their own secret through this path.

        Raises:
            NotFoundError: If the caller has no will
        """
        ciphertext = validate_secret(ciphertext, "ciphertext") or b""
        if caller.is_anonymous() or not self.registry.set_secret(caller, ciphertext):
            raise NotFoundError()
        audit_log.secret_updated(caller.masked(), len(ciphertext))

    def read_secret(self, owner: Principal, will_id: str) -> Optional[bytes]:
        """
        For the claim orchestrator only.

        Returns b"" when nothing is escrowed, and None when the owner has no
        will or has re-registered since will_id was read (the escrow belongs
        to a different will now).
        """
        record = self.registry.get(owner)
        if record is None or record.will_id != will_id:
            return None
        return record.encrypted_secret or b""
