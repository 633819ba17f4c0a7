"""
Key derivation for deadswitch.

Key material is scoped to an owner through a derivation path built from the
owner's identity. The derivation itself belongs to an external service; this
module only decides whether a request may reach it, and turns any failure of
the service into DerivationServiceUnavailable.

LocalKeyDerivationService is a development stand-in built on PyNaCl:
BLAKE2b keyed with a master seed derives a 32-byte seed per path, which is
used as an Ed25519 signing key and sealed to the caller's transport key for
release.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence

from nacl.encoding import RawEncoder
from nacl.hash import blake2b
from nacl.public import PublicKey, SealedBox
from nacl.signing import SigningKey
from nacl.utils import random as random_bytes

from .errors import DeadSwitchError, DerivationServiceUnavailable, ValidationError
from .gates import AuthorizationGate
from .identity import Principal
from .logging_config import audit_log
from .util import b64d, b64e

logger = logging.getLogger(__name__)

TRANSPORT_KEY_BYTES = 32
MAX_CONTEXT_SEGMENTS = 8
MAX_SEGMENT_BYTES = 64


def derivation_path(owner: Principal, context: Sequence[bytes] = ()) -> List[bytes]:
    """Derivation path for an owner: the owner identity, then any caller context."""
    return [owner.as_bytes()] + [bytes(seg) for seg in context]


@dataclass(frozen=True)
class DerivationRequest:
    """
    A request for key material.

    transport_public_key is the caller's X25519 public key; derived key
    material is only ever released sealed to it.
    """
    transport_public_key: bytes
    context: List[bytes] = field(default_factory=list)

    def validate(self) -> "DerivationRequest":
        if len(self.transport_public_key) != TRANSPORT_KEY_BYTES:
            raise ValidationError("transport_public_key", f"must be {TRANSPORT_KEY_BYTES} bytes")
        if len(self.context) > MAX_CONTEXT_SEGMENTS:
            raise ValidationError("context", f"must not exceed {MAX_CONTEXT_SEGMENTS} segments")
        if any(len(seg) > MAX_SEGMENT_BYTES for seg in self.context):
            raise ValidationError("context", f"segments must not exceed {MAX_SEGMENT_BYTES} bytes")
        return self


class KeyDerivationService(ABC):
    """
    Abstract interface to the threshold key-derivation collaborator.

    sign is part of the collaborator contract but no gated operation
    exposes it yet; key release and public key lookup go through
    KeyDerivationGateway.
    """

    @abstractmethod
    def public_key(self, path: List[bytes]) -> bytes:
        pass

    @abstractmethod
    def encrypted_key(self, path: List[bytes], transport_public_key: bytes) -> bytes:
        """Derived key material for path, encrypted to transport_public_key."""
        pass

    @abstractmethod
    def sign(self, path: List[bytes], message: bytes) -> bytes:
        pass


class LocalKeyDerivationService(KeyDerivationService):
    """
    Development key derivation from a single master seed.

    Not a threshold scheme: whoever holds the master seed holds every key.
    """

    def __init__(self, master_seed: bytes, key_name: str = "dev_test_key"):
        if len(master_seed) != 32:
            raise ValueError("master seed must be 32 bytes")
        self._master_seed = master_seed
        self.key_name = key_name

    def _seed_for(self, path: List[bytes]) -> bytes:
        data = self.key_name.encode("utf-8")
        for seg in path:
            data += len(seg).to_bytes(4, "big") + seg
        return blake2b(data, digest_size=32, key=self._master_seed, encoder=RawEncoder)

    def public_key(self, path: List[bytes]) -> bytes:
        return bytes(SigningKey(self._seed_for(path)).verify_key)

    def encrypted_key(self, path: List[bytes], transport_public_key: bytes) -> bytes:
        return SealedBox(PublicKey(transport_public_key)).encrypt(self._seed_for(path))

    def sign(self, path: List[bytes], message: bytes) -> bytes:
        return SigningKey(self._seed_for(path)).sign(message).signature

    @classmethod
    def from_file(cls, path: str) -> "LocalKeyDerivationService":
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(b64d(raw["seed_b64"]), key_name=raw.get("key_name", "dev_test_key"))


def write_master_seed(path: str, key_name: str) -> None:
    """Generate a fresh development master seed file."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"key_name": key_name, "seed_b64": b64e(random_bytes(32))}, f, indent=2)


class KeyDerivationGateway:
    """
    Gated access to the key-derivation service.

    Every call re-runs the key-derivation gate; nothing about a previous grant
    is remembered.
    """

    def __init__(self, gate: AuthorizationGate, service: KeyDerivationService):
        self.gate = gate
        self.service = service

    def derive_authorized_key(
        self,
        caller: Principal,
        owner_scope: Principal,
        request: DerivationRequest
    ) -> bytes:
        """
        Release key material scoped to owner_scope, sealed to the caller's
        transport key.

        Raises:
            AccessDeniedError: If the key-derivation gate denies the caller
            ValidationError: If the request is malformed
            DerivationServiceUnavailable: If the derivation service fails
        """
        request.validate()
        decision = self.gate.authorize_key_derivation(caller, owner_scope)
        decision.raise_for_denial()

        path = derivation_path(owner_scope, request.context)
        encrypted = self._call(lambda: self.service.encrypted_key(path, request.transport_public_key))
        audit_log.key_derivation(caller.masked(), owner_scope.masked(), "encrypted_key")
        return encrypted

    def vault_public_key(self, caller: Principal) -> bytes:
        """The caller's own vault public key. The owner gate always grants self-access."""
        decision = self.gate.authorize_key_derivation(caller, caller)
        decision.raise_for_denial()
        public_key = self._call(lambda: self.service.public_key(derivation_path(caller)))
        audit_log.key_derivation(caller.masked(), caller.masked(), "public_key")
        return public_key

    @staticmethod
    def _call(fn):
        try:
            return fn()
        except DeadSwitchError:
            raise
        except Exception as e:
            logger.warning("key derivation service failed", exc_info=True)
            raise DerivationServiceUnavailable(f"Key derivation failed: {e}") from e


class MissingKeyDerivationService(KeyDerivationService):
    """Placeholder when no derivation backend is configured."""

    def public_key(self, path: List[bytes]) -> bytes:
        raise RuntimeError("no key derivation service configured")

    def encrypted_key(self, path: List[bytes], transport_public_key: bytes) -> bytes:
        raise RuntimeError("no key derivation service configured")

    def sign(self, path: List[bytes], message: bytes) -> bytes:
        raise RuntimeError("no key derivation service configured")


def get_key_derivation_service(master_seed_path: str) -> KeyDerivationService:
    """
    Factory for the configured derivation service.

    Without a master seed file every derivation call reports the service as
    unavailable.
    """
    if not os.path.exists(master_seed_path):
        return MissingKeyDerivationService()
    return LocalKeyDerivationService.from_file(master_seed_path)

