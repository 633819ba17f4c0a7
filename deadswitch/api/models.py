from typing import List, Optional

from pydantic import BaseModel, Field


class RegisterWillRequest(BaseModel):
    beneficiary: str
    payout_address: str
    heartbeat_interval_seconds: int
    encrypted_secret_b64: Optional[str] = None


class UpdateSecretRequest(BaseModel):
    ciphertext_b64: str


class DeriveKeyRequest(BaseModel):
    transport_public_key_b64: str
    context_b64: List[str] = Field(default_factory=list)


class AckResponse(BaseModel):
    message: str


class HeartbeatResponse(BaseModel):
    last_active: int


class WillStatusResponse(BaseModel):
    will_id: str
    beneficiary: str
    heartbeat_interval: int
    last_active: int
    time_remaining: int
    is_expired: bool
    state: str
    has_secret: bool


class InheritanceInfo(BaseModel):
    owner: str
    payout_address: str
    heartbeat_interval: int
    last_active: int
    time_remaining: int
    is_expired: bool


class ClaimResponse(BaseModel):
    owner: str
    secret_b64: str
    first_claim: bool


class DerivedKeyResponse(BaseModel):
    encrypted_key_b64: str


class VaultPublicKeyResponse(BaseModel):
    public_key_hex: str


class VaultBalanceResponse(BaseModel):
    address: str
    network: str
    balance: int
