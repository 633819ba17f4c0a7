"""
Caller identities.

A Principal is an opaque identifier supplied by the hosting environment.
The anonymous principal is reserved: it stands for "no caller" and never
matches an owner or beneficiary.
"""

from dataclasses import dataclass

from .util import constant_time_compare, mask_sensitive

ANONYMOUS_TEXT = "anonymous"


@dataclass(frozen=True)
class Principal:
    """Opaque, globally unique caller identifier."""
    text: str

    def is_anonymous(self) -> bool:
        return not self.text or self.text == ANONYMOUS_TEXT

    def as_bytes(self) -> bytes:
        return self.text.encode("utf-8")

    def masked(self) -> str:
        return mask_sensitive(self.text, visible_chars=6)

    def __str__(self) -> str:
        return self.text

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(ANONYMOUS_TEXT)

    @classmethod
    def from_text(cls, text: str) -> "Principal":
        return cls((text or "").strip() or ANONYMOUS_TEXT)


ANONYMOUS = Principal.anonymous()


def same_identity(a: Principal, b: Principal) -> bool:
    """
    Constant-time identity comparison.

    Always False when either side is anonymous, so the sentinel can never
    stand in for a legitimate owner or beneficiary.
    """
    if a is None or b is None or a.is_anonymous() or b.is_anonymous():
        return False
    return constant_time_compare(a.text, b.text)
