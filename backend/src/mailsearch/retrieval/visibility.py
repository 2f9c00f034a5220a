"""
BCC visibility policies.

A policy decides which participant fields a given admin may match a
participant address against. ``from``, ``to`` and ``cc`` are always
searchable; only BCC is gated.

The active rule is ``FirmContextBccPolicy``: any admin with a firm domain may
match BCC for any participant. ``SameDomainBccPolicy`` is the stricter rule
(BCC only for participants inside the admin's own firm) and is kept as an
alternate implementation for comparison; it is never selected implicitly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mailsearch.domain.models import FIELD_BCC, FIELD_CC, FIELD_FROM, FIELD_TO

ALWAYS_VISIBLE_FIELDS = (FIELD_FROM, FIELD_TO, FIELD_CC)


def email_domain(email: str | None) -> str:
    """Lower-cased part after the last '@', or '' when there is none."""
    if not email:
        return ""
    at = email.rfind("@")
    if at == -1 or at == len(email) - 1:
        return ""
    return email[at + 1 :].strip().lower()


class VisibilityPolicy(ABC):
    """Decides which message fields are searchable for a participant."""

    name: str = "abstract"

    @abstractmethod
    def bcc_visible(self, participant: str, admin_firm_domain: str | None) -> bool:
        """Whether BCC may be matched for this participant/admin pair."""

    def eligible_fields(
        self, participant: str, admin_firm_domain: str | None
    ) -> tuple[str, ...]:
        """Searchable fields in fixed order: from, to, cc, then bcc if allowed."""
        if self.bcc_visible(participant, admin_firm_domain):
            return ALWAYS_VISIBLE_FIELDS + (FIELD_BCC,)
        return ALWAYS_VISIBLE_FIELDS


class FirmContextBccPolicy(VisibilityPolicy):
    """BCC is searchable whenever the admin supplies a non-blank firm domain."""

    name = "firm-context"

    def bcc_visible(self, participant: str, admin_firm_domain: str | None) -> bool:
        return bool(admin_firm_domain and admin_firm_domain.strip())


class SameDomainBccPolicy(VisibilityPolicy):
    """BCC is searchable only for participants in the admin's own domain."""

    name = "same-domain"

    def bcc_visible(self, participant: str, admin_firm_domain: str | None) -> bool:
        if not admin_firm_domain or not admin_firm_domain.strip():
            return False
        domain = email_domain(participant)
        return bool(domain) and domain == admin_firm_domain.strip().lower()


DEFAULT_POLICY: VisibilityPolicy = FirmContextBccPolicy()
