"""File-backed certificate store for certificate-based client authentication.

A *store* is a directory of PEM files. Each ``*.pem``, ``*.crt`` or
``*.cer`` file holds one client certificate (the first certificate in the
file; any further certificates are its chain). The matching private key is
read from the same file or, failing that, from a sibling ``<stem>.key``.

:meth:`CertificateStore.find` mirrors a certificate-store lookup by name:

1. keep certificates whose subject distinguished name or common name
   equals the configured reference, ignoring case and spacing around
   the RDN separators;
2. keep those that are time-valid at the lookup instant;
3. return the one with the most recent ``not_before`` -- the newest-issued
   certificate wins, so a renewed certificate dropped next to the old one
   is picked up without touching the settings.

The resulting :class:`CertificateHandle` converts into the
``client_credential`` mapping expected by
:class:`msal.ConfidentialClientApplication`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from daemon_console.exceptions import CertificateNotFoundError

logger = logging.getLogger(__name__)

CERTIFICATE_SUFFIXES = (".pem", ".crt", ".cer")

_PRIVATE_KEY_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.+?-----END \1PRIVATE KEY-----", re.DOTALL
)

_RDN_SEPARATOR = re.compile(r"(?<!\\),")


def _normalise_dn(dn: str) -> tuple[str, ...]:
    """Split a distinguished name into case-folded ``type=value`` parts."""
    parts = []
    for rdn in _RDN_SEPARATOR.split(dn):
        attr, sep, value = rdn.partition("=")
        if sep:
            parts.append(f"{attr.strip().casefold()}={value.strip().casefold()}")
        elif rdn.strip():
            parts.append(rdn.strip().casefold())
    return tuple(parts)


@dataclass(frozen=True)
class CertificateHandle:
    """A loaded client certificate together with its private key.

    Attributes:
        subject: Subject distinguished name in RFC 4514 form.
        common_name: Value of the subject's CN attribute, if any.
        thumbprint: Upper-case hex SHA-1 fingerprint of the DER encoding.
        not_before: Start of the validity window (UTC).
        not_after: End of the validity window (UTC).
        certificate_pem: The certificate, PEM encoded.
        private_key_pem: The private key, PKCS#8 PEM encoded.
        source: File the certificate was read from.
    """

    subject: str
    common_name: Optional[str]
    thumbprint: str
    not_before: datetime
    not_after: datetime
    certificate_pem: str = field(repr=False)
    private_key_pem: str = field(repr=False)
    source: Optional[Path] = None

    def is_valid_at(self, when: datetime) -> bool:
        """Return True if *when* falls inside the validity window."""
        return self.not_before <= when <= self.not_after

    def matches(self, reference: str) -> bool:
        """Return True if *reference* names this certificate's subject or CN.

        Subject references are compared attribute by attribute, so
        ``CN=daemon-app, O=Contoso`` matches the RFC 4514 form
        ``O=Contoso,CN=daemon-app`` in either RDN order.
        """
        wanted = _normalise_dn(reference)
        subject = _normalise_dn(self.subject)
        if wanted in (subject, subject[::-1]):
            return True
        cn = reference.strip().casefold()
        return self.common_name is not None and cn == self.common_name.casefold()

    def to_client_credential(self) -> dict[str, Any]:
        """Build the ``client_credential`` mapping for MSAL certificate auth."""
        return {
            "private_key": self.private_key_pem,
            "thumbprint": self.thumbprint,
            "public_certificate": self.certificate_pem,
        }


def load_certificate(cert: x509.Certificate, private_key: Any, source: Optional[Path] = None) -> CertificateHandle:
    """Wrap a parsed certificate and its key into a :class:`CertificateHandle`."""
    cn_attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    common_name = str(cn_attrs[0].value) if cn_attrs else None
    key_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return CertificateHandle(
        subject=cert.subject.rfc4514_string(),
        common_name=common_name,
        thumbprint=cert.fingerprint(hashes.SHA1()).hex().upper(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        certificate_pem=cert.public_bytes(serialization.Encoding.PEM).decode("ascii"),
        private_key_pem=key_pem.decode("ascii"),
        source=source,
    )


def _load_private_key(path: Path, pem: bytes) -> Any:
    """Return the private key stored alongside the certificate, or None."""
    block = _PRIVATE_KEY_BLOCK.search(pem)
    if block is not None:
        key_path, key_pem = path, block.group(0)
    else:
        key_path = path.with_suffix(".key")
        if not key_path.is_file():
            return None
        key_pem = key_path.read_bytes()
    try:
        return serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as exc:
        logger.warning("Cannot load private key %s: %s", key_path, exc)
        return None


class CertificateStore:
    """Read-only view of a directory of PEM client certificates.

    Args:
        path: The store directory. It is read on every :meth:`find`, so
            certificates added while the process runs are visible.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def certificates(self) -> list[CertificateHandle]:
        """Load every certificate in the store that has a usable private key.

        Files that do not parse, or whose key cannot be found, are skipped
        with a warning.
        """
        if not self._path.is_dir():
            return []

        handles: list[CertificateHandle] = []
        for path in sorted(self._path.iterdir()):
            if path.suffix.lower() not in CERTIFICATE_SUFFIXES or not path.is_file():
                continue
            pem = path.read_bytes()
            try:
                chain = x509.load_pem_x509_certificates(pem)
            except ValueError as exc:
                logger.warning("Skipping %s: not a PEM certificate (%s)", path, exc)
                continue
            key = _load_private_key(path, pem)
            if key is None:
                logger.warning("Skipping %s: no private key found", path)
                continue
            handles.append(load_certificate(chain[0], key, source=path))
        return handles

    def find(self, reference: str, at: Optional[datetime] = None) -> CertificateHandle:
        """Select the newest currently valid certificate matching *reference*.

        Args:
            reference: Subject DN or common name to look for.
            at: Instant the validity window is checked against; defaults to
                now (UTC).

        Returns:
            The matching certificate with the latest ``not_before``.

        Raises:
            CertificateNotFoundError: If no certificate matches, or none of
                the matches is currently valid.
        """
        when = at or datetime.now(timezone.utc)
        named = [c for c in self.certificates() if c.matches(reference)]
        current = [c for c in named if c.is_valid_at(when)]
        if not current:
            detail = (
                f"{len(named)} match(es), none currently valid"
                if named
                else "no matching certificate"
            )
            raise CertificateNotFoundError(
                f"Certificate '{reference}' not found in {self._path} ({detail})"
            )
        chosen = max(current, key=lambda c: c.not_before)
        logger.debug("Selected certificate %s (%s)", chosen.thumbprint, chosen.source)
        return chosen
