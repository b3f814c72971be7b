"""X.509 checks run on a freshly issued certificate.

Functions:
- load_pem_cert(path_or_bytes): load a PEM certificate from path or bytes
- is_signed_by(cert, ca_cert): verify cert was issued and signed by ca_cert
- is_within_validity(cert, now=None): check notBefore/notAfter
- matches_cn_or_san(cert, expected_cn): check CN or SAN DNSName matches expected
- validate_certificate(cert_pem, ca_pem, expected_cn=None): convenience validator
"""

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.x509.oid import NameOID
from datetime import datetime, timezone
from typing import Union


def load_pem_cert(data: Union[str, bytes]) -> x509.Certificate:
	"""Load an X.509 certificate from a file path or from PEM bytes."""
	if isinstance(data, str):
		# treat as path
		with open(data, "rb") as f:
			data = f.read()
	return x509.load_pem_x509_certificate(data)


def is_signed_by(cert: x509.Certificate, ca_cert: x509.Certificate) -> bool:
	"""Return True if `cert` names `ca_cert` as issuer and its signature verifies.

	Works for RSA, EC and EdDSA CA keys. Does not build chains.
	"""
	try:
		cert.verify_directly_issued_by(ca_cert)
	except (ValueError, TypeError, InvalidSignature):
		return False
	return True


def is_within_validity(cert: x509.Certificate, now: datetime | None = None) -> bool:
	"""Return True if certificate is within its not_valid_before/after window."""
	if now is None:
		now = datetime.now(timezone.utc)
	return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def matches_cn_or_san(cert: x509.Certificate, expected_cn: str) -> bool:
	"""Return True if `expected_cn` matches certificate CN or DNS SAN entries."""
	cn_attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
	if cn_attrs and cn_attrs[0].value == expected_cn:
		return True

	try:
		ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
	except x509.ExtensionNotFound:
		return False
	return expected_cn in ext.value.get_values_for_type(x509.DNSName)


def validate_certificate(cert_pem: Union[str, bytes], ca_pem: Union[str, bytes], expected_cn: str | None = None) -> None:
	"""Validate certificate against the CA and optional expected CN.

	Raises ValueError with a short reason on failure. Returns None on success.
	Reasons:
	  - 'BAD_SIGNATURE' : not issued/signed by the CA
	  - 'EXPIRED'       : certificate is outside validity window
	  - 'CN_MISMATCH'   : expected CN not found in CN or SAN
	"""
	cert = load_pem_cert(cert_pem)
	ca = load_pem_cert(ca_pem)

	if not is_signed_by(cert, ca):
		raise ValueError("BAD_SIGNATURE")

	if not is_within_validity(cert):
		raise ValueError("EXPIRED")

	if expected_cn is not None and not matches_cn_or_san(cert, expected_cn):
		raise ValueError("CN_MISMATCH")
