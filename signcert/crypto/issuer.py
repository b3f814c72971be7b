"""Issue a leaf certificate signed by an existing CA.

The private key, CSR and certificate are written next to each other:
  <output-dir>/<CN>_key.pem, <output-dir>/<CN>.csr, <output-dir>/<CN>.crt
The CSR only lives for the duration of the signing step.
"""
from __future__ import annotations

import ipaddress
import os
from datetime import datetime, timedelta, timezone
from typing import Iterable, NamedTuple, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519, rsa

from signcert.config import IssueRequest, SanEntry
from signcert.crypto import pki
from signcert.crypto.ca import IssuanceError, load_ca_key, read_serial, write_serial

KEY_SIZE = 2048


class IssuedCertificate(NamedTuple):
	key_path: str
	cert_path: str


def parse_ipv4(value: str) -> ipaddress.IPv4Address:
	"""Parse a dotted-quad address, accepting zero-padded octets like 010."""
	octets = value.split(".")
	try:
		numbers = [int(octet, 10) for octet in octets]
	except ValueError:
		raise IssuanceError(f"invalid IP address in SAN: {value}")
	if len(numbers) != 4 or any(n > 255 for n in numbers):
		raise IssuanceError(f"invalid IP address in SAN: {value}")
	return ipaddress.IPv4Address(bytes(numbers))


def subject_name(cn: str) -> x509.Name:
	try:
		return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
	except ValueError as e:
		raise IssuanceError(f"invalid common name {cn!r}: {e}") from e


def validity_window(duration: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
	"""Return (not_before, not_after) for a certificate valid `duration` days."""
	if now is None:
		now = datetime.now(timezone.utc)
	try:
		return now - timedelta(minutes=1), now + timedelta(days=duration)
	except OverflowError:
		raise IssuanceError(f"duration of {duration} days ends past the year 9999")


def build_san_extension(sans: Iterable[SanEntry]) -> x509.SubjectAlternativeName:
	names = []
	for entry in sans:
		if entry.type == "IP":
			names.append(x509.IPAddress(parse_ipv4(entry.value)))
		elif entry.type == "DNS":
			names.append(x509.DNSName(entry.value))
		else:
			raise IssuanceError(f"unsupported SAN type: {entry.type}")
	return x509.SubjectAlternativeName(names)


def _write_pem(path: str, data: bytes, private: bool = False) -> None:
	mode = 0o600 if private else 0o644
	try:
		fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
		with os.fdopen(fd, "wb") as f:
			if private:
				# O_CREAT only applies the mode to new files
				os.fchmod(f.fileno(), mode)
			f.write(data)
	except OSError as e:
		raise IssuanceError(f"cannot write {path}: {e.strerror}") from e


def generate_key(key_path: str) -> rsa.RSAPrivateKey:
	"""Generate an RSA key and store it unencrypted, readable by the owner only."""
	key = rsa.generate_private_key(public_exponent=65537, key_size=KEY_SIZE)
	_write_pem(key_path, key.private_bytes(
		encoding=serialization.Encoding.PEM,
		format=serialization.PrivateFormat.TraditionalOpenSSL,
		encryption_algorithm=serialization.NoEncryption()
	), private=True)
	return key


def generate_csr(key: rsa.RSAPrivateKey, cn: str, csr_path: str) -> None:
	csr = x509.CertificateSigningRequestBuilder().subject_name(
		subject_name(cn)
	).sign(key, hashes.SHA256())
	_write_pem(csr_path, csr.public_bytes(serialization.Encoding.PEM))


def _signing_algorithm(ca_key):
	# EdDSA keys sign without a separate digest
	if isinstance(ca_key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
		return None
	return hashes.SHA256()


def _authority_key_identifier(ca_cert: x509.Certificate) -> x509.AuthorityKeyIdentifier:
	try:
		ski = ca_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
	except x509.ExtensionNotFound:
		return x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_cert.public_key())
	return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)


def sign_csr(request: IssueRequest, ca_key_password: Optional[bytes] = None) -> x509.Certificate:
	"""Sign the CSR at request.csr_path with the CA and store the certificate."""
	try:
		with open(request.csr_path, "rb") as f:
			csr = x509.load_pem_x509_csr(f.read())
		ca_cert = pki.load_pem_cert(request.ca_cert)
	except OSError as e:
		raise IssuanceError(f"cannot read {e.filename}: {e.strerror}") from e
	except ValueError as e:
		raise IssuanceError(f"cannot load CSR or CA certificate: {e}") from e
	if not csr.is_signature_valid:
		raise IssuanceError("CSR signature is invalid")

	ca_key = load_ca_key(request.ca_key, ca_key_password)
	serial = read_serial(request.ca_serial) + 1

	not_before, not_after = validity_window(request.duration)
	cert_builder = x509.CertificateBuilder()
	cert_builder = cert_builder.subject_name(csr.subject)
	cert_builder = cert_builder.issuer_name(ca_cert.subject)
	cert_builder = cert_builder.public_key(csr.public_key())
	cert_builder = cert_builder.serial_number(serial)
	cert_builder = cert_builder.not_valid_before(not_before)
	cert_builder = cert_builder.not_valid_after(not_after)
	if request.sans:
		cert_builder = cert_builder.add_extension(build_san_extension(request.sans), critical=False)
	cert_builder = cert_builder.add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
	cert_builder = cert_builder.add_extension(
		x509.SubjectKeyIdentifier.from_public_key(csr.public_key()), critical=False
	)
	cert_builder = cert_builder.add_extension(_authority_key_identifier(ca_cert), critical=False)

	try:
		cert = cert_builder.sign(private_key=ca_key, algorithm=_signing_algorithm(ca_key))
	except (TypeError, ValueError) as e:
		raise IssuanceError(f"signing failed: {e}") from e

	write_serial(request.ca_serial, serial)
	_write_pem(request.cert_path, cert.public_bytes(serialization.Encoding.PEM))
	return cert


def issue_cert(request: IssueRequest, ca_key_password: Optional[bytes] = None) -> IssuedCertificate:
	# reject bad input before anything is written
	subject_name(request.cn)
	validity_window(request.duration)
	if request.sans:
		print(f"Subject Alternative Names: {request.san_extension_text()}")
		build_san_extension(request.sans)

	print("Generating private key...")
	key = generate_key(request.key_path)

	print("Generating CSR...")
	generate_csr(key, request.cn, request.csr_path)

	try:
		print("Signing certificate...")
		sign_csr(request, ca_key_password)
	finally:
		os.remove(request.csr_path)

	print("Certificate signed successfully:")
	print(f"  Private Key: {request.key_path}")
	print(f"  Certificate: {request.cert_path}")
	return IssuedCertificate(request.key_path, request.cert_path)
