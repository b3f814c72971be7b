"""CA material used to sign a leaf certificate.

Functions:
- load_ca_key(path, password=None): load the CA private key, asking for a
  passphrase when the key is encrypted and none was given
- read_serial(path) / write_serial(path, serial): OpenSSL-style hex serial file
"""
from __future__ import annotations

import os
from getpass import getpass
from typing import Callable, Optional

from cryptography.hazmat.primitives.serialization import load_pem_private_key


class IssuanceError(Exception):
	"""Raised when a certificate cannot be issued."""


def load_ca_key(path: str, password: Optional[bytes] = None,
				ask: Callable[[str], str] = getpass):
	"""Load the CA private key from a PEM file.

	An encrypted key uses `password`, then CA_KEY_PASSWORD from the
	environment, then a passphrase prompt.
	"""
	try:
		with open(path, "rb") as f:
			data = f.read()
	except OSError as e:
		raise IssuanceError(f"cannot read CA key {path}: {e.strerror}") from e

	try:
		return load_pem_private_key(data, password=None)
	except TypeError:
		pass  # encrypted, needs a pass phrase
	except ValueError as e:
		raise IssuanceError(f"cannot load CA key {path}: {e}") from e

	if password is None and os.getenv("CA_KEY_PASSWORD"):
		password = os.getenv("CA_KEY_PASSWORD").encode()
	if password is None:
		password = ask(f"Enter pass phrase for {path}: ").encode()
	try:
		return load_pem_private_key(data, password=password)
	except (TypeError, ValueError) as e:
		raise IssuanceError(f"cannot load CA key {path}: {e}") from e


def read_serial(path: str) -> int:
	"""Return the serial stored in `path` (hexadecimal, as OpenSSL writes it)."""
	try:
		with open(path, "r") as f:
			text = f.read().strip()
	except OSError as e:
		raise IssuanceError(f"cannot read CA serial file {path}: {e.strerror}") from e
	if not text:
		raise IssuanceError(f"CA serial file {path} is empty")
	try:
		return int(text, 16)
	except ValueError:
		raise IssuanceError(f"CA serial file {path} does not hold a hex serial: {text!r}")


def format_serial(serial: int) -> str:
	digits = format(serial, "X")
	if len(digits) % 2:
		digits = "0" + digits
	return digits


def write_serial(path: str, serial: int) -> None:
	try:
		with open(path, "w") as f:
			f.write(format_serial(serial) + "\n")
	except OSError as e:
		raise IssuanceError(f"cannot update CA serial file {path}: {e.strerror}") from e
