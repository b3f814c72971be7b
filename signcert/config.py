"""Configuration record for a certificate issuance run.

`Configuration` is filled in by the argument parser and completed by the
interactive prompts. Once every field is valid it is frozen into an
`IssueRequest`, which is the only thing the issuer accepts.

Environment fallbacks (read after `load_dotenv()`):
  CA_CERT, CA_KEY, CA_SERIAL, OUTPUT_DIR, CERT_DURATION
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

DEFAULT_DURATION = 100 * 365
DEFAULT_OUTPUT_DIR = "."
VALID_SAN_TYPES = ("IP", "DNS")


@dataclass(frozen=True)
class SanEntry:
    type: str
    value: str

    def __str__(self) -> str:
        return f"{self.type}:{self.value}"


def split_san_arg(text: str) -> List[str]:
    """Split one --san value into its comma-separated entries."""
    return [part.strip() for part in text.split(",") if part.strip()]


def parse_san(text: str) -> Tuple[str, str]:
    """Split 'TYPE:value' into (TYPE, value); the type is upper-cased.

    Text without a colon yields an empty type, which no validator accepts.
    """
    san_type, sep, value = text.partition(":")
    if not sep:
        return "", text
    return san_type.strip().upper(), value.strip()


@dataclass
class Configuration:
    cn: str = ""
    duration: str = str(DEFAULT_DURATION)
    sans: List[str] = field(default_factory=list)
    ca_cert: str = ""
    ca_key: str = ""
    ca_serial: str = ""
    output_dir: str = DEFAULT_OUTPUT_DIR

    @classmethod
    def from_args(cls, args, default_duration: int = DEFAULT_DURATION,
                  default_output_dir: str = DEFAULT_OUTPUT_DIR) -> "Configuration":
        """Build a configuration from parsed CLI args, falling back to env vars."""
        sans: List[str] = []
        for raw in args.san or []:
            sans.extend(split_san_arg(raw))
        return cls(
            cn=args.cn or "",
            duration=_first(args.duration, _env("CERT_DURATION"), str(default_duration)),
            sans=sans,
            ca_cert=_first(args.ca_cert, _env("CA_CERT"), ""),
            ca_key=_first(args.ca_key, _env("CA_KEY"), ""),
            ca_serial=_first(args.ca_serial, _env("CA_SERIAL"), ""),
            output_dir=_first(args.output_dir, _env("OUTPUT_DIR"), default_output_dir),
        )

    def freeze(self) -> "IssueRequest":
        entries = []
        for text in self.sans:
            san_type, value = parse_san(text)
            entries.append(SanEntry(san_type, value))
        return IssueRequest(
            cn=self.cn,
            duration=int(self.duration),
            sans=tuple(entries),
            ca_cert=self.ca_cert,
            ca_key=self.ca_key,
            ca_serial=self.ca_serial,
            output_dir=self.output_dir,
        )


@dataclass(frozen=True)
class IssueRequest:
    cn: str
    duration: int
    sans: Tuple[SanEntry, ...]
    ca_cert: str
    ca_key: str
    ca_serial: str
    output_dir: str = DEFAULT_OUTPUT_DIR

    @property
    def key_path(self) -> str:
        return os.path.join(self.output_dir, f"{self.cn}_key.pem")

    @property
    def csr_path(self) -> str:
        return os.path.join(self.output_dir, f"{self.cn}.csr")

    @property
    def cert_path(self) -> str:
        return os.path.join(self.output_dir, f"{self.cn}.crt")

    def san_extension_text(self) -> str:
        """Textual subjectAltName value, e.g. 'DNS:a.example, IP:10.0.0.1'."""
        return ", ".join(str(entry) for entry in self.sans)


def _env(name: str) -> Optional[str]:
    return os.getenv(name) or None


def _first(*values: Optional[str]) -> str:
    for value in values:
        if value is not None:
            return value
    return ""
