"""Interactive completion of a Configuration.

Every field that is missing or fails its check is asked for again on the
terminal until the operator supplies a valid value. `read` and `err` can be
swapped out, which is how the tests drive the prompts.
"""
from __future__ import annotations

import os
import sys
from typing import Callable, List, Optional, TextIO

from signcert.config import (
    DEFAULT_DURATION,
    DEFAULT_OUTPUT_DIR,
    Configuration,
    IssueRequest,
    parse_san,
)
from signcert.crypto.ca import IssuanceError
from signcert.validators import Field, validate_san, validator_for

INVALID_INPUT = "Invalid input. Please try again."


def prompt_input(message: str, field: Field, default: Optional[str] = None, *,
                 san_type: Optional[str] = None,
                 read: Optional[Callable[[str], str]] = None,
                 err: Optional[TextIO] = None) -> str:
    """Ask until the answer passes the check for `field`, then return it.

    An empty answer falls back to `default` when one is given.
    """
    check = validator_for(field, san_type)
    read = read or input
    err = err or sys.stderr
    while True:
        if default:
            answer = read(f"{message} [default: {default}]: ") or default
        else:
            answer = read(f"{message}: ")
        if check(answer):
            return answer
        print(INVALID_INPUT, file=err)


def ask_san(read: Optional[Callable[[str], str]] = None, err: Optional[TextIO] = None) -> str:
    san_type = prompt_input("Enter SAN type (IP/DNS)", Field.SAN_TYPE, read=read, err=err).upper()
    value = prompt_input(f"Enter {san_type} value", Field.SAN_VALUE,
                         san_type=san_type, read=read, err=err)
    return f"{san_type}:{value}"


def collect_sans(read: Optional[Callable[[str], str]] = None, err: Optional[TextIO] = None) -> List[str]:
    sans: List[str] = []
    while True:
        answer = prompt_input("Do you want to add a Subject Alternative Name (SAN)? (y/n)",
                              Field.YES_NO, read=read, err=err)
        if answer in ("n", "N"):
            return sans
        sans.append(ask_san(read=read, err=err))


def recheck_sans(sans: List[str], read: Optional[Callable[[str], str]] = None,
                 err: Optional[TextIO] = None) -> List[str]:
    """Re-ask every SAN given on the command line that does not validate."""
    err = err or sys.stderr
    checked = []
    for text in sans:
        if validate_san(text):
            san_type, value = parse_san(text)
            checked.append(f"{san_type}:{value}")
            continue
        print(f"Invalid SAN entry: {text}", file=err)
        checked.append(ask_san(read=read, err=err))
    return checked


def ensure_output_dir(path: str) -> None:
    if not os.path.isdir(path):
        print(f"Directory {path} does not exist. Creating it...")
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise IssuanceError(f"cannot create output directory {path}: {e.strerror}") from e


def complete_configuration(config: Configuration,
                           read: Optional[Callable[[str], str]] = None,
                           err: Optional[TextIO] = None,
                           default_duration: int = DEFAULT_DURATION) -> IssueRequest:
    """Fill in or fix every field of `config` and return the frozen request."""
    if not validator_for(Field.CN)(config.cn):
        config.cn = prompt_input("Enter Common Name (CN)", Field.CN, read=read, err=err)

    if not validator_for(Field.DURATION)(config.duration):
        config.duration = prompt_input("Enter certificate duration (days)", Field.DURATION,
                                       str(default_duration), read=read, err=err)

    if not config.ca_cert:
        config.ca_cert = prompt_input("Enter path to CA certificate", Field.CA_CERT,
                                      read=read, err=err)
    if not config.ca_key:
        config.ca_key = prompt_input("Enter path to CA private key", Field.CA_KEY,
                                     read=read, err=err)
    if not config.ca_serial:
        config.ca_serial = prompt_input("Enter path to CA serial file", Field.CA_SERIAL,
                                        read=read, err=err)

    config.output_dir = config.output_dir or DEFAULT_OUTPUT_DIR
    ensure_output_dir(config.output_dir)

    if config.sans:
        config.sans = recheck_sans(config.sans, read=read, err=err)
    else:
        config.sans = collect_sans(read=read, err=err)

    return config.freeze()
