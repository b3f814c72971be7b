"""Format checks for every field the operator can supply.

Each check takes the raw string and returns True/False; `validator_for`
picks the check for a given `Field`.
"""
from __future__ import annotations

import re
from enum import Enum
from functools import partial
from typing import Callable, Iterable, Optional

from signcert.config import VALID_SAN_TYPES, parse_san

_DIGITS = re.compile(r"^[0-9]+$")
_YES_NO = re.compile(r"^(y|n|Y|N)$")
# four dotted digit groups; octets are not range checked here
_IPV4 = re.compile(r"^[0-9]+\.[0-9]+\.[0-9]+\.[0-9]+$")
_DNS = re.compile(r"^[a-zA-Z0-9.-]+$")


class Field(Enum):
    CN = "cn"
    DURATION = "duration"
    CA_CERT = "ca_cert"
    CA_KEY = "ca_key"
    CA_SERIAL = "ca_serial"
    YES_NO = "yes_no"
    SAN_TYPE = "san_type"
    SAN_VALUE = "san_value"


def validate_non_empty(value: str) -> bool:
    return bool(value)


def validate_duration(value: str) -> bool:
    return bool(_DIGITS.fullmatch(value)) and int(value) > 0


def validate_yes_no(value: str) -> bool:
    return bool(_YES_NO.fullmatch(value))


def validate_san_type(value: str, valid_types: Iterable[str] = VALID_SAN_TYPES) -> bool:
    return value.upper() in valid_types


def validate_san_value(san_type: str, value: str) -> bool:
    """Check a SAN value against the syntax of its (upper-case) type."""
    if san_type == "IP":
        return bool(_IPV4.fullmatch(value))
    if san_type == "DNS":
        return bool(_DNS.fullmatch(value))
    return False


def validate_san(text: str) -> bool:
    """Check a full 'TYPE:value' entry."""
    san_type, value = parse_san(text)
    return validate_san_type(san_type) and validate_san_value(san_type, value)


_VALIDATORS = {
    Field.CN: validate_non_empty,
    Field.DURATION: validate_duration,
    Field.CA_CERT: validate_non_empty,
    Field.CA_KEY: validate_non_empty,
    Field.CA_SERIAL: validate_non_empty,
    Field.YES_NO: validate_yes_no,
    Field.SAN_TYPE: validate_san_type,
}


def validator_for(field: Field, san_type: Optional[str] = None) -> Callable[[str], bool]:
    if field is Field.SAN_VALUE:
        if san_type is None:
            raise ValueError("SAN value validation needs a SAN type")
        return partial(validate_san_value, san_type.upper())
    return _VALIDATORS[field]
