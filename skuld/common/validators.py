"""
Validators for French business identifiers
"""
import re
from typing import Optional


IBAN_PATTERN = re.compile(r'^[A-Z]{2}\d{2}[A-Z0-9]{10,30}$')
BIC_PATTERN = re.compile(r'^[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?$')


def clean_identifier(value: str) -> str:
    """Strip every whitespace character and uppercase"""
    return re.sub(r'\s', '', value).upper()


def validate_siret(siret: str) -> bool:
    """
    SIRET: exactly 14 digits once spaces are removed.
    The Luhn checksum is not enforced, some historical numbers fail it.
    """
    return bool(re.fullmatch(r'\d{14}', clean_identifier(siret)))


def validate_siren(siren: str) -> bool:
    """SIREN: exactly 9 digits"""
    return bool(re.fullmatch(r'\d{9}', siren))


def validate_postal_code(postal_code: str) -> bool:
    """French postal code: 5 digits"""
    return bool(re.fullmatch(r'\d{5}', postal_code))


def normalize_iban(iban: Optional[str]) -> Optional[str]:
    """
    Normalize an IBAN (no spaces, upper case) and check its general shape:
    country code, 2 check digits, 10 to 30 alphanumerics.
    Empty input means no IBAN.
    """
    if iban is None:
        return None
    cleaned = clean_identifier(iban)
    if not cleaned:
        return None
    if not IBAN_PATTERN.match(cleaned):
        raise ValueError('Invalid IBAN format')
    return cleaned


def normalize_bic(bic: Optional[str]) -> Optional[str]:
    """Normalize a BIC/SWIFT code (8 or 11 characters)"""
    if bic is None:
        return None
    cleaned = clean_identifier(bic)
    if not cleaned:
        return None
    if not BIC_PATTERN.match(cleaned):
        raise ValueError('Invalid BIC format')
    return cleaned
