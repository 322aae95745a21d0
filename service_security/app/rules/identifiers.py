"""
Resource identifier parsing and scope resolution.

A resource identifier is a base path optionally followed by ``?`` and an
``&``-joined list of ``name=value`` claims, e.g. ``/reports?dept=eng&year=2024``.
"""

from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from shared.errors import InvalidIdentifier

QUERY_SEPARATOR = "?"
CLAIM_SEPARATOR = "&"
VALUE_SEPARATOR = "="

ClaimSet = Mapping[str, str]

EMPTY_CLAIMS: ClaimSet = MappingProxyType({})


def validate_identifier(identifier) -> str:
    """Reject ``None``, non-strings and empty identifiers."""
    if not isinstance(identifier, str) or not identifier:
        raise InvalidIdentifier(
            "Resource identifier must be a non-empty string",
            details={"identifier": identifier if isinstance(identifier, str) else None}
        )
    return identifier


def split_identifier(full_identifier: str) -> Tuple[str, ClaimSet]:
    """Split ``path?n1=v1&n2=v2`` into its base path and claims.

    Later duplicates overwrite earlier values. The returned claim set is
    read-only.
    """
    validate_identifier(full_identifier)
    base_path, separator, query = full_identifier.strip().partition(QUERY_SEPARATOR)
    if not base_path:
        raise InvalidIdentifier(
            "Resource identifier has an empty base path",
            details={"identifier": full_identifier}
        )
    if not separator:
        return base_path, EMPTY_CLAIMS

    claims = {}
    for segment in query.split(CLAIM_SEPARATOR):
        if not segment:
            continue
        name, has_value, value = segment.partition(VALUE_SEPARATOR)
        if not has_value or not name:
            raise InvalidIdentifier(
                "Malformed claim segment",
                details={"identifier": full_identifier, "segment": segment}
            )
        claims[name] = value
    return base_path, MappingProxyType(claims)


def join_identifier(base_path: str, claims: ClaimSet) -> str:
    """Rebuild an identifier from a base path and claims."""
    if not claims:
        return base_path
    query = CLAIM_SEPARATOR.join(
        f"{name}{VALUE_SEPARATOR}{value}" for name, value in claims.items()
    )
    return f"{base_path}{QUERY_SEPARATOR}{query}"


def canonicalize(identifier: str) -> str:
    """Return the canonical spelling of ``identifier``.

    Whitespace around the identifier, empty claim segments and a dangling
    ``?`` are dropped and duplicate claims are collapsed.
    """
    return join_identifier(*split_identifier(identifier))


def narrow_scope(candidate: str) -> Optional[str]:
    """Return the next coarser scope, or None when nothing is left to strip."""
    last_claim = candidate.rfind(CLAIM_SEPARATOR)
    if last_claim != -1:
        return candidate[:last_claim]
    query_start = candidate.find(QUERY_SEPARATOR)
    if query_start != -1:
        return candidate[:query_start]
    return None


def iter_scopes(identifier: str) -> Iterator[str]:
    """Yield ``identifier`` followed by each enclosing scope, most specific first."""
    candidate: Optional[str] = identifier
    while candidate is not None:
        yield candidate
        candidate = narrow_scope(candidate)
