"""Split query references into profile and key.

A query reference has the shape ``[<profile>__]<key>``. The profile part
is only honored when a configuration file exists for it, so keys that
legitimately contain ``__`` keep working.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vault_keepass.exceptions import EmptyKeyError
from vault_keepass.profiles import profile_exists

logger = logging.getLogger(__name__)

SEPARATOR = "__"


@dataclass(frozen=True, slots=True)
class QueryRef:
    """A parsed query reference.

    Attributes:
        profile: Profile name, empty when none applies.
        key: Entry path inside the database.

    Examples:
        >>> str(QueryRef("john", "Ansible/admin"))
        'john__Ansible/admin'
        >>> str(QueryRef("", "Ansible/admin"))
        'Ansible/admin'
    """

    profile: str
    key: str

    def __str__(self) -> str:
        return f"{self.profile}{SEPARATOR}{self.key}" if self.profile else self.key


def split_query(reference: str) -> tuple[str, str]:
    """Split a reference on the first separator, without any existence check.

    Examples:
        >>> split_query("john__Ansible/admin")
        ('john', 'Ansible/admin')
        >>> split_query("a__b__c")
        ('a', 'b__c')
        >>> split_query("__key")
        ('', '__key')
        >>> split_query("plain")
        ('', 'plain')
    """
    head, sep, tail = reference.partition(SEPARATOR)
    if sep and head:
        return head, tail
    return "", reference


def parse_query(reference: str) -> QueryRef:
    """Parse a ``[profile__]key`` reference.

    The candidate profile is kept only when its configuration file exists;
    otherwise the whole reference is the key.

    Raises:
        EmptyKeyError: If no key remains.
    """
    profile, key = split_query(reference)
    if profile and not profile_exists(profile):
        logger.debug("No profile file for %r, using %r as key", profile, reference)
        profile, key = "", reference
    if not key.strip():
        raise EmptyKeyError(reference)
    return QueryRef(profile=profile, key=key)


def parse_get(*args: str) -> QueryRef:
    """Parse ``get`` style positional arguments.

    With more than one argument, the first is consumed as the profile if
    its configuration file exists. The remaining arguments are joined with
    spaces to form the key.

    Raises:
        EmptyKeyError: If no key remains.
    """
    profile = ""
    words = list(args)
    if len(words) > 1 and words[0] and profile_exists(words[0]):
        profile = words.pop(0)
    key = " ".join(words)
    if not key.strip():
        raise EmptyKeyError(" ".join(args))
    return QueryRef(profile=profile, key=key)


__all__ = [
    "SEPARATOR",
    "QueryRef",
    "parse_get",
    "parse_query",
    "split_query",
]
