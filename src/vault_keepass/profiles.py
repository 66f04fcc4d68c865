"""Profile resolver: locate, load, and merge profile configuration files.

A profile file is a small ``KEY=VALUE`` file read with python-dotenv. The
default profile lives in ``conf.env``, a named profile ``john`` in
``conf.john.env``, both under :func:`vault_keepass.settings.config_dir`.
Only ``KC_DB`` and ``KC_PASS`` are recognized.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import dotenv_values

from vault_keepass.exceptions import MissingProfileError
from vault_keepass.settings import DB_KEY, PASS_KEY, QueryContext, config_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

    from vault_keepass.backend.detect import BackendHandle
    from vault_keepass.query import QueryRef
    from vault_keepass.settings import RunOptions

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "conf"
PROFILE_SUFFIX = ".env"
RECOGNIZED_KEYS = (DB_KEY, PASS_KEY)


@dataclass(frozen=True, slots=True)
class Profile:
    """A named bundle of database path and password.

    Attributes:
        name: Profile name, empty for the default profile.
        database_path: Database file configured by ``KC_DB``.
        database_password: Password configured by ``KC_PASS``.
        config_file: File the profile was loaded from, None if the default
            profile file does not exist.
        assigned: Recognized keys present in the file, even when empty.
    """

    name: str = ""
    database_path: Path | None = None
    database_password: str | None = field(default=None, repr=False)
    config_file: Path | None = None
    assigned: frozenset[str] = frozenset()

    @property
    def display_name(self) -> str:
        """Return the name shown to users (``default`` for the empty name)."""
        return self.name or "default"


def profile_path(name: str = "") -> Path:
    """Return the configuration file path of a profile.

    Examples:
        >>> profile_path("john").name
        'conf.john.env'
        >>> profile_path("").name
        'conf.env'
    """
    segment = f".{name}" if name else ""
    return config_dir() / f"{PROFILE_PREFIX}{segment}{PROFILE_SUFFIX}"


def profile_exists(name: str) -> bool:
    """Return True if the profile configuration file exists."""
    return profile_path(name).is_file()


def _expand_path(value: str) -> Path:
    return Path(os.path.expandvars(value)).expanduser()


def _read_profile_file(path: Path) -> dict[str, str]:
    """Read the recognized assignments of a profile file.

    Keys assigned an empty value are kept as ``""``: they still shadow the
    environment.
    """
    values = dotenv_values(path, interpolate=False)
    recognized: dict[str, str] = {}
    for name, value in values.items():
        if name not in RECOGNIZED_KEYS:
            logger.debug("Ignoring unknown key %r in %s", name, path)
            continue
        recognized[name] = value or ""
    return recognized


def load_profile(name: str = "") -> Profile:
    """Load a profile configuration file.

    Args:
        name: Profile name, empty for the default profile.

    Returns:
        The loaded profile. The default profile is returned empty when its
        file does not exist.

    Raises:
        MissingProfileError: If a named profile has no configuration file.
    """
    path = profile_path(name)
    if not path.is_file():
        if name:
            raise MissingProfileError(name, str(path))
        logger.debug("Default profile file %s not found, skipped", path)
        return Profile()

    values = _read_profile_file(path)
    logger.info("Loaded profile '%s' from %s", name or "default", path)
    database = values.get(DB_KEY)
    return Profile(
        name=name,
        database_path=_expand_path(database) if database else None,
        database_password=values.get(PASS_KEY) or None,
        config_file=path,
        assigned=frozenset(values),
    )


def list_profiles() -> list[str]:
    """Return the names of all profiles with a configuration file.

    The default profile appears as an empty string. Names are sorted.
    """
    directory = config_dir()
    if not directory.is_dir():
        return []
    names: list[str] = []
    for path in directory.glob(f"{PROFILE_PREFIX}*{PROFILE_SUFFIX}"):
        stem = path.name[len(PROFILE_PREFIX) : -len(PROFILE_SUFFIX)]
        if stem == "":
            names.append("")
        elif stem.startswith(".") and len(stem) > 1:
            names.append(stem[1:])
    return sorted(names)


def resolve_context(
    options: RunOptions,
    query: QueryRef,
    backend: BackendHandle | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> QueryContext:
    """Assemble the query context for one lookup.

    Each field is taken from the first source that sets it: explicit
    command line flags, then the profile file, then the environment
    (``KC_DB`` / ``KC_PASS``). A key present in the profile file shadows
    the environment even when empty; an empty ``KC_PASS`` then means
    "prompt" and an empty ``KC_DB`` leaves the database unset.

    Args:
        options: Global command line options.
        query: Parsed query reference (profile and key).
        backend: Credential store handle detected at startup.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Immutable query context.

    Raises:
        MissingProfileError: If the query names a profile without a file.
    """
    env = os.environ if environ is None else environ
    profile = load_profile(query.profile)

    database: Path | None = None
    if options.database:
        database = _expand_path(options.database)
    elif DB_KEY in profile.assigned:
        database = profile.database_path
    elif env.get(DB_KEY):
        database = _expand_path(env[DB_KEY])

    password: str | None
    if options.password:
        password = options.password
    elif PASS_KEY in profile.assigned:
        password = profile.database_password
    else:
        password = env.get(PASS_KEY) or None

    return QueryContext(
        profile=query.profile,
        key=query.key,
        database=database,
        password=password,
        config_file=profile.config_file,
        backend=backend,
        dry_run=options.dry_run,
        timeout=options.timeout,
    )


__all__ = [
    "PROFILE_PREFIX",
    "PROFILE_SUFFIX",
    "Profile",
    "list_profiles",
    "load_profile",
    "profile_exists",
    "profile_path",
    "resolve_context",
]
