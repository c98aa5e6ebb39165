"""Placeholder expansion: $Name and ${Name} tokens resolved to contract addresses."""

import re
from typing import Callable, List

from .exceptions import ExpansionError, UnknownReferenceError

_NAME = re.compile(r"[A-Za-z0-9_]+")

# $Name, or ${...} with an optional closing brace so bad tokens can be reported
_TOKEN = re.compile(r"\$(?:\{(?P<braced>[^}]*)(?P<close>\}?)|(?P<bare>[A-Za-z0-9_]+))")


def _token_name(match: "re.Match[str]") -> str:
    bare = match.group("bare")
    if bare is not None:
        return bare

    braced = match.group("braced")
    if not match.group("close"):
        raise ExpansionError(f"Unterminated placeholder at offset {match.start()}")
    if not _NAME.fullmatch(braced):
        raise ExpansionError(f"Invalid placeholder name: ${{{braced}}}")
    return braced


def references(text: str) -> List[str]:
    """
    Names referenced by placeholders in text, in order of appearance.

    Raises:
        ExpansionError: If a ${...} token is malformed
    """
    return [_token_name(m) for m in _TOKEN.finditer(text)]


def expand(text: str, resolver: Callable[[str], str]) -> str:
    """
    Replace every $Name and ${Name} token with resolver(Name).

    Single pass: substituted values are not scanned again. A "$" that does not
    start a token is kept as is.

    Args:
        text: Text containing placeholders (typically JSON constructor params)
        resolver: Maps a contract name to its address

    Returns:
        Expanded text

    Raises:
        UnknownReferenceError: If resolver cannot resolve a name
        ExpansionError: If a ${...} token is malformed
    """

    def substitute(match: "re.Match[str]") -> str:
        name = _token_name(match)
        try:
            return resolver(name)
        except UnknownReferenceError:
            raise
        except LookupError as e:
            raise UnknownReferenceError(name) from e

    return _TOKEN.sub(substitute, text)
