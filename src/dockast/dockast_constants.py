"""
Shared vocabulary for the dockast Dockerfile parser.

This module holds the constant tables consulted by the scanner, the argument
tokenizer and the document resolver. Nothing in here is mutated at runtime.

Contents:
    Keyword: The instruction keywords the scanner recognizes.
    Directive: The parser directives the scanner recognizes.
    Tristate: Three-valued answer for "is defined" / "is build variable" queries.
    Unresolved: Sentinel type returned when a variable has no visible declaration.
    DEFAULT_ESCAPE_CHARACTER: Escape character in effect without a directive.
    DEFAULT_VARIABLES: Proxy build arguments predefined by the builder.
"""

from enum import Enum


class Keyword(str, Enum):
    """Instruction keywords with a dedicated representation."""

    ADD = "ADD"
    ARG = "ARG"
    CMD = "CMD"
    COPY = "COPY"
    ENTRYPOINT = "ENTRYPOINT"
    ENV = "ENV"
    EXPOSE = "EXPOSE"
    FROM = "FROM"
    HEALTHCHECK = "HEALTHCHECK"
    LABEL = "LABEL"
    MAINTAINER = "MAINTAINER"
    ONBUILD = "ONBUILD"
    RUN = "RUN"
    SHELL = "SHELL"
    STOPSIGNAL = "STOPSIGNAL"
    USER = "USER"
    VOLUME = "VOLUME"
    WORKDIR = "WORKDIR"


class Directive(str, Enum):
    """Parser directives understood by the scanner."""

    ESCAPE = "escape"


class Tristate(Enum):
    """Answer to a yes/no question that may not be decidable.

    UNKNOWN is used when the queried line lies outside the parsed document, or
    when no declaration settles the question either way.
    """

    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


class Unresolved(Enum):
    """Sentinel type for a variable with no visible declaration."""

    UNRESOLVED = "unresolved"

    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = Unresolved.UNRESOLVED

DEFAULT_ESCAPE_CHARACTER = "\\"

# escape characters an escape directive may select
VALID_ESCAPE_CHARACTERS = ("\\", "`")

DEFAULT_VARIABLES = (
    "FTP_PROXY",
    "ftp_proxy",
    "HTTP_PROXY",
    "http_proxy",
    "HTTPS_PROXY",
    "https_proxy",
    "NO_PROXY",
    "no_proxy",
)

HORIZONTAL_WHITESPACE = " \t"
NEWLINES = "\r\n"
WHITESPACE = " \t\r\n"


def is_whitespace(char: str) -> bool:
    """Returns True for a space, tab, carriage return or line feed.

    The empty string (what a stream returns past its end) is not whitespace.
    """
    return char != "" and char in WHITESPACE


def is_newline(char: str) -> bool:
    return char != "" and char in NEWLINES


__all__ = [
    "DEFAULT_ESCAPE_CHARACTER",
    "DEFAULT_VARIABLES",
    "Directive",
    "HORIZONTAL_WHITESPACE",
    "Keyword",
    "NEWLINES",
    "Tristate",
    "UNRESOLVED",
    "Unresolved",
    "VALID_ESCAPE_CHARACTERS",
    "WHITESPACE",
    "is_newline",
    "is_whitespace",
]
