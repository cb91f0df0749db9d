"""
dockast Parser Entry Point

Parses Dockerfile source text into a ``Dockerfile`` document.

This is the single public entry point of the library. Each call runs its own
``Scanner`` over an immutable copy of the text, so calls share no state and the
escape character chosen by one document never leaks into another.

Parser Behavior
---------------
- Accepts any text: malformed instructions, unterminated quotes and unknown
  parser directives are represented structurally instead of raising.
- Arguments, variables and properties are derived lazily by the returned
  document's instructions.

Returns
-------
Dockerfile
    The parsed document with its directive, comments and instructions.

Raises
------
TypeError
    Raised when the content is not a string.
"""

from dockast.dockast_dockerfile import Dockerfile
from dockast.dockast_lexer import Scanner


def parse(content: str) -> Dockerfile:
    """
    Parse Dockerfile content.

    Parameters
    ----------
    content : str
        The full Dockerfile source.

    Returns
    -------
    Dockerfile
        The parsed document.
    """
    if not isinstance(content, str):
        raise TypeError(f"Expected Dockerfile content as str, got {type(content).__name__}")
    return Scanner(content).scan()


__all__ = ["parse"]
